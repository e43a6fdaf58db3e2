import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import create_tables
from .errors import register_exception_handlers
from .logging_setup import setup_logging
from .routers import tasks, users

settings = get_settings()
setup_logging(level=settings.log_level, log_file=settings.log_file)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Task Manager API",
    description="Multi-user task manager with token-based sessions",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(users.router, tags=["users"])
app.include_router(tasks.router, tags=["tasks"])


# Create tables on startup
@app.on_event("startup")
def on_startup():
    create_tables()
    logger.info("Task Manager API started")


@app.get("/")
def read_root():
    return {"message": "Task Manager API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
