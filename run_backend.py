#!/usr/bin/env python
"""Script to run the Task Manager API server."""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "taskapi.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "").lower() in ("1", "true", "yes"),
    )
