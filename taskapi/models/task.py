from sqlmodel import SQLModel, Field
from datetime import datetime
from uuid import uuid4

from .timestamps import utcnow


class Task(SQLModel, table=True):
    """Task owned by exactly one user.

    The owner is fixed at creation; only description and completed change.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    description: str
    completed: bool = Field(default=False)
    owner_id: str = Field(index=True, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})
