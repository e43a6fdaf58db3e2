from sqlalchemy import Column, LargeBinary
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional, List
from uuid import uuid4

from .timestamps import utcnow


class User(SQLModel, table=True):
    """User account with its hashed password and issued session tokens."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    password: str
    age: int = Field(default=0)
    avatar: Optional[bytes] = Field(default=None, sa_column=Column(LargeBinary, nullable=True))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    # Issued session tokens, oldest first
    tokens: List["UserToken"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "UserToken.id"},
    )


class UserToken(SQLModel, table=True):
    """One issued session token; deleting the row revokes the session."""
    __tablename__ = "user_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    token: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)

    user: Optional[User] = Relationship(back_populates="tokens")
