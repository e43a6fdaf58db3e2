from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

# Fields a task owner may change after creation
ALLOWED_TASK_UPDATES = ("description", "completed")


def _clean_description(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("description cannot be empty")
    return value.strip()


class TaskCreate(BaseModel):
    """Schema for creating new tasks.

    Unknown keys (including any ``owner``) are dropped; the owner always
    comes from the authenticated user.
    """
    description: str
    completed: bool = False

    class Config:
        extra = "ignore"

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v):
        return _clean_description(v)


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks. Only explicitly sent fields apply."""
    description: Optional[str] = None
    completed: Optional[bool] = None

    class Config:
        extra = "forbid"

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v):
        return _clean_description(v)

    @field_validator("completed")
    @classmethod
    def completed_not_null(cls, v):
        if v is None:
            raise ValueError("completed must be a boolean")
        return v


class Task(BaseModel):
    """Task as returned by the API."""
    id: str
    description: str
    completed: bool
    owner_id: str = Field(serialization_alias="owner")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        from_attributes = True
