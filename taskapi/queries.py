"""Owner-scoped task queries.

Every statement built here starts from ``Task.owner_id == owner.id``; the
listing parameters can narrow, order and page that set but never widen it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .errors import NotFoundError, StoreError, ValidationError
from .models import Task, User
from .schemas.task import ALLOWED_TASK_UPDATES, TaskUpdate

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 25
DEFAULT_SKIP = 0

# Public sort keys mapped to columns
SORTABLE_FIELDS = {
    "description": Task.description,
    "completed": Task.completed,
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
}


@dataclass
class TaskListParams:
    completed: Optional[bool] = None
    sort_field: Optional[str] = None
    descending: bool = False
    limit: int = DEFAULT_LIMIT
    skip: int = DEFAULT_SKIP


def _parse_int(raw: Optional[str], default: int, minimum: int) -> int:
    """Parse a query-string integer, falling back to ``default`` when unusable."""
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return default
    if value < minimum:
        return default
    return value


def parse_task_list_params(
    completed: Optional[str] = None,
    sort_by: Optional[str] = None,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
) -> TaskListParams:
    """Turn raw query-string values into TaskListParams.

    ``completed`` is true only for the literal "true"; any other non-empty
    value means false. ``sortBy`` is ``field:direction`` where anything
    other than ``desc`` sorts ascending and an unknown field is ignored.
    Unparseable or out-of-range ``limit``/``skip`` fall back to 25 and 0.
    """
    params = TaskListParams()

    if completed:
        params.completed = completed == "true"

    if sort_by:
        field, _, direction = sort_by.partition(":")
        if field in SORTABLE_FIELDS:
            params.sort_field = field
            params.descending = direction == "desc"

    params.limit = _parse_int(limit, DEFAULT_LIMIT, minimum=1)
    params.skip = _parse_int(skip, DEFAULT_SKIP, minimum=0)
    return params


def build_task_query(owner: User, params: TaskListParams):
    query = select(Task).where(Task.owner_id == owner.id)

    if params.completed is not None:
        query = query.where(Task.completed == params.completed)

    if params.sort_field:
        column = SORTABLE_FIELDS[params.sort_field]
        query = query.order_by(column.desc() if params.descending else column.asc())

    # Insertion order, also the tie-break for equal sort keys
    query = query.order_by(Task.created_at.asc(), Task.id.asc())

    return query.offset(params.skip).limit(params.limit)


def list_owned_tasks(db: Session, owner: User, params: TaskListParams) -> List[Task]:
    try:
        return list(db.exec(build_task_query(owner, params)).all())
    except SQLAlchemyError as exc:
        logger.exception("Failed to list tasks for user %s", owner.id)
        raise StoreError() from exc


def get_owned_task(db: Session, owner: User, task_id: str, for_update: bool = False) -> Task:
    """Look a task up by id and owner in one statement.

    A task owned by someone else is reported exactly like a missing one.
    """
    query = select(Task).where(Task.id == task_id, Task.owner_id == owner.id)
    if for_update:
        query = query.with_for_update()
    task = db.exec(query).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def validate_task_update(changes: Dict[str, Any]) -> TaskUpdate:
    """Check an update body against the allow-list before anything is applied."""
    if not isinstance(changes, dict):
        raise ValidationError("Invalid updates!")
    if not all(key in ALLOWED_TASK_UPDATES for key in changes):
        raise ValidationError("Invalid updates!")
    try:
        return TaskUpdate(**changes)
    except SchemaValidationError as exc:
        raise ValidationError(exc.errors()[0]["msg"]) from exc


def apply_task_update(task: Task, update: TaskUpdate) -> Task:
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(task, field, value)
    return task
