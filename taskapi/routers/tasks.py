import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import Task as TaskModel, User
from ..queries import (
    apply_task_update,
    get_owned_task,
    list_owned_tasks,
    parse_task_list_params,
    validate_task_update,
)
from ..schemas.task import Task as TaskSchema, TaskCreate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/tasks", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new task owned by the current user."""
    db_task = TaskModel(
        description=task.description,
        completed=task.completed,
        owner_id=current_user.id,
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    logger.info("User %s created task %s", current_user.id, db_task.id)
    return db_task


# GET /tasks?completed=true
# GET /tasks?limit=10&skip=20
# GET /tasks?sortBy=createdAt:desc
@router.get("/tasks", response_model=List[TaskSchema])
def get_tasks(
    completed: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's tasks with optional filtering, sorting and paging.

    Numeric parameters are taken as raw strings so a malformed value falls
    back to its default instead of failing the request.
    """
    params = parse_task_list_params(completed=completed, sort_by=sort_by, limit=limit, skip=skip)
    return list_owned_tasks(db, current_user, params)


@router.get("/tasks/{task_id}", response_model=TaskSchema)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get one of the current user's tasks by ID."""
    return get_owned_task(db, current_user, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskSchema)
def update_task(
    task_id: str,
    changes: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update description and/or completed on one of the current user's tasks.

    Any other key rejects the whole update before the task is looked up.
    """
    task_update = validate_task_update(changes)

    task = get_owned_task(db, current_user, task_id, for_update=True)
    apply_task_update(task, task_update)

    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@router.delete("/tasks/{task_id}", response_model=TaskSchema)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete one of the current user's tasks and return it."""
    task = get_owned_task(db, current_user, task_id, for_update=True)
    deleted = TaskSchema.model_validate(task).model_dump()

    db.delete(task)
    db.commit()
    logger.info("User %s deleted task %s", current_user.id, task_id)
    return deleted
