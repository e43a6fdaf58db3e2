import logging
import re
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Response, UploadFile, status
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..auth import (
    AuthContext,
    TokenAuthenticator,
    get_auth_context,
    get_authenticator,
    get_current_user,
    hash_password,
    verify_password,
)
from ..database import get_db
from ..emails import Mailer, get_mailer
from ..errors import NotFoundError, ValidationError
from ..models import Task, User
from ..schemas.user import (
    ALLOWED_USER_UPDATES,
    AuthResponse,
    User as UserSchema,
    UserCreate,
    UserLogin,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_AVATAR_BYTES = 1_000_000
AVATAR_FILENAME = re.compile(r"\.(jpg|jpeg|png)$", re.IGNORECASE)


def _get_user_by_email(db: Session, email: str):
    return db.exec(select(User).where(User.email == email)).first()


def _avatar_media_type(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    return "application/octet-stream"


@router.post("/users", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    user: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
    mailer: Mailer = Depends(get_mailer),
):
    """Create a new user account and sign it in."""
    if _get_user_by_email(db, user.email):
        raise ValidationError("Email already registered")

    db_user = User(
        name=user.name,
        email=user.email,
        password=hash_password(user.password),
        age=user.age,
    )
    db.add(db_user)
    token = authenticator.issue_token(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    db.refresh(db_user)

    logger.info("Registered user %s", db_user.id)
    background_tasks.add_task(mailer.send_welcome_email, db_user.email, db_user.name)
    return {"user": db_user, "token": token}


@router.post("/users/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
):
    """Sign in with email and password and get a new session token."""
    db_user = _get_user_by_email(db, credentials.email.strip().lower())
    if not db_user or not verify_password(credentials.password, db_user.password):
        raise ValidationError("Unable to login")

    token = authenticator.issue_token(db_user)
    db.commit()
    db.refresh(db_user)
    return {"user": db_user, "token": token}


@router.post("/users/logout")
def logout(
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
):
    """Revoke the token used for this request; other sessions stay valid."""
    authenticator.revoke_token(context)
    db.commit()
    return {"success": True}


@router.post("/users/logoutAll")
def logout_all(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
):
    """Revoke every token of the current user."""
    authenticator.revoke_all_tokens(current_user)
    db.commit()
    return {"success": True}


@router.get("/users/me", response_model=UserSchema)
def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.patch("/users/me", response_model=UserSchema)
def update_users_me(
    changes: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name, email, password or age of the current user."""
    if not all(key in ALLOWED_USER_UPDATES for key in changes):
        raise ValidationError("Invalid updates!")
    try:
        user_update = UserUpdate(**changes)
    except SchemaValidationError as exc:
        raise ValidationError(exc.errors()[0]["msg"]) from exc

    update_data = user_update.model_dump(exclude_unset=True)
    if "email" in update_data and update_data["email"] != current_user.email:
        if _get_user_by_email(db, update_data["email"]):
            raise ValidationError("Email already registered")
    if "password" in update_data:
        update_data["password"] = hash_password(update_data["password"])

    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.add(current_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    db.refresh(current_user)
    return current_user


@router.delete("/users/me", response_model=UserSchema)
def delete_users_me(
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Delete the current user together with all of their tasks and tokens."""
    profile = UserSchema.model_validate(current_user).model_dump()

    for task in db.exec(select(Task).where(Task.owner_id == current_user.id)).all():
        db.delete(task)
    db.delete(current_user)
    db.commit()

    logger.info("Deleted user %s", profile["id"])
    background_tasks.add_task(mailer.send_cancelation_email, profile["email"], profile["name"])
    return profile


@router.post("/users/me/avatar")
def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store the uploaded image bytes as the current user's avatar."""
    if not avatar.filename or not AVATAR_FILENAME.search(avatar.filename):
        raise ValidationError("Please upload an image")

    data = avatar.file.read(MAX_AVATAR_BYTES + 1)
    if not data:
        raise ValidationError("Please upload an image")
    if len(data) > MAX_AVATAR_BYTES:
        raise ValidationError("Avatar must be at most 1 MB")

    current_user.avatar = data
    db.add(current_user)
    db.commit()
    return {"success": True}


@router.delete("/users/me/avatar")
def delete_avatar(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove the current user's avatar."""
    current_user.avatar = None
    db.add(current_user)
    db.commit()
    return {"success": True}


@router.get("/users/{user_id}/avatar")
def get_avatar(user_id: str, db: Session = Depends(get_db)):
    """Serve a user's avatar; public."""
    user = db.get(User, user_id)
    if not user or not user.avatar:
        raise NotFoundError("Avatar not found")
    return Response(content=user.avatar, media_type=_avatar_media_type(user.avatar))
