"""Password hashing and the bearer-token gate in front of every private route."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import bcrypt
from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlmodel import Session, select

from .config import Settings, get_settings
from .database import get_db
from .errors import AuthenticationError
from .models import User, UserToken

logger = logging.getLogger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    password_bytes = password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        return token or None
    return None


@dataclass
class AuthContext:
    """The authenticated user and the token row that proved it."""
    user: User
    token: UserToken


class TokenAuthenticator:
    """Signs, verifies and revokes session tokens.

    A token is valid only while it verifies against the secret, has not
    expired, and is still listed among its user's tokens.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: Optional[int] = None):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_token(self, user_id: str) -> str:
        """Create a signed JWT for ``user_id``."""
        now = datetime.now(timezone.utc)
        to_encode = {"sub": user_id, "jti": uuid4().hex, "iat": now}
        if self.expire_minutes:
            to_encode["exp"] = now + timedelta(minutes=self.expire_minutes)
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[str]:
        """Return the user id embedded in ``token``, or None if it does not verify."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            return None
        return user_id

    def authenticate(self, db: Session, token: Optional[str]) -> AuthContext:
        if not token:
            raise AuthenticationError()

        user_id = self.decode_token(token)
        if user_id is None:
            logger.debug("Rejected token that failed verification")
            raise AuthenticationError()

        record = db.exec(
            select(UserToken).where(UserToken.user_id == user_id, UserToken.token == token)
        ).first()
        if record is None or record.user is None:
            logger.debug("Rejected revoked token for user %s", user_id)
            raise AuthenticationError()

        return AuthContext(user=record.user, token=record)

    def issue_token(self, user: User) -> str:
        """Sign a new token and add it to the user's token list; caller commits."""
        token = self.create_token(user.id)
        user.tokens.append(UserToken(token=token))
        return token

    def revoke_token(self, context: AuthContext) -> None:
        """Remove only the token used for this request; caller commits."""
        context.user.tokens.remove(context.token)

    def revoke_all_tokens(self, user: User) -> None:
        user.tokens.clear()


def get_authenticator(settings: Settings = Depends(get_settings)) -> TokenAuthenticator:
    return TokenAuthenticator(
        secret_key=settings.secret_key,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )


def get_auth_context(
    request: Request,
    db: Session = Depends(get_db),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> AuthContext:
    """Resolve the bearer token on the request into an AuthContext."""
    return authenticator.authenticate(db, _get_token_from_request(request))


def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    """Get the authenticated user for the request."""
    return context.user
