import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Depends, Request
from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError, jwt
from passlib.context import CryptContext

from src.api.config import Settings
from src.api.errors import (
    AuthenticationError,
    DuplicateResourceError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from src.api.models import User
from src.api.schemas import LoginRequest, RegisterRequest
from src.api.storage import NoteStorage, get_storage

logger = logging.getLogger(__name__)

# Setup password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=60))
    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> Optional[dict]:
    """Decode and validate a JWT token. Returns the payload, or None if invalid or expired."""
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        return None


class Authenticator(ABC):
    """
    Resolves the user behind a request.

    Handlers depend only on authenticate(); the credential scheme is up to
    the implementation.
    """

    @abstractmethod
    def authenticate(self, request: Request, storage: NoteStorage) -> User:
        ...


class BearerTokenAuthenticator(Authenticator):
    """Authenticates requests carrying a locally issued JWT bearer token."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expires_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BearerTokenAuthenticator":
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.access_token_expire_minutes,
        )

    def issue_token(self, user_id: str) -> str:
        return create_access_token(
            {"sub": user_id}, self.secret_key, self.algorithm, expires_delta=self.expires_delta
        )

    def authenticate(self, request: Request, storage: NoteStorage) -> User:
        scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
        if not token or scheme.lower() != "bearer":
            raise AuthenticationError("Access token required")
        payload = decode_access_token(token, self.secret_key, self.algorithm)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")
        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError()
        user = storage.get_user(subject)
        if user is None:
            raise AuthenticationError()
        return user


# PUBLIC_INTERFACE
def get_current_user(request: Request, storage: NoteStorage = Depends(get_storage)) -> User:
    """
    Dependency that returns the authenticated user using the app's authenticator.

    Raises:
        AuthenticationError (401) if the request carries no valid credential.
    """
    authenticator: Authenticator = request.app.state.authenticator
    return authenticator.authenticate(request, storage)


# PUBLIC_INTERFACE
def register_user(
    storage: NoteStorage, authenticator: BearerTokenAuthenticator, payload: RegisterRequest
) -> Tuple[User, str]:
    """
    Create a local account and issue its first token.

    Raises:
        DuplicateResourceError if the email is already registered.
    """
    if storage.get_user_by_email(payload.email) is not None:
        raise DuplicateResourceError()
    user = storage.upsert_user(
        {
            "email": payload.email,
            "password_hash": get_password_hash(payload.password),
            "first_name": payload.first_name,
            "last_name": payload.last_name,
        }
    )
    logger.info("Registered user %s", user.id)
    return user, authenticator.issue_token(user.id)


# PUBLIC_INTERFACE
def login_user(
    storage: NoteStorage, authenticator: BearerTokenAuthenticator, payload: LoginRequest
) -> Tuple[User, str]:
    """
    Check email and password and issue a token.

    Raises:
        UserNotFoundError if no account has this email.
        InvalidCredentialsError if the password does not match.
    """
    user = storage.get_user_by_email(payload.email)
    if user is None:
        raise UserNotFoundError()
    if not user.password_hash or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for user %s", user.id)
        raise InvalidCredentialsError()
    logger.info("User %s logged in", user.id)
    return user, authenticator.issue_token(user.id)
