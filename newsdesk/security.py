"""
Password hashing and access-token helpers.

bcrypt work runs in the threadpool: at the default cost of 12 rounds a
single hash takes a few hundred milliseconds, which would otherwise stall
the event loop for every concurrent request.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt
from passlib.context import CryptContext

from newsdesk.config import settings
from newsdesk.models import UserRole

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class InvalidTokenError(Exception):
    """Raised when an access token is malformed, tampered with or expired."""


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as carried by a verified access token."""

    user_id: uuid.UUID
    role: UserRole

    @property
    def is_author(self) -> bool:
        return self.role == UserRole.AUTHOR


async def hash_password(password: str) -> str:
    return await run_in_threadpool(pwd_context.hash, password)


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(pwd_context.verify, plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, role: UserRole, expires_minutes: int | None = None) -> str:
    """Sign a token embedding the user id (``sub``) and role."""
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "type": ACCESS_TOKEN_TYPE,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Principal:
    """
    Verify *token* and return its principal.

    Signature, expiry, token type, subject and role are all checked; any
    failure raises ``InvalidTokenError``.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("wrong token type")
    try:
        return Principal(user_id=uuid.UUID(payload["sub"]), role=UserRole(payload["role"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise InvalidTokenError("malformed claims") from exc
