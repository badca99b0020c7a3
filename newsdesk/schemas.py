import re
import uuid
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic_core import PydanticCustomError

from newsdesk.models import ArticleStatus, UserRole

T = TypeVar("T")

NAME_PATTERN = re.compile(r"^[A-Za-z]+(?: [A-Za-z]+)*$")
_WHITESPACE_RE = re.compile(r"\s+")

NAME_MAX_LENGTH = 120
EMAIL_MAX_LENGTH = 320
PASSWORD_MIN_LENGTH = 8
# bcrypt only hashes the first 72 bytes
PASSWORD_MAX_LENGTH = 72

TITLE_MAX_LENGTH = 150
CONTENT_MAX_LENGTH = 50000
CATEGORY_MAX_LENGTH = 100
AUTHOR_FILTER_MAX_LENGTH = 120
SEARCH_MAX_LENGTH = 150

_PASSWORD_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"[A-Z]"), "password must contain at least one uppercase letter."),
    (re.compile(r"[a-z]"), "password must contain at least one lowercase letter."),
    (re.compile(r"\d"), "password must contain at least one number."),
    (re.compile(r"[^A-Za-z0-9]"), "password must contain at least one special character."),
)


def password_violations(password: str) -> list[str]:
    """Return every password rule *password* breaks, in a stable order."""
    violations: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(f"password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    if len(password) > PASSWORD_MAX_LENGTH:
        violations.append(
            f"password must not exceed {PASSWORD_MAX_LENGTH} characters for bcrypt compatibility."
        )
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(password):
            violations.append(message)
    return violations


def normalize_email(value):
    if isinstance(value, str):
        value = value.strip().lower()
        if len(value) > EMAIL_MAX_LENGTH:
            raise PydanticCustomError(
                "newsdesk.email_length", f"email must not exceed {EMAIL_MAX_LENGTH} characters."
            )
    return value


def _normalize_choice(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class RequestModel(BaseModel):
    """Base for request bodies: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


# --- Envelope ---

class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None
    errors: list[str] | None = None


# --- Auth ---

class SignupRequest(RequestModel):
    name: str = Field(max_length=NAME_MAX_LENGTH, json_schema_extra={"example": "Jane Doe"})
    email: EmailStr = Field(json_schema_extra={"example": "jane.doe@example.com"})
    password: str = Field(json_schema_extra={"example": "Str0ngP@ssword!"})
    role: UserRole = Field(json_schema_extra={"example": "author"})

    @field_validator("name", mode="before")
    @classmethod
    def _collapse_name(cls, value):
        if isinstance(value, str):
            return _WHITESPACE_RE.sub(" ", value.strip())
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("newsdesk.name_required", "name is required.")
        if not NAME_PATTERN.match(value):
            raise PydanticCustomError(
                "newsdesk.name_pattern", "name must contain only alphabets and single spaces."
            )
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        violations = password_violations(value)
        if violations:
            raise PydanticCustomError(
                "newsdesk.password_policy",
                "password does not meet the password policy.",
                {"violations": violations},
            )
        return value

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        value = _normalize_choice(value)
        if isinstance(value, str) and value not in {r.value for r in UserRole}:
            raise PydanticCustomError("newsdesk.role", "role must be either 'author' or 'reader'.")
        return value


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return normalize_email(value)


class UserResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# --- Article ---

def _check_status(value):
    value = _normalize_choice(value)
    if isinstance(value, str) and value not in {s.value for s in ArticleStatus}:
        raise PydanticCustomError(
            "newsdesk.status", "status must be either 'draft' or 'published'."
        )
    return value


class ArticleCreate(RequestModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)
    category: str = Field(min_length=1, max_length=CATEGORY_MAX_LENGTH)
    status: ArticleStatus | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return _check_status(value)


class ArticleUpdate(RequestModel):
    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str | None = Field(None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    category: str | None = Field(None, min_length=1, max_length=CATEGORY_MAX_LENGTH)
    status: ArticleStatus | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return _check_status(value)


class AuthorSummary(BaseModel):
    id: uuid.UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class ArticleResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    category: str
    status: ArticleStatus
    author_id: uuid.UUID
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class FeedArticleResponse(ArticleResponse):
    author: AuthorSummary | None = None


# --- Pagination ---

class FeedFilters(BaseModel):
    category: str | None = None
    author: str | None = None
    q: str | None = None


class PaginationMeta(BaseModel):
    page: int
    size: int
    total: int
    total_pages: int


class ArticleFeed(BaseModel):
    items: list[FeedArticleResponse]
    pagination: PaginationMeta
