"""
Auth service: signup, login and access-token verification.

Login failures are deliberately indistinguishable: an unknown email and a
wrong password both produce ``INVALID_CREDENTIALS_MESSAGE``, so the
endpoint cannot be used to discover which addresses have accounts.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk import security
from newsdesk.config import settings
from newsdesk.errors import ConflictError, InternalError, UnauthorizedError, is_unique_violation
from newsdesk.repositories import user_repository
from newsdesk.schemas import LoginRequest, SignupRequest, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

EMAIL_ALREADY_EXISTS_MESSAGE = "Email already exists."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
INVALID_TOKEN_MESSAGE = "Invalid or expired token."
SIGNUP_GENERIC_MESSAGE = "Unable to create account at the moment. Please try again later."
LOGIN_GENERIC_MESSAGE = "Unable to log in at the moment. Please try again later."

SIGNUP_SUCCESS_MESSAGE = "User registered successfully."
LOGIN_SUCCESS_MESSAGE = "Login successful."


async def signup(db: AsyncSession, data: SignupRequest) -> UserResponse:
    """
    Register a new account and return its public fields.

    The existence pre-check gives the common case a clean 409 before any
    bcrypt work is spent.  Two concurrent signups for the same address can
    both pass it; the loser then trips the unique constraint on flush,
    which is mapped to the same conflict.
    """
    if await user_repository.exists(db, data.email):
        raise ConflictError(EMAIL_ALREADY_EXISTS_MESSAGE)

    password_hash = await security.hash_password(data.password)

    try:
        user = await user_repository.create(
            db,
            name=data.name,
            email=data.email,
            password_hash=password_hash,
            role=data.role,
        )
    except SQLAlchemyError as exc:
        if is_unique_violation(exc):
            logger.info("Signup lost a race on a duplicate email")
            raise ConflictError(EMAIL_ALREADY_EXISTS_MESSAGE) from exc
        logger.exception("Signup failed due to an unexpected persistence error")
        raise InternalError(SIGNUP_GENERIC_MESSAGE) from exc

    logger.info("User registered: id=%s role=%s", user.id, user.role.value)
    return UserResponse.model_validate(user)


async def login(db: AsyncSession, data: LoginRequest) -> TokenResponse:
    """Verify credentials and issue a signed, time-limited access token."""
    user = await user_repository.find_by_email(db, data.email)
    if user is None or not await security.verify_password(data.password, user.password):
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    try:
        access_token = security.create_access_token(user.id, user.role)
    except Exception as exc:
        logger.exception("Login failed during token generation")
        raise InternalError(LOGIN_GENERIC_MESSAGE) from exc

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def decode_access_token(token: str) -> security.Principal:
    """Return the principal carried by *token*, or raise ``UnauthorizedError``."""
    try:
        return security.decode_access_token(token)
    except security.InvalidTokenError as exc:
        logger.debug("Rejected access token: %s", exc)
        raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from exc
