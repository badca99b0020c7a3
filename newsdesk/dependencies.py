from typing import Annotated

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from newsdesk.config import settings
from newsdesk.errors import ForbiddenError, UnauthorizedError
from newsdesk.schemas import AUTHOR_FILTER_MAX_LENGTH, CATEGORY_MAX_LENGTH, SEARCH_MAX_LENGTH, FeedFilters
from newsdesk.security import Principal
from newsdesk.services import auth_service

MISSING_TOKEN_MESSAGE = "Authentication required."

bearer_scheme = HTTPBearer(auto_error=False)


class FeedQueryParams:
    """
    Reusable FastAPI dependency that parses and validates the public-feed
    query string.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(query: FeedQueryParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    size:
        Number of items per page (1-100), clamped to
        ``settings.MAX_PAGE_SIZE``.
    filters:
        ``FeedFilters`` built from ``category`` (exact), ``author``
        (partial, case-insensitive) and ``q`` (title search).  Blank
        values are treated as absent.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        category: str | None = Query(
            None, max_length=CATEGORY_MAX_LENGTH, description="Exact category filter."
        ),
        author: str | None = Query(
            None,
            max_length=AUTHOR_FILTER_MAX_LENGTH,
            description="Partial, case-insensitive author name filter.",
        ),
        q: str | None = Query(
            None, max_length=SEARCH_MAX_LENGTH, description="Keyword search in article title."
        ),
    ) -> None:
        self.page = page
        self.size = min(size, settings.MAX_PAGE_SIZE)
        self.filters = FeedFilters(
            category=category.strip() if category and category.strip() else None,
            author=author.strip() if author and author.strip() else None,
            q=q.strip() if q and q.strip() else None,
        )


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Resolve the caller from the ``Authorization: Bearer`` header."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(MISSING_TOKEN_MESSAGE)
    return auth_service.decode_access_token(credentials.credentials)


async def require_author(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Allow only principals holding the author role."""
    if not principal.is_author:
        raise ForbiddenError("Forbidden")
    return principal


CurrentAuthor = Annotated[Principal, Depends(require_author)]
