"""
Article service: ownership-gated CRUD and the public feed.

Design notes
------------
- Every owner-scoped operation goes through ``_get_owned_article``: the
  existence check runs first and only then the ownership check, so a
  missing article is always 404 and never reveals whether someone else
  owns an id.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
- ``find_published`` runs its COUNT and page SELECT concurrently.  An
  ``AsyncSession`` cannot execute two statements at once, so each query
  gets its own short-lived read session from the session factory.
- Feed pages are cached in Redis (cache-aside).  Writes move the feed
  cache to a new generation only after their transaction commits.
"""
import asyncio
import logging
import math
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsdesk.cache import cache
from newsdesk.config import settings
from newsdesk.database import after_commit
from newsdesk.errors import ForbiddenError, InternalError, NotFoundError
from newsdesk.models import Article
from newsdesk.repositories import article_repository
from newsdesk.schemas import (
    ArticleCreate,
    ArticleFeed,
    ArticleResponse,
    ArticleUpdate,
    FeedArticleResponse,
    FeedFilters,
    PaginationMeta,
)

logger = logging.getLogger(__name__)

ARTICLE_NOT_FOUND_MESSAGE = "Article not found."
FORBIDDEN_MESSAGE = "Forbidden"
ARTICLE_CREATE_ERROR_MESSAGE = "Unable to create article at the moment. Please try again later."
ARTICLE_UPDATE_ERROR_MESSAGE = "Unable to update article at the moment. Please try again later."
ARTICLE_DELETE_ERROR_MESSAGE = "Unable to delete article at the moment. Please try again later."

ARTICLE_CREATE_SUCCESS_MESSAGE = "Article created successfully."
ARTICLE_UPDATE_SUCCESS_MESSAGE = "Article updated successfully."
ARTICLE_DELETE_SUCCESS_MESSAGE = "Article deleted successfully."
ARTICLES_RETRIEVED_MESSAGE = "Articles retrieved successfully."
ARTICLE_RETRIEVED_MESSAGE = "Article retrieved successfully."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_owned_article(
    db: AsyncSession,
    article_id: uuid.UUID,
    requesting_author_id: uuid.UUID,
    include_deleted: bool = False,
) -> Article:
    article = await article_repository.find_by_id(db, article_id, include_deleted=include_deleted)
    if article is None:
        raise NotFoundError(ARTICLE_NOT_FOUND_MESSAGE)
    if article.author_id != requesting_author_id:
        raise ForbiddenError(FORBIDDEN_MESSAGE)
    return article


def total_pages(total: int, size: int) -> int:
    return math.ceil(total / size) if total > 0 else 0


# ---------------------------------------------------------------------------
# Owner-scoped operations
# ---------------------------------------------------------------------------

async def create(db: AsyncSession, author_id: uuid.UUID, data: ArticleCreate) -> ArticleResponse:
    """Create an article owned by *author_id*; status defaults to draft."""
    try:
        article = await article_repository.create(
            db,
            author_id=author_id,
            title=data.title,
            content=data.content,
            category=data.category,
            status=data.status,
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to create article for author %s", author_id)
        raise InternalError(ARTICLE_CREATE_ERROR_MESSAGE) from exc

    after_commit(db, cache.invalidate_feed)
    return ArticleResponse.model_validate(article)


async def find_all_by_author(db: AsyncSession, author_id: uuid.UUID) -> list[ArticleResponse]:
    articles = await article_repository.find_by_author(db, author_id)
    return [ArticleResponse.model_validate(a) for a in articles]


async def find_one(
    db: AsyncSession,
    article_id: uuid.UUID,
    requesting_author_id: uuid.UUID,
    include_deleted: bool = False,
) -> ArticleResponse:
    article = await _get_owned_article(db, article_id, requesting_author_id, include_deleted)
    return ArticleResponse.model_validate(article)


async def update(
    db: AsyncSession,
    article_id: uuid.UUID,
    requesting_author_id: uuid.UUID,
    data: ArticleUpdate,
) -> ArticleResponse:
    """
    Apply only the fields present in *data*.

    An explicit ``null`` is treated the same as an omitted field.
    """
    article = await _get_owned_article(db, article_id, requesting_author_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)

    try:
        article = await article_repository.update(db, article, fields)
    except SQLAlchemyError as exc:
        logger.exception("Failed to update article %s", article_id)
        raise InternalError(ARTICLE_UPDATE_ERROR_MESSAGE) from exc

    after_commit(db, cache.invalidate_feed)
    return ArticleResponse.model_validate(article)


async def remove(db: AsyncSession, article_id: uuid.UUID, requesting_author_id: uuid.UUID) -> None:
    """Soft-delete the article; the row stays with ``deleted_at`` set."""
    article = await _get_owned_article(db, article_id, requesting_author_id)

    try:
        await article_repository.soft_delete(db, article)
    except SQLAlchemyError as exc:
        logger.exception("Failed to soft-delete article %s", article_id)
        raise InternalError(ARTICLE_DELETE_ERROR_MESSAGE) from exc

    after_commit(db, cache.invalidate_feed)


# ---------------------------------------------------------------------------
# Public feed
# ---------------------------------------------------------------------------

async def find_published(
    session_factory: async_sessionmaker[AsyncSession],
    filters: FeedFilters | None = None,
    page: int = 1,
    size: int | None = None,
) -> ArticleFeed:
    """
    Return one page of published, non-deleted articles plus pagination
    metadata, using Redis as a cache layer.
    """
    filters = filters or FeedFilters()
    size = size or settings.DEFAULT_PAGE_SIZE

    cache_key = await cache.feed_key(page, size, filters.category, filters.author, filters.q)
    cached = await cache.get_json(cache_key)
    if cached:
        return ArticleFeed(**cached)

    async def _count() -> int:
        async with session_factory() as session:
            return await article_repository.count_published(session, filters)

    async def _page() -> list[FeedArticleResponse]:
        async with session_factory() as session:
            articles = await article_repository.search_published(session, filters, page, size)
            return [FeedArticleResponse.model_validate(a) for a in articles]

    total, items = await asyncio.gather(_count(), _page())

    feed = ArticleFeed(
        items=items,
        pagination=PaginationMeta(
            page=page,
            size=size,
            total=total,
            total_pages=total_pages(total, size),
        ),
    )
    await cache.set_json(cache_key, feed.model_dump(mode="json"), ttl=settings.CACHE_TTL_FEED)
    return feed
