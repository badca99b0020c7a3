"""
Article repository: persistence for the Article aggregate.

Design notes
------------
- Soft delete is a ``deleted_at`` timestamp.  Every read builds its
  WHERE clause through ``visibility_filters`` so the "exclude deleted
  rows" rule cannot drift between queries; ``include_deleted=True`` is
  the only way to see tombstoned rows.
- The public feed predicate (published + not deleted + optional
  category / author / title filters) lives in ``published_feed_filters``
  and is shared by the COUNT and the page SELECT so the two always agree.
- The author-name filter uses ``Article.author.has(...)`` (an EXISTS
  subquery) rather than a JOIN, so the COUNT needs no DISTINCT.
"""
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from newsdesk.models import Article, ArticleStatus, User
from newsdesk.schemas import FeedFilters

# Fields an owner may change; author_id is deliberately absent.
UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "content", "category", "status"})


# ---------------------------------------------------------------------------
# Filter builders
# ---------------------------------------------------------------------------

def not_deleted() -> ColumnElement[bool]:
    return Article.deleted_at.is_(None)


def visibility_filters(include_deleted: bool = False) -> list[ColumnElement[bool]]:
    """Return the soft-delete condition, or nothing when deleted rows are wanted."""
    return [] if include_deleted else [not_deleted()]


def published_feed_filters(filters: FeedFilters | None = None) -> list[ColumnElement[bool]]:
    """
    Build the WHERE conditions of the public feed.

    - ``category``: exact match.
    - ``author``: partial, case-insensitive match on the author's name.
    - ``q``: partial, case-insensitive match on the title.

    LIKE wildcards in user input are escaped, so ``%`` and ``_`` match
    literally.
    """
    conditions = [Article.status == ArticleStatus.PUBLISHED, *visibility_filters()]
    if filters is None:
        return conditions
    if filters.category:
        conditions.append(Article.category == filters.category)
    if filters.author:
        conditions.append(Article.author.has(User.name.icontains(filters.author, autoescape=True)))
    if filters.q:
        conditions.append(Article.title.icontains(filters.q, autoescape=True))
    return conditions


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create(
    db: AsyncSession,
    *,
    author_id: uuid.UUID,
    title: str,
    content: str,
    category: str,
    status: ArticleStatus | None = None,
) -> Article:
    article = Article(
        title=title,
        content=content,
        category=category,
        status=status or ArticleStatus.DRAFT,
        author_id=author_id,
    )
    db.add(article)
    await db.flush()
    return article


async def update(db: AsyncSession, article: Article, fields: dict[str, Any]) -> Article:
    """Apply *fields* to *article*; keys outside ``UPDATABLE_FIELDS`` are ignored."""
    for field, value in fields.items():
        if field in UPDATABLE_FIELDS:
            setattr(article, field, value)
    await db.flush()
    return article


async def soft_delete(db: AsyncSession, article: Article) -> Article:
    article.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    return article


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def find_by_id(
    db: AsyncSession,
    article_id: uuid.UUID,
    *,
    author_id: uuid.UUID | None = None,
    include_deleted: bool = False,
) -> Article | None:
    conditions = [Article.id == article_id, *visibility_filters(include_deleted)]
    if author_id is not None:
        conditions.append(Article.author_id == author_id)
    result = await db.execute(select(Article).where(*conditions))
    return result.scalar_one_or_none()


async def find_by_author(
    db: AsyncSession, author_id: uuid.UUID, *, include_deleted: bool = False
) -> list[Article]:
    """Return the author's articles, newest first."""
    q = (
        select(Article)
        .where(Article.author_id == author_id, *visibility_filters(include_deleted))
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def exists_by_id_and_author(
    db: AsyncSession, article_id: uuid.UUID, author_id: uuid.UUID
) -> bool:
    q = select(Article.id).where(
        Article.id == article_id, Article.author_id == author_id, not_deleted()
    )
    return (await db.execute(q)).first() is not None


async def count_by_author(db: AsyncSession, author_id: uuid.UUID) -> int:
    q = (
        select(func.count())
        .select_from(Article)
        .where(Article.author_id == author_id, not_deleted())
    )
    return (await db.execute(q)).scalar_one()


async def count_published(db: AsyncSession, filters: FeedFilters | None = None) -> int:
    q = select(func.count()).select_from(Article).where(*published_feed_filters(filters))
    return (await db.execute(q)).scalar_one()


async def search_published(
    db: AsyncSession,
    filters: FeedFilters | None = None,
    page: int = 1,
    size: int = 10,
) -> list[Article]:
    """Return one page of the public feed, newest first, with authors loaded."""
    q = (
        select(Article)
        .where(*published_feed_filters(filters))
        .options(joinedload(Article.author))
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset((page - 1) * size)
        .limit(size)
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all())
