import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsdesk.database import get_db, get_session_factory
from newsdesk.dependencies import CurrentAuthor, FeedQueryParams
from newsdesk.schemas import ApiResponse, ArticleCreate, ArticleFeed, ArticleResponse, ArticleUpdate
from newsdesk.services import article_service

router = APIRouter(prefix="/articles", tags=["articles"])


@router.get("", response_model=ApiResponse[ArticleFeed])
async def list_published_articles(
    query: FeedQueryParams = Depends(),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    feed = await article_service.find_published(session_factory, query.filters, query.page, query.size)
    return ApiResponse(message=article_service.ARTICLES_RETRIEVED_MESSAGE, data=feed)


@router.post("", status_code=201, response_model=ApiResponse[ArticleResponse])
async def create_article(
    data: ArticleCreate,
    principal: CurrentAuthor,
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create(db, principal.user_id, data)
    return ApiResponse(message=article_service.ARTICLE_CREATE_SUCCESS_MESSAGE, data=article)


@router.get("/me", response_model=ApiResponse[list[ArticleResponse]])
async def list_my_articles(principal: CurrentAuthor, db: AsyncSession = Depends(get_db)):
    articles = await article_service.find_all_by_author(db, principal.user_id)
    return ApiResponse(message=article_service.ARTICLES_RETRIEVED_MESSAGE, data=articles)


@router.get("/{article_id}", response_model=ApiResponse[ArticleResponse])
async def get_article(
    article_id: uuid.UUID,
    principal: CurrentAuthor,
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.find_one(db, article_id, principal.user_id)
    return ApiResponse(message=article_service.ARTICLE_RETRIEVED_MESSAGE, data=article)


@router.put("/{article_id}", response_model=ApiResponse[ArticleResponse])
async def update_article(
    article_id: uuid.UUID,
    data: ArticleUpdate,
    principal: CurrentAuthor,
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update(db, article_id, principal.user_id, data)
    return ApiResponse(message=article_service.ARTICLE_UPDATE_SUCCESS_MESSAGE, data=article)


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: uuid.UUID,
    principal: CurrentAuthor,
    db: AsyncSession = Depends(get_db),
):
    await article_service.remove(db, article_id, principal.user_id)
    return Response(status_code=204)
