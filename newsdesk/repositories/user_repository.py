import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.models import User, UserRole


async def create(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password_hash: str,
    role: UserRole,
) -> User:
    """
    Insert a new user and flush so the primary key is assigned.

    Email uniqueness is enforced by the unique constraint; a duplicate
    surfaces here as ``sqlalchemy.exc.IntegrityError``.
    """
    user = User(name=name, email=email, password=password_hash, role=role)
    db.add(user)
    await db.flush()
    return user


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def exists(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.first() is not None
