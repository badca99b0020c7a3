"""Database seeder for local development and demos.

Every seeded account uses the password ``SEED_PASSWORD`` so you can log
in straight away, e.g. as ``author_000@example.com``.
"""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from newsdesk.database import Base, async_session, engine
from newsdesk.models import Article, ArticleStatus, User, UserRole
from newsdesk.security import hash_password

SEED_PASSWORD = "Seed@Pass123"

CATEGORIES = ["Technology", "Politics", "Business", "Science", "Sports", "Culture", "Health"]
FIRST_NAMES = ["John", "Joanna", "Maria", "Ahmed", "Chen", "Olga", "Kwame", "Lucia", "Ravi", "Sara"]
LAST_NAMES = ["Smith", "Okafor", "Garcia", "Nakamura", "Novak", "Haddad", "Silva", "Kim"]
HEADLINE_TOPICS = ["markets", "elections", "climate", "startups", "vaccines", "football", "museums"]


def _name(i: int) -> str:
    return f"{FIRST_NAMES[i % len(FIRST_NAMES)]} {LAST_NAMES[i % len(LAST_NAMES)]}"


async def seed(small: bool = False):
    num_authors = 5 if small else 25
    num_readers = 5 if small else 50
    num_articles = 50 if small else 2000

    print(f"Seeding: {num_authors} authors, {num_readers} readers, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # One hash for everyone; bcrypt is the slow part of seeding.
    password_hash = await hash_password(SEED_PASSWORD)

    async with async_session() as session:
        authors = []
        for i in range(num_authors):
            author = User(
                name=_name(i),
                email=f"author_{i:03d}@example.com",
                password=password_hash,
                role=UserRole.AUTHOR,
            )
            session.add(author)
            authors.append(author)
        for i in range(num_readers):
            session.add(
                User(
                    name=_name(i + num_authors),
                    email=f"reader_{i:03d}@example.com",
                    password=password_hash,
                    role=UserRole.READER,
                )
            )
        await session.flush()
        print(f"  Created {num_authors + num_readers} users")

        counts = {"published": 0, "draft": 0, "deleted": 0}
        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                created = datetime.now(timezone.utc) - timedelta(
                    days=random.randint(0, 365), minutes=random.randint(0, 1440)
                )
                status = ArticleStatus.PUBLISHED if random.random() > 0.2 else ArticleStatus.DRAFT
                deleted_at = created + timedelta(days=1) if random.random() < 0.05 else None
                session.add(
                    Article(
                        title=f"Article {i}: what the latest {random.choice(HEADLINE_TOPICS)} news means",
                        content=f"This is the full content of article {i}. " * 20,
                        category=random.choice(CATEGORIES),
                        status=status,
                        created_at=created,
                        deleted_at=deleted_at,
                        author_id=random.choice(authors).id,
                    )
                )
                if deleted_at is not None:
                    counts["deleted"] += 1
                else:
                    counts[status.value] += 1
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Published: {counts['published']}")
    print(f"  Drafts: {counts['draft']}")
    print(f"  Soft-deleted: {counts['deleted']}")
    print(f"  Password for every account: {SEED_PASSWORD}")


def main():
    parser = argparse.ArgumentParser(description="Seed the newsdesk database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (50 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
