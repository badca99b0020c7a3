"""
Endpoint tests for the author-scoped article routes.

Every route here requires a bearer token for an author; ownership is
checked after existence, so a missing article is 404 even for a caller
who could never own it.
"""
import uuid

import pytest
from httpx import AsyncClient

API = "/api/v1"


async def _create_article(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "title": "Budget Vote Delayed",
        "content": "Lawmakers postponed the vote until next week.",
        "category": "Politics",
    }
    payload.update(overrides)
    resp = await client.post(f"{API}/articles", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Authentication and role checks
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_requires_token(async_client: AsyncClient):
    """Requests without a bearer token are rejected with 401."""
    resp = await async_client.post(f"{API}/articles", json={
        "title": "T", "content": "C", "category": "Tech",
    })
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Authentication required."


@pytest.mark.asyncio
async def test_invalid_token_returns_401(async_client: AsyncClient):
    """A token that does not verify is rejected with 401."""
    resp = await async_client.get(
        f"{API}/articles/me", headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token."


@pytest.mark.asyncio
async def test_reader_cannot_manage_articles(async_client: AsyncClient, register):
    """A reader's valid token is 403 on every article-management route."""
    _, headers = await register("reader@example.com", name="Rita Reader", role="reader")

    resp = await async_client.post(f"{API}/articles", json={
        "title": "T", "content": "C", "category": "Tech",
    }, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Forbidden"

    resp = await async_client.get(f"{API}/articles/me", headers=headers)
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_defaults_to_draft(async_client: AsyncClient, register):
    """A new article without a status is a draft owned by the caller."""
    author, headers = await register("author@example.com")
    resp = await async_client.post(f"{API}/articles", json={
        "title": "Budget Vote Delayed",
        "content": "Lawmakers postponed the vote.",
        "category": "Politics",
    }, headers=headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Article created successfully."
    data = body["data"]
    assert data["status"] == "draft"
    assert data["author_id"] == author["id"]
    assert data["deleted_at"] is None
    assert data["created_at"] is not None


@pytest.mark.asyncio
async def test_create_article_status_is_case_insensitive(async_client: AsyncClient, register):
    """Status input is trimmed and case-folded."""
    _, headers = await register("author@example.com")
    data = await _create_article(async_client, headers, status=" Published ")
    assert data["status"] == "published"


@pytest.mark.asyncio
async def test_create_article_validation(async_client: AsyncClient, register):
    """Empty fields, overlong titles and unknown statuses are all reported."""
    _, headers = await register("author@example.com")
    resp = await async_client.post(f"{API}/articles", json={
        "title": "x" * 151,
        "content": "",
        "category": "Tech",
        "status": "archived",
    }, headers=headers)

    assert resp.status_code == 400
    errors = resp.json()["errors"]
    assert any(e.startswith("title: ") for e in errors)
    assert any(e.startswith("content: ") for e in errors)
    assert "status must be either 'draft' or 'published'." in errors


@pytest.mark.asyncio
async def test_create_article_rejects_author_id(async_client: AsyncClient, register):
    """The owner comes from the token; author_id in the body is refused."""
    _, headers = await register("author@example.com")
    resp = await async_client.post(f"{API}/articles", json={
        "title": "T", "content": "C", "category": "Tech", "author_id": str(uuid.uuid4()),
    }, headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_own_article(async_client: AsyncClient, register):
    """The owner can fetch their article by id."""
    _, headers = await register("author@example.com")
    created = await _create_article(async_client, headers)

    resp = await async_client.get(f"{API}/articles/{created['id']}", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Article retrieved successfully."
    assert body["data"]["id"] == created["id"]
    assert body["data"]["title"] == "Budget Vote Delayed"


@pytest.mark.asyncio
async def test_list_my_articles_newest_first(async_client: AsyncClient, register):
    """/articles/me lists only the caller's articles, newest first."""
    _, headers = await register("author@example.com")
    _, other_headers = await register("other@example.com", name="Other Author")

    first = await _create_article(async_client, headers, title="First")
    second = await _create_article(async_client, headers, title="Second", status="published")
    await _create_article(async_client, other_headers, title="Not mine")

    resp = await async_client.get(f"{API}/articles/me", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Articles retrieved successfully."
    assert [a["id"] for a in body["data"]] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_article_not_found(async_client: AsyncClient, register):
    """An unknown id returns 404."""
    _, headers = await register("author@example.com")
    resp = await async_client.get(f"{API}/articles/{uuid.uuid4()}", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Article not found."


@pytest.mark.asyncio
async def test_malformed_article_id_returns_400(async_client: AsyncClient, register):
    """A non-UUID path id is a validation failure."""
    _, headers = await register("author@example.com")
    resp = await async_client.get(f"{API}/articles/not-a-uuid", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_other_author_gets_403(async_client: AsyncClient, register):
    """Another author's article is 403 on fetch, update and delete."""
    _, owner_headers = await register("owner@example.com", name="Owner Author")
    _, intruder_headers = await register("intruder@example.com", name="Intruder Author")
    article = await _create_article(async_client, owner_headers)
    url = f"{API}/articles/{article['id']}"

    assert (await async_client.get(url, headers=intruder_headers)).status_code == 403
    assert (
        await async_client.put(url, json={"title": "Hijacked"}, headers=intruder_headers)
    ).status_code == 403
    assert (await async_client.delete(url, headers=intruder_headers)).status_code == 403

    # Untouched
    resp = await async_client.get(url, headers=owner_headers)
    assert resp.json()["data"]["title"] == "Budget Vote Delayed"
    assert resp.json()["data"]["deleted_at"] is None


@pytest.mark.asyncio
async def test_not_found_takes_precedence_over_forbidden(async_client: AsyncClient, register):
    """A soft-deleted article of another author is 404, not 403."""
    _, owner_headers = await register("owner@example.com", name="Owner Author")
    _, other_headers = await register("other@example.com", name="Other Author")
    article = await _create_article(async_client, owner_headers)
    url = f"{API}/articles/{article['id']}"

    assert (await async_client.delete(url, headers=owner_headers)).status_code == 204
    assert (await async_client.get(url, headers=other_headers)).status_code == 404
    assert (await async_client.put(url, json={"title": "X"}, headers=other_headers)).status_code == 404


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_applies_only_provided_fields(async_client: AsyncClient, register):
    """A partial update changes the given fields and leaves the rest alone."""
    _, headers = await register("author@example.com")
    article = await _create_article(async_client, headers)

    resp = await async_client.put(f"{API}/articles/{article['id']}", json={
        "title": "Budget Vote Passed",
        "status": "published",
    }, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Article updated successfully."
    data = body["data"]
    assert data["title"] == "Budget Vote Passed"
    assert data["status"] == "published"
    assert data["content"] == article["content"]
    assert data["category"] == article["category"]
    assert data["author_id"] == article["author_id"]
    assert data["updated_at"] is not None


@pytest.mark.asyncio
async def test_update_with_null_field_keeps_value(async_client: AsyncClient, register):
    """An explicit null is treated like an omitted field."""
    _, headers = await register("author@example.com")
    article = await _create_article(async_client, headers)

    resp = await async_client.put(
        f"{API}/articles/{article['id']}", json={"content": None}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["content"] == article["content"]


@pytest.mark.asyncio
async def test_update_validates_provided_fields(async_client: AsyncClient, register):
    """Provided fields obey the same limits as on create."""
    _, headers = await register("author@example.com")
    article = await _create_article(async_client, headers)

    resp = await async_client.put(
        f"{API}/articles/{article['id']}", json={"title": ""}, headers=headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_nonexistent_article(async_client: AsyncClient, register):
    """Updating an unknown id returns 404."""
    _, headers = await register("author@example.com")
    resp = await async_client.put(
        f"{API}/articles/{uuid.uuid4()}", json={"title": "Ghost"}, headers=headers
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_is_soft_and_hides_article(async_client: AsyncClient, register):
    """A deleted article disappears from fetch, the author's list and the feed."""
    _, headers = await register("author@example.com")
    article = await _create_article(async_client, headers, status="published")
    url = f"{API}/articles/{article['id']}"

    feed = await async_client.get(f"{API}/articles")
    assert feed.json()["data"]["pagination"]["total"] == 1

    resp = await async_client.delete(url, headers=headers)
    assert resp.status_code == 204
    assert resp.content == b""

    assert (await async_client.get(url, headers=headers)).status_code == 404
    mine = await async_client.get(f"{API}/articles/me", headers=headers)
    assert mine.json()["data"] == []
    feed = await async_client.get(f"{API}/articles")
    assert feed.json()["data"]["items"] == []
    assert feed.json()["data"]["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_delete_twice_returns_404(async_client: AsyncClient, register):
    """A soft-deleted article cannot be deleted again."""
    _, headers = await register("author@example.com")
    article = await _create_article(async_client, headers)
    url = f"{API}/articles/{article['id']}"

    assert (await async_client.delete(url, headers=headers)).status_code == 204
    assert (await async_client.delete(url, headers=headers)).status_code == 404


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_response_timing_headers(async_client: AsyncClient):
    """Every response carries X-Response-Time-Ms and X-Request-ID."""
    resp = await async_client.get(f"{API}/articles")
    assert "x-response-time-ms" in resp.headers
    assert float(resp.headers["x-response-time-ms"]) >= 0
    assert resp.headers["x-request-id"]


@pytest.mark.asyncio
async def test_request_id_is_propagated(async_client: AsyncClient):
    """A caller-supplied X-Request-ID is echoed back."""
    resp = await async_client.get(f"{API}/articles", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["x-request-id"] == "abc-123"
