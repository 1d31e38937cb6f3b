"""Integration tests for POST /api/contactus."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from napft.db.models import ContactSubmission


@pytest.mark.asyncio
async def test_submission_is_stored_and_forwarded(client: AsyncClient, email_provider, db_session) -> None:
    response = await client.post(
        "/api/contactus",
        json={"name": "Ada", "email": "ada@example.com", "message": "Love the site"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "ada@example.com"

    stored = (await db_session.execute(select(ContactSubmission))).scalars().all()
    assert [s.name for s in stored] == ["Ada"]

    assert [m["to"] for m in email_provider.sent] == ["support@napft.com", "ada@example.com"]
    assert email_provider.sent[0]["reply_to"] == "ada@example.com"


@pytest.mark.asyncio
async def test_email_failure_does_not_fail_request(client: AsyncClient, email_provider) -> None:
    email_provider.fail = True
    response = await client.post(
        "/api/contactus",
        json={"name": "Ada", "email": "ada@example.com", "message": "Hello"},
    )
    assert response.status_code == 201
    assert email_provider.sent == []


@pytest.mark.asyncio
async def test_invalid_email(client: AsyncClient) -> None:
    response = await client.post("/api/contactus", json={"name": "Ada", "email": "nope", "message": "Hi"})
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
