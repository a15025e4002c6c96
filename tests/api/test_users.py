from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

USERS_URL = "/api/v1/users"


async def _create_user(client: AsyncClient, email: str = "Ada@Example.com", name: str = "Ada") -> dict:
    response = await client.post(USERS_URL, json={"email": email, "name": name})
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_user_returns_success_envelope(api_client: AsyncClient) -> None:
    response = await api_client.post(USERS_URL, json={"email": "Ada@Example.com", "name": "Ada"})

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["statusCode"] == 201
    assert payload["message"] == "User created successfully"
    assert payload["correlationId"] == response.headers["X-Request-ID"]
    assert payload["data"]["email"] == "ada@example.com"
    assert uuid.UUID(payload["data"]["id"])


@pytest.mark.asyncio
async def test_duplicate_email_is_conflict(api_client: AsyncClient) -> None:
    await _create_user(api_client)

    response = await api_client.post(USERS_URL, json={"email": "ada@example.com"})

    assert response.status_code == 409
    errors = response.json()["errors"]
    assert errors["message"] == "User with this email already exists"
    assert errors["details"][0]["field"] == "email"


@pytest.mark.asyncio
async def test_invalid_email_is_validation_error(api_client: AsyncClient) -> None:
    response = await api_client.post(USERS_URL, json={"email": "not-an-email"})

    assert response.status_code == 422
    assert response.json()["errors"]["details"][0]["field"] == "email"


@pytest.mark.asyncio
async def test_list_users_paginates(api_client: AsyncClient) -> None:
    for index in range(3):
        await _create_user(api_client, email=f"user{index}@example.com", name=f"User {index}")

    response = await api_client.get(USERS_URL, params={"limit": 2, "offset": 0})

    assert response.status_code == 200
    payload = response.json()
    assert len(payload["data"]) == 2
    assert payload["pagination"] == {"limit": 2, "offset": 0, "total": 3}


@pytest.mark.asyncio
async def test_get_update_and_soft_delete_user(api_client: AsyncClient) -> None:
    user = await _create_user(api_client)
    user_url = f"{USERS_URL}/{user['id']}"

    fetched = await api_client.get(user_url)
    assert fetched.json()["data"]["name"] == "Ada"

    updated = await api_client.patch(user_url, json={"name": "Ada Lovelace"})
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Ada Lovelace"
    assert updated.json()["data"]["email"] == "ada@example.com"

    deleted = await api_client.delete(user_url)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "User deleted successfully"

    missing = await api_client.get(user_url)
    assert missing.status_code == 404
    assert missing.json()["errors"]["message"] == "User not found"

    listed = await api_client.get(USERS_URL)
    assert listed.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_email_is_reusable_after_soft_delete(api_client: AsyncClient) -> None:
    user = await _create_user(api_client)
    await api_client.delete(f"{USERS_URL}/{user['id']}")

    recreated = await api_client.post(USERS_URL, json={"email": "ada@example.com"})

    assert recreated.status_code == 201
    assert recreated.json()["data"]["id"] != user["id"]


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(api_client: AsyncClient) -> None:
    response = await api_client.get(f"{USERS_URL}/{uuid.uuid4()}")

    assert response.status_code == 404
    payload = response.json()
    assert payload["success"] is False
    assert payload["operational"] is True
    assert "stack" not in payload


@pytest.mark.asyncio
async def test_malformed_user_id_is_validation_error(api_client: AsyncClient) -> None:
    response = await api_client.get(f"{USERS_URL}/not-a-uuid")

    assert response.status_code == 422
    assert response.json()["errors"]["details"][0]["location"] == "path"
