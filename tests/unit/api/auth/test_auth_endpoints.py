"""
Tests for registration and token login.
"""
import pytest

pytestmark = pytest.mark.asyncio

PASSWORD = "Sup3rSecret"


async def register(client, email="new@example.com", password=PASSWORD):
    return await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "full_name": "New User"},
    )


async def login(client, email="new@example.com", password=PASSWORD):
    return await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
    )


async def test_register_login_and_me(async_client):
    response = await register(async_client)
    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "new@example.com"
    assert user["id"].startswith("user-")
    assert "hashed_password" not in user

    response = await login(async_client)
    assert response.status_code == 200
    token = response.json()
    assert token["token_type"] == "bearer"

    response = await async_client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {token['access_token']}"},
    )
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]


async def test_register_duplicate_email_conflicts(async_client):
    await register(async_client)

    response = await register(async_client)

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


async def test_register_rejects_weak_password(async_client):
    response = await register(async_client, password="short")

    assert response.status_code == 422


async def test_login_with_wrong_password(async_client):
    await register(async_client)

    response = await login(async_client, password="Wr0ngPassword")

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_invalid_token_is_rejected(async_client):
    response = await async_client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Could not validate credentials"
