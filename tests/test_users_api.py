import logging
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from sqlalchemy.exc import OperationalError

from wikift.crud import user as directory
from wikift.db.database import get_db
from wikift.main import app


async def _register(client, username):
    response = await client.post(
        "/api/users",
        json={"username": username, "password": "secret-pw", "signature": f"{username} writes"}
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


@pytest.mark.asyncio
async def test_create_user_hides_password(client):
    body = await _register(client, "alice")
    assert body["username"] == "alice"
    assert body["signature"] == "alice writes"
    assert "password" not in body

    response = await client.get(f"/api/users/{body['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_duplicate_username_is_conflict(client):
    await _register(client, "alice")
    response = await client.post("/api/users", json={"username": "alice", "password": "secret-pw"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error_code"] == "STORE_CONSTRAINT_VIOLATION"


@pytest.mark.asyncio
async def test_lookup_by_username(client):
    alice = await _register(client, "alice")

    response = await client.get("/api/users/by-username/alice")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == alice["id"]

    response = await client.get("/api/users/by-username/nobody")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error_code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_follow_flow(client):
    alice = await _register(client, "alice")
    bob = await _register(client, "bob")
    payload = {"follower_id": alice["id"], "followee_id": bob["id"]}

    response = await client.post("/api/users/follow", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["affected"] == 1

    response = await client.get(f"/api/users/{alice['id']}/follows/{bob['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == bob["id"]

    response = await client.get(f"/api/users/{bob['id']}/followers")
    assert [u["id"] for u in response.json()] == [alice["id"]]

    response = await client.get(f"/api/users/{alice['id']}/following")
    assert [u["id"] for u in response.json()] == [bob["id"]]

    response = await client.get(f"/api/users/{bob['id']}/counts")
    assert response.json() == {"user_id": bob["id"], "following": 0, "followers": 1}

    response = await client.post("/api/users/follow", json=payload)
    assert response.status_code == status.HTTP_409_CONFLICT

    response = await client.post("/api/users/unfollow", json=payload)
    assert response.json()["affected"] == 1

    response = await client.post("/api/users/unfollow", json=payload)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["affected"] == 0

    response = await client.get(f"/api/users/{alice['id']}/follows/{bob['id']}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error_code"] == "FOLLOW_RELATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_follow_rejects_self_and_unknown_users(client):
    alice = await _register(client, "alice")

    response = await client.post(
        "/api/users/follow",
        json={"follower_id": alice["id"], "followee_id": alice["id"]}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "SELF_FOLLOW_NOT_ALLOWED"

    response = await client.post(
        "/api/users/follow",
        json={"follower_id": alice["id"], "followee_id": 999}
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_leaderboard_endpoint(client, user_directory):
    alice = await _register(client, "alice")
    bob = await _register(client, "bob")
    await user_directory.record_authorship(bob["id"], 10)
    await user_directory.record_authorship(bob["id"], 11)
    await user_directory.record_authorship(alice["id"], 12)

    response = await client.get("/api/users/leaderboard")
    assert response.status_code == status.HTTP_200_OK
    assert [u["username"] for u in response.json()] == ["bob", "alice"]

    response = await client.get("/api/users/leaderboard", params={"limit": 1})
    assert [u["username"] for u in response.json()] == ["bob"]

    response = await client.get("/api/users/leaderboard", params={"limit": 0})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["message"].startswith("Invalid user directory request")


@pytest.mark.asyncio
async def test_delete_user(client):
    alice = await _register(client, "alice")

    response = await client.delete(f"/api/users/{alice['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["affected"] == 1

    response = await client.delete(f"/api/users/{alice['id']}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_store_outage_is_service_unavailable(client):
    outage = OperationalError("SELECT users.id FROM users", {}, ConnectionRefusedError("connection refused"))
    broken_db = AsyncMock()
    broken_db.exec.side_effect = outage
    broken_db.execute.side_effect = outage

    # The directory surfaces the driver error unchanged
    with pytest.raises(OperationalError) as excinfo:
        await directory.find_all_followers(broken_db, 1)
    assert excinfo.value is outage

    async def override_get_db():
        yield broken_db

    app.dependency_overrides[get_db] = override_get_db

    response = await client.get("/api/users/1/followers")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["detail"] == "The user store is unavailable"
    assert response.json()["error_code"] == "STORE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_not_found_rollback_is_not_logged_as_error(client, caplog):
    caplog.set_level(logging.DEBUG, logger="wikift.db.database")

    response = await client.get("/api/users/by-username/nobody")
    assert response.status_code == status.HTTP_404_NOT_FOUND

    transaction_records = [r for r in caplog.records if r.name == "wikift.db.database"]
    assert transaction_records
    assert all(r.levelno < logging.ERROR for r in transaction_records)
    assert all(r.exc_info is None for r in transaction_records)
