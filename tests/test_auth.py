"""
Identity & sessions

Tests:
  1. Registration creates a hashed user and signs it in
  2. Conflicts name the clashing field
  3. Login by username, email or student ID
  4. Logout and session replacement on re-login
  5. Sliding session expiry
  6. Login rate limiting (429 after the configured attempts)
"""
import pytest
from sqlalchemy import select

from branchlearn.core.sessions import SESSION_PREFIX
from branchlearn.models.user import User
from tests.conftest import PASSWORD, register


# ─── Registration ──────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_register_signs_in(client, container):
    r = await client.post(
        "/api/register",
        json={"username": "asha", "email": "Asha@Example.edu", "password": PASSWORD, "name": "Asha"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["username"] == "asha"
    assert body["email"] == "asha@example.edu"
    assert body["role"] == "student"
    assert body["enrolledBranches"] == []
    assert body.get("studentId") is None

    set_cookie = r.headers["set-cookie"]
    assert set_cookie.startswith("sid=")
    assert "httponly" in set_cookie.lower()

    me = await client.get("/api/user")
    assert me.status_code == 200
    assert me.json()["id"] == body["id"]

    async with container.database.session() as db:
        user = (await db.execute(select(User).where(User.username == "asha"))).scalar_one()
    assert user.password_hash != PASSWORD
    assert user.password_hash.startswith("$pbkdf2-sha256$")


@pytest.mark.asyncio
async def test_register_teacher_role(client):
    body = await register(client, "mr_rao", role="teacher")
    assert body["role"] == "teacher"


@pytest.mark.asyncio
async def test_register_duplicate_username(client_factory):
    await register(client_factory(), "ravi")
    r = await client_factory().post(
        "/api/register",
        json={"username": "ravi", "email": "other@example.edu", "password": PASSWORD},
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Username already exists"


@pytest.mark.asyncio
async def test_register_duplicate_email_is_case_insensitive(client_factory):
    await register(client_factory(), "ravi", email="ravi@example.edu")
    r = await client_factory().post(
        "/api/register",
        json={"username": "ravi2", "email": "RAVI@example.edu", "password": PASSWORD},
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Email already exists"


@pytest.mark.asyncio
async def test_username_clash_wins_over_email_clash(client_factory):
    # Both fields collide, each with a different existing user.
    await register(client_factory(), "alpha", email="alpha@example.edu")
    await register(client_factory(), "beta", email="beta@example.edu")
    for _ in range(3):
        r = await client_factory().post(
            "/api/register",
            json={"username": "alpha", "email": "beta@example.edu", "password": PASSWORD},
        )
        assert r.status_code == 409
        assert r.json()["message"] == "Username already exists", f"Unexpected conflict: {r.text}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"username": "STU0123456789", "email": "a@example.edu", "password": PASSWORD},
        {"username": "a@b", "email": "a@example.edu", "password": PASSWORD},
        {"username": "admin_user", "email": "a@example.edu", "password": PASSWORD, "role": "admin"},
        {"username": "shorty", "email": "not-an-email", "password": PASSWORD},
        {"username": "shorty", "email": "a@example.edu", "password": "123"},
        {"email": "a@example.edu", "password": PASSWORD},
    ],
)
async def test_register_rejects_invalid_input(client, payload):
    r = await client.post("/api/register", json=payload)
    assert r.status_code == 400, f"Expected 400, got {r.status_code}: {r.text}"
    assert "message" in r.json()
    assert client.cookies.get("sid") is None


# ─── Login ─────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_by_username_and_email(client_factory):
    created = await register(client_factory(), "meera", email="meera@example.edu")

    for identifier in ("meera", "meera@example.edu", "MEERA@example.edu"):
        c = client_factory()
        r = await c.post("/api/login", json={"username": identifier, "password": PASSWORD})
        assert r.status_code == 200, f"{identifier}: {r.text}"
        assert r.json()["id"] == created["id"]
        assert (await c.get("/api/user")).status_code == 200


@pytest.mark.asyncio
async def test_login_by_student_id(client_factory, container):
    created = await register(client_factory(), "kiran")
    async with container.database.session() as db:
        user = await db.get(User, created["id"])
        user.student_id = "STU00AA11BB22"
        await db.commit()

    c = client_factory()
    r = await c.post("/api/login", json={"username": "STU00AA11BB22", "password": PASSWORD})
    assert r.status_code == 200, r.text
    assert r.json()["studentId"] == "STU00AA11BB22"


@pytest.mark.asyncio
async def test_login_wrong_password(client_factory):
    await register(client_factory(), "lata")
    c = client_factory()
    r = await c.post("/api/login", json={"username": "lata", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"
    assert c.cookies.get("sid") is None


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    r = await client.post("/api/login", json={"username": "nobody", "password": PASSWORD})
    assert r.status_code == 401


# ─── Sessions ──────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_logout_ends_session(client, redis_client):
    await register(client, "neha")
    token = client.cookies.get("sid")
    assert await redis_client.exists(f"{SESSION_PREFIX}{token}")

    r = await client.post("/api/logout")
    assert r.status_code == 200
    assert not await redis_client.exists(f"{SESSION_PREFIX}{token}")

    client.cookies.set("sid", token)
    assert (await client.get("/api/user")).status_code == 401


@pytest.mark.asyncio
async def test_relogin_replaces_previous_session(client, redis_client):
    await register(client, "omkar")
    first = client.cookies.get("sid")

    r = await client.post("/api/login", json={"username": "omkar", "password": PASSWORD})
    assert r.status_code == 200
    second = client.cookies.get("sid")
    assert second and second != first
    assert not await redis_client.exists(f"{SESSION_PREFIX}{first}")
    assert await redis_client.exists(f"{SESSION_PREFIX}{second}")


@pytest.mark.asyncio
async def test_session_expiry_slides_on_use(client, redis_client, settings):
    await register(client, "pooja")
    key = f"{SESSION_PREFIX}{client.cookies.get('sid')}"
    await redis_client.expire(key, 30)

    assert (await client.get("/api/user")).status_code == 200
    ttl = await redis_client.ttl(key)
    assert ttl > 30
    assert ttl <= settings.SESSION_TTL_SECONDS


@pytest.mark.asyncio
async def test_unknown_session_token_is_unauthorized(client):
    client.cookies.set("sid", "forged-token")
    r = await client.get("/api/user")
    assert r.status_code == 401
    assert r.json()["message"] == "Unauthorized"


# ─── Rate Limiting ─────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_rate_limited_after_max_attempts(client, settings):
    for _ in range(settings.RATE_LIMIT_MAX_ATTEMPTS):
        r = await client.post("/api/login", json={"username": "target", "password": "badpass1"})
        assert r.status_code == 401

    r = await client.post("/api/login", json={"username": "target", "password": "badpass1"})
    assert r.status_code == 429, f"Expected 429, got {r.status_code}: {r.text}"
    assert r.headers["retry-after"] == str(settings.RATE_LIMIT_WINDOW_SECONDS)

    # Other identifiers keep their own window.
    r = await client.post("/api/login", json={"username": "someone_else", "password": "badpass1"})
    assert r.status_code == 401
