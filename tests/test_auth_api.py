from tests.conftest import register


async def test_register_login_and_me(client, make_user):
    user, headers = await make_user()

    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert "hashed_password" not in user

    response = await client.get("/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["uuid"] == user["uuid"]


async def test_duplicate_email_is_a_conflict(client):
    await register(client)
    response = await client.post(
        "/auth/register",
        json={"name": "Other", "email": "alice@example.com", "password": "another1"},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "User with this email already exists"


async def test_wrong_password_is_rejected(client):
    await register(client)
    response = await client.post("/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


async def test_register_validates_input(client):
    response = await client.post("/auth/register", json={"name": "A", "email": "bad", "password": "x"})
    assert response.status_code == 422


async def test_me_requires_a_valid_token(client):
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"

    response = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"
