import pytest
from jose import jwt


def register(client, name="alice", password="s3cret-pass"):
    return client.post("/auth/register", json={
        "email": f"{name}@example.com",
        "password": password,
        "first_name": name.capitalize(),
        "last_name": "Smith",
    })


def test_register_starts_a_session(client):
    response = register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["username"] == "alice@example.com"
    assert body["user"]["role"] == "user"
    assert "password" not in body["user"]
    assert "sid" in response.cookies

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"


def test_register_twice(client):
    register(client)
    response = register(client)
    assert response.status_code == 400


def test_bearer_token_without_cookie(client):
    token = register(client).json()["access_token"]
    client.cookies.clear()
    assert client.get("/auth/me").status_code == 401
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert client.get("/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


@pytest.mark.parametrize("login", ["alice@example.com", "ALICE@example.com"])
def test_login_with_username_or_email(client, login):
    register(client)
    client.cookies.clear()
    response = client.post("/auth/login", json={"username": login, "password": "s3cret-pass"})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "alice@example.com"
    assert client.get("/auth/me").status_code == 200


def test_login_with_wrong_password(client):
    register(client)
    response = client.post("/auth/login", json={"username": "alice@example.com", "password": "nope-nope"})
    assert response.status_code == 401


def test_role_login_must_match_role(client, app_storage):
    user = register(client).json()["user"]
    client.cookies.clear()
    credentials = {"username": "alice@example.com", "password": "s3cret-pass"}
    assert client.post("/auth/login", json={**credentials, "role": "admin"}).status_code == 401

    app_storage.identity.update_user(user["id"], {"role": "admin"})
    assert client.post("/auth/login", json={**credentials, "role": "admin"}).status_code == 200


def test_logout_ends_the_session(client, app_storage):
    register(client)
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert client.get("/auth/me").status_code == 401
    assert app_storage.session_store._sessions == {}


def test_update_profile_and_onboarding(client):
    register(client)
    response = client.patch("/auth/me", json={"location": "Halifax", "languages": ["en", "fr"]})
    assert response.status_code == 200
    assert response.json()["languages"] == ["en", "fr"]
    assert response.json()["has_completed_onboarding"] is False

    response = client.post("/auth/complete-onboarding")
    assert response.json()["has_completed_onboarding"] is True


def test_update_profile_email_in_use(client):
    register(client, "bob")
    client.cookies.clear()
    register(client, "alice")
    response = client.patch("/auth/me", json={"email": "bob@example.com"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already exists"


def test_member_verification_in_development(client):
    response = client.post("/auth/verify/member", json={
        "email": "jane@example.com", "first_name": "Jane", "last_name": "Doe",
    })
    assert response.status_code == 200
    code = response.json()["code"]
    assert len(code) == 7

    confirm = client.post("/auth/verify/code", json={"email": "jane@example.com", "code": code})
    assert confirm.status_code == 200
    assert confirm.json()["first_name"] == "Jane"

    again = client.post("/auth/verify/code", json={"email": "jane@example.com", "code": code})
    assert again.status_code == 400


def test_pending_verifications_are_admin_only(client, app_storage):
    user = register(client).json()["user"]
    client.post("/auth/verify/member", json={"email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"})
    assert client.get("/auth/verify/pending", params={"email": "jane@example.com"}).status_code == 403

    app_storage.identity.update_user(user["id"], {"role": "admin"})
    response = client.get("/auth/verify/pending", params={"email": "jane@example.com"})
    assert response.status_code == 200
    assert len(response.json()) == 1


def test_password_reset(client, app_storage):
    register(client)
    client.cookies.clear()
    assert client.post("/auth/request-reset", json={"email": "alice@example.com"}).status_code == 200
    code = app_storage.verification_codes.filter(lambda r: r.email == "alice@example.com")[0].code

    response = client.post("/auth/reset-password", json={
        "email": "alice@example.com", "token": code, "new_password": "brand-new-pass",
    })
    assert response.status_code == 200
    login = client.post("/auth/login", json={"username": "alice@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200


def test_password_reset_for_unknown_email(client):
    assert client.post("/auth/request-reset", json={"email": "ghost@example.com"}).status_code == 404


def test_token_signed_with_another_key_is_rejected(client, settings):
    user = register(client).json()["user"]
    client.cookies.clear()
    forged = jwt.encode({"sub": str(user["id"])}, "dev_secret_change_me", algorithm=settings.ALGORITHM)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {forged}"}).status_code == 401

    genuine = jwt.encode({"sub": str(user["id"])}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {genuine}"}).status_code == 200


def test_member_level_is_returned_for_prefill(client, app_storage):
    app_storage.members.create(email="jane@example.com", first_name="Jane", last_name="Doe", category="Associate")
    request = {"email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"}

    response = client.post("/auth/verify/member", json=request)
    assert response.json()["member_level"] == "Associate"

    confirm = client.post("/auth/verify/code", json={"email": "jane@example.com", "code": response.json()["code"]})
    assert confirm.json()["member_level"] == "Associate"
