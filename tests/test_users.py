import pytest

from auth import decode_token
from models import User

PASSWORD = "Passw0rd!"


@pytest.fixture
def registered(client):
    return client.post("/users", json={"name": "Jane", "email": "Jane@Vidly.io", "password": PASSWORD})


def test_register_returns_user_without_password(registered):
    assert registered.status_code == 200
    body = registered.get_json()
    assert set(body) == {"id", "name", "email", "isAdmin"}
    assert body["email"] == "jane@vidly.io"
    assert body["isAdmin"] is False


def test_register_stores_hashed_password(registered):
    user = User.query.one()
    assert user.password != PASSWORD


def test_register_sends_token_header(app, registered):
    token = registered.headers["x-auth-token"]

    identity = decode_token(token, app.config["JWT_PRIVATE_KEY"])
    assert identity.id == registered.get_json()["id"]
    assert identity.is_admin is False


def test_register_duplicate_email_is_400(client, registered):
    res = client.post("/users", json={"name": "Jane", "email": "jane@vidly.io", "password": PASSWORD})

    assert res.status_code == 400
    assert res.get_json() == {"error": "User already registered."}


def test_register_weak_password_is_400(client):
    res = client.post("/users", json={"name": "Jane", "email": "jane@vidly.io", "password": "password"})

    assert res.status_code == 400
    assert User.query.count() == 0


def test_login_returns_token(app, client, registered):
    res = client.post("/login", json={"email": "jane@vidly.io", "password": PASSWORD})

    assert res.status_code == 200
    assert res.mimetype == "text/plain"
    identity = decode_token(res.get_data(as_text=True), app.config["JWT_PRIVATE_KEY"])
    assert identity.id == registered.get_json()["id"]


def test_login_wrong_password_is_400(client, registered):
    res = client.post("/login", json={"email": "jane@vidly.io", "password": "Wr0ngPass!"})

    assert res.status_code == 400
    assert res.get_json() == {"error": "Invalid email or password."}


def test_login_unknown_email_is_400(client):
    res = client.post("/login", json={"email": "nobody@vidly.io", "password": PASSWORD})
    assert res.status_code == 400


def test_password_whitespace_is_significant(client):
    password = " Passw0rd"
    res = client.post("/users", json={"name": "Sam", "email": "sam@vidly.io", "password": password})
    assert res.status_code == 200

    assert client.post("/login", json={"email": "sam@vidly.io", "password": password}).status_code == 200
    assert client.post("/login", json={"email": "sam@vidly.io", "password": "Passw0rd "}).status_code == 400


def test_me_returns_current_user(client, registered):
    headers = {"x-auth-token": registered.headers["x-auth-token"]}

    res = client.get("/users/me", headers=headers)

    assert res.status_code == 200
    assert res.get_json()["email"] == "jane@vidly.io"
    assert "password" not in res.get_json()


def test_me_requires_token(client):
    assert client.get("/users/me").status_code == 401


def test_me_for_deleted_user_is_404(client, auth_headers):
    assert client.get("/users/me", headers=auth_headers).status_code == 404
