import pytest

from app import TestingConfig, create_app
from models import User


def test_root(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.get_data(as_text=True) == "Vidly"


def test_unknown_route_is_json_404(client):
    res = client.get("/nowhere")

    assert res.status_code == 404
    assert "error" in res.get_json()


def test_wrong_method_is_405(client):
    assert client.patch("/genres").status_code == 405


def test_non_json_body_is_400(client, auth_headers):
    res = client.post("/genres", data="name=Drama", headers=auth_headers)

    assert res.status_code == 400
    assert res.get_json() == {"error": "Request body must be a JSON object."}


def test_missing_signing_key_stops_startup():
    class NoKey(TestingConfig):
        JWT_PRIVATE_KEY = None

    with pytest.raises(RuntimeError, match="JWT_PRIVATE_KEY"):
        create_app(NoKey)


def test_unexpected_error_is_generic_500(client, dm, monkeypatch):
    def broken():
        raise RuntimeError("connection string leaked here")

    monkeypatch.setattr(dm, "get_genres", broken)

    res = client.get("/genres")

    assert res.status_code == 500
    assert res.get_json() == {"error": "Something failed."}


def test_create_admin_command(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["create-admin", "Root", "Root@Vidly.io", "Adm1n!pass"])

    assert result.exit_code == 0, result.output
    user = User.query.filter_by(email="root@vidly.io").one()
    assert user.is_admin is True


def test_create_admin_promotes_existing_user(app, dm):
    dm.register_user("Jane", "jane@vidly.io", "Passw0rd!")

    result = app.test_cli_runner().invoke(args=["create-admin", "Jane", "jane@vidly.io", "Passw0rd!"])

    assert result.exit_code == 0, result.output
    assert User.query.filter_by(email="jane@vidly.io").one().is_admin is True


def test_create_admin_rejects_weak_password(app):
    result = app.test_cli_runner().invoke(args=["create-admin", "Root", "root@vidly.io", "weak"])

    assert result.exit_code != 0
    assert User.query.count() == 0
