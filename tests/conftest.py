import pytest
from flask import g
from flask.testing import FlaskClient

from app import TestingConfig, create_app
from auth import issue_token
from models import db, new_id


class FreshReadClient(FlaskClient):
    """Runs every call like a separate request against the shared app context.

    Requests reuse the fixture's app context, so the user Flask-Login caches on
    ``g`` is dropped before each call, and cached rows are expired after it.
    """

    def open(self, *args, **kwargs):
        g.pop("_login_user", None)
        response = super().open(*args, **kwargs)
        g.pop("_login_user", None)
        db.session.expire_all()
        return response


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.test_client_class = FreshReadClient
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def dm(app):
    return app.data_manager


def _headers(app, is_admin=False, user_id=None):
    token = issue_token(
        user_id or new_id(),
        is_admin,
        app.config["JWT_PRIVATE_KEY"],
        app.config["JWT_ALGORITHM"],
    )
    return {app.config["AUTH_TOKEN_HEADER"]: token}


@pytest.fixture
def auth_headers(app):
    return _headers(app)


@pytest.fixture
def admin_headers(app):
    return _headers(app, is_admin=True)


@pytest.fixture
def genre(dm):
    return dm.create_genre("Action")


@pytest.fixture
def movie(dm, genre):
    return dm.create_movie("The Matrix", genre.id, number_in_stock=10, daily_rental_rate=2)


@pytest.fixture
def customer(dm):
    return dm.create_customer("John Smith", "0533333333")
