"""Vidly rental API Flask application."""

from __future__ import annotations

import os
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_login import current_user, login_required
from werkzeug.exceptions import HTTPException

from api_docs import init_docs
from auth import admin_required, init_auth, token_for
from data_manager import AppError, DataManager
from logging_config import configure_logging
from models import db
from schemas import (
    CustomerIn, GenreIn, LoginIn, MovieIn, RentalIn, ReturnIn, UserIn,
    check_id, check_password_complexity, parse,
)

load_dotenv()


class Config:
    BASEDIR = os.path.abspath(os.path.dirname(__file__))
    DATA_DIR = os.path.join(BASEDIR, "data")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(DATA_DIR, 'vidly.db')}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

    JWT_PRIVATE_KEY = os.getenv("JWT_PRIVATE_KEY")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_IN: Optional[int] = int(os.getenv("JWT_EXPIRES_IN", "0")) or None
    AUTH_TOKEN_HEADER = "x-auth-token"

    API_TITLE = "Vidly"
    API_VERSION = "1.0.0"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE", os.path.join(DATA_DIR, "uncaught_exceptions.log"))


class DevelopmentConfig(Config):
    DEBUG = True
    ENV = "development"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
    JWT_PRIVATE_KEY = os.getenv("JWT_PRIVATE_KEY", "dev-jwt-private-key-change-me-0123456789")


class ProductionConfig(Config):
    DEBUG = False
    ENV = "production"


class TestingConfig(Config):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_PRIVATE_KEY = "testing-jwt-private-key-0123456789abcdef"
    JWT_EXPIRES_IN = None
    LOG_LEVEL = "WARNING"
    LOG_FILE = None


def _body() -> object:
    return request.get_json(silent=True)


def create_app(config: Optional[type[Config]] = None) -> Flask:
    app = Flask(__name__)
    cfg_class = config or (DevelopmentConfig if os.getenv("FLASK_ENV") == "development" else ProductionConfig)
    os.makedirs(cfg_class.DATA_DIR, exist_ok=True)
    app.config.from_object(cfg_class)

    if not app.config.get("JWT_PRIVATE_KEY"):
        raise RuntimeError("FATAL ERROR: JWT_PRIVATE_KEY is not defined.")

    configure_logging(app)
    db.init_app(app)
    init_auth(app)

    with app.app_context():
        db.create_all()
    app.logger.info("Database ready (%s config)", cfg_class.__name__)

    app.data_manager = DataManager(db.session)  # type: ignore[attr-defined]

    def dm() -> DataManager:
        return app.data_manager  # type: ignore[attr-defined]

    @app.route("/", methods=["GET"])
    def root():
        return "Vidly"

    # ---------- AUTH / USERS ----------
    @app.route("/login", methods=["POST"])
    def login():
        """Exchange credentials for a token.
        ---
        post:
          tags: [Auth]
          summary: Log in
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/LoginIn'}
          responses:
            200:
              description: The signed token as plain text.
              content:
                text/plain:
                  schema: {type: string}
            400: BadRequest
        """
        data = parse(LoginIn, _body())
        user = dm().authenticate(data.email, data.password)
        return app.response_class(token_for(user, app.config), mimetype="text/plain")

    @app.route("/users", methods=["POST"])
    def register():
        """Register a user.
        ---
        post:
          tags: [Auth]
          summary: Register a new user
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/UserIn'}
          responses:
            200:
              description: The new user. The token is sent in the x-auth-token header.
              headers:
                x-auth-token:
                  schema: {type: string}
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/User'}
            400: BadRequest
        """
        data = parse(UserIn, _body())
        user = dm().register_user(data.name, data.email, data.password)
        response = jsonify(user.to_dict())
        response.headers[app.config["AUTH_TOKEN_HEADER"]] = token_for(user, app.config)
        return response

    @app.route("/users/me", methods=["GET"])
    @login_required
    def me():
        """Current user.
        ---
        get:
          tags: [Auth]
          summary: The user the token was issued to
          security: [{jwt: []}]
          responses:
            200:
              description: The user, without the password.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/User'}
            401: Unauthorized
            404: NotFound
        """
        return jsonify(dm().get_user(current_user.id).to_dict())

    # ---------- GENRES ----------
    @app.route("/genres", methods=["GET"])
    def genres_list():
        """
        ---
        get:
          tags: [Genres]
          summary: All genres, sorted by name
          responses:
            200:
              description: A list of genres.
              content:
                application/json:
                  schema:
                    type: array
                    items: {$ref: '#/components/schemas/Genre'}
        """
        return jsonify([g.to_dict() for g in dm().get_genres()])

    @app.route("/genres/<genre_id>", methods=["GET"])
    def genres_get(genre_id: str):
        """
        ---
        get:
          tags: [Genres]
          summary: One genre
          responses:
            200:
              description: The genre.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Genre'}
            400: BadRequest
            404: NotFound
        """
        return jsonify(dm().get_genre(check_id(genre_id)).to_dict())

    @app.route("/genres", methods=["POST"])
    @login_required
    def genres_create():
        """
        ---
        post:
          tags: [Genres]
          summary: Create a genre
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/GenreIn'}
          responses:
            200:
              description: The created genre.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Genre'}
            400: BadRequest
            401: Unauthorized
        """
        data = parse(GenreIn, _body())
        return jsonify(dm().create_genre(data.name).to_dict())

    @app.route("/genres/<genre_id>", methods=["PUT"])
    @login_required
    def genres_update(genre_id: str):
        """
        ---
        put:
          tags: [Genres]
          summary: Rename a genre
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/GenreIn'}
          responses:
            200:
              description: The updated genre.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Genre'}
            400: BadRequest
            401: Unauthorized
            404: NotFound
        """
        check_id(genre_id)
        data = parse(GenreIn, _body())
        return jsonify(dm().update_genre(genre_id, data.name).to_dict())

    @app.route("/genres/<genre_id>", methods=["DELETE"])
    @login_required
    @admin_required
    def genres_delete(genre_id: str):
        """
        ---
        delete:
          tags: [Genres]
          summary: Delete a genre (admin)
          security: [{jwt: []}]
          responses:
            200:
              description: The deleted genre.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Genre'}
            400: BadRequest
            401: Unauthorized
            403: Forbidden
            404: NotFound
        """
        return jsonify(dm().delete_genre(check_id(genre_id)))

    # ---------- MOVIES ----------
    @app.route("/movies", methods=["GET"])
    def movies_list():
        """
        ---
        get:
          tags: [Movies]
          summary: All movies, sorted by title
          responses:
            200:
              description: A list of movies.
              content:
                application/json:
                  schema:
                    type: array
                    items: {$ref: '#/components/schemas/Movie'}
        """
        return jsonify([m.to_dict() for m in dm().get_movies()])

    @app.route("/movies/<movie_id>", methods=["GET"])
    def movies_get(movie_id: str):
        """
        ---
        get:
          tags: [Movies]
          summary: One movie
          responses:
            200:
              description: The movie.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Movie'}
            400: BadRequest
            404: NotFound
        """
        return jsonify(dm().get_movie(check_id(movie_id)).to_dict())

    @app.route("/movies", methods=["POST"])
    @login_required
    def movies_create():
        """
        ---
        post:
          tags: [Movies]
          summary: Create a movie in an existing genre
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/MovieIn'}
          responses:
            200:
              description: The created movie.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Movie'}
            400: BadRequest
            401: Unauthorized
        """
        data = parse(MovieIn, _body())
        movie = dm().create_movie(data.title, data.genre_id, data.number_in_stock, data.daily_rental_rate)
        return jsonify(movie.to_dict())

    @app.route("/movies/<movie_id>", methods=["PUT"])
    @login_required
    def movies_update(movie_id: str):
        """
        ---
        put:
          tags: [Movies]
          summary: Replace a movie
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/MovieIn'}
          responses:
            200:
              description: The updated movie.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Movie'}
            400: BadRequest
            401: Unauthorized
            404: NotFound
        """
        check_id(movie_id)
        data = parse(MovieIn, _body())
        movie = dm().update_movie(movie_id, data.title, data.genre_id,
                                  data.number_in_stock, data.daily_rental_rate)
        return jsonify(movie.to_dict())

    @app.route("/movies/<movie_id>", methods=["DELETE"])
    @login_required
    @admin_required
    def movies_delete(movie_id: str):
        """
        ---
        delete:
          tags: [Movies]
          summary: Delete a movie (admin)
          security: [{jwt: []}]
          responses:
            200:
              description: The deleted movie.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Movie'}
            400: BadRequest
            401: Unauthorized
            403: Forbidden
            404: NotFound
        """
        return jsonify(dm().delete_movie(check_id(movie_id)))

    # ---------- CUSTOMERS ----------
    @app.route("/customers", methods=["GET"])
    def customers_list():
        """
        ---
        get:
          tags: [Customers]
          summary: All customers, sorted by name
          responses:
            200:
              description: A list of customers.
              content:
                application/json:
                  schema:
                    type: array
                    items: {$ref: '#/components/schemas/Customer'}
        """
        return jsonify([c.to_dict() for c in dm().get_customers()])

    @app.route("/customers/<customer_id>", methods=["GET"])
    def customers_get(customer_id: str):
        """
        ---
        get:
          tags: [Customers]
          summary: One customer
          responses:
            200:
              description: The customer.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Customer'}
            400: BadRequest
            404: NotFound
        """
        return jsonify(dm().get_customer(check_id(customer_id)).to_dict())

    @app.route("/customers", methods=["POST"])
    @login_required
    def customers_create():
        """
        ---
        post:
          tags: [Customers]
          summary: Create a customer
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/CustomerIn'}
          responses:
            200:
              description: The created customer.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Customer'}
            400: BadRequest
            401: Unauthorized
        """
        data = parse(CustomerIn, _body())
        return jsonify(dm().create_customer(data.name, data.phone, data.is_gold).to_dict())

    @app.route("/customers/<customer_id>", methods=["PUT"])
    @login_required
    def customers_update(customer_id: str):
        """
        ---
        put:
          tags: [Customers]
          summary: Replace a customer
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/CustomerIn'}
          responses:
            200:
              description: The updated customer.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Customer'}
            400: BadRequest
            401: Unauthorized
            404: NotFound
        """
        check_id(customer_id)
        data = parse(CustomerIn, _body())
        return jsonify(dm().update_customer(customer_id, data.name, data.phone, data.is_gold).to_dict())

    @app.route("/customers/<customer_id>", methods=["DELETE"])
    @login_required
    @admin_required
    def customers_delete(customer_id: str):
        """
        ---
        delete:
          tags: [Customers]
          summary: Delete a customer (admin)
          security: [{jwt: []}]
          responses:
            200:
              description: The deleted customer.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Customer'}
            400: BadRequest
            401: Unauthorized
            403: Forbidden
            404: NotFound
        """
        return jsonify(dm().delete_customer(check_id(customer_id)))

    # ---------- RENTALS / RETURNS ----------
    @app.route("/rentals", methods=["GET"])
    @login_required
    def rentals_list():
        """
        ---
        get:
          tags: [Rentals]
          summary: All rentals, newest first
          security: [{jwt: []}]
          responses:
            200:
              description: A list of rentals.
              content:
                application/json:
                  schema:
                    type: array
                    items: {$ref: '#/components/schemas/Rental'}
            401: Unauthorized
        """
        return jsonify([r.to_dict() for r in dm().get_rentals()])

    @app.route("/rentals/<rental_id>", methods=["GET"])
    @login_required
    def rentals_get(rental_id: str):
        """
        ---
        get:
          tags: [Rentals]
          summary: One rental
          security: [{jwt: []}]
          responses:
            200:
              description: The rental.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Rental'}
            400: BadRequest
            401: Unauthorized
            404: NotFound
        """
        return jsonify(dm().get_rental(check_id(rental_id)).to_dict())

    @app.route("/rentals", methods=["POST"])
    @login_required
    def rentals_create():
        """
        ---
        post:
          tags: [Rentals]
          summary: Rent a movie to a customer
          description: Copies the customer and movie into the rental and takes one copy out of stock.
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/RentalIn'}
          responses:
            200:
              description: The new rental.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Rental'}
            400: BadRequest
            401: Unauthorized
        """
        data = parse(RentalIn, _body())
        return jsonify(dm().create_rental(data.customer_id, data.movie_id).to_dict())

    @app.route("/returns", methods=["POST"])
    @login_required
    def returns_create():
        """
        ---
        post:
          tags: [Rentals]
          summary: Return a rented movie
          description: Sets the return date, computes the fee and puts the copy back in stock.
          security: [{jwt: []}]
          requestBody:
            required: true
            content:
              application/json:
                schema: {$ref: '#/components/schemas/ReturnIn'}
          responses:
            200:
              description: The closed rental with its fee.
              content:
                application/json:
                  schema: {$ref: '#/components/schemas/Rental'}
            400: BadRequest
            401: Unauthorized
            404: NotFound
        """
        data = parse(ReturnIn, _body())
        return jsonify(dm().process_return(data.customer_id, data.movie_id).to_dict())

    init_docs(app)

    # ---------- ERRORS ----------
    @app.errorhandler(AppError)
    def app_error(err: AppError):
        if err.status_code >= 500:
            app.logger.error("%s on %s %s", err, request.method, request.path)
        return jsonify(error=str(err)), err.status_code

    @app.errorhandler(HTTPException)
    def http_error(err: HTTPException):
        return jsonify(error=err.description), err.code

    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        app.logger.exception("Server Error: %s", err)
        db.session.rollback()
        return jsonify(error="Something failed."), 500

    # ---------- CLI ----------
    @app.cli.command("create-admin")
    @click.argument("name")
    @click.argument("email")
    @click.argument("password")
    def create_admin(name: str, email: str, password: str):
        """Create an admin user, or promote an existing one."""
        try:
            check_password_complexity(password)
        except ValueError as err:
            raise click.BadParameter(f"password {err}")
        user = dm().ensure_admin(name, email, password)
        click.echo(f"Admin ready: {user.email} ({user.id})")

    return app


if __name__ == "__main__":
    app_ = create_app()
    app_.logger.info("Listening on port %s...", os.getenv("PORT", "3000"))
    app_.run(host="127.0.0.1", port=int(os.getenv("PORT", "3000")), debug=app_.debug)
