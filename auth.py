# auth.py
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from flask import Flask, current_app, jsonify, request
from flask_login import LoginManager, UserMixin, current_user

from data_manager import AuthError, ForbiddenError


class Identity(UserMixin):
    """The authenticated caller, built from token claims only."""

    def __init__(self, user_id: str, is_admin: bool = False):
        self.id = user_id
        self.is_admin = bool(is_admin)

    def __repr__(self):
        return f"<Identity {self.id} admin={self.is_admin}>"


def issue_token(user_id: str, is_admin: bool, secret: str, algorithm: str = "HS256",
                expires_in: Optional[int] = None) -> str:
    claims = {"_id": user_id, "isAdmin": bool(is_admin)}
    if expires_in:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Identity:
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid token.") from e
    user_id = claims.get("_id")
    if not user_id:
        raise AuthError("Invalid token.")
    return Identity(user_id, claims.get("isAdmin", False))


def token_for(user, config) -> str:
    """Sign a token for a stored user with the app's configured key."""
    return issue_token(
        user.id,
        user.is_admin,
        config["JWT_PRIVATE_KEY"],
        config["JWT_ALGORITHM"],
        config.get("JWT_EXPIRES_IN"),
    )


def init_auth(app: Flask) -> LoginManager:
    login_manager = LoginManager()
    # tokens only, nothing is kept in the session cookie
    login_manager.session_protection = None
    login_manager.init_app(app)

    header = app.config["AUTH_TOKEN_HEADER"]
    secret = app.config["JWT_PRIVATE_KEY"]
    algorithm = app.config["JWT_ALGORITHM"]

    @login_manager.request_loader
    def load_identity(req) -> Optional[Identity]:
        token = req.headers.get(header)
        if not token:
            return None
        try:
            return decode_token(token, secret, algorithm)
        except AuthError:
            app.logger.info("Rejected token on %s %s", req.method, req.path)
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        if request.headers.get(header):
            message = "Invalid token."
        else:
            message = "Access denied. No token provided."
        return jsonify(error=message), AuthError.status_code

    return login_manager


def admin_required(view):
    """Place below ``login_required``."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not getattr(current_user, "is_admin", False):
            current_app.logger.info("Admin gate refused %s", current_user.get_id())
            raise ForbiddenError("Access denied.")
        return view(*args, **kwargs)
    return wrapped
