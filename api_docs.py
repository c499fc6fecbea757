# api_docs.py
"""OpenAPI 3 document for the API.

Operations come from the YAML after ``---`` in each view docstring. Request
body schemas are generated from the pydantic models in ``schemas.py``; the
response shapes below mirror the models' ``to_dict()`` output.
"""
import logging

from apispec import APISpec
from apispec_webframeworks.flask import FlaskPlugin
from flask import Flask, jsonify, render_template_string, url_for

from schemas import ID_PATTERN, CustomerIn, GenreIn, LoginIn, MovieIn, RentalIn, ReturnIn, UserIn

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"

REQUEST_MODELS = (GenreIn, MovieIn, CustomerIn, UserIn, LoginIn, RentalIn, ReturnIn)

TAGS = (
    {"name": "Auth", "description": "Login and user registration"},
    {"name": "Genres", "description": "Genre management and retrieval"},
    {"name": "Movies", "description": "Movie catalogue and stock"},
    {"name": "Customers", "description": "Customer management"},
    {"name": "Rentals", "description": "Rentals and returns"},
)

_ID = {"type": "string", "pattern": ID_PATTERN, "example": "5f1d7f4c2a9b4e0c8d3e6a1b2c3d4e5f"}

RESPONSE_SCHEMAS = {
    "Error": {
        "type": "object",
        "properties": {"error": {"type": "string", "example": "Invalid ID."}},
        "required": ["error"],
    },
    "Genre": {
        "type": "object",
        "properties": {
            "id": _ID,
            "name": {"type": "string", "example": "Action"},
        },
        "required": ["id", "name"],
    },
    "Movie": {
        "type": "object",
        "properties": {
            "id": _ID,
            "title": {"type": "string", "example": "The Matrix"},
            "genre": {"$ref": "#/components/schemas/Genre"},
            "numberInStock": {"type": "integer", "example": 10},
            "dailyRentalRate": {"type": "number", "example": 2.5},
        },
        "required": ["id", "title", "genre", "numberInStock", "dailyRentalRate"],
    },
    "Customer": {
        "type": "object",
        "properties": {
            "id": _ID,
            "name": {"type": "string", "example": "John Smith"},
            "phone": {"type": "string", "example": "0533333333"},
            "isGold": {"type": "boolean", "example": False},
        },
        "required": ["id", "name", "phone", "isGold"],
    },
    "User": {
        "type": "object",
        "properties": {
            "id": _ID,
            "name": {"type": "string", "example": "Jane Doe"},
            "email": {"type": "string", "format": "email", "example": "jane@vidly.io"},
            "isAdmin": {"type": "boolean", "example": False},
        },
        "required": ["id", "name", "email", "isAdmin"],
    },
    "Rental": {
        "type": "object",
        "properties": {
            "id": _ID,
            "customer": {"$ref": "#/components/schemas/Customer"},
            "movie": {
                "type": "object",
                "properties": {
                    "id": _ID,
                    "title": {"type": "string", "example": "The Matrix"},
                    "dailyRentalRate": {"type": "number", "example": 2.5},
                },
                "required": ["id", "title", "dailyRentalRate"],
            },
            "dateOut": {"type": "string", "format": "date-time"},
            "dateReturned": {"type": "string", "format": "date-time", "nullable": True},
            "rentalFee": {"type": "number", "nullable": True, "example": 14},
        },
        "required": ["id", "customer", "movie", "dateOut"],
    },
}


def _error_response(description: str) -> dict:
    return {
        "description": description,
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Error"}}},
    }


ERROR_RESPONSES = {
    "BadRequest": _error_response("Malformed id, invalid body or failed business rule."),
    "Unauthorized": _error_response("No token provided, or the token is invalid."),
    "Forbidden": _error_response("The token does not carry the admin claim."),
    "NotFound": _error_response("No record with the given id."),
}

SWAGGER_UI = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ title }} API docs</title>
  <link rel="stylesheet" href="https://unpkg.com/swagger-ui-dist@5/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    window.ui = SwaggerUIBundle({url: "{{ spec_url }}", dom_id: "#swagger-ui"});
  </script>
</body>
</html>
"""


def _path_parameters(app: Flask, endpoint: str) -> list:
    rule = next(app.url_map.iter_rules(endpoint))
    return [
        {"name": name, "in": "path", "required": True, "schema": {"type": "string", "pattern": ID_PATTERN}}
        for name in sorted(rule.arguments)
    ]


def build_spec(app: Flask) -> APISpec:
    """Collect every documented view of ``app`` into one OpenAPI document."""
    spec = APISpec(
        title=app.config["API_TITLE"],
        version=app.config["API_VERSION"],
        openapi_version=OPENAPI_VERSION,
        plugins=[FlaskPlugin()],
        info={"description": "Video rental store: genres, movies, customers, users, rentals and returns."},
    )
    header = app.config["AUTH_TOKEN_HEADER"]
    spec.components.security_scheme("jwt", {
        "type": "apiKey",
        "in": "header",
        "name": header,
        "description": f"JWT issued by POST /login or POST /users. Send it as `{header}: <token>`.",
    })
    for name, schema in RESPONSE_SCHEMAS.items():
        spec.components.schema(name, schema)
    for model in REQUEST_MODELS:
        spec.components.schema(model.__name__, model.model_json_schema(by_alias=True))
    for name, response in ERROR_RESPONSES.items():
        spec.components.response(name, response)
    for tag in TAGS:
        spec.tag(tag)

    for endpoint, view in app.view_functions.items():
        if "---" not in (view.__doc__ or ""):
            continue
        spec.path(view=view, app=app, parameters=_path_parameters(app, endpoint) or None)
    return spec


def init_docs(app: Flask) -> APISpec:
    """Serve the document at ``/api-docs.json`` and Swagger UI at ``/api-docs``.

    Call after every route is registered.
    """

    @app.route("/api-docs.json", methods=["GET"])
    def openapi_json():
        return jsonify(app.extensions["apispec"].to_dict())

    @app.route("/api-docs", methods=["GET"])
    def openapi_ui():
        return render_template_string(SWAGGER_UI, title=app.config["API_TITLE"], spec_url=url_for("openapi_json"))

    spec = build_spec(app)
    app.extensions["apispec"] = spec
    logger.debug("OpenAPI document built with %d paths", len(spec.to_dict().get("paths", {})))
    return spec
