"""Request body schemas.

Every inbound body is parsed into one of these models before any database
access. JSON keys are camelCase (``numberInStock``), attributes snake_case.
"""

import re
from typing import Annotated, Any, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from data_manager import ValidationError

ID_PATTERN = r"^[0-9a-f]{32}$"
_ID_RE = re.compile(ID_PATTERN)

ObjectId = Annotated[str, StringConstraints(strip_whitespace=True, pattern=ID_PATTERN)]

# passwords are taken verbatim, whitespace included
Password = Annotated[str, StringConstraints(strip_whitespace=False)]

PASSWORD_MIN = 8
PASSWORD_MAX = 100
EMAIL_MAX = 255

S = TypeVar("S", bound=BaseModel)


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class GenreIn(Schema):
    name: str = Field(..., min_length=1, max_length=50)


class MovieIn(Schema):
    title: str = Field(..., min_length=1, max_length=200)
    genre_id: ObjectId
    number_in_stock: int = Field(..., ge=0, le=255, strict=True)
    daily_rental_rate: float = Field(..., ge=0, le=255)

    @field_validator("daily_rental_rate", mode="before")
    @classmethod
    def reject_boolean_rate(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("must be a number")
        return v


class CustomerIn(Schema):
    name: str = Field(..., min_length=5, max_length=50)
    phone: str = Field(..., pattern=r"^\d{10}$")
    is_gold: bool = False


def check_password_complexity(value: str) -> str:
    if len(value) < PASSWORD_MIN:
        raise ValueError(f"must be at least {PASSWORD_MIN} characters long")
    if len(value) > PASSWORD_MAX:
        raise ValueError(f"must be at most {PASSWORD_MAX} characters long")
    if not re.search(r"[a-z]", value):
        raise ValueError("must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", value):
        raise ValueError("must contain at least one uppercase letter")
    if not re.search(r"\d", value):
        raise ValueError("must contain at least one digit")
    if not re.search(r"[^A-Za-z0-9]", value):
        raise ValueError("must contain at least one symbol")
    return value


class UserIn(Schema):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: Password

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if len(v) > EMAIL_MAX:
            raise ValueError(f"must be at most {EMAIL_MAX} characters long")
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)


class LoginIn(Schema):
    email: EmailStr
    password: Password = Field(..., min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class RentalIn(Schema):
    customer_id: ObjectId
    movie_id: ObjectId


class ReturnIn(RentalIn):
    pass


def _describe(error: dict) -> str:
    field = ".".join(str(part) for part in error.get("loc", ())) or "body"
    message = error.get("msg", "is invalid")
    # "Value error, must contain ..." -> "must contain ..."
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}"


def parse(schema: Type[S], payload: Any) -> S:
    """Validate a decoded JSON body against ``schema``."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as err:
        raise ValidationError(_describe(err.errors()[0])) from err


def check_id(value: str) -> str:
    if not _ID_RE.fullmatch(value or ""):
        raise ValidationError("Invalid ID.")
    return value
