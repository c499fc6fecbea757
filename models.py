# models.py
import uuid
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # naive UTC, SQLite drops tzinfo on the way back anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() + "Z" if value is not None else None


class Genre(db.Model):
    __tablename__ = "genres"

    id   = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(50), nullable=False, index=True)

    def __repr__(self):
        return f"<Genre {self.id}:{self.name}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Movie(db.Model):
    __tablename__ = "movies"

    id    = db.Column(db.String(32), primary_key=True, default=new_id)
    title = db.Column(db.String(200), nullable=False, index=True)

    # Snapshot of the genre at the time of the last create/update
    genre_id   = db.Column(db.String(32), nullable=False)
    genre_name = db.Column(db.String(50), nullable=False)

    number_in_stock   = db.Column(db.Integer, nullable=False, default=0)
    daily_rental_rate = db.Column(db.Float, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint("number_in_stock >= 0 AND number_in_stock <= 255", name="ck_movie_stock"),
        db.CheckConstraint("daily_rental_rate >= 0 AND daily_rental_rate <= 255", name="ck_movie_rate"),
    )

    def __repr__(self):
        return f"<Movie {self.id}:{self.title} ({self.number_in_stock})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "genre": {"id": self.genre_id, "name": self.genre_name},
            "numberInStock": self.number_in_stock,
            "dailyRentalRate": self.daily_rental_rate,
        }


class Customer(db.Model):
    __tablename__ = "customers"

    id      = db.Column(db.String(32), primary_key=True, default=new_id)
    name    = db.Column(db.String(50), nullable=False, index=True)
    phone   = db.Column(db.String(10), nullable=False)
    is_gold = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Customer {self.id}:{self.name}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "isGold": self.is_gold}


class User(db.Model):
    __tablename__ = "users"

    id       = db.Column(db.String(32), primary_key=True, default=new_id)
    name     = db.Column(db.String(50), nullable=False)
    email    = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(1024), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<User {self.id}:{self.email}>"

    def to_dict(self) -> dict:
        # never expose the password hash
        return {"id": self.id, "name": self.name, "email": self.email, "isAdmin": self.is_admin}


class Rental(db.Model):
    """A single rental. Customer and movie fields are copied at creation time
    so later edits to either record leave the rental history untouched."""

    __tablename__ = "rentals"

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    customer_id      = db.Column(db.String(32), nullable=False, index=True)
    customer_name    = db.Column(db.String(50), nullable=False)
    customer_phone   = db.Column(db.String(10), nullable=False)
    customer_is_gold = db.Column(db.Boolean, nullable=False, default=False)

    movie_id                = db.Column(db.String(32), nullable=False, index=True)
    movie_title             = db.Column(db.String(200), nullable=False)
    movie_daily_rental_rate = db.Column(db.Float, nullable=False)

    date_out      = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    date_returned = db.Column(db.DateTime, nullable=True)
    rental_fee    = db.Column(db.Float, nullable=True)

    __table_args__ = (
        db.CheckConstraint("rental_fee IS NULL OR rental_fee >= 0", name="ck_rental_fee"),
    )

    def __repr__(self):
        return f"<Rental {self.id}:{self.customer_id}/{self.movie_id}>"

    @property
    def is_returned(self) -> bool:
        return self.date_returned is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer": {
                "id": self.customer_id,
                "name": self.customer_name,
                "phone": self.customer_phone,
                "isGold": self.customer_is_gold,
            },
            "movie": {
                "id": self.movie_id,
                "title": self.movie_title,
                "dailyRentalRate": self.movie_daily_rental_rate,
            },
            "dateOut": _iso(self.date_out),
            "dateReturned": _iso(self.date_returned),
            "rentalFee": self.rental_fee,
        }
