# data_manager.py
import logging
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from models import Genre, Movie, Customer, User, Rental, utcnow

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


# --- Custom Exceptions ---
class AppError(Exception):
    """Base class for app-specific errors."""
    status_code = 400
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

class ValidationError(AppError):
    status_code = 400

class ConflictError(ValidationError):
    """Operation was already carried out (e.g. a second return)."""
    status_code = 400

class AuthError(AppError):
    status_code = 401

class ForbiddenError(AppError):
    status_code = 403

class NotFoundError(AppError):
    status_code = 404

class DatabaseError(AppError):
    status_code = 500


def rental_days(date_out: datetime, date_returned: datetime) -> int:
    """Whole days elapsed, rounded down, never less than one."""
    return max(1, (date_returned - date_out) // ONE_DAY)


def compute_rental_fee(date_out: datetime, date_returned: datetime, daily_rental_rate: float) -> float:
    return rental_days(date_out, date_returned) * daily_rental_rate


class DataManager:
    """
    Wraps every persistence operation (CRUD + rental/return).
    Raises AppError subclasses which the Flask handlers map to status codes.
    """

    def __init__(self, session):
        self.session = session

    # --- internal: commit or roll back ---
    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Commit failed")
            raise DatabaseError("Database error.") from e

    def _get_or_404(self, model, obj_id: str, label: str):
        obj = self.session.get(model, obj_id)
        if not obj:
            raise NotFoundError(f"The {label} with the given ID was not found.")
        return obj

    # ---------- GENRES ----------
    def get_genres(self) -> List[Genre]:
        return Genre.query.order_by(Genre.name.asc()).all()

    def get_genre(self, genre_id: str) -> Genre:
        return self._get_or_404(Genre, genre_id, "genre")

    def create_genre(self, name: str) -> Genre:
        genre = Genre(name=name)
        self.session.add(genre)
        self._commit()
        return genre

    def update_genre(self, genre_id: str, name: str) -> Genre:
        genre = self.get_genre(genre_id)
        genre.name = name
        self._commit()
        return genre

    def delete_genre(self, genre_id: str) -> dict:
        genre = self.get_genre(genre_id)
        data = genre.to_dict()
        self.session.delete(genre)
        self._commit()
        return data

    # ---------- MOVIES ----------
    def get_movies(self) -> List[Movie]:
        return Movie.query.order_by(Movie.title.asc()).all()

    def get_movie(self, movie_id: str) -> Movie:
        return self._get_or_404(Movie, movie_id, "movie")

    def _genre_for_movie(self, genre_id: str) -> Genre:
        genre = self.session.get(Genre, genre_id)
        if not genre:
            raise ValidationError("Invalid genre.")
        return genre

    def create_movie(self, title: str, genre_id: str, number_in_stock: int, daily_rental_rate: float) -> Movie:
        genre = self._genre_for_movie(genre_id)
        movie = Movie(
            title=title,
            genre_id=genre.id,
            genre_name=genre.name,
            number_in_stock=number_in_stock,
            daily_rental_rate=daily_rental_rate,
        )
        self.session.add(movie)
        self._commit()
        return movie

    def update_movie(self, movie_id: str, title: str, genre_id: str,
                     number_in_stock: int, daily_rental_rate: float) -> Movie:
        genre = self._genre_for_movie(genre_id)
        movie = self.get_movie(movie_id)
        movie.title = title
        movie.genre_id = genre.id
        movie.genre_name = genre.name
        movie.number_in_stock = number_in_stock
        movie.daily_rental_rate = daily_rental_rate
        self._commit()
        return movie

    def delete_movie(self, movie_id: str) -> dict:
        movie = self.get_movie(movie_id)
        data = movie.to_dict()
        self.session.delete(movie)
        self._commit()
        return data

    # ---------- CUSTOMERS ----------
    def get_customers(self) -> List[Customer]:
        return Customer.query.order_by(Customer.name.asc()).all()

    def get_customer(self, customer_id: str) -> Customer:
        return self._get_or_404(Customer, customer_id, "customer")

    def create_customer(self, name: str, phone: str, is_gold: bool = False) -> Customer:
        customer = Customer(name=name, phone=phone, is_gold=is_gold)
        self.session.add(customer)
        self._commit()
        return customer

    def update_customer(self, customer_id: str, name: str, phone: str, is_gold: bool = False) -> Customer:
        customer = self.get_customer(customer_id)
        customer.name = name
        customer.phone = phone
        customer.is_gold = is_gold
        self._commit()
        return customer

    def delete_customer(self, customer_id: str) -> dict:
        customer = self.get_customer(customer_id)
        data = customer.to_dict()
        self.session.delete(customer)
        self._commit()
        return data

    # ---------- USERS ----------
    def register_user(self, name: str, email: str, password: str, is_admin: bool = False) -> User:
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise ValidationError("User already registered.")
        user = User(name=name, email=email, password=generate_password_hash(password), is_admin=is_admin)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            # lost a race against a concurrent registration
            self.session.rollback()
            raise ValidationError("User already registered.") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Commit failed")
            raise DatabaseError("Database error.") from e
        logger.info("Registered user %s", user.id)
        return user

    def ensure_admin(self, name: str, email: str, password: str) -> User:
        """Create an admin user, or promote the existing user with that email."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            return self.register_user(name, email, password, is_admin=True)
        user.is_admin = True
        self._commit()
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not check_password_hash(user.password, password):
            logger.warning("Failed login attempt for %s", email)
            raise ValidationError("Invalid email or password.")
        return user

    def get_user(self, user_id: str) -> User:
        return self._get_or_404(User, user_id, "user")

    # ---------- RENTALS ----------
    def get_rentals(self) -> List[Rental]:
        return Rental.query.order_by(Rental.date_out.desc()).all()

    def get_rental(self, rental_id: str) -> Rental:
        return self._get_or_404(Rental, rental_id, "rental")

    def create_rental(self, customer_id: str, movie_id: str) -> Rental:
        movie = self.session.get(Movie, movie_id)
        if not movie:
            raise ValidationError("Invalid movie.")
        if movie.number_in_stock <= 0:
            raise ValidationError("Movie not in stock.")

        customer = self.session.get(Customer, customer_id)
        if not customer:
            raise ValidationError("Invalid customer.")

        rental = Rental(
            customer_id=customer.id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_is_gold=customer.is_gold,
            movie_id=movie.id,
            movie_title=movie.title,
            movie_daily_rental_rate=movie.daily_rental_rate,
            date_out=utcnow(),
        )
        self.session.add(rental)

        # conditional decrement, stock never drops below zero
        if not self._decrement_stock(movie.id):
            self.session.rollback()
            logger.warning("Stock ran out for movie %s during rental", movie.id)
            raise ValidationError("Movie not in stock.")

        self._commit()
        logger.info("Rental %s created for customer %s, movie %s", rental.id, customer.id, movie.id)
        return rental

    def _decrement_stock(self, movie_id: str) -> bool:
        result = self.session.execute(
            update(Movie)
            .where(Movie.id == movie_id, Movie.number_in_stock > 0)
            .values(number_in_stock=Movie.number_in_stock - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _increment_stock(self, movie_id: str) -> None:
        self.session.execute(
            update(Movie)
            .where(Movie.id == movie_id)
            .values(number_in_stock=Movie.number_in_stock + 1)
            .execution_options(synchronize_session=False)
        )

    # ---------- RETURNS ----------
    def lookup_rental(self, customer_id: str, movie_id: str) -> Optional[Rental]:
        """Open rental for the pair if there is one, else the latest returned one."""
        return (
            Rental.query
            .filter_by(customer_id=customer_id, movie_id=movie_id)
            .order_by(Rental.date_returned.is_not(None), Rental.date_out.desc())
            .first()
        )

    def process_return(self, customer_id: str, movie_id: str) -> Rental:
        rental = self.lookup_rental(customer_id, movie_id)
        if not rental:
            raise NotFoundError("Rental not found.")
        if rental.is_returned:
            raise ConflictError("Return already processed.")

        now = utcnow()
        fee = compute_rental_fee(rental.date_out, now, rental.movie_daily_rental_rate)

        try:
            result = self.session.execute(
                update(Rental)
                .where(Rental.id == rental.id, Rental.date_returned.is_(None))
                .values(date_returned=now, rental_fee=fee)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                raise ConflictError("Return already processed.")
            self._increment_stock(rental.movie_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Return of rental %s failed", rental.id)
            raise DatabaseError("Database error.") from e

        self._commit()
        logger.info("Rental %s returned, fee %s", rental.id, fee)
        return rental
