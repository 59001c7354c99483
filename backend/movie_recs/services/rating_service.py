"""
Rating writes.

The rating row is the unit of consistency: it is validated, written and
committed first. Every user's cached recommendations are cleared right after
the commit, since one rating can move another user's neighbours, then the
post-write tasks are handed to `schedule` (run inline by default; the API
defers them to FastAPI background tasks).
"""

from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from movie_recs.core.database import get_session_factory
from movie_recs.core.exceptions import InvalidInputError, NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.models.rating import Rating
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.repos.user_repository import UserRepository
from movie_recs.services.cache import clear_recommendation_caches
from movie_recs.services.post_write import PostWriteTask, rating_write_tasks, run_post_write_task

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(value) -> int:
    # bool is an int subclass; True must not be accepted as 1 star
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Rating must be an integer, got {value!r}")
    if not MIN_RATING <= value <= MAX_RATING:
        raise InvalidInputError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


class RatingService:
    def __init__(
        self,
        db: Session,
        session_factory: sessionmaker | None = None,
        schedule: Callable[[PostWriteTask], None] | None = None,
    ):
        self.db = db
        self.session_factory = session_factory
        self.schedule = schedule or self._run_now
        self.ratings = RatingRepository(db)
        self.movies = MovieRepository(db)
        self.users = UserRepository(db)

    def _run_now(self, task: PostWriteTask) -> None:
        if self.session_factory is None:
            self.session_factory = get_session_factory()
        run_post_write_task(self.session_factory, task)

    def _after_commit(self, user_id: int, movie_id: int) -> None:
        clear_recommendation_caches()
        for task in rating_write_tasks(user_id, movie_id):
            self.schedule(task)

    def rate_movie(self, user_id: int, movie_id: int, rating: int, review: str | None = None) -> Rating:
        """
        Create or update the user's rating for a movie.

        Raises:
            InvalidInputError: rating outside 1-5 (nothing is written)
            NotFoundError: unknown user or movie
        """
        value = validate_rating(rating)
        if self.users.find_by_id(user_id) is None:
            raise NotFoundError("User", user_id)
        if self.movies.find_by_id(movie_id) is None:
            raise NotFoundError("Movie", movie_id)

        existing = self.ratings.get(user_id, movie_id)
        previous = existing.rating if existing else None
        saved = self.ratings.upsert(user_id, movie_id, value, review)
        self.db.commit()
        self.db.refresh(saved)

        logger.info(
            "Rating saved",
            extra={
                "extra_fields": {
                    "user_id": user_id,
                    "movie_id": movie_id,
                    "rating": value,
                    "previous": previous,
                }
            },
        )

        self._after_commit(user_id, movie_id)
        return saved

    def delete_rating(self, user_id: int, movie_id: int) -> None:
        """
        Remove the user's rating for a movie.

        Raises:
            NotFoundError: the user has not rated the movie
        """
        existing = self.ratings.get(user_id, movie_id)
        if existing is None:
            raise NotFoundError("Rating", f"user={user_id} movie={movie_id}")

        self.ratings.delete(existing)
        self.db.commit()

        logger.info(
            "Rating deleted",
            extra={"extra_fields": {"user_id": user_id, "movie_id": movie_id}},
        )

        self._after_commit(user_id, movie_id)

    def get_rating(self, user_id: int, movie_id: int) -> Rating:
        existing = self.ratings.get(user_id, movie_id)
        if existing is None:
            raise NotFoundError("Rating", f"user={user_id} movie={movie_id}")
        return existing

    def list_ratings(self, user_id: int) -> list[Rating]:
        return self.ratings.find_by_user(user_id)


def rate_movie(db: Session, user_id: int, movie_id: int, rating: int, review: str | None = None) -> Rating:
    return RatingService(db).rate_movie(user_id, movie_id, rating, review)


def delete_rating(db: Session, user_id: int, movie_id: int) -> None:
    RatingService(db).delete_rating(user_id, movie_id)
