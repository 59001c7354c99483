"""Repository for reading and writing user ratings."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from movie_recs.core.database import utcnow
from movie_recs.core.logging import get_logger
from movie_recs.models.rating import Rating

logger = get_logger(__name__)


class RatingRepository:
    """
    Repository for the ratings table.

    Writes are flushed but never committed here; the calling service owns
    the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int, movie_id: int) -> Rating | None:
        return (
            self.db.query(Rating)
            .filter(Rating.user_id == user_id, Rating.movie_id == movie_id)
            .first()
        )

    def find_by_user(self, user_id: int) -> list[Rating]:
        """All of a user's ratings, ordered by movie id."""
        return (
            self.db.query(Rating)
            .filter(Rating.user_id == user_id)
            .order_by(Rating.movie_id)
            .all()
        )

    def find_by_movie(self, movie_id: int) -> list[Rating]:
        return (
            self.db.query(Rating)
            .filter(Rating.movie_id == movie_id)
            .order_by(Rating.user_id)
            .all()
        )

    def ratings_map(self, user_id: int) -> dict[int, int]:
        """Get a user's ratings as {movie_id: rating}."""
        rows = (
            self.db.query(Rating.movie_id, Rating.rating)
            .filter(Rating.user_id == user_id)
            .order_by(Rating.movie_id)
            .all()
        )
        return {movie_id: rating for movie_id, rating in rows}

    def count_by_user(self, user_id: int) -> int:
        return self.db.query(func.count(Rating.id)).filter(Rating.user_id == user_id).scalar() or 0

    def average_rating(self, movie_id: int) -> float | None:
        avg = self.db.query(func.avg(Rating.rating)).filter(Rating.movie_id == movie_id).scalar()
        return float(avg) if avg is not None else None

    def find_users_with_common_ratings(
        self, user_id: int, movie_ids: set[int] | list[int], min_common: int
    ) -> list[int]:
        """
        Get IDs of other users who rated at least `min_common` of the given movies.

        Returns:
            User ids in ascending order
        """
        if not movie_ids:
            return []

        rows = (
            self.db.query(Rating.user_id)
            .filter(
                Rating.movie_id.in_(sorted(movie_ids)),
                Rating.user_id != user_id,
            )
            .group_by(Rating.user_id)
            .having(func.count(func.distinct(Rating.movie_id)) >= min_common)
            .order_by(Rating.user_id)
            .all()
        )
        return [uid for (uid,) in rows]

    def ratings_by_users(self, user_ids: list[int]) -> dict[int, dict[int, int]]:
        """Load ratings for several users at once as {user_id: {movie_id: rating}}."""
        result: dict[int, dict[int, int]] = {uid: {} for uid in user_ids}
        if not user_ids:
            return result

        rows = (
            self.db.query(Rating.user_id, Rating.movie_id, Rating.rating)
            .filter(Rating.user_id.in_(user_ids))
            .order_by(Rating.user_id, Rating.movie_id)
            .all()
        )
        for uid, movie_id, rating in rows:
            result[uid][movie_id] = rating
        return result

    def upsert(self, user_id: int, movie_id: int, rating: int, review: str | None = None) -> Rating:
        """Create the user's rating for a movie, or overwrite the existing one."""
        existing = self.get(user_id, movie_id)
        if existing:
            existing.rating = rating
            existing.review = review
            existing.updated_at = utcnow()
            self.db.flush()
            return existing

        new_rating = Rating(user_id=user_id, movie_id=movie_id, rating=rating, review=review)
        self.db.add(new_rating)
        self.db.flush()
        logger.debug(
            "Rating created",
            extra={"extra_fields": {"user_id": user_id, "movie_id": movie_id, "rating": rating}},
        )
        return new_rating

    def delete(self, rating: Rating) -> None:
        self.db.delete(rating)
        self.db.flush()
