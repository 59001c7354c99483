"""
User preference vectors.

A user's preference vector is the rating-weighted mean of the embeddings of
the movies they rated. It is always rebuilt from the full rating set, so a
recompute is idempotent and concurrent recomputes converge (last writer wins).
"""

from datetime import datetime, timedelta

import numpy as np
from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.database import utcnow
from movie_recs.core.exceptions import NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.models.user import User
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.repos.user_repository import UserRepository
from movie_recs.services.vectors import as_vector

settings = get_settings()
logger = get_logger(__name__)


def rating_weight(rating: int, weights: dict[int, float] | None = None) -> float:
    """Weight of a star rating; ratings missing from the table count as the default."""
    table = settings.RATING_WEIGHTS if weights is None else weights
    return table.get(rating, settings.DEFAULT_RATING_WEIGHT)


class PreferenceVectorManager:
    """Recomputes and stores user preference vectors."""

    def __init__(
        self,
        db: Session,
        weights: dict[int, float] | None = None,
        max_age_hours: int | None = None,
    ):
        self.db = db
        self.weights = weights if weights is not None else dict(settings.RATING_WEIGHTS)
        self.max_age = timedelta(
            hours=max_age_hours if max_age_hours is not None else settings.PREFERENCE_VECTOR_MAX_AGE_HOURS
        )
        self.users = UserRepository(db)
        self.ratings = RatingRepository(db)
        self.movies = MovieRepository(db)

    def compute(self, user_id: int) -> np.ndarray | None:
        """
        Weighted mean of the user's rated movie embeddings, without storing it.

        Returns:
            The vector, or None when none of the rated movies has an embedding
        """
        ratings = self.ratings.ratings_map(user_id)
        embeddings = self.movies.embeddings_by_ids(list(ratings))

        total = np.zeros(settings.EMBEDDING_DIMENSION, dtype=np.float64)
        weight_sum = 0.0
        # ratings_map is ordered by movie id, which fixes the summation order
        for movie_id, rating in ratings.items():
            embedding = embeddings.get(movie_id)
            if embedding is None:
                continue
            w = rating_weight(rating, self.weights)
            total += w * as_vector(embedding)
            weight_sum += w

        if weight_sum == 0:
            return None
        return total / weight_sum

    def recompute(self, user_id: int) -> np.ndarray | None:
        """
        Rebuild and persist a user's preference vector from all their ratings.

        When none of the rated movies has an embedding the stored vector is
        left untouched and None is returned.

        Raises:
            NotFoundError: if the user does not exist
        """
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        vector = self.compute(user_id)
        if vector is None:
            logger.info(
                "No rated movies with embeddings; preference vector not computed",
                extra={"extra_fields": {"user_id": user_id}},
            )
            return None

        self.users.save_preference_vector(user, vector, utcnow())
        self.db.commit()

        logger.debug(
            "Preference vector updated",
            extra={"extra_fields": {"user_id": user_id}},
        )
        return vector

    def needs_recompute(self, user: User, now: datetime | None = None) -> bool:
        """True when the user has no vector or it is older than the max age."""
        if user.preference_vector is None or user.preference_vector_updated_at is None:
            return True
        now = now or utcnow()
        return now - user.preference_vector_updated_at > self.max_age

    def current_vector(self, user_id: int) -> np.ndarray | None:
        """
        The user's preference vector, recomputed first when it is stale.

        Falls back to the stored vector if a recompute yields nothing.
        """
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        if self.needs_recompute(user):
            vector = self.recompute(user_id)
            if vector is not None:
                return vector

        if user.preference_vector is None:
            return None
        return as_vector(user.preference_vector)


def recompute_preference_vector(db: Session, user_id: int) -> np.ndarray | None:
    """Force a recompute of the user's preference vector."""
    return PreferenceVectorManager(db).recompute(user_id)
