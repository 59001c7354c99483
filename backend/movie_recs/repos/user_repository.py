"""Repository for users and their preference vectors."""

from datetime import datetime

import numpy as np
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from movie_recs.models.rating import Rating
from movie_recs.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def save_preference_vector(self, user: User, vector: np.ndarray, computed_at: datetime) -> None:
        """Replace the user's stored preference vector. Flushes, does not commit."""
        user.preference_vector = vector
        user.preference_vector_updated_at = computed_at
        self.db.flush()

    def find_ids_with_stale_preference_vectors(self, cutoff: datetime) -> list[int]:
        """Users with at least one rating whose vector is missing or older than `cutoff`."""
        rated = select(Rating.user_id).distinct()
        rows = (
            self.db.query(User.id)
            .filter(
                User.id.in_(rated),
                or_(
                    User.preference_vector_updated_at.is_(None),
                    User.preference_vector_updated_at < cutoff,
                ),
            )
            .order_by(User.id)
            .all()
        )
        return [uid for (uid,) in rows]
