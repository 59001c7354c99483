"""Tests for preference vector maintenance."""

from datetime import timedelta

import numpy as np
import pytest

from movie_recs.core.database import utcnow
from movie_recs.core.exceptions import NotFoundError
from movie_recs.models.user import User
from movie_recs.services.preference_vector import PreferenceVectorManager, rating_weight

from helpers import vec


class TestRatingWeight:
    def test_default_table(self):
        assert rating_weight(5) == 2.0
        assert rating_weight(4) == 1.5
        assert rating_weight(3) == 1.0
        assert rating_weight(2) == 0.5
        assert rating_weight(1) == 0.5

    def test_unmapped_rating_uses_default(self):
        assert rating_weight(7) == 1.0

    def test_override_table(self):
        assert rating_weight(5, {5: 10.0}) == 10.0
        assert rating_weight(4, {5: 10.0}) == 1.0


class TestRecompute:
    """Test preference vector computation."""

    def test_weighted_mean_of_rated_embeddings(self, db, make_user, make_movie, rate):
        """A 5-star and a 1-star rating weigh 2.0 and 0.5."""
        user = make_user()
        loved = make_movie(embedding=vec(d0=1.0))
        disliked = make_movie(embedding=vec(d1=1.0))
        rate(user, loved, 5)
        rate(user, disliked, 1)

        vector = PreferenceVectorManager(db).recompute(user.id)

        assert vector[0] == pytest.approx(0.8)
        assert vector[1] == pytest.approx(0.2)
        assert np.count_nonzero(vector) == 2

    def test_stores_vector_and_timestamp(self, db, make_user, make_movie, rate):
        user = make_user()
        rate(user, make_movie(embedding=vec(d3=2.0)), 4)

        PreferenceVectorManager(db).recompute(user.id)

        db.expire_all()
        stored = db.get(User, user.id)
        assert stored.preference_vector is not None
        assert stored.preference_vector[3] == pytest.approx(2.0)
        assert stored.preference_vector_updated_at is not None

    def test_movies_without_embeddings_are_skipped(self, db, make_user, make_movie, rate):
        user = make_user()
        rate(user, make_movie(embedding=vec(d0=1.0)), 3)
        rate(user, make_movie(), 5)

        vector = PreferenceVectorManager(db).recompute(user.id)

        assert vector[0] == pytest.approx(1.0)

    def test_no_embeddings_returns_none_and_keeps_stored_vector(
        self, db, make_user, make_movie, rate
    ):
        user = make_user()
        user.preference_vector = vec(d9=1.0)
        user.preference_vector_updated_at = utcnow() - timedelta(days=3)
        db.commit()
        rate(user, make_movie(), 5)

        assert PreferenceVectorManager(db).recompute(user.id) is None

        db.expire_all()
        stored = db.get(User, user.id)
        assert stored.preference_vector[9] == pytest.approx(1.0)

    def test_user_without_ratings(self, db, make_user):
        user = make_user()
        assert PreferenceVectorManager(db).recompute(user.id) is None

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            PreferenceVectorManager(db).recompute(404)

    def test_idempotent(self, db, make_user, make_movie, rate):
        user = make_user()
        rate(user, make_movie(embedding=vec(d0=0.3, d1=0.7)), 5)
        rate(user, make_movie(embedding=vec(d2=1.0)), 2)
        manager = PreferenceVectorManager(db)

        first = manager.recompute(user.id)
        second = manager.recompute(user.id)

        np.testing.assert_allclose(first, second)

    def test_custom_weights(self, db, make_user, make_movie, rate):
        user = make_user()
        rate(user, make_movie(embedding=vec(d0=1.0)), 5)
        rate(user, make_movie(embedding=vec(d1=1.0)), 1)

        vector = PreferenceVectorManager(db, weights={5: 1.0, 1: 1.0}).recompute(user.id)

        assert vector[0] == pytest.approx(0.5)
        assert vector[1] == pytest.approx(0.5)


class TestStaleness:
    """Test when a stored vector is due for recompute."""

    def test_missing_vector_is_stale(self, db, make_user):
        user = make_user()
        assert PreferenceVectorManager(db).needs_recompute(user)

    def test_fresh_vector(self, db, make_user):
        user = make_user()
        now = utcnow()
        user.preference_vector = vec(d0=1.0)
        user.preference_vector_updated_at = now - timedelta(hours=2)

        assert not PreferenceVectorManager(db).needs_recompute(user, now)

    def test_vector_older_than_max_age(self, db, make_user):
        user = make_user()
        now = utcnow()
        user.preference_vector = vec(d0=1.0)
        user.preference_vector_updated_at = now - timedelta(hours=25)

        assert PreferenceVectorManager(db).needs_recompute(user, now)

    def test_current_vector_recomputes_stale(self, db, make_user, make_movie, rate):
        user = make_user()
        user.preference_vector = vec(d9=1.0)
        user.preference_vector_updated_at = utcnow() - timedelta(days=2)
        db.commit()
        rate(user, make_movie(embedding=vec(d0=1.0)), 5)

        vector = PreferenceVectorManager(db).current_vector(user.id)

        assert vector[0] == pytest.approx(1.0)
        assert vector[9] == 0.0
