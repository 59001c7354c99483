"""Tests for Bayesian rating smoothing."""

import pytest

from movie_recs.core.exceptions import NotFoundError
from movie_recs.services.bayesian import bayesian_rating, smooth


class TestSmooth:
    """Test the weighted rating formula."""

    def test_reference_value(self):
        """avg 4.0 over 25 votes with a 25-vote prior at 3.5 gives 3.75."""
        assert smooth(4.0, 25, prior_votes=25, prior_mean=3.5) == 3.75

    def test_no_votes_returns_prior_mean(self):
        assert smooth(5.0, 0, prior_votes=25, prior_mean=3.5) == 3.5
        assert smooth(None, 0) == 3.5

    def test_result_between_raw_and_prior(self):
        """Smoothed value always lies between the raw average and the prior."""
        for raw in (1.0, 2.2, 3.5, 4.8, 5.0):
            for votes in (1, 3, 25, 400):
                result = smooth(raw, votes, prior_votes=25, prior_mean=3.5)
                assert min(raw, 3.5) - 0.005 <= result <= max(raw, 3.5) + 0.005

    def test_more_votes_moves_toward_raw_average(self):
        few = smooth(5.0, 2)
        many = smooth(5.0, 2000)
        assert few < many
        assert many == pytest.approx(5.0, abs=0.02)

    def test_rounded_to_two_decimals(self):
        result = smooth(4.123, 7, prior_votes=25, prior_mean=3.5)
        assert result == round(result, 2)

    def test_uses_configured_priors_by_default(self):
        assert smooth(4.0, 25) == smooth(4.0, 25, prior_votes=25, prior_mean=3.5)


class TestBayesianRatingLookup:
    """Test smoothing of stored movie aggregates."""

    def test_reads_stored_aggregates(self, db, make_movie):
        movie = make_movie(avg_rating=4.0, rating_count=25)
        assert bayesian_rating(db, movie.id) == 3.75

    def test_unrated_movie_gets_prior(self, db, make_movie):
        movie = make_movie()
        assert bayesian_rating(db, movie.id) == 3.5

    def test_unknown_movie(self, db):
        with pytest.raises(NotFoundError):
            bayesian_rating(db, 999)
