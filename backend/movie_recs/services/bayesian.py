"""
Bayesian rating smoothing.

Pulls a movie's raw average toward a global prior so that a handful of
ratings cannot push an obscure title to the top:

    WR = (v / (v + m)) * R + (m / (v + m)) * C

where R is the raw average, v the vote count, m the prior vote count and C
the prior mean.
"""

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.exceptions import InvalidInputError, NotFoundError
from movie_recs.models.movie import Movie
from movie_recs.repos.movie_repository import MovieRepository

settings = get_settings()


def smooth(
    raw_average: float | None,
    vote_count: int | None,
    prior_votes: int | None = None,
    prior_mean: float | None = None,
) -> float:
    """
    Smoothed rating for a movie, rounded to 2 decimals.

    With no votes the result is exactly the prior mean.
    """
    m = settings.BAYESIAN_MIN_VOTES if prior_votes is None else prior_votes
    c = settings.BAYESIAN_GLOBAL_MEAN if prior_mean is None else prior_mean
    v = vote_count or 0

    if v < 0 or m < 0:
        raise InvalidInputError("vote counts must be non-negative")
    if v == 0 or raw_average is None:
        return round(c, 2)

    weighted = (v / (v + m)) * raw_average + (m / (v + m)) * c
    return round(weighted, 2)


def movie_bayesian_rating(movie: Movie) -> float:
    """Smoothed rating from a movie's stored aggregates."""
    return smooth(movie.avg_rating, movie.rating_count)


def bayesian_rating(db: Session, movie_id: int) -> float:
    """Smoothed rating for a movie, looked up by id."""
    movie = MovieRepository(db).find_by_id(movie_id)
    if movie is None:
        raise NotFoundError("Movie", movie_id)
    return movie_bayesian_rating(movie)
