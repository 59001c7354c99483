from datetime import date

from pydantic import BaseModel

from movie_recs.models.movie import Movie
from movie_recs.services.bayesian import movie_bayesian_rating


class GenreResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class MovieSummary(BaseModel):
    id: int
    tmdb_id: int
    title: str
    overview: str | None = None
    release_date: date | None = None
    poster_path: str | None = None
    popularity: float | None = None

    # Raw aggregates and the smoothed rating derived from them
    avg_rating: float | None = None
    rating_count: int = 0
    bayesian_rating: float

    genres: list[GenreResponse] = []

    class Config:
        from_attributes = True

    @classmethod
    def from_movie(cls, movie: Movie) -> "MovieSummary":
        return cls(
            id=movie.id,
            tmdb_id=movie.tmdb_id,
            title=movie.title,
            overview=movie.overview,
            release_date=movie.release_date,
            poster_path=movie.poster_path,
            popularity=movie.popularity,
            avg_rating=movie.avg_rating,
            rating_count=movie.rating_count or 0,
            bayesian_rating=movie_bayesian_rating(movie),
            genres=[GenreResponse.model_validate(g) for g in movie.genres],
        )


class SimilarMovie(BaseModel):
    """A movie paired with its cosine similarity to a query vector."""

    movie_id: int
    tmdb_id: int
    title: str
    poster_path: str | None = None
    release_date: date | None = None
    avg_rating: float | None = None
    bayesian_rating: float
    similarity: float

    @classmethod
    def from_match(cls, movie: Movie, similarity: float) -> "SimilarMovie":
        return cls(
            movie_id=movie.id,
            tmdb_id=movie.tmdb_id,
            title=movie.title,
            poster_path=movie.poster_path,
            release_date=movie.release_date,
            avg_rating=movie.avg_rating,
            bayesian_rating=movie_bayesian_rating(movie),
            similarity=similarity,
        )


class BayesianRatingResponse(BaseModel):
    movie_id: int
    avg_rating: float | None
    rating_count: int
    bayesian_rating: float
