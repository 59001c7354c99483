from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from movie_recs.core.database import get_db
from movie_recs.core.exceptions import NotFoundError
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.schemas.movie import BayesianRatingResponse, MovieSummary, SimilarMovie
from movie_recs.services import vector_search
from movie_recs.services.bayesian import movie_bayesian_rating
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider, get_embedding_provider

router = APIRouter()


@router.get("/search/semantic", response_model=list[SimilarMovie])
def semantic_search(
    q: str = Query(..., min_length=1, max_length=500),
    db: Session = Depends(get_db),
    provider: OllamaEmbeddingProvider = Depends(get_embedding_provider),
    limit: int = Query(10, ge=1, le=50),
):
    """
    Search movies by meaning rather than keywords.

    Returns an empty list when the embedding service is unavailable.
    """
    return vector_search.semantic_search(db, provider, q, limit)


@router.get("/{movie_id}", response_model=MovieSummary)
def get_movie(movie_id: int, db: Session = Depends(get_db)):
    movie = MovieRepository(db).find_by_id(movie_id)
    if movie is None:
        raise NotFoundError("Movie", movie_id)
    return MovieSummary.from_movie(movie)


@router.get("/{movie_id}/similar", response_model=list[SimilarMovie])
def get_similar_movies(
    movie_id: int,
    db: Session = Depends(get_db),
    limit: int = Query(10, ge=1, le=50),
):
    """Movies closest to this one in embedding space."""
    return vector_search.find_similar_movies(db, movie_id, limit)


@router.get("/{movie_id}/bayesian-rating", response_model=BayesianRatingResponse)
def get_bayesian_rating(movie_id: int, db: Session = Depends(get_db)):
    movie = MovieRepository(db).find_by_id(movie_id)
    if movie is None:
        raise NotFoundError("Movie", movie_id)
    return BayesianRatingResponse(
        movie_id=movie.id,
        avg_rating=movie.avg_rating,
        rating_count=movie.rating_count or 0,
        bayesian_rating=movie_bayesian_rating(movie),
    )
