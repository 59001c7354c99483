"""
Movie embedding generation.

A movie's embedding is computed from one line of text:

    "<title>. <overview>. Genres: a, b. Keywords: x, y."

with at most MAX_KEYWORDS keywords.
"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.database import utcnow
from movie_recs.core.exceptions import NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.models.movie import Movie
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.services.cache import clear_vector_caches
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider
from movie_recs.services.vectors import is_zero

settings = get_settings()
logger = get_logger(__name__)

MAX_KEYWORDS = 10


def build_movie_text(movie: Movie) -> str:
    """Text representation of a movie for embedding."""
    parts = []
    if movie.title:
        parts.append(f"{movie.title}. ")
    if movie.overview:
        parts.append(f"{movie.overview}. ")
    if movie.genres:
        parts.append("Genres: " + ", ".join(g.name for g in movie.genres) + ". ")
    if movie.keywords:
        names = [k.name for k in movie.keywords[:MAX_KEYWORDS]]
        parts.append("Keywords: " + ", ".join(names) + ". ")
    return "".join(parts).strip()


def needs_embedding_regeneration(movie: Movie, now: datetime | None = None) -> bool:
    """True when the movie has no embedding or it is older than EMBEDDING_MAX_AGE_DAYS."""
    if movie.embedding is None or movie.embedding_generated_at is None:
        return True
    now = now or utcnow()
    return movie.embedding_generated_at < now - timedelta(days=settings.EMBEDDING_MAX_AGE_DAYS)


def generate_movie_embedding(
    db: Session, provider: OllamaEmbeddingProvider, movie_id: int
) -> bool:
    """
    Embed a movie and store the result.

    A zero vector from the provider means it failed; nothing is stored so
    the movie stays out of similarity search until the next attempt.

    Returns:
        True if a new embedding was saved
    """
    movie = MovieRepository(db).find_by_id(movie_id)
    if movie is None:
        raise NotFoundError("Movie", movie_id)

    text = build_movie_text(movie)
    embedding = provider.embed(text)
    if is_zero(embedding):
        logger.warning(
            "Embedding unavailable, movie left unchanged",
            extra={"extra_fields": {"movie_id": movie_id, "title": movie.title}},
        )
        return False

    movie.embedding = embedding
    movie.embedding_generated_at = utcnow()
    db.commit()
    clear_vector_caches()

    logger.info(
        "Generated movie embedding",
        extra={"extra_fields": {"movie_id": movie_id, "chars": len(text)}},
    )
    return True
