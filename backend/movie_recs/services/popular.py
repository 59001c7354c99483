"""Popularity fallback for users without enough signal."""

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.logging import get_logger
from movie_recs.repos.bookmark_repository import BookmarkRepository
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.schemas.movie import MovieSummary

settings = get_settings()
logger = get_logger(__name__)


def get_popular_movies(db: Session, user_id: int, limit: int) -> list[MovieSummary]:
    """Most popular catalog movies, minus the user's bookmarks."""
    if limit <= 0:
        return []

    bookmarked = BookmarkRepository(db).movie_ids_for_user(user_id)
    candidates = MovieRepository(db).find_popular(limit * settings.POPULAR_OVERSAMPLE_FACTOR)

    logger.debug(
        "Popular movies",
        extra={"extra_fields": {"user_id": user_id, "candidates": len(candidates)}},
    )
    return [MovieSummary.from_movie(m) for m in candidates if m.id not in bookmarked][:limit]
