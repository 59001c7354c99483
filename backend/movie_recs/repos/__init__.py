"""Repository classes"""

from movie_recs.repos.bookmark_repository import BookmarkRepository
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.rating_repository import RatingRepository
from movie_recs.repos.user_repository import UserRepository

__all__ = [
    "RatingRepository",
    "MovieRepository",
    "BookmarkRepository",
    "UserRepository",
]
