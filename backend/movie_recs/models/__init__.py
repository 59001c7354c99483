from movie_recs.models.movie import Genre, Keyword, Movie, movie_genres, movie_keywords
from movie_recs.models.rating import Bookmark, Rating
from movie_recs.models.user import User

__all__ = [
    "User",
    "Movie",
    "Genre",
    "Keyword",
    "Rating",
    "Bookmark",
    "movie_genres",
    "movie_keywords",
]
