"""Repository for user bookmarks."""

from sqlalchemy.orm import Session

from movie_recs.models.rating import Bookmark


class BookmarkRepository:
    def __init__(self, db: Session):
        self.db = db

    def movie_ids_for_user(self, user_id: int) -> set[int]:
        """Ids of every movie the user has bookmarked."""
        rows = self.db.query(Bookmark.movie_id).filter(Bookmark.user_id == user_id).all()
        return {movie_id for (movie_id,) in rows}

    def add(self, user_id: int, movie_id: int) -> Bookmark:
        existing = (
            self.db.query(Bookmark)
            .filter(Bookmark.user_id == user_id, Bookmark.movie_id == movie_id)
            .first()
        )
        if existing:
            return existing

        bookmark = Bookmark(user_id=user_id, movie_id=movie_id)
        self.db.add(bookmark)
        self.db.flush()
        return bookmark
