from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movie_recs.core.database import Base, utcnow


class Rating(Base):
    """User rating for a movie. One row per (user, movie)."""

    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="unique_user_movie_rating"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id", ondelete="CASCADE"), index=True)

    rating: Mapped[int] = mapped_column(Integer)  # 1-5 stars
    review: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship()
    movie: Mapped["Movie"] = relationship()


class Bookmark(Base):
    """Movie saved by a user for later. Bookmarked movies are never recommended."""

    __tablename__ = "bookmarks"
    __table_args__ = (UniqueConstraint("user_id", "movie_id", name="unique_user_movie_bookmark"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id", ondelete="CASCADE"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# Forward references
from movie_recs.models.movie import Movie  # noqa: E402, F811
from movie_recs.models.user import User  # noqa: E402, F811
