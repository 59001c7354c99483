from datetime import date, datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movie_recs.core.config import get_settings
from movie_recs.core.database import Base, utcnow

EMBEDDING_DIMENSION = get_settings().EMBEDDING_DIMENSION


# Association tables. Rows are only added or removed through
# catalog_service so that the denormalized movie_count stays in step.
movie_genres = Table(
    "movie_genres",
    Base.metadata,
    Column("movie_id", Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)

movie_keywords = Table(
    "movie_keywords",
    Base.metadata,
    Column("movie_id", Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
    Column("keyword_id", Integer, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True),
)


class Movie(Base):
    """Catalog movie record as consumed by the recommendation engine."""

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)

    # Metadata
    title: Mapped[str] = mapped_column(String(500), index=True)
    overview: Mapped[str | None] = mapped_column(Text)
    release_date: Mapped[date | None] = mapped_column(Date)
    poster_path: Mapped[str | None] = mapped_column(String(255))
    popularity: Mapped[float | None] = mapped_column(Float, index=True)

    # Aggregates maintained from the ratings table (raw, unsmoothed)
    avg_rating: Mapped[float | None] = mapped_column(Float, index=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0)

    # Semantic embedding of title/overview/genres/keywords
    embedding = Column(Vector(EMBEDDING_DIMENSION), nullable=True)
    embedding_generated_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Read-only views of the associations; writes go through catalog_service
    genres: Mapped[list["Genre"]] = relationship(
        secondary=movie_genres, viewonly=True, order_by="Genre.id"
    )
    keywords: Mapped[list["Keyword"]] = relationship(
        secondary=movie_keywords, viewonly=True, order_by="Keyword.id"
    )


class Genre(Base):
    """Movie genre with a denormalized count of tagged movies."""

    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    movie_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    movies: Mapped[list["Movie"]] = relationship(
        secondary=movie_genres, viewonly=True
    )


class Keyword(Base):
    """TMDb keyword with a denormalized count of tagged movies."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    movie_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    movies: Mapped[list["Movie"]] = relationship(
        secondary=movie_keywords, viewonly=True
    )
