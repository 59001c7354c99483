from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from movie_recs.core.config import get_settings
from movie_recs.core.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), index=True)

    # Taste profile: weighted mean of rated movie embeddings.
    # Always recomputed from the full rating set, never patched.
    preference_vector = Column(Vector(get_settings().EMBEDDING_DIMENSION), nullable=True)
    preference_vector_updated_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
