"""
Pytest configuration and fixtures for backend tests.
"""

from typing import Callable, Generator

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from movie_recs.core.database import Base, get_db, get_session_factory
from movie_recs.main import app
from movie_recs.models.movie import Genre, Keyword, Movie, movie_genres, movie_keywords
from movie_recs.models.rating import Bookmark, Rating
from movie_recs.models.user import User
from movie_recs.services.cache import clear_all_caches
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider, get_embedding_provider

from helpers import embedding_transport, vec

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fresh_caches():
    """Result caches are process-wide; start every test empty."""
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def session_factory() -> sessionmaker:
    return TestingSessionLocal


@pytest.fixture
def provider_vector() -> np.ndarray:
    """Vector the mocked embedding provider returns for any text."""
    return vec(d1=1.0)


@pytest.fixture
def embedding_provider(provider_vector) -> Generator[OllamaEmbeddingProvider, None, None]:
    provider = OllamaEmbeddingProvider(
        base_url="http://ollama.test", transport=embedding_transport(provider_vector)
    )
    yield provider
    provider.close()


@pytest.fixture(scope="function")
def client(db: Session, embedding_provider) -> Generator[TestClient, None, None]:
    """Create a test client with database and embedding provider overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_embedding_provider] = lambda: embedding_provider

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(username: str | None = None) -> User:
        counter["n"] += 1
        name = username or f"user{counter['n']}"
        user = User(username=name, email=f"{name}@example.com")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_movie(db: Session) -> Callable[..., Movie]:
    counter = {"n": 0}

    def _make(
        title: str | None = None,
        popularity: float | None = None,
        avg_rating: float | None = None,
        rating_count: int = 0,
        embedding: np.ndarray | None = None,
        genres: list[Genre] | None = None,
        overview: str | None = None,
    ) -> Movie:
        counter["n"] += 1
        movie = Movie(
            tmdb_id=1000 + counter["n"],
            title=title or f"Movie {counter['n']}",
            overview=overview,
            popularity=popularity,
            avg_rating=avg_rating,
            rating_count=rating_count,
            embedding=embedding,
        )
        db.add(movie)
        db.commit()
        for genre in genres or []:
            db.execute(movie_genres.insert().values(movie_id=movie.id, genre_id=genre.id))
        db.commit()
        db.refresh(movie)
        return movie

    return _make


@pytest.fixture
def genres(db: Session) -> dict[str, Genre]:
    """Drama, Comedy, Horror, Sci-Fi, Romance, Thriller (ids in that order)."""
    names = ["Drama", "Comedy", "Horror", "Sci-Fi", "Romance", "Thriller"]
    created = {}
    for i, name in enumerate(names, 1):
        genre = Genre(tmdb_id=i, name=name)
        db.add(genre)
        created[name] = genre
    db.commit()
    for genre in created.values():
        db.refresh(genre)
    return created


@pytest.fixture
def make_keyword(db: Session) -> Callable[..., Keyword]:
    counter = {"n": 0}

    def _make(name: str, movie: Movie | None = None) -> Keyword:
        counter["n"] += 1
        keyword = Keyword(tmdb_id=counter["n"], name=name)
        db.add(keyword)
        db.commit()
        if movie is not None:
            db.execute(movie_keywords.insert().values(movie_id=movie.id, keyword_id=keyword.id))
            db.commit()
        db.refresh(keyword)
        return keyword

    return _make


@pytest.fixture
def rate(db: Session) -> Callable[[User, Movie, int], Rating]:
    """Insert a rating directly, bypassing the rating service."""

    def _rate(user: User, movie: Movie, value: int) -> Rating:
        rating = Rating(user_id=user.id, movie_id=movie.id, rating=value)
        db.add(rating)
        db.commit()
        return rating

    return _rate


@pytest.fixture
def bookmark(db: Session) -> Callable[[User, Movie], Bookmark]:
    def _bookmark(user: User, movie: Movie) -> Bookmark:
        entry = Bookmark(user_id=user.id, movie_id=movie.id)
        db.add(entry)
        db.commit()
        return entry

    return _bookmark
