"""Repository for catalog movies, their genre tags and embeddings."""

from datetime import datetime

import numpy as np
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from movie_recs.models.movie import Movie, movie_genres
from movie_recs.models.rating import Rating


class MovieRepository:
    """
    Repository for the movies table.

    Nearest-neighbour search runs in the database through pgvector's cosine
    distance operator on PostgreSQL. Other dialects (SQLite in tests) fall back
    to an exact NumPy scan with the same ordering.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, movie_id: int) -> Movie | None:
        return self.db.query(Movie).filter(Movie.id == movie_id).first()

    def find_by_ids(self, movie_ids: list[int]) -> list[Movie]:
        """Load movies, preserving the order of `movie_ids`. Unknown ids are skipped."""
        if not movie_ids:
            return []
        movies = self.db.query(Movie).filter(Movie.id.in_(movie_ids)).all()
        by_id = {m.id: m for m in movies}
        return [by_id[mid] for mid in movie_ids if mid in by_id]

    def find_by_genres(self, genre_ids: list[int], limit: int) -> list[Movie]:
        """
        Movies tagged with any of the given genres, best rated first.

        Each movie appears once, however many of the genres it carries.
        """
        if not genre_ids:
            return []

        tagged = select(movie_genres.c.movie_id).where(movie_genres.c.genre_id.in_(genre_ids))
        return (
            self.db.query(Movie)
            .filter(Movie.id.in_(tagged))
            .order_by(
                Movie.avg_rating.desc().nulls_last(),
                Movie.popularity.desc().nulls_last(),
                Movie.id,
            )
            .limit(limit)
            .all()
        )

    def find_popular(self, limit: int) -> list[Movie]:
        return (
            self.db.query(Movie)
            .order_by(Movie.popularity.desc().nulls_last(), Movie.id)
            .limit(limit)
            .all()
        )

    def genre_ids_by_movie(self, movie_ids: list[int]) -> dict[int, list[int]]:
        """Genre tags for the given movies as {movie_id: [genre_id, ...]}."""
        result: dict[int, list[int]] = {}
        if not movie_ids:
            return result

        rows = self.db.execute(
            select(movie_genres.c.movie_id, movie_genres.c.genre_id)
            .where(movie_genres.c.movie_id.in_(movie_ids))
            .order_by(movie_genres.c.movie_id, movie_genres.c.genre_id)
        ).all()
        for movie_id, genre_id in rows:
            result.setdefault(movie_id, []).append(genre_id)
        return result

    def embeddings_by_ids(self, movie_ids: list[int]) -> dict[int, np.ndarray]:
        """Stored embeddings for the given movies; movies without one are omitted."""
        if not movie_ids:
            return {}
        rows = (
            self.db.query(Movie.id, Movie.embedding)
            .filter(Movie.id.in_(movie_ids), Movie.embedding.isnot(None))
            .all()
        )
        return {movie_id: np.asarray(emb, dtype=np.float64) for movie_id, emb in rows}

    def find_by_embedding_knn(
        self, vector: np.ndarray, exclude_ids: set[int], limit: int
    ) -> list[tuple[Movie, float]]:
        """
        Movies nearest to `vector` by cosine similarity.

        Args:
            vector: Query embedding (already validated by the caller)
            exclude_ids: Movie ids that must not appear; never empty
            limit: Maximum number of results

        Returns:
            (movie, similarity) pairs, similarity descending, ties by movie id
        """
        if self.db.get_bind().dialect.name == "postgresql":
            distance = Movie.embedding.cosine_distance(vector)
            rows = (
                self.db.query(Movie, distance.label("distance"))
                .filter(Movie.embedding.isnot(None), Movie.id.notin_(sorted(exclude_ids)))
                .order_by(distance, Movie.id)
                .limit(limit)
                .all()
            )
            return [(movie, _finite(1.0 - float(dist))) for movie, dist in rows]

        return self._knn_scan(vector, exclude_ids, limit)

    def _knn_scan(
        self, vector: np.ndarray, exclude_ids: set[int], limit: int
    ) -> list[tuple[Movie, float]]:
        rows = (
            self.db.query(Movie.id, Movie.embedding)
            .filter(Movie.embedding.isnot(None), Movie.id.notin_(sorted(exclude_ids)))
            .all()
        )
        if not rows:
            return []

        ids = [movie_id for movie_id, _ in rows]
        matrix = np.vstack([np.asarray(emb, dtype=np.float64) for _, emb in rows])
        query = np.asarray(vector, dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        with np.errstate(divide="ignore", invalid="ignore"):
            sims = np.where(norms > 0, dots / norms, 0.0)

        scored = sorted(zip(ids, sims.tolist()), key=lambda x: (-x[1], x[0]))[:limit]
        movies = self.find_by_ids([movie_id for movie_id, _ in scored])
        return [(movie, _finite(sim)) for movie, (_, sim) in zip(movies, scored)]

    def refresh_rating_stats(self, movie_id: int) -> None:
        """
        Recompute avg_rating and rating_count from the ratings table.

        Issued as a single UPDATE with subqueries so concurrent rating writes
        cannot lose an update. Flushes, does not commit.
        """
        avg_rating = (
            select(func.avg(Rating.rating)).where(Rating.movie_id == Movie.id).scalar_subquery()
        )
        rating_count = (
            select(func.count(Rating.id)).where(Rating.movie_id == Movie.id).scalar_subquery()
        )
        self.db.query(Movie).filter(Movie.id == movie_id).update(
            {Movie.avg_rating: avg_rating, Movie.rating_count: rating_count},
            synchronize_session=False,
        )

    def find_needing_embeddings(self, stale_before: datetime, limit: int | None = None) -> list[Movie]:
        """Movies with no embedding, or one generated before `stale_before`."""
        query = (
            self.db.query(Movie)
            .filter(
                or_(
                    Movie.embedding.is_(None),
                    Movie.embedding_generated_at.is_(None),
                    Movie.embedding_generated_at < stale_before,
                )
            )
            .order_by(Movie.id)
        )
        if limit:
            query = query.limit(limit)
        return query.all()


def _finite(value: float) -> float:
    # NaN would break ordering and JSON encoding downstream
    return value if np.isfinite(value) else 0.0
