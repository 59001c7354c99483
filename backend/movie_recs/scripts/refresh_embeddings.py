"""
Batch job for refreshing embeddings.

1. Generates embeddings for movies that have none, or whose embedding is
   older than EMBEDDING_MAX_AGE_DAYS
2. Recomputes preference vectors older than PREFERENCE_VECTOR_MAX_AGE_HOURS

Run with: python -m movie_recs.scripts.refresh_embeddings
"""

import argparse
import time
from datetime import timedelta

from sqlalchemy.orm import Session

from movie_recs.core.config import get_settings
from movie_recs.core.database import SessionLocal, utcnow
from movie_recs.core.logging import setup_logging
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.repos.user_repository import UserRepository
from movie_recs.services.embedding_provider import OllamaEmbeddingProvider
from movie_recs.services.movie_embedding import generate_movie_embedding
from movie_recs.services.preference_vector import PreferenceVectorManager

settings = get_settings()


def progress_callback(current: int, total: int):
    """Print progress updates."""
    percent = int(current / total * 100)
    bar_length = 40
    filled = int(bar_length * current / total)
    bar = "█" * filled + "░" * (bar_length - filled)
    print(f"\r  [{bar}] {percent}% ({current}/{total})", end="", flush=True)


def refresh_movie_embeddings(
    db: Session,
    provider: OllamaEmbeddingProvider,
    limit: int | None = None,
    progress=None,
) -> dict:
    """Embed every movie that is missing an embedding or has a stale one."""
    stale_before = utcnow() - timedelta(days=settings.EMBEDDING_MAX_AGE_DAYS)
    movie_ids = [m.id for m in MovieRepository(db).find_needing_embeddings(stale_before, limit)]

    stats = {"movies_checked": len(movie_ids), "movies_embedded": 0, "movies_failed": 0}
    for i, movie_id in enumerate(movie_ids, 1):
        if generate_movie_embedding(db, provider, movie_id):
            stats["movies_embedded"] += 1
        else:
            stats["movies_failed"] += 1
        if progress:
            progress(i, len(movie_ids))
    return stats


def refresh_preference_vectors(db: Session, progress=None) -> dict:
    """Recompute every stale preference vector of a user with ratings."""
    cutoff = utcnow() - timedelta(hours=settings.PREFERENCE_VECTOR_MAX_AGE_HOURS)
    user_ids = UserRepository(db).find_ids_with_stale_preference_vectors(cutoff)
    manager = PreferenceVectorManager(db)

    stats = {"users_checked": len(user_ids), "vectors_updated": 0, "vectors_skipped": 0}
    for i, user_id in enumerate(user_ids, 1):
        if manager.recompute(user_id) is not None:
            stats["vectors_updated"] += 1
        else:
            stats["vectors_skipped"] += 1
        if progress:
            progress(i, len(user_ids))
    return stats


def main():
    parser = argparse.ArgumentParser(description="Refresh movie embeddings and user preference vectors")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of movies to embed")
    parser.add_argument(
        "--skip-movies", action="store_true", help="Only recompute user preference vectors"
    )
    args = parser.parse_args()

    setup_logging()
    print("Starting embedding refresh...\n")
    start_time = time.time()

    db = SessionLocal()
    provider = OllamaEmbeddingProvider()

    try:
        if not args.skip_movies:
            if not provider.check_connection():
                print(f"✗ Embedding provider not reachable at {settings.OLLAMA_BASE_URL}")
                return 1

            print("Embedding movies...")
            movie_stats = refresh_movie_embeddings(db, provider, args.limit, progress_callback)
            print()
            print(f"Movies checked: {movie_stats['movies_checked']}")
            print(f"Movies embedded: {movie_stats['movies_embedded']}")
            print(f"Movies failed: {movie_stats['movies_failed']}")

        print("\nRecomputing stale preference vectors...")
        user_stats = refresh_preference_vectors(db, progress_callback)
        print()
        print(f"Users checked: {user_stats['users_checked']}")
        print(f"Vectors updated: {user_stats['vectors_updated']}")
        print(f"Users without embedded ratings: {user_stats['vectors_skipped']}")

        elapsed = time.time() - start_time
        print(f"\n✓ Refresh complete in {elapsed:.1f} seconds")
        return 0

    except Exception as e:
        print(f"\n✗ Error during refresh: {e}")
        raise

    finally:
        provider.close()
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
