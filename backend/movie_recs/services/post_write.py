"""
Follow-up work after a rating write.

A rating write commits on its own; the derived data (movie aggregates and the
rater's preference vector) is refreshed afterwards by independent tasks. Each
task runs on its own session, and a failing task is logged and dropped so it
can neither undo the rating nor block the other task.
"""

from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from movie_recs.core.logging import get_context_logger
from movie_recs.repos.movie_repository import MovieRepository
from movie_recs.services.cache import clear_movie_result_caches, clear_recommendation_caches
from movie_recs.services.preference_vector import PreferenceVectorManager


@dataclass
class PostWriteTask:
    name: str
    run: Callable[[Session], None]
    context: dict


def refresh_movie_stats_task(movie_id: int) -> PostWriteTask:
    def run(db: Session) -> None:
        MovieRepository(db).refresh_rating_stats(movie_id)
        db.commit()
        # Content candidates and every result payload carry the old aggregates
        clear_movie_result_caches()

    return PostWriteTask("refresh_movie_stats", run, {"movie_id": movie_id})


def refresh_preference_vector_task(user_id: int) -> PostWriteTask:
    def run(db: Session) -> None:
        PreferenceVectorManager(db).recompute(user_id)
        # Results cached between the rating commit and now used the old vector
        clear_recommendation_caches()

    return PostWriteTask("refresh_preference_vector", run, {"user_id": user_id})


def rating_write_tasks(user_id: int, movie_id: int) -> list[PostWriteTask]:
    return [refresh_movie_stats_task(movie_id), refresh_preference_vector_task(user_id)]


def run_post_write_task(session_factory: sessionmaker, task: PostWriteTask) -> bool:
    """
    Run one task on a fresh session.

    Returns:
        True if the task completed, False if it failed
    """
    log = get_context_logger(__name__, task=task.name, **task.context)
    db = session_factory()
    try:
        task.run(db)
        log.debug(f"Post-write task completed: {task.name}")
        return True
    except Exception as e:
        db.rollback()
        log.error(
            f"Post-write task failed: {task.name}",
            extra={"extra_fields": {"error": str(e)}},
            exc_info=True,
        )
        return False
    finally:
        db.close()


def dispatch_post_write_tasks(session_factory: sessionmaker, tasks: list[PostWriteTask]) -> dict[str, bool]:
    """Run every task in turn; one failing never stops the rest."""
    return {task.name: run_post_write_task(session_factory, task) for task in tasks}
