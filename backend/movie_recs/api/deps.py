"""
Shared route dependencies.

Authentication happens upstream: the gateway verifies the caller and forwards
their user id in the X-User-Id header.
"""

from fastapi import BackgroundTasks, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker

from movie_recs.core.database import get_db, get_session_factory
from movie_recs.core.logging import user_id_var
from movie_recs.services.post_write import run_post_write_task
from movie_recs.services.rating_service import RatingService


def get_current_user_id(x_user_id: str | None = Header(None)) -> int:
    """Caller's user id from the gateway header."""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )

    user_id_var.set(user_id)
    return user_id


def get_rating_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> RatingService:
    """RatingService whose post-write tasks run after the response is sent."""

    def schedule(task):
        background_tasks.add_task(run_post_write_task, session_factory, task)

    return RatingService(db, session_factory=session_factory, schedule=schedule)
