"""
Genre and keyword tagging.

Genre.movie_count and Keyword.movie_count are denormalized. They change only
here, in the same transaction as the association row, and with an atomic
`movie_count = movie_count +/- 1` so concurrent taggers cannot lose updates.
Decrements never go below zero.
"""

from sqlalchemy import Table, and_, case, delete, insert, select
from sqlalchemy.orm import Session

from movie_recs.core.exceptions import NotFoundError
from movie_recs.core.logging import get_logger
from movie_recs.models.movie import Genre, Keyword, Movie, movie_genres, movie_keywords

logger = get_logger(__name__)


def _attach(db: Session, table: Table, column: str, model, movie_id: int, tag_id: int) -> bool:
    if db.get(Movie, movie_id) is None:
        raise NotFoundError("Movie", movie_id)
    if db.get(model, tag_id) is None:
        raise NotFoundError(model.__name__, tag_id)

    exists = db.execute(
        select(table.c.movie_id).where(
            and_(table.c.movie_id == movie_id, table.c[column] == tag_id)
        )
    ).first()
    if exists:
        return False

    db.execute(insert(table).values(movie_id=movie_id, **{column: tag_id}))
    db.query(model).filter(model.id == tag_id).update(
        {model.movie_count: model.movie_count + 1}, synchronize_session=False
    )
    db.commit()
    db.expire_all()

    logger.debug(
        f"Tagged movie with {model.__name__.lower()}",
        extra={"extra_fields": {"movie_id": movie_id, column: tag_id}},
    )
    return True


def _detach(db: Session, table: Table, column: str, model, movie_id: int, tag_id: int) -> bool:
    result = db.execute(
        delete(table).where(and_(table.c.movie_id == movie_id, table.c[column] == tag_id))
    )
    if result.rowcount == 0:
        return False

    db.query(model).filter(model.id == tag_id).update(
        {
            model.movie_count: case(
                (model.movie_count > 0, model.movie_count - 1),
                else_=0,
            )
        },
        synchronize_session=False,
    )
    db.commit()
    db.expire_all()
    return True


def attach_genre(db: Session, movie_id: int, genre_id: int) -> bool:
    """Tag a movie with a genre. Returns False if it was already tagged."""
    return _attach(db, movie_genres, "genre_id", Genre, movie_id, genre_id)


def detach_genre(db: Session, movie_id: int, genre_id: int) -> bool:
    """Remove a genre tag. Returns False if the movie did not carry it."""
    return _detach(db, movie_genres, "genre_id", Genre, movie_id, genre_id)


def attach_keyword(db: Session, movie_id: int, keyword_id: int) -> bool:
    return _attach(db, movie_keywords, "keyword_id", Keyword, movie_id, keyword_id)


def detach_keyword(db: Session, movie_id: int, keyword_id: int) -> bool:
    return _detach(db, movie_keywords, "keyword_id", Keyword, movie_id, keyword_id)
