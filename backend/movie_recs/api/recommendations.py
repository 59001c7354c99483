from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from movie_recs.api.deps import get_current_user_id
from movie_recs.core.database import get_db
from movie_recs.schemas.movie import MovieSummary, SimilarMovie
from movie_recs.schemas.recommendation import RecommendationStatus
from movie_recs.services import recommendation_service, vector_search

router = APIRouter()


@router.get("", response_model=list[MovieSummary])
def get_recommendations(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Personalized recommendations.

    Popular movies for new users, genre-based picks for users with a few
    ratings, and a collaborative/content blend once there is enough history.
    """
    return recommendation_service.get_recommendations(db, user_id, limit)


@router.get("/content-based", response_model=list[MovieSummary])
def get_content_based(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    return recommendation_service.get_content_based(db, user_id, limit)


@router.get("/collaborative", response_model=list[MovieSummary])
def get_collaborative(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    return recommendation_service.get_collaborative(db, user_id, limit)


@router.get("/vector-based", response_model=list[SimilarMovie])
def get_vector_based(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    """Unrated movies closest to the user's preference vector."""
    return vector_search.get_vector_based(db, user_id, limit)


@router.get("/check", response_model=RecommendationStatus)
def check_recommendations(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """How many ratings the user has and which strategy applies."""
    return recommendation_service.recommendation_status(db, user_id)
