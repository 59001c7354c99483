from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from movie_recs.api.deps import get_current_user_id
from movie_recs.core.database import get_db
from movie_recs.repos.user_repository import UserRepository
from movie_recs.schemas.user import PreferenceVectorStatus
from movie_recs.services.preference_vector import recompute_preference_vector

router = APIRouter()


@router.post("/me/preference-vector", response_model=PreferenceVectorStatus)
def recompute_my_preference_vector(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Rebuild the caller's preference vector from all of their ratings."""
    vector = recompute_preference_vector(db, user_id)
    user = UserRepository(db).find_by_id(user_id)
    return PreferenceVectorStatus(
        user_id=user_id,
        computed=vector is not None,
        updated_at=user.preference_vector_updated_at,
    )
