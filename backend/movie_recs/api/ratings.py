from fastapi import APIRouter, Depends, status

from movie_recs.api.deps import get_current_user_id, get_rating_service
from movie_recs.schemas.rating import RatingRequest, RatingResponse
from movie_recs.services.rating_service import RatingService

router = APIRouter()


@router.get("", response_model=list[RatingResponse])
def list_my_ratings(
    user_id: int = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
):
    return service.list_ratings(user_id)


@router.get("/{movie_id}", response_model=RatingResponse)
def get_my_rating(
    movie_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
):
    return service.get_rating(user_id, movie_id)


@router.put("/{movie_id}", response_model=RatingResponse)
def rate_movie(
    movie_id: int,
    body: RatingRequest,
    user_id: int = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
):
    """
    Create or update the caller's rating for a movie.

    Movie statistics and the caller's preference vector are refreshed after
    the response is sent.
    """
    return service.rate_movie(user_id, movie_id, body.rating, body.review)


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rating(
    movie_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
):
    service.delete_rating(user_id, movie_id)
