from fastapi import APIRouter

from movie_recs.api import movies, ratings, recommendations, users

router = APIRouter()

router.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])
router.include_router(movies.router, prefix="/movies", tags=["movies"])
router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
router.include_router(users.router, prefix="/users", tags=["users"])
