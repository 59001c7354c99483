from movie_recs.schemas.movie import BayesianRatingResponse, GenreResponse, MovieSummary, SimilarMovie
from movie_recs.schemas.rating import RatingRequest, RatingResponse
from movie_recs.schemas.recommendation import RecommendationList, RecommendationStatus
from movie_recs.schemas.user import PreferenceVectorStatus

__all__ = [
    "MovieSummary",
    "GenreResponse",
    "SimilarMovie",
    "BayesianRatingResponse",
    "RatingRequest",
    "RatingResponse",
    "RecommendationList",
    "RecommendationStatus",
    "PreferenceVectorStatus",
]
