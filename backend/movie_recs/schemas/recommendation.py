from pydantic import BaseModel

from movie_recs.schemas.movie import MovieSummary


class RecommendationList(BaseModel):
    policy: str
    recommendations: list[MovieSummary]


class RecommendationStatus(BaseModel):
    total_ratings: int
    policy: str
    has_recommendations: bool
