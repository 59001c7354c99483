from datetime import datetime

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    # Range is enforced by the rating service so every caller gets the same error
    rating: int
    review: str | None = Field(None, max_length=5000)


class RatingResponse(BaseModel):
    id: int
    user_id: int
    movie_id: int
    rating: int
    review: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
