from datetime import datetime

from pydantic import BaseModel


class PreferenceVectorStatus(BaseModel):
    user_id: int
    computed: bool
    updated_at: datetime | None = None
