import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RankCheckRequest(BaseModel):
    project_id: uuid.UUID
    keyword_ids: list[uuid.UUID] | None = None


class RankCheckResponse(BaseModel):
    success: bool
    updated: int
    notifications: int
    message: str


class KeywordRankingCreate(BaseModel):
    keyword: str = Field(min_length=1, max_length=500)
    search_engine: str = Field("google", max_length=20)
    device: str = Field("desktop", pattern="^(desktop|mobile|tablet)$")
    location: str | None = Field(None, max_length=200)


class KeywordRankingResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    keyword: str
    search_engine: str
    device: str
    location: str | None
    current_position: int | None
    previous_position: int | None
    url: str | None
    data_source: str
    impressions: int | None = None
    clicks: int | None = None
    ctr: float | None = None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class RankingHistoryPoint(BaseModel):
    position: int
    change_from_previous: int
    recorded_at: datetime
    data_source: str | None = None
    url: str | None = None


class HistoryMaturityResponse(BaseModel):
    status: str  # building / consolidating / complete
    days_of_data: int
    total_data_points: int
    message: str


class RankingHistoryResponse(BaseModel):
    project_id: uuid.UUID
    days: int
    keywords: dict[str, list[RankingHistoryPoint]]
    maturity: HistoryMaturityResponse
