import uuid

from pydantic import BaseModel


class CompetitorStatsResponse(BaseModel):
    domain: str
    total_keywords_found: int
    average_position: float
    share_of_voice: float  # % of analysed keywords the domain appears in
    relevance_score: int


class OpportunityResponse(BaseModel):
    keyword: str
    opportunity_type: str  # missing_keyword / low_position
    target_position: int | None
    best_competitor_position: int
    best_competitor_domain: str
    priority_score: int
    gap_size: int
    recommended_action: str


class KeywordInsight(BaseModel):
    keyword: str
    location: str | None = None
    device: str = "desktop"
    target_position: int | None
    position_category: str  # top1 / top3 / top10 / page2 / notFound
    vs_best_competitor: str  # win / loss / tie / noData
    competition_level: str
    difficulty: dict
    potential: dict
    competitors_ahead: list[dict]
    recommendations: list[str]


class CompetitiveAnalysisResponse(BaseModel):
    project_id: uuid.UUID
    domain: str
    generated_at: str
    competitiveness_score: int
    overall_score: int
    share_of_voice: int  # CTR-weighted visibility of the target domain, %
    metrics: dict
    competitors: list[CompetitorStatsResponse]
    opportunities: list[OpportunityResponse]
    keywords: list[KeywordInsight]
    failed_keywords: list[str] = []
    cached: bool = False
