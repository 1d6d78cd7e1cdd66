"""Core types for competitive SERP analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PositionCategory(str, Enum):
    TOP1 = "top1"
    TOP3 = "top3"
    TOP10 = "top10"
    PAGE2 = "page2"  # anything beyond 10
    NOT_FOUND = "notFound"


class Difficulty(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class Comparison(str, Enum):
    WIN = "win"
    LOSS = "loss"
    TIE = "tie"
    NO_DATA = "noData"


class OpportunityType(str, Enum):
    MISSING_KEYWORD = "missing_keyword"  # target not ranking at all
    LOW_POSITION = "low_position"  # ranking, but behind the best competitor


class HistoryStatus(str, Enum):
    BUILDING = "building"  # < 7 days
    CONSOLIDATING = "consolidating"  # < 30 days
    COMPLETE = "complete"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class CompetitorPosition:
    """One organic result attributed to a domain."""

    domain: str
    position: int
    url: str = ""
    title: str = ""


@dataclass
class KeywordAnalysis:
    """Where the target and every other domain rank for one keyword."""

    keyword: str
    target_domain_position: int | None = None
    competitor_positions: list[CompetitorPosition] = field(default_factory=list)
    search_volume: int | None = None
    competition_level: str = "medium"  # low / medium / high, from result diversity


@dataclass
class CompetitorStats:
    domain: str
    total_keywords_found: int = 0
    average_position: float = 100.0
    share_of_voice: float = 0.0  # % of analysed keywords where the domain appears
    relevance_score: int = 0


@dataclass
class Opportunity:
    keyword: str
    opportunity_type: OpportunityType
    target_position: int | None
    best_competitor_position: int
    best_competitor_domain: str
    priority_score: int
    gap_size: int
    recommended_action: str = ""


@dataclass
class KeywordDifficulty:
    difficulty: Difficulty
    score: float
    description: str


@dataclass
class KeywordPotential:
    current_position: int | None
    projected_position: int
    improvement_potential: str  # high / medium / low
    description: str


@dataclass
class TopCompetitor:
    domain: str
    wins_count: int
    average_position: float
    share_of_voice: float


@dataclass
class CompetitiveMetrics:
    average_position_gap: int = 0
    lost_traffic_potential: int = 0  # % of total volume lost to better-ranked competitors
    top_competitors: list[TopCompetitor] = field(default_factory=list)


@dataclass
class HistoryMaturity:
    status: HistoryStatus
    days_of_data: int
    total_data_points: int
    message: str


def to_dict(obj) -> dict:
    """Dataclass -> JSON-compatible dict (enums flattened to their values)."""

    def _convert(value):
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_convert(v) for v in value]
        return value

    return _convert(asdict(obj))
