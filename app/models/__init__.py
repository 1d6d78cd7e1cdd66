from app.models.analysis_cache import AnalysisCache
from app.models.integration import ProjectIntegration
from app.models.keyword_ranking import KeywordRanking
from app.models.notification import Notification
from app.models.project import Project
from app.models.ranking_history import RankingHistory

__all__ = [
    "AnalysisCache",
    "KeywordRanking",
    "Notification",
    "Project",
    "ProjectIntegration",
    "RankingHistory",
]
