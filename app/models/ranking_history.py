import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType


class RankingHistory(Base):
    """Append-only snapshot written by the sync job. Never updated in place."""

    __tablename__ = "ranking_history"
    __table_args__ = (Index("ix_ranking_history_ranking_recorded", "keyword_ranking_id", "recorded_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    keyword_ranking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("keyword_rankings.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    change_from_previous: Mapped[int] = mapped_column(Integer, default=0)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # {"data_source": ..., "url": ..., "impressions": ..., "clicks": ..., "ctr": ...}
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONType, default=dict)

    keyword_ranking: Mapped["KeywordRanking"] = relationship("KeywordRanking", back_populates="history")  # noqa: F821
