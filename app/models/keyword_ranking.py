import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType

DATA_SOURCES = ("serp_api", "search_console", "manual", "simulated")


class KeywordRanking(Base):
    """Current/previous position of one tracked keyword.

    At most one row per (project, keyword, search engine, device, location).
    Only the last move is kept here; the full trail lives in ranking_history.
    """

    __tablename__ = "keyword_rankings"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "keyword", "search_engine", "device", "location", name="uq_keyword_ranking_tuple"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)
    search_engine: Mapped[str] = mapped_column(String(20), default="google", nullable=False)
    device: Mapped[str] = mapped_column(String(20), default="desktop", nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)

    current_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    previous_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    data_source: Mapped[str] = mapped_column(String(20), default="manual", nullable=False)

    # Filled only when the reading came from Search Console
    impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    clicks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ctr: Mapped[float | None] = mapped_column(Float, nullable=True)

    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="keyword_rankings")  # noqa: F821
    history: Mapped[list["RankingHistory"]] = relationship(  # noqa: F821
        "RankingHistory", back_populates="keyword_ranking", cascade="all, delete-orphan"
    )
