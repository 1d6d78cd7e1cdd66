import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)  # owner
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    market_segment: Mapped[str | None] = mapped_column(String(255), nullable=True)
    competitors: Mapped[list | None] = mapped_column(JSONType, default=list)  # ["rival.com", ...]

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    keyword_rankings: Mapped[list["KeywordRanking"]] = relationship(  # noqa: F821
        "KeywordRanking", back_populates="project", cascade="all, delete-orphan"
    )
    integrations: Mapped[list["ProjectIntegration"]] = relationship(  # noqa: F821
        "ProjectIntegration", back_populates="project", cascade="all, delete-orphan"
    )
