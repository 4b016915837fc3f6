# models/insight_dismissal.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class InsightDismissal(Base):
    __tablename__ = "insight_dismissals"

    # "<storage key>:<scope>", e.g. "portfolio-insights-dismissed:default"
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)  # {"dismissed": [...], "lastUpdated": ms}
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
