# schemas/portfolio_health_score.py
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

RiskLevel = Literal["low", "medium", "high"]
ScoreBand = Literal["excellent", "good", "fair", "poor"]


class HealthSubscores(BaseModel):
    diversification: int = Field(..., ge=0, le=100)
    performance: int = Field(..., ge=0, le=100)
    risk_management: int = Field(..., ge=0, le=100)
    activity: int = Field(..., ge=0, le=100)


class HealthProfile(BaseModel):
    overall_score: int = Field(..., ge=0, le=100)
    score_band: ScoreBand
    breakdown: HealthSubscores
    risk_level: RiskLevel
    diversification_score: int = Field(..., ge=0, le=100)

    suggestions: List[str] = Field(default_factory=list)
