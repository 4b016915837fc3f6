# schemas/portfolio_insights.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.holding import CombinedSummary, PortfolioSnapshot
from schemas.portfolio_health_score import HealthProfile, RiskLevel

InsightPriority = Literal["high", "medium", "low"]

InsightCategory = Literal["Performance", "Risk", "Diversification", "Activity", "Opportunities"]

InsightType = Literal[
    "concentration_risk",
    "performance_alert",
    "diversification_tip",
    "rebalancing",
    "tax_optimization",
    "profit_taking",
    "buy_opportunity",
    "alert_recommendation",
    "success",
    "info",
]

PRIORITY_ORDER: Dict[str, int] = {"high": 0, "medium": 1, "low": 2}


class CryptoStockBalance(BaseModel):
    crypto: float = 0.0
    stock: float = 0.0


class RiskProfile(BaseModel):
    concentration_risk: float = 0.0
    concentration_asset: Optional[str] = None
    correlation_risk: float = 0.0
    crypto_stock_balance: CryptoStockBalance = Field(default_factory=CryptoStockBalance)
    volatility_score: int = 0
    overall_risk: RiskLevel = "low"


class Insight(BaseModel):
    id: str
    type: InsightType
    category: InsightCategory
    priority: InsightPriority
    title: str
    message: str

    actionable: bool = False
    action_label: Optional[str] = None
    action_path: Optional[str] = None
    learn_more: Optional[str] = None

    timestamp: int
    dismissed: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class InsightFilters(BaseModel):
    category: Optional[InsightCategory] = None
    priority: Optional[InsightPriority] = None
    type: Optional[InsightType] = None
    search_term: Optional[str] = None

    @field_validator("search_term")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        term = value.strip()
        return term or None


class PortfolioInput(BaseModel):
    crypto: Optional[PortfolioSnapshot] = None
    stock: Optional[PortfolioSnapshot] = None
    summary: Optional[CombinedSummary] = None


class HealthRequest(PortfolioInput):
    has_recent_activity: bool = False
    alerts_count: int = 0


class PortfolioInsightsRequest(HealthRequest):
    dismissed_ids: List[str] = Field(default_factory=list)
    live_prices: Dict[str, float] = Field(default_factory=dict)
    live_enabled: Optional[bool] = None  # None -> server default
    filters: Optional[InsightFilters] = None


class PortfolioInsightsResponse(BaseModel):
    status: Literal["ok"] = "ok"
    as_of: int
    live: bool

    health: HealthProfile
    risk: RiskProfile

    insights: List[Insight] = Field(default_factory=list)
    total_insights: int = 0
    has_new_insights: bool = False


class DismissalRecord(BaseModel):
    dismissed: List[str] = Field(default_factory=list)
    last_updated: Optional[int] = None  # epoch millis
