# services/portfolio/portfolio_health_score_service.py
from __future__ import annotations

from typing import List, Optional

from schemas.holding import CombinedSummary, PortfolioSnapshot
from schemas.portfolio_health_score import HealthProfile, HealthSubscores, ScoreBand
from schemas.portfolio_insights import RiskProfile
from services.portfolio.risk_analyzer import analyze_risk, class_balance
from utils.common_helpers import clamp, js_round

WEIGHTS = {
    "diversification": 0.30,
    "performance": 0.25,
    "risk_management": 0.25,
    "activity": 0.20,
}

NEUTRAL_SCORE = 50
FULL_DIVERSIFICATION_ASSETS = 15
SINGLE_CLASS_DIVERSIFIED_MIN = 5

SUGGEST_DIVERSIFY = "Increase portfolio diversification by adding more assets"
SUGGEST_PERFORMANCE = "Review underperforming assets and consider reallocation"
SUGGEST_RISK = "Reduce concentration risk by rebalancing your holdings"
SUGGEST_ACTIVITY = "Stay engaged with your portfolio through regular reviews and alerts"
SUGGEST_HIGH_RISK = "Your risk level is high - consider reducing exposure to volatile assets"
SUGGEST_ALL_GOOD = "Your portfolio is well-managed. Keep monitoring and stay disciplined!"


def _count(snapshot: Optional[PortfolioSnapshot]) -> int:
    return len(snapshot.holdings) if snapshot else 0


def _band(score: int) -> ScoreBand:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


def score_diversification(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
) -> int:
    crypto_count = _count(crypto)
    stock_count = _count(stock)
    total = crypto_count + stock_count
    if total == 0:
        return 0

    # 0..50 for breadth, maxes out at 15 assets
    asset_count_score = min(50.0, 50.0 * total / FULL_DIVERSIFICATION_ASSETS)

    # 0..50 for crypto/stock count balance
    if crypto_count > 0 and stock_count > 0:
        balance_score = 50.0 * min(crypto_count, stock_count) / max(crypto_count, stock_count)
    elif total >= SINGLE_CLASS_DIVERSIFIED_MIN:
        balance_score = 25.0
    else:
        balance_score = 0.0

    return js_round(asset_count_score + balance_score)


def score_performance(summary: Optional[CombinedSummary]) -> int:
    if summary is None or summary.total_value == 0:
        return NEUTRAL_SCORE
    # -50% -> 0, break-even -> 50, +50% -> 100
    return js_round(clamp(50.0 + summary.total_gain_loss_percentage, 0.0, 100.0))


def score_risk_management(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    summary: Optional[CombinedSummary],
    risk: RiskProfile,
) -> int:
    if _count(crypto) + _count(stock) == 0:
        return NEUTRAL_SCORE

    score = 100
    concentration = risk.concentration_risk
    if concentration > 40:
        score -= 30
    elif concentration > 30:
        score -= 20
    elif concentration > 20:
        score -= 10

    crypto_pct, stock_pct = class_balance(summary)
    if crypto_pct > 90 or stock_pct > 90:
        score -= 20
    elif crypto_pct > 80 or stock_pct > 80:
        score -= 10

    return max(0, score)


def score_activity(has_recent_activity: bool, alerts_count: int) -> int:
    score = NEUTRAL_SCORE
    if has_recent_activity:
        score += 25
    if alerts_count > 0:
        score += min(25, alerts_count * 5)
    return min(100, score)


def build_suggestions(breakdown: HealthSubscores, risk: RiskProfile) -> List[str]:
    suggestions: List[str] = []

    if breakdown.diversification < 50:
        suggestions.append(SUGGEST_DIVERSIFY)
    if breakdown.performance < 40:
        suggestions.append(SUGGEST_PERFORMANCE)
    if breakdown.risk_management < 60:
        suggestions.append(SUGGEST_RISK)
    if breakdown.activity < 50:
        suggestions.append(SUGGEST_ACTIVITY)
    if risk.overall_risk == "high":
        suggestions.append(SUGGEST_HIGH_RISK)

    if not suggestions:
        suggestions.append(SUGGEST_ALL_GOOD)
    return suggestions


def calculate_portfolio_health(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    summary: Optional[CombinedSummary],
    has_recent_activity: bool = False,
    alerts_count: int = 0,
    *,
    risk: Optional[RiskProfile] = None,
) -> HealthProfile:
    """
    Health score (0-100) as a weighted blend of four sub-scores:

    - diversification (30%): asset count and crypto/stock count balance
    - performance (25%): overall gain/loss %
    - risk management (25%): concentration and class imbalance penalties
    - activity (20%): recent activity and configured price alerts

    `risk` may be passed in when the caller already has it; it is computed
    from the same inputs otherwise.
    """
    if risk is None:
        risk = analyze_risk(crypto, stock, summary)

    breakdown = HealthSubscores(
        diversification=score_diversification(crypto, stock),
        performance=score_performance(summary),
        risk_management=score_risk_management(crypto, stock, summary, risk),
        activity=score_activity(has_recent_activity, max(0, int(alerts_count or 0))),
    )

    total = (
        breakdown.diversification * WEIGHTS["diversification"]
        + breakdown.performance * WEIGHTS["performance"]
        + breakdown.risk_management * WEIGHTS["risk_management"]
        + breakdown.activity * WEIGHTS["activity"]
    )
    overall = int(clamp(js_round(total), 0, 100))

    return HealthProfile(
        overall_score=overall,
        score_band=_band(overall),
        breakdown=breakdown,
        risk_level=risk.overall_risk,
        diversification_score=breakdown.diversification,
        suggestions=build_suggestions(breakdown, risk),
    )
