# services/portfolio/risk_analyzer.py
from __future__ import annotations

from typing import List, Optional, Tuple

from schemas.holding import CombinedSummary, Holding, PortfolioSnapshot
from schemas.portfolio_health_score import RiskLevel
from schemas.portfolio_insights import CryptoStockBalance, RiskProfile
from utils.common_helpers import js_round, pct, to_float

HIGH_CONCENTRATION_PCT = 40.0
MEDIUM_CONCENTRATION_PCT = 25.0
HIGH_CRYPTO_PCT = 80.0
MEDIUM_CRYPTO_PCT = 60.0
HIGH_VOLATILITY = 70
MEDIUM_VOLATILITY = 50

CRYPTO_VOLATILITY_WEIGHT = 0.6
CONCENTRATION_VOLATILITY_WEIGHT = 0.4


def all_holdings(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
) -> List[Holding]:
    """Crypto holdings first, then stock, each in snapshot order."""
    return [*(crypto.holdings if crypto else []), *(stock.holdings if stock else [])]


def _value(h: Holding) -> float:
    return to_float(h.current_value)


def concentration_risk(holdings: List[Holding], summary: Optional[CombinedSummary]) -> float:
    """Largest single position as a % of total portfolio value."""
    if not holdings or summary is None or summary.total_value <= 0:
        return 0.0
    return pct(max(_value(h) for h in holdings), summary.total_value)


def largest_holding(holdings: List[Holding]) -> Optional[str]:
    if not holdings:
        return None
    largest = holdings[0]
    for h in holdings[1:]:
        if _value(h) > _value(largest):
            largest = h
    return largest.symbol


def class_balance(summary: Optional[CombinedSummary]) -> Tuple[float, float]:
    if summary is None or summary.total_value <= 0:
        return 0.0, 0.0
    return pct(summary.crypto_value, summary.total_value), pct(summary.stock_value, summary.total_value)


def volatility_score(crypto_pct: float, concentration: float) -> int:
    return js_round(crypto_pct * CRYPTO_VOLATILITY_WEIGHT + concentration * CONCENTRATION_VOLATILITY_WEIGHT)


def _risk_level(concentration: float, crypto_pct: float, volatility: int) -> RiskLevel:
    if concentration > HIGH_CONCENTRATION_PCT or crypto_pct > HIGH_CRYPTO_PCT or volatility > HIGH_VOLATILITY:
        return "high"
    if concentration > MEDIUM_CONCENTRATION_PCT or crypto_pct > MEDIUM_CRYPTO_PCT or volatility > MEDIUM_VOLATILITY:
        return "medium"
    return "low"


def analyze_risk(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    summary: Optional[CombinedSummary],
) -> RiskProfile:
    holdings = all_holdings(crypto, stock)

    concentration = concentration_risk(holdings, summary)
    crypto_pct, stock_pct = class_balance(summary)
    volatility = volatility_score(crypto_pct, concentration)

    return RiskProfile(
        concentration_risk=concentration,
        concentration_asset=largest_holding(holdings),
        # distance from an even 50/50 split
        correlation_risk=abs(50.0 - max(crypto_pct, stock_pct)),
        crypto_stock_balance=CryptoStockBalance(crypto=crypto_pct, stock=stock_pct),
        volatility_score=volatility,
        overall_risk=_risk_level(concentration, crypto_pct, volatility),
    )
