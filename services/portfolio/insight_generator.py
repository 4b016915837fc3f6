# services/portfolio/insight_generator.py
"""
Rule catalog that turns holdings + risk profile into user-facing insights.

Each rule is a plain function of a `RuleContext` returning zero or more
`Insight`s. Rules run in the order of `RULES`; that order, combined with a
stable priority sort downstream, fixes the display order of same-priority
insights. Insight ids depend only on the rule and, for per-asset rules, on the
holding id, so a dismissal keeps matching across recomputations.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from schemas.holding import CombinedSummary, Holding, PortfolioSnapshot
from schemas.portfolio_insights import (
    PRIORITY_ORDER,
    Insight,
    InsightFilters,
    RiskProfile,
)
from services.portfolio.risk_analyzer import (
    HIGH_CONCENTRATION_PCT,
    MEDIUM_CONCENTRATION_PCT,
    all_holdings,
)
from utils.common_helpers import to_float

LOSS_ALERT_PCT = -15.0
PROFIT_TAKING_PCT = 30.0
LOW_DIVERSIFICATION_COUNT = 5
REBALANCE_SHARE_PCT = 70.0
TAX_LOSS_THRESHOLD = -100.0
TOP_ALERT_HOLDINGS = 3


@dataclass
class RuleContext:
    crypto: Optional[PortfolioSnapshot]
    stock: Optional[PortfolioSnapshot]
    summary: Optional[CombinedSummary]
    risk: RiskProfile
    timestamp: int
    holdings: List[Holding] = field(init=False)

    def __post_init__(self):
        self.holdings = all_holdings(self.crypto, self.stock)

    @property
    def has_crypto(self) -> bool:
        return bool(self.crypto and self.crypto.holdings)

    @property
    def has_stocks(self) -> bool:
        return bool(self.stock and self.stock.holdings)


Rule = Callable[[RuleContext], List[Insight]]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def _asset_path(h: Holding) -> str:
    return "/crypto" if h.asset_class == "crypto" else "/stocks"


# -----------------------
# Rules
# -----------------------

def concentration_high(ctx: RuleContext) -> List[Insight]:
    risk = ctx.risk
    if risk.concentration_risk <= HIGH_CONCENTRATION_PCT:
        return []
    return [
        Insight(
            id="concentration-high",
            type="concentration_risk",
            category="Risk",
            priority="high",
            title="High Concentration Risk",
            message=(
                f"Your portfolio is heavily concentrated in {risk.concentration_asset} "
                f"({risk.concentration_risk:.1f}%). Consider diversifying to reduce risk."
            ),
            actionable=True,
            action_label="View Portfolio",
            action_path="/dashboard",
            learn_more=(
                "Concentration risk means too much of the portfolio sits in a single asset, "
                "so one bad move in that asset can cause large losses. A common guideline is "
                "to keep any single holding below 20-25% of the total."
            ),
            timestamp=ctx.timestamp,
            metadata={"assetSymbol": risk.concentration_asset, "percentage": risk.concentration_risk},
        )
    ]


def concentration_medium(ctx: RuleContext) -> List[Insight]:
    risk = ctx.risk
    if not (MEDIUM_CONCENTRATION_PCT < risk.concentration_risk <= HIGH_CONCENTRATION_PCT):
        return []
    return [
        Insight(
            id="concentration-medium",
            type="concentration_risk",
            category="Risk",
            priority="medium",
            title="Moderate Concentration",
            message=(
                f"{risk.concentration_asset} represents {risk.concentration_risk:.1f}% of your "
                "portfolio. Consider gradual diversification."
            ),
            actionable=True,
            action_label="Review Holdings",
            action_path="/analytics",
            timestamp=ctx.timestamp,
            metadata={"assetSymbol": risk.concentration_asset, "percentage": risk.concentration_risk},
        )
    ]


def performance_drops(ctx: RuleContext) -> List[Insight]:
    out: List[Insight] = []
    for h in ctx.holdings:
        gl_pct = to_float(h.gain_loss_percentage)
        if gl_pct >= LOSS_ALERT_PCT:
            continue
        out.append(
            Insight(
                id=f"performance-drop-{h.id}",
                type="performance_alert",
                category="Performance",
                priority="high",
                title="Significant Loss Alert",
                message=(
                    f"{h.symbol} has dropped {abs(gl_pct):.2f}%. "
                    "Review your position and consider your strategy."
                ),
                actionable=True,
                action_label="View Asset",
                action_path=_asset_path(h),
                learn_more=(
                    "Before acting on a large loss, check whether it is a temporary market swing "
                    "or whether the reason you bought has changed. Then decide whether to average "
                    "down, hold, or cut the position."
                ),
                timestamp=ctx.timestamp,
                metadata={"assetSymbol": h.symbol, "percentage": gl_pct, "value": h.gain_loss},
            )
        )
    return out


def profit_taking(ctx: RuleContext) -> List[Insight]:
    out: List[Insight] = []
    for h in ctx.holdings:
        gl_pct = to_float(h.gain_loss_percentage)
        if gl_pct <= PROFIT_TAKING_PCT:
            continue
        out.append(
            Insight(
                id=f"profit-taking-{h.id}",
                type="profit_taking",
                category="Opportunities",
                priority="medium",
                title="Profit Taking Opportunity",
                message=(
                    f"{h.symbol} has gained {gl_pct:.2f}%. "
                    "Consider taking some profits to lock in gains."
                ),
                actionable=True,
                action_label="Manage Position",
                action_path=_asset_path(h),
                learn_more=(
                    "Trimming a winner locks in part of the gain while keeping some upside. "
                    "Selling 25-50% of the position is a common approach."
                ),
                timestamp=ctx.timestamp,
                metadata={"assetSymbol": h.symbol, "percentage": gl_pct, "value": h.gain_loss},
            )
        )
    return out


def get_started(ctx: RuleContext) -> List[Insight]:
    if ctx.holdings:
        return []
    return [
        Insight(
            id="get-started",
            type="info",
            category="Activity",
            priority="high",
            title="Start Your Portfolio",
            message="Add your first asset to begin tracking performance and receiving personalized insights.",
            actionable=True,
            action_label="Add Asset",
            action_path="/dashboard",
            timestamp=ctx.timestamp,
        )
    ]


def diversification_low(ctx: RuleContext) -> List[Insight]:
    total = len(ctx.holdings)
    if not (0 < total < LOW_DIVERSIFICATION_COUNT):
        return []
    return [
        Insight(
            id="diversification-low",
            type="diversification_tip",
            category="Diversification",
            priority="medium",
            title="Increase Diversification",
            message=f"You have {_plural(total, 'asset')}. Consider adding more assets for better risk distribution.",
            actionable=True,
            action_label="Add Assets",
            action_path="/dashboard",
            learn_more=(
                "Spreading money across several assets limits how much any single asset's "
                "poor performance can hurt the whole portfolio."
            ),
            timestamp=ctx.timestamp,
            metadata={"count": total},
        )
    ]


def no_crypto_exposure(ctx: RuleContext) -> List[Insight]:
    if ctx.has_crypto or not ctx.has_stocks:
        return []
    return [
        Insight(
            id="no-crypto-exposure",
            type="diversification_tip",
            category="Diversification",
            priority="low",
            title="No Cryptocurrency Exposure",
            message=(
                "Consider adding some cryptocurrency for diversification. "
                "Start with established coins like Bitcoin or Ethereum."
            ),
            actionable=True,
            action_label="Explore Crypto",
            action_path="/crypto",
            learn_more=(
                "Crypto tends to move independently of traditional assets but is very volatile. "
                "Allocations are usually kept to around 5-10% of a portfolio."
            ),
            timestamp=ctx.timestamp,
        )
    ]


def no_stock_exposure(ctx: RuleContext) -> List[Insight]:
    if ctx.has_stocks or not ctx.has_crypto:
        return []
    return [
        Insight(
            id="no-stock-exposure",
            type="diversification_tip",
            category="Diversification",
            priority="medium",
            title="No Stock Market Exposure",
            message=(
                "Your portfolio is 100% cryptocurrency. "
                "Consider adding stocks for better balance and reduced volatility."
            ),
            actionable=True,
            action_label="Explore Stocks",
            action_path="/stocks",
            learn_more=(
                "Stocks are ownership in established companies and are usually far less "
                "volatile than crypto. Holding both helps manage risk while keeping growth potential."
            ),
            timestamp=ctx.timestamp,
        )
    ]


def rebalancing_needed(ctx: RuleContext) -> List[Insight]:
    balance = ctx.risk.crypto_stock_balance
    if balance.crypto <= REBALANCE_SHARE_PCT and balance.stock <= REBALANCE_SHARE_PCT:
        return []

    heavy, light = ("cryptocurrency", "stocks") if balance.crypto > REBALANCE_SHARE_PCT else ("stocks", "cryptocurrency")
    return [
        Insight(
            id="rebalancing-needed",
            type="rebalancing",
            category="Risk",
            priority="medium",
            title="Portfolio Rebalancing Recommended",
            message=f"Your portfolio is heavily weighted towards {heavy}. Consider rebalancing by adding more {light}.",
            actionable=True,
            action_label="View Analytics",
            action_path="/analytics",
            learn_more=(
                "Rebalancing brings allocations back to target and keeps risk where you want it. "
                "Quarterly, or whenever an allocation drifts 5-10% from target, is typical."
            ),
            timestamp=ctx.timestamp,
            metadata={"overweight": heavy, "underweight": light},
        )
    ]


def set_alerts(ctx: RuleContext) -> List[Insight]:
    if not ctx.holdings:
        return []
    # sorted() is stable, so equal values keep snapshot order
    top = sorted(ctx.holdings, key=lambda h: -to_float(h.current_value))[:TOP_ALERT_HOLDINGS]
    symbols = [h.symbol for h in top]
    return [
        Insight(
            id="set-alerts",
            type="alert_recommendation",
            category="Activity",
            priority="low",
            title="Set Price Alerts",
            message=(
                f"Set price alerts for your top holdings ({', '.join(symbols)}) "
                "to stay informed of significant price movements."
            ),
            actionable=True,
            action_label="Manage Alerts",
            action_path="/alerts",
            timestamp=ctx.timestamp,
            metadata={"symbols": symbols},
        )
    ]


def tax_loss_harvest(ctx: RuleContext) -> List[Insight]:
    losers = [h for h in ctx.holdings if to_float(h.gain_loss) < TAX_LOSS_THRESHOLD]
    if not losers:
        return []
    n = len(losers)
    return [
        Insight(
            id="tax-loss-harvest",
            type="tax_optimization",
            category="Opportunities",
            priority="low",
            title="Tax Loss Harvesting Opportunity",
            message=f"You have {_plural(n, 'asset')} with losses. Consider tax-loss harvesting before year-end.",
            actionable=True,
            action_label="Review Assets",
            action_path="/analytics",
            learn_more=(
                "Selling positions at a loss can offset capital gains and lower the tax bill, "
                "and a similar asset can be bought to keep market exposure."
            ),
            timestamp=ctx.timestamp,
            metadata={"count": n},
        )
    ]


def positive_performance(ctx: RuleContext) -> List[Insight]:
    summary = ctx.summary
    if summary is None or summary.total_gain_loss <= 0:
        return []
    return [
        Insight(
            id="positive-performance",
            type="success",
            category="Performance",
            priority="low",
            title="Portfolio Performing Well",
            message=(
                f"Your portfolio is up ${summary.total_gain_loss:.2f} "
                f"({summary.total_gain_loss_percentage:.2f}%). Great job!"
            ),
            actionable=False,
            timestamp=ctx.timestamp,
            metadata={"value": summary.total_gain_loss, "percentage": summary.total_gain_loss_percentage},
        )
    ]


RULES: Sequence[Rule] = (
    concentration_high,
    concentration_medium,
    performance_drops,
    profit_taking,
    get_started,
    diversification_low,
    no_crypto_exposure,
    no_stock_exposure,
    rebalancing_needed,
    set_alerts,
    tax_loss_harvest,
    positive_performance,
)


# -----------------------
# Entry points
# -----------------------

def generate_insights(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    summary: Optional[CombinedSummary],
    risk: RiskProfile,
    dismissed_ids: Iterable[str] = (),
    *,
    now_ms: Optional[int] = None,
) -> List[Insight]:
    ctx = RuleContext(
        crypto=crypto,
        stock=stock,
        summary=summary,
        risk=risk,
        timestamp=int(time.time() * 1000) if now_ms is None else int(now_ms),
    )

    insights: List[Insight] = []
    for rule in RULES:
        insights.extend(rule(ctx))

    dismissed = set(dismissed_ids or ())
    return [i for i in insights if i.id not in dismissed]


def sort_insights_by_priority(insights: Iterable[Insight]) -> List[Insight]:
    return sorted(insights, key=lambda i: PRIORITY_ORDER[i.priority])


def filter_insights(insights: Iterable[Insight], filters: Optional[InsightFilters]) -> List[Insight]:
    items = list(insights)
    if filters is None:
        return items

    if filters.category:
        items = [i for i in items if i.category == filters.category]
    if filters.priority:
        items = [i for i in items if i.priority == filters.priority]
    if filters.type:
        items = [i for i in items if i.type == filters.type]

    if filters.search_term:
        term = filters.search_term.lower()

        def _matches(i: Insight) -> bool:
            symbol = str(i.metadata.get("assetSymbol") or "").lower()
            return term in i.title.lower() or term in i.message.lower() or term in symbol

        items = [i for i in items if _matches(i)]

    return items


def has_new_insights(insights: Iterable[Insight], dismissed_ids: Iterable[str]) -> bool:
    dismissed = set(dismissed_ids or ())
    return any(i.id not in dismissed for i in insights)
