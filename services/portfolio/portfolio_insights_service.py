# services/portfolio/portfolio_insights_service.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from config.insights_config import LIVE_PRICES_ENABLED
from schemas.portfolio_insights import PortfolioInsightsRequest, PortfolioInsightsResponse
from services.portfolio.insight_generator import (
    filter_insights,
    generate_insights,
    has_new_insights,
    sort_insights_by_priority,
)
from services.portfolio.live_price_overlay import apply_live_prices, refresh_summary
from services.portfolio.portfolio_health_score_service import calculate_portfolio_health
from services.portfolio.risk_analyzer import analyze_risk

logger = logging.getLogger(__name__)


def build_portfolio_insights(
    req: PortfolioInsightsRequest,
    *,
    now_ms: Optional[int] = None,
) -> PortfolioInsightsResponse:
    """
    One full recomputation: optional live overlay -> risk -> health -> insights.
    Each call is independent; nothing is cached between calls.
    """
    now_ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    live_enabled = LIVE_PRICES_ENABLED if req.live_enabled is None else req.live_enabled

    crypto = apply_live_prices(req.crypto, req.live_prices, enabled=live_enabled)
    stock = apply_live_prices(req.stock, req.live_prices, enabled=live_enabled)
    live = crypto is not req.crypto or stock is not req.stock
    summary = refresh_summary(req.summary, crypto, stock, enabled=live)
    logger.debug("overlay live=%s", live)

    risk = analyze_risk(crypto, stock, summary)
    logger.debug("risk level=%s volatility=%d", risk.overall_risk, risk.volatility_score)

    health = calculate_portfolio_health(
        crypto,
        stock,
        summary,
        req.has_recent_activity,
        req.alerts_count,
        risk=risk,
    )

    generated = generate_insights(crypto, stock, summary, risk, req.dismissed_ids, now_ms=now_ms)
    ordered = sort_insights_by_priority(generated)
    visible = filter_insights(ordered, req.filters)

    logger.info(
        "insights computed score=%d risk=%s generated=%d visible=%d dismissed=%d",
        health.overall_score,
        risk.overall_risk,
        len(ordered),
        len(visible),
        len(req.dismissed_ids),
        extra={
            "fields": {
                "score": health.overall_score,
                "risk": risk.overall_risk,
                "generated": len(ordered),
                "visible": len(visible),
                "live": live,
                "as_of": datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc),
            }
        },
    )

    return PortfolioInsightsResponse(
        as_of=now_ms,
        live=live,
        health=health,
        risk=risk,
        insights=visible,
        total_insights=len(ordered),
        has_new_insights=has_new_insights(ordered, req.dismissed_ids),
    )
