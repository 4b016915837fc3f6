# services/portfolio/live_price_overlay.py
from __future__ import annotations

from typing import Dict, Mapping, Optional

from schemas.holding import CombinedSummary, Holding, PortfolioSnapshot, combine_summaries
from utils.common_helpers import normalize_symbol, pct, safe_float


def _normalize_prices(prices: Optional[Mapping[str, float]]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for sym, px in (prices or {}).items():
        key = normalize_symbol(sym)
        val = safe_float(px)
        if key and val is not None and val >= 0:
            out[key] = val
    return out


def _reprice(h: Holding, price: float) -> Holding:
    value = h.quantity * price
    gain_loss = value - h.invested
    return h.model_copy(
        update={
            "current_price": price,
            "current_value": value,
            "gain_loss": gain_loss,
            "gain_loss_percentage": pct(gain_loss, h.invested),
        }
    )


def apply_live_prices(
    snapshot: Optional[PortfolioSnapshot],
    prices: Optional[Mapping[str, float]],
    enabled: bool = True,
) -> Optional[PortfolioSnapshot]:
    """
    Re-derive holding values and snapshot totals from fresher prices.

    Returns `snapshot` itself when there is nothing to apply (no snapshot,
    overlay disabled, or no usable price for any held symbol). Never mutates
    the input.
    """
    if snapshot is None or not enabled:
        return snapshot
    live = _normalize_prices(prices)
    if not any(h.symbol in live for h in snapshot.holdings):
        return snapshot

    holdings = [
        _reprice(h, live[h.symbol]) if h.symbol in live else h
        for h in snapshot.holdings
    ]
    return PortfolioSnapshot.from_holdings(holdings, asset_class=snapshot.asset_class)


def refresh_summary(
    summary: Optional[CombinedSummary],
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    enabled: bool = True,
) -> Optional[CombinedSummary]:
    """Rebuild the combined totals from (overlaid) snapshots, keeping counts."""
    if summary is None or not enabled:
        return summary
    return combine_summaries(crypto, stock, base=summary)
