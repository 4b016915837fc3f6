"""Small builders shared by the insight engine tests."""
from __future__ import annotations

from typing import Optional

from schemas.holding import CombinedSummary, Holding, PortfolioSnapshot, combine_summaries


def make_holding(
    id: str,
    symbol: str,
    asset_class: str = "crypto",
    quantity: float = 1.0,
    purchase_price: float = 100.0,
    current_price: Optional[float] = None,
    **extra,
) -> Holding:
    if current_price is None and "current_value" not in extra:
        current_price = purchase_price
    return Holding(
        id=id,
        asset_class=asset_class,
        symbol=symbol,
        quantity=quantity,
        purchase_price=purchase_price,
        current_price=current_price,
        **extra,
    )


def make_snapshot(*holdings: Holding, asset_class: Optional[str] = None) -> PortfolioSnapshot:
    return PortfolioSnapshot.from_holdings(holdings, asset_class=asset_class)


def make_portfolio(crypto_holdings=(), stock_holdings=()):
    """Return (crypto, stock, summary) with totals derived from the holdings."""
    crypto = make_snapshot(*crypto_holdings, asset_class="crypto")
    stock = make_snapshot(*stock_holdings, asset_class="stock")
    summary: CombinedSummary = combine_summaries(crypto, stock)
    return crypto, stock, summary


def balanced_ten():
    """Five crypto + five stock holdings, each exactly 10% of value, no gain/loss."""
    crypto = [make_holding(f"c{i}", f"C{i}", "crypto") for i in range(5)]
    stock = [make_holding(f"s{i}", f"S{i}", "stock") for i in range(5)]
    return make_portfolio(crypto, stock)
