# schemas/holding.py
from __future__ import annotations

from math import fsum
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.common_helpers import normalize_symbol, pct

AssetClass = Literal["crypto", "stock"]


class Holding(BaseModel):
    id: str
    asset_class: AssetClass
    symbol: str
    name: Optional[str] = None
    quantity: float = Field(..., ge=0)
    purchase_price: float = Field(..., ge=0)

    current_price: Optional[float] = Field(None, ge=0)
    current_value: Optional[float] = None
    gain_loss: Optional[float] = None
    gain_loss_percentage: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value) -> str:
        # remote API sends numeric ids for some asset types
        return str(value).strip()

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        symbol = normalize_symbol(value)
        if not symbol:
            raise ValueError("symbol must not be empty")
        return symbol

    @model_validator(mode="after")
    def fill_derived(self) -> "Holding":
        if self.current_price is None:
            return self
        if self.current_value is None:
            self.current_value = self.quantity * self.current_price
        if self.gain_loss is None:
            self.gain_loss = self.current_value - self.invested
        if self.gain_loss_percentage is None:
            self.gain_loss_percentage = pct(self.gain_loss, self.invested)
        return self

    @property
    def invested(self) -> float:
        return self.quantity * self.purchase_price


class PortfolioSnapshot(BaseModel):
    asset_class: Optional[AssetClass] = None
    holdings: List[Holding] = Field(default_factory=list)
    total_value: float = 0.0
    total_invested: float = 0.0
    total_gain_loss: float = 0.0
    total_gain_loss_percentage: float = 0.0

    @classmethod
    def from_holdings(
        cls,
        holdings: Iterable[Holding],
        asset_class: Optional[AssetClass] = None,
    ) -> "PortfolioSnapshot":
        items = list(holdings)
        total_value = fsum(h.current_value or 0.0 for h in items)
        total_invested = fsum(h.invested for h in items)
        total_gain_loss = total_value - total_invested
        return cls(
            asset_class=asset_class,
            holdings=items,
            total_value=total_value,
            total_invested=total_invested,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percentage=pct(total_gain_loss, total_invested),
        )


class CombinedSummary(BaseModel):
    crypto_count: int = 0
    stock_count: int = 0
    total_assets: int = 0

    crypto_value: float = 0.0
    stock_value: float = 0.0
    total_value: float = 0.0
    total_invested: float = 0.0
    total_gain_loss: float = 0.0
    total_gain_loss_percentage: float = 0.0


def combine_summaries(
    crypto: Optional[PortfolioSnapshot],
    stock: Optional[PortfolioSnapshot],
    base: Optional[CombinedSummary] = None,
) -> CombinedSummary:
    """
    Cross-class aggregate over two snapshots. Counts come from the snapshots
    unless a `base` summary is given, in which case its counts are kept.
    """
    crypto_value = crypto.total_value if crypto else 0.0
    stock_value = stock.total_value if stock else 0.0
    invested = (crypto.total_invested if crypto else 0.0) + (stock.total_invested if stock else 0.0)
    gain_loss = (crypto.total_gain_loss if crypto else 0.0) + (stock.total_gain_loss if stock else 0.0)

    if base is not None:
        counts = {
            "crypto_count": base.crypto_count,
            "stock_count": base.stock_count,
            "total_assets": base.total_assets,
        }
    else:
        crypto_count = len(crypto.holdings) if crypto else 0
        stock_count = len(stock.holdings) if stock else 0
        counts = {
            "crypto_count": crypto_count,
            "stock_count": stock_count,
            "total_assets": crypto_count + stock_count,
        }

    return CombinedSummary(
        **counts,
        crypto_value=crypto_value,
        stock_value=stock_value,
        total_value=crypto_value + stock_value,
        total_invested=invested,
        total_gain_loss=gain_loss,
        total_gain_loss_percentage=pct(gain_loss, invested),
    )
