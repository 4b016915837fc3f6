# routers/insights_routes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.orm import Session

from database import get_db
from schemas.portfolio_health_score import HealthProfile
from schemas.portfolio_insights import (
    DismissalRecord,
    HealthRequest,
    PortfolioInput,
    PortfolioInsightsRequest,
    PortfolioInsightsResponse,
    RiskProfile,
)
from services.dismissal.dismissal_store import (
    DismissalStore,
    DismissalStoreError,
    get_dismissal_store,
    load_dismissed_ids,
)
from services.portfolio.portfolio_health_score_service import calculate_portfolio_health
from services.portfolio.portfolio_insights_service import build_portfolio_insights
from services.portfolio.risk_analyzer import analyze_risk

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(
    scope: str = Query("default", min_length=1, max_length=120),
    db: Session = Depends(get_db),
) -> DismissalStore:
    return get_dismissal_store(scope, db)


@router.post("/analyze", response_model=PortfolioInsightsResponse)
def analyze_portfolio(
    payload: PortfolioInsightsRequest,
    store: DismissalStore = Depends(get_store),
):
    stored = load_dismissed_ids(store)
    merged = list(dict.fromkeys([*stored, *payload.dismissed_ids]))
    req = payload.model_copy(update={"dismissed_ids": merged})
    return build_portfolio_insights(req)


@router.post("/risk", response_model=RiskProfile)
def portfolio_risk(payload: PortfolioInput):
    return analyze_risk(payload.crypto, payload.stock, payload.summary)


@router.post("/health", response_model=HealthProfile)
def portfolio_health(payload: HealthRequest):
    return calculate_portfolio_health(
        payload.crypto,
        payload.stock,
        payload.summary,
        payload.has_recent_activity,
        payload.alerts_count,
    )


@router.get("/dismissed", response_model=DismissalRecord)
def get_dismissed(store: DismissalStore = Depends(get_store)):
    try:
        return store.load()
    except DismissalStoreError as exc:
        logger.warning("dismissal load failed, returning empty set: %s", exc)
        return DismissalRecord()


@router.post(
    "/dismissed/{insight_id}",
    response_model=DismissalRecord,
    status_code=status.HTTP_201_CREATED,
)
def dismiss_insight(
    insight_id: str = Path(..., min_length=1, max_length=200),
    store: DismissalStore = Depends(get_store),
):
    try:
        return store.append(insight_id)
    except DismissalStoreError as exc:
        logger.error("dismissal write failed: %s", exc)
        raise HTTPException(status_code=503, detail="Dismissal store unavailable")


@router.delete("/dismissed", status_code=status.HTTP_204_NO_CONTENT)
def clear_dismissed(store: DismissalStore = Depends(get_store)):
    try:
        store.clear()
    except DismissalStoreError as exc:
        logger.error("dismissal clear failed: %s", exc)
        raise HTTPException(status_code=503, detail="Dismissal store unavailable")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
