"""
Analytics Routes - Dashboard metrics, Sankey status flow and charts.

timeRange is one of 7d, 30d, 90d, all (default all).
"""
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.services.analytics_service import get_analytics_service

router = APIRouter(prefix="/analytics", tags=["Analytics"], dependencies=[Depends(rate_limit("general"))])


@router.get("/metrics")
def metrics(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_analytics_service().get_metrics(user.id, time_range)


@router.get("/status-flow", summary="Sankey nodes and links")
def status_flow(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_analytics_service().get_status_flow(user.id, time_range)


@router.get("/dashboard", summary="Every dashboard dataset")
def dashboard(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    granularity: Literal["day", "week", "month"] = Query(default="day"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_analytics_service().get_dashboard(user.id, time_range, granularity)


@router.get("/charts", summary="Dashboard datasets plus Plotly figures")
def charts(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    granularity: Literal["day", "week", "month"] = Query(default="day"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_analytics_service().get_charts(user.id, time_range, granularity)
