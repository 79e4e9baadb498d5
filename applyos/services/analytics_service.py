"""
Analytics Service - Loads a user's rows and feeds analytics.metrics.

All aggregation happens in memory on plain dicts so the metric functions
stay free of database concerns.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from applyos.analytics.metrics import (
    breakdown_by_priority,
    breakdown_by_type,
    build_conversion_funnel,
    build_status_flow,
    build_timeline,
    compute_application_metrics,
    get_date_filter,
)
from applyos.analytics.visualizer import Visualizer
from applyos.core.logging_config import get_logger
from applyos.core.validators import validate_time_range
from applyos.database.connection import get_database
from applyos.database.models import Application, StatusHistory

logger = get_logger(__name__)


class AnalyticsService:

    def __init__(self):
        self.db = get_database()

    def _application_rows(self, user_id: str, since: Optional[datetime]) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            query = session.query(
                Application.status,
                Application.type,
                Application.priority,
                Application.created_at,
                Application.updated_at,
            ).filter(Application.user_id == user_id)
            if since is not None:
                query = query.filter(Application.created_at >= since)
            return [dict(row._mapping) for row in query.all()]

    def _transition_rows(self, user_id: str, since: Optional[datetime]) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            query = (
                session.query(StatusHistory.old_status, StatusHistory.new_status)
                .join(Application, Application.id == StatusHistory.application_id)
                .filter(Application.user_id == user_id)
            )
            if since is not None:
                query = query.filter(StatusHistory.changed_at >= since)
            return [dict(row._mapping) for row in query.all()]

    def get_metrics(self, user_id: str, time_range: Optional[str] = None) -> Dict[str, Any]:
        since = get_date_filter(validate_time_range(time_range))
        return compute_application_metrics(self._application_rows(user_id, since))

    def get_status_flow(self, user_id: str, time_range: Optional[str] = None) -> Dict[str, Any]:
        since = get_date_filter(validate_time_range(time_range))
        return build_status_flow(self._transition_rows(user_id, since))

    def get_dashboard(
        self,
        user_id: str,
        time_range: Optional[str] = None,
        granularity: str = "day",
    ) -> Dict[str, Any]:
        """Everything the analytics page shows for one time range."""
        time_range = validate_time_range(time_range)
        since = get_date_filter(time_range)
        rows = self._application_rows(user_id, since)

        dashboard = {
            "metrics": compute_application_metrics(rows),
            "timeline": build_timeline(rows, granularity),
            "funnel": build_conversion_funnel(rows),
            "byType": breakdown_by_type(rows),
            "byPriority": breakdown_by_priority(rows),
            "statusFlow": build_status_flow(self._transition_rows(user_id, since)),
        }
        logger.info(f"Dashboard for {user_id[:8]} ({time_range}): {len(rows)} applications")
        return dashboard

    def get_charts(self, user_id: str, time_range: Optional[str] = None, granularity: str = "day") -> Dict[str, Any]:
        dashboard = self.get_dashboard(user_id, time_range, granularity)
        return {**dashboard, "charts": Visualizer.dashboard_figures(dashboard)}


_analytics_service: Optional[AnalyticsService] = None


def get_analytics_service() -> AnalyticsService:
    global _analytics_service
    if _analytics_service is None:
        _analytics_service = AnalyticsService()
    return _analytics_service
