"""
Analytics module - dashboard aggregation and charts.

- metrics.py    : pure functions over application/status-history rows
- visualizer.py : Plotly figures for the dashboard
"""
from applyos.analytics.metrics import (
    get_date_filter,
    compute_application_metrics,
    build_status_flow,
    build_timeline,
    build_conversion_funnel,
    breakdown_by_type,
    breakdown_by_priority,
)
from applyos.analytics.visualizer import Visualizer

__all__ = [
    "get_date_filter",
    "compute_application_metrics",
    "build_status_flow",
    "build_timeline",
    "build_conversion_funnel",
    "breakdown_by_type",
    "breakdown_by_priority",
    "Visualizer",
]
