"""
Visualization Service using Plotly.

Turns the analytics payloads into Plotly figures the dashboard can render
directly with plotly.js (Sankey, funnel, timeline, breakdown pies).
"""
import json
from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from applyos.core.logging_config import get_logger

logger = get_logger(__name__)

TEMPLATE = "plotly_dark"

# Node colours follow STAGES order
STAGE_COLORS = ["#6b7280", "#3b82f6", "#f59e0b", "#8b5cf6", "#00ff88", "#ef4444"]


class Visualizer:
    """Builds Plotly figures from analytics payloads."""

    @staticmethod
    def status_flow_figure(flow: Dict[str, List[Dict[str, Any]]]) -> Optional[go.Figure]:
        """Sankey diagram; None when there are no transitions to draw."""
        links = flow.get("links") or []
        if not links:
            return None

        return go.Figure(
            go.Sankey(
                node=dict(
                    label=[node["name"] for node in flow["nodes"]],
                    color=STAGE_COLORS[: len(flow["nodes"])],
                    pad=20,
                    thickness=18,
                ),
                link=dict(
                    source=[link["source"] for link in links],
                    target=[link["target"] for link in links],
                    value=[link["value"] for link in links],
                ),
            ),
            layout=dict(title="Application Status Flow", template=TEMPLATE),
        )

    @staticmethod
    def funnel_figure(funnel: List[Dict[str, Any]]) -> Optional[go.Figure]:
        if not funnel:
            return None

        df = pd.DataFrame(funnel)
        return go.Figure(
            go.Funnel(
                y=df["stage"],
                x=df["count"],
                text=[f"{p}%" for p in df["percentage"]],
                textinfo="value+text",
            ),
            layout=dict(title="Conversion Funnel", template=TEMPLATE),
        )

    @staticmethod
    def timeline_figure(timeline: List[Dict[str, Any]]) -> Optional[go.Figure]:
        if not timeline:
            return None

        df = pd.DataFrame(timeline).sort_values(by="date")
        return px.line(
            df, x="date", y="count",
            title="Applications Created",
            template=TEMPLATE,
            markers=True,
        )

    @staticmethod
    def breakdown_figure(breakdown: List[Dict[str, Any]], label: str, title: str) -> Optional[go.Figure]:
        if not breakdown:
            return None

        df = pd.DataFrame(breakdown)
        return px.pie(df, names=label, values="count", title=title, template=TEMPLATE, hole=0.4)

    @classmethod
    def dashboard_figures(cls, dashboard: Dict[str, Any]) -> Dict[str, Optional[Dict[str, Any]]]:
        """
        Every chart for a dashboard payload as JSON-ready dicts.

        Charts with no data come back as None.
        """
        figures = {
            "statusFlow": cls.status_flow_figure(dashboard.get("statusFlow") or {}),
            "funnel": cls.funnel_figure(dashboard.get("funnel") or []),
            "timeline": cls.timeline_figure(dashboard.get("timeline") or []),
            "byType": cls.breakdown_figure(dashboard.get("byType") or [], "type", "Applications by Type"),
            "byPriority": cls.breakdown_figure(
                dashboard.get("byPriority") or [], "priority", "Applications by Priority"
            ),
        }
        logger.debug(f"Built {sum(f is not None for f in figures.values())} dashboard charts")
        return {name: figure_to_dict(fig) for name, fig in figures.items()}


def figure_to_dict(figure: Optional[go.Figure]) -> Optional[Dict[str, Any]]:
    """Serialize through Plotly's JSON encoder so numpy values become plain JSON."""
    if figure is None:
        return None
    return json.loads(figure.to_json())
