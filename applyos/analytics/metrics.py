"""
Application analytics - pure aggregation over already-fetched rows.

Rows are mappings with the application columns the function needs
(status, created_at, updated_at, type, priority). Timestamps may be
datetime objects or ISO-8601 strings.

Provides:
- headline metrics (success rate, interview conversion, time to outcome)
- Sankey status flow from status_history transitions
- creation timeline, conversion funnel, type and priority breakdowns
"""
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from applyos.core.validators import parse_timestamp as to_datetime

STAGES = ["draft", "submitted", "in_review", "interview", "offer", "rejected"]

SUBMITTED_OR_BEYOND = {"submitted", "in_review", "interview", "offer", "rejected"}
REVIEWED_OR_BEYOND = {"in_review", "interview", "offer", "rejected"}
INTERVIEWED_OR_BEYOND = {"interview", "offer", "rejected"}
OUTCOME_STATUSES = {"offer", "rejected"}

TIME_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
PRIORITY_ORDER = ["high", "medium", "low"]
GRANULARITIES = ("day", "week", "month")

Row = Mapping[str, Any]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round x.5 away from zero for positive values (Python's round() is banker's)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _percent(part: int, whole: int) -> int:
    return int(round_half_up(part / whole * 100)) if whole else 0


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def stage_display_name(stage: str) -> str:
    """'in_review' -> 'In review'."""
    return capitalize(stage).replace("_", " ", 1)


def get_date_filter(time_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of the day N days before now, or None for 'all'.

    >>> get_date_filter("7d", datetime(2025, 3, 10, 15, 30))
    datetime.datetime(2025, 3, 3, 0, 0)
    """
    if time_range == "all":
        return None
    if time_range not in TIME_RANGE_DAYS:
        raise ValueError(f"Unknown time range: {time_range}")
    now = now or datetime.utcnow()
    start = now - timedelta(days=TIME_RANGE_DAYS[time_range])
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def compute_application_metrics(rows: Iterable[Row]) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard.

    successRate and interviewConversionRate are percentages of submitted
    applications (anything past draft), rounded to one decimal.
    averageTimeToOutcome is the mean number of days between creation and
    last update over offers and rejections, rounded to whole days.
    """
    rows = list(rows)
    total = len(rows)
    if total == 0:
        return {
            "total": 0,
            "successRate": 0,
            "averageTimeToOutcome": None,
            "interviewConversionRate": 0,
        }

    statuses = [row.get("status") for row in rows]
    submitted = sum(1 for s in statuses if s in SUBMITTED_OR_BEYOND)
    offers = sum(1 for s in statuses if s == "offer")
    interviews = sum(1 for s in statuses if s in ("interview", "offer"))

    success_rate = offers / submitted * 100 if submitted else 0
    interview_rate = interviews / submitted * 100 if submitted else 0

    completed = [row for row in rows if row.get("status") in OUTCOME_STATUSES]
    average_days = None
    if completed:
        total_days = 0.0
        for row in completed:
            delta = to_datetime(row["updated_at"]) - to_datetime(row["created_at"])
            total_days += delta.total_seconds() / 86400
        average_days = int(round_half_up(total_days / len(completed)))

    return {
        "total": total,
        "successRate": round_half_up(success_rate, 1),
        "averageTimeToOutcome": average_days,
        "interviewConversionRate": round_half_up(interview_rate, 1),
    }


def build_status_flow(transitions: Iterable[Row]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Sankey nodes and links from status_history rows.

    A transition with no old_status (the creation entry) counts as leaving
    draft. Self transitions and statuses outside STAGES are ignored. Links
    reference node indexes and come out ordered by (source, target).
    """
    nodes = [{"name": stage_display_name(stage)} for stage in STAGES]

    counts: Counter = Counter()
    for transition in transitions:
        source = transition.get("old_status") or "draft"
        target = transition.get("new_status")
        counts[(source, target)] += 1

    links = []
    for source_index, source in enumerate(STAGES):
        for target_index, target in enumerate(STAGES):
            value = counts.get((source, target), 0)
            if value > 0 and source_index != target_index:
                links.append({"source": source_index, "target": target_index, "value": value})

    return {"nodes": nodes, "links": links}


def _timeline_key(created: datetime, granularity: str) -> str:
    if granularity == "month":
        return created.strftime("%Y-%m")
    if granularity == "week":
        monday = created - timedelta(days=created.weekday())
        return monday.strftime("%Y-%m-%d")
    return created.strftime("%Y-%m-%d")


def build_timeline(rows: Iterable[Row], granularity: str = "day") -> List[Dict[str, Any]]:
    """
    Application counts per creation bucket, oldest first.

    Weeks are keyed by their Monday (YYYY-MM-DD), months by YYYY-MM.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity}")

    counts: Counter = Counter(
        _timeline_key(to_datetime(row["created_at"]), granularity) for row in rows
    )
    return [{"date": date, "count": counts[date]} for date in sorted(counts)]


def build_conversion_funnel(rows: Iterable[Row]) -> List[Dict[str, Any]]:
    """
    Cumulative funnel. Every application counts for Draft; later stages
    count applications that reached at least that stage.
    """
    statuses = [row.get("status") for row in rows]
    total = len(statuses)
    if total == 0:
        return []

    def reached(stage_set) -> int:
        return sum(1 for s in statuses if s in stage_set)

    stages = [
        ("Submitted", reached(SUBMITTED_OR_BEYOND)),
        ("In Review", reached(REVIEWED_OR_BEYOND)),
        ("Interview", reached(INTERVIEWED_OR_BEYOND)),
        ("Offer", reached({"offer"})),
    ]

    funnel = [{"stage": "Draft", "count": total, "percentage": 100}]
    funnel.extend(
        {"stage": name, "count": count, "percentage": _percent(count, total)}
        for name, count in stages
    )
    return funnel


def breakdown_by_type(rows: Iterable[Row]) -> List[Dict[str, Any]]:
    """Counts per application type, most common first. Missing type is 'other'."""
    types = [row.get("type") or "other" for row in rows]
    total = len(types)
    if total == 0:
        return []

    # Counter.most_common keeps first-seen order for equal counts
    return [
        {"type": capitalize(type_), "count": count, "percentage": _percent(count, total)}
        for type_, count in Counter(types).most_common()
    ]


def breakdown_by_priority(rows: Iterable[Row]) -> List[Dict[str, Any]]:
    """Counts in high, medium, low order. Missing priority is 'medium'."""
    priorities = [row.get("priority") or "medium" for row in rows]
    total = len(priorities)
    if total == 0:
        return []

    counts = Counter(priorities)
    return [
        {"priority": capitalize(p), "count": counts[p], "percentage": _percent(counts[p], total)}
        for p in PRIORITY_ORDER
        if p in counts
    ]
