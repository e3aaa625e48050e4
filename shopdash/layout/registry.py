"""WidgetRegistry — the catalog of widget kinds.

Each :class:`WidgetKind` maps to a :class:`WidgetSpec` holding its default
size and title, the snapshot fields it consumes, and a pure render-model
builder ``(AnalyticsSnapshot, DateRange) -> dict``.  Every builder must
cope with the all-zero snapshot and report ``empty`` for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, Field

from shopdash.config import GRID_COLUMNS
from shopdash.models.snapshot import AnalyticsSnapshot, DateRange
from shopdash.models.widget import Widget, WidgetKind, WidgetSize

logger = logging.getLogger(__name__)

Builder = Callable[[AnalyticsSnapshot, DateRange], dict[str, Any]]


class InvalidKind(ValueError):
    """Raised for a widget kind the registry does not know."""


class RenderModel(BaseModel):
    """What a rendering layer needs to draw one widget."""

    widget_id: str
    kind: WidgetKind
    title: str
    columns: int
    rows: int
    empty: bool
    data: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class WidgetSpec:
    default_title: str
    default_size: WidgetSize
    consumes: tuple[str, ...]
    builder: Builder
    initially_visible: bool = True


_SPANS: dict[WidgetSize, int] = {
    WidgetSize.SMALL: 1,
    WidgetSize.MEDIUM: 2,
    WidgetSize.LARGE: 3,
    WidgetSize.FULL: GRID_COLUMNS,
}


# ---------------------------------------------------------------------------
# Render-model builders
# ---------------------------------------------------------------------------


def _range_dict(date_range: DateRange) -> dict[str, str]:
    return {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()}


def _next_labels(last_label: str, count: int) -> list[str]:
    """Month labels following ``YYYY-MM`` *last_label*."""
    if not last_label:
        return [f"+{i}" for i in range(1, count + 1)]
    year, month = (int(part) for part in last_label.split("-"))
    labels = []
    for _ in range(count):
        month += 1
        if month > 12:
            month = 1
            year += 1
        labels.append(f"{year:04d}-{month:02d}")
    return labels


def build_stat_summary(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    cards = [
        {"key": "total_products", "label": "Total Products", "value": snapshot.total_products},
        {"key": "active_products", "label": "Active Products", "value": snapshot.active_products},
        {"key": "total_services", "label": "Total Services", "value": snapshot.total_services},
        {"key": "available_services", "label": "Available Services", "value": snapshot.available_services},
        {"key": "total_revenue", "label": "Total Revenue", "value": snapshot.total_revenue},
        {"key": "revenue_growth", "label": "Revenue Growth", "value": snapshot.revenue_growth, "unit": "%"},
    ]
    empty = snapshot.total_products == 0 and snapshot.total_services == 0 and snapshot.total_revenue == 0
    return {"empty": empty, "cards": cards}


def build_revenue_trend(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    labels = list(snapshot.month_labels) or [""] * len(snapshot.monthly_revenue)
    points = [{"label": label, "value": value} for label, value in zip(labels, snapshot.monthly_revenue)]
    future = _next_labels(labels[-1] if labels else "", len(snapshot.revenue_forecast))
    forecast = [{"label": label, "value": value} for label, value in zip(future, snapshot.revenue_forecast)]
    return {
        "empty": not any(snapshot.monthly_revenue),
        "points": points,
        "forecast": forecast,
        "anomalies": [a.index for a in snapshot.revenue_anomalies],
        "growth": snapshot.revenue_growth,
    }


def build_performance_indicators(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    indicators = [
        {"key": "average_order_value", "label": "Average Order Value", "value": snapshot.average_order_value},
        {"key": "conversion_rate", "label": "Conversion Rate", "value": snapshot.conversion_rate, "unit": "%"},
        {"key": "inventory_health", "label": "Inventory Health", "value": snapshot.inventory_health, "unit": "%"},
        {"key": "service_utilization", "label": "Service Utilization", "value": snapshot.service_utilization, "unit": "%"},
    ]
    return {"empty": not any(i["value"] for i in indicators), "indicators": indicators}


def build_top_entities(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    rows = [
        {"id": e.id, "name": e.name, "sales_count": e.sales_count, "revenue": e.revenue}
        for e in snapshot.top_entities
    ]
    return {"empty": not rows, "rows": rows}


def build_recent_activity(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    items = [
        {
            "id": a.id,
            "entity_type": a.entity_type,
            "action": a.action,
            "name": a.name,
            "timestamp": a.timestamp.isoformat(),
        }
        for a in snapshot.recent_activity
    ]
    return {"empty": not items, "items": items}


def _distribution(counts: tuple[tuple[str, int], ...]) -> dict[str, Any]:
    total = sum(count for _, count in counts)
    slices = [
        {"label": label, "count": count, "share": round(count / total * 100, 1) if total else 0.0}
        for label, count in counts
    ]
    return {"empty": total == 0, "total": total, "slices": slices}


def build_category_distribution(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    return _distribution(snapshot.category_distribution)


def build_status_distribution(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    return _distribution(snapshot.status_distribution)


def build_generic_time_series(snapshot: AnalyticsSnapshot, date_range: DateRange) -> dict[str, Any]:
    """Group third-party feed readings into one series per reading name."""
    series: dict[str, dict[str, Any]] = {}
    for point in snapshot.external_points:
        entry = series.setdefault(
            point.name,
            {"name": point.name, "source_id": point.source_id, "unit": point.unit,
             "numeric": True, "points": []},
        )
        entry["numeric"] = entry["numeric"] and point.is_numeric
        entry["points"].append({"timestamp": point.timestamp.isoformat(), "value": point.value})
    for entry in series.values():
        entry["latest"] = entry["points"][-1]["value"]
    return {
        "empty": not series,
        "series": list(series.values()),
        "date_range": _range_dict(date_range),
    }


_BUILTIN_SPECS: dict[WidgetKind, WidgetSpec] = {
    WidgetKind.STAT_SUMMARY: WidgetSpec(
        "Overview",
        WidgetSize.FULL,
        ("total_products", "active_products", "total_services", "available_services",
         "total_revenue", "revenue_growth"),
        build_stat_summary,
    ),
    WidgetKind.REVENUE_TREND: WidgetSpec(
        "Revenue Trend",
        WidgetSize.LARGE,
        ("monthly_revenue", "month_labels", "revenue_forecast", "revenue_anomalies", "revenue_growth"),
        build_revenue_trend,
    ),
    WidgetKind.PERFORMANCE_INDICATORS: WidgetSpec(
        "Performance Indicators",
        WidgetSize.SMALL,
        ("average_order_value", "conversion_rate", "inventory_health", "service_utilization"),
        build_performance_indicators,
    ),
    WidgetKind.TOP_ENTITIES: WidgetSpec(
        "Top Products",
        WidgetSize.MEDIUM,
        ("top_entities",),
        build_top_entities,
    ),
    WidgetKind.RECENT_ACTIVITY: WidgetSpec(
        "Recent Activity",
        WidgetSize.MEDIUM,
        ("recent_activity",),
        build_recent_activity,
    ),
    WidgetKind.CATEGORY_DISTRIBUTION: WidgetSpec(
        "Categories",
        WidgetSize.MEDIUM,
        ("category_distribution",),
        build_category_distribution,
    ),
    WidgetKind.STATUS_DISTRIBUTION: WidgetSpec(
        "Status Breakdown",
        WidgetSize.MEDIUM,
        ("status_distribution",),
        build_status_distribution,
    ),
    WidgetKind.GENERIC_TIME_SERIES: WidgetSpec(
        "External Data",
        WidgetSize.FULL,
        ("external_points",),
        build_generic_time_series,
        initially_visible=False,
    ),
}


class WidgetRegistry:
    """Central registry of widget kinds.

    The built-in kinds are registered on construction; :meth:`register`
    replaces the spec of a kind (e.g. to swap a builder).
    """

    def __init__(self) -> None:
        self._specs: dict[WidgetKind, WidgetSpec] = dict(_BUILTIN_SPECS)

    def register(self, kind: WidgetKind, spec: WidgetSpec) -> None:
        self._specs[kind] = spec
        logger.info("Registered widget kind: %s", kind.value)

    def parse_kind(self, kind: WidgetKind | str) -> WidgetKind:
        """Coerce *kind* to a registered :class:`WidgetKind` or raise InvalidKind."""
        try:
            parsed = WidgetKind(kind)
        except ValueError:
            raise InvalidKind(f"unknown widget kind: {kind!r}") from None
        if parsed not in self._specs:
            raise InvalidKind(f"widget kind not registered: {parsed.value}")
        return parsed

    def get(self, kind: WidgetKind | str) -> WidgetSpec:
        return self._specs[self.parse_kind(kind)]

    def kinds(self) -> list[WidgetKind]:
        return list(self._specs)

    def default_layout(self) -> list[Widget]:
        """Fresh default arrangement: one widget per kind, in registry order."""
        return [
            Widget(
                id=f"w{i}",
                kind=kind,
                title=spec.default_title,
                size=spec.default_size,
                position=i,
                visible=spec.initially_visible,
            )
            for i, (kind, spec) in enumerate(self._specs.items(), start=1)
        ]

    def layout_span(self, widget: Widget) -> tuple[int, int]:
        """Return ``(columns, rows)`` occupied on the grid."""
        if widget.expanded:
            return GRID_COLUMNS, 2
        return _SPANS[widget.size], 1

    def render(
        self,
        widget: Widget,
        snapshot: AnalyticsSnapshot,
        date_range: DateRange | None = None,
    ) -> RenderModel:
        spec = self.get(widget.kind)
        data = spec.builder(snapshot, date_range or snapshot.date_range)
        columns, rows = self.layout_span(widget)
        return RenderModel(
            widget_id=widget.id,
            kind=widget.kind,
            title=widget.title,
            columns=columns,
            rows=rows,
            empty=bool(data.get("empty", False)),
            data=data,
        )
