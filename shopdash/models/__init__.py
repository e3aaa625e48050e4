"""Dashboard data model: widgets, views, date ranges and analytics snapshots."""

from shopdash.models.snapshot import (
    ActivityEntry,
    AnalyticsSnapshot,
    Anomaly,
    DateRange,
    Entity,
    EntityKind,
    ExternalDataPoint,
    InvalidDateRange,
    TopEntity,
    month_labels,
)
from shopdash.models.widget import View, Widget, WidgetKind, WidgetSize

__all__ = [
    "ActivityEntry",
    "AnalyticsSnapshot",
    "Anomaly",
    "DateRange",
    "Entity",
    "EntityKind",
    "ExternalDataPoint",
    "InvalidDateRange",
    "TopEntity",
    "View",
    "Widget",
    "WidgetKind",
    "WidgetSize",
    "month_labels",
]
