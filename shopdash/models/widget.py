"""Widget and View — the layout half of the dashboard data model.

A Widget is a configured panel, identified independently of the data it
shows.  A View is a named snapshot of a full widget list.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class WidgetKind(str, Enum):
    """Closed set of widget kinds known to the registry."""

    STAT_SUMMARY = "stat-summary"
    REVENUE_TREND = "revenue-trend"
    PERFORMANCE_INDICATORS = "performance-indicators"
    TOP_ENTITIES = "top-entities"
    RECENT_ACTIVITY = "recent-activity"
    CATEGORY_DISTRIBUTION = "category-distribution"
    STATUS_DISTRIBUTION = "status-distribution"
    GENERIC_TIME_SERIES = "generic-time-series"


class WidgetSize(str, Enum):
    """Layout hint, not pixel dimensions."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    FULL = "full"


class Widget(BaseModel):
    """One configured panel on the dashboard."""

    id: str = Field(default_factory=new_id)
    kind: WidgetKind
    title: str
    size: WidgetSize = WidgetSize.MEDIUM
    position: int
    visible: bool = True
    expanded: bool = False
    """When true the widget spans the full width at double height."""


class View(BaseModel):
    """A named, persisted arrangement of widgets."""

    id: str = Field(default_factory=new_id)
    name: str
    widgets: list[Widget] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
