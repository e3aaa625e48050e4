"""Analytics data model — catalog entities, date ranges and snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shopdash.config import DEFAULT_DATE_RANGE_DAYS, MONTHS_OF_HISTORY


class InvalidDateRange(ValueError):
    """Raised when a date range is edited so that start falls after end."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_labels(end: date, months: int = MONTHS_OF_HISTORY) -> list[str]:
    """Return ``YYYY-MM`` labels for the *months* calendar months ending at *end*."""
    labels: list[str] = []
    year, month = end.year, end.month
    for _ in range(months):
        labels.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    labels.reverse()
    return labels


class DateRange(BaseModel):
    """Inclusive ``[start, end]`` filter applied before aggregation."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> DateRange:
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @classmethod
    def between(cls, start: date, end: date) -> DateRange:
        """Build a range, raising :class:`InvalidDateRange` when inverted."""
        if start > end:
            raise InvalidDateRange(f"start {start} is after end {end}")
        return cls(start=start, end=end)

    @classmethod
    def trailing(cls, days: int = DEFAULT_DATE_RANGE_DAYS, today: date | None = None) -> DateRange:
        end = today or date.today()
        return cls(start=end - timedelta(days=max(days - 1, 0)), end=end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class EntityKind(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"


class Entity(BaseModel):
    """A catalog row as supplied by the MetricSource.

    Services carry ``stock=0``; quote-priced services carry ``price=0``.
    """

    id: str
    name: str = ""
    kind: EntityKind = EntityKind.PRODUCT
    category: str = ""
    price: float = 0.0
    stock: int = 0
    status: str = ""
    created_at: Optional[date] = None


class ActivityEntry(BaseModel):
    """A recent catalog update shown by the recent-activity widget."""

    model_config = ConfigDict(frozen=True)

    id: str
    entity_type: str
    action: str
    """Action: 'create', 'update', 'delete'."""

    name: str = ""
    timestamp: datetime = Field(default_factory=_utc_now)


class ExternalDataPoint(BaseModel):
    """One reading from a third-party feed (weather, exchange rates, news).

    Numeric readings are plotted; text readings are shown as their latest value.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_id: str
    name: str
    value: Union[float, str]
    unit: str = ""
    timestamp: datetime = Field(default_factory=_utc_now)

    @property
    def is_numeric(self) -> bool:
        return not isinstance(self.value, str)


class TopEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sales_count: int
    revenue: float


class Anomaly(BaseModel):
    """A series point whose z-score reached the detection threshold."""

    model_config = ConfigDict(frozen=True)

    index: int
    value: float
    z_score: float
    label: str = ""


class AnalyticsSnapshot(BaseModel):
    """Immutable result of one aggregation pass.

    Every widget in a refresh cycle renders from the same snapshot.  A
    snapshot with ``fetch_error`` set is the all-zero fallback produced when
    the MetricSource could not be read.
    """

    model_config = ConfigDict(frozen=True)

    date_range: DateRange
    generated_at: datetime = Field(default_factory=_utc_now)

    # Sales
    total_revenue: float = 0.0
    monthly_revenue: tuple[float, ...] = (0.0,) * MONTHS_OF_HISTORY
    month_labels: tuple[str, ...] = ()
    revenue_growth: float = 0.0
    average_order_value: float = 0.0
    conversion_rate: float = 0.0
    top_entities: tuple[TopEntity, ...] = ()

    # Catalog health
    inventory_health: float = 0.0
    service_utilization: float = 0.0
    total_products: int = 0
    active_products: int = 0
    total_services: int = 0
    available_services: int = 0
    # (label, count) pairs; mappings are accepted and frozen on validation
    category_distribution: tuple[tuple[str, int], ...] = ()
    status_distribution: tuple[tuple[str, int], ...] = ()
    recent_activity: tuple[ActivityEntry, ...] = ()

    # Third-party feeds, chronological
    external_points: tuple[ExternalDataPoint, ...] = ()

    # Derived series
    revenue_forecast: tuple[float, ...] = ()
    revenue_anomalies: tuple[Anomaly, ...] = ()

    fetch_error: Optional[str] = None

    @field_validator("category_distribution", "status_distribution", mode="before")
    @classmethod
    def _freeze_counts(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return tuple(value.items())
        return value

    @classmethod
    def empty(cls, date_range: DateRange, fetch_error: str | None = None) -> AnalyticsSnapshot:
        return cls(
            date_range=date_range,
            month_labels=tuple(month_labels(date_range.end)),
            fetch_error=fetch_error,
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.total_revenue == 0
            and not any(self.monthly_revenue)
            and not self.top_entities
            and self.total_products == 0
            and self.total_services == 0
        )

    def category_counts(self) -> dict[str, int]:
        return dict(self.category_distribution)

    def status_counts(self) -> dict[str, int]:
        return dict(self.status_distribution)
