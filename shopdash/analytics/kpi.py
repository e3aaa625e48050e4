"""KPI formulas — pure functions over catalog entities and revenue series."""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from shopdash.config import (
    DEFAULT_MIN_STOCK_THRESHOLD,
    DEFAULT_SALES_FRACTION,
    DEFAULT_TOP_N,
)
from shopdash.models.snapshot import Entity, TopEntity

AVAILABLE_STATUS = "available"
ACTIVE_STATUS = "active"


def revenue_growth(monthly: Sequence[float]) -> float:
    """Month-over-month growth of the last two buckets, in percent.

    Returns 0 when either bucket is empty (a zero bucket means the month has
    no data yet, not a 100% drop) or there are fewer than two buckets.
    """
    if len(monthly) < 2:
        return 0.0
    prior, last = monthly[-2], monthly[-1]
    if prior == 0 or last == 0:
        return 0.0
    return (last - prior) / prior * 100.0


def top_entities(
    products: Sequence[Entity],
    n: int = DEFAULT_TOP_N,
    sales_fraction: float = DEFAULT_SALES_FRACTION,
) -> list[TopEntity]:
    """Rank products by stock value (``price * stock``), highest first.

    Without sales history, stock value stands in for revenue potential and
    ``sales_fraction`` of stock stands in for units sold.
    """
    ranked = sorted(products, key=lambda p: p.price * p.stock, reverse=True)
    return [
        TopEntity(
            id=p.id,
            name=p.name,
            sales_count=int(p.stock * sales_fraction),
            revenue=round(p.price * p.stock, 2),
        )
        for p in ranked[: max(n, 0)]
    ]


def inventory_health(
    products: Sequence[Entity],
    min_threshold: int = DEFAULT_MIN_STOCK_THRESHOLD,
) -> float:
    """Percentage of products stocked above *min_threshold*, rounded."""
    if not products:
        return 0.0
    healthy = sum(1 for p in products if p.stock > min_threshold)
    return float(round(healthy / len(products) * 100))


def service_utilization(services: Sequence[Entity]) -> float:
    """Percentage of services currently available, rounded."""
    if not services:
        return 0.0
    available = sum(1 for s in services if s.status == AVAILABLE_STATUS)
    return float(round(available / len(services) * 100))


def average_order_value(total_revenue: float, order_count: int) -> float:
    if order_count <= 0:
        return 0.0
    return round(total_revenue / order_count, 2)


def conversion_rate(order_count: int, visit_count: int) -> float:
    """Orders per visit, in percent."""
    if visit_count <= 0:
        return 0.0
    return round(order_count / visit_count * 100.0, 2)


def category_distribution(entities: Sequence[Entity]) -> dict[str, int]:
    counts = Counter(e.category or "uncategorized" for e in entities)
    return dict(sorted(counts.items()))


def status_distribution(entities: Sequence[Entity]) -> dict[str, int]:
    counts = Counter(e.status or "unknown" for e in entities)
    return dict(sorted(counts.items()))
