"""AnalyticsAggregator — turn MetricSource reads into an AnalyticsSnapshot."""

from __future__ import annotations

import asyncio
import logging

from shopdash.analytics import kpi
from shopdash.analytics.anomaly import AnomalyDetector
from shopdash.analytics.estimator import RevenueEstimator, SyntheticRevenueEstimator
from shopdash.analytics.forecast import InsufficientData, TrendForecaster
from shopdash.analytics.source import MetricSource
from shopdash.config import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_FORECAST_PERIODS,
    DEFAULT_MIN_STOCK_THRESHOLD,
    DEFAULT_SALES_FRACTION,
    DEFAULT_TOP_N,
    MONTHS_OF_HISTORY,
)
from shopdash.models.snapshot import (
    AnalyticsSnapshot,
    DateRange,
    Entity,
    EntityKind,
    ExternalDataPoint,
    month_labels,
)

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


class AnalyticsAggregator:
    """Compute a fresh :class:`AnalyticsSnapshot` per refresh.

    Parameters
    ----------
    source:
        Catalog reader.
    estimator:
        Revenue history seam.  Defaults to the synthetic estimator.
    forecaster, detector:
        Consumers of the monthly revenue series whose results are embedded
        in the snapshot.
    """

    def __init__(
        self,
        source: MetricSource,
        estimator: RevenueEstimator | None = None,
        forecaster: TrendForecaster | None = None,
        detector: AnomalyDetector | None = None,
        *,
        top_n: int = DEFAULT_TOP_N,
        min_stock_threshold: int = DEFAULT_MIN_STOCK_THRESHOLD,
        sales_fraction: float = DEFAULT_SALES_FRACTION,
        forecast_periods: int = DEFAULT_FORECAST_PERIODS,
        anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD,
    ) -> None:
        self.source = source
        self.estimator = estimator or SyntheticRevenueEstimator()
        self.forecaster = forecaster or TrendForecaster()
        self.detector = detector or AnomalyDetector()
        self.top_n = top_n
        self.min_stock_threshold = min_stock_threshold
        self.sales_fraction = sales_fraction
        self.forecast_periods = forecast_periods
        self.anomaly_threshold = anomaly_threshold

    async def compute(self, date_range: DateRange | None = None) -> AnalyticsSnapshot:
        """Aggregate the catalog for *date_range* (default: trailing 30 days).

        A failed read never raises: it yields the all-zero snapshot with
        ``fetch_error`` set, and the caller decides how to surface it.
        """
        date_range = date_range or DateRange.trailing()

        try:
            products, services, activity, external = await asyncio.gather(
                self.source.list_entities(EntityKind.PRODUCT),
                self.source.list_entities(EntityKind.SERVICE),
                self.source.recent_activity(RECENT_ACTIVITY_LIMIT),
                self.source.external_points(),
            )
        except Exception as exc:
            logger.warning("Metric fetch failed: %s", exc)
            return AnalyticsSnapshot.empty(date_range, fetch_error=_describe(exc))

        products = _existing_at(products, date_range)
        services = _existing_at(services, date_range)

        try:
            estimate = self.estimator.estimate(products, date_range)
        except Exception as exc:
            logger.warning("Revenue estimation failed: %s", exc)
            return AnalyticsSnapshot.empty(date_range, fetch_error=_describe(exc))

        monthly = _normalise_series(estimate.monthly_revenue)
        labels = month_labels(date_range.end)
        total_revenue = round(sum(monthly), 2)
        order_revenue = total_revenue if estimate.period_revenue is None else estimate.period_revenue

        snapshot = AnalyticsSnapshot(
            date_range=date_range,
            total_revenue=total_revenue,
            monthly_revenue=tuple(monthly),
            month_labels=tuple(labels),
            revenue_growth=round(kpi.revenue_growth(monthly), 2),
            average_order_value=kpi.average_order_value(order_revenue, estimate.order_count),
            conversion_rate=kpi.conversion_rate(estimate.order_count, estimate.visit_count),
            top_entities=tuple(kpi.top_entities(products, self.top_n, self.sales_fraction)),
            inventory_health=kpi.inventory_health(products, self.min_stock_threshold),
            service_utilization=kpi.service_utilization(services),
            total_products=len(products),
            active_products=sum(1 for p in products if p.status == kpi.ACTIVE_STATUS),
            total_services=len(services),
            available_services=sum(1 for s in services if s.status == kpi.AVAILABLE_STATUS),
            category_distribution=kpi.category_distribution([*products, *services]),
            status_distribution=kpi.status_distribution([*products, *services]),
            recent_activity=tuple(activity),
            external_points=tuple(_readings_in(external, date_range)),
            revenue_forecast=tuple(self._forecast(monthly)),
            revenue_anomalies=tuple(
                self.detector.detect(monthly, self.anomaly_threshold, labels=labels)
            ),
        )
        logger.info(
            "Computed snapshot for %s..%s: %d products, %d services, revenue %.2f",
            date_range.start,
            date_range.end,
            snapshot.total_products,
            snapshot.total_services,
            snapshot.total_revenue,
        )
        return snapshot

    def _forecast(self, monthly: list[float]) -> list[float]:
        try:
            return [round(v, 2) for v in self.forecaster.forecast(monthly, self.forecast_periods)]
        except InsufficientData:
            logger.debug("Not enough revenue history to forecast", exc_info=True)
            return []


def _existing_at(entities: list[Entity], date_range: DateRange) -> list[Entity]:
    """Drop entities created after the end of the range."""
    return [e for e in entities if e.created_at is None or e.created_at <= date_range.end]


def _readings_in(points: list[ExternalDataPoint], date_range: DateRange) -> list[ExternalDataPoint]:
    """Feed readings taken inside the range, oldest first."""
    inside = [p for p in points if date_range.contains(p.timestamp.date())]
    return sorted(inside, key=lambda p: p.timestamp)


def _normalise_series(values: list[float]) -> list[float]:
    """Pad or trim to exactly ``MONTHS_OF_HISTORY`` non-negative buckets."""
    series = [max(float(v), 0.0) for v in values[-MONTHS_OF_HISTORY:]]
    return [0.0] * (MONTHS_OF_HISTORY - len(series)) + series


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__
