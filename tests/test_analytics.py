"""Tests for the analytics pipeline — KPIs, revenue estimation, ledger and aggregation."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from shopdash.analytics import kpi
from shopdash.analytics.aggregator import AnalyticsAggregator
from shopdash.analytics.estimator import (
    LedgerRevenueEstimator,
    RevenueEstimate,
    RevenueEstimator,
    SyntheticRevenueEstimator,
)
from shopdash.analytics.ledger import ORDER, VISIT, OrderLedger
from shopdash.analytics.source import InMemoryMetricSource, MetricFetchError
from shopdash.models.snapshot import (
    ActivityEntry,
    AnalyticsSnapshot,
    ExternalDataPoint,
    DateRange,
    Entity,
    EntityKind,
    InvalidDateRange,
    month_labels,
)

JUNE = DateRange.between(date(2024, 6, 1), date(2024, 6, 30))


def _product(pid, price, stock, category="general", status="active", created_at=None):
    return Entity(
        id=pid,
        name=f"Product {pid}",
        kind=EntityKind.PRODUCT,
        category=category,
        price=price,
        stock=stock,
        status=status,
        created_at=created_at,
    )


def _service(sid, status="available", price=50.0, category="repairs"):
    return Entity(
        id=sid,
        name=f"Service {sid}",
        kind=EntityKind.SERVICE,
        category=category,
        price=price,
        status=status,
    )


def _catalog():
    return [
        _product("p1", 10.0, 7, category="tools"),
        _product("p2", 25.0, 15, category="tools"),
        _product("p3", 5.0, 33, category="garden", status="draft"),
        _product("p4", 100.0, 2, category="garden"),
        _product("p5", 1.0, 0, category=""),
        _service("s1"),
        _service("s2", status="booked"),
        _service("s3"),
    ]


class FixedEstimator(RevenueEstimator):
    def __init__(self, monthly, orders=0, visits=0):
        self.monthly = list(monthly)
        self.orders = orders
        self.visits = visits

    def estimate(self, products, date_range):
        return RevenueEstimate(
            monthly_revenue=self.monthly, order_count=self.orders, visit_count=self.visits
        )


class BrokenEstimator(RevenueEstimator):
    def estimate(self, products, date_range):
        raise RuntimeError("estimator down")


# ── Models ───────────────────────────────────────────────────────────────────

class TestDateRange:

    def test_between_rejects_inverted(self):
        with pytest.raises(InvalidDateRange):
            DateRange.between(date(2024, 6, 2), date(2024, 6, 1))

    def test_single_day_allowed(self):
        dr = DateRange.between(date(2024, 6, 1), date(2024, 6, 1))
        assert dr.contains(date(2024, 6, 1))

    def test_trailing(self):
        dr = DateRange.trailing(30, today=date(2024, 6, 30))
        assert dr.start == date(2024, 6, 1)
        assert dr.end == date(2024, 6, 30)

    def test_month_labels_cross_year(self):
        labels = month_labels(date(2024, 2, 10))
        assert len(labels) == 12
        assert labels[0] == "2023-03"
        assert labels[-1] == "2024-02"

    def test_empty_snapshot(self):
        snapshot = AnalyticsSnapshot.empty(JUNE)
        assert snapshot.is_empty
        assert snapshot.monthly_revenue == (0.0,) * 12
        assert snapshot.month_labels[-1] == "2024-06"
        assert snapshot.fetch_error is None


def _reading(name, value, day, month=6, source_id="weather", unit=""):
    return ExternalDataPoint(
        id=f"{source_id}-{name}-{month}-{day}",
        source_id=source_id,
        name=name,
        value=value,
        unit=unit,
        timestamp=datetime(2024, month, day, 8, 0, tzinfo=timezone.utc),
    )


class TestSnapshotDistributions:

    def test_mappings_frozen_to_pairs(self):
        snapshot = AnalyticsSnapshot(date_range=JUNE, category_distribution={"tools": 2, "garden": 1})
        assert snapshot.category_distribution == (("tools", 2), ("garden", 1))
        assert isinstance(snapshot.status_distribution, tuple)

    def test_counts_cannot_be_changed_in_place(self):
        snapshot = AnalyticsSnapshot(date_range=JUNE, status_distribution={"active": 3})
        counts = snapshot.status_counts()
        counts["active"] = 99
        assert snapshot.status_counts() == {"active": 3}
        with pytest.raises(ValidationError):
            snapshot.status_distribution = (("active", 99),)


# ── KPI formulas ─────────────────────────────────────────────────────────────

class TestKPI:

    def test_growth(self):
        assert kpi.revenue_growth([100.0, 110.0]) == pytest.approx(10.0)
        assert kpi.revenue_growth([200.0, 150.0]) == pytest.approx(-25.0)

    def test_growth_zero_last_bucket(self):
        series = [0.0] * 10 + [50000.0, 0.0]
        assert kpi.revenue_growth(series) == 0.0

    def test_growth_zero_prior_bucket(self):
        assert kpi.revenue_growth([0.0, 100.0]) == 0.0

    def test_growth_short_series(self):
        assert kpi.revenue_growth([]) == 0.0
        assert kpi.revenue_growth([5.0]) == 0.0

    def test_top_entities(self):
        ranked = kpi.top_entities(_catalog()[:5], n=3)
        # stock values: p1=70, p2=375, p3=165, p4=200, p5=0
        assert [e.id for e in ranked] == ["p2", "p4", "p3"]
        assert ranked[0].revenue == 375.0
        assert ranked[0].sales_count == 4
        assert ranked[2].sales_count == 9

    def test_top_entities_fewer_than_n(self):
        assert len(kpi.top_entities(_catalog()[:2], n=4)) == 2
        assert kpi.top_entities([], n=4) == []

    def test_inventory_health(self):
        products = [_product("a", 1, 5), _product("b", 1, 20), _product("c", 1, 30), _product("d", 1, 10)]
        assert kpi.inventory_health(products, min_threshold=10) == 50.0
        assert kpi.inventory_health([]) == 0.0

    def test_service_utilization(self):
        services = [_service("a"), _service("b", status="booked"), _service("c")]
        assert kpi.service_utilization(services) == 67.0
        assert kpi.service_utilization([]) == 0.0

    def test_ratios_guard_zero(self):
        assert kpi.average_order_value(1000.0, 0) == 0.0
        assert kpi.average_order_value(1000.0, 3) == 333.33
        assert kpi.conversion_rate(5, 0) == 0.0
        assert kpi.conversion_rate(5, 200) == 2.5

    def test_distributions(self):
        counts = kpi.category_distribution(_catalog())
        assert counts == {"garden": 2, "repairs": 3, "tools": 2, "uncategorized": 1}
        statuses = kpi.status_distribution(_catalog())
        assert statuses["available"] == 2
        assert statuses["draft"] == 1


# ── Revenue estimation ───────────────────────────────────────────────────────

class TestSyntheticRevenueEstimator:

    def test_seeded_is_reproducible(self):
        products = _catalog()[:5]
        a = SyntheticRevenueEstimator(seed=42).estimate(products, JUNE)
        b = SyntheticRevenueEstimator(seed=42).estimate(products, JUNE)
        assert a.monthly_revenue == b.monthly_revenue

    def test_shape(self):
        estimate = SyntheticRevenueEstimator(seed=1).estimate(_catalog()[:5], JUNE)
        assert len(estimate.monthly_revenue) == 12
        assert all(v > 0 for v in estimate.monthly_revenue)
        # int(stock * 0.3): 2 + 4 + 9 + 0 + 0
        assert estimate.order_count == 15
        assert estimate.visit_count == 600

    def test_bounded_by_noise_band(self):
        products = [_product("x", 100.0, 100)]
        estimate = SyntheticRevenueEstimator(seed=3, seasonal_amplitude=0.0, growth_rate=0.0).estimate(
            products, JUNE
        )
        baseline = 100.0 * 100 * 0.08
        for value in estimate.monthly_revenue:
            assert baseline * 0.9 - 0.01 <= value <= baseline * 1.1 + 0.01

    def test_empty_catalog(self):
        estimate = SyntheticRevenueEstimator(seed=1).estimate([], JUNE)
        assert estimate.monthly_revenue == [0.0] * 12
        assert estimate.order_count == 0
        assert estimate.visit_count == 0


class TestOrderLedger:

    def _ts(self, year, month, day):
        return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)

    def test_monthly_totals(self):
        ledger = OrderLedger(":memory:")
        ledger.record_order(100.0, "p1", self._ts(2024, 5, 3))
        ledger.record_order(50.0, "p2", self._ts(2024, 5, 20))
        ledger.record_order(70.0, "p1", self._ts(2024, 6, 1))
        ledger.record_visit(self._ts(2024, 6, 1))
        assert ledger.monthly_totals(ORDER) == {"2024-05": 150.0, "2024-06": 70.0}
        ledger.close()

    def test_count_in_range(self):
        ledger = OrderLedger(":memory:")
        ledger.record_order(10.0, timestamp=self._ts(2024, 5, 31))
        ledger.record_order(10.0, timestamp=self._ts(2024, 6, 1))
        ledger.record_order(10.0, timestamp=self._ts(2024, 6, 30))
        ledger.record_visit(self._ts(2024, 6, 15))
        assert ledger.count(ORDER) == 3
        assert ledger.count(ORDER, JUNE.start, JUNE.end) == 2
        assert ledger.count(VISIT, JUNE.start, JUNE.end) == 1
        ledger.close()

    def test_file_database(self, tmp_path):
        db = tmp_path / "ledger.db"
        ledger = OrderLedger(db)
        ledger.record_order(42.0)
        ledger.close()
        reopened = OrderLedger(db)
        assert reopened.count(ORDER) == 1
        reopened.close()

    def test_ledger_estimator(self):
        ledger = OrderLedger(":memory:")
        ledger.record_order(300.0, timestamp=self._ts(2024, 6, 10))
        ledger.record_order(200.0, timestamp=self._ts(2024, 5, 10))
        ledger.record_order(999.0, timestamp=self._ts(2023, 1, 10))
        for day in (2, 3, 4, 5):
            ledger.record_visit(self._ts(2024, 6, day))

        estimate = LedgerRevenueEstimator(ledger).estimate([], JUNE)
        assert len(estimate.monthly_revenue) == 12
        assert estimate.monthly_revenue[-1] == 300.0
        assert estimate.monthly_revenue[-2] == 200.0
        assert sum(estimate.monthly_revenue) == 500.0
        assert estimate.order_count == 1
        assert estimate.visit_count == 4
        ledger.close()

    def test_total_in_range(self):
        ledger = OrderLedger(":memory:")
        ledger.record_order(40.0, timestamp=self._ts(2024, 5, 31))
        ledger.record_order(25.5, timestamp=self._ts(2024, 6, 1))
        ledger.record_order(10.0, timestamp=self._ts(2024, 6, 30))
        ledger.record_visit(self._ts(2024, 6, 15))
        assert ledger.total(ORDER) == 75.5
        assert ledger.total(ORDER, JUNE.start, JUNE.end) == 35.5
        assert ledger.total(ORDER, date(2025, 1, 1), date(2025, 1, 31)) == 0
        ledger.close()

    def test_average_order_value_uses_orders_in_range(self):
        ledger = OrderLedger(":memory:")
        for month in range(1, 7):
            ledger.record_order(100.0, timestamp=self._ts(2024, month, 15))
        source = InMemoryMetricSource(_catalog())
        aggregator = AnalyticsAggregator(source, LedgerRevenueEstimator(ledger))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.total_revenue == 600.0
        assert snapshot.average_order_value == 100.0
        ledger.close()


# ── InMemoryMetricSource
# ─────────────────────────────────────────────────────

class TestInMemoryMetricSource:

    def test_lists_by_kind(self):
        source = InMemoryMetricSource(_catalog())
        products = asyncio.run(source.list_entities(EntityKind.PRODUCT))
        services = asyncio.run(source.list_entities(EntityKind.SERVICE))
        assert len(products) == 5
        assert len(services) == 3
        assert source.fetch_count == 2

    def test_recent_activity_newest_first(self):
        entries = [
            ActivityEntry(id=str(i), entity_type="product", action="update", name=f"P{i}",
                          timestamp=datetime(2024, 6, i, tzinfo=timezone.utc))
            for i in range(1, 8)
        ]
        source = InMemoryMetricSource(activity=entries)
        latest = asyncio.run(source.recent_activity(5))
        assert [a.id for a in latest] == ["7", "6", "5", "4", "3"]

    def test_fail_with(self):
        source = InMemoryMetricSource(_catalog())
        source.fail_with(MetricFetchError("offline"))
        with pytest.raises(MetricFetchError):
            asyncio.run(source.list_entities(EntityKind.PRODUCT))
        source.fail_with(None)
        assert len(asyncio.run(source.list_entities(EntityKind.PRODUCT))) == 5

    def test_no_readings_by_default(self):
        source = InMemoryMetricSource(_catalog())
        assert asyncio.run(source.external_points()) == []
        assert asyncio.run(source.latest_point("weather", "temperature")) is None

    def test_readings_by_feed(self):
        source = InMemoryMetricSource(external=[
            _reading("temperature", 21.0, 3),
            _reading("EUR/USD", 1.08, 2, source_id="fx"),
            _reading("temperature", 18.5, 1),
        ])
        source.add_point(_reading("temperature", 24.0, 5))
        weather = asyncio.run(source.external_points("weather"))
        assert [p.value for p in weather] == [18.5, 21.0, 24.0]
        assert len(asyncio.run(source.external_points())) == 4
        latest = asyncio.run(source.latest_point("weather", "temperature"))
        assert latest.value == 24.0
        assert asyncio.run(source.latest_point("fx", "temperature")) is None


# ── AnalyticsAggregator ──────────────────────────────────────────────────────

class TestAnalyticsAggregator:

    def test_compute_catalog_metrics(self):
        source = InMemoryMetricSource(_catalog())
        aggregator = AnalyticsAggregator(source, SyntheticRevenueEstimator(seed=5))
        snapshot = asyncio.run(aggregator.compute(JUNE))

        assert snapshot.fetch_error is None
        assert snapshot.total_products == 5
        assert snapshot.active_products == 4
        assert snapshot.total_services == 3
        assert snapshot.available_services == 2
        assert snapshot.service_utilization == 67.0
        # stock > 10: p2, p3
        assert snapshot.inventory_health == 40.0
        assert [e.id for e in snapshot.top_entities] == ["p2", "p4", "p3", "p1"]
        assert snapshot.category_counts()["repairs"] == 3
        assert len(snapshot.monthly_revenue) == 12
        assert snapshot.month_labels[-1] == "2024-06"
        assert snapshot.total_revenue == pytest.approx(sum(snapshot.monthly_revenue), abs=0.01)
        assert len(snapshot.revenue_forecast) == 3

    def test_compute_ratios_from_estimate(self):
        source = InMemoryMetricSource(_catalog())
        aggregator = AnalyticsAggregator(source, FixedEstimator([100.0] * 12, orders=4, visits=200))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.total_revenue == 1200.0
        assert snapshot.average_order_value == 300.0
        assert snapshot.conversion_rate == 2.0
        assert snapshot.revenue_growth == 0.0
        assert snapshot.revenue_anomalies == ()

    def test_anomalies_and_forecast_embedded(self):
        source = InMemoryMetricSource(_catalog())
        aggregator = AnalyticsAggregator(source, FixedEstimator([100.0] * 11 + [1000.0]))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert [a.index for a in snapshot.revenue_anomalies] == [11]
        assert snapshot.revenue_anomalies[0].label == "2024-06"
        assert snapshot.revenue_growth == 900.0
        assert all(v > 1000.0 for v in snapshot.revenue_forecast)

    def test_short_series_is_padded(self):
        source = InMemoryMetricSource(_catalog())
        aggregator = AnalyticsAggregator(source, FixedEstimator([10.0, 20.0]))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.monthly_revenue == (0.0,) * 10 + (10.0, 20.0)

    def test_entities_created_after_range_excluded(self):
        catalog = _catalog() + [_product("late", 1000.0, 100, created_at=date(2024, 7, 15))]
        source = InMemoryMetricSource(catalog)
        aggregator = AnalyticsAggregator(source, FixedEstimator([0.0] * 12))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.total_products == 5
        assert "late" not in [e.id for e in snapshot.top_entities]

    def test_recent_activity_limited(self):
        entries = [
            ActivityEntry(id=str(i), entity_type="service", action="create",
                          timestamp=datetime(2024, 6, i, tzinfo=timezone.utc))
            for i in range(1, 10)
        ]
        source = InMemoryMetricSource(_catalog(), entries)
        aggregator = AnalyticsAggregator(source, FixedEstimator([0.0] * 12))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert [a.id for a in snapshot.recent_activity] == ["9", "8", "7", "6", "5"]

    def test_fetch_failure_yields_empty_snapshot(self):
        source = InMemoryMetricSource(_catalog())
        source.fail_with(MetricFetchError("catalog unavailable"))
        aggregator = AnalyticsAggregator(source, SyntheticRevenueEstimator(seed=1))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.fetch_error == "catalog unavailable"
        assert snapshot.is_empty
        assert snapshot.date_range == JUNE

    def test_estimator_failure_yields_empty_snapshot(self):
        aggregator = AnalyticsAggregator(InMemoryMetricSource(_catalog()), BrokenEstimator())
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.fetch_error == "estimator down"

    def test_empty_catalog(self):
        aggregator = AnalyticsAggregator(InMemoryMetricSource(), SyntheticRevenueEstimator(seed=1))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.fetch_error is None
        assert snapshot.is_empty
        assert snapshot.inventory_health == 0.0
        assert snapshot.revenue_forecast == (0.0, 0.0, 0.0)

    def test_external_readings_in_range(self):
        source = InMemoryMetricSource(_catalog(), external=[
            _reading("temperature", 19.0, 20),
            _reading("temperature", 15.0, 28, month=5),
            _reading("headline", "Heatwave expected", 10, source_id="news"),
            _reading("temperature", 22.0, 2),
            _reading("temperature", 30.0, 1, month=7),
        ])
        aggregator = AnalyticsAggregator(source, FixedEstimator([0.0] * 12))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert [p.value for p in snapshot.external_points] == [22.0, "Heatwave expected", 19.0]
        assert not snapshot.external_points[1].is_numeric

    def test_no_external_readings(self):
        aggregator = AnalyticsAggregator(InMemoryMetricSource(_catalog()), FixedEstimator([0.0] * 12))
        snapshot = asyncio.run(aggregator.compute(JUNE))
        assert snapshot.external_points == ()
