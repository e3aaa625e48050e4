"""Analytics pipeline.

Provides catalog reading, revenue estimation, KPI aggregation, trend
forecasting, anomaly detection and report/HTML export.
"""

from shopdash.analytics.aggregator import AnalyticsAggregator
from shopdash.analytics.anomaly import AnomalyDetector
from shopdash.analytics.dashboard import DashboardGenerator
from shopdash.analytics.estimator import (
    LedgerRevenueEstimator,
    RevenueEstimate,
    RevenueEstimator,
    SyntheticRevenueEstimator,
)
from shopdash.analytics.exporter import ReportExporter
from shopdash.analytics.forecast import InsufficientData, TrendForecaster
from shopdash.analytics.ledger import OrderLedger
from shopdash.analytics.source import InMemoryMetricSource, MetricFetchError, MetricSource

__all__ = [
    "AnalyticsAggregator",
    "AnomalyDetector",
    "DashboardGenerator",
    "InMemoryMetricSource",
    "InsufficientData",
    "LedgerRevenueEstimator",
    "MetricFetchError",
    "MetricSource",
    "OrderLedger",
    "ReportExporter",
    "RevenueEstimate",
    "RevenueEstimator",
    "SyntheticRevenueEstimator",
    "TrendForecaster",
]
