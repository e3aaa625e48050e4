"""shopdash — customizable analytics dashboard for a storefront admin console."""

__version__ = "1.0.0"

from shopdash.analytics.aggregator import AnalyticsAggregator
from shopdash.analytics.anomaly import AnomalyDetector
from shopdash.analytics.dashboard import DashboardGenerator
from shopdash.analytics.estimator import (
    LedgerRevenueEstimator,
    RevenueEstimator,
    SyntheticRevenueEstimator,
)
from shopdash.analytics.exporter import ReportExporter
from shopdash.analytics.forecast import InsufficientData, TrendForecaster
from shopdash.analytics.ledger import OrderLedger
from shopdash.analytics.source import InMemoryMetricSource, MetricFetchError, MetricSource
from shopdash.api.facade import AdminDashboard
from shopdash.config_manager import ConfigManager, DashboardSettings
from shopdash.controller import DashboardController, DashboardState
from shopdash.layout.engine import LayoutEngine, MoveDirection, WidgetNotFound
from shopdash.layout.registry import InvalidKind, RenderModel, WidgetRegistry
from shopdash.layout.views import (
    EmptyName,
    InMemoryViewRepository,
    JsonFileViewRepository,
    ProtectedView,
    SQLiteViewRepository,
    ViewRepository,
    ViewStore,
)
from shopdash.models import (
    ActivityEntry,
    AnalyticsSnapshot,
    Anomaly,
    DateRange,
    Entity,
    EntityKind,
    ExternalDataPoint,
    InvalidDateRange,
    TopEntity,
    View,
    Widget,
    WidgetKind,
    WidgetSize,
)

__all__ = [
    "__version__",
    # Facade
    "AdminDashboard",
    # Models
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
    # Analytics
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
    "RevenueEstimator",
    "SyntheticRevenueEstimator",
    "TrendForecaster",
    # Layout
    "EmptyName",
    "InMemoryViewRepository",
    "InvalidKind",
    "JsonFileViewRepository",
    "LayoutEngine",
    "MoveDirection",
    "ProtectedView",
    "RenderModel",
    "SQLiteViewRepository",
    "ViewRepository",
    "ViewStore",
    "WidgetNotFound",
    "WidgetRegistry",
    # Controller & config
    "ConfigManager",
    "DashboardController",
    "DashboardSettings",
    "DashboardState",
]
