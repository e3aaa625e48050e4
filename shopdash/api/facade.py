"""AdminDashboard — the single entry point for the analytics dashboard.

Usage::

    from shopdash import AdminDashboard, InMemoryMetricSource

    dash = AdminDashboard("/path/to/project", InMemoryMetricSource(catalog))
    await dash.mount()
    dash.controller.move_widget("w3", "up")
    dash.controller.save_view("Sales focus")
    dash.render()
    dash.export_markdown()
    dash.generate_dashboard()
    dash.unmount()
"""

from __future__ import annotations

import logging
import random
from pathlib import Path

from shopdash.analytics.aggregator import AnalyticsAggregator
from shopdash.analytics.anomaly import AnomalyDetector
from shopdash.analytics.dashboard import DashboardGenerator
from shopdash.analytics.estimator import (
    LedgerRevenueEstimator,
    RevenueEstimator,
    SyntheticRevenueEstimator,
)
from shopdash.analytics.exporter import ReportExporter
from shopdash.analytics.forecast import TrendForecaster
from shopdash.analytics.ledger import OrderLedger
from shopdash.analytics.source import MetricSource
from shopdash.config_manager import ConfigManager, DashboardSettings
from shopdash.controller import DashboardController
from shopdash.layout.engine import LayoutEngine
from shopdash.layout.registry import RenderModel, WidgetRegistry
from shopdash.layout.views import (
    InMemoryViewRepository,
    JsonFileViewRepository,
    SQLiteViewRepository,
    ViewRepository,
    ViewStore,
)

logger = logging.getLogger(__name__)


class AdminDashboard:
    """Wire the analytics pipeline, layout engine and controller together.

    Parameters
    ----------
    project_root:
        Directory holding ``.shopdash/`` state and exported files.
    source:
        Catalog reader.
    settings:
        Explicit settings; loaded through :class:`ConfigManager` when omitted.
    estimator:
        Revenue seam override.  By default a ledger-backed estimator is used
        when ``ledger_db`` is configured, the synthetic one otherwise.
    seed:
        Seed for the synthetic estimator and forecast jitter.
    """

    def __init__(
        self,
        project_root: str | Path,
        source: MetricSource,
        *,
        settings: DashboardSettings | None = None,
        estimator: RevenueEstimator | None = None,
        seed: int | None = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.settings = settings or ConfigManager().load_settings(self.project_root)
        logging.getLogger("shopdash").setLevel(self.settings.log_level)

        self.ledger: OrderLedger | None = None
        if estimator is None:
            if self.settings.ledger_db:
                self.ledger = OrderLedger(self._resolve(self.settings.ledger_db))
                estimator = LedgerRevenueEstimator(self.ledger)
            else:
                estimator = SyntheticRevenueEstimator(seed=seed)

        self.aggregator = AnalyticsAggregator(
            source,
            estimator,
            TrendForecaster(rng=random.Random(seed)),
            AnomalyDetector(),
            top_n=self.settings.top_n,
            min_stock_threshold=self.settings.min_stock_threshold,
            forecast_periods=self.settings.forecast_periods,
            anomaly_threshold=self.settings.anomaly_threshold,
        )
        self.registry = WidgetRegistry()
        self.engine = LayoutEngine(self.registry)
        self.view_repository = self._make_view_repository()
        self.views = ViewStore(self.engine, self.view_repository)
        self.controller = DashboardController(
            self.aggregator,
            self.engine,
            self.views,
            refresh_interval=self.settings.refresh_interval,
            auto_refresh=self.settings.auto_refresh,
        )
        self._exporter = ReportExporter()
        self._dashboard_gen = DashboardGenerator()
        logger.info(
            "Dashboard ready (env=%s, views=%s)", self.settings.env, self.settings.view_store
        )

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.project_root / p

    def _make_view_repository(self) -> ViewRepository:
        kind = self.settings.view_store
        if kind == "memory":
            return InMemoryViewRepository()
        path = self._resolve(self.settings.view_path)
        if kind == "sqlite":
            path.parent.mkdir(parents=True, exist_ok=True)
            return SQLiteViewRepository(path)
        return JsonFileViewRepository(path)

    # -- lifecycle -------------------------------------------------------------

    async def mount(self) -> bool:
        return await self.controller.mount()

    async def refresh(self) -> bool:
        return await self.controller.refresh()

    def unmount(self) -> None:
        self.controller.unmount()

    def close(self) -> None:
        self.controller.unmount()
        if self.ledger is not None:
            self.ledger.close()
        if isinstance(self.view_repository, SQLiteViewRepository):
            self.view_repository.close()

    # -- output ----------------------------------------------------------------

    def render(self) -> list[RenderModel]:
        return self.controller.render()

    def export_json(self) -> str:
        return self._exporter.export_json(self.controller.current_snapshot())

    def export_csv(self, path: str | Path | None = None) -> Path:
        target = Path(path) if path else self.project_root / "revenue.csv"
        return self._exporter.export_csv(self.controller.current_snapshot(), target)

    def export_markdown(self) -> str:
        return self._exporter.export_markdown(self.controller.current_snapshot())

    def generate_dashboard(self, path: str | Path | None = None) -> Path:
        """Write the current layout as a self-contained HTML page."""
        target = Path(path) if path else self.project_root / "DASHBOARD.html"
        return self._dashboard_gen.generate_html(self.render(), target)
