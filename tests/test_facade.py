"""Tests for the AdminDashboard facade."""

from __future__ import annotations

import asyncio
import json
from datetime import date, datetime, timezone

from shopdash import AdminDashboard, InMemoryMetricSource
from shopdash.analytics.estimator import LedgerRevenueEstimator, SyntheticRevenueEstimator
from shopdash.config_manager import DashboardSettings
from shopdash.controller import DashboardState
from shopdash.layout.views import InMemoryViewRepository, SQLiteViewRepository
from shopdash.models.snapshot import Entity, EntityKind


def _source() -> InMemoryMetricSource:
    return InMemoryMetricSource([
        Entity(id="p1", name="Lamp", kind=EntityKind.PRODUCT, category="lighting",
               price=45.0, stock=30, status="active"),
        Entity(id="p2", name="Shade", kind=EntityKind.PRODUCT, category="lighting",
               price=15.0, stock=4, status="active"),
        Entity(id="s1", name="Install", kind=EntityKind.SERVICE, category="services",
               price=0.0, status="available"),
    ])


def _settings(**overrides) -> DashboardSettings:
    values = {"view_store": "memory", "auto_refresh": False}
    values.update(overrides)
    return DashboardSettings(**values)


class TestAdminDashboard:

    def test_wiring(self, tmp_path):
        dash = AdminDashboard(tmp_path, _source(), settings=_settings(), seed=3)
        assert isinstance(dash.aggregator.estimator, SyntheticRevenueEstimator)
        assert isinstance(dash.view_repository, InMemoryViewRepository)
        assert dash.controller.engine is dash.engine
        assert dash.ledger is None
        dash.close()

    def test_mount_render_and_export(self, tmp_path):
        dash = AdminDashboard(tmp_path, _source(), settings=_settings(top_n=1), seed=3)
        assert asyncio.run(dash.mount()) is True
        assert dash.controller.state is DashboardState.READY

        models = dash.render()
        assert len(models) == 7
        top = next(m for m in models if m.kind.value == "top-entities")
        assert [r["name"] for r in top.data["rows"]] == ["Lamp"]

        data = json.loads(dash.export_json())
        assert data["snapshot"]["total_products"] == 2
        assert "## Top Products" in dash.export_markdown()

        csv_path = dash.export_csv()
        assert csv_path == tmp_path / "revenue.csv"
        assert len(csv_path.read_text().splitlines()) == 13

        page = dash.generate_dashboard()
        assert page == tmp_path / "DASHBOARD.html"
        assert "Lamp" in page.read_text(encoding="utf-8")

        dash.unmount()
        assert dash.controller.state is DashboardState.IDLE
        dash.close()

    def test_seed_makes_refresh_reproducible(self, tmp_path):
        a = AdminDashboard(tmp_path, _source(), settings=_settings(), seed=11)
        b = AdminDashboard(tmp_path, _source(), settings=_settings(), seed=11)
        asyncio.run(a.refresh())
        asyncio.run(b.refresh())
        assert a.controller.snapshot.monthly_revenue == b.controller.snapshot.monthly_revenue
        assert a.controller.snapshot.revenue_forecast == b.controller.snapshot.revenue_forecast

    def test_ledger_backed_revenue(self, tmp_path):
        dash = AdminDashboard(tmp_path, _source(), settings=_settings(ledger_db="ledger.db"))
        assert isinstance(dash.aggregator.estimator, LedgerRevenueEstimator)
        assert (tmp_path / "ledger.db").is_file()

        dash.ledger.record_order(120.0, "p1", datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc))
        dash.ledger.record_order(80.0, "p2", datetime(2024, 6, 4, 9, 0, tzinfo=timezone.utc))
        for day in range(1, 11):
            dash.ledger.record_visit(datetime(2024, 6, day, 9, 0, tzinfo=timezone.utc))
        dash.controller.set_date_range(date(2024, 6, 1), date(2024, 6, 30))

        asyncio.run(dash.refresh())
        snapshot = dash.controller.snapshot
        assert snapshot.total_revenue == 200.0
        assert snapshot.monthly_revenue[-1] == 200.0
        assert snapshot.average_order_value == 100.0
        assert snapshot.conversion_rate == 20.0
        dash.close()

    def test_json_views_persist(self, tmp_path):
        first = AdminDashboard(tmp_path, _source(), settings=_settings(view_store="json"))
        first.controller.move_widget("w3", "up")
        view = first.controller.save_view("Ops")
        assert (tmp_path / ".shopdash" / "views.json").is_file()

        second = AdminDashboard(tmp_path, _source(), settings=_settings(view_store="json"))
        assert [v.name for v in second.views.list_views()] == ["Default", "Ops"]
        assert second.controller.switch_view(view.id) == view.id
        assert [w.id for w in second.engine.visible_widgets()][:3] == ["w1", "w3", "w2"]

    def test_sqlite_views(self, tmp_path):
        settings = _settings(view_store="sqlite", view_path="state/views.db")
        dash = AdminDashboard(tmp_path, _source(), settings=settings)
        assert isinstance(dash.view_repository, SQLiteViewRepository)
        assert dash.controller.save_view("Stored") is not None
        assert (tmp_path / "state" / "views.db").is_file()
        dash.close()
