"""DashboardController — refresh cadence and layout mediation.

State machine::

    IDLE ──mount/refresh──▶ LOADING ──ok──▶ READY ──refresh/tick──▶ LOADING
                               │
                               └──fetch failure──▶ ERROR ──retry──▶ LOADING

Manual refreshes and auto-refresh ticks share one in-flight guard: a request
arriving while a refresh runs is dropped, never queued.  Ticks never leave
ERROR; only an explicit :meth:`retry` (or :meth:`refresh`) does.  Results are
applied only if the refresh generation is still current, so a fetch that
completes after :meth:`unmount` is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Callable

from shopdash.analytics.aggregator import AnalyticsAggregator
from shopdash.analytics.forecast import InsufficientData
from shopdash.config import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_FORECAST_PERIODS,
    DEFAULT_REFRESH_INTERVAL,
)
from shopdash.layout.engine import LayoutEngine, MoveDirection, WidgetNotFound
from shopdash.layout.registry import InvalidKind, RenderModel
from shopdash.layout.views import EmptyName, ProtectedView, ViewStore
from shopdash.models.snapshot import AnalyticsSnapshot, Anomaly, DateRange
from shopdash.models.widget import View, Widget, WidgetKind, WidgetSize

logger = logging.getLogger(__name__)

ControllerListener = Callable[[str, "DashboardController"], None]


class DashboardState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class DashboardController:
    """Orchestrate analytics refreshes and user-driven layout changes.

    Parameters
    ----------
    aggregator:
        Produces a snapshot per refresh.
    engine, views:
        Layout state and its saved views.  Created on demand.
    refresh_interval:
        Auto-refresh period in seconds.
    auto_refresh:
        Whether the timer is armed when the dashboard mounts.
    """

    def __init__(
        self,
        aggregator: AnalyticsAggregator,
        engine: LayoutEngine | None = None,
        views: ViewStore | None = None,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        auto_refresh: bool = False,
        date_range: DateRange | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.engine = engine or LayoutEngine()
        self.views = views or ViewStore(self.engine)
        self.refresh_interval = refresh_interval
        self._auto_refresh = auto_refresh
        self._date_range = date_range or DateRange.trailing()

        self._state = DashboardState.IDLE
        self._snapshot: AnalyticsSnapshot | None = None
        self._last_error: str | None = None
        self._in_flight = False
        self._generation = 0
        self._mounted = False
        self._timer: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[ControllerListener] = []
        self.engine.subscribe(self._on_layout_change)

    # -- properties ------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def snapshot(self) -> AnalyticsSnapshot | None:
        """The last successfully computed snapshot, kept across errors."""
        return self._snapshot

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def date_range(self) -> DateRange:
        return self._date_range

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight

    @property
    def auto_refresh_enabled(self) -> bool:
        return self._auto_refresh

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # -- observers -------------------------------------------------------------

    def subscribe(self, listener: ControllerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.debug("Dashboard listener failed on %s", event, exc_info=True)

    def _on_layout_change(self, event: str, engine: LayoutEngine) -> None:
        self._notify(f"layout:{event}")

    def _set_state(self, state: DashboardState) -> None:
        if state is not self._state:
            logger.debug("Dashboard state %s -> %s", self._state.value, state.value)
            self._state = state
            self._notify("state")

    # -- lifecycle -------------------------------------------------------------

    async def mount(self) -> bool:
        """Load the first snapshot and arm auto-refresh if enabled."""
        self._mounted = True
        if self._auto_refresh:
            self._arm_timer()
        return await self._refresh(manual=True)

    def unmount(self) -> None:
        """Tear down: cancel the timer and discard any in-flight result."""
        self._mounted = False
        self._cancel_timer()
        self._generation += 1
        self._in_flight = False
        self._set_state(DashboardState.IDLE)
        logger.info("Dashboard unmounted")

    async def refresh(self) -> bool:
        """Manual refresh.  Returns True when a new snapshot was applied."""
        return await self._refresh(manual=True)

    async def retry(self) -> bool:
        """Explicit recovery from ERROR."""
        return await self._refresh(manual=True)

    async def _refresh(self, manual: bool) -> bool:
        if self._in_flight:
            logger.debug("Refresh dropped: another refresh is in flight")
            return False
        if not manual and self._state is DashboardState.ERROR:
            logger.debug("Auto-refresh skipped while in error state")
            return False

        self._in_flight = True
        self._generation += 1
        generation = self._generation
        self._set_state(DashboardState.LOADING)
        try:
            snapshot = await self.aggregator.compute(self._date_range)
        except Exception as exc:
            logger.warning("Aggregation raised: %s", exc)
            snapshot = AnalyticsSnapshot.empty(self._date_range, fetch_error=str(exc) or type(exc).__name__)
        finally:
            if generation == self._generation:
                self._in_flight = False

        if generation != self._generation:
            logger.debug("Discarding stale refresh result (generation %d)", generation)
            return False

        if snapshot.fetch_error is not None:
            self._last_error = snapshot.fetch_error
            self._set_state(DashboardState.ERROR)
            logger.warning("Dashboard refresh failed: %s", snapshot.fetch_error)
            return False

        self._snapshot = snapshot
        self._last_error = None
        self._set_state(DashboardState.READY)
        self._notify("snapshot")
        return True

    # -- auto-refresh ----------------------------------------------------------

    def enable_auto_refresh(self, interval: float | None = None) -> None:
        """Turn auto-refresh on, re-arming the timer from now.

        Must be called from inside a running event loop once mounted.
        """
        if interval is not None:
            self.refresh_interval = interval
        self._auto_refresh = True
        if self._mounted:
            self._arm_timer()
        self._notify("auto_refresh")

    def disable_auto_refresh(self) -> None:
        self._auto_refresh = False
        self._cancel_timer()
        self._notify("auto_refresh")

    def _arm_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._auto_refresh_loop())
        logger.info("Auto-refresh armed every %.1f s", self.refresh_interval)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Auto-refresh timer cancelled")

    async def _auto_refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            if self._in_flight or self._state is DashboardState.ERROR:
                continue
            # Shielded so that cancelling the timer never aborts a fetch.
            task = asyncio.ensure_future(self._refresh(manual=False))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            await asyncio.shield(task)

    # -- date range ------------------------------------------------------------

    def set_date_range(self, start: date, end: date) -> DateRange:
        """Change the filter; raises InvalidDateRange when start > end."""
        self._date_range = DateRange.between(start, end)
        self._notify("date_range")
        return self._date_range

    # -- rendering -------------------------------------------------------------

    def current_snapshot(self) -> AnalyticsSnapshot:
        return self._snapshot or AnalyticsSnapshot.empty(self._date_range)

    def render(self) -> list[RenderModel]:
        """Render models of the visible widgets, in order."""
        snapshot = self.current_snapshot()
        registry = self.engine.registry
        return [
            registry.render(widget, snapshot, self._date_range)
            for widget in self.engine.visible_widgets()
        ]

    def forecast(self, periods: int = DEFAULT_FORECAST_PERIODS) -> list[float]:
        try:
            return self.aggregator.forecaster.forecast(self.current_snapshot().monthly_revenue, periods)
        except InsufficientData as exc:
            logger.info("Forecast unavailable: %s", exc)
            return []

    def anomalies(self, threshold: float = DEFAULT_ANOMALY_THRESHOLD) -> list[Anomaly]:
        snapshot = self.current_snapshot()
        return self.aggregator.detector.detect(
            snapshot.monthly_revenue, threshold, labels=snapshot.month_labels
        )

    # -- layout mediation ------------------------------------------------------

    def add_widget(
        self,
        kind: WidgetKind | str,
        title: str | None = None,
        duplicate: bool = False,
    ) -> Widget | None:
        try:
            return self.engine.add(kind, title=title, duplicate=duplicate)
        except InvalidKind as exc:
            logger.warning("Cannot add widget: %s", exc)
            return None

    def remove_widget(self, widget_id: str) -> bool:
        try:
            self.engine.remove(widget_id)
        except WidgetNotFound:
            logger.warning("Cannot remove unknown widget %s", widget_id)
            return False
        return True

    def toggle_widget(self, widget_id: str) -> bool:
        """Flip visibility; returns the new visibility (False if unknown)."""
        try:
            widget = self.engine.get(widget_id)
            return self.engine.set_visible(widget_id, not widget.visible).visible
        except WidgetNotFound:
            logger.warning("Cannot toggle unknown widget %s", widget_id)
            return False

    def expand_widget(self, widget_id: str) -> bool:
        """Toggle expansion; returns the new expansion flag (False if unknown)."""
        try:
            return self.engine.set_expanded(widget_id).expanded
        except WidgetNotFound:
            logger.warning("Cannot expand unknown widget %s", widget_id)
            return False

    def move_widget(self, widget_id: str, direction: MoveDirection | str) -> bool:
        try:
            return self.engine.move(widget_id, direction)
        except (WidgetNotFound, ValueError):
            logger.warning("Cannot move widget %s %s", widget_id, direction)
            return False

    def resize_widget(self, widget_id: str, size: WidgetSize | str) -> bool:
        try:
            self.engine.resize(widget_id, size)
        except (WidgetNotFound, ValueError):
            logger.warning("Cannot resize widget %s to %s", widget_id, size)
            return False
        return True

    def rename_widget(self, widget_id: str, title: str) -> bool:
        try:
            self.engine.rename(widget_id, title)
        except WidgetNotFound:
            logger.warning("Cannot rename unknown widget %s", widget_id)
            return False
        return True

    def save_view(self, name: str) -> View | None:
        try:
            view = self.views.save(name)
        except EmptyName as exc:
            logger.warning("Cannot save view: %s", exc)
            return None
        self._notify("views")
        return view

    def overwrite_view(self, view_id: str) -> View | None:
        try:
            view = self.views.overwrite(view_id)
        except (ProtectedView, KeyError) as exc:
            logger.warning("Cannot overwrite view %s: %s", view_id, exc)
            return None
        self._notify("views")
        return view

    def switch_view(self, view_id: str) -> str:
        active = self.views.switch(view_id)
        self._notify("views")
        return active

    def delete_view(self, view_id: str) -> bool:
        try:
            deleted = self.views.delete(view_id)
        except ProtectedView as exc:
            logger.warning("%s", exc)
            return False
        if deleted:
            self._notify("views")
        return deleted
