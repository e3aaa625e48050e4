"""LayoutEngine — the mutable arrangement of widget instances.

The engine owns visibility, ordering, size and expansion of widgets and
knows nothing about the data they display.  Every mutation that changes
state notifies subscribed listeners with ``(event, engine)``; no-op calls
notify nobody.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable

from shopdash.layout.registry import InvalidKind, WidgetRegistry
from shopdash.models.widget import Widget, WidgetKind, WidgetSize, new_id

logger = logging.getLogger(__name__)

LayoutListener = Callable[[str, "LayoutEngine"], None]

__all__ = [
    "InvalidKind",
    "LayoutEngine",
    "LayoutListener",
    "MoveDirection",
    "WidgetNotFound",
]


class WidgetNotFound(KeyError):
    """Raised when a widget id is not part of the layout."""


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class LayoutEngine:
    """Widget arrangement with observer notification.

    Parameters
    ----------
    registry:
        Widget kind catalog; supplies defaults for new widgets and the
        arrangement used by :meth:`reset`.
    widgets:
        Initial arrangement.  Defaults to the registry's default layout.
    """

    def __init__(
        self,
        registry: WidgetRegistry | None = None,
        widgets: Iterable[Widget] | None = None,
    ) -> None:
        self.registry = registry or WidgetRegistry()
        self._widgets: list[Widget] = []
        self._listeners: list[LayoutListener] = []
        self._replace(widgets if widgets is not None else self.registry.default_layout())

    # -- observers -------------------------------------------------------------

    def subscribe(self, listener: LayoutListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
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
                logger.debug("Layout listener failed on %s", event, exc_info=True)

    # -- queries ---------------------------------------------------------------

    @property
    def widgets(self) -> list[Widget]:
        """All widgets, hidden ones included, in render order (copies)."""
        return [w.model_copy() for w in self._widgets]

    def visible_widgets(self) -> list[Widget]:
        return [w.model_copy() for w in self._widgets if w.visible]

    def get(self, widget_id: str) -> Widget:
        return self._find(widget_id).model_copy()

    def __len__(self) -> int:
        return len(self._widgets)

    def __contains__(self, widget_id: object) -> bool:
        return any(w.id == widget_id for w in self._widgets)

    def _find(self, widget_id: str) -> Widget:
        for widget in self._widgets:
            if widget.id == widget_id:
                return widget
        raise WidgetNotFound(widget_id)

    def _sort(self) -> None:
        self._widgets.sort(key=lambda w: w.position)

    # -- mutations -------------------------------------------------------------

    def set_visible(self, widget_id: str, visible: bool) -> Widget:
        """Show or hide a widget; its position is left untouched."""
        widget = self._find(widget_id)
        if widget.visible != visible:
            widget.visible = visible
            self._notify("visibility")
        return widget.model_copy()

    def remove(self, widget_id: str) -> Widget:
        """Hide a widget.  The record is kept so :meth:`add` can restore it."""
        return self.set_visible(widget_id, False)

    def set_expanded(self, widget_id: str, expanded: bool | None = None) -> Widget:
        """Toggle expansion, or set it when *expanded* is given.

        Expansion is a per-widget hint: several widgets may be expanded at once.
        """
        widget = self._find(widget_id)
        target = (not widget.expanded) if expanded is None else expanded
        if widget.expanded != target:
            widget.expanded = target
            self._notify("expansion")
        return widget.model_copy()

    def resize(self, widget_id: str, size: WidgetSize | str) -> Widget:
        widget = self._find(widget_id)
        size = WidgetSize(size)
        if widget.size != size:
            widget.size = size
            self._notify("size")
        return widget.model_copy()

    def rename(self, widget_id: str, title: str) -> Widget:
        """Change a widget title; a blank title restores the kind's default."""
        widget = self._find(widget_id)
        title = title.strip() or self.registry.get(widget.kind).default_title
        if widget.title != title:
            widget.title = title
            self._notify("title")
        return widget.model_copy()

    def move(self, widget_id: str, direction: MoveDirection | str) -> bool:
        """Swap positions with the adjacent visible widget in *direction*.

        Returns False (and changes nothing) at either end of the visible
        sequence, for a single visible widget, or for a hidden widget.
        """
        direction = MoveDirection(direction)
        widget = self._find(widget_id)
        visible = [w for w in self._widgets if w.visible]
        if not widget.visible:
            return False

        index = next(i for i, w in enumerate(visible) if w is widget)
        neighbour_index = index - 1 if direction is MoveDirection.UP else index + 1
        if neighbour_index < 0 or neighbour_index >= len(visible):
            return False

        neighbour = visible[neighbour_index]
        widget.position, neighbour.position = neighbour.position, widget.position
        self._sort()
        self._notify("order")
        return True

    def add(
        self,
        kind: WidgetKind | str,
        title: str | None = None,
        duplicate: bool = False,
    ) -> Widget:
        """Show a widget of *kind*.

        A hidden widget of that kind is re-enabled in its old place and size.
        A visible one is returned unchanged, unless *duplicate* asks for an
        additional instance.  Otherwise a new widget is appended.

        Raises :class:`InvalidKind` for an unknown kind.
        """
        kind = self.registry.parse_kind(kind)
        spec = self.registry.get(kind)
        same_kind = [w for w in self._widgets if w.kind == kind]

        if not duplicate and same_kind:
            for widget in same_kind:
                if widget.visible:
                    return widget.model_copy()
            widget = same_kind[0]
            widget.visible = True
            if title:
                widget.title = title
            logger.info("Restored widget %s (%s)", widget.id, kind.value)
            self._notify("visibility")
            return widget.model_copy()

        widget = Widget(
            id=new_id(),
            kind=kind,
            title=title or spec.default_title,
            size=spec.default_size,
            position=self._next_position(),
            visible=True,
        )
        self._widgets.append(widget)
        self._sort()
        logger.info("Added widget %s (%s) at position %d", widget.id, kind.value, widget.position)
        self._notify("add")
        return widget.model_copy()

    def _next_position(self) -> int:
        position = len(self._widgets) + 1
        taken = {w.position for w in self._widgets}
        if position in taken:
            position = max(taken) + 1
        return position

    def reset(self) -> None:
        """Restore the registry's default arrangement."""
        self._replace(self.registry.default_layout())
        self._notify("reset")

    def load(self, widgets: Iterable[Widget]) -> None:
        """Replace the whole arrangement with copies of *widgets*."""
        self._replace(widgets)
        self._notify("load")

    def _replace(self, widgets: Iterable[Widget]) -> None:
        self._widgets = [w.model_copy() for w in widgets]
        self._sort()
