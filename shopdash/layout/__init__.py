"""Dashboard layout: widget kinds, arrangement and saved views."""

from shopdash.layout.engine import LayoutEngine, MoveDirection, WidgetNotFound
from shopdash.layout.registry import InvalidKind, RenderModel, WidgetRegistry, WidgetSpec
from shopdash.layout.views import (
    EmptyName,
    InMemoryViewRepository,
    JsonFileViewRepository,
    ProtectedView,
    SQLiteViewRepository,
    ViewRepository,
    ViewStore,
)

__all__ = [
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
    "WidgetSpec",
]
