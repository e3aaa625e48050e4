"""ViewStore — named, persisted snapshots of a LayoutEngine arrangement.

Views are saved explicitly and never auto-saved on switch.  Each non-default
view is stored in a :class:`ViewRepository` as one key/value record: the view
id maps to the JSON-serialised widget array.  A separate catalog record maps
view ids to names.  The ``"default"`` view is never stored; it is the
registry's default arrangement.
"""

from __future__ import annotations

import abc
import json
import logging
import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shopdash.config import DEFAULT_VIEW_ID
from shopdash.layout.engine import LayoutEngine
from shopdash.models.widget import View, Widget, new_id

logger = logging.getLogger(__name__)

CATALOG_KEY = "_catalog"
DEFAULT_VIEW_NAME = "Default"


class EmptyName(ValueError):
    """Raised when saving a view without a name."""


class ProtectedView(Exception):
    """Raised when deleting or overwriting the default view."""


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class ViewRepository(abc.ABC):
    """Key/value store backing the ViewStore."""

    @abc.abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or None."""

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*; missing keys are ignored."""

    @abc.abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""


class InMemoryViewRepository(ViewRepository):
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileViewRepository(ViewRepository):
    """All records in one JSON file, rewritten atomically on every change."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.is_file():
            self._data = {}
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._data = {str(k): str(v) for k, v in data.items()}
        except (json.JSONDecodeError, AttributeError, OSError):
            logger.warning("View file %s is corrupt, starting with no stored views", self._path)
            self._data = {}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic write: temp file + rename
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".views_", suffix=".json")
        try:
            with open(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            Path(tmp).replace(self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()

    def keys(self) -> list[str]:
        return list(self._data)


class SQLiteViewRepository(ViewRepository):
    """Records in a two-column SQLite table."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._conn = sqlite3.connect(str(db_path))
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS views (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        self._conn.commit()

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM views WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO views (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM views WHERE key = ?", (key,))
        self._conn.commit()

    def keys(self) -> list[str]:
        return [r[0] for r in self._conn.execute("SELECT key FROM views ORDER BY key")]

    def close(self) -> None:
        self._conn.close()


# ---------------------------------------------------------------------------
# ViewStore
# ---------------------------------------------------------------------------


class ViewStore:
    """Create, switch and delete named layouts.

    Parameters
    ----------
    engine:
        The layout whose arrangement is saved and replaced.
    repository:
        Backing store.  Defaults to an in-memory repository.
    """

    def __init__(
        self,
        engine: LayoutEngine,
        repository: ViewRepository | None = None,
    ) -> None:
        self.engine = engine
        self.repository = repository or InMemoryViewRepository()
        self._active_id = DEFAULT_VIEW_ID

    @property
    def active_view_id(self) -> str:
        return self._active_id

    # -- catalog ---------------------------------------------------------------

    def _catalog(self) -> list[dict[str, Any]]:
        raw = self.repository.get(CATALOG_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("View catalog is corrupt, ignoring stored views")
            return []
        return [e for e in entries if isinstance(e, dict) and "id" in e]

    def _write_catalog(self, entries: list[dict[str, Any]]) -> None:
        self.repository.set(CATALOG_KEY, json.dumps(entries))

    def _catalog_entry(self, view_id: str) -> dict[str, Any] | None:
        for entry in self._catalog():
            if entry["id"] == view_id:
                return entry
        return None

    def _read_widgets(self, view_id: str) -> list[Widget] | None:
        raw = self.repository.get(view_id)
        if raw is None:
            return None
        try:
            return [Widget.model_validate(w) for w in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, ValidationError):
            logger.warning("Stored view %s is unreadable", view_id, exc_info=True)
            return None

    # -- queries ---------------------------------------------------------------

    def default_view(self) -> View:
        return View(
            id=DEFAULT_VIEW_ID,
            name=DEFAULT_VIEW_NAME,
            widgets=self.engine.registry.default_layout(),
        )

    def get(self, view_id: str) -> View | None:
        """Return a stored view (or the default view), None if unknown."""
        if view_id == DEFAULT_VIEW_ID:
            return self.default_view()
        entry = self._catalog_entry(view_id)
        widgets = self._read_widgets(view_id)
        if entry is None or widgets is None:
            return None
        return View(
            id=view_id,
            name=entry.get("name", ""),
            widgets=widgets,
            created_at=entry.get("created_at") or datetime.now().astimezone(),
        )

    def list_views(self) -> list[View]:
        """The default view followed by stored views in creation order."""
        views = [self.default_view()]
        for entry in self._catalog():
            view = self.get(entry["id"])
            if view is not None:
                views.append(view)
        return views

    # -- mutations -------------------------------------------------------------

    def save(self, name: str) -> View:
        """Store the current layout under a new view id and make it active.

        Names need not be unique.  Raises :class:`EmptyName` for a blank name.
        """
        name = (name or "").strip()
        if not name:
            raise EmptyName("view name must not be empty")

        view = View(id=new_id(), name=name, widgets=self.engine.widgets)
        self._write_widgets(view.id, view.widgets)
        catalog = self._catalog()
        catalog.append(
            {"id": view.id, "name": view.name, "created_at": view.created_at.isoformat()}
        )
        self._write_catalog(catalog)
        self._active_id = view.id
        logger.info("Saved view %s (%s) with %d widgets", view.id, name, len(view.widgets))
        return view

    def overwrite(self, view_id: str) -> View:
        """Replace a stored view's widgets with the current layout."""
        if view_id == DEFAULT_VIEW_ID:
            raise ProtectedView("the default view cannot be overwritten")
        entry = self._catalog_entry(view_id)
        if entry is None:
            raise KeyError(view_id)
        widgets = self.engine.widgets
        self._write_widgets(view_id, widgets)
        logger.info("Overwrote view %s", view_id)
        return View(id=view_id, name=entry.get("name", ""), widgets=widgets)

    def _write_widgets(self, view_id: str, widgets: list[Widget]) -> None:
        payload = [w.model_dump(mode="json") for w in widgets]
        self.repository.set(view_id, json.dumps(payload))

    def switch(self, view_id: str) -> str:
        """Replace the layout with the stored arrangement of *view_id*.

        Unsaved edits to the previous view are discarded.  A missing or
        unreadable view falls back to the default.  Returns the id of the
        view that is active afterwards.
        """
        if view_id != DEFAULT_VIEW_ID:
            known = self._catalog_entry(view_id) is not None
            widgets = self._read_widgets(view_id) if known else None
            if widgets is not None:
                self.engine.load(widgets)
                self._active_id = view_id
                logger.info("Switched to view %s", view_id)
                return view_id
            logger.warning("View %s not found, falling back to default", view_id)

        self.engine.reset()
        self._active_id = DEFAULT_VIEW_ID
        return DEFAULT_VIEW_ID

    def delete(self, view_id: str) -> bool:
        """Remove a stored view; the default view is protected.

        Deleting the active view switches to the default.  Returns False
        when no such view exists.
        """
        if view_id == DEFAULT_VIEW_ID:
            raise ProtectedView("the default view cannot be deleted")

        catalog = self._catalog()
        remaining = [e for e in catalog if e["id"] != view_id]
        if view_id == CATALOG_KEY or len(remaining) == len(catalog):
            return False

        self.repository.delete(view_id)
        self._write_catalog(remaining)
        logger.info("Deleted view %s", view_id)
        if self._active_id == view_id:
            self.switch(DEFAULT_VIEW_ID)
        return True
