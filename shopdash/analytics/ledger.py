"""OrderLedger — SQLite record of storefront orders and visits."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ORDER = "order"
VISIT = "visit"

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS events (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp      TEXT    NOT NULL,
    event_type     TEXT    NOT NULL,
    value          REAL    NOT NULL DEFAULT 0,
    entity_id      TEXT    NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type);
CREATE INDEX IF NOT EXISTS idx_events_ts ON events(timestamp);
"""


class OrderLedger:
    """Record orders and storefront visits into an SQLite database.

    Parameters
    ----------
    db_path:
        Path to the ledger database.  Defaults to ``':memory:'``.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn = sqlite3.connect(self._db_path)
        if self._db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def record_order(
        self,
        amount: float,
        entity_id: str = "",
        timestamp: datetime | None = None,
    ) -> int:
        """Record a completed order and return its event id."""
        return self._record(ORDER, amount, entity_id, timestamp)

    def record_visit(self, timestamp: datetime | None = None) -> int:
        return self._record(VISIT, 0.0, "", timestamp)

    def _record(
        self,
        event_type: str,
        value: float,
        entity_id: str,
        timestamp: datetime | None,
    ) -> int:
        ts = (timestamp or datetime.now(timezone.utc)).isoformat()
        cur = self._conn.execute(
            "INSERT INTO events (timestamp, event_type, value, entity_id) VALUES (?, ?, ?, ?)",
            (ts, event_type, value, entity_id),
        )
        self._conn.commit()
        return cur.lastrowid or 0

    def monthly_totals(self, event_type: str = ORDER) -> dict[str, float]:
        """Sum event values per ``YYYY-MM`` month."""
        rows = self._conn.execute(
            "SELECT substr(timestamp, 1, 7) AS p, SUM(value) FROM events "
            "WHERE event_type = ? GROUP BY p ORDER BY p",
            (event_type,),
        ).fetchall()
        return {r[0]: float(r[1] or 0.0) for r in rows}

    def count(
        self,
        event_type: str,
        start: date | None = None,
        end: date | None = None,
    ) -> int:
        """Count events of *event_type* whose day falls inside ``[start, end]``."""
        return int(self._aggregate("COUNT(*)", event_type, start, end))

    def total(
        self,
        event_type: str = ORDER,
        start: date | None = None,
        end: date | None = None,
    ) -> float:
        """Sum event values over the same day window as :meth:`count`."""
        return float(self._aggregate("SUM(value)", event_type, start, end))

    def _aggregate(
        self,
        expr: str,
        event_type: str,
        start: date | None,
        end: date | None,
    ) -> Any:
        sql = f"SELECT {expr} FROM events WHERE event_type = ?"
        params: list[Any] = [event_type]
        if start is not None:
            sql += " AND substr(timestamp, 1, 10) >= ?"
            params.append(start.isoformat())
        if end is not None:
            sql += " AND substr(timestamp, 1, 10) <= ?"
            params.append(end.isoformat())
        row = self._conn.execute(sql, params).fetchone()
        return (row[0] if row else 0) or 0

    def close(self) -> None:
        self._conn.close()
