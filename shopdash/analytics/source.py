"""MetricSource — read-only boundary to the storefront catalog.

The catalog CRUD layer lives outside this package; the dashboard only needs
idempotent, unpaginated reads of products, services, recent activity and the
readings of a few third-party feeds.
"""

from __future__ import annotations

import abc
import logging
from typing import Iterable

from shopdash.models.snapshot import ActivityEntry, Entity, EntityKind, ExternalDataPoint

logger = logging.getLogger(__name__)


class MetricFetchError(Exception):
    """Raised when the catalog cannot be read."""


class MetricSource(abc.ABC):
    """Abstract asynchronous catalog reader."""

    @abc.abstractmethod
    async def list_entities(self, kind: EntityKind) -> list[Entity]:
        """Return every catalog entity of *kind*."""

    async def recent_activity(self, limit: int = 5) -> list[ActivityEntry]:
        """Return the latest catalog updates, newest first."""
        return []

    async def external_points(self, source_id: str | None = None) -> list[ExternalDataPoint]:
        """Return third-party feed readings, oldest first.

        Restricted to one feed when *source_id* is given.
        """
        return []

    async def latest_point(self, source_id: str, name: str) -> ExternalDataPoint | None:
        """Newest reading of *name* on feed *source_id*, or None."""
        points = [p for p in await self.external_points(source_id) if p.name == name]
        return points[-1] if points else None


class InMemoryMetricSource(MetricSource):
    """Catalog held in memory.

    Parameters
    ----------
    entities:
        Products and services; each entity's ``kind`` decides which listing
        it appears in.
    activity:
        Recent activity entries, any order.
    external:
        Feed readings, any order.
    """

    def __init__(
        self,
        entities: Iterable[Entity] = (),
        activity: Iterable[ActivityEntry] = (),
        external: Iterable[ExternalDataPoint] = (),
    ) -> None:
        self._entities: list[Entity] = list(entities)
        self._activity: list[ActivityEntry] = list(activity)
        self._external: list[ExternalDataPoint] = list(external)
        self._failure: Exception | None = None
        self.fetch_count = 0

    def add(self, entity: Entity) -> None:
        self._entities.append(entity)

    def log_activity(self, entry: ActivityEntry) -> None:
        self._activity.append(entry)

    def add_point(self, point: ExternalDataPoint) -> None:
        self._external.append(point)

    def fail_with(self, exc: Exception | None) -> None:
        """Make subsequent reads raise *exc* (``None`` restores normal reads)."""
        self._failure = exc
        logger.debug("In-memory source failure set to %r", exc)

    async def list_entities(self, kind: EntityKind) -> list[Entity]:
        self.fetch_count += 1
        if self._failure is not None:
            raise self._failure
        return [e.model_copy() for e in self._entities if e.kind == kind]

    async def recent_activity(self, limit: int = 5) -> list[ActivityEntry]:
        if self._failure is not None:
            raise self._failure
        ordered = sorted(self._activity, key=lambda a: a.timestamp, reverse=True)
        return ordered[:limit]

    async def external_points(self, source_id: str | None = None) -> list[ExternalDataPoint]:
        if self._failure is not None:
            raise self._failure
        points = [p for p in self._external if source_id is None or p.source_id == source_id]
        return sorted(points, key=lambda p: p.timestamp)
