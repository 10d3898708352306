"""Global and per-day launchpad counters."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TypeVar

import structlog

from poolgraph.models.entities import (
    GLOBAL_STATS_ID,
    LaunchpadCounters,
    LaunchpadDayData,
    LaunchpadStats,
    day_id,
)
from poolgraph.storage.entities import EntityStore

log = structlog.get_logger(__name__)

C = TypeVar("C", bound=LaunchpadCounters)


@dataclass(frozen=True)
class RollupDelta:
    """Increments applied to both the global record and the day bucket. Never negative."""

    total_tokens_created: int = 0
    total_presales_created: int = 0
    total_fairlaunches_created: int = 0
    total_volume_raised: int = 0
    total_participants: int = 0
    active_presales: int = 0
    active_fairlaunches: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValueError(f"rollup counters only grow: {f.name}={getattr(self, f.name)}")


TOKEN_CREATED = RollupDelta(total_tokens_created=1)
# Active counters are never decremented: launch items have no completion events indexed yet.
PRESALE_CREATED = RollupDelta(total_presales_created=1, active_presales=1)
FAIRLAUNCH_CREATED = RollupDelta(total_fairlaunches_created=1, active_fairlaunches=1)


def accumulate(counters: C, delta: RollupDelta, timestamp: int) -> C:
    """Return a copy of counters with delta added and last_updated set."""
    updates = {f.name: getattr(counters, f.name) + getattr(delta, f.name) for f in fields(delta)}
    updates["last_updated"] = timestamp
    return counters.model_copy(update=updates)


def new_global_stats() -> LaunchpadStats:
    return LaunchpadStats(id=GLOBAL_STATS_ID)


def new_day_data(timestamp: int) -> LaunchpadDayData:
    day = day_id(timestamp)
    return LaunchpadDayData(id=str(day), date=day)


class RollupMaintainer:
    """Applies a delta to the global record and the day bucket of timestamp.

    Each record is loaded, accumulated and saved under its own key lock, so
    concurrent factories never lose increments.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def _apply_one(self, model: type[C], key: str, create, delta: RollupDelta, timestamp: int) -> C:
        with self.store.lock(model.entity_type, key):
            current = self.store.load(model, key) or create()
            updated = accumulate(current, delta, timestamp)
            self.store.save(updated)
            return updated

    def apply(self, delta: RollupDelta, timestamp: int) -> tuple[LaunchpadStats, LaunchpadDayData]:
        stats = self._apply_one(LaunchpadStats, GLOBAL_STATS_ID, new_global_stats, delta, timestamp)
        day_key = str(day_id(timestamp))
        day = self._apply_one(LaunchpadDayData, day_key, lambda: new_day_data(timestamp), delta, timestamp)
        log.debug("rollup_applied", day=day_key, delta=delta)
        return stats, day
