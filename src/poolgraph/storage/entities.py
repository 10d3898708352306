"""Entity store - keyed load / upsert of derived entities."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from threading import Lock
from typing import TYPE_CHECKING, TypeVar

from poolgraph.models.entities import Entity
from poolgraph.storage.locks import KeyedLocks

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

E = TypeVar("E", bound=Entity)


class EntityStore(ABC):
    """load() returns None on a miss; save() is an idempotent upsert keyed by (type, id).

    Handlers that load, mutate and save an entity shared across contracts hold
    lock(type, id) for the whole cycle. get_or_create() does this for creation.
    """

    def __init__(self) -> None:
        self._locks = KeyedLocks()

    @abstractmethod
    def load(self, model: type[E], key: str) -> E | None: ...

    @abstractmethod
    def save(self, entity: Entity) -> None: ...

    @abstractmethod
    def list(self, model: type[E]) -> list[E]: ...

    @abstractmethod
    def count_by_type(self) -> dict[str, int]: ...

    @contextmanager
    def lock(self, entity_type: str, key: str) -> Iterator[None]:
        with self._locks.hold(entity_type, key):
            yield

    def get_or_create(self, model: type[E], key: str, create: Callable[[], E]) -> tuple[E, bool]:
        """Return (entity, created). create() builds the default instance; it is saved before returning."""
        with self.lock(model.entity_type, key):
            existing = self.load(model, key)
            if existing is not None:
                return existing, False
            entity = create()
            self.save(entity)
            return entity, True

    def update(
        self,
        model: type[E],
        key: str,
        create: Callable[[], E],
        mutate: Callable[[E], None],
    ) -> E:
        """Load (or build with create()), apply mutate() and save, all under the key lock."""
        with self.lock(model.entity_type, key):
            entity = self.load(model, key)
            if entity is None:
                entity = create()
            mutate(entity)
            self.save(entity)
            return entity


class InMemoryEntityStore(EntityStore):
    """Dict-backed store. Entities are copied in and out so callers never share instances."""

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[tuple[str, str], Entity] = {}
        self._mutex = Lock()

    def load(self, model: type[E], key: str) -> E | None:
        with self._mutex:
            found = self._data.get((model.entity_type, key))
        return found.model_copy(deep=True) if found is not None else None  # type: ignore[return-value]

    def save(self, entity: Entity) -> None:
        with self._mutex:
            self._data[(entity.entity_type, entity.id)] = entity.model_copy(deep=True)

    def list(self, model: type[E]) -> list[E]:
        with self._mutex:
            rows = [e for (t, _), e in self._data.items() if t == model.entity_type]
        return [r.model_copy(deep=True) for r in sorted(rows, key=lambda e: e.id)]  # type: ignore[misc]

    def count(self, model: type[Entity] | None = None) -> int:
        with self._mutex:
            if model is None:
                return len(self._data)
            return sum(1 for t, _ in self._data if t == model.entity_type)

    def count_by_type(self) -> dict[str, int]:
        with self._mutex:
            counts: dict[str, int] = {}
            for t, _ in self._data:
                counts[t] = counts.get(t, 0) + 1
        return dict(sorted(counts.items()))


class DuckDBEntityStore(EntityStore):
    """Entities persisted as JSON rows in the entities table."""

    def __init__(self, conn: DuckDBPyConnection) -> None:
        super().__init__()
        self.conn = conn
        self._mutex = Lock()

    def load(self, model: type[E], key: str) -> E | None:
        with self._mutex:
            row = self.conn.execute(
                "SELECT data FROM entities WHERE entity_type = ? AND id = ?",
                [model.entity_type, key],
            ).fetchone()
        if row is None:
            return None
        return model.model_validate(json.loads(row[0]))

    def save(self, entity: Entity) -> None:
        with self._mutex:
            self.conn.execute(
                """
                INSERT INTO entities (entity_type, id, data, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (entity_type, id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                [entity.entity_type, entity.id, json.dumps(entity.model_dump(mode="json")), int(time.time() * 1000)],
            )

    def list(self, model: type[E]) -> list[E]:
        with self._mutex:
            rows = self.conn.execute(
                "SELECT data FROM entities WHERE entity_type = ? ORDER BY id",
                [model.entity_type],
            ).fetchall()
        return [model.model_validate(json.loads(r[0])) for r in rows]

    def count_by_type(self) -> dict[str, int]:
        with self._mutex:
            rows = self.conn.execute(
                "SELECT entity_type, COUNT(*) FROM entities GROUP BY entity_type ORDER BY entity_type"
            ).fetchall()
        return {r[0]: r[1] for r in rows}
