"""DuckDB persistence - entity store, raw event log, cursors."""

from poolgraph.storage.entities import DuckDBEntityStore, EntityStore, InMemoryEntityStore

__all__ = ["EntityStore", "InMemoryEntityStore", "DuckDBEntityStore"]
