"""Indexing orchestrator - pull chain windows, persist raw events, dispatch in order."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from poolgraph.ingestion.jsonl import read_jsonl_events
from poolgraph.ingestion.source import Web3EventSource, block_windows
from poolgraph.storage.cursors import get_cursor, set_cursor
from poolgraph.storage.event_log import RawEventRow, append_raw_events_batch, prepare_raw_row
from poolgraph.sync.dispatch import Dispatcher

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class IndexerManager:
    """Runs chain ingestion: raw events go to the event log, then through the dispatcher.

    A window's cursors advance only after every event in it was handled and the
    raw batch was flushed. A handler error propagates and leaves the cursors where
    they were, so the window is delivered again on the next run.
    """

    def __init__(
        self,
        conn: DuckDBPyConnection,
        dispatcher: Dispatcher,
        source: Web3EventSource | None = None,
        event_batch_size: int = 100,
        start_block: int = 0,
        confirmations: int = 0,
        poll_interval_sec: float = 5.0,
    ):
        self.conn = conn
        self.dispatcher = dispatcher
        self.source = source
        self.event_batch_size = event_batch_size
        self.start_block = start_block
        self.confirmations = confirmations
        self.poll_interval_sec = poll_interval_sec
        self._batch: list[RawEventRow] = []
        self._event_count = 0
        self._start_ts: float | None = None

    def _flush_batch(self) -> None:
        if not self._batch:
            return
        append_raw_events_batch(self.conn, self._batch)
        self._batch = []

    def _on_event(self, raw: dict[str, Any], ingest_ts: int) -> None:
        self._event_count += 1
        self.dispatcher.process_raw(raw)
        self._batch.append(prepare_raw_row(raw, ingest_ts))
        if len(self._batch) >= self.event_batch_size:
            self._flush_batch()

    def ingest(self, raws: Iterable[dict[str, Any]]) -> int:
        """Persist and dispatch already-ordered raw events (e.g. from a file)."""
        if self._start_ts is None:
            self._start_ts = time.time()
        before = self._event_count
        for raw in raws:
            self._on_event(raw, int(time.time() * 1000))
        self._flush_batch()
        return self._event_count - before

    def ingest_file(self, path: str | Path) -> int:
        n = self.ingest(read_jsonl_events(path))
        log.info("file_ingested", path=str(path), events=n, **self.dispatcher.stats())
        return n

    def _next_block(self, cursors: dict[str, int | None]) -> int:
        pending = [c + 1 for c in cursors.values() if c is not None]
        if len(pending) < len(cursors):
            pending.append(self.start_block)
        return min(pending) if pending else self.start_block

    def sync_once(self) -> int:
        """Index every confirmed block past the cursors. Returns the number of events seen."""
        if self.source is None:
            raise RuntimeError("sync_once needs a chain event source")
        if self._start_ts is None:
            self._start_ts = time.time()
        contracts = self.source.contracts
        if not contracts:
            log.warning("no_contracts_configured", msg="Add addresses under [contracts] in the config.")
            return 0
        safe_head = self.source.head() - self.confirmations
        cursors = {address: get_cursor(self.conn, address) for address in contracts}
        from_block = self._next_block(cursors)
        if from_block > safe_head:
            return 0

        seen = 0
        for start, end in block_windows(from_block, safe_head, self.source.blocks_per_call):
            window_events = 0
            for raw in self.source.fetch_window(start, end):
                cursor = cursors.get(raw["address"])
                if cursor is not None and raw["block_number"] <= cursor:
                    continue
                self._on_event(raw, int(time.time() * 1000))
                window_events += 1
            self._flush_batch()
            for address, kind in contracts.items():
                if cursors[address] is None or cursors[address] < end:
                    set_cursor(self.conn, address, kind.value, end)
                    cursors[address] = end
            seen += window_events
            log.info("window_indexed", from_block=start, to_block=end, events=window_events, total_events=seen)
        return seen

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Poll the chain until stop_event is set."""
        stop = stop_event or threading.Event()
        while not stop.is_set():
            self.sync_once()
            stop.wait(self.poll_interval_sec)
        self._flush_batch()
        log.info("indexer_stopped", total_events=self._event_count, **self.dispatcher.stats())

    def get_status(self) -> dict[str, Any]:
        """Return current status: event_count, elapsed_sec, events_per_sec and dispatcher counters."""
        elapsed = (time.time() - self._start_ts) if self._start_ts else 0
        return {
            "event_count": self._event_count,
            "elapsed_sec": round(elapsed, 1),
            "events_per_sec": round(self._event_count / elapsed, 2) if elapsed > 0 else 0,
            **self.dispatcher.stats(),
        }

    def close(self) -> None:
        self._flush_batch()
