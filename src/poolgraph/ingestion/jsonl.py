"""Raw events from a JSON-lines file (one event dict per line)."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import structlog

log = structlog.get_logger(__name__)


def read_jsonl_events(path: str | Path) -> Iterator[dict[str, Any]]:
    """Yield event dicts in file order. Blank lines are ignored; non-object lines are logged and skipped."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as e:
                log.warning("jsonl_line_invalid", path=str(path), line=line_no, error=str(e))
                continue
            if not isinstance(payload, dict):
                log.warning("jsonl_line_invalid", path=str(path), line=line_no, error="not an object")
                continue
            yield payload
