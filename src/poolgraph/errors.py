"""Exceptions raised to the host indexing loop."""

from __future__ import annotations


class PoolgraphError(Exception):
    """Base for errors the indexer reports instead of recovering from."""


class MalformedEventError(PoolgraphError):
    """Raw event payload did not validate into any known event variant."""

    def __init__(self, raw: dict, detail: str) -> None:
        self.raw = raw
        self.detail = detail
        super().__init__(
            f"malformed {raw.get('event_type', 'unknown')} event "
            f"at {raw.get('tx_hash', '?')}:{raw.get('log_index', '?')}: {detail}"
        )


class UnknownEventError(PoolgraphError):
    """No handler is registered for this (contract kind, event type) pair."""

    def __init__(self, contract_kind: str, event_type: str) -> None:
        self.contract_kind = contract_kind
        self.event_type = event_type
        super().__init__(f"no handler for {event_type} on {contract_kind} contracts")
