"""Chain event source - contract logs and tracked factory calls over block windows."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Any

import backoff
import requests
import structlog
from web3 import Web3
from web3.exceptions import Web3Exception

from poolgraph.chain.abis import event_abis
from poolgraph.chain.decode import CALL_EVENT_TYPES, LogDecoder, call_to_raw
from poolgraph.models.events import ContractKind, normalize_hex

log = structlog.get_logger(__name__)


def event_order(raw: dict[str, Any]) -> tuple[int, int]:
    """Delivery order: block, then log index. Call-derived events (no log index) go last in their block."""
    log_index = raw.get("log_index")
    return int(raw["block_number"]), sys.maxsize if log_index is None else int(log_index)


def block_windows(from_block: int, to_block: int, size: int) -> Iterator[tuple[int, int]]:
    """Inclusive [start, end] windows of at most size blocks."""
    start = from_block
    while start <= to_block:
        end = min(start + size - 1, to_block)
        yield start, end
        start = end + 1


class Web3EventSource:
    """Pulls raw event dicts for configured contracts from a web3 node."""

    def __init__(
        self,
        w3: Web3,
        contracts: dict[str, ContractKind],
        call_selectors: dict[ContractKind, str] | None = None,
        blocks_per_call: int = 2000,
    ) -> None:
        self.w3 = w3
        self.contracts = {normalize_hex(a): k for a, k in contracts.items()}
        self.call_selectors = call_selectors or {}
        self.blocks_per_call = max(1, blocks_per_call)
        self._decoders: dict[ContractKind, LogDecoder] = {}
        self._timestamps: dict[int, int] = {}

    def head(self) -> int:
        return int(self.w3.eth.block_number)

    def _decoder(self, kind: ContractKind) -> LogDecoder:
        if kind not in self._decoders:
            self._decoders[kind] = LogDecoder(kind)
        return self._decoders[kind]

    def block_timestamp(self, block_number: int) -> int:
        if block_number not in self._timestamps:
            self._timestamps[block_number] = int(self.w3.eth.get_block(block_number)["timestamp"])
        return self._timestamps[block_number]

    @backoff.on_exception(
        backoff.expo,
        (requests.exceptions.RequestException, Web3Exception, ConnectionError, TimeoutError),
        max_tries=3,
        jitter=None,
    )
    def _get_logs(self, address: str, from_block: int, to_block: int) -> list[Any]:
        return self.w3.eth.get_logs(
            {
                "address": self.w3.to_checksum_address(address),
                "fromBlock": from_block,
                "toBlock": to_block,
            }
        )

    def fetch_logs(self, address: str, from_block: int, to_block: int) -> list[dict[str, Any]]:
        kind = self.contracts[address]
        decoder = self._decoder(kind)
        out = []
        for raw_log in self._get_logs(address, from_block, to_block):
            raw = decoder.decode(raw_log, self.block_timestamp(int(raw_log["blockNumber"])))
            if raw is not None:
                out.append(raw)
        return out

    def _call_targets(self) -> dict[str, tuple[ContractKind, str]]:
        """address -> (kind, selector) for factories whose creations are tracked as calls."""
        return {
            address: (kind, self.call_selectors[kind])
            for address, kind in self.contracts.items()
            if kind in CALL_EVENT_TYPES and kind in self.call_selectors
        }

    def fetch_calls(self, from_block: int, to_block: int) -> list[dict[str, Any]]:
        """Scan blocks for successful transactions calling a tracked factory function."""
        targets = self._call_targets()
        if not targets:
            return []
        out = []
        for number in range(from_block, to_block + 1):
            block = self.w3.eth.get_block(number, full_transactions=True)
            self._timestamps[number] = int(block["timestamp"])
            for tx in block["transactions"]:
                to = normalize_hex(tx.get("to")) if tx.get("to") else ""
                if to not in targets:
                    continue
                kind, selector = targets[to]
                if not normalize_hex(tx["input"]).startswith(selector):
                    continue
                receipt = self.w3.eth.get_transaction_receipt(tx["hash"])
                if int(receipt["status"]) != 1:
                    continue
                out.append(call_to_raw(kind, tx, self._timestamps[number]))
        return out

    def fetch_window(self, from_block: int, to_block: int) -> list[dict[str, Any]]:
        """All raw events in [from_block, to_block] across configured contracts, in delivery order."""
        events: list[dict[str, Any]] = []
        for address, kind in self.contracts.items():
            if not event_abis(kind):
                continue
            events.extend(self.fetch_logs(address, from_block, to_block))
        events.extend(self.fetch_calls(from_block, to_block))
        events.sort(key=event_order)
        self._timestamps.clear()
        log.debug("window_fetched", from_block=from_block, to_block=to_block, events=len(events))
        return events
