"""Decode web3 logs and factory calls into raw event dicts."""

from __future__ import annotations

from typing import Any

import structlog
from web3 import Web3

from poolgraph.chain.abis import PARAM_ALIASES, event_abis, event_signature
from poolgraph.models.events import ContractKind, normalize_hex

log = structlog.get_logger(__name__)


def topic_map(kind: ContractKind) -> dict[str, dict[str, Any]]:
    """topic0 (lower-case hex) -> event ABI for a contract kind."""
    return {
        normalize_hex(Web3.keccak(text=event_signature(abi))): abi
        for abi in event_abis(kind)
    }


def _param_value(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return normalize_hex(v)
    if isinstance(v, str) and v.startswith("0x"):
        return normalize_hex(v)
    return v


class LogDecoder:
    """Decodes logs of one contract kind; unknown topics return None."""

    def __init__(self, kind: ContractKind) -> None:
        self.kind = kind
        self._topics = topic_map(kind)
        self._contract = Web3().eth.contract(abi=event_abis(kind))

    def decode(self, raw_log: Any, block_timestamp: int) -> dict[str, Any] | None:
        topics = raw_log["topics"]
        if not topics:
            return None
        abi = self._topics.get(normalize_hex(topics[0]))
        if abi is None:
            return None
        evt = getattr(self._contract.events, abi["name"])().process_log(raw_log)
        out: dict[str, Any] = {
            "event_type": abi["name"],
            "contract_kind": self.kind.value,
            "address": normalize_hex(raw_log["address"]),
            "block_number": int(raw_log["blockNumber"]),
            "block_timestamp": int(block_timestamp),
            "tx_hash": normalize_hex(raw_log["transactionHash"]),
            "log_index": int(raw_log["logIndex"]),
        }
        for name, value in evt["args"].items():
            out[PARAM_ALIASES.get(name, name)] = _param_value(value)
        return out


CALL_EVENT_TYPES: dict[ContractKind, str] = {
    ContractKind.PRESALE_FACTORY: "PresaleCreated",
    ContractKind.LG_TOKEN_FACTORY: "LiquidityGeneratorTokenCreated",
}


def call_to_raw(kind: ContractKind, tx: Any, block_timestamp: int) -> dict[str, Any]:
    """Successful factory call -> raw event dict. Parameters are not decoded from calldata."""
    return {
        "event_type": CALL_EVENT_TYPES[kind],
        "contract_kind": kind.value,
        "address": normalize_hex(tx["to"]),
        "block_number": int(tx["blockNumber"]),
        "block_timestamp": int(block_timestamp),
        "tx_hash": normalize_hex(tx["hash"]),
        "log_index": None,
        "creator": normalize_hex(tx["from"]),
    }
