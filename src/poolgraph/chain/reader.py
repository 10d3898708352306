"""Point-in-time contract reads that report failure instead of raising."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from web3.exceptions import Web3Exception

from poolgraph.chain.abis import ABIS
from poolgraph.models.events import ContractKind, normalize_hex

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReadResult:
    """Value of a view call, or reverted=True when the call failed."""

    value: Any = None
    reverted: bool = False

    @classmethod
    def ok(cls, value: Any) -> ReadResult:
        return cls(value=value, reverted=False)

    @classmethod
    def failed(cls) -> ReadResult:
        return cls(value=None, reverted=True)

    def or_default(self, default: Any) -> Any:
        return default if self.reverted else self.value


class ContractReader(Protocol):
    """Reads a named view method of a contract at an optional block."""

    def call(
        self,
        address: str,
        method: str,
        *args: Any,
        block_number: int | None = None,
    ) -> ReadResult: ...


class NullContractReader:
    """Every read reverts. Used for offline replay."""

    def call(self, address: str, method: str, *args: Any, block_number: int | None = None) -> ReadResult:
        return ReadResult.failed()


class StaticContractReader:
    """Dict-backed reader: (address, method, *args) -> value. Missing entries revert.

    Values set via set() apply at every block; calls are recorded for assertions.
    """

    def __init__(self, values: dict[tuple[Any, ...], Any] | None = None) -> None:
        self._values: dict[tuple[Any, ...], Any] = {}
        self.calls: list[tuple[Any, ...]] = []
        for key, value in (values or {}).items():
            self.set(key[0], key[1], *key[2:], value=value)

    @staticmethod
    def _key(address: str, method: str, args: tuple[Any, ...]) -> tuple[Any, ...]:
        norm_args = tuple(normalize_hex(a) if isinstance(a, str) else a for a in args)
        return (normalize_hex(address), method, *norm_args)

    def set(self, address: str, method: str, *args: Any, value: Any) -> None:
        self._values[self._key(address, method, args)] = value

    def call(self, address: str, method: str, *args: Any, block_number: int | None = None) -> ReadResult:
        key = self._key(address, method, args)
        self.calls.append(key)
        if key not in self._values:
            return ReadResult.failed()
        return ReadResult.ok(self._values[key])


class Web3ContractReader:
    """Reads views through web3.py, binding the ABI of each address's contract kind."""

    def __init__(self, w3: Any, kinds: dict[str, ContractKind]) -> None:
        self.w3 = w3
        self.kinds = {normalize_hex(a): k for a, k in kinds.items()}
        self._contracts: dict[str, Any] = {}

    def _contract(self, address: str) -> Any:
        if address not in self._contracts:
            kind = self.kinds[address]
            self._contracts[address] = self.w3.eth.contract(
                address=self.w3.to_checksum_address(address), abi=ABIS[kind]
            )
        return self._contracts[address]

    def call(self, address: str, method: str, *args: Any, block_number: int | None = None) -> ReadResult:
        address = normalize_hex(address)
        if address not in self.kinds:
            log.debug("read_unknown_contract", address=address, method=method)
            return ReadResult.failed()
        contract = self._contract(address)
        call_args = [self.w3.to_checksum_address(a) if _is_address(a) else a for a in args]
        block = block_number if block_number is not None else "latest"
        try:
            value = getattr(contract.functions, method)(*call_args).call(block_identifier=block)
        except (Web3Exception, ValueError, OSError) as e:
            log.debug("read_reverted", address=address, method=method, block=block, error=str(e))
            return ReadResult.failed()
        if isinstance(value, str) and _is_address(value):
            value = normalize_hex(value)
        return ReadResult.ok(value)


def _is_address(v: Any) -> bool:
    return isinstance(v, str) and v.startswith("0x") and len(v) == 42
