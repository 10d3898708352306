"""Collaborators every handler receives."""

from __future__ import annotations

from dataclasses import dataclass, field

from poolgraph.chain.reader import ContractReader
from poolgraph.storage.entities import EntityStore
from poolgraph.sync.rollups import RollupMaintainer


@dataclass
class HandlerContext:
    store: EntityStore
    reader: ContractReader
    whitelisted_pools: list[str] = field(default_factory=list)
    rollups: RollupMaintainer = field(init=False)

    def __post_init__(self) -> None:
        self.rollups = RollupMaintainer(self.store)
