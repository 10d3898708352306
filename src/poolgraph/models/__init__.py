"""Canonical schema (Pydantic) - chain events and derived entities."""

from poolgraph.models.entities import (
    ENTITY_TYPES,
    Entity,
    FarmingPool,
    LaunchpadDayData,
    LaunchpadStats,
    Participant,
    StakingPool,
)
from poolgraph.models.events import ChainEvent, ContractKind, parse_event

__all__ = [
    "ChainEvent",
    "ContractKind",
    "parse_event",
    "Entity",
    "ENTITY_TYPES",
    "StakingPool",
    "FarmingPool",
    "Participant",
    "LaunchpadStats",
    "LaunchpadDayData",
]
