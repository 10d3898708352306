"""Event log recorder - one immutable history record per processed event."""

from __future__ import annotations

from poolgraph.models.entities import (
    Domain,
    EventRecord,
    PauseEvent,
    RewardAddedEvent,
    RewardEvent,
    RewardsDurationUpdatedEvent,
    StakeEvent,
    WithdrawEvent,
)
from poolgraph.models.events import (
    ChainEventBase,
    Paused,
    RewardAdded,
    RewardPaid,
    RewardsDurationUpdated,
    Staked,
    Unpaused,
    Withdrawn,
)
from poolgraph.storage.entities import EntityStore


def build_record(event: ChainEventBase, domain: Domain, participant: str | None = None) -> EventRecord:
    """Map a pool event to its history record, keyed txHash-logIndex."""
    base = {
        "id": event.record_id,
        "domain": domain,
        "pool": event.address,
        "timestamp": event.block_timestamp,
        "block_number": event.block_number,
        "transaction_hash": event.tx_hash,
    }
    if isinstance(event, Staked):
        return StakeEvent(**base, participant=participant, amount=event.amount)
    if isinstance(event, Withdrawn):
        return WithdrawEvent(**base, participant=participant, amount=event.amount)
    if isinstance(event, RewardPaid):
        return RewardEvent(**base, participant=participant, amount=event.reward)
    if isinstance(event, RewardAdded):
        return RewardAddedEvent(**base, amount=event.reward)
    if isinstance(event, RewardsDurationUpdated):
        return RewardsDurationUpdatedEvent(**base, new_duration=event.new_duration)
    if isinstance(event, (Paused, Unpaused)):
        return PauseEvent(**base, paused=isinstance(event, Paused))
    raise TypeError(f"no history record for {type(event).__name__}")


def append_record(store: EntityStore, record: EventRecord) -> None:
    """Write the record. Its key comes from immutable event metadata, so a redelivered
    event rewrites identical values."""
    store.save(record)
