"""Handlers for reward-pool events (stake, withdraw, claim, top-up, duration, pause).

Staking and farming contracts emit the same events but keep their cached state
differently: staking applies event amounts as deltas, farming re-reads the
contract on every event. Each domain is a PoolSync; the handlers are shared.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from poolgraph.models.entities import Domain, FarmingPool, LastAction, Participant, StakingPool
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
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.participants import (
    apply_balance_delta,
    apply_claim,
    get_or_create_participant,
    record_action,
    refresh_participant,
)
from poolgraph.sync.pools import (
    get_or_create_farming_pool,
    get_or_create_staking_pool,
    refresh_pool_state,
    refresh_reward_schedule,
)
from poolgraph.sync.records import append_record, build_record

log = structlog.get_logger(__name__)


class PoolSync(Protocol):
    domain: Domain
    pool_type: str

    def pool(self, ctx: HandlerContext, event: ChainEventBase) -> StakingPool: ...

    def on_balance_change(
        self, ctx: HandlerContext, pool: StakingPool, participant: Participant, event: ChainEventBase, delta: int
    ) -> None: ...

    def on_claim(self, ctx: HandlerContext, pool: StakingPool, participant: Participant, event: ChainEventBase) -> None: ...

    def on_reward_added(self, ctx: HandlerContext, pool: StakingPool, event: RewardAdded) -> None: ...

    def on_duration_updated(self, ctx: HandlerContext, pool: StakingPool, event: RewardsDurationUpdated) -> None: ...


class StakingSync:
    """Event-derived deltas; only a reward top-up triggers a (partial) re-read."""

    domain = Domain.STAKING
    pool_type = StakingPool.entity_type

    def pool(self, ctx: HandlerContext, event: ChainEventBase) -> StakingPool:
        return get_or_create_staking_pool(ctx, event)

    def on_balance_change(self, ctx, pool, participant, event, delta):
        pool.total_staked += delta
        apply_balance_delta(participant, delta)

    def on_claim(self, ctx, pool, participant, event):
        apply_claim(participant)

    def on_reward_added(self, ctx, pool, event):
        refresh_reward_schedule(ctx, pool, event.block_number)

    def on_duration_updated(self, ctx, pool, event):
        pool.rewards_duration = event.new_duration


class FarmingSync:
    """Read-through: pool and participant state is re-read from the contract on every event."""

    domain = Domain.FARMING
    pool_type = FarmingPool.entity_type

    def pool(self, ctx: HandlerContext, event: ChainEventBase) -> StakingPool:
        return get_or_create_farming_pool(ctx, event)

    def on_balance_change(self, ctx, pool, participant, event, delta):
        refresh_pool_state(ctx, pool, event.block_number)
        refresh_participant(ctx, participant, event.block_number)

    def on_claim(self, ctx, pool, participant, event):
        refresh_pool_state(ctx, pool, event.block_number)
        refresh_participant(ctx, participant, event.block_number)
        apply_claim(participant)

    def on_reward_added(self, ctx, pool, event):
        refresh_pool_state(ctx, pool, event.block_number)

    def on_duration_updated(self, ctx, pool, event):
        pool.rewards_duration = event.new_duration
        refresh_pool_state(ctx, pool, event.block_number)


STAKING = StakingSync()
FARMING = FarmingSync()


def _user_event(
    ctx: HandlerContext,
    event: Staked | Withdrawn | RewardPaid,
    sync: PoolSync,
    action: LastAction,
) -> None:
    with ctx.store.lock(sync.pool_type, event.address):
        pool = sync.pool(ctx, event)
        participant = get_or_create_participant(
            ctx, sync.domain, event.user, pool.address, event.block_number, event.block_timestamp
        )
        if isinstance(event, Staked):
            sync.on_balance_change(ctx, pool, participant, event, event.amount)
        elif isinstance(event, Withdrawn):
            sync.on_balance_change(ctx, pool, participant, event, -event.amount)
        else:
            sync.on_claim(ctx, pool, participant, event)
        record_action(participant, action, event.block_timestamp)
        pool.updated_at = event.block_timestamp

        ctx.store.save(pool)
        ctx.store.save(participant)
        append_record(ctx.store, build_record(event, sync.domain, participant.id))
    log.debug(
        "participant_updated",
        domain=sync.domain.value,
        event_type=event.event_type,
        participant=participant.id,
        staked_amount=participant.staked_amount,
    )


def handle_staked(ctx: HandlerContext, event: Staked, sync: PoolSync) -> None:
    _user_event(ctx, event, sync, LastAction.STAKED)


def handle_withdrawn(ctx: HandlerContext, event: Withdrawn, sync: PoolSync) -> None:
    _user_event(ctx, event, sync, LastAction.WITHDRAWN)


def handle_reward_paid(ctx: HandlerContext, event: RewardPaid, sync: PoolSync) -> None:
    _user_event(ctx, event, sync, LastAction.REWARD_CLAIMED)


def handle_reward_added(ctx: HandlerContext, event: RewardAdded, sync: PoolSync) -> None:
    with ctx.store.lock(sync.pool_type, event.address):
        pool = sync.pool(ctx, event)
        sync.on_reward_added(ctx, pool, event)
        pool.updated_at = event.block_timestamp
        ctx.store.save(pool)
        append_record(ctx.store, build_record(event, sync.domain))


def handle_rewards_duration_updated(ctx: HandlerContext, event: RewardsDurationUpdated, sync: PoolSync) -> None:
    with ctx.store.lock(sync.pool_type, event.address):
        pool = sync.pool(ctx, event)
        sync.on_duration_updated(ctx, pool, event)
        pool.updated_at = event.block_timestamp
        ctx.store.save(pool)
        append_record(ctx.store, build_record(event, sync.domain))


def handle_pause_toggle(ctx: HandlerContext, event: Paused | Unpaused, sync: PoolSync) -> None:
    """Paused / Unpaused set the flag outright, so replays land on the same value."""
    with ctx.store.lock(sync.pool_type, event.address):
        pool = sync.pool(ctx, event)
        pool.paused = isinstance(event, Paused)
        pool.updated_at = event.block_timestamp
        ctx.store.save(pool)
        append_record(ctx.store, build_record(event, sync.domain))
    log.info("pool_pause_toggled", address=pool.address, paused=pool.paused, block=event.block_number)
