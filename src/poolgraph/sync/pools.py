"""Staking / farming pool synchronizer - create on first sight, refresh mutable fields."""

from __future__ import annotations

from typing import Any

import structlog

from poolgraph.models.entities import FarmingPool, StakingPool
from poolgraph.models.events import ChainEventBase
from poolgraph.sync.context import HandlerContext

log = structlog.get_logger(__name__)

# (entity field, view method)
POOL_STATE_READS: tuple[tuple[str, str], ...] = (
    ("total_staked", "totalSupply"),
    ("reward_rate", "rewardRate"),
    ("rewards_duration", "rewardsDuration"),
    ("period_finish", "periodFinish"),
    ("last_update_time", "lastUpdateTime"),
    ("reward_per_token_stored", "rewardPerTokenStored"),
)
REWARD_SCHEDULE_READS: tuple[tuple[str, str], ...] = (
    ("reward_rate", "rewardRate"),
    ("period_finish", "periodFinish"),
    ("last_update_time", "lastUpdateTime"),
)
STAKING_CREATE_READS = POOL_STATE_READS + (("paused", "paused"),)
FARMING_TOKEN_READS: tuple[tuple[str, str], ...] = (
    ("staking_token", "stakingToken"),
    ("rewards_token", "rewardsToken"),
)


def read_fields(
    ctx: HandlerContext,
    entity: Any,
    address: str,
    reads: tuple[tuple[str, str], ...],
    *args: Any,
    block_number: int | None = None,
) -> list[str]:
    """Copy each successful view result onto entity. Reverted reads keep the current value.

    Returns the methods that reverted.
    """
    reverted = []
    for attr, method in reads:
        result = ctx.reader.call(address, method, *args, block_number=block_number)
        if result.reverted:
            reverted.append(method)
            continue
        setattr(entity, attr, result.value)
    if reverted:
        log.debug("read_reverted", address=address, methods=reverted, block=block_number)
    return reverted


def get_or_create_staking_pool(ctx: HandlerContext, event: ChainEventBase) -> StakingPool:
    address = event.address

    def create() -> StakingPool:
        pool = StakingPool(
            id=address,
            address=address,
            created_at=event.block_timestamp,
            updated_at=event.block_timestamp,
        )
        read_fields(ctx, pool, address, STAKING_CREATE_READS, block_number=event.block_number)
        log.info("pool_created", domain="staking", address=address, block=event.block_number)
        return pool

    pool, _ = ctx.store.get_or_create(StakingPool, address, create)
    return pool


def get_or_create_farming_pool(ctx: HandlerContext, event: ChainEventBase) -> FarmingPool:
    address = event.address

    def create() -> FarmingPool:
        pool = FarmingPool(
            id=address,
            address=address,
            created_at=event.block_timestamp,
            updated_at=event.block_timestamp,
        )
        read_fields(ctx, pool, address, FARMING_TOKEN_READS, block_number=event.block_number)
        read_fields(ctx, pool, address, POOL_STATE_READS, block_number=event.block_number)
        log.info("pool_created", domain="farming", address=address, block=event.block_number)
        return pool

    pool, _ = ctx.store.get_or_create(FarmingPool, address, create)
    return pool


def refresh_reward_schedule(ctx: HandlerContext, pool: StakingPool, block_number: int) -> None:
    """Re-read the fields a reward top-up changes. Token addresses are never re-read."""
    read_fields(ctx, pool, pool.address, REWARD_SCHEDULE_READS, block_number=block_number)


def refresh_pool_state(ctx: HandlerContext, pool: StakingPool, block_number: int) -> None:
    read_fields(ctx, pool, pool.address, POOL_STATE_READS, block_number=block_number)
