"""Participant tracker - one record per (user, pool)."""

from __future__ import annotations

import structlog

from poolgraph.models.entities import Domain, LastAction, Participant, participant_id
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.pools import read_fields

log = structlog.get_logger(__name__)

STAKING_PARTICIPANT_READS: tuple[tuple[str, str], ...] = (
    ("staked_amount", "balanceOf"),
    ("rewards", "rewards"),
    ("reward_per_token_paid", "userRewardPerTokenPaid"),
)
FARMING_PARTICIPANT_READS: tuple[tuple[str, str], ...] = (
    ("staked_amount", "balanceOf"),
    ("rewards", "earned"),
    ("reward_per_token_paid", "userRewardPerTokenPaid"),
)


def get_or_create_participant(
    ctx: HandlerContext,
    domain: Domain,
    user: str,
    pool_address: str,
    block_number: int,
    timestamp: int,
) -> Participant:
    """Staking participants read their balances at creation; farming ones start at zero
    and are brought up to date by refresh_participant on every event."""
    key = participant_id(user, pool_address)

    def create() -> Participant:
        participant = Participant(
            id=key,
            address=user,
            pool=pool_address,
            domain=domain,
            last_action=LastAction.CREATED,
            last_action_timestamp=timestamp,
        )
        if domain is Domain.STAKING:
            read_fields(ctx, participant, pool_address, STAKING_PARTICIPANT_READS, user, block_number=block_number)
        log.debug("participant_created", domain=domain.value, id=key)
        return participant

    participant, _ = ctx.store.get_or_create(Participant, key, create)
    return participant


def refresh_participant(ctx: HandlerContext, participant: Participant, block_number: int) -> None:
    """Read-through: overwrite balance, earned and reward-per-token-paid from the contract."""
    read_fields(
        ctx,
        participant,
        participant.pool,
        FARMING_PARTICIPANT_READS,
        participant.address,
        block_number=block_number,
    )


def apply_balance_delta(participant: Participant, delta: int) -> None:
    participant.staked_amount += delta
    if participant.staked_amount < 0:
        log.warning(
            "participant_balance_negative",
            id=participant.id,
            staked_amount=participant.staked_amount,
        )


def record_action(participant: Participant, action: LastAction, timestamp: int) -> None:
    participant.last_action = action
    participant.last_action_timestamp = timestamp


def apply_claim(participant: Participant) -> None:
    """Claims drain accrued rewards fully."""
    participant.rewards = 0
