"""Derived entities - pools, participants, history records, factories, rollups."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from poolgraph.models.events import ZERO_ADDRESS

SECONDS_PER_DAY = 86400
GLOBAL_STATS_ID = "1"
TOKEN_FACTORY_MANAGER_ID = "1"


class Entity(BaseModel):
    """Keyed record in the entity store. Subclasses set entity_type."""

    entity_type: ClassVar[str] = ""

    id: str


class Domain(str, Enum):
    STAKING = "staking"
    FARMING = "farming"


class LastAction(str, Enum):
    CREATED = "created"
    STAKED = "staked"
    WITHDRAWN = "withdrawn"
    REWARD_CLAIMED = "reward_claimed"


class LaunchStatus(str, Enum):
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    ENDED = "Ended"


# Pools and participants


class StakingPool(Entity):
    """Single-asset staking contract mirrored from chain."""

    entity_type: ClassVar[str] = "StakingPool"

    address: str
    total_staked: int = 0
    reward_rate: int = 0
    rewards_duration: int = 0
    period_finish: int = 0
    last_update_time: int = 0
    reward_per_token_stored: int = 0
    paused: bool = False
    created_at: int = 0
    updated_at: int = 0


class FarmingPool(StakingPool):
    """LP farming (StakingRewards) contract. Token addresses are read once at creation."""

    entity_type: ClassVar[str] = "FarmingPool"

    staking_token: str = ""
    rewards_token: str = ""


class Participant(Entity):
    """A user's position in one pool. id = user + '-' + pool."""

    entity_type: ClassVar[str] = "Participant"

    address: str
    pool: str
    domain: Domain
    staked_amount: int = 0
    rewards: int = 0
    reward_per_token_paid: int = 0
    last_action: LastAction = LastAction.CREATED
    last_action_timestamp: int = 0


# Immutable history records, id = txHash-logIndex


class EventRecord(Entity):
    domain: Domain
    pool: str
    timestamp: int
    block_number: int
    transaction_hash: str


class StakeEvent(EventRecord):
    entity_type: ClassVar[str] = "StakeEvent"

    participant: str
    amount: int


class WithdrawEvent(EventRecord):
    entity_type: ClassVar[str] = "WithdrawEvent"

    participant: str
    amount: int


class RewardEvent(EventRecord):
    entity_type: ClassVar[str] = "RewardEvent"

    participant: str
    amount: int


class RewardAddedEvent(EventRecord):
    entity_type: ClassVar[str] = "RewardAddedEvent"

    amount: int


class RewardsDurationUpdatedEvent(EventRecord):
    entity_type: ClassVar[str] = "RewardsDurationUpdatedEvent"

    new_duration: int


class PauseEvent(EventRecord):
    entity_type: ClassVar[str] = "PauseEvent"

    paused: bool


# Liquidity pool manager


class LiquidityPoolManager(Entity):
    """Reward-weight manager. Configuration is read once when first seen."""

    entity_type: ClassVar[str] = "LiquidityPoolManager"

    address: str
    wklc: str = ZERO_ADDRESS
    kswap: str = ZERO_ADDRESS
    treasury_vester: str = ZERO_ADDRESS
    klc_kswap_pair: str = ZERO_ADDRESS
    klc_split: int = 0
    kswap_split: int = 0
    split_pools: bool = False
    unallocated_kswap: int = 0
    created_at: int = 0
    updated_at: int = 0


class WhitelistedPool(Entity):
    """id = manager + '-' + pair address."""

    entity_type: ClassVar[str] = "WhitelistedPool"

    manager: str
    pair_address: str
    weight: int = 0
    created_at: int = 0
    updated_at: int = 0


# Launchpad factories and the items they create


class TokenFactoryManager(Entity):
    entity_type: ClassVar[str] = "TokenFactoryManager"

    address: str
    owner: str = ZERO_ADDRESS
    allowed_factories: list[str] = Field(default_factory=list)
    total_tokens_created: int = 0
    created_at: int = 0
    updated_at: int = 0


class TokenFactory(Entity):
    entity_type: ClassVar[str] = "TokenFactory"

    address: str
    factory_type: str  # Standard | LiquidityGenerator
    manager: str = TOKEN_FACTORY_MANAGER_ID
    fee_to: str = ZERO_ADDRESS
    flat_fee: int = 0
    total_tokens_created: int = 0
    created_at: int = 0
    updated_at: int = 0


class Token(Entity):
    entity_type: ClassVar[str] = "Token"

    address: str
    factory: str
    creator: str
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    total_supply: int = 0
    token_type: str = "Standard"
    created_at: int = 0
    block_number: int = 0
    transaction_hash: str = ""


class PresaleFactory(Entity):
    entity_type: ClassVar[str] = "PresaleFactory"

    address: str
    fee_to: str = ZERO_ADDRESS
    flat_fee: int = 0
    total_presales_created: int = 0
    created_at: int = 0
    updated_at: int = 0


class FairlaunchFactory(Entity):
    entity_type: ClassVar[str] = "FairlaunchFactory"

    address: str
    fee_to: str = ZERO_ADDRESS
    flat_fee: int = 0
    total_fairlaunches_created: int = 0
    created_at: int = 0
    updated_at: int = 0


class LaunchItem(Entity):
    """Presale or fairlaunch. Stored status stays Active; status_at derives the window state."""

    address: str
    factory: str
    creator: str
    sale_token: str = ZERO_ADDRESS
    base_token: str = ZERO_ADDRESS
    soft_cap: int = 0
    liquidity_percent: int = 0
    presale_start: int = 0
    presale_end: int = 0
    status: LaunchStatus = LaunchStatus.ACTIVE
    total_raised: int = 0
    total_participants: int = 0
    created_at: int = 0
    block_number: int = 0
    transaction_hash: str = ""

    def status_at(self, timestamp: int) -> LaunchStatus:
        """Window state at timestamp. Unset start/end (0) never bound the window."""
        if self.presale_start and timestamp < self.presale_start:
            return LaunchStatus.UPCOMING
        if self.presale_end and timestamp >= self.presale_end:
            return LaunchStatus.ENDED
        return LaunchStatus.ACTIVE


class Presale(LaunchItem):
    entity_type: ClassVar[str] = "Presale"

    presale_rate: int = 0
    listing_rate: int = 0
    hard_cap: int = 0


class Fairlaunch(LaunchItem):
    entity_type: ClassVar[str] = "Fairlaunch"

    max_spend_per_buyer: int = 0


# Aggregate rollups


class LaunchpadCounters(Entity):
    total_tokens_created: int = 0
    total_presales_created: int = 0
    total_fairlaunches_created: int = 0
    total_volume_raised: int = 0
    total_participants: int = 0
    active_presales: int = 0
    active_fairlaunches: int = 0
    last_updated: int = 0


class LaunchpadStats(LaunchpadCounters):
    """Global singleton, id '1'."""

    entity_type: ClassVar[str] = "LaunchpadStats"


class LaunchpadDayData(LaunchpadCounters):
    """One UTC day. id = str(date), date = timestamp // 86400."""

    entity_type: ClassVar[str] = "LaunchpadDayData"

    date: int


ENTITY_TYPES: dict[str, type[Entity]] = {
    cls.entity_type: cls
    for cls in (
        StakingPool,
        FarmingPool,
        Participant,
        StakeEvent,
        WithdrawEvent,
        RewardEvent,
        RewardAddedEvent,
        RewardsDurationUpdatedEvent,
        PauseEvent,
        LiquidityPoolManager,
        WhitelistedPool,
        TokenFactoryManager,
        TokenFactory,
        Token,
        PresaleFactory,
        FairlaunchFactory,
        Presale,
        Fairlaunch,
        LaunchpadStats,
        LaunchpadDayData,
    )
}


def participant_id(user: str, pool: str) -> str:
    return f"{user}-{pool}"


def whitelisted_pool_id(manager: str, pair: str) -> str:
    return f"{manager}-{pair}"


def day_id(timestamp: int) -> int:
    """UTC day number (integer division, so 86399 -> 0 and 86400 -> 1)."""
    return timestamp // SECONDS_PER_DAY
