"""Chain events - one tagged variant per on-chain event or call type."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ContractKind(str, Enum):
    """Which mapping a contract address is indexed with."""

    STAKING = "staking"
    FARMING = "farming"
    LP_MANAGER = "lp_manager"
    STANDARD_TOKEN_FACTORY = "standard_token_factory"
    LG_TOKEN_FACTORY = "lg_token_factory"
    PRESALE_FACTORY = "presale_factory"
    FAIRLAUNCH_FACTORY = "fairlaunch_factory"
    TOKEN_FACTORY_MANAGER = "token_factory_manager"


def normalize_hex(value: Any) -> str:
    """Lower-case 0x-prefixed hex for addresses and hashes (accepts bytes)."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    s = str(value or "").strip()
    if not s:
        return s
    if s[:2].lower() == "0x":
        return "0x" + s[2:].lower()
    return "0x" + s.lower()


class ChainEventBase(BaseModel):
    """Metadata shared by every event: where and when it happened."""

    contract_kind: ContractKind
    address: str
    block_number: int = Field(..., ge=0)
    block_timestamp: int = Field(..., ge=0)
    tx_hash: str
    log_index: int | None = None  # None for call-derived events

    @field_validator("address", "tx_hash", mode="before")
    @classmethod
    def _hex(cls, v: Any) -> str:
        return normalize_hex(v)

    @property
    def record_id(self) -> str:
        """Unique key for the history record of this event."""
        if self.log_index is None:
            return f"{self.tx_hash}-{self.block_number}"
        return f"{self.tx_hash}-{self.log_index}"


class _UserEvent(ChainEventBase):
    user: str

    @field_validator("user", mode="before")
    @classmethod
    def _user_hex(cls, v: Any) -> str:
        return normalize_hex(v)


class Staked(_UserEvent):
    event_type: Literal["Staked"] = "Staked"
    amount: int = Field(..., ge=0)


class Withdrawn(_UserEvent):
    event_type: Literal["Withdrawn"] = "Withdrawn"
    amount: int = Field(..., ge=0)


class RewardPaid(_UserEvent):
    event_type: Literal["RewardPaid"] = "RewardPaid"
    reward: int = Field(..., ge=0)


class RewardAdded(ChainEventBase):
    event_type: Literal["RewardAdded"] = "RewardAdded"
    reward: int = Field(..., ge=0)


class RewardsDurationUpdated(ChainEventBase):
    event_type: Literal["RewardsDurationUpdated"] = "RewardsDurationUpdated"
    new_duration: int = Field(..., ge=0)


class Paused(ChainEventBase):
    event_type: Literal["Paused"] = "Paused"
    account: str | None = None


class Unpaused(ChainEventBase):
    event_type: Literal["Unpaused"] = "Unpaused"
    account: str | None = None


class TokenCreated(ChainEventBase):
    event_type: Literal["TokenCreated"] = "TokenCreated"
    token_address: str
    creator: str
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    total_supply: int = 0

    @field_validator("token_address", "creator", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


class LiquidityGeneratorTokenCreated(ChainEventBase):
    """Call to the liquidity-generator factory; the token address is not in the trace."""

    event_type: Literal["LiquidityGeneratorTokenCreated"] = "LiquidityGeneratorTokenCreated"
    creator: str

    @field_validator("creator", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


class PresaleCreated(ChainEventBase):
    """Call to the presale factory. Sale parameters are optional (zero when not decoded)."""

    event_type: Literal["PresaleCreated"] = "PresaleCreated"
    creator: str
    presale_address: str = ZERO_ADDRESS
    sale_token: str = ZERO_ADDRESS
    base_token: str = ZERO_ADDRESS
    presale_rate: int = 0
    listing_rate: int = 0
    soft_cap: int = 0
    hard_cap: int = 0
    liquidity_percent: int = 0
    presale_start: int = 0
    presale_end: int = 0

    @field_validator("creator", "presale_address", "sale_token", "base_token", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


class FairlaunchCreated(ChainEventBase):
    event_type: Literal["FairlaunchCreated"] = "FairlaunchCreated"
    fairlaunch: str
    creator: str
    sale_token: str
    base_token: str
    soft_cap: int = 0

    @field_validator("fairlaunch", "creator", "sale_token", "base_token", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


class FeeToUpdated(ChainEventBase):
    event_type: Literal["FeeToUpdated"] = "FeeToUpdated"
    new_fee_to: str

    @field_validator("new_fee_to", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


class FlatFeeUpdated(ChainEventBase):
    event_type: Literal["FlatFeeUpdated"] = "FlatFeeUpdated"
    new_fee: int = Field(..., ge=0)


class OwnershipTransferred(ChainEventBase):
    event_type: Literal["OwnershipTransferred"] = "OwnershipTransferred"
    previous_owner: str = ZERO_ADDRESS
    new_owner: str = ZERO_ADDRESS

    @field_validator("previous_owner", "new_owner", mode="before")
    @classmethod
    def _addr(cls, v: Any) -> str:
        return normalize_hex(v)


ChainEvent = Annotated[
    Union[
        Staked,
        Withdrawn,
        RewardPaid,
        RewardAdded,
        RewardsDurationUpdated,
        Paused,
        Unpaused,
        TokenCreated,
        LiquidityGeneratorTokenCreated,
        PresaleCreated,
        FairlaunchCreated,
        FeeToUpdated,
        FlatFeeUpdated,
        OwnershipTransferred,
    ],
    Field(discriminator="event_type"),
]

_event_adapter: TypeAdapter[ChainEvent] = TypeAdapter(ChainEvent)


def parse_event(raw: dict[str, Any]) -> ChainEvent:
    """Validate a raw event dict into its variant. Raises pydantic.ValidationError if malformed."""
    return _event_adapter.validate_python(raw)
