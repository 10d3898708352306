"""Minimal ABIs - only the views and events the mappings touch."""

from __future__ import annotations

from typing import Any

from poolgraph.models.events import ContractKind


def _view(name: str, out: str, inputs: list[str] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs or [])],
        "outputs": [{"name": "", "type": out}],
    }


def _event(name: str, *fields: tuple[str, str, bool]) -> dict[str, Any]:
    return {
        "name": name,
        "type": "event",
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": idx} for n, t, idx in fields],
    }


_REWARDS_EVENTS = [
    _event("Staked", ("user", "address", True), ("amount", "uint256", False)),
    _event("Withdrawn", ("user", "address", True), ("amount", "uint256", False)),
    _event("RewardPaid", ("user", "address", True), ("reward", "uint256", False)),
    _event("RewardAdded", ("reward", "uint256", False)),
    _event("RewardsDurationUpdated", ("newDuration", "uint256", False)),
]

_REWARDS_VIEWS = [
    _view("totalSupply", "uint256"),
    _view("rewardRate", "uint256"),
    _view("rewardsDuration", "uint256"),
    _view("periodFinish", "uint256"),
    _view("lastUpdateTime", "uint256"),
    _view("rewardPerTokenStored", "uint256"),
    _view("balanceOf", "uint256", ["address"]),
    _view("userRewardPerTokenPaid", "uint256", ["address"]),
]

STAKING_ABI = _REWARDS_VIEWS + _REWARDS_EVENTS + [
    _view("paused", "bool"),
    _view("rewards", "uint256", ["address"]),
    _event("Paused", ("account", "address", False)),
    _event("Unpaused", ("account", "address", False)),
]

FARMING_ABI = _REWARDS_VIEWS + _REWARDS_EVENTS + [
    _view("earned", "uint256", ["address"]),
    _view("stakingToken", "address"),
    _view("rewardsToken", "address"),
]

_OWNERSHIP = _event(
    "OwnershipTransferred",
    ("previousOwner", "address", True),
    ("newOwner", "address", True),
)

LP_MANAGER_ABI = [
    _view("wklc", "address"),
    _view("kswap", "address"),
    _view("treasuryVester", "address"),
    _view("klcKswapPair", "address"),
    _view("klcSplit", "uint256"),
    _view("kswapSplit", "uint256"),
    _view("splitPools", "bool"),
    _view("unallocatedKswap", "uint256"),
    _view("isWhitelisted", "bool", ["address"]),
    _view("weights", "uint256", ["address"]),
    _OWNERSHIP,
]

_FEE_EVENTS = [
    _event("FeeToUpdated", ("newFeeTo", "address", False)),
    _event("FlatFeeUpdated", ("newFee", "uint256", False)),
]

STANDARD_TOKEN_FACTORY_ABI = _FEE_EVENTS + [
    _event(
        "TokenCreated",
        ("creator", "address", True),
        ("tokenAddress", "address", True),
        ("name", "string", False),
        ("symbol", "string", False),
        ("decimals", "uint8", False),
        ("totalSupply", "uint256", False),
    ),
]

FAIRLAUNCH_FACTORY_ABI = _FEE_EVENTS + [
    _event(
        "FairlaunchCreated",
        ("fairlaunch", "address", True),
        ("creator", "address", True),
        ("saleToken", "address", False),
        ("baseToken", "address", False),
        ("softCap", "uint256", False),
    ),
]

ABIS: dict[ContractKind, list[dict[str, Any]]] = {
    ContractKind.STAKING: STAKING_ABI,
    ContractKind.FARMING: FARMING_ABI,
    ContractKind.LP_MANAGER: LP_MANAGER_ABI,
    ContractKind.STANDARD_TOKEN_FACTORY: STANDARD_TOKEN_FACTORY_ABI,
    ContractKind.LG_TOKEN_FACTORY: [_OWNERSHIP],
    ContractKind.PRESALE_FACTORY: [],
    ContractKind.FAIRLAUNCH_FACTORY: FAIRLAUNCH_FACTORY_ABI,
    ContractKind.TOKEN_FACTORY_MANAGER: [_OWNERSHIP],
}

# Solidity param name -> event model field
PARAM_ALIASES: dict[str, str] = {
    "newDuration": "new_duration",
    "tokenAddress": "token_address",
    "totalSupply": "total_supply",
    "saleToken": "sale_token",
    "baseToken": "base_token",
    "softCap": "soft_cap",
    "newFeeTo": "new_fee_to",
    "newFee": "new_fee",
    "previousOwner": "previous_owner",
    "newOwner": "new_owner",
}


def event_abis(kind: ContractKind) -> list[dict[str, Any]]:
    return [e for e in ABIS[kind] if e["type"] == "event"]


def event_signature(abi: dict[str, Any]) -> str:
    return f"{abi['name']}({','.join(i['type'] for i in abi['inputs'])})"
