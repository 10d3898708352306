"""Table-driven event router: (contract kind, event type) -> handler."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import partial
from typing import Any

import structlog
from pydantic import ValidationError

from poolgraph.errors import MalformedEventError, UnknownEventError
from poolgraph.models.events import ChainEventBase, ContractKind, parse_event
from poolgraph.sync import factories, rewards
from poolgraph.sync.context import HandlerContext

log = structlog.get_logger(__name__)

Handler = Callable[[HandlerContext, Any], None]

ON_MALFORMED_SKIP = "skip"
ON_MALFORMED_FAIL = "fail"


def _reward_pool_routes(kind: ContractKind, sync: rewards.PoolSync) -> dict[tuple[ContractKind, str], Handler]:
    return {
        (kind, "Staked"): partial(_with_sync, rewards.handle_staked, sync),
        (kind, "Withdrawn"): partial(_with_sync, rewards.handle_withdrawn, sync),
        (kind, "RewardPaid"): partial(_with_sync, rewards.handle_reward_paid, sync),
        (kind, "RewardAdded"): partial(_with_sync, rewards.handle_reward_added, sync),
        (kind, "RewardsDurationUpdated"): partial(_with_sync, rewards.handle_rewards_duration_updated, sync),
    }


def _with_sync(handler: Callable[..., None], sync: rewards.PoolSync, ctx: HandlerContext, event: Any) -> None:
    handler(ctx, event, sync)


def default_routes() -> dict[tuple[ContractKind, str], Handler]:
    routes: dict[tuple[ContractKind, str], Handler] = {}
    routes.update(_reward_pool_routes(ContractKind.STAKING, rewards.STAKING))
    routes.update(_reward_pool_routes(ContractKind.FARMING, rewards.FARMING))
    # Only staking contracts are pausable.
    routes[(ContractKind.STAKING, "Paused")] = partial(_with_sync, rewards.handle_pause_toggle, rewards.STAKING)
    routes[(ContractKind.STAKING, "Unpaused")] = partial(_with_sync, rewards.handle_pause_toggle, rewards.STAKING)

    routes[(ContractKind.LP_MANAGER, "OwnershipTransferred")] = factories.handle_lp_manager_ownership_transferred
    routes[(ContractKind.TOKEN_FACTORY_MANAGER, "OwnershipTransferred")] = (
        factories.handle_factory_manager_ownership_transferred
    )
    routes[(ContractKind.STANDARD_TOKEN_FACTORY, "TokenCreated")] = factories.handle_token_created
    routes[(ContractKind.STANDARD_TOKEN_FACTORY, "FeeToUpdated")] = factories.handle_fee_updated
    routes[(ContractKind.STANDARD_TOKEN_FACTORY, "FlatFeeUpdated")] = factories.handle_fee_updated
    routes[(ContractKind.LG_TOKEN_FACTORY, "LiquidityGeneratorTokenCreated")] = factories.handle_lg_token_created
    routes[(ContractKind.LG_TOKEN_FACTORY, "OwnershipTransferred")] = factories.handle_lg_factory_ownership_transferred
    routes[(ContractKind.PRESALE_FACTORY, "PresaleCreated")] = factories.handle_presale_created
    routes[(ContractKind.FAIRLAUNCH_FACTORY, "FairlaunchCreated")] = factories.handle_fairlaunch_created
    routes[(ContractKind.FAIRLAUNCH_FACTORY, "FeeToUpdated")] = factories.handle_fee_updated
    routes[(ContractKind.FAIRLAUNCH_FACTORY, "FlatFeeUpdated")] = factories.handle_fee_updated
    return routes


class Dispatcher:
    """Validates raw events and routes each to its handler, in delivery order.

    Malformed payloads are skipped (logged) or raised as MalformedEventError,
    depending on on_malformed. Events with no route are logged and skipped.
    Store errors raised by a handler propagate to the caller.
    """

    def __init__(
        self,
        ctx: HandlerContext,
        on_malformed: str = ON_MALFORMED_SKIP,
        routes: dict[tuple[ContractKind, str], Handler] | None = None,
    ) -> None:
        if on_malformed not in (ON_MALFORMED_SKIP, ON_MALFORMED_FAIL):
            raise ValueError(f"on_malformed must be 'skip' or 'fail', got {on_malformed!r}")
        self.ctx = ctx
        self.on_malformed = on_malformed
        self.routes = routes if routes is not None else default_routes()
        self.processed = 0
        self.malformed = 0
        self.unrouted = 0

    def handler_for(self, event: ChainEventBase) -> Handler:
        key = (event.contract_kind, event.event_type)
        handler = self.routes.get(key)
        if handler is None:
            raise UnknownEventError(event.contract_kind.value, event.event_type)
        return handler

    def dispatch(self, event: ChainEventBase) -> bool:
        """Apply one validated event. Returns False when no handler is registered."""
        try:
            handler = self.handler_for(event)
        except UnknownEventError as e:
            self.unrouted += 1
            log.info("unrouted_event", kind=e.contract_kind, event_type=e.event_type, address=event.address)
            return False
        handler(self.ctx, event)
        self.processed += 1
        return True

    def process_raw(self, raw: dict[str, Any]) -> bool:
        """Validate and dispatch one raw event dict. Returns True if a handler ran."""
        try:
            event = parse_event(raw)
        except ValidationError as e:
            self.malformed += 1
            if self.on_malformed == ON_MALFORMED_FAIL:
                raise MalformedEventError(raw, str(e)) from e
            log.warning(
                "malformed_event",
                event_type=raw.get("event_type"),
                tx_hash=raw.get("tx_hash"),
                log_index=raw.get("log_index"),
                errors=e.error_count(),
            )
            return False
        return self.dispatch(event)

    def process_many(self, raws: Iterable[dict[str, Any]]) -> int:
        """Process raw events in order; returns how many were handled."""
        return sum(1 for raw in raws if self.process_raw(raw))

    def stats(self) -> dict[str, int]:
        return {"processed": self.processed, "malformed": self.malformed, "unrouted": self.unrouted}
