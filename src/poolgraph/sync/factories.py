"""Liquidity-pool manager and launchpad factory handlers."""

from __future__ import annotations

import structlog

from poolgraph.models.entities import (
    TOKEN_FACTORY_MANAGER_ID,
    Fairlaunch,
    FairlaunchFactory,
    LiquidityPoolManager,
    Presale,
    PresaleFactory,
    Token,
    TokenFactory,
    TokenFactoryManager,
    WhitelistedPool,
    whitelisted_pool_id,
)
from poolgraph.models.events import (
    ZERO_ADDRESS,
    ContractKind,
    FairlaunchCreated,
    FeeToUpdated,
    FlatFeeUpdated,
    LiquidityGeneratorTokenCreated,
    OwnershipTransferred,
    PresaleCreated,
    TokenCreated,
)
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.pools import read_fields
from poolgraph.sync.rollups import FAIRLAUNCH_CREATED, PRESALE_CREATED, TOKEN_CREATED

log = structlog.get_logger(__name__)

LP_MANAGER_READS: tuple[tuple[str, str], ...] = (
    ("wklc", "wklc"),
    ("kswap", "kswap"),
    ("treasury_vester", "treasuryVester"),
    ("klc_kswap_pair", "klcKswapPair"),
    ("klc_split", "klcSplit"),
    ("kswap_split", "kswapSplit"),
    ("split_pools", "splitPools"),
    ("unallocated_kswap", "unallocatedKswap"),
)

STANDARD = "Standard"
LIQUIDITY_GENERATOR = "LiquidityGenerator"


# Liquidity pool manager


def _load_whitelisted_pools(ctx: HandlerContext, manager: LiquidityPoolManager, block_number: int, timestamp: int) -> None:
    """Create a WhitelistedPool for each configured pair that does not exist yet.

    Weight is weights(pair) when isWhitelisted(pair) is true, otherwise 0.
    Existing entries are not re-read.
    """
    for pair in ctx.whitelisted_pools:

        def create(pair: str = pair) -> WhitelistedPool:
            weight = 0
            listed = ctx.reader.call(manager.address, "isWhitelisted", pair, block_number=block_number)
            if not listed.reverted and listed.value:
                weight = ctx.reader.call(manager.address, "weights", pair, block_number=block_number).or_default(0)
            return WhitelistedPool(
                id=whitelisted_pool_id(manager.id, pair),
                manager=manager.id,
                pair_address=pair,
                weight=weight,
                created_at=timestamp,
                updated_at=timestamp,
            )

        ctx.store.get_or_create(WhitelistedPool, whitelisted_pool_id(manager.id, pair), create)


def get_or_create_lp_manager(ctx: HandlerContext, address: str, block_number: int, timestamp: int) -> LiquidityPoolManager:
    def create() -> LiquidityPoolManager:
        manager = LiquidityPoolManager(id=address, address=address, created_at=timestamp, updated_at=timestamp)
        read_fields(ctx, manager, address, LP_MANAGER_READS, block_number=block_number)
        # Whitelist rows go in before the manager row, so a failed run is retried in full.
        _load_whitelisted_pools(ctx, manager, block_number, timestamp)
        log.info("lp_manager_created", address=address, whitelisted=len(ctx.whitelisted_pools))
        return manager

    manager, _ = ctx.store.get_or_create(LiquidityPoolManager, address, create)
    return manager


def handle_lp_manager_ownership_transferred(ctx: HandlerContext, event: OwnershipTransferred) -> None:
    with ctx.store.lock(LiquidityPoolManager.entity_type, event.address):
        manager = get_or_create_lp_manager(ctx, event.address, event.block_number, event.block_timestamp)
        manager.updated_at = event.block_timestamp
        ctx.store.save(manager)


# Token factory manager


def _increment_manager_tokens(ctx: HandlerContext, timestamp: int) -> None:
    """Bump the manager's token counter if the manager has been seen."""
    with ctx.store.lock(TokenFactoryManager.entity_type, TOKEN_FACTORY_MANAGER_ID):
        manager = ctx.store.load(TokenFactoryManager, TOKEN_FACTORY_MANAGER_ID)
        if manager is None:
            return
        manager.total_tokens_created += 1
        manager.updated_at = timestamp
        ctx.store.save(manager)


def handle_factory_manager_ownership_transferred(ctx: HandlerContext, event: OwnershipTransferred) -> None:
    def create() -> TokenFactoryManager:
        return TokenFactoryManager(
            id=TOKEN_FACTORY_MANAGER_ID,
            address=event.address,
            created_at=event.block_timestamp,
        )

    def mutate(manager: TokenFactoryManager) -> None:
        manager.owner = event.new_owner
        manager.updated_at = event.block_timestamp

    manager = ctx.store.update(TokenFactoryManager, TOKEN_FACTORY_MANAGER_ID, create, mutate)
    log.info("factory_manager_owner", owner=manager.owner, block=event.block_number)


# Token factories


def _bump_token_factory(ctx: HandlerContext, address: str, factory_type: str, timestamp: int) -> TokenFactory:
    def create() -> TokenFactory:
        return TokenFactory(
            id=address,
            address=address,
            factory_type=factory_type,
            # Standard factories start with themselves as fee recipient until a FeeToUpdated arrives
            fee_to=address if factory_type == STANDARD else ZERO_ADDRESS,
            created_at=timestamp,
        )

    def mutate(factory: TokenFactory) -> None:
        factory.total_tokens_created += 1
        factory.updated_at = timestamp

    return ctx.store.update(TokenFactory, address, create, mutate)


def handle_token_created(ctx: HandlerContext, event: TokenCreated) -> None:
    factory = _bump_token_factory(ctx, event.address, STANDARD, event.block_timestamp)
    _increment_manager_tokens(ctx, event.block_timestamp)
    ctx.rollups.apply(TOKEN_CREATED, event.block_timestamp)
    ctx.store.save(
        Token(
            id=event.token_address,
            address=event.token_address,
            factory=factory.id,
            creator=event.creator,
            name=event.name,
            symbol=event.symbol,
            decimals=event.decimals,
            total_supply=event.total_supply,
            token_type=STANDARD,
            created_at=event.block_timestamp,
            block_number=event.block_number,
            transaction_hash=event.tx_hash,
        )
    )
    log.info("token_created", factory=factory.id, token=event.token_address, symbol=event.symbol)


def handle_lg_token_created(ctx: HandlerContext, event: LiquidityGeneratorTokenCreated) -> None:
    """Call-derived: the token address is unknown, so the record is keyed txHash-blockNumber."""
    factory = _bump_token_factory(ctx, event.address, LIQUIDITY_GENERATOR, event.block_timestamp)
    _increment_manager_tokens(ctx, event.block_timestamp)
    ctx.rollups.apply(TOKEN_CREATED, event.block_timestamp)
    ctx.store.save(
        Token(
            id=event.record_id,
            address=ZERO_ADDRESS,
            factory=factory.id,
            creator=event.creator,
            name="LiquidityGeneratorToken",
            symbol="LGT",
            decimals=18,
            token_type=LIQUIDITY_GENERATOR,
            created_at=event.block_timestamp,
            block_number=event.block_number,
            transaction_hash=event.tx_hash,
        )
    )
    log.info("token_created", factory=factory.id, token=event.record_id, symbol="LGT")


def handle_lg_factory_ownership_transferred(ctx: HandlerContext, event: OwnershipTransferred) -> None:
    with ctx.store.lock(TokenFactory.entity_type, event.address):
        factory = ctx.store.load(TokenFactory, event.address)
        if factory is None:
            log.debug("factory_not_seen", address=event.address, event_type=event.event_type)
            return
        factory.updated_at = event.block_timestamp
        ctx.store.save(factory)


# Presales and fairlaunches


def handle_presale_created(ctx: HandlerContext, event: PresaleCreated) -> None:
    def create() -> PresaleFactory:
        return PresaleFactory(id=event.address, address=event.address, created_at=event.block_timestamp)

    def mutate(factory: PresaleFactory) -> None:
        factory.total_presales_created += 1
        factory.updated_at = event.block_timestamp

    factory = ctx.store.update(PresaleFactory, event.address, create, mutate)
    ctx.rollups.apply(PRESALE_CREATED, event.block_timestamp)
    ctx.store.save(
        Presale(
            id=event.record_id,
            address=event.presale_address,
            factory=factory.id,
            creator=event.creator,
            sale_token=event.sale_token,
            base_token=event.base_token,
            presale_rate=event.presale_rate,
            listing_rate=event.listing_rate,
            soft_cap=event.soft_cap,
            hard_cap=event.hard_cap,
            liquidity_percent=event.liquidity_percent,
            presale_start=event.presale_start,
            presale_end=event.presale_end,
            created_at=event.block_timestamp,
            block_number=event.block_number,
            transaction_hash=event.tx_hash,
        )
    )
    log.info("presale_created", factory=factory.id, presale=event.record_id)


def handle_fairlaunch_created(ctx: HandlerContext, event: FairlaunchCreated) -> None:
    def create() -> FairlaunchFactory:
        return FairlaunchFactory(id=event.address, address=event.address, created_at=event.block_timestamp)

    def mutate(factory: FairlaunchFactory) -> None:
        factory.total_fairlaunches_created += 1
        factory.updated_at = event.block_timestamp

    factory = ctx.store.update(FairlaunchFactory, event.address, create, mutate)
    ctx.rollups.apply(FAIRLAUNCH_CREATED, event.block_timestamp)
    ctx.store.save(
        Fairlaunch(
            id=event.fairlaunch,
            address=event.fairlaunch,
            factory=factory.id,
            creator=event.creator,
            sale_token=event.sale_token,
            base_token=event.base_token,
            soft_cap=event.soft_cap,
            created_at=event.block_timestamp,
            block_number=event.block_number,
            transaction_hash=event.tx_hash,
        )
    )
    log.info("fairlaunch_created", factory=factory.id, fairlaunch=event.fairlaunch)


# Fee configuration

_FEE_FACTORY_MODELS = {
    ContractKind.STANDARD_TOKEN_FACTORY: TokenFactory,
    ContractKind.FAIRLAUNCH_FACTORY: FairlaunchFactory,
}


def handle_fee_updated(ctx: HandlerContext, event: FeeToUpdated | FlatFeeUpdated) -> None:
    """Applied only to factories that already exist; fees seen before the first item are dropped."""
    model = _FEE_FACTORY_MODELS[event.contract_kind]
    with ctx.store.lock(model.entity_type, event.address):
        factory = ctx.store.load(model, event.address)
        if factory is None:
            log.info("fee_update_skipped", address=event.address, event_type=event.event_type, reason="factory_not_seen")
            return
        if isinstance(event, FeeToUpdated):
            factory.fee_to = event.new_fee_to
        else:
            factory.flat_fee = event.new_fee
        factory.updated_at = event.block_timestamp
        ctx.store.save(factory)
