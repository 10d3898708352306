"""Liquidity pool manager: configuration and whitelisted pools read once at creation."""

import pytest
from conftest import ALICE, LP_MANAGER, raw_event

from poolgraph.models.entities import LiquidityPoolManager, WhitelistedPool, whitelisted_pool_id
from poolgraph.models.events import ZERO_ADDRESS
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

PAIR_LISTED = "0x" + "71" * 20
PAIR_UNLISTED = "0x" + "72" * 20


@pytest.fixture
def lp_dispatcher(store, reader):
    ctx = HandlerContext(store=store, reader=reader, whitelisted_pools=[PAIR_LISTED, PAIR_UNLISTED])
    return Dispatcher(ctx)


def ownership(block, ts=1_000):
    return raw_event("OwnershipTransferred", "lp_manager", LP_MANAGER, block=block, ts=ts, new_owner=ALICE)


def test_manager_reads_configuration_and_weights(lp_dispatcher, store, reader):
    reader.set(LP_MANAGER, "wklc", value="0x" + "aa" * 20)
    reader.set(LP_MANAGER, "klcSplit", value=60)
    reader.set(LP_MANAGER, "splitPools", value=True)
    reader.set(LP_MANAGER, "isWhitelisted", PAIR_LISTED, value=True)
    reader.set(LP_MANAGER, "weights", PAIR_LISTED, value=300)
    reader.set(LP_MANAGER, "isWhitelisted", PAIR_UNLISTED, value=False)
    reader.set(LP_MANAGER, "weights", PAIR_UNLISTED, value=999)

    lp_dispatcher.process_raw(ownership(1))

    manager = store.load(LiquidityPoolManager, LP_MANAGER)
    assert manager.wklc == "0x" + "aa" * 20
    assert manager.kswap == ZERO_ADDRESS
    assert manager.klc_split == 60
    assert manager.kswap_split == 0
    assert manager.split_pools is True
    listed = store.load(WhitelistedPool, whitelisted_pool_id(LP_MANAGER, PAIR_LISTED))
    unlisted = store.load(WhitelistedPool, whitelisted_pool_id(LP_MANAGER, PAIR_UNLISTED))
    assert listed.weight == 300
    assert listed.manager == LP_MANAGER
    assert unlisted.weight == 0


def test_weights_not_refreshed_on_later_events(lp_dispatcher, store, reader):
    reader.set(LP_MANAGER, "isWhitelisted", PAIR_LISTED, value=True)
    reader.set(LP_MANAGER, "weights", PAIR_LISTED, value=300)
    lp_dispatcher.process_raw(ownership(1, ts=1_000))

    reader.set(LP_MANAGER, "weights", PAIR_LISTED, value=500)
    lp_dispatcher.process_raw(ownership(2, ts=2_000))

    assert store.load(WhitelistedPool, whitelisted_pool_id(LP_MANAGER, PAIR_LISTED)).weight == 300
    manager = store.load(LiquidityPoolManager, LP_MANAGER)
    assert (manager.created_at, manager.updated_at) == (1_000, 2_000)
    assert len(store.list(WhitelistedPool)) == 2


def test_reverted_whitelist_read_means_weight_zero(lp_dispatcher, store):
    lp_dispatcher.process_raw(ownership(1))
    assert {p.weight for p in store.list(WhitelistedPool)} == {0}
