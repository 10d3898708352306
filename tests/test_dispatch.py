"""Dispatcher policies: malformed payloads, unrouted events, error propagation."""

import pytest
from conftest import ALICE, FARM, STAKING_POOL, raw_event
from structlog.testing import capture_logs

from poolgraph.errors import MalformedEventError
from poolgraph.models.entities import Participant, StakingPool
from poolgraph.sync.dispatch import Dispatcher, default_routes


def test_malformed_event_skipped_by_default(dispatcher, store):
    bad = raw_event("Staked", "staking", STAKING_POOL, user=ALICE)  # no amount
    assert dispatcher.process_raw(bad) is False
    assert dispatcher.malformed == 1
    assert store.count() == 0


def test_negative_amount_is_malformed(dispatcher, store):
    bad = raw_event("Staked", "staking", STAKING_POOL, user=ALICE, amount=-5)
    assert dispatcher.process_raw(bad) is False
    assert dispatcher.malformed == 1
    assert store.load(StakingPool, STAKING_POOL) is None


def test_unknown_event_type_is_malformed(dispatcher):
    assert dispatcher.process_raw(raw_event("Swap", "staking", STAKING_POOL)) is False
    assert dispatcher.malformed == 1


def test_malformed_event_raises_under_fail_policy(ctx):
    dispatcher = Dispatcher(ctx, on_malformed="fail")
    bad = raw_event("Withdrawn", "staking", STAKING_POOL, user=ALICE, amount="lots")
    with pytest.raises(MalformedEventError) as exc:
        dispatcher.process_raw(bad)
    assert exc.value.raw is bad
    assert "Withdrawn" in str(exc.value)


def test_invalid_policy_rejected(ctx):
    with pytest.raises(ValueError):
        Dispatcher(ctx, on_malformed="ignore")


def test_unrouted_pair_is_skipped(dispatcher, store):
    event = raw_event("TokenCreated", "staking", STAKING_POOL, token_address=ALICE, creator=ALICE)
    assert dispatcher.process_raw(event) is False
    assert dispatcher.stats() == {"processed": 0, "malformed": 0, "unrouted": 1}
    assert store.count() == 0


def test_process_many_counts_handled(dispatcher):
    raws = [
        raw_event("Staked", "staking", STAKING_POOL, user=ALICE, amount=1, block=1),
        raw_event("Staked", "staking", STAKING_POOL, user=ALICE, block=2),
        raw_event("Staked", "staking", STAKING_POOL, user=ALICE, amount=2, block=3),
    ]
    assert dispatcher.process_many(raws) == 2
    assert dispatcher.stats() == {"processed": 2, "malformed": 1, "unrouted": 0}


def test_store_errors_propagate(ctx):
    class BrokenSave(type(ctx.store)):
        def save(self, entity):
            if isinstance(entity, Participant):
                raise OSError("disk full")
            super().save(entity)

    ctx.store = BrokenSave()
    ctx.rollups.store = ctx.store
    with pytest.raises(OSError):
        Dispatcher(ctx).process_raw(raw_event("Staked", "staking", STAKING_POOL, user=ALICE, amount=1))


def test_every_route_has_a_matching_event_kind():
    routes = default_routes()
    assert ("staking", "Paused") in {(k.value, t) for k, t in routes}
    assert ("farming", "Paused") not in {(k.value, t) for k, t in routes}
    assert len(routes) == 23


def test_skipped_events_are_logged_with_their_type(dispatcher):
    with capture_logs() as logs:
        assert dispatcher.process_raw(raw_event("Staked", "staking", STAKING_POOL, user=ALICE)) is False
        assert dispatcher.process_raw(raw_event("Paused", "farming", FARM, block=2)) is False

    skipped = [(entry["event"], entry["event_type"]) for entry in logs]
    assert skipped == [("malformed_event", "Staked"), ("unrouted_event", "Paused")]
