"""Farming pool handlers: state is re-read from the contract on every event."""

from conftest import ALICE, FARM, raw_event

from poolgraph.models.entities import FarmingPool, Participant, RewardEvent, StakeEvent, participant_id


def seed_farm(reader, supply=1_000, balance=400, earned=12):
    reader.set(FARM, "stakingToken", value="0x" + "5a" * 20)
    reader.set(FARM, "rewardsToken", value="0x" + "5b" * 20)
    reader.set(FARM, "totalSupply", value=supply)
    reader.set(FARM, "rewardRate", value=2)
    reader.set(FARM, "rewardsDuration", value=3_600)
    reader.set(FARM, "periodFinish", value=9_999)
    reader.set(FARM, "lastUpdateTime", value=9_000)
    reader.set(FARM, "rewardPerTokenStored", value=77)
    reader.set(FARM, "balanceOf", ALICE, value=balance)
    reader.set(FARM, "earned", ALICE, value=earned)
    reader.set(FARM, "userRewardPerTokenPaid", ALICE, value=70)


def test_stake_mirrors_contract_state(dispatcher, store, reader):
    seed_farm(reader)
    dispatcher.process_raw(raw_event("Staked", "farming", FARM, user=ALICE, amount=400))

    pool = store.load(FarmingPool, FARM)
    assert pool.staking_token == "0x" + "5a" * 20
    assert pool.rewards_token == "0x" + "5b" * 20
    assert pool.total_staked == 1_000
    assert pool.reward_per_token_stored == 77
    participant = store.load(Participant, participant_id(ALICE, FARM))
    assert participant.staked_amount == 400
    assert participant.rewards == 12
    assert participant.reward_per_token_paid == 70
    assert participant.domain.value == "farming"


def test_redelivered_event_is_idempotent(dispatcher, store, reader):
    seed_farm(reader)
    event = raw_event("Staked", "farming", FARM, user=ALICE, amount=400, block=50)

    dispatcher.process_raw(event)
    first_pool = store.load(FarmingPool, FARM)
    first_participant = store.load(Participant, participant_id(ALICE, FARM))
    dispatcher.process_raw(event)

    assert store.load(FarmingPool, FARM) == first_pool
    assert store.load(Participant, participant_id(ALICE, FARM)) == first_participant
    assert len(store.list(StakeEvent)) == 1


def test_claim_refreshes_then_zeroes_rewards(dispatcher, store, reader):
    seed_farm(reader, earned=30)
    dispatcher.process_raw(raw_event("RewardPaid", "farming", FARM, user=ALICE, reward=30))

    participant = store.load(Participant, participant_id(ALICE, FARM))
    assert participant.rewards == 0
    assert participant.staked_amount == 400
    assert [r.amount for r in store.list(RewardEvent)] == [30]


def test_withdraw_takes_balance_from_contract(dispatcher, store, reader):
    seed_farm(reader, balance=400)
    dispatcher.process_raw(raw_event("Staked", "farming", FARM, user=ALICE, amount=400, block=1))
    reader.set(FARM, "balanceOf", ALICE, value=150)
    reader.set(FARM, "totalSupply", value=750)
    dispatcher.process_raw(raw_event("Withdrawn", "farming", FARM, user=ALICE, amount=250, block=2))

    assert store.load(Participant, participant_id(ALICE, FARM)).staked_amount == 150
    assert store.load(FarmingPool, FARM).total_staked == 750


def test_reverted_token_reads_leave_empty_tokens(dispatcher, store):
    dispatcher.process_raw(raw_event("RewardAdded", "farming", FARM, reward=5))

    pool = store.load(FarmingPool, FARM)
    assert pool.staking_token == ""
    assert pool.rewards_token == ""
    assert pool.total_staked == 0


def test_duration_update_sets_event_value_before_refresh(dispatcher, store, reader):
    dispatcher.process_raw(
        raw_event("RewardsDurationUpdated", "farming", FARM, new_duration=1_234)
    )
    # rewardsDuration reverts, so the event value stays
    assert store.load(FarmingPool, FARM).rewards_duration == 1_234


def test_farming_pause_is_unrouted(dispatcher, store):
    assert dispatcher.process_raw(raw_event("Paused", "farming", FARM)) is False
    assert dispatcher.unrouted == 1
    assert store.load(FarmingPool, FARM) is None
