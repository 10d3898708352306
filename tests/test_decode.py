"""Log decoding into raw event dicts and event model validation."""

from conftest import ALICE, STAKING_POOL, TOKEN_FACTORY, tx
from hexbytes import HexBytes
from web3 import Web3

from poolgraph.chain.abis import event_abis, event_signature
from poolgraph.chain.decode import LogDecoder, call_to_raw, topic_map
from poolgraph.models.events import ContractKind, Staked, TokenCreated, normalize_hex, parse_event


def _topic_address(address):
    return HexBytes("0x" + "00" * 12 + address[2:])


def _log(address, topics, data, block=7, log_index=3):
    return {
        "address": Web3.to_checksum_address(address),
        "topics": topics,
        "data": HexBytes(data),
        "blockNumber": block,
        "blockHash": HexBytes("0x" + "ab" * 32),
        "transactionHash": HexBytes(tx(block)),
        "transactionIndex": 0,
        "logIndex": log_index,
    }


def test_topic_map_covers_event_abis():
    topics = topic_map(ContractKind.STAKING)
    assert len(topics) == len(event_abis(ContractKind.STAKING))
    staked = normalize_hex(Web3.keccak(text="Staked(address,uint256)"))
    assert topics[staked]["name"] == "Staked"
    assert event_signature(topics[staked]) == "Staked(address,uint256)"


def test_decode_staked_log():
    codec = Web3().codec
    log = _log(
        STAKING_POOL,
        [Web3.keccak(text="Staked(address,uint256)"), _topic_address(ALICE)],
        codec.encode(["uint256"], [2**200]),
    )
    raw = LogDecoder(ContractKind.STAKING).decode(log, block_timestamp=1_234)

    assert raw["event_type"] == "Staked"
    assert raw["address"] == STAKING_POOL
    assert raw["user"] == ALICE
    assert raw["amount"] == 2**200
    assert (raw["block_number"], raw["log_index"], raw["block_timestamp"]) == (7, 3, 1_234)
    event = parse_event(raw)
    assert isinstance(event, Staked)
    assert event.record_id == f"{tx(7)}-3"


def test_decode_token_created_maps_param_names():
    codec = Web3().codec
    token = "0x" + "99" * 20
    abi = next(e for e in event_abis(ContractKind.STANDARD_TOKEN_FACTORY) if e["name"] == "TokenCreated")
    indexed = [i for i in abi["inputs"] if i["indexed"]]
    plain = [i for i in abi["inputs"] if not i["indexed"]]
    values = {
        "tokenAddress": token,
        "creator": ALICE,
        "name": "Kaly",
        "symbol": "KLY",
        "decimals": 9,
        "totalSupply": 10**30,
    }
    topics = [Web3.keccak(text=event_signature(abi))] + [
        _topic_address(values[i["name"]]) for i in indexed
    ]
    data = codec.encode([i["type"] for i in plain], [values[i["name"]] for i in plain])

    raw = LogDecoder(ContractKind.STANDARD_TOKEN_FACTORY).decode(_log(TOKEN_FACTORY, topics, data), 1)
    event = parse_event(raw)
    assert isinstance(event, TokenCreated)
    assert event.token_address == token
    assert event.creator == ALICE
    assert (event.symbol, event.decimals, event.total_supply) == ("KLY", 9, 10**30)


def test_unknown_topic_is_ignored():
    log = _log(STAKING_POOL, [HexBytes("0x" + "00" * 32)], b"")
    assert LogDecoder(ContractKind.STAKING).decode(log, 1) is None


def test_call_to_raw_has_no_log_index():
    raw = call_to_raw(
        ContractKind.LG_TOKEN_FACTORY,
        {"to": "0x" + "D2" * 20, "from": ALICE, "hash": HexBytes(tx(5)), "blockNumber": 5},
        block_timestamp=99,
    )
    event = parse_event(raw)
    assert event.log_index is None
    assert event.record_id == f"{tx(5)}-5"
    assert event.address == "0x" + "d2" * 20
