from __future__ import annotations

from hexbytes import HexBytes

from arisan_client.decoder import EventDecoder
from tests.fakes import CALLER, FACTORY, GROUP, GROUP_B, OTHER, TOKEN, created_log, joined_log, transfer_log, winner_log


def test_malformed_log_is_dropped_without_affecting_the_batch(decoder: EventDecoder):
    good = joined_log(GROUP, CALLER, 50)
    malformed = dict(joined_log(GROUP, OTHER, 50), data="0x12")

    decoded = decoder.decode_logs([good, malformed])

    assert len(decoded) == 1
    assert decoded[0].name == "Joined"
    assert decoded[0].args["participant"].lower() == CALLER
    assert decoded[0].args["amount"] == 50


def test_unknown_and_unreadable_logs_are_skipped(decoder: EventDecoder):
    unknown = {"address": GROUP, "topics": ["0x" + "99" * 32], "data": "0x"}
    unreadable = {"address": GROUP, "topics": ["not-hex"], "data": "0x"}

    assert decoder.decode_logs([unknown, unreadable]) == []


def test_decodes_every_known_event(decoder: EventDecoder):
    logs = [
        created_log(FACTORY, GROUP_B, CALLER, "UMKM Jakarta", 50 * 10**18),
        joined_log(GROUP, CALLER, 7),
        winner_log(GROUP, OTHER, 100, 1700000000),
        transfer_log(TOKEN, GROUP, OTHER, 100),
    ]

    names = [e.name for e in decoder.decode_logs(logs)]

    assert names == ["ArisanCreated", "Joined", "WinnerPicked", "Transfer"]


def test_accepts_bytes_fields(decoder: EventDecoder):
    log = winner_log(GROUP, OTHER, 100, 1700000000, block=42, log_index=3)
    log["topics"] = [HexBytes(t) for t in log["topics"]]
    log["data"] = bytes(HexBytes(log["data"]))
    log["transactionHash"] = HexBytes(log["transactionHash"])

    event = decoder.decode_log(log)

    assert event is not None
    assert event.args["timestamp"] == 1700000000
    assert event.log["blockNumber"] == 42
    assert event.log["logIndex"] == 3


def test_accepts_hex_string_block_numbers(decoder: EventDecoder):
    log = joined_log(GROUP, CALLER, 5)
    log["blockNumber"] = "0x2a"

    event = decoder.decode_log(log)

    assert event.log["blockNumber"] == 42


def test_missing_log_metadata_is_filled_in(decoder: EventDecoder):
    log = joined_log(GROUP, CALLER, 5)
    for key in ("blockHash", "transactionIndex", "logIndex"):
        del log[key]

    assert decoder.decode_log(log).name == "Joined"


def test_find_returns_first_match(decoder: EventDecoder):
    logs = [
        transfer_log(TOKEN, CALLER, GROUP, 50),
        created_log(FACTORY, GROUP_B, CALLER, "Arisan", 1),
    ]

    created = decoder.find(logs, "ArisanCreated")

    assert created is not None
    assert created.args["arisanAddress"].lower() == GROUP_B
    assert created.args["creator"].lower() == CALLER
    assert decoder.find(logs, "WinnerPicked") is None


def test_topic_is_0x_hex(decoder: EventDecoder):
    topic = decoder.topic("Joined")

    assert topic.startswith("0x")
    assert len(topic) == 66
    assert joined_log(GROUP, CALLER, 1)["topics"][0] == topic
