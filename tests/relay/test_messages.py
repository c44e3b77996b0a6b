"""Tests for relay wire messages."""

from __future__ import annotations

import json

import pytest
from fakes import ALICE, BOB, make_event

from wotgraph.relay.messages import (
    Kind,
    MessageType,
    RelayFilter,
    RelayQuery,
    encode_close,
    encode_request,
    parse_event,
    parse_message,
)


class TestEncoding:
    def test_filter_to_dict_omits_empty(self):
        f = RelayFilter(kinds=(3,), authors=(ALICE,), limit=1)
        assert f.to_dict() == {"kinds": [3], "authors": [ALICE], "limit": 1}

    def test_filter_all_keys(self):
        f = RelayFilter(kinds=(1,), ids=("x",), p_tags=(BOB,), until=10, since=5)
        assert f.to_dict() == {"kinds": [1], "ids": ["x"], "#p": [BOB], "until": 10, "since": 5}

    def test_request(self):
        query = RelayQuery.for_authors(Kind.FOLLOWS, [ALICE], limit=1)
        assert json.loads(encode_request("wot-1", query)) == [
            "REQ",
            "wot-1",
            {"kinds": [3], "authors": [ALICE], "limit": 1},
        ]

    def test_close(self):
        assert json.loads(encode_close("wot-1")) == ["CLOSE", "wot-1"]

    def test_authors_split_into_batches(self):
        authors = [f"{i:064x}" for i in range(250)]
        query = RelayQuery.for_authors(Kind.PROFILE, authors, batch_size=100)
        assert [len(f.authors) for f in query.filters] == [100, 100, 50]
        assert query.kinds == frozenset({0})

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            RelayQuery.for_authors(Kind.PROFILE, [ALICE], batch_size=0)


class TestParseEvent:
    def test_valid(self):
        event = parse_event(make_event(ALICE, 3, tags=[["p", BOB], ["t", "x", "y"]]))
        assert event.pubkey == ALICE
        assert event.kind == 3
        assert event.tag_values("p") == [BOB]

    @pytest.mark.parametrize(
        "mutation",
        [
            {"id": None},
            {"id": ""},
            {"pubkey": "abc"},
            {"kind": "3"},
            {"kind": True},
            {"created_at": "yesterday"},
            {"content": 5},
            {"tags": "p"},
        ],
    )
    def test_malformed_dropped(self, mutation):
        raw = make_event(ALICE, 1)
        raw.update(mutation)
        assert parse_event(raw) is None

    def test_bad_tags_skipped_individually(self):
        event = parse_event(make_event(ALICE, 3, tags=[["p", BOB], ["p", 5], "junk"]))
        assert event.tags == (("p", BOB),)

    def test_not_a_dict(self):
        assert parse_event(["EVENT"]) is None


class TestParseMessage:
    def test_event(self):
        raw = make_event(ALICE, 0, content="{}")
        msg = parse_message(json.dumps(["EVENT", "s1", raw]))
        assert msg.type == MessageType.EVENT
        assert msg.subscription_id == "s1"
        assert msg.event.id == raw["id"]

    def test_eose_closed_notice(self):
        assert parse_message('["EOSE", "s1"]').type == MessageType.EOSE
        closed = parse_message('["CLOSED", "s1", "rate-limited"]')
        assert (closed.type, closed.text) == (MessageType.CLOSED, "rate-limited")
        notice = parse_message('["NOTICE", "hello"]')
        assert (notice.type, notice.text, notice.subscription_id) == (MessageType.NOTICE, "hello", None)

    @pytest.mark.parametrize(
        "frame",
        ["not json", "{}", "[]", "[1]", '["AUTH", "x"]', '["EVENT", "s1"]', '["EVENT", "s1", {"id": 1}]', '["EOSE"]', '["REQ", "s1"]'],
    )
    def test_unparseable(self, frame):
        assert parse_message(frame) is None

    def test_bytes(self):
        assert parse_message(b'["EOSE", "s1"]').type == MessageType.EOSE
