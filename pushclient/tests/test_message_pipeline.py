import json
import logging
from uuid import uuid4

import pytest

from pushclient.models import NIL_TOKEN
from pushclient.network.pipeline import HandshakeError, MessagePipeline, decode_handshake


def _init(**overrides) -> dict:
    data = {
        "channel": "system",
        "cmd": "init",
        "uuid": str(uuid4()),
        "subscriber_id": str(uuid4()),
        "reconnect_token": "T1",
        "subscription": {"id": str(uuid4()), "name": "demo", "filters": [{"channel": "match"}]},
        "reconnected": False,
    }
    data.update(overrides)
    return data


def test_decode_event_tracks_latency():
    pipeline = MessagePipeline(clock=lambda: 1_700_000_000.5)
    frame = json.dumps(
        {
            "channel": "series",
            "uuid": str(uuid4()),
            "created_timestamp": 1_700_000_000_000,
            "payload": {"id": 42},
        }
    )

    event = pipeline.decode(frame.encode("utf-8"))

    assert event is not None
    assert event.channel == "series"
    assert event.payload == {"id": 42}
    assert pipeline.last_latency_ms == 500
    assert pipeline.decoded == 1


def test_null_payload_reads_as_empty():
    pipeline = MessagePipeline()
    event = pipeline.decode(
        json.dumps({"channel": "match", "uuid": str(uuid4()), "created_timestamp": 1, "payload": None})
    )

    assert event is not None
    assert event.payload == {}
    assert pipeline.dropped == 0


def test_event_without_timestamp_has_no_latency():
    pipeline = MessagePipeline(clock=lambda: 10.0)
    event = pipeline.decode(json.dumps({"channel": "match", "uuid": str(uuid4())}))

    assert event is not None
    assert event.created_timestamp == 0
    assert event.payload == {}
    assert pipeline.last_latency_ms is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"channel": "match", "uuid": ',
        "[1, 2, 3]",
        json.dumps({"channel": "match"}),
        json.dumps({"channel": "match", "uuid": "not-a-uuid"}),
        json.dumps({"channel": 5, "uuid": str(uuid4())}),
        json.dumps({"channel": "match", "uuid": str(uuid4()), "payload": [1]}),
        json.dumps({"channel": "match", "uuid": str(uuid4()), "created_timestamp": "soon"}),
        b"\xff\xfe",
    ],
)
def test_malformed_frames_are_dropped_and_logged(raw, caplog):
    pipeline = MessagePipeline()

    with caplog.at_level(logging.WARNING, logger="pushclient.network.pipeline"):
        assert pipeline.decode(raw) is None

    assert pipeline.dropped == 1
    assert pipeline.decoded == 0
    assert "Dropping malformed push frame" in caplog.text


def test_decode_handshake():
    data = _init()
    handshake = decode_handshake(json.dumps(data))

    assert str(handshake.subscriber_id) == data["subscriber_id"]
    assert handshake.token() == "T1"
    assert handshake.subscription.name == "demo"
    assert handshake.subscription.filters[0].channel == "match"
    assert handshake.reconnected is False


@pytest.mark.parametrize("token", [None, "", NIL_TOKEN])
def test_handshake_empty_tokens_read_as_absent(token):
    assert decode_handshake(json.dumps(_init(reconnect_token=token))).token() is None


@pytest.mark.parametrize(
    "data",
    [
        _init(channel="match"),
        _init(cmd="ping"),
        _init(subscriber_id="nope"),
        _init(reconnected="yes"),
        {key: value for key, value in _init().items() if key != "subscription"},
    ],
)
def test_invalid_handshake_is_rejected(data):
    with pytest.raises(HandshakeError):
        decode_handshake(json.dumps(data))


def test_non_object_handshake_is_rejected():
    with pytest.raises(HandshakeError):
        decode_handshake("[]")
    with pytest.raises(HandshakeError):
        decode_handshake("{")
