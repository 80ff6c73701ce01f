import asyncio
import json
from uuid import UUID, uuid4

import pytest

from pushclient import runtime
from pushclient.api import ApiRequestError, PushApiClient
from pushclient.config import ClientSettings
from pushclient.network import DisconnectKind, SessionState
from pushclient.network.transport.dummy import DummyTransport

SUB_ID = UUID("0d5b1f3a-7c2e-4e9b-8a41-6f2c3b1d9e07")


def _settings(**overrides) -> ClientSettings:
    values = {
        "client_secret": "s3cret",
        "transport": "dummy",
        "keepalive_interval_seconds": 0,
        "handshake_timeout_seconds": 0.05,
    }
    values.update(overrides)
    return ClientSettings(**values)


@pytest.fixture
def control_plane(monkeypatch):
    calls = {"registered": [], "deleted": []}

    def _register(self, subscription):
        calls["registered"].append(subscription)
        return SUB_ID, False

    def _delete(self, id_or_name):
        calls["deleted"].append(id_or_name)

    monkeypatch.setattr(PushApiClient, "fetch_config", lambda self: b'{"ok": true}')
    monkeypatch.setattr(PushApiClient, "list_subscriptions", lambda self: b"[]")
    monkeypatch.setattr(PushApiClient, "register_subscription", _register)
    monkeypatch.setattr(PushApiClient, "delete_subscription", _delete)
    return calls


@pytest.mark.asyncio
async def test_registers_and_deletes_own_subscription(control_plane):
    # The dummy transport never sends an init frame, so the session ends with a protocol error.
    exit_code = await runtime.run_forever(_settings(subscription_name="demo"))

    assert exit_code == 1
    assert control_plane["registered"][0].name == "demo"
    assert control_plane["deleted"] == [str(SUB_ID)]


@pytest.mark.asyncio
async def test_existing_subscription_id_is_not_deleted(control_plane):
    exit_code = await runtime.run_forever(_settings(subscription_id=str(SUB_ID)))

    assert exit_code == 1
    assert control_plane["registered"] == []
    assert control_plane["deleted"] == []


@pytest.mark.asyncio
async def test_control_plane_failure_exits_before_connecting(monkeypatch):
    def _fail(self):
        raise ApiRequestError("refused")

    monkeypatch.setattr(PushApiClient, "fetch_config", _fail)

    assert await runtime.run_forever(_settings()) == 1


class _OrderedTransport(DummyTransport):
    def __init__(self, order: list[str]) -> None:
        super().__init__()
        self._order = order

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._order.append("close")
        await super().close(code, reason)


def _init_frame() -> str:
    return json.dumps(
        {
            "channel": "system",
            "cmd": "init",
            "uuid": str(uuid4()),
            "subscriber_id": str(uuid4()),
            "reconnect_token": "T1",
            "subscription": {"id": str(SUB_ID), "filters": [{"channel": "match"}]},
            "reconnected": False,
        }
    )


@pytest.mark.asyncio
async def test_shutdown_signal_deletes_subscription_then_closes(control_plane, monkeypatch):
    order: list[str] = []
    stop_events: list[asyncio.Event] = []
    sessions = []
    transport = _OrderedTransport(order)
    transport.feed(_init_frame())

    def _delete(self, id_or_name):
        order.append("delete")
        control_plane["deleted"].append(id_or_name)

    real_start_session = runtime.start_session

    def _start_session(*args, **kwargs):
        kwargs["transport_factory"] = lambda settings: transport
        session = real_start_session(*args, **kwargs)
        sessions.append(session)
        return session

    monkeypatch.setattr(PushApiClient, "delete_subscription", _delete)
    monkeypatch.setattr(runtime, "_install_signal_handlers", stop_events.append)
    monkeypatch.setattr(runtime, "start_session", _start_session)

    task = asyncio.create_task(runtime.run_forever(_settings(subscription_name="demo", handshake_timeout_seconds=1)))
    loop = asyncio.get_running_loop()
    deadline = loop.time() + 2
    while not (sessions and sessions[0].state is SessionState.ACTIVE):
        assert loop.time() < deadline, "session never became active"
        await asyncio.sleep(0.01)

    stop_events[0].set()
    exit_code = await asyncio.wait_for(task, timeout=2)

    assert exit_code == 0
    assert order == ["delete", "close"]
    assert control_plane["deleted"] == [str(SUB_ID)]
    assert sessions[0].termination.kind is DisconnectKind.SHUTDOWN
    assert transport.closed_with == (1000, "")
