import http
import json

import pytest
from websockets.asyncio.server import serve

from pushclient.config import ClientSettings
from pushclient.network.disconnect import DisconnectKind, classify_error
from pushclient.network.transport.errors import TransportClosed, TransportSetupError
from pushclient.network.transport.websocket import WebSocketTransport, _redact


def _port(server) -> int:
    return server.sockets[0].getsockname()[1]


@pytest.mark.asyncio
async def test_receive_then_application_close_code():
    seen_headers: dict[str, str] = {}

    async def handler(connection):
        seen_headers["secret"] = connection.request.headers.get("Abios-Secret")
        await connection.send(json.dumps({"channel": "system", "cmd": "init"}))
        await connection.close(4007, "unknown subscription")

    async with serve(handler, "127.0.0.1", 0) as server:
        transport = WebSocketTransport(ClientSettings(connect_timeout_seconds=2))
        await transport.connect(f"ws://127.0.0.1:{_port(server)}/v0?subscription_id=x", {"Abios-Secret": "s3cret"})

        first = await transport.receive()
        assert json.loads(first)["cmd"] == "init"

        with pytest.raises(TransportClosed) as exc_info:
            await transport.receive()
        await transport.close()

    assert exc_info.value.code == 4007
    assert exc_info.value.reason == "unknown subscription"
    assert classify_error(exc_info.value).kind is DisconnectKind.UNKNOWN_SUBSCRIPTION
    assert seen_headers["secret"] == "s3cret"


@pytest.mark.asyncio
async def test_rejected_upgrade_carries_status():
    def process_request(connection, request):
        return connection.respond(http.HTTPStatus.TOO_MANY_REQUESTS, "slow down\n")

    async def handler(connection):
        await connection.wait_closed()

    async with serve(handler, "127.0.0.1", 0, process_request=process_request) as server:
        transport = WebSocketTransport(ClientSettings(connect_timeout_seconds=2))
        with pytest.raises(TransportSetupError) as exc_info:
            await transport.connect(f"ws://127.0.0.1:{_port(server)}/v0", {})

    assert exc_info.value.status == 429
    assert classify_error(exc_info.value).kind is DisconnectKind.RATE_LIMITED


@pytest.mark.asyncio
async def test_ping_reaches_server():
    async def handler(connection):
        await connection.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        transport = WebSocketTransport(ClientSettings(connect_timeout_seconds=2))
        await transport.connect(f"ws://127.0.0.1:{_port(server)}/v0", {})
        await transport.ping(timeout=1)
        await transport.close()


def test_redact_hides_access_token():
    url = "wss://push.test/v0?subscription_id=x&access_token=secret&reconnect_token=T1"
    assert _redact(url) == "wss://push.test/v0?subscription_id=x&access_token=***&reconnect_token=T1"
    assert _redact("wss://push.test/v0") == "wss://push.test/v0"
