"""
Tests for the MQTT daemon client, using an in-memory broker double.
"""

import asyncio
import json
from pathlib import Path

import pytest

from metrics_plugin.config.schema import DaemonConfig
from metrics_plugin.daemon.client import MQTTDaemonClient
from metrics_plugin.errors import (
    DaemonError,
    DaemonNotFoundError,
    DaemonRequestError,
    DaemonTimeoutError,
    DaemonUnavailableError,
)
from metrics_plugin.models.payload import Interval, ProtocolVersion
from metrics_plugin.utils.hostid import HostIdentity


class FakeBroker:
    """
    Stands in for aiomqtt.Client.

    Requests are answered by a handler; retained messages are delivered
    on subscribe, the way a broker replays them.
    """

    def __init__(self, owner: MQTTDaemonClient, handler=None, retained=None):
        self.owner = owner
        self.handler = handler or (lambda request: {"result": None})
        self.retained = dict(retained or {})
        self.published: list[tuple[str, str]] = []
        self.subscriptions: list[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, *exc):
        self.exited = True

    async def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append(topic)
        if topic in self.retained:
            asyncio.get_running_loop().call_soon(
                self.owner._dispatch, topic, self.retained[topic].encode()
            )

    async def publish(self, topic: str, payload=None, qos: int = 0, retain: bool = False) -> None:
        self.published.append((topic, payload))
        if topic != self.owner.request_topic:
            return
        request = json.loads(payload)
        reply = self.handler(request)
        if reply is not None:
            asyncio.get_running_loop().call_soon(
                self.owner._dispatch,
                request["reply_to"],
                json.dumps({"id": request["id"], **reply}).encode(),
            )

    @property
    def messages(self):
        async def forever():
            await asyncio.Event().wait()
            yield None

        return forever()


def make_client(handler=None, **config) -> tuple[MQTTDaemonClient, FakeBroker]:
    """A client already connected to a broker with an online daemon."""
    config.setdefault("request_timeout", 0.1)
    client = MQTTDaemonClient(DaemonConfig(**config), host_identity=HostIdentity("unused"))
    broker = FakeBroker(client, handler)
    client._topic_prefix = "metricsd"
    client._client = broker
    client._connected = True
    client._daemon_status = "online"
    return client, broker


def test_register_returns_next_reading() -> None:
    requests = []

    def handler(request):
        requests.append(request)
        return {"result": 4.25}

    client, _broker = make_client(handler)
    next_reading = asyncio.run(client.register("cpu", Interval.ONE_MINUTE, ProtocolVersion.V1))

    assert next_reading == 4.25
    assert requests[0]["method"] == "plugin.register"
    assert requests[0]["params"] == {"uid": "cpu", "frequency": "one_minute", "protocol": "v1"}
    assert requests[0]["reply_to"] == client.reply_topic


def test_get_path_and_deregister() -> None:
    methods = []

    def handler(request):
        methods.append(request["method"])
        if request["method"] == "plugin.get_path":
            return {"result": "/dev/shm/metrics/cpu"}
        return {"result": None}

    client, _broker = make_client(handler)

    async def scenario():
        path = await client.get_path("cpu")
        await client.deregister("cpu")
        return path

    assert asyncio.run(scenario()) == Path("/dev/shm/metrics/cpu")
    assert methods == ["plugin.get_path", "plugin.deregister"]


def test_not_found_error_reply() -> None:
    client, _broker = make_client(lambda r: {"error": {"code": "not_found", "message": "no registry"}})

    with pytest.raises(DaemonNotFoundError, match="no registry"):
        asyncio.run(client.register("cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2))


def test_other_error_reply() -> None:
    client, _broker = make_client(lambda r: {"error": {"code": "busy"}})

    with pytest.raises(DaemonRequestError) as exc_info:
        asyncio.run(client.deregister("cpu"))

    assert exc_info.value.code == "busy"
    assert exc_info.value.method == "plugin.deregister"


def test_request_timeout() -> None:
    client, _broker = make_client(lambda r: None, request_timeout=0.05)

    with pytest.raises(DaemonTimeoutError):
        asyncio.run(client.get_path("cpu"))

    assert client._pending == {}


def test_bad_results() -> None:
    client, _broker = make_client(lambda r: {"result": "soon"})
    with pytest.raises(DaemonRequestError):
        asyncio.run(client.register("cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2))

    client, _broker = make_client(lambda r: {"result": ""})
    with pytest.raises(DaemonRequestError):
        asyncio.run(client.get_path("cpu"))


def test_request_while_daemon_offline() -> None:
    client, broker = make_client()
    client._dispatch(client.status_topic, b"offline")

    with pytest.raises(DaemonUnavailableError):
        asyncio.run(client.deregister("cpu"))

    assert broker.published == []


def test_request_when_not_connected() -> None:
    client = MQTTDaemonClient(DaemonConfig())

    with pytest.raises(DaemonError, match="not connected"):
        asyncio.run(client.deregister("cpu"))


def test_malformed_reply_is_ignored() -> None:
    client, _broker = make_client()
    client._dispatch(client.reply_topic, b"{not json")
    client._dispatch(client.reply_topic, b'{"result": 1}')
    client._dispatch("metricsd/elsewhere", b"whatever")


def connect_with(retained: dict[str, str], monkeypatch: pytest.MonkeyPatch, **config):
    client = MQTTDaemonClient(DaemonConfig(**config), host_identity=HostIdentity("unused"))
    brokers = []

    def create():
        broker = FakeBroker(client, retained=retained)
        brokers.append(broker)
        return broker

    monkeypatch.setattr(client, "_create_client", create)
    return client, brokers


def test_connect_sees_online_daemon(monkeypatch: pytest.MonkeyPatch) -> None:
    client, brokers = connect_with({"metricsd/status": "online"}, monkeypatch)

    async def scenario():
        await client.connect()
        await client.connect()
        connected = client.connected
        await client.close()
        return connected

    assert asyncio.run(scenario()) is True
    assert len(brokers) == 1
    broker = brokers[0]
    assert broker.subscriptions == [client.reply_topic, client.status_topic]
    assert (client.availability_topic, "online") in broker.published
    assert (client.availability_topic, "offline") in broker.published
    assert broker.exited
    assert not client.connected


def test_connect_without_daemon(monkeypatch: pytest.MonkeyPatch) -> None:
    client, brokers = connect_with({}, monkeypatch, presence_timeout=0.05)

    with pytest.raises(DaemonNotFoundError):
        asyncio.run(client.connect())

    assert brokers[0].exited
    assert not client.connected


def test_connect_with_offline_daemon(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _brokers = connect_with({"metricsd/status": "offline"}, monkeypatch)

    async def scenario():
        try:
            await client.connect()
        finally:
            await client.close()

    with pytest.raises(DaemonUnavailableError):
        asyncio.run(scenario())


def test_topic_prefix_uses_host_id(monkeypatch: pytest.MonkeyPatch, script) -> None:
    client, _brokers = connect_with(
        {"metricsd/7/status": "online"}, monkeypatch, topic_prefix="metricsd/{host_id}"
    )
    client.host_identity = HostIdentity(script("print(7)"))

    async def scenario():
        await client.connect()
        prefix = client.topic_prefix
        await client.close()
        return prefix

    assert asyncio.run(scenario()) == "metricsd/7"
