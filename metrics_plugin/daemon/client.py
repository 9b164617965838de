"""
Daemon client over MQTT using aiomqtt.

Requests are JSON documents published to ``{prefix}/rpc``:
    {"id": "...", "method": "plugin.register", "params": {...}, "reply_to": "..."}

The daemon answers on the reply topic with either
    {"id": "...", "result": ...}
or
    {"id": "...", "error": {"code": "not_found", "message": "..."}}

The daemon keeps a retained ``online``/``offline`` message on
``{prefix}/status``. No retained status at all means no daemon is
installed behind this broker.
"""

import asyncio
import json
import uuid
from pathlib import Path
from typing import Any

import aiomqtt

from ..config.schema import DaemonConfig
from ..errors import (
    DaemonError,
    DaemonNotFoundError,
    DaemonRequestError,
    DaemonTimeoutError,
    DaemonUnavailableError,
)
from ..logging import get_logger
from ..models.payload import Interval, ProtocolVersion
from ..utils.hostid import HostIdentity
from .base import DaemonClient


logger = get_logger("daemon.client")


class MQTTDaemonClient(DaemonClient):
    """
    Async request/response client for the daemon's plugin registry.

    One background task reads incoming messages and resolves pending
    requests; it lives from connect() to close().
    """

    def __init__(
        self,
        config: DaemonConfig,
        host_identity: HostIdentity | None = None,
    ):
        """
        Initialize the client. Does not touch the network.

        Args:
            config: Daemon connection configuration
            host_identity: Resolves ``{host_id}`` in the topic prefix
        """
        self.config = config
        self.host_identity = host_identity or HostIdentity()

        self._client_id = config.client_id or f"metrics_plugin_{uuid.uuid4().hex[:8]}"
        self._topic_prefix: str | None = None

        self._client: aiomqtt.Client | None = None
        self._connected = False
        self._listener_task: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}

        self._daemon_status: str | None = None
        self._status_received = asyncio.Event()

    @property
    def connected(self) -> bool:
        """Check if client is connected."""
        return self._connected

    @property
    def topic_prefix(self) -> str:
        """Resolved topic prefix (available after connect)."""
        if self._topic_prefix is None:
            raise DaemonError("Client is not connected")
        return self._topic_prefix

    @property
    def status_topic(self) -> str:
        return f"{self.topic_prefix}/status"

    @property
    def request_topic(self) -> str:
        return f"{self.topic_prefix}/rpc"

    @property
    def reply_topic(self) -> str:
        return f"{self.topic_prefix}/rpc/reply/{self._client_id}"

    @property
    def availability_topic(self) -> str:
        return f"{self.topic_prefix}/plugins/{self._client_id}/status"

    def _create_client(self) -> aiomqtt.Client:
        """Create a new aiomqtt client instance."""
        will = aiomqtt.Will(
            topic=self.availability_topic,
            payload="offline",
            qos=1,
            retain=True,
        )

        return aiomqtt.Client(
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            identifier=self._client_id,
            keepalive=self.config.keepalive,
            will=will,
        )

    async def connect(self) -> None:
        """
        Connect to the broker and check that a daemon is present.

        Raises:
            DaemonNotFoundError: No daemon status is retained on the broker
            DaemonUnavailableError: The daemon reports itself offline
            aiomqtt.MqttError: If the broker cannot be reached
        """
        if self._connected:
            return

        if self._client is not None:
            await self.close()

        self._topic_prefix = await self.host_identity.expand(self.config.topic_prefix)

        logger.debug(f"Connecting to MQTT broker {self.config.host}:{self.config.port}")
        logger.debug(f"Client ID: {self._client_id}")

        self._daemon_status = None
        self._status_received.clear()

        client = self._create_client()
        await client.__aenter__()
        self._client = client
        self._connected = True

        await self._client.subscribe(self.reply_topic, qos=1)
        await self._client.subscribe(self.status_topic, qos=1)
        self._listener_task = asyncio.create_task(self._listen())

        await self._client.publish(self.availability_topic, "online", qos=1, retain=True)
        logger.info(f"Connected to MQTT broker at {self.config.host}:{self.config.port}")

        try:
            await asyncio.wait_for(
                self._status_received.wait(),
                timeout=self.config.presence_timeout,
            )
        except asyncio.TimeoutError:
            await self.close()
            raise DaemonNotFoundError(
                f"No daemon status on {self.status_topic} after {self.config.presence_timeout:g}s"
            ) from None

        self._check_daemon_online()

    def _check_daemon_online(self) -> None:
        if self._daemon_status != "online":
            raise DaemonUnavailableError(f"Daemon status is '{self._daemon_status}'")

    async def close(self) -> None:
        """Disconnect from the broker and fail outstanding requests."""
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None

        self._fail_pending(DaemonError("Connection closed"))

        if self._client is not None:
            try:
                if self._connected:
                    await self._client.publish(self.availability_topic, "offline", qos=1, retain=True)
                await self._client.__aexit__(None, None, None)
            except aiomqtt.MqttError as e:
                logger.debug(f"Error while disconnecting: {e}")
            self._client = None

        if self._connected:
            self._connected = False
            logger.info("Disconnected from MQTT broker")

    async def _listen(self) -> None:
        """Background task routing status updates and replies."""
        if self._client is None:
            raise RuntimeError("Listener started without an MQTT client")
        try:
            async for message in self._client.messages:
                self._dispatch(str(message.topic), message.payload)
        except aiomqtt.MqttError as e:
            logger.error(f"Lost connection to MQTT broker: {e}")
            self._connected = False
            self._fail_pending(DaemonError(f"Connection lost: {e}"))

    def _dispatch(self, topic: str, payload: Any) -> None:
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode(errors="replace")
        else:
            payload = str(payload)

        if topic == self.status_topic:
            self._daemon_status = payload.strip().lower()
            self._status_received.set()
            logger.debug(f"Daemon status: {self._daemon_status}")
            return

        if topic != self.reply_topic:
            return

        try:
            reply = json.loads(payload)
            future = self._pending.get(reply["id"])
        except (ValueError, KeyError, TypeError):
            logger.warning(f"Ignoring malformed reply: {payload[:100]}")
            return

        if future is not None and not future.done():
            future.set_result(reply)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _request(self, method: str, params: dict[str, Any]) -> Any:
        """
        Send a request and wait for its reply.

        Raises:
            DaemonNotFoundError: The daemon answered "not_found"
            DaemonRequestError: The daemon answered with another error
            DaemonTimeoutError: No reply within the request timeout
            DaemonError: Not connected or connection lost
        """
        if not self._connected or self._client is None:
            raise DaemonError("Client is not connected")
        self._check_daemon_online()

        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        request = {
            "id": request_id,
            "method": method,
            "params": params,
            "reply_to": self.reply_topic,
        }

        try:
            logger.debug(f"Request {method} {params}")
            await self._client.publish(self.request_topic, json.dumps(request), qos=1)
            reply = await asyncio.wait_for(future, timeout=self.config.request_timeout)
        except asyncio.TimeoutError:
            raise DaemonTimeoutError(
                f"{method} got no reply within {self.config.request_timeout:g}s"
            ) from None
        except aiomqtt.MqttError as e:
            self._connected = False
            raise DaemonError(f"{method} failed: {e}") from e
        finally:
            self._pending.pop(request_id, None)

        error = reply.get("error")
        if error:
            code = str(error.get("code", "error"))
            message = str(error.get("message", ""))
            if code == "not_found":
                raise DaemonNotFoundError(f"{method}: {message or 'not found'}")
            raise DaemonRequestError(method, code, message)

        return reply.get("result")

    async def register(self, uid: str, interval: Interval, protocol: ProtocolVersion) -> float:
        result = await self._request(
            "plugin.register",
            {"uid": uid, "frequency": interval.value, "protocol": protocol.value},
        )
        try:
            return float(result)
        except (TypeError, ValueError):
            raise DaemonRequestError("plugin.register", "bad_result", repr(result)) from None

    async def get_path(self, uid: str) -> Path:
        result = await self._request("plugin.get_path", {"uid": uid})
        if not isinstance(result, str) or not result:
            raise DaemonRequestError("plugin.get_path", "bad_result", repr(result))
        return Path(result)

    async def deregister(self, uid: str) -> None:
        await self._request("plugin.deregister", {"uid": uid})
