"""MQTT bus client — wraps paho-mqtt behind the ``MessageBusClient`` interface.

Bridge boundary
---------------
The core only ever calls ``publish(topic, body)``.  This module owns the
paho client: it connects once, runs paho's network loop on a background
thread, and disconnects on ``close()``.  Reconnection is left to paho's
own loop; this adapter adds no backoff or retry of its own.

QoS defaults to 0 (at-most-once): the message is handed to the network
loop and nothing waits for an acknowledgement.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

import paho.mqtt.client as mqtt

from recordbus.config import BridgeConfig

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when the broker client rejects a publish."""


def generate_client_id(prefix: str) -> str:
    """Return *prefix* followed by random hex, unique per process."""
    return f"{prefix}{secrets.token_hex(6)}"


class MqttBusClient:
    """Process-wide MQTT publisher.

    Parameters
    ----------
    host, port:
        Broker address.
    client_id:
        MQTT client identifier.  Generated from ``directus_client_`` if
        omitted.
    qos:
        Publish QoS level (0, 1 or 2).
    keepalive:
        Keepalive interval in seconds.
    tls:
        Enable TLS with the system CA bundle.
    """

    def __init__(
        self,
        host: str,
        port: int = 1883,
        *,
        client_id: str | None = None,
        qos: int = 0,
        keepalive: int = 60,
        tls: bool = False,
    ) -> None:
        self._host = host
        self._port = port
        self._qos = qos
        self._keepalive = keepalive
        self._client_id = client_id or generate_client_id("directus_client_")
        self._connected = False

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        if tls:
            self._client.tls_set()
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

    @classmethod
    def from_config(cls, config: BridgeConfig) -> MqttBusClient:
        return cls(
            config.broker_host,
            config.broker_port,
            client_id=generate_client_id(config.client_id_prefix),
            qos=config.mqtt_qos,
            keepalive=config.mqtt_keepalive,
            tls=config.broker_tls,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open the broker connection and start the network loop."""
        try:
            self._client.connect(self._host, self._port, keepalive=self._keepalive)
        except (OSError, ValueError) as exc:
            raise TransportError(
                f"Cannot connect to MQTT broker {self._host}:{self._port}: {exc}"
            ) from exc
        self._client.loop_start()
        logger.info(
            "MQTT client %s connecting to %s:%d",
            self._client_id,
            self._host,
            self._port,
        )

    def close(self) -> None:
        """Disconnect and stop the network loop."""
        try:
            self._client.disconnect()
        finally:
            self._client.loop_stop()
            self._connected = False
        logger.info("MQTT client %s closed.", self._client_id)

    def __enter__(self) -> MqttBusClient:
        self.connect()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, topic: str, body: str) -> None:
        """Hand *body* to the network loop; raise on immediate rejection."""
        info = self._client.publish(topic, body, qos=self._qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"publish to {topic} rejected: {mqtt.error_string(info.rc)}"
            )

    # ------------------------------------------------------------------
    # paho callbacks
    # ------------------------------------------------------------------

    def _on_connect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any
    ) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connect refused: %s", reason_code)
            return
        self._connected = True
        logger.info("Connected to MQTT broker %s:%d", self._host, self._port)

    def _on_disconnect(
        self,
        client: Any,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        self._connected = False
        logger.warning("Disconnected from MQTT broker: %s", reason_code)

    def __repr__(self) -> str:
        return (
            f"MqttBusClient(host={self._host!r}, port={self._port}, "
            f"client_id={self._client_id!r}, qos={self._qos})"
        )
