"""MQTT topics and publishing for the reading feed and alerts."""

import json
import logging
import random
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from campus_energy import config

log = logging.getLogger(__name__)


class PublishError(RuntimeError):
    pass


def reading_topic(building_id: str) -> str:
    return f"{config.TOPIC_PREFIX}/{building_id}/reading"


def readings_subscription() -> str:
    return f"{config.TOPIC_PREFIX}/+/reading"


def summary_topic() -> str:
    return f"{config.TOPIC_PREFIX}/summary"


def alerts_topic() -> str:
    return f"{config.TOPIC_PREFIX}/alerts"


def status_topic() -> str:
    return f"{config.TOPIC_PREFIX}/system/status"


class MqttPublisher:
    def __init__(self, client: mqtt.Client, qos: int = config.QOS) -> None:
        self._client = client
        self._qos = qos

    def publish(self, topic: str, payload: dict, retain: bool = False) -> None:
        result = self._client.publish(topic, json.dumps(payload), qos=self._qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"publish to {topic} failed (rc={result.rc})")


def create_client(
    name: str,
    on_connect: Optional[Callable] = None,
    on_message: Optional[Callable] = None,
) -> mqtt.Client:
    client = mqtt.Client(
        client_id=f"{name}_{random.randint(1000, 9999)}",
        protocol=mqtt.MQTTv311,
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
    )
    if config.USERNAME:
        client.username_pw_set(config.USERNAME, config.PASSWORD)
    if on_connect:
        client.on_connect = on_connect
    if on_message:
        client.on_message = on_message
    return client


def connect_with_retry(client: mqtt.Client, should_run: Callable[[], bool], delay: float = 10.0) -> bool:
    """Block until the broker accepts the connection or ``should_run`` turns False."""
    while should_run():
        try:
            client.connect(config.BROKER, config.PORT, keepalive=60)
            log.info("Connected to MQTT broker %s:%s", config.BROKER, config.PORT)
            return True
        except (ConnectionRefusedError, OSError) as exc:
            log.error("Cannot reach broker (%s). Retrying in %ss", exc, delay)
            time.sleep(delay)
    return False


def connect_publisher(
    client: mqtt.Client,
    should_run: Callable[[], bool],
    delay: float = 10.0,
) -> Optional[MqttPublisher]:
    """Connect with retry and start the network loop; None when shutdown came first."""
    if not connect_with_retry(client, should_run, delay):
        return None
    client.loop_start()
    return MqttPublisher(client)
