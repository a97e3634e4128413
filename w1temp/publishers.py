"""
Adafruit IO publishers.
MQTT sends a whole batch as one group update; HTTP posts one value per feed.
"""
import json
from datetime import datetime, timezone
from urllib.parse import quote

import requests
import paho.mqtt.client as mqtt

from w1temp.config import (
    logger,
    MQTT_HOST,
    MQTT_PORT,
    MQTT_CLIENT_ID,
    MQTT_KEEPALIVE,
    HTTP_TIMEOUT,
)
from w1temp.errors import PublishError


def build_feed_payload(batch):
    return {"feeds": dict(batch)}


class MQTTPublisher:
    """
    Publishes batches to the Adafruit IO group topic over TLS.
    Errors and throttle notices from the broker are logged, not raised.
    """

    def __init__(self, username, key, group, client=None, host=MQTT_HOST, port=MQTT_PORT):
        self.username = username
        self.topic = f"{username}/groups/{group}"
        self.host = host
        self.port = port
        self.client = client if client is not None else self._make_client(username, key)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message

    @staticmethod
    def _make_client(username, key):
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=MQTT_CLIENT_ID)
        client.username_pw_set(username, key)
        client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=60)
        return client

    @property
    def notice_topics(self):
        return [f"{self.username}/errors", f"{self.username}/throttle"]

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"MQTT connection to {self.host} refused: {reason_code}")
            return
        logger.info(f"Connected to MQTT broker {self.host}:{self.port}")
        for topic in self.notice_topics:
            client.subscribe(topic)

    def _on_message(self, client, userdata, msg):
        payload = msg.payload.decode("utf-8", errors="replace")
        if msg.topic.endswith("/throttle"):
            logger.warning(f"Adafruit IO throttled: {payload}")
        else:
            logger.warning(f"Adafruit IO error: {payload}")

    def connect(self):
        try:
            self.client.connect(self.host, self.port, keepalive=MQTT_KEEPALIVE)
        except OSError as e:
            raise PublishError(f"Cannot connect to MQTT broker {self.host}:{self.port}: {e}") from e
        self.client.loop_start()

    def publish(self, batch):
        message = json.dumps(build_feed_payload(batch))
        logger.info(f"Publishing to {self.topic}: {message}")

        # paho queues QoS 1 messages while offline; drop the batch instead
        if not self.client.is_connected():
            raise PublishError(f"MQTT client not connected, batch for {self.topic} not sent")

        info = self.client.publish(self.topic, message, qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"MQTT publish to {self.topic} failed: {mqtt.error_string(info.rc)}")

    def close(self):
        self.client.loop_stop()
        self.client.disconnect()

    def __repr__(self):
        return f"MQTTPublisher({self.topic!r})"


class HTTPPublisher:
    """
    Posts each value in a batch to its own feed.
    url_template holds a single %s that is replaced by the feed key.
    """

    def __init__(self, url_template, key, session=None):
        self.url_template = url_template
        self.key = key
        self.session = session if session is not None else requests.Session()

    def feed_url(self, feed_key):
        return self.url_template % quote(feed_key, safe="")

    def connect(self):
        pass

    def post_value(self, feed_key, value):
        url = self.feed_url(feed_key)
        data = {
            "value": f"{value:f}",
            "created_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        headers = {"X-AIO-Key": self.key}

        try:
            response = self.session.post(url, data=data, headers=headers, timeout=HTTP_TIMEOUT)
        except requests.exceptions.Timeout as e:
            raise PublishError(f"Request timeout posting to {url}") from e
        except requests.exceptions.RequestException as e:
            raise PublishError(f"Failed to post to {url}: {e}") from e

        logger.info(f"{feed_key}: {response.status_code} {response.text}")
        if not 200 <= response.status_code < 300:
            raise PublishError(f"Adafruit IO returned status {response.status_code} for {feed_key}: {response.text}")

    def publish(self, batch):
        for feed_key, value in batch.items():
            self.post_value(feed_key, value)

    def close(self):
        self.session.close()

    def __repr__(self):
        return f"HTTPPublisher({self.url_template!r})"


def make_publisher(settings):
    if settings.publish_mode == "http":
        return HTTPPublisher(settings.url, settings.key)
    return MQTTPublisher(settings.username, settings.key, settings.group)
