"""
Publishing MQTT client thread using paho-mqtt

https://github.com/eclipse/paho.mqtt.python/blob/master/src/paho/mqtt/client.py
http://www.steves-internet-guide.com/mqttv5/

The client only publishes: parsed telegram rows and a retained status topic.
The status is re-published after every reconnect and replaced by the last
will ("offline") when the connection drops without a clean disconnect.

      This program is free software: you can redistribute it and/or modify
      it under the terms of the GNU General Public License as published by
      the Free Software Foundation, either version 3 of the License, or
      (at your option) any later version.

      This program is distributed in the hope that it will be useful,
      but WITHOUT ANY WARRANTY; without even the implied warranty of
      MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
      GNU General Public License for more details.

      You should have received a copy of the GNU General Public License
      along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""

import random
import ssl
import string
import threading
import time

import paho.mqtt as paho_mqtt
import paho.mqtt.client as mqtt_client

from p1telegram.log import logger, stats_logger


class MQTTClient(threading.Thread):
    def __init__(
        self,
        mqtt_broker,
        mqtt_stopper,
        mqtt_port=1883,
        mqtt_client_id=None,
        mqtt_qos=1,
        username="",
        password="",
        transport="tcp",
        use_tls=False,
        ws_path=None,
    ):
        """
        Args:
          :param str mqtt_broker: ip or dns
          :param threading.Event() mqtt_stopper: stops the mqtt thread; set as last
            in the main loop so queued messages are flushed
          :param int mqtt_port:
          :param str mqtt_client_id: random when None
          :param int mqtt_qos: MQTT QoS 0,1,2 for publish
          :param str username:
          :param str password:
          :param str transport: "tcp" or "websockets"
          :param bool use_tls: Enable TLS/SSL for the connection
          :param str ws_path: WebSocket path (only used when transport="websockets")
        """
        logger.info("mqtt_client_init", paho_version=paho_mqtt.__version__)
        super().__init__(name="p1-mqtt")

        self.__mqtt_broker = mqtt_broker
        self.__mqtt_stopper = mqtt_stopper
        self.__mqtt_port = mqtt_port
        self.__qos = mqtt_qos

        if mqtt_client_id is None:
            mqtt_client_id = "p1_" + "".join(
                random.choice(string.ascii_lowercase) for _i in range(10)
            )
        self.__mqtt_client_id = mqtt_client_id

        self.__mqtt = mqtt_client.Client(
            callback_api_version=mqtt_client.CallbackAPIVersion.VERSION2,
            client_id=self.__mqtt_client_id,
            protocol=mqtt_client.MQTTv5,
            transport=transport,
        )

        if use_tls:
            self.__mqtt.tls_set(cert_reqs=ssl.CERT_REQUIRED)
            logger.info("mqtt_tls_enabled")

        if transport == "websockets" and ws_path:
            self.__mqtt.ws_set_options(path=ws_path)
            logger.info("mqtt_websocket_configured", path=ws_path)

        logger.info(
            "mqtt_client_configured",
            client_id=self.__mqtt_client_id,
            transport=transport,
            tls=use_tls,
        )

        self.__mqtt.username_pw_set(username, password)
        self.__mqtt.on_connect = self.__on_connect
        self.__mqtt.on_disconnect = self.__on_disconnect

        self.__keepalive = 600
        self.__run = False
        self.__connected = threading.Event()
        self.__mqtt_counter = 0

        # Re-published on every (re)connect
        self.__status_topic = None
        self.__status_payload = None
        self.__status_retain = False

    def __on_connect(self, _client, _userdata, _connect_flags, reason_code, _properties=None):
        if reason_code.is_failure:
            logger.error("mqtt_connection_failed", reason_code=str(reason_code))
            stats_logger.increment("mqtt_errors")
            self.__connected.clear()
            return

        logger.info("mqtt_connected", broker=self.__mqtt_broker, reason_code=str(reason_code))
        self.__connected.set()
        self.__publish_status()

    def __on_disconnect(self, _client, _userdata, _disconnect_flags, reason_code, _properties=None):
        if reason_code.is_failure:
            logger.warning("mqtt_unexpected_disconnect", reason_code=str(reason_code))
            stats_logger.increment("mqtt_errors")
        else:
            logger.info("mqtt_expected_disconnect", reason_code=str(reason_code))
        self.__connected.clear()

    def __publish_status(self):
        if self.__status_topic is not None:
            self.do_publish(self.__status_topic, self.__status_payload, self.__status_retain)

    @property
    def connected(self):
        return self.__connected.is_set()

    def set_status(self, topic, payload=None, retain=False):
        """Publish a status message now and again after every reconnect."""
        logger.debug("set_status", topic=topic, payload=payload)
        self.__status_topic = topic
        self.__status_payload = payload
        self.__status_retain = retain
        self.__publish_status()

    def will_set(self, topic, payload=None, qos=1, retain=False):
        """Set last will/testament; only effective before start()."""
        if self.__run:
            logger.warning("will_set_after_run", topic=topic)
        self.__mqtt.will_set(topic, payload, qos, retain)

    def do_publish(self, topic, message, retain=False):
        """
        Publish topic & message to MQTT broker

        Messages published while disconnected are queued by paho (qos > 0).

        Args:
          :param str topic: MQTT topic
          :param str message: MQTT message
          :param bool retain: retained flag MQTT message
        """
        logger.debug("do_publish", topic=topic)

        try:
            info = self.__mqtt.publish(topic=topic, payload=message, qos=self.__qos, retain=retain)
        except ValueError as e:
            logger.warning("mqtt_publish_error", topic=topic, error=str(e))
            stats_logger.increment("mqtt_errors")
            return

        self.__mqtt_counter += 1
        stats_logger.increment("mqtt_messages_sent")
        if info.rc not in (mqtt_client.MQTT_ERR_SUCCESS, mqtt_client.MQTT_ERR_NO_CONN):
            logger.warning(
                "mqtt_publish_failed", rc=info.rc, error=mqtt_client.error_string(info.rc)
            )
            stats_logger.increment("mqtt_errors")

    def run(self):
        logger.info("mqtt_thread_starting", broker=self.__mqtt_broker, port=self.__mqtt_port)
        self.__run = True

        # Set queue to unlimited when qos>0
        self.__mqtt.max_queued_messages_set(0)
        self.__mqtt.reconnect_delay_set(min_delay=1, max_delay=360)

        try:
            self.__mqtt.connect_async(
                host=self.__mqtt_broker,
                port=self.__mqtt_port,
                keepalive=self.__keepalive,
                clean_start=mqtt_client.MQTT_CLEAN_START_FIRST_ONLY,
            )
        except (OSError, ValueError) as e:
            logger.exception("mqtt_connect_exception", error=str(e))
            stats_logger.increment("mqtt_errors")
            self.__mqtt_stopper.set()
            return

        # paho's network loop reconnects on its own with the delays set above
        self.__mqtt.loop_start()
        while not self.__mqtt_stopper.is_set():
            time.sleep(0.1)

        logger.debug("mqtt_client_closing")
        self.__mqtt.disconnect()
        self.__mqtt.loop_stop()

        logger.info("mqtt_client_stopped", messages_published=self.__mqtt_counter)
