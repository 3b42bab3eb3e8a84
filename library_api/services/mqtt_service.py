import json
import logging
import threading
import ssl
from pathlib import Path
from typing import Optional
import paho.mqtt.client as mqtt
from pydantic import ValidationError as PydanticValidationError
from library_api.services.notifier import ChangeEvent, ChangeNotifier

logger = logging.getLogger(__name__)


class MQTTBridge:
    """Relays change events between API processes through an MQTT broker.

    Locally originated events are published to ``<prefix>/<type>``. Events
    arriving from other processes are republished on the local notifier.
    Events carrying this node's origin id are never relayed twice.
    """

    def __init__(self, notifier: ChangeNotifier, settings):
        self.notifier = notifier
        self.settings = settings
        self.client: Optional[mqtt.Client] = None
        self.is_connected = False
        self._lock = threading.Lock()
        self._subscription = None

    @property
    def topic_filter(self) -> str:
        return f"{self.settings.mqtt_topic_prefix}/+"

    def topic_for(self, event: ChangeEvent) -> str:
        return f"{self.settings.mqtt_topic_prefix}/{event.type.value}"

    def on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when MQTT client connects to broker."""
        if not reason_code.is_failure:
            self.is_connected = True
            logger.info(f"MQTT client connected to {self.settings.mqtt_broker}:{self.settings.mqtt_port}")
            client.subscribe(self.topic_filter, qos=1)
            logger.info(f"Subscribed to {self.topic_filter}")
        else:
            logger.error(f"MQTT connection failed: {reason_code}")
            self.is_connected = False

    def on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when MQTT client disconnects from broker."""
        self.is_connected = False
        if reason_code.is_failure:
            logger.warning(f"MQTT client disconnected unexpectedly ({reason_code})")
        else:
            logger.info("MQTT client disconnected")

    def on_message(self, client, userdata, msg):
        """Callback when a message is received on subscribed topic."""
        try:
            self.handle_payload(msg.payload.decode('utf-8'))
        except UnicodeDecodeError as e:
            logger.error(f"Undecodable MQTT payload on {msg.topic}: {e}")

    def handle_payload(self, payload: str) -> Optional[ChangeEvent]:
        """Deliver an event received from the broker to local subscribers."""
        try:
            event = ChangeEvent.model_validate(json.loads(payload))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Invalid change event payload: {e}")
            return None

        if event.origin == self.notifier.node_id:
            return None

        logger.info(f"Received {event.type.value} event from node {event.origin}")
        self.notifier.publish(event)
        return event

    def forward(self, event: ChangeEvent):
        """Notifier subscriber: publish local events to the broker."""
        if event.origin != self.notifier.node_id:
            return

        if not (self.client and self.is_connected):
            logger.warning(f"MQTT client not connected, {event.type.value} event not relayed")
            return

        topic = self.topic_for(event)
        result = self.client.publish(topic, event.model_dump_json(), qos=1)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            logger.debug(f"Relayed {event.type.value} event to {topic}")
        else:
            logger.error(f"Failed to relay event to {topic}: rc={result.rc}")

    def _setup_tls(self):
        """Configure TLS/SSL for MQTT client."""
        settings = self.settings
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

        if settings.mqtt_ca_cert:
            ca_cert_path = Path(settings.mqtt_ca_cert)
            if not ca_cert_path.exists():
                raise FileNotFoundError(f"CA certificate file not found: {ca_cert_path}")
            context.load_verify_locations(cafile=str(ca_cert_path))
            logger.info(f"Loaded CA certificate from {ca_cert_path}")
        else:
            context.load_default_certs()

        # Client certificate and key (mutual TLS)
        if settings.mqtt_client_cert and settings.mqtt_client_key:
            client_cert_path = Path(settings.mqtt_client_cert)
            client_key_path = Path(settings.mqtt_client_key)
            for path in (client_cert_path, client_key_path):
                if not path.exists():
                    raise FileNotFoundError(f"Client certificate/key file not found: {path}")
            context.load_cert_chain(certfile=str(client_cert_path), keyfile=str(client_key_path))
            logger.info(f"Loaded client certificate from {client_cert_path}")

        if settings.mqtt_tls_insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            logger.warning("TLS insecure mode enabled - certificate verification disabled")
        else:
            context.check_hostname = True
            context.verify_mode = ssl.CERT_REQUIRED

        self.client.tls_set_context(context)
        logger.info("TLS/SSL configured for MQTT connection")

    def connect(self):
        """Connect to the broker and start relaying. Failures are logged, never raised."""
        settings = self.settings
        try:
            with self._lock:
                if self.client and self.is_connected:
                    logger.info("MQTT client already connected")
                    return

                client_id = f"library-api-{self.notifier.node_id}"
                self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True)

                self.client.on_connect = self.on_connect
                self.client.on_disconnect = self.on_disconnect
                self.client.on_message = self.on_message

                if settings.mqtt_use_tls:
                    self._setup_tls()
                    if settings.mqtt_port == 1883:
                        logger.warning("TLS enabled but port is 1883. Consider using port 8883 for MQTT over TLS.")

                if settings.mqtt_username and settings.mqtt_password:
                    self.client.username_pw_set(settings.mqtt_username, settings.mqtt_password)

                if self._subscription is None:
                    self._subscription = self.notifier.subscribe(self.forward)

                protocol = "TLS" if settings.mqtt_use_tls else "TCP"
                logger.info(f"Connecting to MQTT broker at {settings.mqtt_broker}:{settings.mqtt_port} over {protocol}")
                try:
                    self.client.connect(settings.mqtt_broker, settings.mqtt_port, keepalive=60)
                except OSError as conn_error:
                    logger.warning(f"Initial MQTT connection failed: {conn_error}. The client will retry in the background.")
                # Network loop thread handles reconnection
                self.client.loop_start()

        except (OSError, ssl.SSLError, ValueError) as e:
            logger.error(f"Error setting up MQTT client: {e}", exc_info=True)
            self.is_connected = False

    def disconnect(self):
        """Stop relaying and disconnect from the broker."""
        with self._lock:
            if self._subscription is not None:
                self._subscription.close()
                self._subscription = None
            if self.client:
                self.client.loop_stop()
                self.client.disconnect()
                self.is_connected = False
                logger.info("MQTT client disconnected")

    def is_running(self) -> bool:
        """Check if MQTT bridge is running and connected."""
        return self.is_connected and self.client is not None
