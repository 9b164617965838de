"""
Application constants and metadata.
"""

# Application info
APP_NAME = "Metrics Plugin"
APP_VERSION = "0.1.0"
DAEMON_NAME = "metrics daemon"

# Timing
DEFAULT_LEAD_TIME = 0.5
MIN_WAIT_TIME = 0.1
DEFAULT_RETRY_DELAY = 10.0
POST_WRITE_DELAY = 0.003

# MQTT
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_KEEPALIVE = 60
DEFAULT_TOPIC_PREFIX = "metricsd"
DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_PRESENCE_TIMEOUT = 2.0

# Host identity
DEFAULT_HOST_ID_COMMAND = "xenstore-read domid"

# Exit statuses
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DAEMON_MISSING = 3
