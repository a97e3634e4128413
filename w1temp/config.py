"""
Configuration and constants for the probe reader.
Settings come from the environment (and a .env file when present).
"""
import os
import logging
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from w1temp.errors import ConfigError

load_dotenv()

logger = logging.getLogger("w1temp")

# Logging configuration
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FILE_NAME = "w1temp.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# 1-Wire sysfs layout
DEFAULT_BUS_ROOT = "/sys/bus/w1/devices/w1_bus_master1"
PROBE_FAMILY_PREFIX = "28-"
BULK_READ_FILE = "therm_bulk_read"
BULK_READ_TRIGGER = "trigger\n"

# Adafruit IO endpoints
MQTT_HOST = "io.adafruit.com"
MQTT_PORT = 8883
MQTT_CLIENT_ID = "w1temp"
MQTT_KEEPALIVE = 60
HTTP_TIMEOUT = 10  # seconds

# Concurrent read mode
MAX_READ_WORKERS = 8

# Environment variable -> Settings field
ENV_FIELDS = {
    "ADAFRUIT_IO_USERNAME": "username",
    "ADAFRUIT_IO_KEY": "key",
    "ADAFRUIT_IO_GROUP": "group",
    "ADAFRUIT_IO_URL": "url",
    "PUBLISH_MODE": "publish_mode",
    "READ_MODE": "read_mode",
    "SVC_MODE": "mode",
    "W1_BUS_ROOT": "bus_root",
    "POLL_INTERVAL": "poll_interval",
    "BULK_READ_POLL_INTERVAL": "bulk_poll_interval",
    "BULK_READ_TIMEOUT": "bulk_timeout",
}


class Settings(BaseModel):
    """Validated runtime settings"""
    username: str = Field(..., min_length=1, description="Adafruit IO account name")
    key: str = Field(..., min_length=1, description="Adafruit IO API key")
    group: Optional[str] = None
    url: Optional[str] = None
    publish_mode: Literal["mqtt", "http"] = "mqtt"
    read_mode: Literal["bulk", "concurrent"] = "bulk"
    mode: Literal["real", "sim"] = "real"
    bus_root: str = DEFAULT_BUS_ROOT
    poll_interval: float = Field(60.0, gt=0, allow_inf_nan=False)
    bulk_poll_interval: float = Field(0.1, gt=0, allow_inf_nan=False)
    bulk_timeout: float = Field(30.0, gt=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_destination(self):
        if self.publish_mode == "mqtt" and not self.group:
            raise ValueError("ADAFRUIT_IO_GROUP is required for MQTT publishing")
        if self.publish_mode == "http":
            if not self.url:
                raise ValueError("ADAFRUIT_IO_URL is required for HTTP publishing")
            if "%s" not in self.url:
                raise ValueError("ADAFRUIT_IO_URL must contain a %s placeholder for the feed key")
        return self


def load_settings(environ=None):
    """Build Settings from the environment, raising ConfigError if invalid"""
    if environ is None:
        environ = os.environ

    values = {}
    for env_name, field in ENV_FIELDS.items():
        raw = environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        value = raw.strip()
        if field in ("publish_mode", "read_mode", "mode"):
            value = value.lower()
        values[field] = value

    try:
        return Settings(**values)
    except ValidationError as e:
        missing = [
            name for name, field in ENV_FIELDS.items()
            if field not in values and field in ("username", "key")
        ]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}") from e
        raise ConfigError(f"Invalid configuration: {e}") from e


def configure_logging(level=None):
    """Log to both console and logs/w1temp.log"""
    os.makedirs(LOG_DIR, exist_ok=True)
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(os.path.join(LOG_DIR, LOG_FILE_NAME)),
            logging.StreamHandler()
        ]
    )
