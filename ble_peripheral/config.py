import os
from typing import List

PATH_BASE = os.getenv("BLE_PATH_BASE", "/org/bluez/example")
ADAPTER_PATH = os.getenv("BLE_ADAPTER_PATH", "") or None

LOCAL_NAME = os.getenv("BLE_LOCAL_NAME", "ble-peripheral")
_SERVICE_UUIDS_ENV = os.getenv("BLE_SERVICE_UUIDS", "180f")
SERVICE_UUIDS: List[str] = [
    uuid.strip() for uuid in _SERVICE_UUIDS_ENV.split(",") if uuid.strip()
]

DEFAULT_LOGGING_FORMAT = os.getenv("BLE_LOG_FORMAT", "[%(levelname)s] %(name)s: %(message)s")
DEFAULT_LOGGING_LEVEL = os.getenv("BLE_LOG_LEVEL", "INFO")
