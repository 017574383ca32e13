import logging

from ble_peripheral.core.characteristic import GATTCharacteristic
from ble_peripheral.core.descriptor import GATTDescriptor
from ble_peripheral.core.service import GATTService

logger = logging.getLogger(__name__)

BATTERY_SERVICE_UUID = "0000180f-0000-1000-8000-00805f9b34fb"
BATTERY_LEVEL_UUID = "00002a19-0000-1000-8000-00805f9b34fb"
USER_DESCRIPTION_UUID = "2901"


class BatteryService(GATTService):
    def __init__(self, level: int = 100):
        self.level_char = BatteryLevelCharacteristic(level)
        super().__init__(BATTERY_SERVICE_UUID, [self.level_char])

    @property
    def level(self) -> int:
        return self.level_char.level

    def update_level(self, level: int) -> None:
        self.level_char.update_level(level)


class BatteryLevelCharacteristic(GATTCharacteristic):
    def __init__(self, level: int = 100):
        super().__init__(BATTERY_LEVEL_UUID, ["read", "notify"], initial_value=bytes([level]))
        self.add_descriptor(GATTDescriptor(
            USER_DESCRIPTION_UUID,
            ["read"],
            initial_value="Battery Level".encode("utf-8"),
        ))

    @property
    def level(self) -> int:
        return self.value[0]

    def update_level(self, level: int) -> None:
        if not 0 <= level <= 100:
            raise ValueError(f"battery level out of range: {level}")
        logger.debug("Battery level %d%%", level)
        self.notify(bytes([level]))
