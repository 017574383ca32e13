from ble_peripheral.adapter import Adapter
from ble_peripheral.connection import Connection
from ble_peripheral.core.advertisement import Advertisement
from ble_peripheral.core.application import GATTApplication
from ble_peripheral.core.characteristic import GATTCharacteristic
from ble_peripheral.core.descriptor import GATTDescriptor
from ble_peripheral.core.service import GATTService
from ble_peripheral.core.tree import ObjectTree
from ble_peripheral.errors import AdapterNotFoundError, PeripheralError, PoisonedError
from ble_peripheral.peripheral import Peripheral

__all__ = [
    "Adapter",
    "AdapterNotFoundError",
    "Advertisement",
    "Connection",
    "GATTApplication",
    "GATTCharacteristic",
    "GATTDescriptor",
    "GATTService",
    "ObjectTree",
    "Peripheral",
    "PeripheralError",
    "PoisonedError",
]
