import logging
from typing import Dict, List, Optional

from dbus_next import Variant

from ble_peripheral.constants import GATT_DESCRIPTOR_IFACE
from ble_peripheral.core.store import PropertyCell
from ble_peripheral.core.tree import ObjectTree

logger = logging.getLogger(__name__)


class GATTDescriptor:
    def __init__(self, uuid: str, flags: List[str], initial_value: bytes = b""):
        self.uuid = uuid
        self.flags = flags
        self.characteristic = None
        self.path: Optional[str] = None
        self._value: PropertyCell[bytes] = PropertyCell(bytes, 'Value')
        self._value.set(bytes(initial_value))

    @property
    def value(self) -> bytes:
        return self._value.get()

    def export(self, tree: ObjectTree, path: str) -> None:
        self.path = path
        iface = tree.register_interface(GATT_DESCRIPTOR_IFACE, lambda b: (
            b.property('UUID', 's', lambda: self.uuid),
            b.property('Characteristic', 'o', lambda: self.characteristic.path),
            b.property('Flags', 'as', lambda: self.flags),
            b.property('Value', 'ay', self._value.get),
            b.method('ReadValue', self.read_value, 'a{sv}', 'ay'),
            b.method('WriteValue', self.write_value, 'aya{sv}'),
        ))
        tree.insert(path, [iface])

    def read_value(self, options: Dict[str, Variant]) -> bytes:
        return self._value.get()

    def write_value(self, value: bytes, options: Dict[str, Variant]) -> None:
        logger.debug("[WRITE] descriptor %s <- %s", self.uuid, bytes(value).hex())
        self._value.set(bytes(value))
