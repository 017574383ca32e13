import logging
import threading
from typing import Callable, Dict, List, Optional

from dbus_next import Variant

from ble_peripheral.constants import GATT_CHARACTERISTIC_IFACE
from ble_peripheral.core.descriptor import GATTDescriptor
from ble_peripheral.core.store import PropertyCell
from ble_peripheral.core.tree import ObjectTree

logger = logging.getLogger(__name__)

ReadCallback = Callable[[Dict[str, Variant]], bytes]
WriteCallback = Callable[[bytes, Dict[str, Variant]], None]


class GATTCharacteristic:
    def __init__(self, uuid: str, flags: List[str], initial_value: bytes = b"",
                 on_read: Optional[ReadCallback] = None, on_write: Optional[WriteCallback] = None):
        self.uuid = uuid
        self.flags = flags
        self.service = None
        self.path: Optional[str] = None
        self.on_read = on_read
        self.on_write = on_write
        self.descriptors: List[GATTDescriptor] = []
        self._value: PropertyCell[bytes] = PropertyCell(bytes, 'Value')
        self._value.set(bytes(initial_value))
        self._notifying = threading.Event()
        self._tree: Optional[ObjectTree] = None

    @property
    def notifying(self) -> bool:
        return self._notifying.is_set()

    @property
    def value(self) -> bytes:
        return self._value.get()

    def add_descriptor(self, descriptor: GATTDescriptor) -> None:
        descriptor.characteristic = self
        self.descriptors.append(descriptor)

    def export(self, tree: ObjectTree, path: str) -> None:
        self.path = path
        self._tree = tree
        for i, desc in enumerate(self.descriptors):
            desc.path = f'{path}/desc{i:04d}'

        iface = tree.register_interface(GATT_CHARACTERISTIC_IFACE, self._build_interface)
        tree.insert(path, [iface])

        for desc in self.descriptors:
            desc.export(tree, desc.path)

    def _build_interface(self, b) -> None:
        b.property('UUID', 's', lambda: self.uuid)
        b.property('Service', 'o', lambda: self.service.path)
        b.property('Flags', 'as', lambda: self.flags)
        b.property('Descriptors', 'ao', lambda: [d.path for d in self.descriptors])
        b.property('Notifying', 'b', self._notifying.is_set)
        b.property('Value', 'ay', self._value.get)
        b.method('ReadValue', self.read_value, 'a{sv}', 'ay')
        b.method('WriteValue', self.write_value, 'aya{sv}')
        b.method('StartNotify', self.start_notify)
        b.method('StopNotify', self.stop_notify)

    def read_value(self, options: Dict[str, Variant]) -> bytes:
        if self.on_read is not None:
            return bytes(self.on_read(options))
        return self._value.get()

    def write_value(self, value: bytes, options: Dict[str, Variant]) -> None:
        value = bytes(value)
        logger.debug("[WRITE] %s <- %s", self.uuid, value.hex())
        if self.on_write is not None:
            self.on_write(value, options)
        else:
            self._value.set(value)

    def start_notify(self) -> None:
        if not self._notifying.is_set():
            self._notifying.set()
            logger.info("Notifications enabled on %s", self.uuid)

    def stop_notify(self) -> None:
        if self._notifying.is_set():
            self._notifying.clear()
            logger.info("Notifications disabled on %s", self.uuid)

    def notify(self, value: bytes) -> None:
        value = bytes(value)
        self._value.set(value)

        if self._notifying.is_set() and self._tree is not None:
            self._tree.emit_properties_changed(
                self.path, GATT_CHARACTERISTIC_IFACE, {'Value': value})
            logger.debug("[NOTIFY] %s -> %s", self.uuid, value.hex())
        else:
            logger.debug("[NOTIFY] skipped for %s (no client subscribed)", self.uuid)
