from typing import List, Optional

from ble_peripheral.constants import GATT_SERVICE_IFACE
from ble_peripheral.core.characteristic import GATTCharacteristic
from ble_peripheral.core.tree import ObjectTree


class GATTService:
    def __init__(self, uuid: str, characteristics: Optional[List[GATTCharacteristic]] = None, primary: bool = True):
        self.uuid = uuid
        self.primary = primary
        self.path: Optional[str] = None
        self.characteristics: List[GATTCharacteristic] = []
        for ch in characteristics or []:
            self.add_characteristic(ch)

    def add_characteristic(self, characteristic: GATTCharacteristic) -> None:
        characteristic.service = self
        self.characteristics.append(characteristic)

    def export(self, tree: ObjectTree, path: str) -> None:
        """Insert this service and everything below it into ``tree`` at ``path``."""
        self.path = path
        for i, ch in enumerate(self.characteristics):
            ch.path = f'{path}/char{i:04d}'

        iface = tree.register_interface(GATT_SERVICE_IFACE, lambda b: (
            b.property('UUID', 's', lambda: self.uuid),
            b.property('Primary', 'b', lambda: self.primary),
            b.property('Characteristics', 'ao', lambda: [c.path for c in self.characteristics]),
        ))
        tree.insert(path, [iface])

        for ch in self.characteristics:
            ch.export(tree, ch.path)
