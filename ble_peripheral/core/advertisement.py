import logging
import threading
from typing import Dict, Iterable, List

from dbus_next import Variant

from ble_peripheral.connection import Connection
from ble_peripheral.constants import (
    ADVERTISEMENT_TYPE,
    LE_ADVERTISEMENT_IFACE,
    LE_ADVERTISING_MANAGER_IFACE,
)
from ble_peripheral.core.store import PropertyCell
from ble_peripheral.core.tree import ObjectTree

logger = logging.getLogger(__name__)

# only one advertisement per process, so it always takes the first slot
ADVERTISEMENT_SLOT = 0


def encode_service_data(service_data: Dict[str, bytes]) -> Dict[str, Variant]:
    """Wrap each payload in an ``ay`` variant, giving the ``a{sv}`` shape BlueZ expects."""
    return {uuid: Variant('ay', bytes(payload)) for uuid, payload in service_data.items()}


class Advertisement:
    """
    LE advertisement exported at ``<path_base>/advertisement0000``.

    Name, UUIDs and service data live in shared cells read by the property
    getters on every bus query, so changes apply to the next read by BlueZ.
    ``is_advertising`` is set by a successful ``register``, and cleared by
    ``unregister`` (before the daemon answers) or by BlueZ calling ``Release``.
    """

    def __init__(self, connection: Connection, adapter_path: str, path_base: str):
        self.connection = connection
        self.adapter_path = adapter_path
        self.path = f'{path_base}/advertisement{ADVERTISEMENT_SLOT:04d}'

        self._advertising = threading.Event()
        self._name: PropertyCell[str] = PropertyCell(str, 'LocalName')
        self._uuids: PropertyCell[List[str]] = PropertyCell(list, 'ServiceUUIDs')
        self._service_data: PropertyCell[Dict[str, bytes]] = PropertyCell(dict, 'ServiceData')

        self.tree = ObjectTree(self.path, connection)
        iface = self.tree.register_interface(LE_ADVERTISEMENT_IFACE, self._build_interface)
        self.tree.insert(self.path, [iface, self.tree.object_manager()])

    def _build_interface(self, b) -> None:
        b.method('Release', self._release)
        b.property('Type', 's', lambda: ADVERTISEMENT_TYPE)
        b.property('LocalName', 's', self._name.get)
        b.property('ServiceUUIDs', 'as', self._uuids.get)
        b.property('ServiceData', 'a{sv}', lambda: encode_service_data(self._service_data.get()))

    def _release(self) -> None:
        self._advertising.clear()
        logger.info("Advertisement %s released by BlueZ", self.path)

    def add_name(self, name: str) -> None:
        self._name.set(str(name))
        logger.debug("Advertised name set to %r", name)

    def add_uuids(self, uuids: Iterable[str]) -> None:
        self._uuids.set([str(u) for u in uuids])

    def add_service_data(self, service_uuid: str, data) -> None:
        uuid, payload = str(service_uuid), bytes(data)

        def _insert(current):
            current = dict(current or {})
            current[uuid] = payload
            return current

        self._service_data.update(_insert)
        logger.debug("Service data for %s set to %s", uuid, payload.hex())

    async def register(self) -> None:
        await self.connection.call(
            self.adapter_path,
            LE_ADVERTISING_MANAGER_IFACE,
            'RegisterAdvertisement',
            'oa{sv}',
            [self.path, {}],
        )
        self._advertising.set()
        logger.info("Advertisement %s registered", self.path)

    async def unregister(self) -> None:
        # local state reads "not advertising" even if the daemon rejects the call
        self._advertising.clear()
        await self.connection.call(
            self.adapter_path,
            LE_ADVERTISING_MANAGER_IFACE,
            'UnregisterAdvertisement',
            'o',
            [self.path],
        )
        logger.info("Advertisement %s unregistered", self.path)

    def is_advertising(self) -> bool:
        return self._advertising.is_set()
