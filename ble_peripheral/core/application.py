import logging
from typing import List

from dbus_next import Message

from ble_peripheral.connection import Connection
from ble_peripheral.constants import GATT_MANAGER_IFACE
from ble_peripheral.core.service import GATTService
from ble_peripheral.core.tree import ObjectTree

logger = logging.getLogger(__name__)


class GATTApplication:
    """
    Root object of the GATT tree, exported at ``path_base``.

    It only carries org.freedesktop.DBus.ObjectManager: BlueZ calls
    GetManagedObjects() on it to discover every service, characteristic and
    descriptor inserted below it. Unlike ``Advertisement`` it keeps no
    registered/unregistered flag.
    """

    def __init__(self, connection: Connection, adapter_path: str, path_base: str):
        self.connection = connection
        self.adapter_path = adapter_path
        self.path = path_base
        self.services: List[GATTService] = []

        self.tree = ObjectTree(self.path, connection)
        self.tree.insert(self.path, [self.tree.object_manager()])

    def add_service(self, service: GATTService) -> None:
        path = f'{self.path}/service{len(self.services):04d}'
        service.export(self.tree, path)
        self.services.append(service)
        logger.debug("Added service %s at %s", service.uuid, path)

    async def register(self) -> Message:
        reply = await self.connection.call(
            self.adapter_path,
            GATT_MANAGER_IFACE,
            'RegisterApplication',
            'oa{sv}',
            [self.path, {}],
        )
        logger.info("GATT application %s registered", self.path)
        return reply

    async def unregister(self) -> None:
        await self.connection.call(
            self.adapter_path,
            GATT_MANAGER_IFACE,
            'UnregisterApplication',
            'o',
            [self.path],
        )
        logger.info("GATT application %s unregistered", self.path)
