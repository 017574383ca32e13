import logging
from typing import Optional

from dbus_next import Variant

from ble_peripheral.connection import Connection
from ble_peripheral.constants import (
    ADAPTER_IFACE,
    DBUS_OM_IFACE,
    DBUS_PROPERTIES_IFACE,
    GATT_MANAGER_IFACE,
    LE_ADVERTISING_MANAGER_IFACE,
)
from ble_peripheral.errors import AdapterNotFoundError

logger = logging.getLogger(__name__)


class Adapter:
    def __init__(self, connection: Connection, object_path: str):
        self.connection = connection
        self.object_path = object_path

    @classmethod
    async def find(cls, connection: Connection, path: Optional[str] = None) -> 'Adapter':
        """Return the adapter at ``path``, or the first one able to host a peripheral."""
        reply = await connection.call('/', DBUS_OM_IFACE, 'GetManagedObjects')
        objects = reply.body[0]
        for candidate, interfaces in objects.items():
            if path is not None and candidate != path:
                continue
            if ADAPTER_IFACE not in interfaces:
                continue
            if GATT_MANAGER_IFACE in interfaces and LE_ADVERTISING_MANAGER_IFACE in interfaces:
                logger.debug("Using adapter %s", candidate)
                return cls(connection, candidate)
            logger.debug("Adapter %s lacks GATT or advertising manager", candidate)

        if path is not None:
            raise AdapterNotFoundError(f"Adapter {path} not found or not usable as a peripheral")
        raise AdapterNotFoundError("No bluetooth adapters could be found.")

    async def _get(self, name: str):
        reply = await self.connection.call(
            self.object_path, DBUS_PROPERTIES_IFACE, 'Get', 'ss', [ADAPTER_IFACE, name])
        return reply.body[0].value

    async def _set(self, name: str, value: Variant) -> None:
        await self.connection.call(
            self.object_path, DBUS_PROPERTIES_IFACE, 'Set', 'ssv', [ADAPTER_IFACE, name, value])

    async def is_powered(self) -> bool:
        return await self._get('Powered')

    async def powered(self, on: bool) -> None:
        await self._set('Powered', Variant('b', on))

    async def get_alias(self) -> str:
        return await self._get('Alias')

    async def set_alias(self, alias: str) -> None:
        await self._set('Alias', Variant('s', alias))
