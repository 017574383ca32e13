import logging
from typing import Iterable, Mapping, Optional

from ble_peripheral import config
from ble_peripheral.adapter import Adapter
from ble_peripheral.connection import Connection
from ble_peripheral.core.advertisement import Advertisement
from ble_peripheral.core.application import GATTApplication
from ble_peripheral.core.service import GATTService

logger = logging.getLogger(__name__)


class Peripheral:
    """Owns one adapter, one GATT application and one advertisement on a shared connection."""

    def __init__(self, connection: Connection, adapter: Adapter, path_base: str = config.PATH_BASE,
                 owns_connection: bool = False):
        self.connection = connection
        self.adapter = adapter
        self.gatt = GATTApplication(connection, adapter.object_path, path_base)
        self.advertisement = Advertisement(connection, adapter.object_path, path_base)
        self._owns_connection = owns_connection

    @classmethod
    async def create(cls, connection: Optional[Connection] = None, adapter_path: Optional[str] = config.ADAPTER_PATH,
                     path_base: str = config.PATH_BASE) -> 'Peripheral':
        owns_connection = connection is None
        if connection is None:
            connection = await Connection.system()
        adapter = await Adapter.find(connection, adapter_path)
        await adapter.powered(True)
        logger.info("Adapter %s powered on", adapter.object_path)
        return cls(connection, adapter, path_base, owns_connection=owns_connection)

    async def get_alias(self) -> str:
        return await self.adapter.get_alias()

    async def set_alias(self, alias: str) -> None:
        await self.adapter.set_alias(alias)

    async def is_powered(self) -> bool:
        return await self.adapter.is_powered()

    async def register_gatt(self) -> None:
        await self.gatt.register()

    async def unregister_gatt(self) -> None:
        await self.gatt.unregister()

    async def start_advertising(self, name: str, uuids: Iterable, service_data: Optional[Mapping] = None) -> None:
        self.advertisement.add_name(name)
        self.advertisement.add_uuids([str(u) for u in uuids])
        for uuid, payload in (service_data or {}).items():
            self.advertisement.add_service_data(str(uuid), payload)
        await self.advertisement.register()

    async def stop_advertising(self) -> None:
        await self.advertisement.unregister()

    def is_advertising(self) -> bool:
        return self.advertisement.is_advertising()

    def add_service(self, service: GATTService) -> None:
        self.gatt.add_service(service)

    def close(self) -> None:
        if self._owns_connection:
            self.connection.disconnect()
