import logging
from typing import Any, Callable, List, Optional

from dbus_next import BusType, Message, MessageType
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError
from dbus_next.service import ServiceInterface

from ble_peripheral.constants import BLUEZ

logger = logging.getLogger(__name__)


class Connection:
    """Bus connection shared by every object the peripheral exports.

    Owns nothing global: components receive the same instance by reference and
    the peripheral that created it is responsible for closing it.
    """

    def __init__(self, bus: MessageBus, destination: str = BLUEZ):
        self.bus = bus
        self.destination = destination

    @classmethod
    async def system(cls) -> 'Connection':
        bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
        return cls(bus)

    async def call(self, path: str, interface: str, member: str,
                   signature: str = '', body: Optional[List[Any]] = None) -> Message:
        message = Message(
            destination=self.destination,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=body or [],
        )
        reply = await self.bus.call(message)
        if reply.message_type == MessageType.ERROR:
            text = reply.body[0] if reply.body else ''
            logger.debug("%s.%s on %s failed: %s %s", interface, member, path, reply.error_name, text)
            raise DBusError(reply.error_name, text, reply=reply)
        return reply

    def export(self, path: str, interface: ServiceInterface) -> None:
        self.bus.export(path, interface)

    def add_handler(self, handler: Callable[[Message], Any]) -> None:
        self.bus.add_message_handler(handler)

    def disconnect(self) -> None:
        self.bus.disconnect()
