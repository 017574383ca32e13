import itertools

import pytest
from dbus_next import Message, MessageFlag, MessageType
from dbus_next.service import ServiceInterface

from ble_peripheral.connection import Connection

ADAPTER_PATH = '/org/bluez/hci0'
PATH_BASE = '/org/bluez/test'


class FakeBus:
    """In-memory stand-in for dbus_next.aio.MessageBus."""

    def __init__(self):
        self.handlers = []
        self.exports = {}
        self.signals = []
        self.calls = []
        self.responders = {}
        self.disconnected = False
        self._serial = itertools.count(1)

    def add_message_handler(self, handler):
        self.handlers.append(handler)

    def export(self, path, interface):
        self.exports.setdefault(path, {})[interface.name] = interface
        ServiceInterface._add_bus(interface, self)

    def _interface_signal_notify(self, interface, interface_name, member, signature, body, unix_fds=[]):
        self.signals.append((interface, interface_name, member, signature, body))

    async def call(self, msg):
        msg.serial = next(self._serial)
        self.calls.append(msg)
        responder = self.responders.get(msg.member)
        if responder is not None:
            return responder(msg)
        return Message.new_method_return(msg)

    def deliver(self, msg):
        for handler in self.handlers:
            result = handler(msg)
            if result:
                return result
        return None

    def disconnect(self):
        self.disconnected = True


def error_reply(name, text):
    return lambda msg: Message.new_error(msg, name, text)


_inbound_serial = itertools.count(1000)


def method_call(path, interface, member, signature='', body=None, flags=MessageFlag.NONE):
    return Message(
        path=path,
        interface=interface,
        member=member,
        signature=signature,
        body=body or [],
        sender=':1.7',
        serial=next(_inbound_serial),
        flags=flags,
    )


def invoke(interface, member, *args):
    """Run an exported method body the way the bus would, keeping its return value."""
    return getattr(type(interface), member).__wrapped__(interface, *args)


def is_error(reply, name=None):
    return (
        isinstance(reply, Message)
        and reply.message_type == MessageType.ERROR
        and (name is None or reply.error_name == name)
    )


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def connection(bus):
    return Connection(bus)
