"""
Local object tree exported over the bus.

An ``ObjectTree`` keeps a registry of object paths and the interfaces declared
on them, and exports every interface as a ``dbus_next`` ``ServiceInterface``
whose properties call the declared getters. Getters are evaluated on every
query, so values written by application code are visible to the remote peer
on its next read without re-exporting anything.

``GetManagedObjects`` on the tree root is answered by the tree itself: the
snapshot includes the root object, which the bus's built-in object manager
leaves out.
"""
import asyncio
import inspect
import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional

from dbus_next import Message, MessageFlag, MessageType, SignatureTree, Variant
from dbus_next.constants import PropertyAccess
from dbus_next.service import ServiceInterface, dbus_property, method

from ble_peripheral.constants import DBUS_OM_IFACE
from ble_peripheral.core.store import Mutex

logger = logging.getLogger(__name__)


class Property:
    def __init__(self, name: str, signature: str, getter: Callable[[], Any]):
        self.name = name
        self.signature = signature
        self.getter = getter

    def read(self) -> Variant:
        return Variant(self.signature, self.getter())

    def bind(self):
        getter = self.getter

        def get(iface):
            return getter()

        get.__name__ = self.name
        get.__annotations__ = {'return': self.signature}
        return dbus_property(access=PropertyAccess.READ, name=self.name)(get)


class Method:
    def __init__(self, name: str, handler: Callable, in_signature: str, out_signature: str):
        self.name = name
        self.handler = handler
        self.in_signature = in_signature
        self.out_signature = out_signature

    def bind(self):
        handler = self.handler
        if asyncio.iscoroutinefunction(handler):
            async def call(iface, *args):
                return await handler(*args)
        else:
            def call(iface, *args):
                return handler(*args)

        params = [inspect.Parameter('self', inspect.Parameter.POSITIONAL_ONLY)]
        for i, arg in enumerate(SignatureTree(self.in_signature).types):
            params.append(inspect.Parameter(
                f'arg{i}', inspect.Parameter.POSITIONAL_ONLY, annotation=arg.signature))
        call.__signature__ = inspect.Signature(
            params, return_annotation=self.out_signature or inspect.Signature.empty)
        call.__name__ = self.name
        return method(name=self.name)(call)


class Interface:
    """Opaque token for a registered interface; see ``ObjectTree.register_interface``."""

    def __init__(self, name: str, properties: Dict[str, Property], methods: Dict[str, Method]):
        self.name = name
        self.properties = properties
        self.methods = methods
        self._cls = None

    def service_interface(self) -> ServiceInterface:
        """A fresh ``ServiceInterface`` exposing these members, ready for ``bus.export``."""
        if self._cls is None:
            namespace = {p.name: p.bind() for p in self.properties.values()}
            namespace.update({m.name: m.bind() for m in self.methods.values()})
            self._cls = type(self.name.rsplit('.', 1)[-1], (ServiceInterface,), namespace)
        return self._cls(self.name)


class InterfaceBuilder:
    def __init__(self, name: str):
        self.name = name
        self._properties: Dict[str, Property] = {}
        self._methods: Dict[str, Method] = {}

    def property(self, name: str, signature: str, getter: Callable[[], Any]) -> 'InterfaceBuilder':
        self._properties[name] = Property(name, signature, getter)
        return self

    def method(self, name: str, handler: Callable, in_signature: str = '', out_signature: str = '') -> 'InterfaceBuilder':
        self._methods[name] = Method(name, handler, in_signature, out_signature)
        return self

    def build(self) -> Interface:
        return Interface(self.name, dict(self._properties), dict(self._methods))


class ObjectTree:
    def __init__(self, root: str, connection=None):
        self.root = root
        self._connection = connection
        self._objects: Dict[str, Dict[str, Interface]] = {}
        self._exported: Dict[str, Dict[str, ServiceInterface]] = {}
        self._mutex = Mutex(f'object tree {root}')
        self._object_manager: Optional[Interface] = None
        # read by the bus handler without the tree mutex
        self._manager_paths = set()
        self._manager_lock = threading.Lock()
        if connection is not None:
            connection.add_handler(self._serve_object_manager)

    def register_interface(self, name: str, build: Callable[[InterfaceBuilder], None]) -> Interface:
        builder = InterfaceBuilder(name)
        build(builder)
        return builder.build()

    def object_manager(self) -> Interface:
        if self._object_manager is None:
            self._object_manager = self.register_interface(DBUS_OM_IFACE, lambda b: None)
        return self._object_manager

    def insert(self, path: str, interfaces: Iterable[Interface]) -> None:
        with self._mutex:
            ifaces = self._objects.setdefault(path, {})
            services = self._exported.setdefault(path, {})
            for iface in interfaces:
                ifaces[iface.name] = iface
                if iface.name == DBUS_OM_IFACE:
                    with self._manager_lock:
                        self._manager_paths.add(path)
                    continue
                services[iface.name] = iface.service_interface()
                if self._connection is not None:
                    self._connection.export(path, services[iface.name])
            logger.debug("Inserted %s with %s", path, ", ".join(ifaces))

    def exported(self, path: str, interface: str) -> ServiceInterface:
        with self._mutex:
            return self._exported[path][interface]

    def _is_managed(self, root: str, path: str) -> bool:
        return path == root or path.startswith(root.rstrip('/') + '/')

    def managed_objects(self, root: Optional[str] = None) -> Dict[str, Dict[str, Dict[str, Variant]]]:
        """Snapshot every object at or below ``root`` with freshly read property values."""
        root = root or self.root
        with self._mutex:
            snapshot = {}
            for path, ifaces in self._objects.items():
                if not self._is_managed(root, path):
                    continue
                entry = {
                    name: {p.name: p.read() for p in iface.properties.values()}
                    for name, iface in ifaces.items()
                    if not name.startswith('org.freedesktop.DBus.')
                }
                if entry:
                    snapshot[path] = entry
            return snapshot

    def get_all_properties(self, path: str, interface: str) -> Dict[str, Variant]:
        with self._mutex:
            iface = self._objects[path][interface]
            return {p.name: p.read() for p in iface.properties.values()}

    def _serve_object_manager(self, msg: Message):
        if (msg.message_type != MessageType.METHOD_CALL
                or msg.interface != DBUS_OM_IFACE
                or msg.member != 'GetManagedObjects'):
            return None
        with self._manager_lock:
            if msg.path not in self._manager_paths:
                return None

        objects = self.managed_objects(msg.path)
        if msg.flags & MessageFlag.NO_REPLY_EXPECTED:
            return True
        return Message.new_method_return(msg, 'a{oa{sa{sv}}}', [objects])

    def emit_properties_changed(self, path: str, interface: str, changed: Dict[str, Any]) -> None:
        self.exported(path, interface).emit_properties_changed(changed)
