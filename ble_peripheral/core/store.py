import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from dbus_next.errors import DBusError

from ble_peripheral.errors import PoisonedError

T = TypeVar('T')


class Mutex:
    """A lock that refuses to be taken again once a holder has failed.

    Raising a ``DBusError`` inside the guarded block is an ordinary error reply
    and leaves the mutex usable; any other exception poisons it.
    """

    def __init__(self, name: str = 'mutex'):
        self.name = name
        self._lock = threading.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def __enter__(self):
        self._lock.acquire()
        if self._poisoned:
            self._lock.release()
            raise PoisonedError(f'{self.name} is poisoned')
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and not issubclass(exc_type, DBusError):
            self._poisoned = True
        self._lock.release()
        return False


class PropertyCell(Generic[T]):
    """Optional value shared between its writer and the bus-side getters."""

    def __init__(self, default_factory: Callable[[], T], name: str = 'cell'):
        self._default_factory = default_factory
        self._value: Optional[T] = None
        self._mutex = Mutex(name)

    def get(self) -> T:
        with self._mutex:
            if self._value is None:
                return self._default_factory()
            return _copy(self._value)

    def set(self, value: T) -> None:
        with self._mutex:
            self._value = value

    def update(self, fn: Callable[[Optional[T]], T]) -> None:
        with self._mutex:
            self._value = fn(self._value)

    def is_set(self) -> bool:
        with self._mutex:
            return self._value is not None


def _copy(value: Any) -> Any:
    # readers get their own container so later writes cannot mutate it
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        return list(value)
    return value
