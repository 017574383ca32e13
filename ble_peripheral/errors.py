class PeripheralError(Exception):
    """Base class for local failures of the peripheral."""


class PoisonedError(PeripheralError):
    """A lock was poisoned by an exception raised while it was held.

    The guarded state can no longer be trusted, so every later access fails
    with this error instead of returning stale data.
    """


class AdapterNotFoundError(PeripheralError):
    pass
