from .battery import BatteryService

__all__ = ["BatteryService"]
