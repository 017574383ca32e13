import asyncio
import logging

from dbus_next.errors import DBusError

from ble_peripheral import config
from ble_peripheral.peripheral import Peripheral
from ble_peripheral.services import BatteryService

logger = logging.getLogger(__name__)

logging.getLogger("dbus_next.message_bus").setLevel(logging.CRITICAL)


async def run() -> None:
    peripheral = await Peripheral.create()
    battery = BatteryService()
    peripheral.add_service(battery)

    try:
        logger.info("Registering GATT application...")
        await peripheral.register_gatt()

        logger.info("Registering advertisement...")
        await peripheral.start_advertising(config.LOCAL_NAME, config.SERVICE_UUIDS)

        logger.info("Advertising as %r; press Ctrl+C to stop", config.LOCAL_NAME)
        await asyncio.get_running_loop().create_future()

    except DBusError as e:
        logger.error("D-Bus error: %s", e)

    except asyncio.CancelledError:
        pass

    finally:
        logger.info("Unregistering service and advertisement...")
        try:
            await peripheral.unregister_gatt()
        except DBusError as e:
            logger.debug("UnregisterApplication failed: %s", e)

        if peripheral.is_advertising():
            try:
                await peripheral.stop_advertising()
            except DBusError as e:
                logger.debug("UnregisterAdvertisement failed: %s", e)

        peripheral.close()
        logger.info("Shutdown complete.")


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, config.DEFAULT_LOGGING_LEVEL.upper(), logging.INFO),
        format=config.DEFAULT_LOGGING_FORMAT,
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped by user.")


if __name__ == '__main__':
    main()
