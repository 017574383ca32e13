import pytest
from dbus_next import MessageType, Variant
from dbus_next.errors import DBusError

from ble_peripheral.constants import (
    BLUEZ,
    DBUS_OM_IFACE,
    LE_ADVERTISEMENT_IFACE,
    LE_ADVERTISING_MANAGER_IFACE,
)
from ble_peripheral.core.advertisement import Advertisement, encode_service_data

from conftest import ADAPTER_PATH, PATH_BASE, error_reply, invoke, method_call


@pytest.fixture
def advertisement(connection):
    return Advertisement(connection, ADAPTER_PATH, PATH_BASE)


def props(advertisement):
    return advertisement.tree.get_all_properties(advertisement.path, LE_ADVERTISEMENT_IFACE)


def test_path_uses_first_slot(advertisement):
    assert advertisement.path == f'{PATH_BASE}/advertisement0000'


def test_defaults_before_any_write(advertisement):
    assert props(advertisement) == {
        'Type': Variant('s', 'peripheral'),
        'LocalName': Variant('s', ''),
        'ServiceUUIDs': Variant('as', []),
        'ServiceData': Variant('a{sv}', {}),
    }
    assert not advertisement.is_advertising()


def test_managed_objects_right_after_construction(advertisement):
    objects = advertisement.tree.managed_objects()
    assert list(objects) == [advertisement.path]
    assert list(objects[advertisement.path]) == [LE_ADVERTISEMENT_IFACE]
    assert set(objects[advertisement.path][LE_ADVERTISEMENT_IFACE]) == {
        'Type', 'LocalName', 'ServiceUUIDs', 'ServiceData',
    }


def test_reads_follow_latest_write(advertisement):
    advertisement.add_name('first')
    assert props(advertisement)['LocalName'].value == 'first'
    advertisement.add_name('second')
    assert props(advertisement)['LocalName'].value == 'second'

    advertisement.add_uuids(['180d'])
    advertisement.add_uuids(('180f', '181a'))
    assert props(advertisement)['ServiceUUIDs'].value == ['180f', '181a']


def test_service_data_overwrites_per_identifier(advertisement):
    advertisement.add_service_data('180d', [0x01])
    advertisement.add_service_data('180f', b'\x09')
    advertisement.add_service_data('180d', [0x02, 0x03])

    data = props(advertisement)['ServiceData'].value
    assert data == {'180d': Variant('ay', b'\x02\x03'), '180f': Variant('ay', b'\x09')}


def test_encode_service_data_wraps_bytes():
    assert encode_service_data({'180d': bytearray([1, 2])}) == {'180d': Variant('ay', b'\x01\x02')}


def test_end_to_end_snapshot_over_object_manager(advertisement, bus):
    advertisement.add_name('sensor')
    advertisement.add_uuids(['180d'])
    advertisement.add_service_data('180d', [0x01, 0x02])

    reply = bus.deliver(method_call(advertisement.path, DBUS_OM_IFACE, 'GetManagedObjects'))

    assert reply.message_type == MessageType.METHOD_RETURN
    adv = reply.body[0][advertisement.path][LE_ADVERTISEMENT_IFACE]
    assert adv['Type'] == Variant('s', 'peripheral')
    assert adv['LocalName'] == Variant('s', 'sensor')
    assert adv['ServiceUUIDs'] == Variant('as', ['180d'])
    assert adv['ServiceData'] == Variant('a{sv}', {'180d': Variant('ay', bytes([0x01, 0x02]))})


def test_exported_properties_read_shared_cells(advertisement, bus):
    exported = bus.exports[advertisement.path][LE_ADVERTISEMENT_IFACE]
    assert exported.Type == 'peripheral'

    advertisement.add_name('sensor')
    advertisement.add_service_data('180d', [0x01])
    assert exported.LocalName == 'sensor'
    assert exported.ServiceData == {'180d': Variant('ay', b'\x01')}


@pytest.mark.asyncio
async def test_register_sends_request_and_sets_flag(advertisement, bus):
    await advertisement.register()

    call = bus.calls[-1]
    assert call.destination == BLUEZ
    assert call.path == ADAPTER_PATH
    assert call.interface == LE_ADVERTISING_MANAGER_IFACE
    assert call.member == 'RegisterAdvertisement'
    assert call.signature == 'oa{sv}'
    assert call.body == [advertisement.path, {}]
    assert advertisement.is_advertising()


@pytest.mark.asyncio
async def test_register_failure_propagates_and_leaves_flag_unset(advertisement, bus):
    bus.responders['RegisterAdvertisement'] = error_reply('org.bluez.Error.AlreadyExists', 'Already Exists')

    with pytest.raises(DBusError) as info:
        await advertisement.register()

    assert info.value.type == 'org.bluez.Error.AlreadyExists'
    assert info.value.text == 'Already Exists'
    assert not advertisement.is_advertising()


@pytest.mark.asyncio
async def test_release_clears_flag_without_unregister(advertisement, bus):
    await advertisement.register()
    assert advertisement.is_advertising()

    assert invoke(bus.exports[advertisement.path][LE_ADVERTISEMENT_IFACE], 'Release') is None

    assert not advertisement.is_advertising()
    assert [c.member for c in bus.calls] == ['RegisterAdvertisement']


@pytest.mark.asyncio
async def test_unregister_clears_flag_before_reply(advertisement, bus):
    await advertisement.register()
    seen = []

    def reject(msg):
        seen.append(advertisement.is_advertising())
        return error_reply('org.bluez.Error.DoesNotExist', 'Does Not Exist')(msg)

    bus.responders['UnregisterAdvertisement'] = reject

    with pytest.raises(DBusError):
        await advertisement.unregister()

    assert seen == [False]
    assert not advertisement.is_advertising()
    call = bus.calls[-1]
    assert call.signature == 'o'
    assert call.body == [advertisement.path]


@pytest.mark.asyncio
async def test_mutations_apply_while_advertising(advertisement):
    await advertisement.register()
    advertisement.add_name('renamed')
    assert props(advertisement)['LocalName'].value == 'renamed'
    assert advertisement.is_advertising()
