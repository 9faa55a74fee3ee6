import pytest

from iot_registry.exceptions.base import ErrorKind, ServiceError
from iot_registry.models import NetworkConfig
from iot_registry.services import ConfigService, DeviceService


@pytest.mark.asyncio
class TestConfigServiceInsert:
    """
    Tests covering ConfigService.insert() for standalone configurations.

    Fixtures used:
      - config_service: service over a fresh per-test database.
      - make_config: factory of valid static configurations on 10.0.0.0/24.
    """

    async def test_insert_static(self, config_service: ConfigService, make_config):
        config = await config_service.insert(make_config(ip=" 192.168.1.10 "))

        assert config.id == 1
        assert config.ip == "192.168.1.10"
        assert config.device_id is None

    async def test_insert_dhcp_canonicalized(self, config_service: ConfigService, make_config):
        config = await config_service.insert(make_config(ip="192.168.1.99", dhcp_enabled=True))

        stored = await config_service.get_by_id(config.id)
        assert (stored.ip, stored.subnet_mask, stored.gateway, stored.primary_dns) == ("0.0.0.0",) * 4

    async def test_many_dhcp_configurations(self, config_service: ConfigService, make_config):
        for _ in range(3):
            await config_service.insert(make_config(dhcp_enabled=True))
        assert len(await config_service.find_by_dhcp_state(True)) == 3

    async def test_duplicate_static_ip(self, config_service: ConfigService, inserted_config, make_config):
        duplicate = make_config(ip="192.168.1.10")

        with pytest.raises(ServiceError) as exc_info:
            await config_service.insert(duplicate)

        assert exc_info.value.kind is ErrorKind.DUPLICATE_ENTITY
        assert exc_info.value.fields == ["ip"]
        assert duplicate.id is None

    @pytest.mark.parametrize("ip", ["0.0.0.0", "", "300.1.1.1"])
    async def test_invalid_static_ip(self, config_service: ConfigService, make_config, ip):
        with pytest.raises(ServiceError) as exc_info:
            await config_service.insert(make_config(ip=ip))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert await config_service.get_all() == []

    @pytest.mark.parametrize("linked", [True, False])
    async def test_insert_never_links_device(
        self, config_service: ConfigService, device_service: DeviceService, make_device, make_config, linked
    ):
        """
        Behavior:
          - A device_id preset on the instance is discarded, whether it names an
            existing device or none at all.
          - The device keeps no configuration, and the standalone row can be deleted.

        Importance:
          - Only insert_with_configuration may attach a configuration to a device.
        Fixtures:
          - config_service, device_service, make_device, make_config
        """
        device = await device_service.insert(make_device(serial="ABC-1234"))
        config = await config_service.insert(make_config(ip="10.0.0.9", device_id=device.id if linked else 999))

        assert config.device_id is None
        assert (await config_service.get_by_id(config.id)).device_id is None
        assert (await device_service.get_by_id(device.id)).configuration is None

        await config_service.delete(config.id)
        assert await config_service.get_all() == []

    async def test_insert_ignores_preset_deleted_flag(self, config_service: ConfigService, make_config):
        config = await config_service.insert(make_config(deleted=True))

        assert config.deleted is False
        assert (await config_service.get_by_id(config.id)).deleted is False


@pytest.mark.asyncio
class TestConfigServiceUpdate:

    async def test_update_to_new_ip(self, config_service: ConfigService, inserted_config: NetworkConfig):
        changes = NetworkConfig(id=inserted_config.id, ip="192.168.1.11", dhcp_enabled=False)

        updated = await config_service.update(changes)

        assert updated.ip == "192.168.1.11"
        assert (await config_service.find_by_ip("192.168.1.11")).id == inserted_config.id

    async def test_update_keeping_own_ip(self, config_service: ConfigService, inserted_config: NetworkConfig):
        changes = NetworkConfig(id=inserted_config.id, ip="192.168.1.10", gateway="192.168.1.254", dhcp_enabled=False)
        assert (await config_service.update(changes)).gateway == "192.168.1.254"

    async def test_update_to_taken_ip(self, config_service: ConfigService, inserted_config, make_config):
        other = await config_service.insert(make_config(ip="192.168.1.20"))
        other.ip = "192.168.1.10"

        with pytest.raises(ServiceError) as exc_info:
            await config_service.update(other)

        assert exc_info.value.kind is ErrorKind.DUPLICATE_ENTITY

    async def test_update_switch_to_dhcp(self, config_service: ConfigService, inserted_config: NetworkConfig):
        changes = NetworkConfig(id=inserted_config.id, ip="192.168.1.10", dhcp_enabled=True)

        await config_service.update(changes)

        assert (await config_service.get_by_id(inserted_config.id)).ip == "0.0.0.0"
        # no static configuration is left
        assert await config_service.find_by_dhcp_state(False) == []

    async def test_update_preserves_device_link(
        self, config_service: ConfigService, inserted_device_with_config
    ):
        """
        Behavior:
          - The caller passes device_id=None; the stored link is kept and copied back.

        Importance:
          - Configurations only move between devices through delete + composite insert.
        Fixtures:
          - config_service, inserted_device_with_config
        """
        config_id = inserted_device_with_config.configuration.id
        changes = NetworkConfig(id=config_id, ip="172.16.0.6", dhcp_enabled=False, device_id=None)

        updated = await config_service.update(changes)

        assert updated.device_id == inserted_device_with_config.id
        assert (await config_service.get_by_id(config_id)).device_id == inserted_device_with_config.id

    async def test_update_missing(self, config_service: ConfigService):
        with pytest.raises(ServiceError) as exc_info:
            await config_service.update(NetworkConfig(id=7, ip="10.0.0.7", dhcp_enabled=False))
        assert exc_info.value.kind is ErrorKind.ENTITY_NOT_FOUND


@pytest.mark.asyncio
class TestConfigServiceDelete:

    async def test_delete_standalone(self, config_service: ConfigService, inserted_config: NetworkConfig):
        await config_service.delete(inserted_config.id)

        with pytest.raises(ServiceError) as exc_info:
            await config_service.get_by_id(inserted_config.id)
        assert exc_info.value.kind is ErrorKind.ENTITY_NOT_FOUND

    async def test_delete_linked_refused(
        self, config_service: ConfigService, device_service: DeviceService, inserted_device_with_config
    ):
        """
        Behavior:
          - A configuration held by an active device cannot be deleted directly.
          - Nothing changes: the device still reports its configuration.

        Importance:
          - Otherwise an active device would silently lose its network settings.
        Fixtures:
          - config_service, device_service, inserted_device_with_config
        """
        config_id = inserted_device_with_config.configuration.id

        with pytest.raises(ServiceError) as exc_info:
            await config_service.delete(config_id)

        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.fields == ["device_id"]
        device = await device_service.get_by_id(inserted_device_with_config.id)
        assert device.configuration.id == config_id

    async def test_delete_missing(self, config_service: ConfigService):
        with pytest.raises(ServiceError) as exc_info:
            await config_service.delete(5)
        assert exc_info.value.kind is ErrorKind.ENTITY_NOT_FOUND


@pytest.mark.asyncio
class TestConfigServiceReads:

    async def test_find_by_ip(self, config_service: ConfigService, inserted_config: NetworkConfig):
        assert (await config_service.find_by_ip(" 192.168.1.10 ")).id == inserted_config.id

        with pytest.raises(ServiceError) as exc_info:
            await config_service.find_by_ip("192.168.1.99")
        assert exc_info.value.kind is ErrorKind.ENTITY_NOT_FOUND

        with pytest.raises(ServiceError) as exc_info:
            await config_service.find_by_ip("  ")
        assert exc_info.value.kind is ErrorKind.VALIDATION

    async def test_find_by_dhcp_state(self, config_service: ConfigService, inserted_config, make_config):
        dhcp = await config_service.insert(make_config(dhcp_enabled=True))

        assert [c.id for c in await config_service.find_by_dhcp_state(False)] == [inserted_config.id]
        assert [c.id for c in await config_service.find_by_dhcp_state(True)] == [dhcp.id]

        with pytest.raises(ServiceError):
            await config_service.find_by_dhcp_state(None)

    async def test_get_all_includes_linked_and_standalone(
        self, config_service: ConfigService, inserted_config, inserted_device_with_config
    ):
        configs = await config_service.get_all()
        assert [c.device_id for c in configs] == [None, inserted_device_with_config.id]
