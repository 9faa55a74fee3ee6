import pytest
from sqlalchemy.exc import IntegrityError

from iot_registry.models import Device
from iot_registry.repositories import DeviceRepository


@pytest.mark.asyncio
class TestDeviceRepositoryCreate:
    """
    Tests covering BaseRepository.create() through DeviceRepository.

    Fixtures used:
      - device_repository: a stateless DeviceRepository.
      - db_session: the caller's session; rows are flushed and rolled back at teardown.
      - make_device: factory of valid transient devices.

    Rationale:
      - create() only flushes, so the id must be available before any commit.
      - The partial unique index must reject a second active device with the same serial.
    """

    async def test_create_assigns_sequential_ids(self, db_session, device_repository: DeviceRepository, make_device):
        """
        Behavior:
          - Two inserts into an empty table get ids 1 and 2, also set on the instances.

        Importance:
          - The composite insert stamps this id on the configuration before committing.
        Fixtures:
          - db_session, device_repository, make_device
        """
        first = make_device()
        second = make_device()

        first_id = await device_repository.create(db_session, first)
        second_id = await device_repository.create(db_session, second)

        assert (first_id, second_id) == (1, 2)
        assert first.id == 1
        assert first.deleted is False

    async def test_duplicate_active_serial_rejected_by_store(self, db_session, device_repository, make_device):
        await device_repository.create(db_session, make_device(serial="ABC-1234"))

        with pytest.raises(IntegrityError):
            await device_repository.create(db_session, make_device(serial="ABC-1234"))

    async def test_serial_reusable_after_soft_delete(self, db_session, device_repository, make_device):
        """
        Behavior:
          - Soft-delete the holder of ABC-1234, then create a new device with the same serial.

        Importance:
          - Uniqueness only covers active rows.
        Fixtures:
          - db_session, device_repository, make_device
        """
        old = make_device(serial="ABC-1234")
        await device_repository.create(db_session, old)
        await device_repository.soft_delete(db_session, old.id)

        new_id = await device_repository.create(db_session, make_device(serial="ABC-1234"))

        assert new_id == 2
        found = await device_repository.find_by_serial(db_session, "ABC-1234")
        assert found.id == 2


@pytest.mark.asyncio
class TestDeviceRepositoryRead:

    async def test_read_by_id(self, db_session, device_repository, persisted_device: Device):
        found = await device_repository.read_by_id(db_session, persisted_device.id)
        assert found is not None
        assert found.serial == "ABC-1234"

    async def test_read_by_id_missing_or_deleted(self, db_session, device_repository, persisted_device: Device):
        assert await device_repository.read_by_id(db_session, 999) is None

        await device_repository.soft_delete(db_session, persisted_device.id)

        assert await device_repository.read_by_id(db_session, persisted_device.id) is None

    async def test_read_all_active_excludes_deleted_and_orders_by_id(
        self, db_session, device_repository, make_device
    ):
        devices = [make_device() for _ in range(3)]
        for device in devices:
            await device_repository.create(db_session, device)
        await device_repository.soft_delete(db_session, devices[1].id)

        result = await device_repository.read_all_active(db_session)

        assert [d.id for d in result] == [devices[0].id, devices[2].id]

    async def test_read_all_active_empty(self, db_session, device_repository):
        assert await device_repository.read_all_active(db_session) == []

    async def test_find_by_serial(self, db_session, device_repository, persisted_device: Device):
        assert (await device_repository.find_by_serial(db_session, "ABC-1234")).id == persisted_device.id
        assert await device_repository.find_by_serial(db_session, "ZZZ-0000") is None

    async def test_find_by_location_is_case_insensitive_substring(
        self, db_session, device_repository, make_device
    ):
        """
        Behavior:
          - "north" matches "Warehouse North" and "NORTH gate", not "South dock".
          - `%` in the fragment is matched literally.

        Importance:
          - Location search is free text typed by an operator.
        Fixtures:
          - db_session, device_repository, make_device
        """
        await device_repository.create(db_session, make_device(location="Warehouse North"))
        await device_repository.create(db_session, make_device(location="NORTH gate"))
        await device_repository.create(db_session, make_device(location="South dock"))
        await device_repository.create(db_session, make_device(location="Floor 100% humid"))

        north = await device_repository.find_by_location(db_session, "north")
        percent = await device_repository.find_by_location(db_session, "0%")
        everything = await device_repository.find_by_location(db_session, "")

        assert [d.location for d in north] == ["Warehouse North", "NORTH gate"]
        assert [d.location for d in percent] == ["Floor 100% humid"]
        assert len(everything) == 4


@pytest.mark.asyncio
class TestDeviceRepositoryWrite:

    async def test_update_writes_updatable_fields(self, db_session, device_repository, persisted_device: Device):
        """
        Behavior:
          - update() writes serial / model / location / firmware and reports one affected row.

        Importance:
          - The service relies on the rowcount to detect a row deleted in between.
        Fixtures:
          - db_session, device_repository, persisted_device
        """
        changes = Device(
            id=persisted_device.id, serial="ABC-9999", model="THERMO-Y", location="Lab", firmware_version=None
        )

        rowcount = await device_repository.update(db_session, changes)

        assert rowcount == 1
        assert await device_repository.find_by_serial(db_session, "ABC-9999") is not None
        assert await device_repository.find_by_serial(db_session, "ABC-1234") is None

    async def test_update_missing_or_deleted_row(self, db_session, device_repository, persisted_device: Device):
        missing = Device(id=42, serial="QQQ-0000", model="M", location="L")
        assert await device_repository.update(db_session, missing) == 0

        await device_repository.soft_delete(db_session, persisted_device.id)
        persisted_device.model = "OTHER"
        assert await device_repository.update(db_session, persisted_device) == 0

    async def test_soft_delete_twice(self, db_session, device_repository, persisted_device: Device):
        assert await device_repository.soft_delete(db_session, persisted_device.id) == 1
        assert await device_repository.soft_delete(db_session, persisted_device.id) == 0
