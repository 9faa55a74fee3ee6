import pytest
from sqlalchemy import inspect, text

from iot_registry.config.settings import Settings
from iot_registry.database.session import build_engine, check_connection


@pytest.mark.asyncio
class TestEngineAndSchema:

    async def test_check_connection_ok(self, async_engine):
        assert await check_connection(async_engine) is True

    async def test_check_connection_unreachable(self, tmp_path):
        """
        Behavior:
          - A database file inside a directory that does not exist cannot be opened;
            the check logs the failure and returns False instead of raising.

        Importance:
          - Startup decides whether to continue; it must not crash on a traceback.
        """
        settings = Settings(DATABASE_URL_OVERRIDE=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
        engine = build_engine(settings)
        try:
            assert await check_connection(engine) is False
        finally:
            await engine.dispose()

    async def test_schema_has_both_tables_and_partial_indexes(self, async_engine):
        async with async_engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
            indexes = await conn.run_sync(
                lambda sync_conn: {ix["name"] for ix in inspect(sync_conn).get_indexes("network_configs")}
            )

        assert {"devices", "network_configs"} <= set(tables)
        assert {"uq_network_configs_ip_static_active", "uq_network_configs_device_id_active"} <= indexes

    async def test_sqlite_foreign_keys_enabled(self, async_engine, test_settings):
        if not test_settings.DATABASE_URL.startswith("sqlite"):
            pytest.skip("SQLite pragma only")
        async with async_engine.connect() as conn:
            assert (await conn.execute(text("PRAGMA foreign_keys"))).scalar() == 1
