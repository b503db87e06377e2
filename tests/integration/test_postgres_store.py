"""
Integration tests for the Postgres failed event store
Runs every store operation against a real PostgreSQL container
"""

import asyncio

import pytest

from tests.fakes import seed
from vehicle_data_receiver.models.failed_event import QuarantineReason
from vehicle_data_receiver.store.base import NotFoundError, StorageError
from vehicle_data_receiver.store.postgres import PostgresFailedEventStore

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
class TestPostgresFailedEventStore:
    """Test failed event persistence in Postgres"""

    async def test_record_and_get(self, pg_store):
        failed_event_id = await pg_store.record(
            event_data='{"kind":"speed"}',
            handler_name="speed",
            imei="356307042441013",
            timestamp=1000,
            attempted_at=1005,
        )

        record = await pg_store.get(failed_event_id)

        assert record.id == failed_event_id
        assert record.timestamp == 1000
        assert record.attempted_at == 1005
        assert record.event_data == '{"kind":"speed"}'
        assert record.handler_name == "speed"
        assert record.imei == "356307042441013"
        assert record.attempt_count == 1
        assert not record.is_quarantined

    async def test_ids_are_unique_and_increasing(self, pg_store):
        ids = [await seed(pg_store, "speed", timestamp=1000) for _ in range(3)]

        assert ids == sorted(set(ids))

    async def test_recorded_event_is_pending_immediately(self, pg_store):
        failed_event_id = await seed(pg_store, "speed", timestamp=1000)

        assert [record.id for record in await pg_store.list_pending(limit=10)] == [failed_event_id]

    async def test_list_pending_oldest_first(self, pg_store):
        """Test that limit=2 over timestamps [100, 50, 200] returns [50, 100]"""
        for timestamp in (100, 50, 200):
            await seed(pg_store, "gps", timestamp=timestamp)

        records = await pg_store.list_pending(limit=2)

        assert [record.timestamp for record in records] == [50, 100]

    async def test_list_pending_before(self, pg_store):
        for timestamp in (100, 50, 200):
            await seed(pg_store, "speed", timestamp=timestamp)

        records = await pg_store.list_pending(limit=10, before=100)

        assert [record.timestamp for record in records] == [50]

    async def test_list_pending_keyset_paging(self, pg_store):
        """Test that the (timestamp, id) cursor pages through equal timestamps"""
        ids = [await seed(pg_store, "speed", timestamp=100) for _ in range(3)]

        first_page = await pg_store.list_pending(limit=2)
        cursor = (first_page[-1].timestamp, first_page[-1].id)
        second_page = await pg_store.list_pending(limit=2, after=cursor)

        assert [record.id for record in first_page + second_page] == ids

    async def test_list_pending_by_imei(self, pg_store):
        await seed(pg_store, "speed", timestamp=100, imei="111")
        await seed(pg_store, "speed", timestamp=200, imei="222")

        records = await pg_store.list_pending(limit=10, imei="222")

        assert [record.imei for record in records] == ["222"]

    async def test_list_pending_zero_limit(self, pg_store):
        await seed(pg_store, "speed", timestamp=100)

        assert await pg_store.list_pending(limit=0) == []

    async def test_list_pending_without_limit(self, pg_store):
        """Test that omitting the limit returns every pending record"""
        for timestamp in range(100, 125):
            await seed(pg_store, "speed", timestamp=timestamp)

        records = await pg_store.list_pending()

        assert [record.timestamp for record in records] == list(range(100, 125))

    async def test_mark_retried(self, pg_store):
        """Test that mark_retried only changes attempted_at and the attempt count"""
        failed_event_id = await seed(pg_store, "speed", timestamp=1000, attempted_at=1000)
        before = await pg_store.get(failed_event_id)

        await pg_store.mark_retried(failed_event_id, 1050)
        after = await pg_store.get(failed_event_id)

        assert after.attempted_at == 1050
        assert after.attempt_count == 2
        assert after.timestamp == before.timestamp
        assert after.event_data == before.event_data
        assert after.handler_name == before.handler_name
        assert after.imei == before.imei

    async def test_mark_retried_missing_record(self, pg_store):
        with pytest.raises(NotFoundError) as exc_info:
            await pg_store.mark_retried(999, 1050)

        assert exc_info.value.failed_event_id == 999

    async def test_attempted_at_never_precedes_timestamp(self, pg_store):
        failed_event_id = await seed(pg_store, "speed", timestamp=1000, attempted_at=900)
        assert (await pg_store.get(failed_event_id)).attempted_at == 1000

        await pg_store.mark_retried(failed_event_id, 950)
        assert (await pg_store.get(failed_event_id)).attempted_at == 1000

    async def test_remove_is_idempotent(self, pg_store):
        failed_event_id = await seed(pg_store, "speed", timestamp=1000)

        await pg_store.remove(failed_event_id)
        await pg_store.remove(failed_event_id)

        assert await pg_store.get(failed_event_id) is None

    async def test_quarantine_and_release(self, pg_store):
        failed_event_id = await seed(pg_store, "speed", timestamp=1000)

        await pg_store.quarantine(failed_event_id, QuarantineReason.DECODE_ERROR, 1100)

        assert await pg_store.list_pending(limit=10) == []
        assert await pg_store.count_pending() == 0
        assert await pg_store.count_quarantined() == 1
        quarantined = await pg_store.list_quarantined(limit=10)
        assert quarantined[0].quarantine_reason is QuarantineReason.DECODE_ERROR
        assert quarantined[0].quarantined_at == 1100

        await pg_store.release(failed_event_id)

        assert [record.id for record in await pg_store.list_pending(limit=10)] == [failed_event_id]

    async def test_quarantine_missing_record(self, pg_store):
        with pytest.raises(NotFoundError):
            await pg_store.quarantine(999, QuarantineReason.DECODE_ERROR, 1100)

    async def test_next_failed_imei(self, pg_store):
        assert await pg_store.next_failed_imei() is None

        await seed(pg_store, "speed", timestamp=100, attempted_at=500, imei="111")
        await seed(pg_store, "speed", timestamp=100, attempted_at=900, imei="222")

        assert await pg_store.next_failed_imei() == "222"

    async def test_concurrent_records(self, pg_store):
        """Test that concurrent writers on one store all get distinct ids"""
        ids = await asyncio.gather(
            *(seed(pg_store, "speed", timestamp=1000 + i) for i in range(20))
        )

        assert len(set(ids)) == 20
        assert await pg_store.count_pending() == 20

    async def test_health_check(self, pg_store):
        assert await pg_store.health_check()

        await pg_store.disconnect()

        assert not await pg_store.health_check()

    async def test_operation_after_disconnect_raises_storage_error(self, pg_store):
        await pg_store.disconnect()

        with pytest.raises(StorageError):
            await pg_store.list_pending(limit=10)

    async def test_connect_failure_raises_storage_error(self):
        store = PostgresFailedEventStore(
            connection_url="postgresql://nobody@127.0.0.1:1/missing",
            connect_timeout=2,
        )

        with pytest.raises(StorageError):
            await store.connect()


@pytest.mark.asyncio
async def test_store_as_context_manager(postgres_url):
    """Test that the store connects on enter and disconnects on exit"""
    store = PostgresFailedEventStore(connection_url=postgres_url)

    async with store:
        assert store.is_connected
        assert await store.health_check()

    assert not store.is_connected
