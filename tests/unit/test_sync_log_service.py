"""Unit tests for the sync audit log service."""

from datetime import timedelta

import pytest

from channel_sync.core.database import utc_now
from channel_sync.core.exceptions import NotFoundError, SyncLogStateError
from channel_sync.models import SyncDirection, SyncStatus, SyncType
from channel_sync.services.sync_log_service import STALE_PENDING_MESSAGE, SyncLogService


@pytest.fixture
def service(test_session):
    return SyncLogService(test_session)


async def start_log(service, hotel_id="hotel-1", channel_id=None, started_ago=None):
    sync_log = await service.start(
        hotel_id=hotel_id,
        channel_id=channel_id,
        sync_type=SyncType.INVENTORY,
        direction=SyncDirection.PUSH,
        records_processed=4,
        request_payload={"record_count": 4},
    )
    if started_ago is not None:
        sync_log.started_at = utc_now() - started_ago
        await service.db.commit()
    return sync_log


@pytest.mark.asyncio
async def test_start_creates_pending_row(service):
    sync_log = await start_log(service)

    assert sync_log.id is not None
    assert sync_log.status == SyncStatus.PENDING
    assert sync_log.completed_at is None
    assert sync_log.records_processed == 4
    assert sync_log.request_payload == {"record_count": 4}


@pytest.mark.asyncio
async def test_complete_sets_terminal_fields(service):
    sync_log = await start_log(service)

    completed = await service.complete(
        sync_log,
        SyncStatus.SUCCESS,
        records_successful=4,
        response_payload={"success": True},
    )

    assert completed.status == SyncStatus.SUCCESS
    assert completed.completed_at is not None
    assert completed.records_successful == 4
    assert completed.records_failed == 0
    assert completed.response_payload == {"success": True}
    assert completed.error_message is None


@pytest.mark.asyncio
async def test_complete_twice_is_rejected(service):
    sync_log = await start_log(service)
    await service.complete(sync_log, SyncStatus.FAILED, records_failed=4, error_message="boom")

    with pytest.raises(SyncLogStateError):
        await service.complete(sync_log, SyncStatus.SUCCESS, records_successful=4)

    reloaded = await service.get_sync_log(sync_log.id, "hotel-1")
    assert reloaded.status == SyncStatus.FAILED
    assert reloaded.error_message == "boom"


@pytest.mark.asyncio
async def test_complete_with_pending_is_rejected(service):
    sync_log = await start_log(service)

    with pytest.raises(ValueError):
        await service.complete(sync_log, SyncStatus.PENDING)


@pytest.mark.asyncio
async def test_get_sync_log_is_hotel_scoped(service):
    sync_log = await start_log(service, hotel_id="hotel-1")

    with pytest.raises(NotFoundError):
        await service.get_sync_log(sync_log.id, "hotel-2")


@pytest.mark.asyncio
async def test_list_for_hotel_newest_first_with_filters(service):
    oldest = await start_log(service, started_ago=timedelta(hours=3))
    middle = await start_log(service, started_ago=timedelta(hours=2))
    newest = await start_log(service, started_ago=timedelta(hours=1))
    await start_log(service, hotel_id="hotel-2")
    await service.complete(middle, SyncStatus.SUCCESS, records_successful=4)

    rows, total = await service.list_for_hotel("hotel-1")
    assert total == 3
    assert [row.id for row in rows] == [newest.id, middle.id, oldest.id]

    rows, total = await service.list_for_hotel("hotel-1", limit=1, offset=1)
    assert total == 3
    assert [row.id for row in rows] == [middle.id]

    rows, total = await service.list_for_hotel("hotel-1", status=SyncStatus.PENDING)
    assert total == 2
    assert {row.id for row in rows} == {oldest.id, newest.id}


@pytest.mark.asyncio
async def test_reconcile_fails_only_stale_pending_rows(service):
    stale = await start_log(service, started_ago=timedelta(hours=2))
    fresh = await start_log(service, started_ago=timedelta(minutes=5))
    finished = await start_log(service, started_ago=timedelta(hours=3))
    await service.complete(finished, SyncStatus.SUCCESS, records_successful=4)

    reconciled = await service.reconcile_stale_pending(timedelta(hours=1))

    assert reconciled == 1
    stale = await service.get_sync_log(stale.id, "hotel-1")
    await service.db.refresh(stale)
    assert stale.status == SyncStatus.FAILED
    assert stale.completed_at is not None
    assert stale.error_message == STALE_PENDING_MESSAGE

    fresh = await service.get_sync_log(fresh.id, "hotel-1")
    await service.db.refresh(fresh)
    assert fresh.status == SyncStatus.PENDING

    finished = await service.get_sync_log(finished.id, "hotel-1")
    await service.db.refresh(finished)
    assert finished.status == SyncStatus.SUCCESS


@pytest.mark.asyncio
async def test_reconcile_can_be_limited_to_one_hotel(service):
    await start_log(service, hotel_id="hotel-1", started_ago=timedelta(hours=2))
    other = await start_log(service, hotel_id="hotel-2", started_ago=timedelta(hours=2))

    assert await service.reconcile_stale_pending(timedelta(hours=1), hotel_id="hotel-1") == 1

    other = await service.get_sync_log(other.id, "hotel-2")
    await service.db.refresh(other)
    assert other.status == SyncStatus.PENDING


@pytest.mark.asyncio
async def test_reconciled_row_cannot_be_completed_later(service):
    sync_log = await start_log(service, started_ago=timedelta(hours=2))
    await service.reconcile_stale_pending(timedelta(hours=1))

    with pytest.raises(SyncLogStateError):
        await service.complete(sync_log, SyncStatus.SUCCESS, records_successful=4)
