from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError
from unittest.mock import AsyncMock, patch

from inspection_records.exceptions import NotFoundError, StorageError, ValidationFailed
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.repositories.generation import GenerationRepository
from inspection_records.repositories.history import HistoryRepository
from inspection_records.repositories.records import CurrentRecordRepository
from inspection_records.services import documents, lifecycle, reconciler


@pytest.mark.asyncio
async def test_renew_appends_previous_then_renewed(db):
    old = {"id": 1, "fsicAppNo": "F-1", "ownerName": "A"}
    updated = {"ownerName": "B", "fsicAppNo": "F-1"}

    new_record = await lifecycle.renew(db, old_record=old, updated_record=updated)

    events = await HistoryRepository(db).load()
    assert [e["action"] for e in events] == ["PREVIOUS", "RENEWED"]
    previous, renewed = events
    assert previous["data"] == {**old, "entityKey": "fsic:F-1"}
    assert previous["source"] == "Unknown"
    assert renewed["source"] == "Renewed"
    assert renewed["data"]["ownerName"] == "B"
    assert renewed["data"]["entityKey"] == "fsic:F-1" == renewed["entityKey"]
    assert previous["changedAt"] == renewed["changedAt"]
    assert renewed["data"] == new_record
    assert new_record["renewedAt"] == new_record["createdAt"] == renewed["changedAt"]


@pytest.mark.asyncio
async def test_renew_uses_explicit_key_first(db):
    new_record = await lifecycle.renew(
        db,
        old_record={"id": 1, "fsicAppNo": "F-1"},
        updated_record={"fsicAppNo": "F-2"},
        entity_key="  fsic:MANUAL  ",
        source="Archive",
    )
    assert new_record["entityKey"] == "fsic:MANUAL"
    events = await HistoryRepository(db).list_by_entity("fsic:MANUAL")
    assert len(events) == 2
    assert events[0]["source"] == "Archive"


@pytest.mark.asyncio
async def test_renewed_record_keeps_only_allow_listed_fields(db):
    new_record = await lifecycle.renew(
        db,
        old_record={"id": 1, "fsicAppNo": "F-1"},
        updated_record={
            "fsicAppNo": "F-1", "OWNERS_NAME": "Legacy Owner",
            "isAdmin": True, "id": "client-chosen", "teamLeader": "Insp. Reyes",
        },
    )
    assert "isAdmin" not in new_record
    assert new_record["id"] != "client-chosen"
    assert new_record["ownerName"] == "Legacy Owner"
    assert new_record["teamLeader"] == "Insp. Reyes"


@pytest.mark.asyncio
async def test_renew_without_team_leader_defaults_blank(db):
    new_record = await lifecycle.renew(db, old_record={"fsicAppNo": "F-1"}, updated_record={})
    assert new_record["teamLeader"] == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("old, updated", [
    (None, {"fsicAppNo": "F-1"}),
    ({"fsicAppNo": "F-1"}, None),
    (None, None),
])
async def test_renew_missing_payload_writes_nothing(db, old, updated):
    with pytest.raises(ValidationFailed):
        await lifecycle.renew(db, old_record=old, updated_record=updated, entity_key="fsic:F-1")
    assert await HistoryRepository(db).count() == 0


@pytest.mark.asyncio
async def test_latest_renewed_orders_by_changed_at_not_insertion(db):
    history = HistoryRepository(db)
    await history.append([
        {"entityKey": "fsic:F-1", "source": "Renewed", "changedAt": "2024-02-01T00:00:00Z",
         "action": "RENEWED", "data": {"id": "feb", "entityKey": "fsic:F-1"}},
        {"entityKey": "fsic:F-1", "source": "Renewed", "changedAt": "2024-01-01T00:00:00Z",
         "action": "RENEWED", "data": {"id": "jan", "entityKey": "fsic:F-1"}},
    ])
    await db.commit()

    latest = await reconciler.latest_renewed(db, "fsic:F-1")
    assert latest["id"] == "feb"


@pytest.mark.asyncio
async def test_latest_renewed_absent_is_none(db):
    assert await reconciler.latest_renewed(db, "fsic:NEVER-RENEWED") is None
    assert await reconciler.latest_renewed(db, "") is None


@pytest.mark.asyncio
async def test_close_month_moves_records(db):
    ids = [(await lifecycle.add_record(db, {"fsicAppNo": f"F-{n}"}))["id"] for n in range(3)]

    result = await lifecycle.close_month(db, now=datetime(2024, 5, 31, 23, 55))
    assert result == {"success": True, "month": "2024-05", "archivedCount": 3}

    assert await CurrentRecordRepository(db).load() == []
    archived = await ArchiveRepository(db).load_month("2024-05")
    assert [r["id"] for r in archived] == ids

    again = await lifecycle.close_month(db, now=datetime(2024, 5, 31, 23, 56))
    assert again == {"success": False, "message": "No records"}


@pytest.mark.asyncio
async def test_close_month_appends_to_existing_bucket(db):
    await lifecycle.add_record(db, {"fsicAppNo": "F-1"})
    await lifecycle.close_month(db, now=datetime(2024, 5, 1))
    await lifecycle.add_record(db, {"fsicAppNo": "F-2"})
    await lifecycle.close_month(db, now=datetime(2024, 5, 20))

    assert await ArchiveRepository(db).months() == ["2024-05"]
    assert len(await ArchiveRepository(db).load_month("2024-05")) == 2


@pytest.mark.asyncio
async def test_remove_renewed_leaves_previous_and_other_renewals(db):
    first = await lifecycle.renew(db, old_record={"id": 1, "fsicAppNo": "F-1"}, updated_record={"fsicAppNo": "F-1"})
    second = await lifecycle.renew(db, old_record={"id": 2, "fsicAppNo": "F-2"}, updated_record={"fsicAppNo": "F-2"})

    deleted = await lifecycle.remove_renewed(db, first["id"])
    assert deleted == 1

    events = await HistoryRepository(db).load()
    assert [e["action"] for e in events] == ["PREVIOUS", "PREVIOUS", "RENEWED"]
    assert events[-1]["data"]["id"] == second["id"]
    assert await reconciler.latest_renewed(db, "fsic:F-1") is None


@pytest.mark.asyncio
async def test_export_substitutes_latest_renewal(db):
    renewed_source = await lifecycle.add_record(db, {"fsicAppNo": "F-1", "ownerName": "Old"})
    plain = await lifecycle.add_record(db, {"fsicAppNo": "F-2", "ownerName": "Plain"})
    await lifecycle.close_month(db, now=datetime(2024, 6, 30))

    await lifecycle.renew(
        db,
        old_record=renewed_source,
        updated_record={"fsicAppNo": "F-1", "ownerName": "New"},
        now=datetime(2024, 7, 2, tzinfo=timezone.utc),
    )

    exported = await reconciler.export_month(db, "2024-06")
    assert exported[0]["ownerName"] == "New"
    assert exported[0]["entityKey"] == "fsic:F-1"
    assert exported[1] == plain


@pytest.mark.asyncio
async def test_export_requires_month(db):
    with pytest.raises(ValidationFailed):
        await reconciler.export_month(db, "  ")


@pytest.mark.asyncio
async def test_find_record_by_id_searches_archive(db):
    record = await lifecycle.add_record(db, {"fsicAppNo": "F-1"})
    assert (await lifecycle.find_record_by_id(db, record["id"]))["fsicAppNo"] == "F-1"

    await lifecycle.close_month(db, now=datetime(2024, 1, 31))
    found = await lifecycle.find_record_by_id(db, int(record["id"]))
    assert found["id"] == record["id"]
    assert await lifecycle.find_record_by_id(db, "nope") is None


@pytest.mark.asyncio
async def test_add_record_honours_client_entity_key(db):
    record = await lifecycle.add_record(db, {"entityKey": "fsic:KEEP", "fsicAppNo": "F-1", "junk": 1})
    assert record["entityKey"] == "fsic:KEEP"
    assert "junk" not in record


@pytest.mark.asyncio
async def test_update_missing_document_raises(db):
    with pytest.raises(NotFoundError):
        await documents.update_document(db, "404", {"ownerName": "x"})


@pytest.mark.asyncio
async def test_mutations_bump_store_generation(db):
    generations = GenerationRepository(db)
    assert await generations.current() == 0

    record = await lifecycle.add_record(db, {"fsicAppNo": "F-1"})
    assert await generations.current() == 1
    await lifecycle.renew(db, old_record=record, updated_record={"fsicAppNo": "F-1"})
    await lifecycle.close_month(db, now=datetime(2024, 5, 31))
    assert await generations.current() == 3


@pytest.mark.asyncio
async def test_close_month_keeps_records_added_after_the_read(db):
    await lifecycle.add_record(db, {"id": "early", "fsicAppNo": "F-1"})
    add_many = ArchiveRepository.add_many

    async def add_many_then_intake(self, month, records):
        await CurrentRecordRepository(self.db).add({"id": "late", "fsicAppNo": "F-2"})
        await add_many(self, month, records)

    with patch.object(ArchiveRepository, "add_many", add_many_then_intake):
        result = await lifecycle.close_month(db, now=datetime(2024, 5, 31))

    assert result["archivedCount"] == 1
    assert [r["id"] for r in await CurrentRecordRepository(db).load()] == ["late"]
    assert [r["id"] for r in await ArchiveRepository(db).load_month("2024-05")] == ["early"]


@pytest.mark.asyncio
async def test_failed_renew_commit_leaves_no_events(db):
    failing = AsyncMock(side_effect=SQLAlchemyError("disk full"))
    with patch.object(db, "commit", failing):
        with pytest.raises(StorageError):
            await lifecycle.renew(
                db, old_record={"id": 1, "fsicAppNo": "F-1"}, updated_record={"fsicAppNo": "F-1"}
            )

    assert await HistoryRepository(db).count() == 0
    assert await GenerationRepository(db).current() == 0
    assert await reconciler.latest_renewed(db, "fsic:F-1") is None


@pytest.mark.asyncio
async def test_failed_close_month_commit_keeps_current_store(db):
    for n in range(3):
        await lifecycle.add_record(db, {"fsicAppNo": f"F-{n}"})

    failing = AsyncMock(side_effect=SQLAlchemyError("disk full"))
    with patch.object(db, "commit", failing):
        with pytest.raises(StorageError) as exc_info:
            await lifecycle.close_month(db, now=datetime(2024, 5, 31))

    assert exc_info.value.context == {"operation": "Close month"}
    assert await CurrentRecordRepository(db).count() == 3
    assert await ArchiveRepository(db).count() == 0
