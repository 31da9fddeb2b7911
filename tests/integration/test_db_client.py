"""Integration tests for the SQLite document store."""

import asyncio

import pytest

from sitelog.core import db_client


pytestmark = pytest.mark.integration


async def _project(name: str = "Depot") -> dict:
    return await db_client.create_record(collection="projects", data={"name": name})


class TestCrud:
    """Create, read, update and delete."""

    async def test_create_assigns_id_and_timestamps(self, db):
        record = await _project()

        assert record["id"].isdigit()
        assert record["created"] == record["updated"]
        assert record["created"].endswith("Z")

    async def test_get_missing_record(self, db):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="projects", record_id="999")

    async def test_non_numeric_id_is_not_found(self, db):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="projects", record_id="abc")

    async def test_update_refreshes_updated_monotonically(self, db):
        record = await _project()

        updated = await db_client.update_record(collection="projects", record_id=record["id"], data={"name": "Yard"})

        assert updated["name"] == "Yard"
        assert updated["updated"] >= record["updated"]
        assert updated["created"] == record["created"]

    async def test_update_missing_record(self, db):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.update_record(collection="projects", record_id="42", data={"name": "x"})

    async def test_delete(self, db):
        record = await _project()

        await db_client.delete_record(collection="projects", record_id=record["id"])

        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="projects", record_id=record["id"])

    async def test_json_columns_round_trip(self, db):
        record = await db_client.create_record(
            collection="work_logs",
            data={
                "date": "2024-01-10",
                "project_id": "1",
                "team_leader_id": "2",
                "start_time": "07:00:00",
                "end_time": "15:00:00",
                "work_description": "Trenching",
                "employee_ids": ["e1"],
                "materials_used": [{"name": "Sand", "quantity": 2, "unit": "t"}],
            },
        )

        assert record["employee_ids"] == ["e1"]
        assert record["materials_used"][0]["name"] == "Sand"
        assert record["photos"] == []
        assert record["project_id"] == "1"

    async def test_invalid_collection_name(self, db):
        with pytest.raises(ValueError, match="Invalid collection name"):
            await db_client.get_record(collection="projects; --", record_id="1")

    async def test_missing_table_is_storage_error(self, db):
        with pytest.raises(db_client.DatabaseError, match="does not exist"):
            await db_client.list_records(collection="nonexistent")


class TestQueries:
    """Filtered, sorted and counted scans."""

    async def test_list_all_filters_and_sorts(self, db):
        for name in ["Cedar", "Alder", "Birch"]:
            await _project(name)

        records = await db_client.list_all_records(collection="projects", filter_query='name != "Birch"', sort="name")

        assert [r["name"] for r in records] == ["Alder", "Cedar"]

    async def test_list_records_paginates(self, db):
        for name in ["A", "B", "C"]:
            await _project(name)

        page_two = await db_client.list_records(collection="projects", page=2, per_page=2, sort="id")

        assert [r["name"] for r in page_two] == ["C"]

    async def test_get_first_record(self, db):
        await _project("Alder")

        assert (await db_client.get_first_record(collection="projects", filter_query='name = "Alder"'))["name"] == "Alder"
        assert await db_client.get_first_record(collection="projects", filter_query='name = "Oak"') is None

    async def test_like_is_case_insensitive_and_literal(self, db):
        await _project("North 50% block")
        await _project("North 500 block")

        records = await db_client.list_all_records(collection="projects", filter_query='name ~ "50%"')

        assert [r["name"] for r in records] == ["North 50% block"]
        assert len(await db_client.list_all_records(collection="projects", filter_query='name ~ "NORTH"')) == 2

    async def test_count_and_bulk_update(self, db):
        for name in ["A", "B", "C"]:
            await _project(name)

        changed = await db_client.update_records(
            collection="projects",
            filter_query='name != "C"',
            data={"address": "Depot Road"},
        )

        assert changed == 2
        assert await db_client.count_records(collection="projects", filter_query='address = "Depot Road"') == 2
        assert await db_client.count_records(collection="projects") == 3


class TestCompareAndSwap:
    """Guarded updates and deletes."""

    async def test_guard_matches(self, db):
        record = await _project("Alder")

        updated = await db_client.update_record(
            collection="projects",
            record_id=record["id"],
            data={"name": "Birch"},
            expected={"name": "Alder"},
        )

        assert updated["name"] == "Birch"

    async def test_guard_mismatch_writes_nothing(self, db):
        record = await _project("Alder")

        with pytest.raises(db_client.StaleRecordError):
            await db_client.update_record(
                collection="projects",
                record_id=record["id"],
                data={"name": "Birch"},
                expected={"name": "Cedar"},
            )

        assert (await db_client.get_record(collection="projects", record_id=record["id"]))["name"] == "Alder"

    async def test_guarded_delete_mismatch(self, db):
        record = await _project("Alder")

        with pytest.raises(db_client.StaleRecordError):
            await db_client.delete_record(collection="projects", record_id=record["id"], expected={"name": "Oak"})

        assert await db_client.count_records(collection="projects") == 1


class TestTransactions:
    """Atomicity and isolation."""

    async def test_exception_rolls_back_every_write(self, db):
        with pytest.raises(RuntimeError, match="boom"):
            async with db_client.transaction():
                await _project("Alder")
                await _project("Birch")
                raise RuntimeError("boom")

        assert await db_client.count_records(collection="projects") == 0

    async def test_transaction_sees_its_own_writes(self, db):
        async with db_client.transaction():
            record = await _project("Alder")
            fetched = await db_client.get_record(collection="projects", record_id=record["id"])

        assert fetched["name"] == "Alder"

    async def test_uncommitted_writes_invisible_to_readers(self, db):
        inside = asyncio.Event()
        release = asyncio.Event()

        async def writer() -> None:
            async with db_client.transaction():
                await _project("Alder")
                inside.set()
                await release.wait()

        task = asyncio.create_task(writer())
        await inside.wait()

        assert await db_client.count_records(collection="projects") == 0

        release.set()
        await task

        assert await db_client.count_records(collection="projects") == 1

    async def test_nested_transaction_joins_outer(self, db):
        with pytest.raises(RuntimeError):
            async with db_client.transaction():
                await _project("Alder")
                async with db_client.transaction():
                    await _project("Birch")
                raise RuntimeError("outer fails")

        assert await db_client.count_records(collection="projects") == 0

    async def test_writes_are_serialized(self, db):
        await asyncio.gather(*(_project(f"P{i}") for i in range(10)))

        assert await db_client.count_records(collection="projects") == 10
