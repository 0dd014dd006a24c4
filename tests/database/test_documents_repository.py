"""Integration tests for the document repository on SQLite."""

from pathlib import Path

import pytest

from cinefeed.database.connection import DatabaseConnection
from cinefeed.database.repositories import DocumentRepository
from cinefeed.exceptions import PersistenceError

pytestmark = pytest.mark.integration


def _movies() -> list[dict]:
    return [
        {"id": 1, "title": "Alien", "showtimes": [{"cinema": 1, "schedule": ["20:00"]}]},
        {"id": 2, "title": "Heat", "showtimes": []},
        {"id": 2, "title": "Heat (Director's Cut)", "showtimes": []},
    ]


class TestNaturalKey:
    @staticmethod
    def test_id_and_title(repository: DocumentRepository) -> None:
        assert repository.natural_key({"id": 7, "title": "X"}, "movies0") == ("7", "X")

    @staticmethod
    def test_extraimages_keyed_on_imdbid(repository: DocumentRepository) -> None:
        assert repository.natural_key({"imdbid": "tt1", "id": 9}, "extraimages") == ("tt1", "")

    @staticmethod
    def test_missing_field(repository: DocumentRepository) -> None:
        with pytest.raises(KeyError):
            repository.natural_key({"id": 7}, "movies0")

    @staticmethod
    def test_reference_key_uses_provider_id() -> None:
        assert DocumentRepository.reference_key({"ID": 12}, 0) == ("12", "#0")
        assert DocumentRepository.reference_key({"id": 12}, 3) == ("12", "#3")
        key_id, _ = DocumentRepository.reference_key({"name": "no id"}, 1)
        assert len(key_id) == 32


class TestUpsertBatch:
    @staticmethod
    async def test_idempotent(repository: DocumentRepository) -> None:
        await repository.upsert_batch(_movies(), "movies0")
        await repository.upsert_batch(_movies(), "movies0")

        stored = await repository.find("movies0")
        assert len(stored) == 3
        assert sorted((m["id"], m["title"]) for m in stored) == sorted(
            (m["id"], m["title"]) for m in _movies()
        )

    @staticmethod
    async def test_updates_payload_on_same_key(repository: DocumentRepository) -> None:
        await repository.upsert_batch([{"id": 1, "title": "Alien", "rating": 7}], "movies0")
        await repository.upsert_batch([{"id": 1, "title": "Alien", "rating": 9}], "movies0")

        assert await repository.find("movies0") == [{"id": 1, "title": "Alien", "rating": 9}]

    @staticmethod
    async def test_collections_are_partitioned(repository: DocumentRepository) -> None:
        await repository.upsert_batch(_movies(), "movies0")
        await repository.upsert_batch(_movies()[:1], "movies1")

        assert await repository.count("movies0") == 3
        assert await repository.count("movies1") == 1

    @staticmethod
    async def test_results_per_item(repository: DocumentRepository) -> None:
        results = await repository.upsert_batch(_movies(), "movies0")
        assert [r.key for r in results] == [("1", "Alien"), ("2", "Heat"), ("2", "Heat (Director's Cut)")]
        assert all(r.success for r in results)

    @staticmethod
    async def test_partial_failure_keeps_successful_items(repository: DocumentRepository) -> None:
        items = [{"id": 1, "title": "Alien"}, {"id": 2}, {"id": 3, "title": "Ran"}]

        with pytest.raises(PersistenceError) as exc_info:
            await repository.upsert_batch(items, "movies0")

        error = exc_info.value
        assert error.collection == "movies0"
        assert len(error.results) == 3
        assert len(error.failed) == 1
        assert error.failed[0].key is None
        assert {m["id"] for m in await repository.find("movies0")} == {1, 3}

    @staticmethod
    async def test_extraimages_upsert_on_imdbid(repository: DocumentRepository) -> None:
        await repository.upsert_batch([{"imdbid": "tt1", "images": ["a"]}], "extraimages")
        await repository.upsert_batch([{"imdbid": "tt1", "images": ["a", "b"]}], "extraimages")

        assert await repository.find("extraimages") == [{"imdbid": "tt1", "images": ["a", "b"]}]

    @staticmethod
    async def test_empty_batch(repository: DocumentRepository) -> None:
        assert await repository.upsert_batch([], "movies0") == []


class TestReplaceAll:
    @staticmethod
    async def test_empty_criteria_clears_collection(repository: DocumentRepository) -> None:
        await repository.upsert_batch(_movies(), "movies0")
        await repository.upsert_batch(_movies(), "movies1")

        deleted = await repository.replace_all({}, "movies0")

        assert deleted == 3
        assert await repository.count("movies0") == 0
        assert await repository.count("movies1") == 3

    @staticmethod
    async def test_criteria_on_natural_key(repository: DocumentRepository) -> None:
        await repository.upsert_batch(_movies(), "movies0")

        assert await repository.replace_all({"id": 2}, "movies0") == 2
        assert await repository.find("movies0", {"title": "Alien"}) == [_movies()[0]]

    @staticmethod
    async def test_rejects_unknown_criteria(repository: DocumentRepository) -> None:
        with pytest.raises(ValueError):
            await repository.replace_all({"showtimes": []}, "movies0")


class TestBulkInsert:
    @staticmethod
    async def test_replace_then_insert_leaves_exactly_items(repository: DocumentRepository) -> None:
        await repository.bulk_insert([{"ID": i, "Name": f"old {i}"} for i in range(5)], "genres")
        items = [{"ID": 10, "Name": "Drama"}, {"ID": 11, "Name": "Comedy"}]

        await repository.replace_all({}, "genres")
        count = await repository.bulk_insert(items, "genres")

        stored = await repository.find("genres")
        assert count == 2
        assert len(stored) == 2
        assert {g["ID"] for g in stored} == {10, 11}

    @staticmethod
    async def test_empty(repository: DocumentRepository) -> None:
        assert await repository.bulk_insert([], "genres") == 0

    @staticmethod
    async def test_repeated_provider_ids_are_all_stored(repository: DocumentRepository) -> None:
        count = await repository.bulk_insert([{"id": 1}, {"id": 1, "name": "again"}], "theaters")

        assert count == 2
        assert await repository.find("theaters") == [{"id": 1}, {"id": 1, "name": "again"}]

    @staticmethod
    async def test_clear_and_insert_in_one_transaction(repository: DocumentRepository) -> None:
        await repository.bulk_insert([{"ID": 1, "Name": "Drama"}], "genres")

        count = await repository.bulk_insert([{"ID": 2}, {"ID": 3}], "genres", clear=True)

        assert count == 2
        assert [g["ID"] for g in await repository.find("genres")] == [2, 3]

    @staticmethod
    async def test_rejected_insert_keeps_previous_content(repository: DocumentRepository) -> None:
        await repository.bulk_insert([{"ID": 1, "Name": "Drama"}], "genres")

        # Sets are not JSON serializable, so the insert fails after the delete ran.
        with pytest.raises(PersistenceError):
            await repository.bulk_insert([{"ID": 2}, {"ID": 3, "tags": {1, 2}}], "genres", clear=True)

        assert await repository.find("genres") == [{"ID": 1, "Name": "Drama"}]

    @staticmethod
    async def test_clear_with_no_items_empties_collection(repository: DocumentRepository) -> None:
        await repository.bulk_insert([{"ID": 1}], "genres")

        assert await repository.bulk_insert([], "genres", clear=True) == 0
        assert await repository.count("genres") == 0


@pytest.fixture
async def offline(tmp_path: Path) -> DocumentRepository:
    # SQLite cannot create a database file in a missing directory.
    db = DatabaseConnection(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'cinefeed.db'}", echo=False)
    yield DocumentRepository(db, imdb_keyed={"extraimages"})
    await db.dispose()


class TestUnreachableStore:
    @staticmethod
    async def test_upsert_batch(offline: DocumentRepository) -> None:
        with pytest.raises(PersistenceError) as exc_info:
            await offline.upsert_batch([{"id": 1, "title": "Alien"}], "movies0")
        assert exc_info.value.collection == "movies0"

    @staticmethod
    async def test_find(offline: DocumentRepository) -> None:
        with pytest.raises(PersistenceError):
            await offline.find("movies0")

    @staticmethod
    async def test_count(offline: DocumentRepository) -> None:
        with pytest.raises(PersistenceError):
            await offline.count("movies0")

    @staticmethod
    async def test_replace_all(offline: DocumentRepository) -> None:
        with pytest.raises(PersistenceError):
            await offline.replace_all({}, "movies0")

    @staticmethod
    async def test_bulk_insert(offline: DocumentRepository) -> None:
        with pytest.raises(PersistenceError):
            await offline.bulk_insert([{"ID": 1}], "genres", clear=True)
