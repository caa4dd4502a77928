import sqlite3
import threading

import pytest

from stockvoice.data.repository import SQLitePartsRepository, create_parts_repository, InMemoryPartsRepository
from stockvoice.errors import StorageError


@pytest.fixture
def repo(tmp_path):
    r = SQLitePartsRepository(tmp_path / "data" / "parts.db", pool_size=3)
    yield r
    r.close()


def test_creates_database_and_schema(tmp_path, repo):
    assert (tmp_path / "data" / "parts.db").exists()
    repo.ping()
    assert repo.all_parts() == []


def test_guarded_update_refuses_negative_result(repo):
    part = repo.insert("Toyota", "bremžu disks", "Corolla", 2)
    assert repo.adjust_quantity(part.id, -3) is None
    assert repo.get(part.id).quantity == 2
    assert repo.adjust_quantity(part.id, -2) == 0


def test_adjust_missing_row_returns_none(repo):
    assert repo.adjust_quantity(999, 1) is None


def test_insert_of_existing_key_becomes_increment(repo):
    first = repo.insert("Toyota", "bremžu disks", "Corolla", 2)
    second = repo.insert("Toyota", "bremžu disks", "Corolla", 3)
    assert second.id == first.id
    assert second.quantity == 5
    assert len(repo.all_parts()) == 1


def test_schema_rejects_negative_quantity(tmp_path, repo):
    with sqlite3.connect(tmp_path / "data" / "parts.db") as conn:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO parts (manufacturer, part, model, quantity) VALUES ('a', 'b', 'c', -1)"
            )


def test_update_and_delete(repo):
    a = repo.insert("Toyota", "bremžu disks", "Corolla", 2)
    b = repo.insert("BMW", "filtrs", "E46", 1)

    assert repo.update(a.id, "Toyota", "bremžu disks", "Camry", 7) is True
    assert repo.get(a.id).model == "Camry"
    assert repo.get(a.id).quantity == 7
    assert repo.update(12345, "x", "y", "z", 1) is False
    with pytest.raises(ValueError):
        repo.update(a.id, "Toyota", "bremžu disks", "Camry", -1)

    assert repo.delete([b.id, 9999]) == 1
    assert repo.delete([]) == 0
    assert [p.id for p in repo.all_parts()] == [a.id]


def test_update_to_existing_key_is_storage_error(repo):
    a = repo.insert("Toyota", "bremžu disks", "Corolla", 2)
    repo.insert("Toyota", "bremžu disks", "Camry", 1)
    with pytest.raises(StorageError):
        repo.update(a.id, "Toyota", "bremžu disks", "Camry", 2)


def test_concurrent_adds_are_not_lost(repo):
    part = repo.insert("Toyota", "bremžu disks", "Corolla", 0)

    def worker():
        for _ in range(25):
            repo.adjust_quantity(part.id, 1)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert repo.get(part.id).quantity == 150


def test_closed_repository_raises_storage_error(tmp_path):
    r = SQLitePartsRepository(tmp_path / "parts.db", pool_size=1)
    r.close()
    with pytest.raises(StorageError):
        r.all_parts()


def test_factory_selects_implementation(tmp_path):
    assert isinstance(create_parts_repository("memory"), InMemoryPartsRepository)
    r = create_parts_repository("sqlite", db_path=tmp_path / "p.db", pool_size=1)
    assert isinstance(r, SQLitePartsRepository)
    r.close()
    with pytest.raises(ValueError):
        create_parts_repository("sqlite")


def test_connection_checked_out_during_close_is_closed_on_return(tmp_path):
    r = SQLitePartsRepository(tmp_path / "parts.db", pool_size=1)
    with r._connection() as conn:
        r.close()
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_waiting_caller_is_released_when_repository_closes(tmp_path):
    r = SQLitePartsRepository(tmp_path / "parts.db", pool_size=1)
    errors = []

    def worker():
        try:
            r.all_parts()
        except StorageError as err:
            errors.append(err)

    with r._connection():
        t = threading.Thread(target=worker)
        t.start()
        t.join(timeout=0.5)
        assert t.is_alive()
        r.close()
    t.join(timeout=5)
    assert not t.is_alive()
    assert len(errors) == 1
