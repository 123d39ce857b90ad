import pytest

from hashserve import ConflictError, DedupIndex, Generation, StoredObject


A = "11111111-1111-4111-8111-111111111111"
B = "22222222-2222-4222-8222-222222222222"
C = "33333333-3333-4333-8333-333333333333"


def v2_record(identifier, hash, filename="a.txt"):
    return StoredObject(identifier, filename, hash,
                        "2024/05/17/{0}_{1}".format(identifier, filename))


def test_stored_object_defaults_to_v2():
    record = StoredObject(A, "a.txt", "h", "path")
    assert record.generation is Generation.V2

    record = StoredObject(A, "a.txt", "h", "path", "legacy")
    assert record.generation is Generation.LEGACY


def test_insert_and_find(index):
    record = v2_record(A, "hash-a")
    stored = index.insert(record)

    assert stored == record
    assert index.find_by_hash("hash-a") == record
    assert index.find_by_identifier(A) == record


def test_find_missing(index):
    assert index.find_by_hash("nope") is None
    assert index.find_by_identifier(A) is None


def test_insert_duplicate_hash(index):
    index.insert(v2_record(A, "hash-a"))

    with pytest.raises(ConflictError):
        index.insert(v2_record(B, "hash-a", "b.txt"))

    assert index.find_by_identifier(B) is None
    assert len(index) == 1


def test_insert_duplicate_identifier(index):
    index.insert(v2_record(A, "hash-a"))

    with pytest.raises(ConflictError):
        index.insert(v2_record(A, "hash-b"))


def test_insert_or_fetch(index):
    first, inserted = index.insert_or_fetch(v2_record(A, "hash-a"))
    assert inserted
    assert first.identifier == A

    winner, inserted = index.insert_or_fetch(v2_record(B, "hash-a", "b.txt"))
    assert not inserted
    assert winner == first


def test_insert_or_fetch_identifier_collision(index):
    index.insert(v2_record(A, "hash-a"))

    with pytest.raises(ConflictError):
        index.insert_or_fetch(v2_record(A, "hash-b"))


def test_legacy_fallback_synthesizes_path(index):
    record = StoredObject(A, "old.txt", "hash-old", None, Generation.LEGACY)
    stored = index.insert_legacy(record)

    expected = StoredObject(A, "old.txt", "hash-old", A + "_old.txt", Generation.LEGACY)
    assert stored == expected
    assert index.find_by_identifier(A) == expected
    assert index.find_by_hash("hash-old") == expected


def test_hash_unique_across_generations(index):
    index.insert_legacy(StoredObject(A, "old.txt", "hash-a", None, Generation.LEGACY))

    with pytest.raises(ConflictError):
        index.insert(v2_record(B, "hash-a"))

    winner, inserted = index.insert_or_fetch(v2_record(B, "hash-a"))
    assert not inserted
    assert winner.identifier == A
    assert winner.generation is Generation.LEGACY

    index.insert(v2_record(C, "hash-c"))
    with pytest.raises(ConflictError):
        index.insert_legacy(StoredObject(B, "old.txt", "hash-c", None, Generation.LEGACY))


def test_find_by_identifier_prefers_v2(index):
    index.insert_legacy(StoredObject(A, "old.txt", "hash-old", None, Generation.LEGACY))
    index.insert(v2_record(B, "hash-new"))

    assert index.find_by_identifier(A).generation is Generation.LEGACY
    assert index.find_by_identifier(B).generation is Generation.V2


def test_count_and_contains(index):
    assert index.count() == 0

    index.insert_legacy(StoredObject(A, "old.txt", "hash-a", None, Generation.LEGACY))
    index.insert(v2_record(B, "hash-b"))

    assert index.count() == 2
    assert len(index) == 2
    assert A in index
    assert B in index
    assert C not in index


def test_database_file_persists(layout, tmp_path):
    database = tmp_path / "data" / "data.db"

    index = DedupIndex(layout, str(database))
    index.insert(v2_record(A, "hash-a"))
    index.close()

    assert database.is_file()

    index = DedupIndex(layout, str(database))
    assert index.find_by_identifier(A) == v2_record(A, "hash-a")
    index.close()
