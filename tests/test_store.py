import json
import os
import random
import stat

import pytest

from services import gen_id
from store import JsonFileStore, MemoryStore, StorageFailure

RECORDS = [
    {'id': 'ORD_b', 'items': [{'sku': 'x'}], 'total': 10.5, 'createdAt': 2},
    {'id': 'ORD_a', 'items': [{'sku': 'y'}], 'total': 0, 'createdAt': 1, 'note': 'gift'},
]


def test_round_trip(tmp_path):
    store = JsonFileStore(str(tmp_path / 'orders.json'))
    store.write_all(RECORDS)
    assert store.read_all() == RECORDS


def test_file_is_pretty_printed(tmp_path):
    path = tmp_path / 'orders.json'
    JsonFileStore(str(path)).write_all(RECORDS)
    text = path.read_text()
    assert text == json.dumps(RECORDS, indent=2)


def test_ensure_exists_creates_empty_collection(tmp_path):
    path = tmp_path / 'data' / 'reviews.json'
    store = JsonFileStore(str(path))
    store.ensure_exists()
    assert json.loads(path.read_text()) == []

    store.write_all(RECORDS)
    store.ensure_exists()
    assert store.read_all() == RECORDS


def test_missing_file_reads_empty(tmp_path):
    assert JsonFileStore(str(tmp_path / 'nope.json')).read_all() == []
    assert JsonFileStore(str(tmp_path / 'nope.json'), strict=True).read_all() == []


@pytest.mark.parametrize('content', ['{not json', '{"id": 1}', '42'])
def test_corrupt_file_fails_open(tmp_path, content):
    path = tmp_path / 'orders.json'
    path.write_text(content)
    assert JsonFileStore(str(path)).read_all() == []


def test_empty_file_reads_empty(tmp_path):
    path = tmp_path / 'orders.json'
    path.write_text('')
    assert JsonFileStore(str(path), strict=True).read_all() == []


def test_corrupt_file_strict(tmp_path):
    path = tmp_path / 'orders.json'
    path.write_text('[{"id": ')
    with pytest.raises(StorageFailure):
        JsonFileStore(str(path), strict=True).read_all()


def test_write_leaves_no_temp_files(tmp_path):
    store = JsonFileStore(str(tmp_path / 'orders.json'))
    store.write_all(RECORDS)
    store.write_all(RECORDS[:1])
    assert [p.name for p in tmp_path.iterdir()] == ['orders.json']


def test_memory_store_copies():
    store = MemoryStore(RECORDS)
    records = store.read_all()
    records[0]['total'] = 999
    records.pop()
    assert store.read_all() == RECORDS


def test_gen_id_shape():
    rng = random.Random(7)
    for _ in range(200):
        oid = gen_id('ORD_', rng)
        assert oid.startswith('ORD_')
        suffix = oid[len('ORD_'):]
        assert len(suffix) == 7
        assert all(c in '0123456789abcdefghijklmnopqrstuvwxyz' for c in suffix)


def test_gen_id_is_driven_by_rng():
    assert gen_id('REV_', random.Random(1)) == gen_id('REV_', random.Random(1))


@pytest.mark.parametrize('content', ['[1, null]', '[{"id": "ORD_a"}, "ORD_b"]'])
def test_non_object_entries_fail_open(tmp_path, content):
    path = tmp_path / 'orders.json'
    path.write_text(content)
    assert JsonFileStore(str(path)).read_all() == []
    with pytest.raises(StorageFailure):
        JsonFileStore(str(path), strict=True).read_all()


def test_new_files_are_world_readable(tmp_path):
    path = tmp_path / 'reviews.json'
    store = JsonFileStore(str(path))
    store.ensure_exists()
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644
    store.write_all(RECORDS)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644


def test_write_keeps_existing_mode(tmp_path):
    path = tmp_path / 'orders.json'
    path.write_text('[]')
    os.chmod(path, 0o640)
    JsonFileStore(str(path)).write_all(RECORDS)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640
