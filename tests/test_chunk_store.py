"""Tests for the ChunkStore and the resume query."""

import threading

import pytest

from common.exceptions import InvalidChunkRequest, ResumeLookupError, StorageError
from server.chunk_index import NamespaceIndex, parse_record_name
from server.chunk_store import ChunkStore

FINGERPRINT = "0123456789abcdef0123456789abcdef"


def test_write_chunk_persists_record(chunk_store, storage_root):
    record = chunk_store.write_chunk(FINGERPRINT, 0, b'hello')

    assert record.index == 0
    assert record.path == storage_root / FINGERPRINT / f'{FINGERPRINT}-0'
    assert record.path.read_bytes() == b'hello'
    assert record.size == 5


def test_write_is_idempotent(chunk_store):
    """Writing one index twice leaves exactly one record holding the last bytes."""
    chunk_store.write_chunk(FINGERPRINT, 3, b'first')
    record = chunk_store.write_chunk(FINGERPRINT, 3, b'second')

    assert chunk_store.stored_indices(FINGERPRINT) == [3]
    assert record.path.read_bytes() == b'second'
    assert [p.name for p in record.path.parent.iterdir()] == [f'{FINGERPRINT}-3']


def test_resume_query_lists_stored_indices(chunk_store):
    for index in (4, 0, 2):
        chunk_store.write_chunk(FINGERPRINT, index, b'x')

    assert chunk_store.stored_indices(FINGERPRINT) == [0, 2, 4]


def test_resume_query_does_not_create_namespace(chunk_store, storage_root):
    """Querying an unknown fingerprint returns [] without touching storage."""
    assert chunk_store.stored_indices(FINGERPRINT) == []
    assert not (storage_root / FINGERPRINT).exists()


def test_index_given_as_string(chunk_store):
    record = chunk_store.write_chunk(FINGERPRINT, '7', b'x')

    assert record.index == 7


def test_fingerprint_is_normalized_to_lower_case(chunk_store, storage_root):
    chunk_store.write_chunk('ABCDEF', 0, b'x')

    assert (storage_root / 'abcdef' / 'abcdef-0').is_file()
    assert chunk_store.stored_indices('AbCdEf') == [0]


@pytest.mark.parametrize('fingerprint', [None, '', '   ', '../etc', 'a/b', '..', 'abc\x00', 'a.b', 'a-b', 'x' * 129])
def test_unsafe_or_missing_fingerprint_rejected(chunk_store, storage_root, fingerprint):
    with pytest.raises(InvalidChunkRequest):
        chunk_store.write_chunk(fingerprint, 0, b'x')

    assert not storage_root.exists() or list(storage_root.iterdir()) == []


@pytest.mark.parametrize('index', [None, '', '-1', -1, 'abc', '1.5', True, '١'])
def test_invalid_index_rejected(chunk_store, index):
    with pytest.raises(InvalidChunkRequest) as exc_info:
        chunk_store.write_chunk(FINGERPRINT, index, b'x')

    assert exc_info.value.fingerprint == FINGERPRINT


def test_empty_payload_rejected(chunk_store):
    with pytest.raises(InvalidChunkRequest):
        chunk_store.write_chunk(FINGERPRINT, 0, b'')


def test_oversized_payload_rejected(storage_root):
    store = ChunkStore(storage_root, max_chunk_bytes=4)

    with pytest.raises(InvalidChunkRequest) as exc_info:
        store.write_chunk(FINGERPRINT, 1, b'12345')

    assert exc_info.value.index == 1


def test_resume_query_requires_fingerprint(chunk_store):
    with pytest.raises(InvalidChunkRequest):
        chunk_store.stored_indices(None)
    with pytest.raises(InvalidChunkRequest):
        chunk_store.stored_indices('../../etc')


def test_hidden_temporary_files_are_ignored(chunk_store, storage_root):
    """In-flight temporary writes are not reported as stored chunks."""
    chunk_store.write_chunk(FINGERPRINT, 0, b'x')
    (storage_root / FINGERPRINT / f'.{FINGERPRINT}-1.abc.tmp').write_bytes(b'partial')

    assert chunk_store.stored_indices(FINGERPRINT) == [0]


def test_failed_write_raises_storage_error(chunk_store, storage_root, monkeypatch):
    """A failing rename leaves no record and no temporary file behind."""
    def failing_replace(src, dst):
        raise OSError(28, 'No space left on device')

    monkeypatch.setattr('server.chunk_store.os.replace', failing_replace)

    with pytest.raises(StorageError) as exc_info:
        chunk_store.write_chunk(FINGERPRINT, 2, b'data')

    assert exc_info.value.retryable
    assert exc_info.value.index == 2
    assert list((storage_root / FINGERPRINT).iterdir()) == []


def test_listing_failure_raises_lookup_error(chunk_store, monkeypatch):
    def failing_scan(cls, namespace_dir, fingerprint):
        raise OSError(5, 'Input/output error')

    monkeypatch.setattr(NamespaceIndex, 'scan', classmethod(failing_scan))

    with pytest.raises(ResumeLookupError) as exc_info:
        chunk_store.stored_indices(FINGERPRINT)

    assert isinstance(exc_info.value, LookupError)
    assert exc_info.value.fingerprint == FINGERPRINT


def test_delete_namespace(chunk_store, storage_root):
    chunk_store.write_chunk(FINGERPRINT, 0, b'x')

    assert chunk_store.delete_namespace(FINGERPRINT) is True
    assert not (storage_root / FINGERPRINT).exists()
    assert chunk_store.delete_namespace(FINGERPRINT) is False


@pytest.mark.parametrize('name, expected', [
    (f'{FINGERPRINT}-0', 0),
    (f'{FINGERPRINT}-42', 42),
    (f'{FINGERPRINT}-007', 7),
    (f'{FINGERPRINT}-', None),
    (f'{FINGERPRINT}--1', None),
    (f'{FINGERPRINT}-1a', None),
    ('other-1', None),
])
def test_parse_record_name(name, expected):
    assert parse_record_name(name, FINGERPRINT) == expected


def test_namespace_index_views(chunk_store, storage_root):
    for index in (0, 1, 3):
        chunk_store.write_chunk(FINGERPRINT, index, b'x')
    (storage_root / FINGERPRINT / f'{FINGERPRINT}-01').write_bytes(b'y')
    (storage_root / FINGERPRINT / 'notes.txt').write_bytes(b'z')

    index = chunk_store.scan(FINGERPRINT)

    assert index.exists
    assert index.count() == 5
    assert index.indices() == [0, 1, 3]
    assert index.missing(5) == [2, 4]
    assert index.unrecognized == ['notes.txt']
    assert sorted(index.duplicates()[1]) == [f'{FINGERPRINT}-01', f'{FINGERPRINT}-1']
    assert [r.index for r in index.ordered()] == [0, 1, 1, 3]


def test_namespace_cannot_collide_with_artifact(chunk_store, merge_engine, storage_root):
    """A fingerprint shaped like '<fp>-<fileName>' is refused instead of failing on the artifact's path."""
    chunk_store.write_chunk('abc', 0, b'merged')
    merge_engine.merge('abc', 'foo', 1)

    with pytest.raises(InvalidChunkRequest) as exc_info:
        chunk_store.write_chunk('abc-foo', 0, b'x')

    assert not exc_info.value.retryable
    assert (storage_root / 'abc-foo').read_bytes() == b'merged'
    with pytest.raises(InvalidChunkRequest):
        chunk_store.stored_indices('abc-foo')


def test_concurrent_writes_of_one_index_leave_one_whole_record(chunk_store, storage_root):
    payloads = [bytes([65 + i]) * (4096 * (i + 1)) for i in range(8)]
    barrier = threading.Barrier(len(payloads))
    errors = []

    def write(payload):
        barrier.wait()
        try:
            chunk_store.write_chunk(FINGERPRINT, 0, payload)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=write, args=(payload,)) for payload in payloads]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    namespace = storage_root / FINGERPRINT
    assert [p.name for p in namespace.iterdir()] == [f'{FINGERPRINT}-0']
    assert (namespace / f'{FINGERPRINT}-0').read_bytes() in payloads
    assert chunk_store.stored_indices(FINGERPRINT) == [0]
