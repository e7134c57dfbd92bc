import os
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from charmrepo.adapters.cache_fs import CacheStore
from charmrepo.kernel.artifacts import ArchiveStream
from charmrepo.kernel.errors import (
    CacheUnavailableError,
    HashMismatchError,
    SizeMismatchError,
    TransportError,
)
from tests.adapters.fakes import sha384

ENTITY_ID = "cs:trusty/wordpress-42"
CONTENT = b"charm archive bytes" * 100


def archive_stream(content=CONTENT, declared_hash=None, declared_size=None, chunk_size=64):
    chunks = (content[i:i + chunk_size] for i in range(0, len(content), chunk_size))
    return ArchiveStream(
        id=ENTITY_ID,
        hash=declared_hash or sha384(content),
        size=len(content) if declared_size is None else declared_size,
        chunks=chunks,
    )


@pytest.fixture
def store(cache_dir):
    store = CacheStore(cache_dir)
    store.ensure_dir()
    return store


# --- Construction ---

@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_cache_dir_fails_at_construction(value):
    with pytest.raises(CacheUnavailableError, match="cache directory path is empty"):
        CacheStore(value)


def test_ensure_dir_creates_directory(cache_dir):
    store = CacheStore(cache_dir / "nested")
    assert store.ensure_dir().is_dir()


def test_ensure_dir_failure_is_cache_unavailable(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    store = CacheStore(blocker / "cache")
    with pytest.raises(CacheUnavailableError) as excinfo:
        store.ensure_dir()
    assert isinstance(excinfo.value.cause, OSError)


def test_path_for_uses_quoted_identity_and_kind(store, cache_dir):
    assert store.path_for(ENTITY_ID, "charm") == cache_dir / "cs_3a_trusty_2f_wordpress-42.charm"
    with pytest.raises(ValueError):
        store.path_for(ENTITY_ID, "tarball")


# --- Store ---

def test_store_promotes_verified_archive(store, cache_dir):
    path = store.store(archive_stream(), "charm")
    assert path == store.path_for(ENTITY_ID, "charm")
    assert path.read_bytes() == CONTENT
    assert os.listdir(cache_dir) == [path.name]


def test_cache_hit_does_not_read_stream_or_rewrite(store):
    path = store.store(archive_stream(), "charm")
    before = os.stat(path)

    def exploding_chunks():
        raise AssertionError("stream must not be read on a cache hit")
        yield b""

    hit = store.store(
        ArchiveStream(id=ENTITY_ID, hash=sha384(CONTENT), size=len(CONTENT), chunks=exploding_chunks()),
        "charm",
    )
    after = os.stat(hit)
    assert hit == path
    assert (before.st_ino, before.st_mtime_ns) == (after.st_ino, after.st_mtime_ns)


def test_stale_entry_is_replaced(store):
    path = store.path_for(ENTITY_ID, "charm")
    path.write_bytes(b"corrupted")
    assert store.lookup(ENTITY_ID, "charm", sha384(CONTENT), len(CONTENT)) is None

    result = store.store(archive_stream(), "charm")
    assert result == path
    assert path.read_bytes() == CONTENT


def test_size_mismatch_is_not_promoted(store, cache_dir):
    with pytest.raises(SizeMismatchError):
        store.store(archive_stream(declared_size=len(CONTENT) + 1), "charm")
    assert os.listdir(cache_dir) == []


def test_hash_mismatch_is_not_promoted(store, cache_dir):
    with pytest.raises(HashMismatchError):
        store.store(archive_stream(declared_hash=sha384(b"something else")), "charm")
    assert os.listdir(cache_dir) == []


def test_corrupt_download_leaves_existing_valid_entry_alone(store):
    other = b"other revision"
    path = store.store(
        ArchiveStream(id=ENTITY_ID, hash=sha384(other), size=len(other), chunks=iter([other])),
        "charm",
    )
    with pytest.raises(HashMismatchError):
        store.store(archive_stream(declared_hash=sha384(b"nope")), "charm")
    assert path.read_bytes() == other


def test_stream_failure_discards_temp_file(store, cache_dir):
    def broken_chunks():
        yield b"partial"
        raise ConnectionResetError("connection dropped")

    with pytest.raises(TransportError) as excinfo:
        store.store(ArchiveStream(id=ENTITY_ID, hash="00", size=100, chunks=broken_chunks()), "charm")
    assert isinstance(excinfo.value.cause, ConnectionResetError)
    assert os.listdir(cache_dir) == []


def test_rename_failure_is_transport_error(store, cache_dir, mocker):
    mocker.patch("charmrepo.adapters.cache_fs.os.replace", side_effect=PermissionError("denied"))
    with pytest.raises(TransportError, match="cannot move the entity archive"):
        store.store(archive_stream(), "charm")
    assert os.listdir(cache_dir) == []


def test_temp_files_are_created_in_cache_dir(store, cache_dir, mocker):
    seen = []
    real_replace = os.replace

    def spy_replace(src, dst):
        seen.append(os.path.dirname(os.fspath(src)))
        return real_replace(src, dst)

    mocker.patch("charmrepo.adapters.cache_fs.os.replace", side_effect=spy_replace)
    store.store(archive_stream(), "charm")
    assert seen == [str(cache_dir)]


# --- Concurrency ---

def test_concurrent_writers_publish_one_valid_file(store, cache_dir):
    barrier = threading.Barrier(2, timeout=5)

    def racing_chunks():
        yield CONTENT[:100]
        # Both writers are mid-download at this point.
        barrier.wait()
        yield CONTENT[100:]

    def fetch():
        return store.store(
            ArchiveStream(id=ENTITY_ID, hash=sha384(CONTENT), size=len(CONTENT), chunks=racing_chunks()),
            "charm",
        )

    with ThreadPoolExecutor(max_workers=2) as pool:
        paths = [f.result() for f in [pool.submit(fetch), pool.submit(fetch)]]

    assert paths[0] == paths[1]
    assert paths[0].read_bytes() == CONTENT
    assert os.listdir(cache_dir) == [paths[0].name]


def test_reader_never_sees_partial_entry(store):
    path = store.path_for(ENTITY_ID, "charm")
    observed = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            try:
                observed.append(path.read_bytes())
            except FileNotFoundError:
                continue

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for _ in range(20):
            store.store(archive_stream(), "charm")
            path.unlink()
    finally:
        stop.set()
        thread.join()

    assert all(data == CONTENT for data in observed)


# --- Listing ---

def test_list_entries_skips_in_flight_downloads(store, cache_dir):
    store.store(archive_stream(), "charm")
    (cache_dir / "charm-download12345").write_bytes(b"partial")
    (cache_dir / "notes.txt").write_text("unrelated")
    assert [p.name for p in store.list_entries()] == ["cs_3a_trusty_2f_wordpress-42.charm"]


def test_list_entries_on_missing_dir(tmp_path):
    assert CacheStore(tmp_path / "absent").list_entries() == []
