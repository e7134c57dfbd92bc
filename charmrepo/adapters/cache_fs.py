"""
A flat, shared, on-disk cache of verified registry archives.

Layout: {cache_dir}/{quoted entity id}.{charm|bundle}

The filesystem is the index: a correctly named file whose content matches the
registry's declared hash and size is a cache hit. New content is streamed into
a temporary file in the same directory, verified, and only then renamed into
place, so concurrent readers and writers (threads or processes) never observe
a partial entry. No locks are taken; every lookup re-verifies.
"""
import os
import tempfile
from pathlib import Path
from typing import Optional

from charmrepo.internal.constants import CACHE_KINDS, DOWNLOAD_TEMP_PREFIX
from charmrepo.internal.hashing import HashAccumulator, TeeWriter, copy_stream, verify_file
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.artifacts import ArchiveStream
from charmrepo.kernel.errors import CacheUnavailableError, TransportError
from charmrepo.kernel.reference import quote_identity

logger = get_logger(__name__)


class CacheStore:
    """
    Owns a single cache directory.

    Parameters
    ----------
    cache_dir:
        Directory holding cached archives. Required; an empty value raises
        CacheUnavailableError immediately.
    """

    def __init__(self, cache_dir: Optional[os.PathLike | str]):
        if cache_dir is None or str(cache_dir).strip() == "":
            raise CacheUnavailableError("charm cache directory path is empty")
        self._cache_dir = Path(cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def ensure_dir(self) -> Path:
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheUnavailableError(f"cannot create the cache directory {self._cache_dir}") from e
        return self._cache_dir

    def path_for(self, identity: str, kind: str) -> Path:
        if kind not in CACHE_KINDS:
            raise ValueError(f"unknown artifact kind: {kind!r}")
        return self._cache_dir / f"{quote_identity(identity)}.{kind}"

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, identity: str, kind: str, expected_hash: str, expected_size: int) -> Optional[Path]:
        """
        Returns the cached path for `identity` if its content verifies, else None.
        A missing, unreadable or mismatching file is a miss, never an error.
        """
        path = self.path_for(identity, kind)
        try:
            result = verify_file(path, expected_hash, expected_size)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("cache entry unreadable", path=str(path), error=str(e))
            return None
        if not result.ok:
            logger.debug(
                "cache entry stale",
                path=str(path),
                size=result.size,
                expected_size=expected_size,
            )
            return None
        return path

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store(self, archive: ArchiveStream, kind: str) -> Path:
        """
        Makes `archive` available in the cache and returns its path.

        An existing entry that verifies is reused without reading the stream.
        Otherwise the stream is copied into a same-directory temporary file
        while being hashed, checked, and atomically promoted. On any failure
        the temporary file is removed and nothing is promoted.
        """
        path = self.lookup(archive.id, kind, archive.hash, archive.size)
        if path is not None:
            logger.debug("cache hit", id=archive.id, path=str(path))
            return path

        path = self.path_for(archive.id, kind)
        logger.debug("cache miss", id=archive.id, path=str(path))

        try:
            fd, temp_name = tempfile.mkstemp(dir=self._cache_dir, prefix=DOWNLOAD_TEMP_PREFIX)
        except OSError as e:
            raise TransportError("cannot make temporary file") from e
        temp_path = Path(temp_name)

        try:
            accumulator = HashAccumulator()
            # The handle must be closed before the rename; Windows refuses to
            # rename open files.
            with os.fdopen(fd, "wb") as f:
                try:
                    copy_stream(archive.chunks, TeeWriter(accumulator, f))
                except OSError as e:
                    raise TransportError(f"cannot write entity archive for {archive.id!r}") from e

            result = accumulator.result(archive.hash, archive.size)
            if not result.ok:
                logger.warning(
                    "archive verification failed",
                    id=archive.id,
                    size=result.size,
                    expected_size=archive.size,
                )
            result.check(repr(archive.id))

            try:
                os.replace(temp_path, path)
            except OSError as e:
                raise TransportError("cannot move the entity archive") from e
            logger.info("archive cached", id=archive.id, path=str(path), size=result.size)
            return path
        finally:
            if temp_path.exists():
                temp_path.unlink()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_entries(self) -> list[Path]:
        """Promoted entries only; in-flight downloads are never listed."""
        if not self._cache_dir.is_dir():
            return []
        entries = []
        for entry in sorted(self._cache_dir.iterdir()):
            if entry.name.startswith(DOWNLOAD_TEMP_PREFIX) or not entry.is_file():
                continue
            if entry.suffix.lstrip(".") in CACHE_KINDS:
                entries.append(entry)
        return entries

