"""
Streaming content hashing and verification.

Archives may be large, so nothing here buffers a whole artifact: data flows
through a `TeeWriter` into a `HashAccumulator` and a file at the same time.
"""
import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Protocol

from charmrepo.internal.constants import ARCHIVE_HASH_ALGORITHM, READ_CHUNK_SIZE
from charmrepo.kernel.errors import HashMismatchError, SizeMismatchError


class Writable(Protocol):
    def write(self, data: bytes) -> int:
        ...


class HashAccumulator:
    """A write-only sink that hashes and counts everything written to it."""

    def __init__(self, algorithm: str = ARCHIVE_HASH_ALGORITHM):
        self._hash = hashlib.new(algorithm)
        self.size = 0

    def write(self, data: bytes) -> int:
        self._hash.update(data)
        self.size += len(data)
        return len(data)

    def hexdigest(self) -> str:
        return self._hash.hexdigest()

    def result(self, expected_hash: str, expected_size: int) -> "VerificationResult":
        return VerificationResult(
            size=self.size,
            hash=self.hexdigest(),
            expected_size=expected_size,
            expected_hash=expected_hash,
        )


class TeeWriter:
    """Fans every write out to all of its sinks, in order."""

    def __init__(self, *sinks: Writable):
        self._sinks = sinks

    def write(self, data: bytes) -> int:
        for sink in self._sinks:
            sink.write(data)
        return len(data)


def copy_stream(chunks: Iterable[bytes], sink: Writable) -> int:
    copied = 0
    for chunk in chunks:
        if chunk:
            sink.write(chunk)
            copied += len(chunk)
    return copied


def iter_file(f: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> Iterable[bytes]:
    return iter(lambda: f.read(chunk_size), b"")


@dataclass(frozen=True)
class VerificationResult:
    size: int
    hash: str
    expected_size: int
    expected_hash: str

    @property
    def ok(self) -> bool:
        return self.size == self.expected_size and self.hash == self.expected_hash

    def check(self, label: str = "archive") -> None:
        """Raises the matching integrity error; size is checked before hash."""
        if self.size != self.expected_size:
            raise SizeMismatchError(
                f"size mismatch for {label}: expected {self.expected_size} bytes, got {self.size}; network corruption?",
                expected=self.expected_size,
                observed=self.size,
            )
        if self.hash != self.expected_hash:
            raise HashMismatchError(
                f"hash mismatch for {label}; network corruption?",
                expected=self.expected_hash,
                observed=self.hash,
            )


def hash_file(path: Path, algorithm: str = ARCHIVE_HASH_ALGORITHM) -> tuple[int, str]:
    accumulator = HashAccumulator(algorithm)
    with open(path, "rb") as f:
        copy_stream(iter_file(f), accumulator)
    return accumulator.size, accumulator.hexdigest()


def verify_file(path: Path, expected_hash: str, expected_size: int) -> VerificationResult:
    size, digest = hash_file(path)
    return VerificationResult(size=size, hash=digest, expected_size=expected_size, expected_hash=expected_hash)
