"""
Defines the abstract contract for fetching and resolving artifacts.

This is a core part of the Kernel. It defines the 'port' for which
registry and version-control adapters must be provided.
"""
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from charmrepo.kernel.errors import CharmRepoError
from charmrepo.kernel.reference import Reference


@dataclass
class CharmMeta:
    name: str
    summary: str = ""
    description: str = ""
    series: list[str] = field(default_factory=list)
    subordinate: bool = False


@dataclass
class Charm:
    """
    A charm read from a cached archive or a checked-out tree.
    `source` records where it was read from.
    """
    meta: CharmMeta
    revision: int
    source: str


@dataclass
class Bundle:
    data: dict[str, Any]
    readme: str
    source: str


@dataclass
class ArchiveStream:
    """
    An open archive download together with what the registry says it should be.
    `chunks` can be consumed once; the producer closes it.
    """
    id: str
    hash: str
    size: int
    chunks: Iterable[bytes]


@dataclass
class RevisionInfo:
    """
    The latest revision known for one queried reference.
    Exactly one of (revision, hash) or error is meaningful.
    """
    revision: int = -1
    hash: str = ""
    error: Optional[CharmRepoError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Repository(Protocol):
    """
    The interface (port) for any system that can turn a reference into a
    verified local charm or bundle.
    """

    def get(self, ref: Reference) -> Charm:
        """
        Fetches the charm named by `ref`.

        Raises:
            TypeMismatchError: if `ref` names a bundle.
        """
        ...

    def get_bundle(self, ref: Reference) -> Bundle:
        """
        Fetches the bundle named by `ref`.

        Raises:
            TypeMismatchError: if `ref` names a charm.
        """
        ...

    def resolve(self, ref: Reference) -> tuple[Reference, list[str]]:
        """
        Pins `ref` to a concrete revision.

        Returns the resolved reference and the series the artifact supports
        (possibly empty). A reference whose revision is already pinned is
        returned unchanged.
        """
        ...

    def latest(self, *refs: Reference) -> list[RevisionInfo]:
        """
        Reports the latest revision of every reference, in input order.
        References that cannot be found are reported per slot, not raised.
        """
        ...

    def close(self) -> None:
        """Releases whatever connections the repository holds."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
