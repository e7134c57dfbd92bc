"""
A Repository that checks charms and bundles out of a git remote.

Every call clones the remote afresh into a scratch directory, reads the
artifact from the working tree, and removes the scratch directory again.
There is no cache; the clone is trusted as-is.
"""
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from charmrepo.adapters.archive_reader import read_bundle_dir, read_charm_dir, series_for_charm
from charmrepo.internal.constants import CLONE_TEMP_PREFIX, DEFAULT_GIT_BINARY
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.artifacts import Bundle, Charm, Repository, RevisionInfo
from charmrepo.kernel.errors import (
    CharmRepoError,
    MissingSeriesError,
    TransportError,
    TypeMismatchError,
)
from charmrepo.kernel.reference import DEFAULT_POINTER, POINTER_SEPARATOR, Reference

logger = get_logger(__name__)


class GitRepository(Repository):
    """
    Describes a git remote used for checking out charm code.

    `reference` is whatever git can check out (branch, tag, commit); given the
    git revision won't always match the charm revision, it is kept apart
    from the charm reference.
    """

    def __init__(self, remote_uri: str, reference: str = DEFAULT_POINTER, git_binary: str = DEFAULT_GIT_BINARY):
        if not remote_uri:
            raise ValueError("remote_uri cannot be empty")
        self.remote_uri = remote_uri
        self.reference = reference or DEFAULT_POINTER
        self._git_binary = git_binary

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "GitRepository":
        """Builds a repository from '<remote-uri>[?<pointer>]'."""
        remote, _, pointer = url.partition(POINTER_SEPARATOR)
        return cls(remote, pointer or DEFAULT_POINTER, **kwargs)

    @classmethod
    def from_reference(cls, ref: Reference, **kwargs) -> "GitRepository":
        return cls(ref.name, ref.backend_ref, **kwargs)

    def __repr__(self) -> str:
        return f"GitRepository({self.remote_uri!r}, reference={self.reference!r})"

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def _git(self, *args: str) -> str:
        command = [self._git_binary, *args]
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise TransportError(f"git executable {self._git_binary!r} not found") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise TransportError(f"git {args[0]} failed for {self.remote_uri!r}: {stderr}") from e
        return completed.stdout.strip()

    @contextmanager
    def checkout(self, pointer: Optional[str] = None) -> Iterator[tuple[Path, str]]:
        """
        Clones the remote and checks out `pointer`, or `reference` when none
        is given.

        Yields the working tree and the checked-out commit id. The scratch
        directory is removed when the context exits.
        """
        with tempfile.TemporaryDirectory(prefix=CLONE_TEMP_PREFIX) as scratch:
            tree = Path(scratch) / "tree"
            pointer = pointer or self.reference
            logger.info("cloning remote", remote=self.remote_uri, reference=pointer)
            self._git("clone", "--quiet", "--recurse-submodules", self.remote_uri, str(tree))
            if pointer != DEFAULT_POINTER:
                self._git("-C", str(tree), "checkout", "--quiet", pointer)
            commit = self._git("-C", str(tree), "rev-parse", "HEAD")
            yield tree, commit

    def _pointer(self, ref: Reference) -> str:
        """A pointer carried by `ref` wins over the one this repository was built with."""
        if ref.backend_ref and ref.backend_ref != DEFAULT_POINTER:
            return ref.backend_ref
        return self.reference

    def _source(self, pointer: str) -> str:
        return f"{self.remote_uri}{POINTER_SEPARATOR}{pointer}"

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def get(self, ref: Reference) -> Charm:
        if ref.is_bundle:
            raise TypeMismatchError(f"expected a charm URL, got bundle URL {str(ref)!r}")
        pointer = self._pointer(ref)
        with self.checkout(pointer) as (tree, _):
            return read_charm_dir(tree, source=self._source(pointer))

    def get_bundle(self, ref: Reference) -> Bundle:
        if not ref.is_bundle:
            raise TypeMismatchError(f"expected a bundle URL, got charm URL {str(ref)!r}")
        pointer = self._pointer(ref)
        with self.checkout(pointer) as (tree, _):
            return read_bundle_dir(tree, source=self._source(pointer))

    def resolve(self, ref: Reference) -> tuple[Reference, list[str]]:
        if ref.series == "":
            raise MissingSeriesError(f"no series specified for {ref}")
        if ref.is_resolved:
            return ref, []
        if ref.is_bundle:
            # Bundles do not have revision files and the revision is not
            # included in metadata, so they always resolve to revision 0.
            return ref.with_revision(0), []
        charm = self.get(ref)
        series_for_charm(ref.series, charm.meta.series)
        return ref.with_revision(charm.revision), list(charm.meta.series)

    def latest(self, *refs: Reference) -> list[RevisionInfo]:
        """
        Checks every reference against a fresh checkout. The hash of each
        slot is the commit the revision was read from.
        """
        revisions = []
        for ref in refs:
            try:
                revisions.append(self._latest_one(ref.with_revision(-1)))
            except CharmRepoError as e:
                revisions.append(RevisionInfo(error=e))
        return revisions

    def _latest_one(self, ref: Reference) -> RevisionInfo:
        if ref.series == "":
            raise MissingSeriesError(f"no series specified for {ref}")
        with self.checkout(self._pointer(ref)) as (tree, commit):
            if ref.is_bundle:
                read_bundle_dir(tree)
                return RevisionInfo(revision=0, hash=commit)
            charm = read_charm_dir(tree)
            series_for_charm(ref.series, charm.meta.series)
            return RevisionInfo(revision=charm.revision, hash=commit)
