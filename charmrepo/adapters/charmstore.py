"""
A Repository backed by the charm store HTTP registry.

Archives are cached in a CacheStore and re-verified on every access; the
registry's archive response is the source of truth for what a cache entry
should contain.
"""
from pathlib import Path
from typing import Optional

import httpx

from charmrepo.adapters.archive_reader import read_bundle_archive, read_charm_archive
from charmrepo.adapters.cache_fs import CacheStore
from charmrepo.adapters.http.registry_client import RegistryClient
from charmrepo.internal.config import RepoSettings
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.artifacts import Bundle, Charm, Repository, RevisionInfo
from charmrepo.kernel.errors import NotFoundError, TransportError, TypeMismatchError
from charmrepo.kernel.reference import Reference

logger = get_logger(__name__)


class CharmStoreRepository(Repository):
    """
    Provides access to charms and bundles published in a charm store.

    The errors raised keep the cause raised by the underlying RegistryClient
    available as `error.cause`.
    """

    def __init__(self, client: RegistryClient, cache: CacheStore):
        self._client = client
        self._cache = cache

    @classmethod
    def from_settings(cls, settings: RepoSettings, http_client: Optional[httpx.Client] = None) -> "CharmStoreRepository":
        repo = cls(
            RegistryClient(settings.registry_url, http_client=http_client),
            CacheStore(settings.cache_dir),
        )
        if settings.test_mode:
            repo = repo.with_test_mode()
        if settings.metadata:
            repo = repo.with_metadata_attrs(settings.metadata)
        return repo

    @property
    def url(self) -> str:
        """Root endpoint URL of the charm store."""
        return self._client.server_url

    @property
    def cache(self) -> CacheStore:
        return self._cache

    def with_test_mode(self) -> "CharmStoreRepository":
        """A repository whose downloads do not increase the store's download stats."""
        return CharmStoreRepository(self._client.with_stats_disabled(), self._cache)

    def with_metadata_attrs(self, attrs: dict[str, str]) -> "CharmStoreRepository":
        """A repository whose requests carry `attrs` as metadata headers."""
        return CharmStoreRepository(self._client.with_metadata(attrs), self._cache)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def get(self, ref: Reference) -> Charm:
        if ref.is_bundle:
            raise TypeMismatchError(f"expected a charm URL, got bundle URL {str(ref)!r}")
        return read_charm_archive(self.archive_path(ref))

    def get_bundle(self, ref: Reference) -> Bundle:
        if not ref.is_bundle:
            raise TypeMismatchError(f"expected a bundle URL, got charm URL {str(ref)!r}")
        return read_bundle_archive(self.archive_path(ref))

    def archive_path(self, ref: Reference) -> Path:
        """
        Returns a local path to the verified archive of `ref`, downloading it
        into the cache unless a matching copy is already there.
        """
        self._cache.ensure_dir()
        kind = ref.kind
        try:
            with self._client.get_archive(ref) as archive:
                return self._cache.store(archive, kind)
        except NotFoundError as e:
            raise NotFoundError(f"cannot retrieve {str(ref)!r}: {kind} not found") from e
        except TransportError as e:
            raise TransportError(f"cannot retrieve {kind} {str(ref)!r}: {e}") from e

    def latest(self, *refs: Reference) -> list[RevisionInfo]:
        if not refs:
            return []

        keys = [ref.stripped() for ref in refs]
        # ignore-auth keeps non-public entities from failing the whole request.
        try:
            results = self._client.meta_any(
                dict.fromkeys(keys),
                includes=("id-revision", "hash256"),
                ignore_auth=True,
            )
        except (NotFoundError, TransportError) as e:
            raise TransportError(f"cannot get metadata from the charm store: {e}") from e

        revisions = []
        for key in keys:
            result = results.get(key)
            if result is None or result.meta.id_revision is None:
                revisions.append(RevisionInfo(error=NotFoundError(f"charm not found in {self.url!r}: {key}")))
                continue
            revisions.append(RevisionInfo(
                revision=result.meta.id_revision.revision,
                hash=result.meta.hash256.sum if result.meta.hash256 else "",
            ))
        logger.debug("latest revisions", requested=len(keys), found=sum(1 for r in revisions if r.ok))
        return revisions

    def resolve(self, ref: Reference) -> tuple[Reference, list[str]]:
        if ref.is_resolved:
            return ref, []

        key = str(ref)
        try:
            results = self._client.meta_any([key], includes=("id", "supported-series"))
        except NotFoundError as e:
            raise self._not_resolved(ref) from e
        except TransportError as e:
            raise TransportError(f"cannot resolve charm URL {key!r}: {e}") from e

        result = results.get(key)
        resolved_id = result.id if result else None
        if resolved_id is None and result and result.meta.id:
            resolved_id = result.meta.id.id
        if resolved_id is None:
            raise self._not_resolved(ref)

        resolved = Reference.parse(resolved_id)
        series = result.meta.supported_series.supported_series if result.meta.supported_series else []
        logger.debug("resolved reference", ref=key, resolved=str(resolved))
        return resolved, list(series)

    @staticmethod
    def _not_resolved(ref: Reference) -> NotFoundError:
        return NotFoundError(f"cannot resolve URL {str(ref)!r}: {ref.kind_description} not found")
