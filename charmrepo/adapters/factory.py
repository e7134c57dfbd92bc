from typing import Optional

import httpx

from charmrepo.adapters.charmstore import CharmStoreRepository
from charmrepo.adapters.git.repository import GitRepository
from charmrepo.internal.config import RepoSettings
from charmrepo.kernel.artifacts import Repository
from charmrepo.kernel.errors import InvalidReferenceError
from charmrepo.kernel.reference import Reference


class RepositoryFactory:
    @staticmethod
    def create(ref: Reference, settings: RepoSettings, http_client: Optional[httpx.Client] = None) -> Repository:
        if ref.is_remote:
            return GitRepository.from_reference(ref)
        elif ref.schema == "cs":
            return CharmStoreRepository.from_settings(settings, http_client=http_client)
        else:
            raise InvalidReferenceError(f"no repository for {ref.schema!r} references: {ref}")
