"""
Wiring shared by the CLI commands: settings, logging and repository selection.
"""
from pathlib import Path
from typing import Optional

from charmrepo.adapters.factory import RepositoryFactory
from charmrepo.internal import paths
from charmrepo.internal.config import RepoSettings
from charmrepo.internal.logging import setup_logging
from charmrepo.kernel.artifacts import Repository
from charmrepo.kernel.reference import Reference


def configure(verbose: bool = False) -> None:
    setup_logging(
        log_level_name="DEBUG" if verbose else "INFO",
        log_file_path=paths.get_log_file(),
        console_output=verbose,
    )


def load_settings(cache_dir: Optional[Path] = None, registry_url: Optional[str] = None) -> RepoSettings:
    settings = RepoSettings.from_env(cache_dir=cache_dir, registry_url=registry_url)
    if settings.cache_dir is None:
        settings = settings.model_copy(update={"cache_dir": paths.get_default_cache_dir()})
    return settings


def parse_reference(raw: str, series: str = "") -> Reference:
    return Reference.parse(raw, default_series=series)


def repository_for(ref: Reference, settings: RepoSettings) -> Repository:
    return RepositoryFactory.create(ref, settings)
