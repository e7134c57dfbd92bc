"""
Runtime configuration.

The cache directory is an explicit value handed to the cache store; nothing
in the library reads it from a global. `RepoSettings.from_env` is how the CLI
and embedding applications build settings from the environment.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from charmrepo.internal.constants import (
    DEFAULT_REGISTRY_URL,
    ENV_CACHE_DIR,
    ENV_REGISTRY_URL,
    ENV_TEST_MODE,
)

_TRUTHY = {"1", "true", "yes", "on"}


class RepoSettings(BaseModel):
    cache_dir: Optional[Path] = None
    registry_url: str = DEFAULT_REGISTRY_URL
    test_mode: bool = False
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("registry_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("registry_url cannot be empty")
        return value.rstrip("/")

    @classmethod
    def from_env(cls, **overrides) -> "RepoSettings":
        values: dict = {}
        if os.environ.get(ENV_CACHE_DIR):
            values["cache_dir"] = Path(os.environ[ENV_CACHE_DIR])
        if os.environ.get(ENV_REGISTRY_URL):
            values["registry_url"] = os.environ[ENV_REGISTRY_URL]
        if os.environ.get(ENV_TEST_MODE):
            values["test_mode"] = os.environ[ENV_TEST_MODE].strip().lower() in _TRUTHY
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
