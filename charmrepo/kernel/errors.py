"""
Error taxonomy for artifact acquisition.

Every adapter translates its own failures (httpx, subprocess, filesystem) into
one of these types at the boundary, chaining the original exception with
``raise ... from`` so callers can inspect ``error.cause`` and test the kind of
failure with ``isinstance`` instead of matching messages.
"""
from typing import Optional


class CharmRepoError(Exception):
    """Base class for every error raised by charmrepo."""

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__


class InvalidReferenceError(CharmRepoError, ValueError):
    """The raw reference string could not be parsed."""


class NotFoundError(CharmRepoError):
    """The remote registry or VCS remote has no matching entity."""


class TypeMismatchError(CharmRepoError):
    """A charm was requested through a bundle reference or vice versa."""


class MissingSeriesError(CharmRepoError):
    """The reference lacks a series and the backend needs one."""


class UnsupportedSeriesError(CharmRepoError):
    """The artifact metadata does not declare the requested series."""


class IntegrityError(CharmRepoError):
    """A downloaded archive does not match what the registry declared."""

    def __init__(self, message: str, expected=None, observed=None):
        super().__init__(message)
        self.expected = expected
        self.observed = observed


class SizeMismatchError(IntegrityError):
    pass


class HashMismatchError(IntegrityError):
    pass


class CacheUnavailableError(CharmRepoError):
    """The cache directory is not configured or cannot be created."""


class TransportError(CharmRepoError):
    """Network, clone or filesystem failure, wrapped with operation context."""
