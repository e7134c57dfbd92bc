"""
Thin synchronous client for the charm store HTTP API.

Only the two endpoints the repository needs are covered: archive download
and the bulk `meta/any` metadata query. Authentication flows are left to
whatever `httpx.Client` the caller supplies.
"""
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from charmrepo.internal.constants import (
    CONTENT_HASH_HEADER,
    DEFAULT_REGISTRY_URL,
    ENTITY_ID_HEADER,
    HTTP_TIMEOUT_SECONDS,
    METADATA_HTTP_HEADER,
    READ_CHUNK_SIZE,
    REGISTRY_API_VERSION,
)
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.artifacts import ArchiveStream
from charmrepo.kernel.errors import NotFoundError, TransportError
from charmrepo.kernel.reference import Reference

logger = get_logger(__name__)


# ---------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------

class IdRevisionResponse(BaseModel):
    revision: int = Field(alias="Revision")


class HashResponse(BaseModel):
    sum: str = Field(alias="Sum")


class IdResponse(BaseModel):
    id: str = Field(alias="Id")


class SupportedSeriesResponse(BaseModel):
    supported_series: list[str] = Field(default_factory=list, alias="SupportedSeries")


class MetaFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[IdResponse] = None
    id_revision: Optional[IdRevisionResponse] = Field(default=None, alias="id-revision")
    hash256: Optional[HashResponse] = None
    supported_series: Optional[SupportedSeriesResponse] = Field(default=None, alias="supported-series")


class MetaAnyResult(BaseModel):
    id: Optional[str] = Field(default=None, alias="Id")
    meta: MetaFields = Field(default_factory=MetaFields, alias="Meta")


class ErrorResponse(BaseModel):
    message: str = Field(default="", alias="Message")
    code: str = Field(default="", alias="Code")


_META_ANY_BULK = TypeAdapter(dict[str, MetaAnyResult])


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class RegistryClient:
    """
    Talks to one registry endpoint.

    `with_stats_disabled` and `with_metadata` return new clients sharing the
    same underlying `httpx.Client`; the receiver is never modified.
    """

    def __init__(
        self,
        url: str = DEFAULT_REGISTRY_URL,
        http_client: Optional[httpx.Client] = None,
        headers: Optional[Sequence[tuple[str, str]]] = None,
        stats_disabled: bool = False,
    ):
        self._url = (url or DEFAULT_REGISTRY_URL).rstrip("/")
        self._http = http_client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True)
        self._headers: tuple[tuple[str, str], ...] = tuple(headers or ())
        self._stats_disabled = stats_disabled

    @property
    def server_url(self) -> str:
        return self._url

    @property
    def headers(self) -> httpx.Headers:
        return httpx.Headers(list(self._headers))

    @property
    def stats_disabled(self) -> bool:
        return self._stats_disabled

    def with_stats_disabled(self) -> "RegistryClient":
        """Downloads made through the returned client do not count in registry statistics."""
        return RegistryClient(self._url, self._http, self._headers, stats_disabled=True)

    def with_metadata(self, attrs: dict[str, str]) -> "RegistryClient":
        """Every request carries one metadata header per attribute, as 'key=value'."""
        headers = [(METADATA_HTTP_HEADER, f"{key}={value}") for key, value in sorted(attrs.items())]
        return RegistryClient(self._url, self._http, headers, stats_disabled=self._stats_disabled)

    def close(self) -> None:
        self._http.close()

    def _endpoint(self, path: str) -> str:
        return f"{self._url}/{REGISTRY_API_VERSION}/{path.lstrip('/')}"

    # ------------------------------------------------------------------
    # Archives
    # ------------------------------------------------------------------

    @contextmanager
    def get_archive(self, ref: Reference) -> Iterator[ArchiveStream]:
        """
        Opens the archive of `ref` for streaming.

        The yielded ArchiveStream carries the entity id, SHA-384 and size the
        registry declares for the content. The response is closed when the
        context exits, whatever happens inside it.
        """
        url = self._endpoint(f"{ref.path()}/archive")
        params = {"stats": "0"} if self._stats_disabled else None
        logger.debug("fetching archive", url=url)
        try:
            with self._http.stream("GET", url, params=params, headers=self.headers) as response:
                _raise_for_status(response, f"cannot get archive for {ref}")
                yield _archive_stream(response, ref)
        except httpx.HTTPError as e:
            raise TransportError(f"cannot get archive for {ref}: {e}") from e

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def meta_any(
        self,
        ids: Iterable[str],
        includes: Iterable[str],
        ignore_auth: bool = False,
    ) -> dict[str, MetaAnyResult]:
        """
        Runs one bulk metadata query for all `ids`.

        Ids the registry does not know (or, with `ignore_auth`, may not show)
        are simply absent from the result.
        """
        params: list[tuple[str, str]] = []
        if ignore_auth:
            params.append(("ignore-auth", "1"))
        params.extend(("include", include) for include in includes)
        ids = list(ids)
        params.extend(("id", id_) for id_ in ids)

        url = self._endpoint("meta/any")
        logger.debug("querying metadata", url=url, count=len(ids))
        try:
            response = self._http.get(url, params=params, headers=self.headers)
        except httpx.HTTPError as e:
            raise TransportError(f"cannot get metadata from {self._url}: {e}") from e
        _raise_for_status(response, f"cannot get metadata from {self._url}")

        try:
            return _META_ANY_BULK.validate_json(response.content)
        except ValidationError as e:
            raise TransportError(f"invalid metadata response from {self._url}") from e


def _archive_stream(response: httpx.Response, ref: Reference) -> ArchiveStream:
    entity_id = response.headers.get(ENTITY_ID_HEADER)
    if not entity_id:
        raise TransportError(f"no {ENTITY_ID_HEADER} header found in archive response for {ref}")
    expected_hash = response.headers.get(CONTENT_HASH_HEADER)
    if not expected_hash:
        raise TransportError(f"no {CONTENT_HASH_HEADER} header found in archive response for {ref}")
    try:
        expected_size = int(response.headers["Content-Length"])
    except (KeyError, ValueError) as e:
        raise TransportError(f"no valid Content-Length header found in archive response for {ref}") from e
    return ArchiveStream(
        id=entity_id,
        hash=expected_hash.lower(),
        size=expected_size,
        chunks=response.iter_bytes(chunk_size=READ_CHUNK_SIZE),
    )


def _raise_for_status(response: httpx.Response, context: str) -> None:
    if response.is_success:
        return
    if not response.is_stream_consumed:
        response.read()
    try:
        detail = ErrorResponse.model_validate_json(response.content)
        message = detail.message or response.reason_phrase
    except ValidationError:
        message = response.reason_phrase
    if response.status_code == httpx.codes.NOT_FOUND:
        raise NotFoundError(f"{context}: {message}")
    raise TransportError(f"{context}: {message} (HTTP {response.status_code})")
