"""
Versioned artifact references.

A reference names a charm or bundle: ``cs:~user/series/name-revision``, with
every part but the name optional. References that point at a version-control
remote carry the remote URI as their name and an optional ``?pointer`` suffix
selecting what to check out (``HEAD`` when absent).
"""
import re
from dataclasses import dataclass, replace

from charmrepo.kernel.errors import InvalidReferenceError

BUNDLE_SERIES = "bundle"
DEFAULT_POINTER = "HEAD"
POINTER_SEPARATOR = "?"

_SCHEMAS = ("cs", "local")
_NAME_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]*[a-z][a-z0-9]*)*$")
_SERIES_RE = re.compile(r"^[a-z]+([a-z0-9]+)?$")
_USER_RE = re.compile(r"^[a-z0-9][a-zA-Z0-9+.-]+$")
_SAFE_BYTES = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.-")


def is_remote_uri(raw: str) -> bool:
    return "://" in raw or raw.startswith("git@")


@dataclass(frozen=True)
class Reference:
    name: str
    series: str = ""
    revision: int = -1
    user: str = ""
    schema: str = "cs"
    backend_ref: str = DEFAULT_POINTER

    @classmethod
    def parse(cls, raw: str, default_series: str = "") -> "Reference":
        if not raw or not raw.strip():
            raise InvalidReferenceError("empty reference")
        raw = raw.strip()
        body, _, pointer = raw.partition(POINTER_SEPARATOR)
        pointer = pointer or DEFAULT_POINTER

        if is_remote_uri(body):
            return cls(name=body, series=default_series, schema="", backend_ref=pointer)

        schema = "cs"
        if ":" in body:
            schema, _, body = body.partition(":")
            if schema not in _SCHEMAS:
                raise InvalidReferenceError(f"reference {raw!r} has unsupported schema {schema!r}")

        parts = body.split("/")
        user = ""
        if parts[0].startswith("~"):
            user = parts.pop(0)[1:]
            if not _USER_RE.match(user):
                raise InvalidReferenceError(f"reference {raw!r} has invalid user name {user!r}")

        if len(parts) == 1:
            series, name_part = default_series, parts[0]
        elif len(parts) == 2:
            series, name_part = parts
            if not _SERIES_RE.match(series):
                raise InvalidReferenceError(f"reference {raw!r} has invalid series {series!r}")
        else:
            raise InvalidReferenceError(f"reference {raw!r} has too many parts")

        name, revision = _split_revision(name_part)
        if not _NAME_RE.match(name):
            raise InvalidReferenceError(f"reference {raw!r} has invalid name {name!r}")

        return cls(
            name=name,
            series=series,
            revision=revision,
            user=user,
            schema=schema,
            backend_ref=pointer,
        )

    # ------------------------------------------------------------------
    # Derived variants
    # ------------------------------------------------------------------

    def with_revision(self, revision: int) -> "Reference":
        return replace(self, revision=revision)

    def with_series(self, series: str) -> "Reference":
        return replace(self, series=series)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_remote(self) -> bool:
        return self.schema == ""

    @property
    def is_bundle(self) -> bool:
        return self.series == BUNDLE_SERIES

    @property
    def is_resolved(self) -> bool:
        return self.revision != -1

    @property
    def kind(self) -> str:
        return "bundle" if self.is_bundle else "charm"

    @property
    def kind_description(self) -> str:
        """What a lookup for this reference is expected to find, for messages."""
        if self.series == "":
            return "charm or bundle"
        return self.kind

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def path(self) -> str:
        """Entity path without schema, as used in registry URLs."""
        if self.is_remote:
            return self.name
        parts = []
        if self.user:
            parts.append(f"~{self.user}")
        if self.series:
            parts.append(self.series)
        name = self.name if self.revision == -1 else f"{self.name}-{self.revision}"
        parts.append(name)
        return "/".join(parts)

    def stripped(self) -> str:
        """Canonical string with the revision removed."""
        return str(self.with_revision(-1))

    def __str__(self) -> str:
        if self.is_remote:
            text = self.name
        else:
            text = f"{self.schema}:{self.path()}"
        if self.backend_ref != DEFAULT_POINTER:
            text = f"{text}{POINTER_SEPARATOR}{self.backend_ref}"
        return text


def _split_revision(name_part: str) -> tuple[str, int]:
    head, sep, tail = name_part.rpartition("-")
    if sep and tail.isdigit():
        return head, int(tail)
    return name_part, -1


def quote_identity(identity: str) -> str:
    """
    Escape an artifact identity into a string that is safe as a file name.

    ASCII letters, digits, '.' and '-' are kept; every other byte of the
    UTF-8 encoding becomes ``_xx_`` with ``xx`` its lowercase hex value.
    """
    out = []
    for byte in identity.encode("utf-8"):
        if byte in _SAFE_BYTES:
            out.append(chr(byte))
        else:
            out.append(f"_{byte:02x}_")
    return "".join(out)
