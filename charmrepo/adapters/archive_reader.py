"""
Minimal readers for charm and bundle archives and directories.

Only what the repositories need is read: charm metadata (name, summary,
supported series), the revision file, and the bundle definition with its
README. Everything is loaded eagerly so callers may discard the source.
"""
import zipfile
from pathlib import Path
from typing import Any, Optional

import yaml

from charmrepo.kernel.artifacts import Bundle, Charm, CharmMeta
from charmrepo.kernel.errors import CharmRepoError, MissingSeriesError, UnsupportedSeriesError

METADATA_FILE = "metadata.yaml"
REVISION_FILE = "revision"
BUNDLE_FILE = "bundle.yaml"
README_FILE = "README.md"


class ArchiveFormatError(CharmRepoError):
    """The archive or directory is not a readable charm or bundle."""


def _parse_yaml(text: str, label: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ArchiveFormatError(f"cannot parse {label}: {e}") from e
    if not isinstance(data, dict):
        raise ArchiveFormatError(f"{label} does not contain a mapping")
    return data


def _parse_meta(text: str, label: str) -> CharmMeta:
    data = _parse_yaml(text, label)
    name = data.get("name")
    if not name:
        raise ArchiveFormatError(f"{label} has no charm name")
    series = data.get("series") or []
    if isinstance(series, str):
        series = [series]
    return CharmMeta(
        name=name,
        summary=data.get("summary", ""),
        description=data.get("description", ""),
        series=list(series),
        subordinate=bool(data.get("subordinate", False)),
    )


def _parse_revision(text: Optional[str], label: str) -> int:
    # Charms without a revision file are at revision 0.
    if text is None or not text.strip():
        return 0
    try:
        return int(text.strip())
    except ValueError as e:
        raise ArchiveFormatError(f"invalid revision in {label}: {text.strip()!r}") from e


# ---------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------

def _read_member(archive: zipfile.ZipFile, name: str) -> Optional[str]:
    try:
        return archive.read(name).decode("utf-8")
    except KeyError:
        return None
    except (UnicodeDecodeError, OSError, zipfile.BadZipFile) as e:
        raise ArchiveFormatError(f"cannot read {name} from archive: {e}") from e


def _open_zip(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveFormatError(f"cannot open archive {path}: {e}") from e


def read_charm_archive(path: Path) -> Charm:
    with _open_zip(path) as archive:
        metadata = _read_member(archive, METADATA_FILE)
        if metadata is None:
            raise ArchiveFormatError(f"archive {path} has no {METADATA_FILE}")
        meta = _parse_meta(metadata, f"{path}:{METADATA_FILE}")
        revision = _parse_revision(_read_member(archive, REVISION_FILE), f"{path}:{REVISION_FILE}")
    return Charm(meta=meta, revision=revision, source=str(path))


def read_bundle_archive(path: Path) -> Bundle:
    with _open_zip(path) as archive:
        definition = _read_member(archive, BUNDLE_FILE)
        if definition is None:
            raise ArchiveFormatError(f"archive {path} has no {BUNDLE_FILE}")
        data = _parse_yaml(definition, f"{path}:{BUNDLE_FILE}")
        readme = _read_member(archive, README_FILE) or ""
    return Bundle(data=data, readme=readme, source=str(path))


# ---------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------

def _read_text(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        raise ArchiveFormatError(f"cannot read {path.name}: {e}") from e


def read_charm_dir(path: Path, source: Optional[str] = None) -> Charm:
    metadata = _read_text(path / METADATA_FILE)
    if metadata is None:
        raise ArchiveFormatError(f"directory {path} has no {METADATA_FILE}")
    meta = _parse_meta(metadata, METADATA_FILE)
    revision = _parse_revision(_read_text(path / REVISION_FILE), REVISION_FILE)
    return Charm(meta=meta, revision=revision, source=source or str(path))


def read_bundle_dir(path: Path, source: Optional[str] = None) -> Bundle:
    definition = _read_text(path / BUNDLE_FILE)
    if definition is None:
        raise ArchiveFormatError(f"directory {path} has no {BUNDLE_FILE}")
    data = _parse_yaml(definition, BUNDLE_FILE)
    readme = _read_text(path / README_FILE) or ""
    return Bundle(data=data, readme=readme, source=source or str(path))


# ---------------------------------------------------------------------
# Series
# ---------------------------------------------------------------------

def series_for_charm(requested: str, supported: list[str]) -> str:
    """
    Returns the series to deploy a charm to.

    A charm declaring no series accepts any requested one. A charm declaring
    series must list the requested one; with no request, its first (preferred)
    series is used.
    """
    if not supported:
        if not requested:
            raise MissingSeriesError("series not specified and charm does not define any")
        return requested
    if not requested:
        return supported[0]
    if requested in supported:
        return requested
    raise UnsupportedSeriesError(
        f"series {requested!r} not supported by charm, supported series are: {', '.join(supported)}"
    )
