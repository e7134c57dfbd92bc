import subprocess
from pathlib import Path

import pytest

from charmrepo.adapters.archive_reader import ArchiveFormatError
from charmrepo.adapters.git.repository import GitRepository
from charmrepo.kernel.errors import (
    MissingSeriesError,
    NotFoundError,
    TransportError,
    TypeMismatchError,
    UnsupportedSeriesError,
)
from charmrepo.kernel.reference import Reference

REMOTE = "https://git.example.com/charms/wordpress.git"
COMMIT = "0123456789abcdef0123456789abcdef01234567"

CHARM_FILES = {
    "metadata.yaml": "name: wordpress\nsummary: blog\nseries:\n  - xenial\n  - bionic\n",
    "revision": "17\n",
}
BUNDLE_FILES = {
    "bundle.yaml": "applications:\n  wordpress:\n    charm: cs:wordpress\n",
    "README.md": "# WordPress bundle\n",
}


class FakeGit:
    """Stands in for the git executable; 'clone' materializes `files`."""

    def __init__(self, files):
        self.files = files
        self.calls = []
        self.trees = []
        self.fail_on = None

    def __call__(self, command, capture_output, text, check):
        args = command[1:]
        self.calls.append(args)
        if self.fail_on and self.fail_on in args:
            raise subprocess.CalledProcessError(128, command, output="", stderr="fatal: repository not found")
        if args[0] == "clone":
            tree = Path(args[-1])
            tree.mkdir(parents=True)
            for name, content in self.files.items():
                if isinstance(content, bytes):
                    (tree / name).write_bytes(content)
                else:
                    (tree / name).write_text(content)
            self.trees.append(tree)
        stdout = COMMIT + "\n" if "rev-parse" in args else ""
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")


@pytest.fixture
def charm_git(mocker):
    fake = FakeGit(CHARM_FILES)
    mocker.patch("charmrepo.adapters.git.repository.subprocess.run", side_effect=fake)
    return fake


@pytest.fixture
def bundle_git(mocker):
    fake = FakeGit(BUNDLE_FILES)
    mocker.patch("charmrepo.adapters.git.repository.subprocess.run", side_effect=fake)
    return fake


def charm_ref(series="xenial", revision=-1):
    return Reference(name=REMOTE, series=series, revision=revision, schema="")


# --- Construction ---

def test_from_url_splits_pointer():
    repo = GitRepository.from_url(f"{REMOTE}?v2.0")
    assert repo.remote_uri == REMOTE
    assert repo.reference == "v2.0"


def test_from_url_defaults_to_head():
    assert GitRepository.from_url(REMOTE).reference == "HEAD"


def test_from_reference():
    repo = GitRepository.from_reference(Reference.parse(f"{REMOTE}?stable", default_series="xenial"))
    assert (repo.remote_uri, repo.reference) == (REMOTE, "stable")


def test_empty_remote_rejected():
    with pytest.raises(ValueError):
        GitRepository("")


# --- Get ---

def test_get_clones_and_reads_charm(charm_git):
    charm = GitRepository(REMOTE).get(charm_ref())
    assert charm.meta.name == "wordpress"
    assert charm.revision == 17
    assert charm.source == f"{REMOTE}?HEAD"
    clone = charm_git.calls[0]
    assert clone[0] == "clone"
    assert REMOTE in clone
    assert not any("checkout" in call for call in charm_git.calls)


def test_get_checks_out_pointer(charm_git):
    GitRepository(REMOTE, "v1.0").get(charm_ref())
    checkout = [call for call in charm_git.calls if "checkout" in call]
    assert checkout and checkout[0][-1] == "v1.0"


def test_get_checks_out_reference_pointer(charm_git):
    ref = Reference(name=REMOTE, series="xenial", schema="", backend_ref="v2")
    charm = GitRepository(REMOTE).get(ref)
    checkout = [call for call in charm_git.calls if "checkout" in call]
    assert checkout and checkout[0][-1] == "v2"
    assert charm.source == f"{REMOTE}?v2"


def test_reference_pointer_overrides_repository_pointer(bundle_git):
    ref = Reference(name=REMOTE, series="bundle", schema="", backend_ref="stable")
    GitRepository(REMOTE, "v1.0").get_bundle(ref)
    checkout = [call for call in bundle_git.calls if "checkout" in call]
    assert [call[-1] for call in checkout] == ["stable"]


def test_scratch_directory_is_removed(charm_git):
    GitRepository(REMOTE).get(charm_ref())
    assert charm_git.trees
    assert not charm_git.trees[0].exists()
    assert not charm_git.trees[0].parent.exists()


def test_each_call_clones_again(charm_git):
    repo = GitRepository(REMOTE)
    repo.get(charm_ref())
    repo.get(charm_ref())
    assert [call[0] for call in charm_git.calls].count("clone") == 2


def test_get_bundle_reads_bundle(bundle_git):
    bundle = GitRepository(REMOTE).get_bundle(charm_ref(series="bundle"))
    assert "wordpress" in bundle.data["applications"]
    assert bundle.readme.startswith("# WordPress bundle")


def test_get_with_bundle_reference_fails_before_clone(charm_git):
    with pytest.raises(TypeMismatchError, match="expected a charm URL"):
        GitRepository(REMOTE).get(charm_ref(series="bundle"))
    assert charm_git.calls == []


def test_get_bundle_with_charm_reference_fails_before_clone(charm_git):
    with pytest.raises(TypeMismatchError, match="expected a bundle URL"):
        GitRepository(REMOTE).get_bundle(charm_ref())
    assert charm_git.calls == []


def test_clone_failure_is_transport_error(charm_git):
    charm_git.fail_on = "clone"
    with pytest.raises(TransportError, match="repository not found") as excinfo:
        GitRepository(REMOTE).get(charm_ref())
    assert isinstance(excinfo.value.cause, subprocess.CalledProcessError)


def test_missing_git_binary(mocker):
    mocker.patch("charmrepo.adapters.git.repository.subprocess.run", side_effect=FileNotFoundError("git"))
    with pytest.raises(TransportError, match="not found"):
        GitRepository(REMOTE).get(charm_ref())


# --- Resolve ---

def test_resolve_requires_series(charm_git):
    with pytest.raises(MissingSeriesError):
        GitRepository(REMOTE).resolve(charm_ref(series=""))
    assert charm_git.calls == []


def test_resolve_pinned_is_noop(charm_git):
    ref = charm_ref(revision=3)
    assert GitRepository(REMOTE).resolve(ref) == (ref, [])
    assert charm_git.calls == []


def test_resolve_bundle_is_revision_zero(charm_git):
    resolved, series = GitRepository(REMOTE).resolve(charm_ref(series="bundle"))
    assert resolved.revision == 0
    assert series == []
    assert charm_git.calls == []


def test_resolve_reads_revision_from_checkout(charm_git):
    resolved, series = GitRepository(REMOTE).resolve(charm_ref())
    assert resolved == charm_ref(revision=17)
    assert series == ["xenial", "bionic"]


def test_resolve_unsupported_series(charm_git):
    with pytest.raises(UnsupportedSeriesError):
        GitRepository(REMOTE).resolve(charm_ref(series="trusty"))


# --- Latest ---

def test_latest_reports_commit_per_slot(charm_git):
    revisions = GitRepository(REMOTE).latest(charm_ref(revision=2), charm_ref(series=""), charm_ref(series="trusty"))
    assert (revisions[0].revision, revisions[0].hash) == (17, COMMIT)
    assert isinstance(revisions[1].error, MissingSeriesError)
    assert isinstance(revisions[2].error, UnsupportedSeriesError)


def test_latest_captures_clone_failure(charm_git):
    charm_git.fail_on = "clone"
    revisions = GitRepository(REMOTE).latest(charm_ref())
    assert isinstance(revisions[0].error, TransportError)
    assert not isinstance(revisions[0].error, NotFoundError)


def test_latest_reads_each_reference_pointer(charm_git):
    ref = Reference(name=REMOTE, series="xenial", schema="", backend_ref="v3")
    GitRepository(REMOTE).latest(ref)
    assert [call[-1] for call in charm_git.calls if "checkout" in call] == ["v3"]


def test_latest_reports_undecodable_metadata_per_slot(mocker):
    fake = FakeGit({"metadata.yaml": b"name: \xff\xfe\n"})
    mocker.patch("charmrepo.adapters.git.repository.subprocess.run", side_effect=fake)
    revisions = GitRepository(REMOTE).latest(charm_ref(), charm_ref())
    assert len(revisions) == 2
    assert all(isinstance(info.error, ArchiveFormatError) for info in revisions)


def test_get_undecodable_metadata_is_archive_format_error(mocker):
    fake = FakeGit({"metadata.yaml": b"name: \xff\xfe\n"})
    mocker.patch("charmrepo.adapters.git.repository.subprocess.run", side_effect=fake)
    with pytest.raises(ArchiveFormatError) as excinfo:
        GitRepository(REMOTE).get(charm_ref())
    assert isinstance(excinfo.value.cause, UnicodeDecodeError)
