import pytest
import structlog

from tests.adapters.fakes import REGISTRY_URL, FakeRegistry, make_bundle_archive, make_charm_archive

# --- Fixtures ---

@pytest.fixture(autouse=True)
def quiet_structlog():
    """Keep library logging from depending on global configuration left by other tests."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def fake_registry():
    return FakeRegistry()


@pytest.fixture
def registry_url():
    return REGISTRY_URL


@pytest.fixture
def charm_bytes():
    return make_charm_archive()


@pytest.fixture
def bundle_bytes():
    return make_bundle_archive()
