APP_NAME = "charmrepo"

# Registry
DEFAULT_REGISTRY_URL = "https://api.jujucharms.com/charmstore"
REGISTRY_API_VERSION = "v5"
METADATA_HTTP_HEADER = "Juju-Metadata"
ENTITY_ID_HEADER = "Entity-Id"
CONTENT_HASH_HEADER = "Content-Sha384"
HTTP_TIMEOUT_SECONDS = 60.0

# Cache
ARCHIVE_HASH_ALGORITHM = "sha384"
DOWNLOAD_TEMP_PREFIX = "charm-download"
CACHE_KINDS = ("charm", "bundle")
READ_CHUNK_SIZE = 1024 * 1024

# VCS
CLONE_TEMP_PREFIX = "charmrepo-clone"
DEFAULT_GIT_BINARY = "git"

# Environment
ENV_CACHE_DIR = "CHARMREPO_CACHE_DIR"
ENV_REGISTRY_URL = "CHARMREPO_REGISTRY_URL"
ENV_TEST_MODE = "CHARMREPO_TEST_MODE"
ENV_LOG_LEVEL = "CHARMREPO_LOG_LEVEL"
