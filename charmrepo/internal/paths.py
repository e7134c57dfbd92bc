import os
from pathlib import Path

from charmrepo.internal.constants import APP_NAME


# ---------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------

def get_app_data_dir() -> Path:
    """
    Returns the application data directory.

    - Windows: %APPDATA%\\charmrepo
    - Linux/macOS: ~/.charmrepo
    """
    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", str(Path.home()))
        return Path(base) / APP_NAME
    return Path.home() / f".{APP_NAME}"


def get_default_cache_dir() -> Path:
    """
    Cache directory used by the CLI when none is configured.
    The library itself never falls back to this.
    """
    return get_app_data_dir() / "cache"


# ---------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------

def get_log_file() -> Path:
    return get_app_data_dir() / "logs" / f"{APP_NAME}.log.json"


if __name__ == "__main__":
    print("App Data Dir:", get_app_data_dir())
    print("Default Cache Dir:", get_default_cache_dir())
    print("Log File:", get_log_file())
