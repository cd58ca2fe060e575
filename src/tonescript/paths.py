"""Where tonescript keeps config.json.

The location is looked up on every call: $TONESCRIPT_DIR/config when the
variable is set (handy for tests and portable installs), else the per-user
config directory reported by platformdirs.
"""

import os
from pathlib import Path

from platformdirs import user_config_dir

_APP_NAME = "tonescript"


def _override_root() -> Path | None:
    """TONESCRIPT_DIR as a Path; unset or empty means no override."""
    val = os.environ.get("TONESCRIPT_DIR")
    return Path(val) if val else None


def config_dir() -> Path:
    """Directory holding config.json."""
    root = _override_root()
    return root / "config" if root else Path(user_config_dir(_APP_NAME))


def config_file() -> Path:
    return config_dir() / "config.json"


def ensure_dir(path: Path) -> Path:
    """Create *path* (and parents) if missing, then return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path
