"""User-level settings for gitdeliver.

Everything lives under ~/.gitdeliver/:
- config.yaml: delivery defaults (server_root, head_branch, api_url)
- credentials: KEY=value secrets, currently only GITHUB_TOKEN

Lookups fall back from the environment (and a local .env) to these files and
then to the built-in defaults in gitdeliver.config.
"""

import os
import stat
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from gitdeliver.config import (
    DEFAULT_API_URL,
    DEFAULT_HEAD_BRANCH,
    DEFAULT_SERVER_ROOT,
    GITHUB_API_URL_ENV_VAR,
    GITHUB_TOKEN_ENV_VAR,
)


class GlobalConfigError(Exception):
    """Raised when ~/.gitdeliver cannot be read or written."""
    pass


_CONFIG_DIR = Path.home() / ".gitdeliver"

# Keys accepted by `gitdeliver config set`
CONFIG_KEYS = ("server_root", "head_branch", "api_url")

_CREDENTIALS_HEADER = "# gitdeliver credentials\n# One KEY=value per line, e.g. GITHUB_TOKEN=ghp_...\n\n"


def get_global_config_dir() -> Path:
    return _CONFIG_DIR


def ensure_global_config_dir() -> Path:
    """Create ~/.gitdeliver if needed and return it."""
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return _CONFIG_DIR


def get_config_file_path() -> Path:
    return _CONFIG_DIR / "config.yaml"


def get_credentials_file_path() -> Path:
    return _CONFIG_DIR / "credentials"


def load_global_config() -> Dict[str, Any]:
    """Read config.yaml; a missing file is an empty config.

    Raises:
        GlobalConfigError: If the file is unreadable or not valid YAML.
    """
    path = get_config_file_path()
    if not path.exists():
        return {}

    try:
        return yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise GlobalConfigError(f"Cannot read {path}: {e}")


def save_global_config(config: Dict[str, Any]) -> None:
    path = ensure_global_config_dir() / "config.yaml"
    try:
        path.write_text(yaml.safe_dump(config, default_flow_style=False, sort_keys=False))
    except (OSError, yaml.YAMLError) as e:
        raise GlobalConfigError(f"Cannot write {path}: {e}")


def load_credentials() -> Dict[str, str]:
    """Parse the credentials file into a dict. Comments and blank lines are skipped."""
    path = get_credentials_file_path()
    if not path.exists():
        return {}

    try:
        lines = path.read_text().splitlines()
    except OSError as e:
        raise GlobalConfigError(f"Cannot read {path}: {e}")

    credentials = {}
    for line in lines:
        line = line.strip()
        if line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        credentials[key.strip()] = value.strip()
    return credentials


def save_credential(key: str, secret: str) -> None:
    """Store one secret, keeping the others. The file is made owner-only."""
    credentials = load_credentials()
    credentials[key] = secret

    path = ensure_global_config_dir() / "credentials"
    body = "".join(f"{name}={value}\n" for name, value in credentials.items())
    try:
        path.write_text(_CREDENTIALS_HEADER + body)
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
    except OSError as e:
        raise GlobalConfigError(f"Cannot write {path}: {e}")


def get_credential(key: str) -> Optional[str]:
    return load_credentials().get(key)


def _from_env(name: str) -> Optional[str]:
    load_dotenv()
    return os.getenv(name) or None


def get_github_token() -> Optional[str]:
    """GITHUB_TOKEN from the environment or .env, else from the credentials file."""
    return _from_env(GITHUB_TOKEN_ENV_VAR) or get_credential(GITHUB_TOKEN_ENV_VAR)


def get_api_url() -> str:
    return _from_env(GITHUB_API_URL_ENV_VAR) or load_global_config().get("api_url") or DEFAULT_API_URL


def get_server_root() -> str:
    return load_global_config().get("server_root") or DEFAULT_SERVER_ROOT


def get_head_branch() -> str:
    return load_global_config().get("head_branch") or DEFAULT_HEAD_BRANCH


def set_config_value(key: str, value: str) -> None:
    """Update one key in config.yaml.

    Raises:
        GlobalConfigError: If key is not one of CONFIG_KEYS.
    """
    if key not in CONFIG_KEYS:
        raise GlobalConfigError(f"Unknown setting: {key}. Valid settings: {', '.join(CONFIG_KEYS)}")
    save_global_config({**load_global_config(), key: value})


def is_configured() -> bool:
    return get_config_file_path().exists()
