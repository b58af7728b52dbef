"""
Config loader for card_review.

Loads config/global.yaml, resolves ${VAR} and ${VAR:-default} from os.environ
(after reading .env), and exposes dotted-key access.

Usage:
    from card_review.config_loader import get_config, get_config_value
    cfg = get_config()
    budget = cfg.retry.write_max_retries
    base_url = get_config_value("api.base_url", "http://localhost:4321")
"""
import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_CONFIG_DIR = _PROJECT_ROOT / "config"
DEFAULT_CONFIG_PATH = Path(os.getenv("CARD_REVIEW_CONFIG", str(_CONFIG_DIR / "global.yaml")))

load_dotenv(_PROJECT_ROOT / ".env")

# Pattern: ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _resolve_env(value: Any) -> Any:
    """Recursively resolve ${VAR} and ${VAR:-default} in strings. Return as-is for non-strings."""
    if isinstance(value, str):
        def replacer(match):
            var_name = match.group(1)
            default = match.group(2)
            return os.environ.get(var_name, default if default is not None else "")
        return _ENV_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(item) for item in value]
    return value


class _ConfigNode:
    """Read-only dotted access to nested dict. config.retry.base_delay_ms -> config["retry"]["base_delay_ms"]"""

    def __init__(self, data: Dict[str, Any]):
        self._data = data if isinstance(data, dict) else {}

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        val = self._data.get(name)
        if isinstance(val, dict):
            return _ConfigNode(val)
        return val

    def __getitem__(self, key: str) -> Any:
        val = self._data.get(key)
        if isinstance(val, dict):
            return _ConfigNode(val)
        return val

    def get(self, key: str, default: Any = None) -> Any:
        val = self._data.get(key, default)
        if isinstance(val, dict):
            return _ConfigNode(val)
        return val

    def __repr__(self) -> str:
        return f"Config({list(self._data.keys())})"


_config: Optional[_ConfigNode] = None


def _load_raw(path: Path) -> Dict[str, Any]:
    """Load YAML file. Returns empty dict if not found."""
    if not path.exists():
        logger.warning("Config not found: %s", path)
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> _ConfigNode:
    """
    Load and resolve config. Caches result. Call with path=None to use default.
    """
    global _config
    cfg_path = path or DEFAULT_CONFIG_PATH
    resolved = _resolve_env(_load_raw(cfg_path))

    api = resolved.get("api") or {}
    if not api.get("token"):
        logger.debug("api.token is empty (CARD_REVIEW_API_TOKEN not set)")

    _config = _ConfigNode(resolved)
    return _config


def get_config(path: Optional[Path] = None) -> _ConfigNode:
    """
    Get config singleton. Loads on first call, then returns cached.
    Use path= to force reload from a specific file.
    """
    global _config
    if path is not None:
        return load_config(path)
    if _config is None:
        load_config()
    return _config


def reload_config(path: Optional[Path] = None) -> _ConfigNode:
    """Force reload config (e.g. for tests)."""
    global _config
    _config = None
    return load_config(path or DEFAULT_CONFIG_PATH)


def get_config_value(path: str, default: Any = None) -> Any:
    """
    Get config value by dotted path (e.g. 'retry.read_max_retries', 'messages').
    Returns default on a missing key.
    """
    cfg = get_config()
    for part in path.split("."):
        if not isinstance(cfg, _ConfigNode):
            return default
        val = cfg.get(part)
        if val is None:
            return default
        cfg = val
    return cfg._data if isinstance(cfg, _ConfigNode) else cfg
