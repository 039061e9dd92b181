"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from shamela_mirror.utils.project import find_project_root

from .models import MirrorConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".shamela-mirror.json"

# Global cache to avoid reloading config multiple times per session
_config_cache: MirrorConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/shamela-mirror/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "shamela-mirror" / "config.json"


def get_project_dir(cwd: Path | None = None) -> Path:
    """
    Get the project directory.

    The nearest ancestor holding a project marker, or ``cwd`` itself.
    """
    if cwd is None:
        cwd = Path.cwd()
    return find_project_root(cwd) or cwd


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .shamela-mirror.json in the project root
    """
    return get_project_dir(cwd) / PROJECT_CONFIG_FILE


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"api": {"timeout_seconds": 60}}, {"api": {"api_key": "k"}})
        {'api': {'timeout_seconds': 60, 'api_key': 'k'}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set(result: dict[str, Any], section: str, key: str, value: Any) -> None:
    result.setdefault(section, {})
    result[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        SHAMELA_API_KEY - overrides api.api_key
        SHAMELA_BASE_URL - overrides api.base_url
        SHAMELA_TIMEOUT - overrides api.timeout_seconds
        SHAMELA_DATA_DIR - overrides storage.data_dir
        SHAMELA_CACHE_DIR - overrides storage.cache_dir
        SHAMELA_PORT - overrides server.port

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = {k: (dict(v) if isinstance(v, dict) else v) for k, v in config_dict.items()}

    if api_key := os.environ.get("SHAMELA_API_KEY"):
        _set(result, "api", "api_key", api_key)

    if base_url := os.environ.get("SHAMELA_BASE_URL"):
        _set(result, "api", "base_url", base_url)

    if timeout_str := os.environ.get("SHAMELA_TIMEOUT"):
        try:
            _set(result, "api", "timeout_seconds", float(timeout_str))
        except ValueError:
            logger.warning("Invalid SHAMELA_TIMEOUT value '%s', ignoring", timeout_str)

    if data_dir := os.environ.get("SHAMELA_DATA_DIR"):
        _set(result, "storage", "data_dir", data_dir)

    if cache_dir := os.environ.get("SHAMELA_CACHE_DIR"):
        _set(result, "storage", "cache_dir", cache_dir)

    if port_str := os.environ.get("SHAMELA_PORT"):
        try:
            _set(result, "server", "port", int(port_str))
        except ValueError:
            logger.warning("Invalid SHAMELA_PORT value '%s', ignoring", port_str)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "api": {"base_url": "https://dev.shamela.ws/api/v1", "timeout_seconds": 60.0},
        "storage": {"data_dir": "shamela_data", "cache_dir": "shamela_cache"},
        "server": {"host": "127.0.0.1", "port": 3001},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> MirrorConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (SHAMELA_*)
        2. Project config (.shamela-mirror.json)
        3. User config (~/.config/shamela-mirror/config.json)
        4. Hardcoded defaults

    Relative storage paths are resolved against the project directory.

    Args:
        project_dir: Directory to search for the project config (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated MirrorConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = MirrorConfig(**merged)
    config.storage = config.storage.resolve(get_project_dir(project_dir))

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
