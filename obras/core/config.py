"""
Configuration management for Obras.

Loads config.yaml and provides type-safe access to settings.
Secrets and endpoints can be overridden through environment variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Config file lives inside the obras package
_PACKAGE_DIR = Path(__file__).parent.parent.resolve()
CONFIG_PATH = _PACKAGE_DIR / "config.yaml"

# Environment overrides: env var -> config key path
ENV_OVERRIDES = {
    "OBRAS_API_BASE_URL": ("api", "base_url"),
    "OBRAS_API_TOKEN": ("auth", "token"),
    "OBRAS_SECRET_KEY": ("auth", "secret_key"),
}

# Cache for loaded config
_config_cache: Optional[Dict[str, Any]] = None


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Load configuration from config.yaml.

    Args:
        reload: Force reload even if cached

    Returns:
        Configuration dictionary
    """
    global _config_cache

    if _config_cache is not None and not reload:
        return _config_cache

    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    _apply_env_overrides(config)
    _config_cache = config
    return _config_cache


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value


def get_config_value(*keys: str, default: Any = None) -> Any:
    """
    Get a nested config value safely.

    Args:
        *keys: Path of keys to traverse (e.g., 'api', 'base_url')
        default: Value to return if key not found

    Example:
        base_url = get_config_value('api', 'base_url', default='http://localhost:3000')
    """
    config = get_config()

    for key in keys:
        if isinstance(config, dict) and key in config:
            config = config[key]
        else:
            return default

    return config


_BRANDING_DEFAULTS = {
    "app_name": "Obras",
    "app_tagline": "Gestión de proyectos y facturación",
    "brand_office_keyword": "sugate",
    "colors": {
        "primary": "#1F4E79",
        "primary_subtle": "#D9E2F3",
        "nav_bg": "#16202e",
        "warning": "#d97706",
        "neutral": "#5a6478",
    },
}


def get_branding() -> Dict[str, Any]:
    """Return merged branding config (config.yaml overrides defaults)."""
    cfg = get_config().get("branding", {}) or {}
    result = {}
    for key, default in _BRANDING_DEFAULTS.items():
        if isinstance(default, dict):
            merged = dict(default)
            merged.update(cfg.get(key, {}) or {})
            result[key] = merged
        else:
            result[key] = cfg.get(key, default)
    return result


class ObrasPaths:
    """
    Centralized path access for Obras.

    Usage:
        from obras.core.config import OBRAS_PATHS
        out = OBRAS_PATHS.exports
    """

    def __init__(self):
        self._config = None

    def _ensure_config(self):
        if self._config is None:
            self._config = get_config()

    def _resolve(self, raw: str) -> Path:
        """Resolve a path: if relative, resolve against _PACKAGE_DIR."""
        p = Path(raw)
        if not p.is_absolute():
            p = _PACKAGE_DIR / p
        return p

    @property
    def exports(self) -> Path:
        self._ensure_config()
        raw = (self._config.get("finance", {}) or {}).get("export_dir", "data/exports")
        return self._resolve(raw)

    @property
    def secret_key_file(self) -> Path:
        self._ensure_config()
        raw = (self._config.get("auth", {}) or {}).get("secret_key_file", "data/.secret_key")
        return self._resolve(raw)

    @property
    def config_dir(self) -> Path:
        return _PACKAGE_DIR

    @property
    def root(self) -> Path:
        return _PACKAGE_DIR


# Singleton instance
OBRAS_PATHS = ObrasPaths()
