"""Edit settings registry.

Provides defaults for add/update/delete edits and the component catalog.
Environment variables take precedence over YAML config.

Usage:
    from flowgraph.config.edit_config import get_edit_settings

    settings = get_edit_settings()
    if settings.allow_cycles:
        ...

Environment variables:
    FLOWGRAPH_ALLOW_CYCLES          "1"/"true"/"yes"/"on" enables
    FLOWGRAPH_REQUIRE_PLACEHOLDER   same boolean parsing
    FLOWGRAPH_BACKUP_ON_WRITE       same boolean parsing
    FLOWGRAPH_DELETE_STRATEGY       splice | remove-only
    FLOWGRAPH_MULTI_PREDECESSOR     error | splice-all
    FLOWGRAPH_CATALOG_PATHS         os.pathsep-separated manifest paths
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "edit.yaml"
_cached_config: Optional[Dict[str, Any]] = None

ENV_PREFIX = "FLOWGRAPH_"

VALID_DELETE_STRATEGIES = ("splice", "remove-only")
VALID_MULTI_PREDECESSOR = ("error", "splice-all")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class EditSettings:
    """Resolved edit settings after env/config/default cascade."""
    allow_cycles: bool = False
    require_placeholder: bool = True
    backup_on_write: bool = True
    delete_strategy: str = "splice"
    multi_predecessor: str = "error"
    catalog_paths: List[str] = field(default_factory=list)


def _load_config() -> Dict[str, Any]:
    """Load edit.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            _cached_config = yaml.safe_load(f) or {}
        logger.debug("Loaded edit config from %s", _CONFIG_PATH)
    else:
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if edit.yaml doesn't exist."""
    defaults = EditSettings()
    return {
        "version": "1.0",
        "defaults": {
            "allow_cycles": defaults.allow_cycles,
            "require_placeholder": defaults.require_placeholder,
            "backup_on_write": defaults.backup_on_write,
            "delete_strategy": defaults.delete_strategy,
            "multi_predecessor": defaults.multi_predecessor,
        },
        "catalog_paths": [],
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def _get_bool(key: str, default: bool) -> bool:
    """Boolean setting: env var, then config file, then default."""
    env_var = f"{ENV_PREFIX}{key.upper()}"
    env_value = os.environ.get(env_var)
    if env_value is not None and env_value.strip():
        lowered = env_value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning(
            "Invalid %s value '%s' (expected a boolean). Falling back to %s.",
            env_var,
            env_value,
            default,
        )
        return default

    value = _load_config().get("defaults", {}).get(key)
    if isinstance(value, bool):
        return value
    if value is not None:
        logger.warning("Invalid %s value '%s' in config. Falling back to %s.", key, value, default)
    return default


def _get_choice(key: str, valid: Tuple[str, ...], default: str) -> str:
    """Enumerated setting: env var, then config file, then default."""
    env_var = f"{ENV_PREFIX}{key.upper()}"
    env_value = os.environ.get(env_var)
    if env_value:
        lowered = env_value.lower()
        if lowered not in valid:
            logger.warning(
                "Invalid %s value '%s' (valid: %s). Falling back to '%s'.",
                env_var,
                env_value,
                ", ".join(valid),
                default,
            )
            return default
        return lowered

    config_value = _load_config().get("defaults", {}).get(key)
    if config_value:
        lowered = str(config_value).lower()
        if lowered not in valid:
            logger.warning(
                "Invalid %s value '%s' in config (valid: %s). Falling back to '%s'.",
                key,
                config_value,
                ", ".join(valid),
                default,
            )
            return default
        return lowered

    return default


def get_catalog_paths() -> List[str]:
    """Component manifest paths from FLOWGRAPH_CATALOG_PATHS or config."""
    env_value = os.environ.get(f"{ENV_PREFIX}CATALOG_PATHS")
    if env_value:
        return [p for p in env_value.split(os.pathsep) if p]
    return [str(p) for p in _load_config().get("catalog_paths") or []]


def get_edit_settings() -> EditSettings:
    """Resolve all edit settings.

    Environment variable precedence (highest to lowest):
    1. FLOWGRAPH_<KEY>
    2. edit.yaml `defaults`
    3. EditSettings defaults
    """
    defaults = EditSettings()
    return EditSettings(
        allow_cycles=_get_bool("allow_cycles", defaults.allow_cycles),
        require_placeholder=_get_bool("require_placeholder", defaults.require_placeholder),
        backup_on_write=_get_bool("backup_on_write", defaults.backup_on_write),
        delete_strategy=_get_choice("delete_strategy", VALID_DELETE_STRATEGIES, defaults.delete_strategy),
        multi_predecessor=_get_choice("multi_predecessor", VALID_MULTI_PREDECESSOR, defaults.multi_predecessor),
        catalog_paths=get_catalog_paths(),
    )
