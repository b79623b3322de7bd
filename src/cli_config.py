"""Configuration loading and overrides for runtime tunables.

Precedence, lowest to highest: built-in Constants, the ``resolver`` section of
a YAML/JSON config file, MTAGS_RESOLVER_* environment variables, CLI flags.
Overrides never raise; invalid values are logged and ignored.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, converter)
_TUNABLES = {
    "runtime_version": ("RUNTIME_VERSION", str),
    "snapshot_index_url": ("SNAPSHOT_INDEX_URL", str),
    "cache_dir": ("ARTIFACT_CACHE_DIR", os.path.expanduser),
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "max_tries_in_a_row": ("MAX_TRIES_IN_A_ROW", int),
    "retry_cooldown_sec": ("RETRY_COOLDOWN_SEC", float),
}


def _split_list(value: Any) -> list:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v) for v in value]


def _read_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        if path.lower().endswith(".json"):
            data = json.load(fh)
        else:
            data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """Return the ``resolver`` section of the config file.

    An explicit ``path`` is used as-is; otherwise the first existing default
    location is read. Missing or unreadable files yield an empty dict.
    """
    candidates = [path] if path else Constants.DEFAULT_CONFIG_PATHS
    for candidate in candidates:
        if not candidate or not os.path.isfile(candidate):
            if path:
                logger.warning("Config file not found: %s", candidate)
            continue
        try:
            data = _read_file(candidate)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Failed to load config %s: %s", candidate, e)
            return {}
        logger.debug("Loaded config from %s", candidate)
        section = data.get(Constants.CONFIG_SECTION, data)
        return section if isinstance(section, dict) else {}
    return {}


def apply_config(cfg: Mapping[str, Any]) -> None:
    """Apply a ``resolver`` config section onto Constants."""
    for key, (attr, convert) in _TUNABLES.items():
        if cfg.get(key) is None:
            continue
        try:
            setattr(Constants, attr, convert(cfg[key]))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value for %s: %r", key, cfg[key])
    if cfg.get("repositories"):
        try:
            Constants.REPOSITORIES = _split_list(cfg["repositories"])
        except TypeError:
            logger.warning("Ignoring invalid config value for repositories")
    if cfg.get("builtin_versions"):
        try:
            Constants.BUILTIN_SCALA_VERSIONS = _split_list(cfg["builtin_versions"])
        except TypeError:
            logger.warning("Ignoring invalid config value for builtin_versions")
    removed = cfg.get("removed_versions")
    if isinstance(removed, dict):
        merged = dict(Constants.REMOVED_VERSIONS)
        merged.update({str(k): str(v) for k, v in removed.items()})
        Constants.REMOVED_VERSIONS = merged
    elif removed is not None:
        logger.warning("Ignoring removed_versions: expected a mapping")


def apply_env_overrides(environ: Optional[Mapping[str, str]] = None) -> None:
    """Apply MTAGS_RESOLVER_<KEY> environment variables onto Constants."""
    env = os.environ if environ is None else environ
    cfg: Dict[str, Any] = {}
    for key in list(_TUNABLES) + ["repositories", "builtin_versions"]:
        value = env.get(Constants.ENV_PREFIX + key.upper())
        if value is not None and value.strip():
            cfg[key] = value.strip()
    if cfg:
        apply_config(cfg)


def apply_cli_overrides(args) -> None:
    """Apply CLI flags onto Constants (highest precedence)."""
    cfg: Dict[str, Any] = {
        "runtime_version": getattr(args, "RUNTIME_VERSION", None),
        "cache_dir": getattr(args, "CACHE_DIR", None),
        "snapshot_index_url": getattr(args, "SNAPSHOT_INDEX", None),
        "repositories": getattr(args, "REPOSITORIES", None),
    }
    apply_config({k: v for k, v in cfg.items() if v})
