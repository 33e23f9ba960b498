"""Configuration overrides for runtime tunables.

Layers, from lowest to highest precedence, onto ``Constants``:
a YAML or JSON config file, ``COMPKG_*`` environment variables and CLI flags.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Optional

import yaml

from common.errors import CompkgError
from constants import Constants

logger = logging.getLogger(__name__)

ENV_PREFIX = "COMPKG_"


def _to_int(value: Any) -> int:
    return int(value)


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# config key -> (Constants attribute, converter)
TUNABLES: Dict[str, tuple] = {
    "default_endpoint_type": ("DEFAULT_ENDPOINT_TYPE", _to_str),
    "default_endpoint_value": ("DEFAULT_ENDPOINT_VALUE", _to_str),
    "default_github_owner": ("DEFAULT_GITHUB_OWNER", _to_str),
    "github_token": ("GITHUB_TOKEN", _to_str),
    "default_gitlab_owner": ("DEFAULT_GITLAB_OWNER", _to_str),
    "default_gitlab_domain": ("DEFAULT_GITLAB_DOMAIN", _to_str),
    "default_gitlab_token": ("DEFAULT_GITLAB_TOKEN", _to_str),
    "registry_url_npm": ("REGISTRY_URL_NPM", _to_str),
    "registry_url_edp": ("REGISTRY_URL_EDP", _to_str),
    "install_dir": ("INSTALL_DIR", _to_str),
    "manifest_file": ("MANIFEST_FILE", _to_str),
    "save_target_key": ("SAVE_TARGET_KEY", _to_str),
    "module_config_key": ("MODULE_CONFIG_KEY", _to_str),
    "lock_config_key": ("LOCK_CONFIG_KEY", _to_str),
    "request_timeout": ("REQUEST_TIMEOUT", _to_int),
}


def find_config_file(search_dir: Optional[str] = None) -> Optional[str]:
    """First of ``Constants.CONFIG_FILES`` present in ``search_dir`` (default: cwd)."""
    search_dir = search_dir or os.getcwd()
    for file_name in Constants.CONFIG_FILES:
        path = os.path.join(search_dir, file_name)
        if os.path.isfile(path):
            return path
    return None


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict.

    Raises:
        CompkgError: If the file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CompkgError(f"Failed to load config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CompkgError(f"Config {path} must hold a mapping")
    return data


def _apply(key: str, attr: str, convert: Callable[[Any], Any], value: Any, source: str) -> None:
    try:
        setattr(Constants, attr, convert(value))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value for %s: %r", source, key, value)
        return
    logger.debug("config %s from %s", attr, source)


def apply_file_overrides(config: Dict[str, Any]) -> None:
    # nested ``endpoint: {type, value}`` is accepted as well
    endpoint = config.get("endpoint")
    if isinstance(endpoint, dict):
        config = dict(config)
        config.setdefault("default_endpoint_type", endpoint.get("type"))
        config.setdefault("default_endpoint_value", endpoint.get("value"))
    for key, value in config.items():
        spec = TUNABLES.get(str(key).lower())
        if spec is None:
            if key != "endpoint":
                logger.debug("unknown config key %s", key)
            continue
        attr, convert = spec
        _apply(key, attr, convert, value, "config file")


def apply_env_overrides(environ: Optional[Dict[str, str]] = None) -> None:
    environ = os.environ if environ is None else environ
    for key, (attr, convert) in TUNABLES.items():
        env_name = ENV_PREFIX + attr
        if env_name in environ:
            _apply(key, attr, convert, environ[env_name], "environment")


def apply_cli_overrides(args) -> None:
    install_dir = getattr(args, "INSTALL_DIR", None)
    if install_dir:
        Constants.INSTALL_DIR = install_dir


def apply_config_overrides(args, environ: Optional[Dict[str, str]] = None) -> None:
    """Apply config file, environment and CLI overrides to ``Constants``.

    The config file is ``--config`` when given, otherwise the first default
    config file found in the working directory.

    Raises:
        CompkgError: If an explicit ``--config`` file is missing or invalid.
    """
    path = getattr(args, "CONFIG", None)
    if path:
        if not os.path.isfile(path):
            raise CompkgError(f"Config file not found: {path}")
    else:
        path = find_config_file()
    if path:
        apply_file_overrides(load_config_file(path))
    apply_env_overrides(environ)
    apply_cli_overrides(args)
