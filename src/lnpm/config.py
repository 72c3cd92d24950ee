"""Runtime settings: defaults, YAML config file, environment, CLI flags.

Later sources win. The config file is optional; a missing or unreadable file
is logged and ignored so it never breaks an install.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

from lnpm.constants import Constants

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Resolved runtime settings for one invocation."""
    registry: str = Constants.REGISTRY_URL_NPM
    timeout: int = Constants.REQUEST_TIMEOUT
    log_level: str = Constants.DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML (or JSON) config file.

    Args:
        config_path: Path given with -c/--config, or None.

    Returns:
        The ``lnpm`` section if present, else the whole mapping; ``{}`` on
        any problem.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}
    if not isinstance(data, dict):
        return {}
    section = data.get("lnpm", data)
    return section if isinstance(section, dict) else {}


def _normalize_registry(url: str) -> str:
    return url.strip().rstrip("/") + "/"


def _apply_file(settings: Settings, data: Mapping[str, Any]) -> None:
    if data.get("registry"):
        settings.registry = _normalize_registry(str(data["registry"]))
    if data.get("timeout") is not None:
        try:
            settings.timeout = int(data["timeout"])
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid timeout in config: %r", data["timeout"])
    if data.get("log_level"):
        settings.log_level = str(data["log_level"]).upper()


def _apply_env(settings: Settings, environ: Mapping[str, str]) -> None:
    registry = environ.get(Constants.ENV_REGISTRY) or environ.get(Constants.ENV_NPM_REGISTRY)
    if registry and registry.strip():
        settings.registry = _normalize_registry(registry)
    level = environ.get(Constants.ENV_LOG_LEVEL)
    if level and level.strip():
        settings.log_level = level.strip().upper()


def _apply_args(settings: Settings, args: Any) -> None:
    if getattr(args, "REGISTRY", None):
        settings.registry = _normalize_registry(args.REGISTRY)
    if getattr(args, "LOG_LEVEL", None):
        settings.log_level = str(args.LOG_LEVEL).upper()
    if getattr(args, "LOG_FILE", None):
        settings.log_file = args.LOG_FILE


def load_settings(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from config file, environment and parsed CLI arguments."""
    if environ is None:
        environ = os.environ
    settings = Settings()
    _apply_file(settings, load_config_file(getattr(args, "CONFIG", None)))
    _apply_env(settings, environ)
    _apply_args(settings, args)
    return settings
