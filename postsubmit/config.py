"""
Configuration loader for the postsubmit orchestrator.

Settings come from a YAML file (postsubmit.config.yaml at the project root by
default, or the path in $POSTSUBMIT_CONFIG). When the file is missing the
built-in defaults are used.

Example file:

    projects:
      - kubernetes/kubernetes
      - coredns/coredns
    global_triggers:
      - Makefile
      - release/.*
    defaults:
      release_branch: "1-19"
      region: us-east-1

Command-line flags always take precedence over `defaults`.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from postsubmit.classifier import DEFAULT_GLOBAL_TRIGGERS, GlobalTriggerRule
from postsubmit.errors import ConfigError
from postsubmit.registry import DEFAULT_PROJECTS

logger = logging.getLogger(__name__)

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

CONFIG_PATH = PROJECT_ROOT / "postsubmit.config.yaml"
CONFIG_ENV_VAR = "POSTSUBMIT_CONFIG"

# Defaults for the build flags, keyed by argparse dest
DEFAULT_BUILD_OPTIONS: Dict[str, Any] = {
    "target": "release",
    "release_branch": "1-18",
    "release": "1",
    "development": False,
    "region": "us-west-2",
    "account_id": "",
    "base_image": "",
    "image_repo": "",
    "go_runner_image": "",
    "kube_proxy_base": "",
    "artifact_bucket": "",
}


@dataclass
class PostsubmitConfig:
    """Loaded configuration."""
    projects: List[str] = field(default_factory=lambda: list(DEFAULT_PROJECTS))
    global_triggers: List[str] = field(default_factory=lambda: list(DEFAULT_GLOBAL_TRIGGERS))
    defaults: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_BUILD_OPTIONS))
    source: Optional[Path] = None


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Explicit path, then $POSTSUBMIT_CONFIG, then the project default."""
    if path is not None:
        return Path(path)
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return CONFIG_PATH


def _string_list(data: Dict[str, Any], key: str, fallback: List[str]) -> List[str]:
    value = data.get(key)
    if value is None:
        return list(fallback)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _normalize_defaults(defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Check value types and turn everything except `development` into str."""
    normalized: Dict[str, Any] = {}
    for key, value in defaults.items():
        if key == "development":
            if not isinstance(value, bool):
                raise ConfigError(f"'defaults.development' must be true or false, got {value!r}")
            normalized[key] = value
            continue
        # Floats are rejected: an unquoted 1.20 would silently become 1.2
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ConfigError(
                f"'defaults.{key}' must be a string (quote numbers like \"1-20\" or \"1.20\"), got {value!r}"
            )
        normalized[key] = str(value)
    return normalized


def load_config(path: Optional[Path] = None) -> PostsubmitConfig:
    """
    Load configuration, falling back to defaults if the file does not exist.

    Raises:
        ConfigError: the file exists but is not valid
    """
    config_path = resolve_config_path(path)

    if not config_path.exists():
        logger.warning(f"Config not found: {config_path}, using defaults")
        return PostsubmitConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigError("'defaults' must be a mapping")
    unknown = sorted(set(defaults) - set(DEFAULT_BUILD_OPTIONS))
    if unknown:
        raise ConfigError(f"Unknown keys in 'defaults': {', '.join(unknown)}")

    merged = dict(DEFAULT_BUILD_OPTIONS)
    merged.update(_normalize_defaults(defaults))

    projects = _string_list(data, "projects", DEFAULT_PROJECTS)
    if any(not p.strip() for p in projects):
        raise ConfigError("'projects' must not contain empty identifiers")

    global_triggers = _string_list(data, "global_triggers", DEFAULT_GLOBAL_TRIGGERS)
    for pattern in global_triggers:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigError(f"Invalid global trigger {pattern!r}: {e}") from e
    # Fragments must also compile once combined into a single rule
    try:
        GlobalTriggerRule(global_triggers)
    except re.error as e:
        raise ConfigError(f"Invalid global triggers {global_triggers!r}: {e}") from e

    config = PostsubmitConfig(
        projects=projects,
        global_triggers=global_triggers,
        defaults=merged,
        source=config_path,
    )
    logger.debug(f"Loaded config from {config_path}")
    return config
