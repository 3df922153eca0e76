"""Configuration file loading and overrides for runtime tunables.

A config file is YAML (or JSON, which YAML also parses) with an optional
``localpm:`` section::

    localpm:
      package_manager: yarn
      batch_size: 100
      exclude_dirs: [tmp, dist, build, coverage, test, vendor]

Values are applied over Constants; CLI flags are applied afterwards by the
entry point and therefore win.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the ``localpm`` section of a config file.

    Missing or unparseable files are logged and yield an empty mapping.
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
    section = data.get(Constants.CONFIG_SECTION, data)
    return section if isinstance(section, dict) else {}


def apply_config(config: Dict[str, Any]) -> None:
    """Apply recognized keys to Constants, ignoring invalid values."""
    manager = config.get("package_manager")
    if manager is not None:
        if manager in Constants.SUPPORTED_PACKAGE_MANAGERS:
            Constants.DEFAULT_PACKAGE_MANAGER = manager
        else:
            logger.warning("Ignoring unsupported package_manager in config: %s", manager)

    batch_size = config.get("batch_size")
    if batch_size is not None:
        try:
            value = int(batch_size)
        except (TypeError, ValueError):
            value = 0
        if value > 0:
            Constants.BATCH_SIZE = value
        else:
            logger.warning("Ignoring invalid batch_size in config: %s", batch_size)

    exclude_dirs = config.get("exclude_dirs")
    if exclude_dirs is not None:
        if isinstance(exclude_dirs, list) and all(isinstance(d, str) for d in exclude_dirs):
            Constants.EXCLUDED_DIRS = list(exclude_dirs)
        else:
            logger.warning("Ignoring invalid exclude_dirs in config: %s", exclude_dirs)

    for key, attr in (("install_dir_name", "INSTALL_DIR_NAME"), ("manifest_file", "PACKAGE_JSON_FILE")):
        value = config.get(key)
        if isinstance(value, str) and value:
            setattr(Constants, attr, value)
