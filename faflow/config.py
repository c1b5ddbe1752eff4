"""
Process configuration.

`AppConfig` is built once at start-up by `load_config` and then passed
explicitly to every component that needs it.  Values come from three
layers, later layers winning:

1. the dataclass defaults below,
2. an optional YAML file (``--config``),
3. environment variables prefixed with ``FN_``; a ``.env`` file in the
   working directory is loaded first with python-dotenv.

Invalid values never abort start-up: they are logged and the default
is used instead.  Per-type user whitelists are read from the YAML
``user_filters`` mapping or from ``FN_FILTER_USERS_*`` variables.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv

from .entries.tools import normalize_username
from .entries.types import EntryType, valid_entry_types
from .filters.users import UserFilter

logger = logging.getLogger(__name__)

ENV_PREFIX = "FN_"
MINIMUM_UPDATE_INTERVAL = 30
MAX_CONTENT_LENGTH = 3072
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:143.0) Gecko/20100101 Firefox/143.0"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

# Config keys whose environment variable does not simply upper-case the key.
_ENV_NAMES = {"iterate_submissions_backwards": "SUBMISSIONS_BACKWARDS"}


@dataclass
class AppConfig:
    database_path: str = "./data/main.db"
    update_interval: int = 120
    limit_concurrency: int = 4
    request_timeout: int = 30
    user_agent: str = DEFAULT_USER_AGENT
    iterate_submissions_backwards: bool = True
    respect_blocked_tags: bool = True
    only_since_registration: bool = True
    only_since_type_enabled: bool = True
    enable_login_check: bool = True
    enable_other_entries: bool = True
    enable_submissions: bool = True
    fetch_submission_content: bool = True
    max_content_length: int = MAX_CONTENT_LENGTH
    log_level: str = "INFO"
    log_file: Optional[str] = None
    user_filters: Dict[EntryType, List[str]] = field(default_factory=dict)

    def user_filter(self) -> UserFilter:
        """A fresh whitelist filter built from the configured user lists."""
        return UserFilter(self.user_filters)


def env_var_name(key: str) -> str:
    return ENV_PREFIX + _ENV_NAMES.get(key, key.upper())


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"'{raw}' is not a boolean")


def split_user_list(raw: Union[str, List[Any], None]) -> List[str]:
    """Split a comma and/or whitespace separated user list; entries are normalized."""
    if raw is None:
        return []
    items = raw if isinstance(raw, list) else re.split(r"[,\s]+", str(raw))
    users = [normalize_username(str(item)) for item in items]
    return [user for user in users if user]


def _coerce(key: str, raw: Any, default: Any) -> Any:
    try:
        if isinstance(default, bool):
            return parse_bool(raw)
        if isinstance(default, int):
            return int(str(raw).strip())
        return None if raw is None else str(raw)
    except ValueError:
        logger.warning("Invalid value %r for %s, using default %r", raw, key, default)
        return default


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        logger.warning("Error parsing config file %s: %s", path, exc)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring it", path)
        return {}
    return data


def _validate(config: AppConfig) -> AppConfig:
    defaults = AppConfig()
    if config.update_interval < MINIMUM_UPDATE_INTERVAL:
        logger.warning(
            "update_interval %ds is below the minimum, using %ds",
            config.update_interval,
            MINIMUM_UPDATE_INTERVAL,
        )
        config.update_interval = MINIMUM_UPDATE_INTERVAL
    if config.max_content_length <= 0:
        logger.warning("Invalid max_content_length %d, using default", config.max_content_length)
        config.max_content_length = defaults.max_content_length
    elif config.max_content_length > MAX_CONTENT_LENGTH:
        logger.warning("max_content_length too large, using maximum value of %d", MAX_CONTENT_LENGTH)
        config.max_content_length = MAX_CONTENT_LENGTH
    if config.request_timeout <= 0:
        logger.warning("Invalid request_timeout %d, using default", config.request_timeout)
        config.request_timeout = defaults.request_timeout
    if logging.getLevelName(config.log_level.upper()) not in (
        logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
    ):
        logger.warning("Unknown log_level %r, using INFO", config.log_level)
        config.log_level = defaults.log_level
    return config


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build the process configuration from defaults, YAML and ``FN_*`` variables.

    Args:
        path: Optional YAML config file.
        environ: Environment mapping to read; defaults to ``os.environ``
            after loading ``.env``.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    file_values = _read_yaml(path) if path else {}
    config = AppConfig()

    for f in fields(AppConfig):
        if f.name == "user_filters":
            continue
        default = getattr(config, f.name)
        raw = environ.get(env_var_name(f.name))
        if raw is None or raw == "":
            raw = file_values.get(f.name)
        if raw is None:
            continue
        setattr(config, f.name, _coerce(f.name, raw, default))

    yaml_filters = file_values.get("user_filters") or {}
    if not isinstance(yaml_filters, dict):
        logger.warning("user_filters must be a mapping, ignoring it")
        yaml_filters = {}
    for entry_type in valid_entry_types():
        raw_filter = environ.get(ENV_PREFIX + entry_type.filter_env_var())
        if not raw_filter:
            raw_filter = yaml_filters.get(entry_type.filter_config_key())
        users = split_user_list(raw_filter)
        if users:
            config.user_filters[entry_type] = users
            logger.info("User filter for %s: %s", entry_type, ", ".join(users))

    return _validate(config)
