"""Config loading, defaults, validation, and dialect resolution."""

from __future__ import annotations

import copy
import logging
import platform
import re
from pathlib import Path

from procargs.dialect import Dialect
from procargs.macros import DEFAULT_MACRO_PATTERN
from procargs.utils import deep_merge, load_json, save_json

logger = logging.getLogger(__name__)

CONFIG_DIR = ".procargs"
CONFIG_FILE = "config.json"

DEFAULT_CONFIG: dict = {
    "version": 1,
    "dialect": "auto",
    "unix_shell": None,
    "windows_shell": None,
    "macro_pattern": DEFAULT_MACRO_PATTERN,
    "macros": {},
}

VALID_DIALECTS = {"auto", "unix", "windows"}


def get_config_path(start_dir: Path | None = None) -> Path:
    """Nearest .procargs/config.json at or above start_dir.

    When none exists yet, the path it would have directly under start_dir.
    """
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_DIR / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return start / CONFIG_DIR / CONFIG_FILE


def load_config(start_dir: Path | None = None, overrides: dict | None = None) -> dict:
    """Defaults, then the nearest config file, then overrides.

    Override entries that are None (unset CLI options) are ignored.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = get_config_path(start_dir)
    if config_path.exists():
        stored = load_json(config_path)
        if not stored:
            logger.warning("Ignoring unreadable config %s, using defaults", config_path)
        config = deep_merge(config, stored)
    if overrides:
        config = deep_merge(config, {k: v for k, v in overrides.items() if v is not None})
    return config


def save_config(config: dict, target_dir: Path | None = None) -> Path:
    """Write config, leaving out keys that still have their default value."""
    config_path = (target_dir or Path.cwd()) / CONFIG_DIR / CONFIG_FILE
    changed = {
        key: value for key, value in config.items()
        if key == "version" or DEFAULT_CONFIG.get(key) != value
    }
    save_json(config_path, changed)
    return config_path


def validate_config(config: dict) -> list[str]:
    """Validate config, returning list of error messages (empty if valid)."""
    errors = []
    dialect = config.get("dialect", "auto")
    if dialect not in VALID_DIALECTS:
        errors.append(f"Invalid dialect '{dialect}' (expected one of {sorted(VALID_DIALECTS)})")
    for key in ("unix_shell", "windows_shell"):
        value = config.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"'{key}' must be a string or null")
    pattern = config.get("macro_pattern", DEFAULT_MACRO_PATTERN)
    try:
        re.compile(pattern)
    except (re.error, TypeError) as exc:
        errors.append(f"Invalid macro_pattern: {exc}")
    macros = config.get("macros", {})
    if not isinstance(macros, dict):
        errors.append("'macros' must be a mapping of name to value")
    else:
        for name, value in macros.items():
            if not isinstance(value, str):
                errors.append(f"Macro '{name}': value must be a string")
    return errors


def host_dialect() -> Dialect:
    return Dialect.WINDOWS if platform.system() == "Windows" else Dialect.UNIX


def resolve_dialect(name: str | None) -> Dialect:
    """Map a config/CLI dialect name to a Dialect, resolving "auto" to the host."""
    if not name or name == "auto":
        return host_dialect()
    return Dialect(name)


def shell_for(config: dict, dialect: Dialect) -> str | None:
    """Configured fallback shell for dialect, or None to use the environment's."""
    key = "windows_shell" if dialect == Dialect.WINDOWS else "unix_shell"
    return config.get(key) or None
