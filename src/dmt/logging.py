"""Logging setup for the dmt CLI.

The library only creates module loggers. The CLI applies one of the YAML
files in ``dmt/config/`` through ``logging.config.dictConfig``.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Any, cast

import yaml
from rich.console import Console

CONFIG_DIR = Path(__file__).parent / "config"

# Log output goes to stderr so reports on stdout stay machine-readable
STDERR_CONSOLE = Console(stderr=True)

_ENVIRONMENT_ALIASES = {"development": "dev", "production": "prod"}
_KNOWN_ENVIRONMENTS = frozenset({"dev", "test", "prod"})


class LoggingError(Exception):
    """Exception raised for logging configuration errors."""

    pass


def get_config_path(
    config_name: str | None = None,
    environment: str | None = None,
    config_dir: Path = CONFIG_DIR,
) -> Path:
    """Select the logging configuration file to apply.

    An explicit name wins, then the environment (argument first, ``DMT_ENV``
    second). Environments without their own file use ``logging.yaml``.

    Args:
        config_name: File name without the ``.yaml`` suffix
        environment: One of dev, test or prod (long forms accepted)
        config_dir: Directory searched for configuration files

    Raises:
        LoggingError: If not even ``logging.yaml`` exists

    """
    if config_name:
        config_file = f"{config_name}.yaml"
    else:
        env = (environment or os.getenv("DMT_ENV", "")).lower()
        env = _ENVIRONMENT_ALIASES.get(env, env)
        if env in _KNOWN_ENVIRONMENTS:
            config_file = f"logging-{env}.yaml"
        else:
            config_file = "logging.yaml"

    config_path = config_dir / config_file

    # Fall back to the default when no environment-specific file exists
    if not config_path.exists() and config_file != "logging.yaml":
        config_path = config_dir / "logging.yaml"

    if not config_path.exists():
        available = (
            sorted(p.name for p in config_dir.glob("logging*.yaml"))
            if config_dir.exists()
            else "config directory not found"
        )
        raise LoggingError(
            f"No logging configuration found. Expected at: {config_path}\n"
            f"Available configs: {available}"
        )

    return config_path


def load_config(config_path: Path) -> dict[str, Any]:
    """Read a dictConfig mapping from a YAML file.

    Raises:
        LoggingError: If the file is unreadable, not YAML, or not a mapping

    """
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise LoggingError(f"Failed to parse YAML config {config_path}: {e}") from e
    except OSError as e:
        raise LoggingError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise LoggingError(f"Invalid configuration format in {config_path}")
    return cast(dict[str, Any], config)


def create_log_directories(config: dict[str, Any]) -> None:
    """Create parent directories for every file handler in a configuration.

    Relative filenames resolve against the current working directory.
    """
    for handler_config in config.get("handlers", {}).values():
        if isinstance(handler_config, dict) and "filename" in handler_config:
            log_file = Path(cast(str, handler_config["filename"]))
            log_file.parent.mkdir(parents=True, exist_ok=True)


def apply_level_override(config: dict[str, Any], level: str) -> None:
    """Override logger levels in a configuration dictionary.

    Handler levels are lowered only when the new level is more verbose.

    Args:
        config: Logging configuration dictionary, modified in place
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        LoggingError: If the level name is not a logging level

    """
    numeric_level = logging.getLevelNamesMapping().get(level.upper())
    if numeric_level is None:
        raise LoggingError(f"Invalid log level: {level}")
    level = level.upper()

    for logger_config in config.get("loggers", {}).values():
        logger_config["level"] = level
    if "root" in config:
        config["root"]["level"] = level

    for handler_config in config.get("handlers", {}).values():
        if isinstance(handler_config, dict) and "level" in handler_config:
            current_level = logging.getLevelNamesMapping().get(
                str(handler_config["level"]).upper(), logging.INFO
            )
            if numeric_level < current_level:
                handler_config["level"] = level


def setup_logging(
    config_path: Path | str | None = None,
    level: str | None = None,
    environment: str | None = None,
    force_basic: bool = False,
) -> None:
    """Apply a YAML logging configuration with ``dictConfig``.

    Any failure to find, read or apply the configuration falls back to
    ``basicConfig`` on stderr, so the CLI always has working logging.

    Args:
        config_path: Configuration file. None selects one by environment
        level: Level name applied to every configured logger
        environment: Environment used when selecting the file
        force_basic: Skip the YAML configuration entirely

    """
    if force_basic:
        _setup_basic_logging(level or "INFO")
        return

    try:
        if isinstance(config_path, str):
            config_path = Path(config_path)
        elif config_path is None:
            config_path = get_config_path(environment=environment)

        config = load_config(config_path)
        if level:
            apply_level_override(config, level)

        create_log_directories(config)
        logging.config.dictConfig(config)

        logging.getLogger(__name__).debug(
            "Logging configured from: %s", config_path.name
        )

    except (LoggingError, ImportError, KeyError, ValueError, TypeError) as e:
        fallback_level = level or "INFO"
        _setup_basic_logging(fallback_level)

        logging.getLogger(__name__).warning(
            "Failed to configure logging from file (%s), "
            "using basic console logging at %s level",
            e,
            fallback_level,
        )


def _setup_basic_logging(level: str) -> None:
    """Log to stderr with a plain format at the given level name."""
    numeric_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
