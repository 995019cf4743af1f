"""
Configuration for dlprotoc.

Settings are layered, lowest priority first:
    1. Built-in defaults
    2. Optional YAML file (dlprotoc.yaml)
    3. Environment variables (DLPROTOC_VERSION, DLPROTOC_CACHE_DIR,
       DLPROTOC_TIMEOUT)

Example dlprotoc.yaml:

    version: "31.0"
    cache_dir: build/protoc
    timeout: 120
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from dlprotoc.core.download import DEFAULT_TIMEOUT
from dlprotoc.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "dlprotoc.yaml"

# Build output directory set by the calling build system
BUILD_OUT_ENV_VAR = "OUT_DIR"

VERSION_ENV_VAR = "DLPROTOC_VERSION"
CACHE_DIR_ENV_VAR = "DLPROTOC_CACHE_DIR"
TIMEOUT_ENV_VAR = "DLPROTOC_TIMEOUT"

_KNOWN_KEYS = {"version", "cache_dir", "timeout"}


@dataclass
class ResolverConfig:
    """Settings used to construct a Resolver."""

    cache_dir: Path
    """Directory where protoc installs are cached"""

    version: Optional[str] = None
    """protoc version to install (None means the latest catalog version)"""

    timeout: float = DEFAULT_TIMEOUT
    """Download timeout in seconds"""


def get_global_cache_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Get the platform-specific per-user cache directory.

    Returns:
        Path: The global cache directory path.
            - Windows: %LOCALAPPDATA%\\dlprotoc
            - Linux/macOS: ~/.dlprotoc/
    """
    environ = os.environ if environ is None else environ
    if os.name == "nt":
        local_app_data = environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / "dlprotoc"
    return Path.home() / ".dlprotoc"


def default_cache_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Cache directory used when none is configured.

    Build scripts get OUT_DIR/protoc so the binary lives with the build
    outputs; otherwise the per-user cache is used.
    """
    environ = os.environ if environ is None else environ
    out_dir = environ.get(BUILD_OUT_ENV_VAR)
    if out_dir:
        return Path(out_dir) / "protoc"
    return get_global_cache_dir(environ)


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigError: If the file is required but missing, or is not valid YAML
    """
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigError(f"Configuration in {config_file} must be a mapping")

    unknown = set(config) - _KNOWN_KEYS
    if unknown:
        logger.warning(
            f"Ignoring unknown configuration keys in {config_file}: "
            f"{', '.join(sorted(unknown))}"
        )
    return config


def _parse_timeout(value: Any, source: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid timeout from {source}: {value!r}")
    if timeout <= 0:
        raise ConfigError(f"Timeout from {source} must be positive, got {value!r}")
    return timeout


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolverConfig:
    """
    Build the effective configuration.

    Args:
        config_file: YAML file to read. If None, ./dlprotoc.yaml is read when
            it exists; an explicit file must exist.
        environ: Environment mapping (default: os.environ)

    Returns:
        ResolverConfig with all layers applied

    Raises:
        ConfigError: If the file or a value is invalid
    """
    environ = os.environ if environ is None else environ

    if config_file is not None:
        file_config = load_yaml_config(Path(config_file), required=True)
    else:
        file_config = load_yaml_config(Path.cwd() / DEFAULT_CONFIG_FILENAME)

    config = ResolverConfig(cache_dir=default_cache_dir(environ))

    if file_config.get("version") is not None:
        config.version = str(file_config["version"])
    if file_config.get("cache_dir"):
        config.cache_dir = Path(file_config["cache_dir"]).expanduser()
    if file_config.get("timeout") is not None:
        config.timeout = _parse_timeout(file_config["timeout"], "config file")

    if environ.get(VERSION_ENV_VAR):
        config.version = environ[VERSION_ENV_VAR]
    if environ.get(CACHE_DIR_ENV_VAR):
        config.cache_dir = Path(environ[CACHE_DIR_ENV_VAR]).expanduser()
    if environ.get(TIMEOUT_ENV_VAR):
        config.timeout = _parse_timeout(environ[TIMEOUT_ENV_VAR], TIMEOUT_ENV_VAR)

    logger.debug(f"Effective configuration: {config}")
    return config
