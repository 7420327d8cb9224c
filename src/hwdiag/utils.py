"""
hwdiag Utility Functions

This module provides helper functions for:
    - Configuration management (YAML)
    - Logging utilities
    - Unit conversion
    - Platform queries (subprocess, sysfs)
"""

import os
import re
import copy
import logging
import subprocess
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml
from platformdirs import user_config_dir, user_log_dir

# Configure module logger
logger = logging.getLogger("hwdiag")

APP_NAME = "hwdiag"
API_URL_ENV = "HWDIAG_API_URL"

BYTES_PER_GB = 1024 ** 3


# =============================================================================
# Configuration Management
# =============================================================================

def get_default_config_path() -> Path:
    """Return the per-user config file location."""
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "api": {
            "base_url": "http://localhost:8080/api/v1",
            "request_timeout": 30,
            "resource_timeout": 60,
            "health_timeout": 5,
        },
        "collection": {
            # Pause between categories so progress is visible; 0 disables
            "step_delay_seconds": 0.5,
            # None selects the system root volume
            "storage_volume": None,
        },
        "debug": {
            "verbose": False,
            "log_level": "INFO",
            "save_debug_logs": False,
            "debug_log_file": None,
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` onto ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if value is None and isinstance(merged.get(key), dict):
            # An empty YAML section keeps its defaults
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Values present in the file override the defaults; anything missing keeps
    its default. The ``HWDIAG_API_URL`` environment variable, when set,
    replaces ``api.base_url``.

    Args:
        config_path: Path to config file. If None, uses the per-user location.

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path else get_default_config_path()
    config = get_default_config()

    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}. Using defaults.")
    else:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                config = _merge(config, loaded)
            elif loaded is not None:
                logger.warning(f"Ignoring config {config_path}: top level is not a mapping")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config: {e}")

    env_url = os.environ.get(API_URL_ENV)
    if env_url:
        config["api"]["base_url"] = env_url

    return config


def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save config file

    Returns:
        True if successful, False otherwise
    """
    config_path = Path(config_path) if config_path else get_default_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error saving config: {e}")
        return False


# =============================================================================
# Logging Utilities
# =============================================================================

def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Set up logging for hwdiag.

    Args:
        config: Configuration dictionary

    Returns:
        Configured logger
    """
    config = config or get_default_config()
    debug_config = config.get("debug", {})

    log_level = getattr(logging, str(debug_config.get("log_level", "INFO")).upper(), logging.INFO)
    verbose = debug_config.get("verbose", False)

    logger = logging.getLogger(APP_NAME)
    logger.setLevel(log_level)

    # Repeated calls (e.g. one per CLI invocation in tests) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Console handler
    if verbose or log_level == logging.DEBUG:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler (if enabled)
    if debug_config.get("save_debug_logs", False):
        log_file = debug_config.get("debug_log_file")
        log_file = Path(log_file) if log_file else Path(user_log_dir(APP_NAME)) / "debug.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# Unit Conversion
# =============================================================================

def bytes_to_gb(value: float) -> float:
    """Convert a byte count to GiB rounded to two decimals."""
    return round(value / BYTES_PER_GB, 2)


# =============================================================================
# Platform Queries
# =============================================================================

_IOREG_PROPERTY = re.compile(r'^\s*[|\s]*"(?P<key>[^"]+)"\s*=\s*(?P<value>.+?)\s*$')


def run_command(args: List[str], timeout: float = 5.0) -> Optional[str]:
    """
    Run a platform tool and return its stdout.

    Returns:
        Captured stdout, or None if the tool is missing, fails or times out
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"{args[0]} unavailable: {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"{args[0]} exited with {result.returncode}: {result.stderr.strip()}")
        return None
    return result.stdout


def parse_ioreg_properties(output: str) -> Dict[str, str]:
    """
    Parse ``"Key" = value`` lines from ``ioreg`` output.

    String values are unquoted; everything else is returned verbatim.
    The first occurrence of a key wins.
    """
    properties: Dict[str, str] = {}
    for line in output.splitlines():
        match = _IOREG_PROPERTY.match(line)
        if not match:
            continue
        key, value = match.group("key"), match.group("value")
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        properties.setdefault(key, value)
    return properties


def read_text_file(path: Path) -> Optional[str]:
    """Read a small sysfs-style file, returning None when unreadable."""
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None
