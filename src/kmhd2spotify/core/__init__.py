"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Logging and user output (Loguru)
- Console management (Rich)

The core layer has no dependencies on the domain layer.
"""

from .config import (
    Config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
    validate_config,
)
from .console import get_console
from .output import log, setup_logging

__all__ = [
    "Config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "validate_config",
    "get_console",
    "log",
    "setup_logging",
]
