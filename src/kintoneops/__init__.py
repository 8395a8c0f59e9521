"""kintoneops package."""

from kintoneops.exceptions import (
    AppNotFoundError,
    CommandError,
    DependencyError,
    DesignFilesError,
    EnvironmentNotFoundError,
    PackageError,
    RegistryError,
    SettingsError,
)
from kintoneops.logging import configure_logging, get_logger
from kintoneops.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("kintoneops")

__all__ = [
    "AppNotFoundError",
    "CommandError",
    "DependencyError",
    "DesignFilesError",
    "EnvironmentNotFoundError",
    "PackageError",
    "RegistryError",
    "Settings",
    "SettingsError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
]
