"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class RegistryError(PackageError):
    """Raised when the apps registry cannot be read or updated."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class AppNotFoundError(PackageError):
    """Raised when an app is not declared in the registry."""

    app_names: list[str]
    available: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Return error message payload."""
        names = ", ".join(self.app_names)
        if not self.available:
            return f"App not found in registry: {names}"
        return f"App not found in registry: {names} (available: {', '.join(self.available)})"


@dataclass(frozen=True)
class EnvironmentNotFoundError(PackageError):
    """Raised when an app or the registry has no entry for an environment."""

    environment: str
    app_name: str | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        if self.app_name:
            return f"Environment '{self.environment}' not found for app '{self.app_name}'"
        return f"Environment '{self.environment}' not found in registry"


@dataclass(frozen=True)
class DesignFilesError(PackageError):
    """Raised when local design files required by a command are missing or invalid."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class CommandError(PackageError):
    """Raised when an external command exits with a failure."""

    command: str
    returncode: int

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Command '{self.command}' failed with exit code {self.returncode}"


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when external tools required by a command are missing."""

    missing_tools: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing external tools for '{self.message}': {', '.join(self.missing_tools)}"
