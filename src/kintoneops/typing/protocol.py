"""Collaborator interfaces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from kintoneops.typing.models import Registry


class RegistryBackend(Protocol):
    """Key-value store holding the apps registry."""

    def load(self) -> Registry:
        """Read the registry.

        Returns:
            Registry: Current registry content.
        """

    def save(self, registry: Registry) -> None:
        """Persist the registry.

        Args:
            registry: Registry content to write.
        """


class CommandRunner(Protocol):
    """Runs an external command to completion."""

    def __call__(self, argv: list[str], *, cwd: Path) -> int:
        """Run a command.

        Args:
            argv: Program and arguments, no shell involved.
            cwd: Working directory.

        Returns:
            int: Exit code.
        """
