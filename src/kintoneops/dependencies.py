"""External tool checks for CLI commands."""

from __future__ import annotations

import shlex
import shutil

from kintoneops.exceptions import DependencyError


def _is_tool_available(executable: str) -> bool:
    """Check whether an executable can be found on PATH.

    Args:
        executable (str): Program name.

    Returns:
        bool: True if the program resolves on PATH.
    """
    return shutil.which(executable) is not None


def _collect_missing_tools(commands: list[str]) -> list[str]:
    """Collect programs missing from PATH.

    Args:
        commands (list[str]): Command prefixes, e.g. `npx ginue`.

    Returns:
        list[str]: Missing program names.
    """
    executables = dict.fromkeys(shlex.split(command)[0] for command in commands if command.strip())
    return [executable for executable in executables if not _is_tool_available(executable)]


def ensure_cli_tools(*commands: str, purpose: str) -> None:
    """Validate that the programs behind command prefixes are installed.

    Args:
        commands (str): Command prefixes to check.
        purpose (str): CLI command needing the tools.

    Raises:
        DependencyError: If one or more programs are missing.
    """
    missing = _collect_missing_tools(list(commands))
    if missing:
        raise DependencyError(missing_tools=missing, message=purpose)
