"""Customization upload through kintone-customize-uploader."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from kintoneops import logger
from kintoneops.exceptions import CommandError, DesignFilesError
from kintoneops.sync import redact_command, run_command
from kintoneops.typing.enums import Environment

if TYPE_CHECKING:
    from pathlib import Path

    from kintoneops.settings import KintoneCredentials, Settings
    from kintoneops.typing.protocol import CommandRunner

CUSTOMIZE_SOURCE_DIR = "src/apps"
MANIFEST_FILE_NAMES: dict[str, str] = {
    Environment.DEV.value: "dev.json",
    Environment.PROD.value: "pro.json",
}


def manifest_path(settings: Settings, app_name: str, environment: str) -> Path:
    """Return the uploader manifest of an app for an environment."""
    file_name = MANIFEST_FILE_NAMES.get(environment, f"{environment}.json")
    return settings.project_root / CUSTOMIZE_SOURCE_DIR / app_name / file_name


def build_upload_command(command_prefix: str, credentials: KintoneCredentials, manifest: str) -> list[str]:
    """Build the uploader argv for a manifest."""
    return [
        *shlex.split(command_prefix),
        "--base-url",
        credentials.base_url,
        "--username",
        credentials.username,
        "--password",
        credentials.password,
        manifest,
    ]


def upload_customization(
    settings: Settings,
    app_name: str,
    environment: str = Environment.DEV.value,
    *,
    runner: CommandRunner = run_command,
) -> Path:
    """Upload the JavaScript/CSS customization of an app.

    Args:
        settings (Settings): Runtime settings.
        app_name (str): Directory name under `src/apps`.
        environment (str): Target environment.
        runner (CommandRunner): Command executor.

    Raises:
        DesignFilesError: If the manifest does not exist.
        CommandError: If the uploader fails.

    Returns:
        Path: Uploaded manifest.
    """
    credentials = settings.credentials_for(environment)
    manifest = manifest_path(settings, app_name, environment)
    if not manifest.is_file():
        raise DesignFilesError(message=f"Customize manifest not found: {manifest}")

    relative_manifest = manifest.relative_to(settings.project_root).as_posix()
    argv = build_upload_command(settings.uploader_command, credentials, relative_manifest)
    logger.info(
        "Uploading customization",
        extra={"app_name": app_name, "environment": environment, "base_url": credentials.base_url},
    )
    returncode = runner(argv, cwd=settings.project_root)
    if returncode != 0:
        raise CommandError(command=redact_command(argv), returncode=returncode)
    logger.info("Upload completed", extra={"manifest": relative_manifest})
    return manifest
