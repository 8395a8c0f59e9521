"""Registry-driven pull/push of app designs through ginue."""

from __future__ import annotations

import json
import shlex
import shutil
import subprocess  # noqa: S404
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from kintoneops import logger
from kintoneops.exceptions import CommandError, DesignFilesError, PackageError
from kintoneops.typing.enums import Environment, FieldType, SyncAction

if TYPE_CHECKING:
    from pathlib import Path

    from kintoneops.registry_store import AppRegistry
    from kintoneops.settings import KintoneCredentials, Settings
    from kintoneops.typing.protocol import CommandRunner

FIELDS_FILE_NAME = "app_form_fields.json"
FORM_FILE_NAME = "form.json"
TEMP_DIR_NAME = "temp"
_SECRET_FLAGS = frozenset({"--password", "--basic"})


def run_command(argv: list[str], *, cwd: Path) -> int:
    """Run a command inheriting the terminal and return its exit code."""
    completed = subprocess.run(argv, cwd=cwd, check=False)  # noqa: S603
    return completed.returncode


def redact_command(argv: list[str]) -> str:
    """Return a printable command line with secret option values masked."""
    masked: list[str] = []
    hide_next = False
    for token in argv:
        masked.append("***" if hide_next else token)
        hide_next = token in _SECRET_FLAGS
    return shlex.join(masked)


def build_ginue_command(
    command_prefix: str,
    action: SyncAction,
    credentials: KintoneCredentials,
    app_id: str,
) -> list[str]:
    """Build the ginue argv for one app.

    Args:
        command_prefix (str): Program invoking ginue, e.g. `npx ginue`.
        action (SyncAction): Export pulls, import pushes.
        credentials (KintoneCredentials): Target environment credentials.
        app_id (str): kintone app id.

    Returns:
        list[str]: Command arguments.
    """
    argv = [
        *shlex.split(command_prefix),
        action.ginue_verb,
        "--domain",
        credentials.domain,
        "--username",
        credentials.username,
        "--password",
        credentials.password,
        "--app",
        app_id,
    ]
    if credentials.basic_auth:
        argv.extend(["--basic", credentials.basic_auth])
    return argv


def strip_reference_tables_from_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop REFERENCE_TABLE fields from an `app_form_fields.json` payload."""
    properties = payload.get("properties") or {}
    kept: dict[str, Any] = {}
    for code, definition in properties.items():
        if isinstance(definition, dict) and definition.get("type") == FieldType.REFERENCE_TABLE:
            logger.info("Skipping REFERENCE_TABLE field", extra={"field_code": code})
            continue
        kept[code] = definition
    return {**payload, "properties": kept}


def strip_reference_tables_from_form(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop REFERENCE_TABLE entries from a `form.json` payload."""
    kept: list[Any] = []
    for item in payload.get("properties") or []:
        if isinstance(item, dict) and item.get("type") == FieldType.REFERENCE_TABLE:
            logger.info("Skipping REFERENCE_TABLE in form layout", extra={"field_code": item.get("code")})
            continue
        kept.append(item)
    return {**payload, "properties": kept}


def _copy_design_file(source: Path, destination: Path) -> None:
    if source.name in (FIELDS_FILE_NAME, FORM_FILE_NAME):
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
            if source.name == FIELDS_FILE_NAME:
                payload = strip_reference_tables_from_fields(payload)
            else:
                payload = strip_reference_tables_from_form(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError, TypeError) as exc:
            raise DesignFilesError(message=f"Invalid design file {source}: {exc}") from exc
        destination.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return
    shutil.copyfile(source, destination)


class SyncReport(BaseModel):
    """Outcome of a multi-app synchronization."""

    model_config = ConfigDict(extra="forbid")

    action: SyncAction
    environment: str
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return whether every app was processed."""
        return not self.failed


class GinueSync:
    """Pulls and pushes app designs declared in the registry."""

    def __init__(
        self,
        settings: Settings,
        registry: AppRegistry,
        runner: CommandRunner = run_command,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.runner = runner

    def _run(self, argv: list[str], *, cwd: Path) -> None:
        returncode = self.runner(argv, cwd=cwd)
        if returncode != 0:
            raise CommandError(command=redact_command(argv), returncode=returncode)

    def pull_app(self, app_name: str, environment: str) -> Path:
        """Pull an app design into `design/apps/<app>/<environment>/`.

        Args:
            app_name (str): Registry app name.
            environment (str): Source environment.

        Returns:
            Path: Directory receiving the design files.
        """
        app = self.registry.get_app(app_name)
        app_id = self.registry.get_app_environment(app_name, environment).app_id
        credentials = self.settings.credentials_for(environment)
        root = self.settings.project_root
        output_dir = self.settings.design_apps_path / app_name / environment
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Pulling app",
            extra={"app_name": app_name, "title": app.name, "environment": environment, "app_id": app_id},
        )
        self._run(build_ginue_command(self.settings.ginue_command, SyncAction.EXPORT, credentials, app_id), cwd=root)

        pulled_dir = root / app_id
        if pulled_dir.is_dir():
            for item in pulled_dir.iterdir():
                target = output_dir / item.name
                if target.is_dir():
                    shutil.rmtree(target)
                shutil.move(str(item), str(target))
            pulled_dir.rmdir()

        self.registry.record_sync(app_name, SyncAction.EXPORT)
        logger.info("Pull completed", extra={"app_name": app_name, "environment": environment})
        return output_dir

    def push_app(self, app_name: str, environment: str) -> None:
        """Push the dev design of an app to an environment.

        REFERENCE_TABLE fields are removed from the pushed copies because they
        point at app ids of the source environment.

        Args:
            app_name (str): Registry app name.
            environment (str): Target environment.

        Raises:
            DesignFilesError: If the dev design files are missing or unparsable.
        """
        app = self.registry.get_app(app_name)
        app_id = self.registry.get_app_environment(app_name, environment).app_id
        credentials = self.settings.credentials_for(environment)
        input_dir = self.settings.design_apps_path / app_name / Environment.DEV.value
        if not input_dir.is_dir():
            message = f"Design files not found in {input_dir}. Please export from dev environment first."
            raise DesignFilesError(message=message)
        design_files = sorted(path for path in input_dir.iterdir() if path.suffix == ".json")
        if not design_files:
            raise DesignFilesError(message=f"No design files found in {input_dir}")

        logger.info(
            "Pushing app",
            extra={"app_name": app_name, "title": app.name, "environment": environment, "app_id": app_id},
        )
        temp_dir = self.settings.project_root / TEMP_DIR_NAME
        temp_app_dir = temp_dir / app_id
        try:
            temp_app_dir.mkdir(parents=True, exist_ok=True)
            for source in design_files:
                _copy_design_file(source, temp_app_dir / source.name)
            self._run(
                build_ginue_command(self.settings.ginue_command, SyncAction.IMPORT, credentials, app_id),
                cwd=temp_dir,
            )
        finally:
            shutil.rmtree(temp_app_dir, ignore_errors=True)
            if temp_dir.is_dir() and not any(temp_dir.iterdir()):
                temp_dir.rmdir()

        self.registry.record_sync(app_name, SyncAction.IMPORT)
        logger.info("Push completed", extra={"app_name": app_name, "environment": environment})

    def sync_app(self, action: SyncAction, app_name: str, environment: str) -> None:
        """Run one export or import."""
        if action is SyncAction.EXPORT:
            self.pull_app(app_name, environment)
        else:
            self.push_app(app_name, environment)

    def sync_apps(self, action: SyncAction, app_names: list[str], environment: str) -> SyncReport:
        """Process several apps, continuing past failures.

        Args:
            action (SyncAction): Export or import.
            app_names (list[str]): Registry app names.
            environment (str): Target environment.

        Returns:
            SyncReport: Processed and failed apps.
        """
        report = SyncReport(action=action, environment=environment)
        for app_name in app_names:
            try:
                self.sync_app(action, app_name, environment)
            except PackageError as exc:
                logger.error("Failed to process app", extra={"app_name": app_name, "error": str(exc)})
                report.failed.append(app_name)
            else:
                report.succeeded.append(app_name)

        if report.failed:
            logger.warning("Some apps failed", extra={"failed_apps": report.failed})
        else:
            logger.info("All apps processed successfully", extra={"app_count": len(report.succeeded)})
        return report
