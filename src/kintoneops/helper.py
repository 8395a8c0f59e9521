"""Per-app configuration helpers over `design/apps/<name>/app.config.json`."""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kintoneops import logger
from kintoneops.exceptions import RegistryError
from kintoneops.settings import expand_env_vars
from kintoneops.typing.enums import Environment
from kintoneops.typing.models import AppConfig, AppConfigEnvironment, AppFilter, AppGroupsConfig

if TYPE_CHECKING:
    from pathlib import Path

    from kintoneops.settings import Settings

APP_CONFIG_FILE_NAME = "app.config.json"
DEFAULT_DESIGN_FILES: dict[str, str] = {
    "fields": "fields.json",
    "layout": "layout.json",
    "views": "views.json",
    "settings": "settings.json",
}


class EnvironmentStatus(BaseModel):
    """Design state of an app in one environment."""

    model_config = ConfigDict(extra="forbid")

    environment: str
    app_id: str | None = None
    domain: str | None = None
    files: list[str] = Field(default_factory=list)
    last_exported: str | None = None
    last_imported: str | None = None

    @property
    def has_design_files(self) -> bool:
        """Return whether the environment directory holds any file."""
        return bool(self.files)


class AppStatus(BaseModel):
    """Design state of an app across environments."""

    model_config = ConfigDict(extra="forbid")

    app_name: str
    environments: list[EnvironmentStatus] = Field(default_factory=list)


class AppConfigHelper:
    """Reads and creates per-app configuration files."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def apps_dir(self) -> Path:
        """Return the design apps directory."""
        return self.settings.design_apps_path

    def config_path(self, app_name: str) -> Path:
        """Return the configuration file path of an app."""
        return self.apps_dir / app_name / APP_CONFIG_FILE_NAME

    def list_app_dirs(self) -> list[str]:
        """Return app directory names, sorted."""
        if not self.apps_dir.is_dir():
            return []
        return sorted(path.name for path in self.apps_dir.iterdir() if path.is_dir())

    def load_app_config(self, app_name: str) -> AppConfig | None:
        """Load an app configuration.

        Args:
            app_name (str): App directory name.

        Raises:
            RegistryError: If the file exists but cannot be parsed.

        Returns:
            AppConfig | None: Configuration, or None when the file is missing.
        """
        path = self.config_path(app_name)
        if not path.is_file():
            return None
        try:
            return AppConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise RegistryError(message=f"Failed to parse app config {path}: {exc}") from exc

    def filter_apps(self, criteria: AppFilter) -> list[str]:
        """Return configured apps matching every criterion.

        A tag filter matches when the app carries at least one of the tags.
        An environment filter requires an environment entry not disabled.
        """
        matches: list[str] = []
        for app_name in self.list_app_dirs():
            config = self.load_app_config(app_name)
            if config is None:
                continue
            if criteria.enabled is not None and config.enabled != criteria.enabled:
                continue
            if criteria.tags and not set(criteria.tags) & set(config.tags):
                continue
            if criteria.priority is not None and config.priority != criteria.priority:
                continue
            if criteria.environment:
                env_config = config.environments.get(criteria.environment)
                if env_config is None or not env_config.enabled:
                    continue
            matches.append(app_name)
        return matches

    def _env_lookup(self) -> dict[str, str]:
        lookup = dict(os.environ)
        for environment in Environment:
            domain = getattr(self.settings, f"kintone_{environment.value}_domain", None)
            if domain:
                lookup[f"KINTONE_{environment.value.upper()}_DOMAIN"] = domain
        return lookup

    def app_status(self, app_name: str) -> AppStatus:
        """Report app ids, domains, design files and timestamps per environment.

        Raises:
            RegistryError: If the app has no configuration file.
        """
        config = self.load_app_config(app_name)
        if config is None:
            raise RegistryError(message=f"App config not found for '{app_name}'")

        lookup = self._env_lookup()
        status = AppStatus(app_name=app_name)
        for environment in Environment:
            env_config = config.environments.get(environment.value) or AppConfigEnvironment()
            env_dir = self.apps_dir / app_name / environment.value
            files = sorted(path.name for path in env_dir.iterdir()) if env_dir.is_dir() else []
            status.environments.append(
                EnvironmentStatus(
                    environment=environment.value,
                    app_id=env_config.app_id,
                    domain=expand_env_vars(env_config.domain, lookup) if env_config.domain else None,
                    files=files,
                    last_exported=env_config.last_exported,
                    last_imported=env_config.last_imported,
                ),
            )
        return status

    def create_app_config(
        self,
        app_name: str,
        dev_app_id: str,
        prod_app_id: str,
        description: str | None = None,
    ) -> Path:
        """Create the directories and configuration file of a new app.

        Domains are written as `${KINTONE_<ENV>_DOMAIN}` references.

        Args:
            app_name (str): App directory name.
            dev_app_id (str): App id in the dev environment.
            prod_app_id (str): App id in the prod environment.
            description (str | None): Description, defaults to a generated one.

        Raises:
            RegistryError: If the configuration already exists.

        Returns:
            Path: Written configuration file.
        """
        path = self.config_path(app_name)
        if path.exists():
            raise RegistryError(message=f"App config already exists for '{app_name}'")

        for environment in Environment:
            (self.apps_dir / app_name / environment.value).mkdir(parents=True, exist_ok=True)

        config = AppConfig(
            app_name=app_name,
            description=description or f"{app_name}アプリの設計情報",
            environments={
                environment.value: AppConfigEnvironment(
                    app_id=app_id,
                    domain=f"${{KINTONE_{environment.value.upper()}_DOMAIN}}",
                )
                for environment, app_id in ((Environment.DEV, dev_app_id), (Environment.PROD, prod_app_id))
            },
            files=dict(DEFAULT_DESIGN_FILES),
        )
        payload = config.model_dump(mode="json", by_alias=True, exclude={"enabled", "tags", "priority"})
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Created app config", extra={"app_name": app_name, "config_path": str(path)})
        return path

    def load_app_groups(self) -> AppGroupsConfig:
        """Load app groups, returning an empty configuration when the file is absent.

        Raises:
            RegistryError: If the file exists but cannot be parsed.
        """
        path = self.settings.app_groups_file
        if not path.is_file():
            return AppGroupsConfig()
        try:
            return AppGroupsConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise RegistryError(message=f"Failed to parse app groups {path}: {exc}") from exc
