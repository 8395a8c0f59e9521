"""Apps registry storage and operations."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kintoneops import logger
from kintoneops.exceptions import AppNotFoundError, EnvironmentNotFoundError, RegistryError
from kintoneops.processing.categories import resolve_categories
from kintoneops.typing.enums import Environment, SyncAction
from kintoneops.typing.models import AppEnvironment, Registry, RegistryApp

if TYPE_CHECKING:
    from kintoneops.typing.models import CategoryInfo
    from kintoneops.typing.protocol import RegistryBackend


def utc_timestamp(now: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision and a `Z` suffix."""
    moment = (now or datetime.now(UTC)).astimezone(UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RegistryStore(BaseModel):
    """JSON file holding the apps registry."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    path: Path = Field(description="Registry file path.")

    def exists(self) -> bool:
        """Return whether the registry file exists."""
        return self.path.is_file()

    def load(self) -> Registry:
        """Load the registry.

        Raises:
            RegistryError: If the file is missing, unparsable or invalid.

        Returns:
            Registry: Registry content.
        """
        if not self.exists():
            raise RegistryError(message=f"Apps registry not found: {self.path}")
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return Registry.model_validate(payload)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise RegistryError(message=f"Failed to parse apps registry {self.path}: {exc}") from exc

    def save(self, registry: Registry) -> None:
        """Write the registry with two-space indentation.

        Args:
            registry (Registry): Registry content.
        """
        payload = registry.model_dump(mode="json", by_alias=True, exclude_none=True)
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Apps registry saved", extra={"registry_path": str(self.path)})


def load_registry_or_none(backend: RegistryBackend) -> Registry | None:
    """Load the registry, returning None when it is absent or malformed.

    Args:
        backend (RegistryBackend): Registry storage.

    Returns:
        Registry | None: Registry content, if readable.
    """
    try:
        return backend.load()
    except RegistryError as exc:
        logger.warning("Apps registry unavailable", extra={"reason": str(exc)})
        return None


def load_categories(backend: RegistryBackend) -> dict[str, CategoryInfo]:
    """Return registry categories, falling back to the default table."""
    return resolve_categories(load_registry_or_none(backend))


class AppRegistry:
    """Read-modify-write operations over a registry backend."""

    def __init__(self, backend: RegistryBackend) -> None:
        self.backend = backend

    def get_app(self, app_name: str) -> RegistryApp:
        """Return a registry app.

        Raises:
            AppNotFoundError: If the app is not declared.
        """
        app = self.backend.load().apps.get(app_name)
        if app is None:
            raise AppNotFoundError(app_names=[app_name])
        return app

    def get_app_environment(self, app_name: str, environment: str) -> AppEnvironment:
        """Return the per-environment settings of an app.

        Raises:
            EnvironmentNotFoundError: If the app has no entry for the environment.
        """
        env_config = self.get_app(app_name).environments.get(environment)
        if env_config is None:
            raise EnvironmentNotFoundError(environment=environment, app_name=app_name)
        return env_config

    def available_apps(self) -> list[str]:
        """Return names of apps that are not explicitly disabled."""
        return [name for name, app in self.backend.load().apps.items() if app.enabled is not False]

    def resolve_targets(self, target: str) -> list[str]:
        """Resolve `all`, a comma separated list or a single app name.

        Args:
            target (str): Command-line target.

        Raises:
            AppNotFoundError: If a named app is not available.

        Returns:
            list[str]: App names to process.
        """
        available = self.available_apps()
        if target == "all":
            return available

        names = [name.strip() for name in target.split(",") if name.strip()]
        invalid = [name for name in names if name not in available]
        if invalid or not names:
            raise AppNotFoundError(app_names=invalid or [target], available=available)
        return names

    def add_app(
        self,
        app_name: str,
        title: str,
        dev_app_id: str,
        prod_app_id: str,
        category: str = "other",
        description: str = "",
    ) -> RegistryApp:
        """Declare a new app for the dev and prod environments.

        Raises:
            RegistryError: If the app already exists.

        Returns:
            RegistryApp: The created entry.
        """
        registry = self.backend.load()
        if app_name in registry.apps:
            raise RegistryError(message=f"App '{app_name}' already exists in registry")

        environments: dict[str, AppEnvironment] = {}
        for environment, app_id in ((Environment.DEV.value, dev_app_id), (Environment.PROD.value, prod_app_id)):
            declared = registry.environments.get(environment)
            if declared is None:
                raise EnvironmentNotFoundError(environment=environment)
            environments[environment] = AppEnvironment(app_id=app_id, domain=declared.domain)

        app = RegistryApp(
            name=title,
            description=description,
            environments=environments,
            category=category,
            tags=[category],
            enabled=True,
        )
        registry.apps[app_name] = app
        self.backend.save(registry)
        logger.info("App added to registry", extra={"app_name": app_name, "title": title, "category": category})
        return app

    def record_sync(self, app_name: str, action: SyncAction, *, now: datetime | None = None) -> RegistryApp:
        """Stamp the sync history of an app.

        Args:
            app_name (str): Registry app name.
            action (SyncAction): Completed synchronization.
            now (datetime | None): Timestamp override.

        Raises:
            AppNotFoundError: If the app is not declared.

        Returns:
            RegistryApp: The updated entry.
        """
        registry = self.backend.load()
        app = registry.apps.get(app_name)
        if app is None:
            raise AppNotFoundError(app_names=[app_name])

        timestamp = utc_timestamp(now)
        if action is SyncAction.EXPORT:
            app.history.last_exported = timestamp
        else:
            app.history.last_imported = timestamp
        app.history.last_modified = timestamp

        self.backend.save(registry)
        return app

    def apps_by_category(self) -> dict[str, list[tuple[str, RegistryApp]]]:
        """Group available apps by category, in registry order."""
        registry = self.backend.load()
        grouped: dict[str, list[tuple[str, RegistryApp]]] = {}
        for name in self.available_apps():
            app = registry.apps[name]
            grouped.setdefault(app.category or "other", []).append((name, app))
        return grouped

    def registered_for(self, environment: str) -> list[tuple[str, RegistryApp]]:
        """Return apps having an entry for the environment.

        Raises:
            EnvironmentNotFoundError: If the registry does not declare the environment.
        """
        registry = self.backend.load()
        if environment not in registry.environments:
            raise EnvironmentNotFoundError(environment=environment)
        return [(name, app) for name, app in registry.apps.items() if environment in app.environments]
