"""Apps registry and per-app configuration models.

These documents are shared with JavaScript tooling, so they are stored with
camelCase keys and keep keys this package does not know about.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kintoneops.typing.models.schema import CategoryInfo


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


def _coerce_app_id(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


AppId = Annotated[str, BeforeValidator(_coerce_app_id)]


class AppEnvironment(_CamelModel):
    """App id of a registry app in one environment."""

    app_id: AppId
    domain: str | None = None


class AppHistory(_CamelModel):
    """Synchronization timestamps, ISO formatted."""

    last_exported: str | None = None
    last_imported: str | None = None
    last_modified: str | None = None


class RegistryApp(_CamelModel):
    """App declared in `apps-registry.json`."""

    name: str
    description: str = ""
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    enabled: bool = True
    environments: dict[str, AppEnvironment] = Field(default_factory=dict)
    history: AppHistory = Field(default_factory=AppHistory)


class RegistryEnvironment(_CamelModel):
    """kintone environment declared in the registry."""

    name: str = ""
    domain: str | None = None


class Registry(_CamelModel):
    """Content of `apps-registry.json`."""

    environments: dict[str, RegistryEnvironment] = Field(default_factory=dict)
    categories: dict[str, CategoryInfo] = Field(default_factory=dict)
    apps: dict[str, RegistryApp] = Field(default_factory=dict)


class AppConfigEnvironment(_CamelModel):
    """Environment section of an `app.config.json` file."""

    app_id: AppId | None = None
    domain: str | None = None
    enabled: bool = True
    last_exported: str | None = None
    last_imported: str | None = None


class AppConfig(_CamelModel):
    """Content of `design/apps/<name>/app.config.json`."""

    app_name: str | None = None
    description: str = ""
    enabled: bool = False
    tags: list[str] = Field(default_factory=list)
    priority: int | None = None
    environments: dict[str, AppConfigEnvironment] = Field(default_factory=dict)
    files: dict[str, str] = Field(default_factory=dict)


class AppGroup(_CamelModel):
    """Named set of apps."""

    description: str = ""
    apps: list[str] = Field(default_factory=list)


class AppGroupsConfig(_CamelModel):
    """Content of `design/app-groups.json`."""

    app_groups: dict[str, AppGroup] = Field(default_factory=dict)
    default_group: str | None = None


class AppFilter(BaseModel):
    """Criteria used to select apps by their `app.config.json`."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    tags: list[str] = Field(default_factory=list)
    priority: int | None = None
    environment: str | None = None

    @property
    def is_active(self) -> bool:
        """Return whether any criterion is set."""
        return self.enabled is not None or bool(self.tags) or self.priority is not None or bool(self.environment)
