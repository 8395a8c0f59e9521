"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from kintoneops.exceptions import SettingsError
from kintoneops.typing.enums import LayoutPolicy

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")
logger = logging.getLogger(__name__)


class KintoneCredentials(BaseModel):
    """Connection values for one kintone environment."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    environment: str
    domain: str
    username: str
    password: str
    basic_username: str | None = None
    basic_password: str | None = None

    @property
    def base_url(self) -> str:
        """Return the https base URL of the environment."""
        return f"https://{self.domain}"

    @property
    def basic_auth(self) -> str | None:
        """Return `user:password` for basic authentication, when both parts are set."""
        if self.basic_username and self.basic_password:
            return f"{self.basic_username}:{self.basic_password}"
        return None


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "kintoneops"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )

    project_root: Path = Field(
        default=Path(),
        validation_alias="PROJECT_ROOT",
        description="Directory holding the registry, design files and customize sources.",
    )
    design_apps_dir: str = Field(
        default="design/apps",
        validation_alias="DESIGN_APPS_DIR",
        description="Directory of pulled app designs, relative to the project root.",
    )
    schema_output_dir: str = Field(
        default="app_schema_output",
        validation_alias="SCHEMA_OUTPUT_DIR",
        description="Directory receiving the generated schema document.",
    )
    apps_registry_path: str = Field(
        default="apps-registry.json",
        validation_alias="APPS_REGISTRY_PATH",
        description="Apps registry file, relative to the project root.",
    )
    app_groups_path: str = Field(
        default="design/app-groups.json",
        validation_alias="APP_GROUPS_PATH",
        description="App groups file used by the helper commands.",
    )
    ginue_command: str = Field(
        default="npx ginue",
        validation_alias="GINUE_COMMAND",
        description="Command prefix used to invoke ginue.",
    )
    uploader_command: str = Field(
        default="npx kintone-customize-uploader",
        validation_alias="UPLOADER_COMMAND",
        description="Command prefix used to invoke the customize uploader.",
    )

    kintone_dev_domain: str | None = Field(default=None, validation_alias="KINTONE_DEV_DOMAIN")
    kintone_dev_username: str | None = Field(default=None, validation_alias="KINTONE_DEV_USERNAME")
    kintone_dev_password: str | None = Field(default=None, validation_alias="KINTONE_DEV_PASSWORD")
    kintone_dev_basic_username: str | None = Field(default=None, validation_alias="KINTONE_DEV_BASIC_USERNAME")
    kintone_dev_basic_password: str | None = Field(default=None, validation_alias="KINTONE_DEV_BASIC_PASSWORD")
    kintone_prod_domain: str | None = Field(default=None, validation_alias="KINTONE_PROD_DOMAIN")
    kintone_prod_username: str | None = Field(default=None, validation_alias="KINTONE_PROD_USERNAME")
    kintone_prod_password: str | None = Field(default=None, validation_alias="KINTONE_PROD_PASSWORD")
    kintone_prod_basic_username: str | None = Field(default=None, validation_alias="KINTONE_PROD_BASIC_USERNAME")
    kintone_prod_basic_password: str | None = Field(default=None, validation_alias="KINTONE_PROD_BASIC_PASSWORD")

    layout_policy: LayoutPolicy = Field(
        default=LayoutPolicy.LAYOUT_AUTHORITATIVE,
        validation_alias="LAYOUT_POLICY",
        description="Whether fields missing from the layout are dropped or appended.",
    )
    max_common_fields: int = Field(
        default=50,
        ge=0,
        validation_alias="MAX_COMMON_FIELDS",
        description="Maximum number of common fields considered for relationships.",
    )
    max_apps_per_field: int = Field(
        default=20,
        ge=2,
        validation_alias="MAX_APPS_PER_FIELD",
        description="Fields shared by more apps than this are ignored.",
    )
    rare_field_threshold: int = Field(
        default=5,
        ge=2,
        validation_alias="RARE_FIELD_THRESHOLD",
        description="Fields shared by at most this many apps always produce relationships.",
    )

    @property
    def design_apps_path(self) -> Path:
        """Return the resolved design apps directory."""
        return self.project_root / self.design_apps_dir

    @property
    def schema_output_path(self) -> Path:
        """Return the resolved schema output directory."""
        return self.project_root / self.schema_output_dir

    @property
    def registry_path(self) -> Path:
        """Return the resolved apps registry path."""
        return self.project_root / self.apps_registry_path

    @property
    def app_groups_file(self) -> Path:
        """Return the resolved app groups path."""
        return self.project_root / self.app_groups_path

    def credentials_for(self, environment: str) -> KintoneCredentials:
        """Return the `KINTONE_<ENV>_*` credentials of an environment.

        Args:
            environment (str): Environment name, `dev` or `prod`.

        Raises:
            SettingsError: If domain, username or password is not set.

        Returns:
            KintoneCredentials: Credentials for the environment.
        """
        prefix = f"KINTONE_{environment.upper()}_"
        values = {
            key: getattr(self, f"kintone_{environment.lower()}_{key}", None)
            for key in ("domain", "username", "password", "basic_username", "basic_password")
        }
        missing = [f"{prefix}{key.upper()}" for key in ("domain", "username", "password") if not values[key]]
        if missing:
            raise SettingsError(
                message=f"Environment variables for '{environment}' are not properly set: {', '.join(missing)}",
            )
        return KintoneCredentials(environment=environment, **values)


def expand_env_vars(text: str, environ: dict[str, str] | None = None) -> str:
    """Replace `${NAME}` references with environment values.

    Unknown names are left untouched.

    Args:
        text (str): Raw text.
        environ (dict[str, str] | None): Lookup table, defaults to `os.environ`.

    Returns:
        str: Expanded text.
    """
    lookup = os.environ if environ is None else environ
    return _ENV_VAR_PATTERN.sub(lambda match: lookup.get(match.group(1)) or match.group(0), text)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
