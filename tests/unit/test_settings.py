from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from kintoneops.exceptions import SettingsError
from kintoneops.settings import Settings, ensure_env_file_exists, expand_env_vars, get_settings
from kintoneops.typing.enums import LayoutPolicy

if TYPE_CHECKING:
    from pathlib import Path


def test_settings_load_from_env_file(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_payload = (
        "APP_ENV=test\n"
        "LOG_LEVEL=DEBUG\n"
        "LOG_JSON=false\n"
        "LAYOUT_POLICY=union-with-definitions\n"
        "MAX_APPS_PER_FIELD=10\n"
        "KINTONE_DEV_DOMAIN=example.cybozu.com\n"
        "KINTONE_DEV_USERNAME=user\n"
        "KINTONE_DEV_PASSWORD=secret\n"
    )
    env_file.write_text(env_payload, encoding="utf-8")
    for variable in ("KINTONE_DEV_DOMAIN", "KINTONE_DEV_USERNAME", "KINTONE_DEV_PASSWORD"):
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.app_env == "test"
    assert settings.log_level == "DEBUG"
    assert settings.log_json is False
    assert settings.layout_policy == LayoutPolicy.UNION_WITH_DEFINITIONS
    assert settings.max_apps_per_field == 10
    credentials = settings.credentials_for("dev")
    assert credentials.base_url == "https://example.cybozu.com"
    assert credentials.basic_auth is None


def test_settings_rejects_low_app_threshold(monkeypatch) -> None:
    monkeypatch.setenv("MAX_APPS_PER_FIELD", "1")

    with pytest.raises(ValueError, match="max_apps_per_field|MAX_APPS_PER_FIELD"):
        Settings(_env_file=None)


def test_paths_are_resolved_from_project_root(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, project_root=tmp_path)

    assert settings.design_apps_path == tmp_path / "design" / "apps"
    assert settings.registry_path == tmp_path / "apps-registry.json"
    assert settings.schema_output_path == tmp_path / "app_schema_output"
    assert settings.app_groups_file == tmp_path / "design" / "app-groups.json"


def test_credentials_for_lists_missing_variables(monkeypatch) -> None:
    for variable in ("KINTONE_PROD_DOMAIN", "KINTONE_PROD_USERNAME", "KINTONE_PROD_PASSWORD"):
        monkeypatch.delenv(variable, raising=False)
    settings = Settings(_env_file=None, kintone_prod_username="user")

    with pytest.raises(SettingsError, match="KINTONE_PROD_DOMAIN, KINTONE_PROD_PASSWORD"):
        settings.credentials_for("prod")


def test_credentials_basic_auth(project_settings: Settings) -> None:
    settings = project_settings.model_copy(
        update={"kintone_dev_basic_username": "basic", "kintone_dev_basic_password": "pw"},
    )

    assert settings.credentials_for("dev").basic_auth == "basic:pw"


def test_expand_env_vars() -> None:
    environ = {"KINTONE_DEV_DOMAIN": "dev.cybozu.com"}

    assert expand_env_vars("https://${KINTONE_DEV_DOMAIN}/k/", environ) == "https://dev.cybozu.com/k/"
    assert expand_env_vars("${UNKNOWN_NAME}", environ) == "${UNKNOWN_NAME}"


def test_ensure_env_file_exists_copies_template(tmp_path: Path) -> None:
    template = tmp_path / ".env.template"
    template.write_text("LOG_LEVEL=INFO\n", encoding="utf-8")
    env_path = tmp_path / ".env"

    ensure_env_file_exists(env_path=env_path, template_path=template)

    assert env_path.read_text(encoding="utf-8") == "LOG_LEVEL=INFO\n"


def test_get_settings_wraps_errors(monkeypatch) -> None:
    get_settings.cache_clear()
    monkeypatch.setenv("MAX_COMMON_FIELDS", "-1")
    monkeypatch.setattr("kintoneops.settings.ensure_env_file_exists", lambda: None)

    try:
        with pytest.raises(SettingsError, match="Failed to load settings"):
            get_settings()
    finally:
        get_settings.cache_clear()
