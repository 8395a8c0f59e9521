"""Pytest marker auto-assignment by folder and shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kintoneops import logger
from kintoneops.settings import Settings

_CREDENTIAL_VARIABLES = tuple(
    f"KINTONE_{environment}_{key}"
    for environment in ("DEV", "PROD")
    for key in ("DOMAIN", "USERNAME", "PASSWORD", "BASIC_USERNAME", "BASIC_PASSWORD")
)


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except OSError:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


@pytest.fixture
def project_settings(tmp_path: Path, monkeypatch) -> Settings:
    """Settings rooted in a temporary project with dev and prod credentials."""
    for variable in _CREDENTIAL_VARIABLES:
        monkeypatch.delenv(variable, raising=False)
    return Settings(
        _env_file=None,
        project_root=tmp_path,
        kintone_dev_domain="dev.cybozu.com",
        kintone_dev_username="dev-user",
        kintone_dev_password="dev-pass",
        kintone_prod_domain="prod.cybozu.com",
        kintone_prod_username="prod-user",
        kintone_prod_password="prod-pass",
    )


@pytest.fixture
def registry_payload() -> dict:
    """Registry document with two apps in dev and prod."""
    return {
        "environments": {
            "dev": {"name": "開発環境", "domain": "dev.cybozu.com"},
            "prod": {"name": "本番環境", "domain": "prod.cybozu.com"},
        },
        "categories": {
            "master": {"name": "マスタデータ", "description": "マスタ"},
            "business": {"name": "業務管理", "description": "業務"},
        },
        "apps": {
            "customerMaster": {
                "name": "顧客マスタ",
                "description": "顧客情報",
                "category": "master",
                "tags": ["master"],
                "enabled": True,
                "environments": {
                    "dev": {"appId": 101, "domain": "dev.cybozu.com"},
                    "prod": {"appId": "201", "domain": "prod.cybozu.com"},
                },
                "history": {"lastExported": None, "lastImported": None},
            },
            "orders": {
                "name": "受注管理",
                "category": "business",
                "enabled": True,
                "environments": {"dev": {"appId": "102"}},
            },
            "archive": {
                "name": "旧アプリ",
                "enabled": False,
                "environments": {"dev": {"appId": "103"}},
            },
        },
    }


@pytest.fixture
def registry_file(project_settings: Settings, registry_payload: dict) -> Path:
    """Write the registry document in the temporary project."""
    path = project_settings.registry_path
    path.write_text(json.dumps(registry_payload, ensure_ascii=False), encoding="utf-8")
    return path
