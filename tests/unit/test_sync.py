from __future__ import annotations

import json
from pathlib import Path

import pytest

from kintoneops.exceptions import CommandError, DesignFilesError, SettingsError
from kintoneops.registry_store import AppRegistry, RegistryStore
from kintoneops.settings import KintoneCredentials, Settings
from kintoneops.sync import (
    GinueSync,
    build_ginue_command,
    redact_command,
    strip_reference_tables_from_fields,
    strip_reference_tables_from_form,
)
from kintoneops.typing.enums import SyncAction


class _RecordingRunner:
    def __init__(self, returncode: int = 0, pulled: dict[str, object] | None = None) -> None:
        self.returncode = returncode
        self.pulled = pulled or {}
        self.calls: list[tuple[list[str], Path]] = []
        self.staged: dict[str, dict] = {}

    def __call__(self, argv: list[str], *, cwd: Path) -> int:
        self.calls.append((argv, cwd))
        app_id = argv[argv.index("--app") + 1]
        if "pull" in argv:
            target = cwd / app_id
            target.mkdir(parents=True, exist_ok=True)
            for name, payload in self.pulled.items():
                (target / name).write_text(json.dumps(payload), encoding="utf-8")
        else:
            staged_dir = cwd / app_id
            self.staged = {path.name: json.loads(path.read_text(encoding="utf-8")) for path in staged_dir.iterdir()}
        return self.returncode


def _sync(settings: Settings, runner: _RecordingRunner) -> GinueSync:
    return GinueSync(settings, AppRegistry(RegistryStore(path=settings.registry_path)), runner=runner)


def _history(settings: Settings, app_name: str) -> dict:
    return json.loads(settings.registry_path.read_text(encoding="utf-8"))["apps"][app_name]["history"]


def test_build_ginue_command_with_basic_auth() -> None:
    credentials = KintoneCredentials(
        environment="dev",
        domain="dev.cybozu.com",
        username="u",
        password="p",
        basic_username="bu",
        basic_password="bp",
    )

    argv = build_ginue_command("npx ginue", SyncAction.IMPORT, credentials, "12")

    assert argv == [
        "npx",
        "ginue",
        "push",
        "--domain",
        "dev.cybozu.com",
        "--username",
        "u",
        "--password",
        "p",
        "--app",
        "12",
        "--basic",
        "bu:bp",
    ]
    assert "p" not in redact_command(argv).split()
    assert "bu:bp" not in redact_command(argv)


def test_strip_reference_tables() -> None:
    fields = {
        "revision": "3",
        "properties": {
            "A": {"type": "NUMBER"},
            "related": {"type": "REFERENCE_TABLE"},
        },
    }
    form = {"properties": [{"type": "NUMBER", "code": "A"}, {"type": "REFERENCE_TABLE", "code": "related"}]}

    assert strip_reference_tables_from_fields(fields) == {"revision": "3", "properties": {"A": {"type": "NUMBER"}}}
    assert strip_reference_tables_from_form(form) == {"properties": [{"type": "NUMBER", "code": "A"}]}


def test_pull_moves_files_and_records_history(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    runner = _RecordingRunner(pulled={"app_form_fields.json": {"properties": {}}})

    output_dir = _sync(project_settings, runner).pull_app("customerMaster", "dev")

    argv, cwd = runner.calls[0]
    assert cwd == project_settings.project_root
    assert argv[:3] == ["npx", "ginue", "pull"]
    assert argv[argv.index("--app") + 1] == "101"
    assert output_dir == project_settings.design_apps_path / "customerMaster" / "dev"
    assert (output_dir / "app_form_fields.json").is_file()
    assert not (project_settings.project_root / "101").exists()
    assert _history(project_settings, "customerMaster")["lastExported"].endswith("Z")


def test_pull_failure_raises_command_error(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    runner = _RecordingRunner(returncode=2)

    with pytest.raises(CommandError, match="exit code 2") as exc_info:
        _sync(project_settings, runner).pull_app("customerMaster", "dev")
    assert "dev-pass" not in exc_info.value.command
    assert _history(project_settings, "customerMaster").get("lastExported") is None


def test_push_filters_reference_tables_and_cleans_temp(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    dev_dir = project_settings.design_apps_path / "customerMaster" / "dev"
    dev_dir.mkdir(parents=True)
    (dev_dir / "app_form_fields.json").write_text(
        json.dumps({"properties": {"A": {"type": "NUMBER"}, "ref": {"type": "REFERENCE_TABLE"}}}),
        encoding="utf-8",
    )
    (dev_dir / "form.json").write_text(
        json.dumps({"properties": [{"type": "REFERENCE_TABLE", "code": "ref"}]}),
        encoding="utf-8",
    )
    (dev_dir / "app_settings.json").write_text(json.dumps({"name": "顧客マスタ"}), encoding="utf-8")
    (dev_dir / "notes.txt").write_text("ignored", encoding="utf-8")
    runner = _RecordingRunner()

    _sync(project_settings, runner).push_app("customerMaster", "prod")

    argv, cwd = runner.calls[0]
    assert argv[2] == "push"
    assert argv[argv.index("--app") + 1] == "201"
    assert argv[argv.index("--domain") + 1] == "prod.cybozu.com"
    assert cwd == project_settings.project_root / "temp"
    assert runner.staged["app_form_fields.json"] == {"properties": {"A": {"type": "NUMBER"}}}
    assert runner.staged["form.json"] == {"properties": []}
    assert runner.staged["app_settings.json"] == {"name": "顧客マスタ"}
    assert "notes.txt" not in runner.staged
    assert not (project_settings.project_root / "temp").exists()
    assert _history(project_settings, "customerMaster").get("lastImported") is not None


def test_push_cleans_temp_on_failure(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    dev_dir = project_settings.design_apps_path / "orders" / "dev"
    dev_dir.mkdir(parents=True)
    (dev_dir / "app_settings.json").write_text("{}", encoding="utf-8")

    with pytest.raises(CommandError):
        _sync(project_settings, _RecordingRunner(returncode=1)).push_app("orders", "dev")
    assert not (project_settings.project_root / "temp").exists()


def test_push_requires_dev_design_files(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    sync = _sync(project_settings, _RecordingRunner())

    with pytest.raises(DesignFilesError, match="export from dev"):
        sync.push_app("orders", "dev")

    (project_settings.design_apps_path / "orders" / "dev").mkdir(parents=True)
    with pytest.raises(DesignFilesError, match="No design files"):
        sync.push_app("orders", "dev")


def test_missing_credentials_raise_settings_error(registry_file: Path) -> None:
    settings = Settings(
        _env_file=None,
        project_root=registry_file.parent,
        kintone_dev_domain="d",
        kintone_dev_username="u",
    )
    runner = _RecordingRunner()

    with pytest.raises(SettingsError, match="KINTONE_DEV_PASSWORD"):
        _sync(settings, runner).pull_app("orders", "dev")
    assert runner.calls == []


def test_sync_apps_continues_after_failure(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    runner = _RecordingRunner()

    report = _sync(project_settings, runner).sync_apps(SyncAction.EXPORT, ["orders", "missing", "customerMaster"], "dev")

    assert report.succeeded == ["orders", "customerMaster"]
    assert report.failed == ["missing"]
    assert report.ok is False
    assert len(runner.calls) == 2


def test_sync_apps_reports_invalid_design_file(project_settings: Settings, registry_file: Path) -> None:
    _ = registry_file
    broken_dir = project_settings.design_apps_path / "customerMaster" / "dev"
    broken_dir.mkdir(parents=True)
    (broken_dir / "app_form_fields.json").write_text("{broken", encoding="utf-8")
    good_dir = project_settings.design_apps_path / "orders" / "dev"
    good_dir.mkdir(parents=True)
    (good_dir / "form.json").write_text(json.dumps({"properties": []}), encoding="utf-8")
    runner = _RecordingRunner()

    report = _sync(project_settings, runner).sync_apps(SyncAction.IMPORT, ["customerMaster", "orders"], "dev")

    assert report.failed == ["customerMaster"]
    assert report.succeeded == ["orders"]
    assert len(runner.calls) == 1
    assert not (project_settings.project_root / "temp").exists()


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_push_rejects_invalid_form_file(project_settings: Settings, registry_file: Path, content: str) -> None:
    _ = registry_file
    dev_dir = project_settings.design_apps_path / "orders" / "dev"
    dev_dir.mkdir(parents=True)
    (dev_dir / "form.json").write_text(content, encoding="utf-8")

    with pytest.raises(DesignFilesError, match="Invalid design file"):
        _sync(project_settings, _RecordingRunner()).push_app("orders", "dev")
