from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from kintoneops.processing.categories import build_classifier
from kintoneops.schema_generator import (
    AppDocuments,
    build_app_schema,
    build_schema_document,
    collect_app_documents,
    compute_statistics,
    extract_app_name,
    persist_document,
    sanitize_app_name,
)
from kintoneops.settings import Settings
from kintoneops.typing.enums import LayoutPolicy
from kintoneops.typing.models import AppSchema, ExtractedField


def _write(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


def _fields(*codes: str) -> dict:
    return {"properties": {code: {"type": "SINGLE_LINE_TEXT", "label": code} for code in codes}}


def test_extract_app_name_uses_component_after_apps() -> None:
    assert extract_app_name(Path("design/apps/顧客マスタ/dev/app_form_fields.json")) == "顧客マスタ"
    assert extract_app_name(Path("design/other/app_form_fields.json")) == "Unknown"


def test_extract_app_name_relative_to_design_dir() -> None:
    design_dir = Path("/home/u/apps/proj/designs")

    assert extract_app_name(design_dir / "alpha" / "dev" / "app_form_fields.json", design_dir) == "alpha"
    assert extract_app_name(Path("/srv/apps/beta/dev/app_form_fields.json"), design_dir) == "beta"


def test_collect_app_documents_outside_apps_directory(tmp_path: Path) -> None:
    design_dir = tmp_path / "designs"
    _write(design_dir / "alpha" / "dev" / "app_form_fields.json", _fields("x"))
    _write(design_dir / "beta" / "dev" / "app_form_fields.json", _fields("y"))

    documents = collect_app_documents(design_dir)

    assert [doc.name for doc in documents] == ["alpha", "beta"]


def test_sanitize_app_name() -> None:
    assert sanitize_app_name("【開発】Customer Master") == "Customer_Master"
    assert sanitize_app_name("顧客 マスタ v2") == "_v2"
    assert len(sanitize_app_name("a" * 40)) == 25


def test_collect_app_documents_skips_malformed_json(tmp_path: Path) -> None:
    _write(tmp_path / "apps" / "A" / "dev" / "app_form_fields.json", _fields("x"))
    _write(tmp_path / "apps" / "A" / "dev" / "app_form_layout.json", {"layout": []})
    broken = tmp_path / "apps" / "B" / "dev" / "app_form_fields.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{not json", encoding="utf-8")

    documents = {doc.name: doc for doc in collect_app_documents(tmp_path)}

    assert documents["A"].fields == _fields("x")
    assert documents["A"].layout == {"layout": []}
    assert documents["B"].fields is None


def test_collect_app_documents_missing_directory(tmp_path: Path) -> None:
    assert collect_app_documents(tmp_path / "missing") == []


def test_build_app_schema_requires_properties() -> None:
    classifier = build_classifier()

    assert build_app_schema(AppDocuments(name="A"), classifier) is None
    assert build_app_schema(AppDocuments(name="A", fields={"properties": []}), classifier) is None


def test_build_app_schema_applies_policy() -> None:
    documents = AppDocuments(
        name="顧客マスタ",
        fields=_fields("A", "B"),
        layout={"layout": [{"type": "ROW", "fields": [{"type": "SINGLE_LINE_TEXT", "code": "A"}]}]},
    )
    classifier = build_classifier()

    strict = build_app_schema(documents, classifier)
    union = build_app_schema(documents, classifier, policy=LayoutPolicy.UNION_WITH_DEFINITIONS)

    assert strict is not None
    assert union is not None
    assert strict.category == "master"
    assert [field.code for field in strict.fields] == ["A"]
    assert [field.code for field in union.fields] == ["A", "B"]


def test_compute_statistics_handles_empty_input() -> None:
    stats = compute_statistics([], 0)

    assert stats.app_count == 0
    assert stats.field_count == 0
    assert stats.relationship_count == 0
    assert stats.average_fields_per_app == 0


def test_compute_statistics_rounds_half_up() -> None:
    apps = [
        AppSchema(
            name=name,
            sanitized_name=name,
            category="other",
            fields=[ExtractedField(code=str(index), label=str(index), type="NUMBER") for index in range(count)],
        )
        for name, count in (("a", 2), ("b", 3))
    ]

    assert compute_statistics(apps, 4).average_fields_per_app == 3


def test_build_schema_document_with_no_apps() -> None:
    document = build_schema_document([], None, Settings(_env_file=None), now=datetime(2024, 1, 1, tzinfo=UTC))

    assert document.is_empty
    assert document.statistics.field_count == 0
    assert document.relationships == []


def test_build_schema_document_links_apps() -> None:
    documents = [
        AppDocuments(name="顧客マスタ", fields=_fields("顧客ID", "氏名")),
        AppDocuments(name="案件管理", fields=_fields("顧客ID", "案件名")),
        AppDocuments(name="壊れたアプリ", fields=None),
    ]

    document = build_schema_document(documents, None, Settings(_env_file=None))

    assert [app.name for app in document.apps] == ["顧客マスタ", "案件管理"]
    assert document.statistics.app_count == 2
    assert document.statistics.field_count == 4
    assert document.statistics.relationship_count == 1
    assert document.common_fields[0].code == "顧客ID"
    assert document.relationships[0].from_app == "顧客マスタ"


def test_persist_document_writes_json_and_summary(tmp_path: Path) -> None:
    documents = [AppDocuments(name="顧客マスタ", fields=_fields("顧客ID"))]
    document = build_schema_document(documents, None, Settings(_env_file=None))

    schema_path, summary_path = persist_document(document, tmp_path / "out")

    payload = json.loads(schema_path.read_text(encoding="utf-8"))
    assert payload["statistics"]["app_count"] == 1
    assert payload["apps"][0]["name"] == "顧客マスタ"
    assert "# Kintone Apps Schema Documentation" in summary_path.read_text(encoding="utf-8")
