from __future__ import annotations

from datetime import UTC, datetime

from kintoneops.processing.categories import DEFAULT_CATEGORIES
from kintoneops.report import field_icon, format_field_display, map_field_type, render_summary
from kintoneops.typing.models import (
    AppSchema,
    ExtractedField,
    LayoutGroup,
    Relationship,
    SchemaDocument,
    SchemaStatistics,
)

_GENERATED_AT = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)


def _field(code: str, label: str | None = None, **kwargs) -> ExtractedField:
    return ExtractedField(code=code, label=label or code, type=kwargs.pop("type", "SINGLE_LINE_TEXT"), **kwargs)


def test_map_field_type_falls_back_to_raw_type() -> None:
    assert map_field_type("NUMBER") == "数値"
    assert map_field_type("CUSTOM") == "CUSTOM"


def test_format_field_display() -> None:
    assert format_field_display(_field("name")) == "name"
    assert format_field_display(_field("name", "氏名")) == "氏名 (name)"


def test_field_icon_priority() -> None:
    assert field_icon(_field("a", required=True, unique=True)) == "🔑"
    assert field_icon(_field("a", required=True)) == "🔴"
    assert field_icon(_field("a", unique=True)) == "💎"
    assert field_icon(_field("顧客コード")) == "🔑"
    assert field_icon(_field("a", type="DATE")) == "📅"
    assert field_icon(_field("a")) == "📝"


def test_render_summary_for_empty_document() -> None:
    text = render_summary(SchemaDocument(generated_at=_GENERATED_AT))

    assert "総アプリ数: 0" in text
    assert "アプリが見つかりませんでした" in text
    assert "🔗" not in text


def test_render_summary_groups_by_category_and_lists_relationships() -> None:
    address = (_field("zip", "郵便番号"), _field("city", "市区町村"))
    table = _field("明細", type="SUBTABLE", is_subtable=True)
    apps = [
        AppSchema(
            name="顧客マスタ",
            sanitized_name="",
            category="master",
            fields=[*address, table],
            layout_groups=[
                LayoutGroup(index=0, fields=address, is_multi_field=True, group_name="住所"),
                LayoutGroup(index=1, fields=(table,), is_subtable=True),
            ],
        ),
        AppSchema(name="日報", sanitized_name="", category="other", fields=[_field("memo")]),
    ]
    document = SchemaDocument(
        generated_at=_GENERATED_AT,
        categories=DEFAULT_CATEGORIES,
        apps=apps,
        relationships=[Relationship(from_app="顧客マスタ", to_app="日報", field="memo")],
        statistics=SchemaStatistics(app_count=2, field_count=4, relationship_count=1, average_fields_per_app=2),
    )

    text = render_summary(document)

    assert "Generated on 2024-05-01 09:30" in text
    assert "## マスタデータ (1)" in text
    assert "## その他 (1)" in text
    assert text.index("## マスタデータ") < text.index("## その他")
    assert "- 📂 住所 (2フィールド)" in text
    assert "  - 📝 郵便番号 (zip) `テキスト`" in text
    assert "- 📊 サブテーブル - なし (1フィールド)" in text
    assert "- 📝 memo `テキスト`" in text
    assert "- 顧客マスタ ⇄ 日報: 共通フィールド `memo`" in text


def test_render_summary_truncates_relationships() -> None:
    relationships = [Relationship(from_app=f"a{index}", to_app="b", field="ID") for index in range(53)]
    document = SchemaDocument(
        generated_at=_GENERATED_AT,
        apps=[AppSchema(name="a", sanitized_name="a", category="other")],
        relationships=relationships,
    )

    text = render_summary(document)

    assert "## 🔗 アプリ間関連性 (53)" in text
    assert "- 他 3 件の関連性があります" in text
    assert "a52 ⇄ b" not in text
