"""Markdown summary of a schema document."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kintoneops.processing.categories import category_display_name
from kintoneops.processing.relationships import is_key_field
from kintoneops.typing.enums import FieldType

if TYPE_CHECKING:
    from kintoneops.typing.models import AppSchema, ExtractedField, LayoutGroup, SchemaDocument

RELATIONSHIP_DISPLAY_LIMIT = 50

FIELD_TYPE_LABELS: dict[str, str] = {
    FieldType.SINGLE_LINE_TEXT: "テキスト",
    FieldType.MULTI_LINE_TEXT: "複数行テキスト",
    FieldType.RICH_TEXT: "リッチエディター",
    FieldType.NUMBER: "数値",
    FieldType.DECIMAL: "小数",
    FieldType.DATE: "日付",
    FieldType.TIME: "時刻",
    FieldType.DATETIME: "日時",
    FieldType.DROP_DOWN: "ドロップダウン",
    FieldType.RADIO_BUTTON: "ラジオボタン",
    FieldType.CHECK_BOX: "チェックボックス",
    FieldType.MULTI_SELECT: "複数選択",
    FieldType.USER_SELECT: "ユーザー選択",
    FieldType.ORGANIZATION_SELECT: "組織選択",
    FieldType.GROUP_SELECT: "グループ選択",
    FieldType.FILE: "ファイル",
    FieldType.LINK: "リンク",
    FieldType.SUBTABLE: "テーブル",
    FieldType.RECORD_NUMBER: "レコード番号",
    FieldType.CREATOR: "作成者",
    FieldType.CREATED_TIME: "作成日時",
    FieldType.MODIFIER: "更新者",
    FieldType.UPDATED_TIME: "更新日時",
    FieldType.STATUS: "ステータス",
    FieldType.CATEGORY: "カテゴリ",
    FieldType.CALC: "計算",
    FieldType.LOOKUP: "ルックアップ",
    FieldType.REFERENCE_TABLE: "関連レコード一覧",
}

_TYPE_ICONS: dict[str, str] = {
    FieldType.NUMBER: "🔢",
    FieldType.CALC: "🔢",
    FieldType.DATE: "📅",
    FieldType.TIME: "📅",
    FieldType.DATETIME: "📅",
    FieldType.DROP_DOWN: "✅",
    FieldType.RADIO_BUTTON: "✅",
    FieldType.CHECK_BOX: "✅",
    FieldType.MULTI_SELECT: "📋",
    FieldType.FILE: "📎",
    FieldType.LINK: "🔗",
    FieldType.USER_SELECT: "👤",
    FieldType.ORGANIZATION_SELECT: "🏢",
    FieldType.GROUP_SELECT: "👥",
    FieldType.SUBTABLE: "📊",
    FieldType.REFERENCE_TABLE: "🔍",
}
_DEFAULT_ICON = "📝"


def map_field_type(field_type: str) -> str:
    """Return the Japanese display name of a field type, or the type itself."""
    return FIELD_TYPE_LABELS.get(field_type, field_type)


def format_field_display(field: ExtractedField) -> str:
    """Return `label (code)`, or only the label when both are equal."""
    if field.code == field.label:
        return field.label
    return f"{field.label} ({field.code})"


def field_icon(field: ExtractedField) -> str:
    """Return the marker of a field: key, required, unique, identifier-like, then per-type icon."""
    if field.required and field.unique:
        return "🔑"
    if field.required:
        return "🔴"
    if field.unique:
        return "💎"
    if is_key_field(field.code):
        return "🔑"
    return _TYPE_ICONS.get(field.type, _DEFAULT_ICON)


def _field_line(field: ExtractedField, indent: str = "") -> str:
    return f"{indent}- {field_icon(field)} {format_field_display(field)} `{map_field_type(field.type)}`"


def _group_lines(group: LayoutGroup) -> list[str]:
    if group.is_subtable:
        suffix = f" - {group.group_name}" if group.group_name else ""
        header = f"📊 サブテーブル{suffix} ({len(group.fields)}フィールド)"
    elif group.is_multi_field:
        header = f"📂 {group.group_name or '同一行グループ'} ({len(group.fields)}フィールド)"
    else:
        return [_field_line(field) for field in group.fields]
    return [f"- {header}", *(_field_line(field, indent="  ") for field in group.fields)]


def _app_lines(app: AppSchema) -> list[str]:
    lines = [
        f"### {app.name}",
        "",
        f"総フィールド数: {len(app.fields)} | レイアウトグループ: {len(app.layout_groups)}",
        "",
    ]
    if app.layout_groups:
        for group in app.layout_groups:
            lines.extend(_group_lines(group))
    else:
        lines.extend(_field_line(field) for field in app.fields)
    lines.append("")
    return lines


def render_summary(document: SchemaDocument) -> str:
    """Render the schema document as Markdown.

    Args:
        document (SchemaDocument): Generated document.

    Returns:
        str: Markdown text.
    """
    stats = document.statistics
    lines = [
        "# Kintone Apps Schema Documentation",
        "",
        f"Generated on {document.generated_at:%Y-%m-%d %H:%M}",
        "",
        "## 📊 統計情報",
        "",
        f"- 総アプリ数: {stats.app_count}",
        f"- 総フィールド数: {stats.field_count}",
        f"- 検出された関連性: {stats.relationship_count}",
        f"- 平均フィールド数: {stats.average_fields_per_app}",
        "",
    ]
    if document.is_empty:
        lines.extend(["アプリが見つかりませんでした。`design/apps` 配下の設計ファイルを確認してください。", ""])
        return "\n".join(lines)

    categories = list(dict.fromkeys(app.category for app in document.apps))
    for category in categories:
        category_apps = [app for app in document.apps if app.category == category]
        lines.extend([f"## {category_display_name(category, document.categories)} ({len(category_apps)})", ""])
        for app in category_apps:
            lines.extend(_app_lines(app))

    if document.relationships:
        lines.extend([f"## 🔗 アプリ間関連性 ({len(document.relationships)})", ""])
        lines.extend(
            f"- {rel.from_app} ⇄ {rel.to_app}: 共通フィールド `{rel.field}`"
            for rel in document.relationships[:RELATIONSHIP_DISPLAY_LIMIT]
        )
        hidden = len(document.relationships) - RELATIONSHIP_DISPLAY_LIMIT
        if hidden > 0:
            lines.append(f"- 他 {hidden} 件の関連性があります")
        lines.append("")

    return "\n".join(lines)
