"""Field frequency analysis and cross-app relationship inference."""

from __future__ import annotations

from itertools import combinations
from typing import TYPE_CHECKING

from kintoneops import logger
from kintoneops.typing.models import CommonField, FieldOccurrence, Relationship

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from kintoneops.typing.models import AppSchema

IMPORTANT_FIELD_KEYWORDS: tuple[str, ...] = (
    "ID",
    "コード",
    "番号",
    "管理番号",
    "No",
    "KEY",
    "顧客",
    "ユーザー",
    "部門",
    "担当者",
)
KEY_FIELD_PATTERNS: tuple[str, ...] = (
    "ID",
    "コード",
    "番号",
    "管理番号",
    "No",
    "KEY",
    "レコード番号",
    "ユニークID",
    "識別子",
)

DEFAULT_MAX_COMMON_FIELDS = 50
DEFAULT_MAX_APPS_PER_FIELD = 20
DEFAULT_RARE_FIELD_THRESHOLD = 5

FieldFrequency = dict[str, list[FieldOccurrence]]


def build_field_frequency(apps: Iterable[AppSchema]) -> FieldFrequency:
    """Index field codes by the apps declaring them.

    Args:
        apps (Iterable[AppSchema]): Apps in processing order.

    Returns:
        FieldFrequency: Field code to occurrences, in app processing order.
    """
    frequency: FieldFrequency = {}
    for app in apps:
        for field in app.fields:
            frequency.setdefault(field.code, []).append(
                FieldOccurrence(app_name=app.name, type=field.type, required=field.required),
            )
    return frequency


def select_common_fields(
    frequency: Mapping[str, Sequence[FieldOccurrence]],
    limit: int | None = None,
) -> list[CommonField]:
    """Return fields declared by more than one app, most shared first.

    Args:
        frequency (Mapping[str, Sequence[FieldOccurrence]]): Field frequency table.
        limit (int | None): Maximum number of fields returned, unbounded when None.

    Returns:
        list[CommonField]: Common fields sorted by descending app count.
    """
    common = [
        CommonField(code=code, occurrences=tuple(occurrences))
        for code, occurrences in frequency.items()
        if len(occurrences) > 1
    ]
    common.sort(key=lambda item: item.app_count, reverse=True)
    return common if limit is None else common[:limit]


def is_important_field(code: str, keywords: Sequence[str] = IMPORTANT_FIELD_KEYWORDS) -> bool:
    """Return whether the field code contains an identifier-like keyword."""
    return any(keyword in code for keyword in keywords)


def is_key_field(code: str) -> bool:
    """Return whether the field code looks like a record key."""
    return any(pattern in code for pattern in KEY_FIELD_PATTERNS)


def infer_relationships(
    frequency: Mapping[str, Sequence[FieldOccurrence]],
    important_substrings: Sequence[str] = IMPORTANT_FIELD_KEYWORDS,
    *,
    max_common_fields: int = DEFAULT_MAX_COMMON_FIELDS,
    max_apps_per_field: int = DEFAULT_MAX_APPS_PER_FIELD,
    rare_field_threshold: int = DEFAULT_RARE_FIELD_THRESHOLD,
) -> list[Relationship]:
    """Infer app relationships from shared field codes.

    Only the `max_common_fields` most shared fields are considered. A field
    shared by more than `max_apps_per_field` apps is ignored; otherwise it
    yields edges when its code contains an important substring or when it is
    shared by at most `rare_field_threshold` apps. Each admitted field yields
    one edge per unordered pair of the apps declaring it.

    Args:
        frequency (Mapping[str, Sequence[FieldOccurrence]]): Field frequency table.
        important_substrings (Sequence[str]): Keywords marking join-key-like fields.
        max_common_fields (int): Cap on candidate fields.
        max_apps_per_field (int): Upper bound of apps sharing an admitted field.
        rare_field_threshold (int): App count under which fields are always admitted.

    Returns:
        list[Relationship]: Relationship edges, grouped by field.
    """
    relationships: list[Relationship] = []
    for common in select_common_fields(frequency, max_common_fields):
        if common.app_count > max_apps_per_field:
            continue
        if not (
            is_important_field(common.code, important_substrings) or common.app_count <= rare_field_threshold
        ):
            continue
        relationships.extend(
            Relationship(from_app=left.app_name, to_app=right.app_name, field=common.code)
            for left, right in combinations(common.occurrences, 2)
            if left.app_name != right.app_name
        )

    logger.info("Detected relationships", extra={"relationship_count": len(relationships)})
    return relationships
