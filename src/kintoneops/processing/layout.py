"""Layout-driven field and display-group extraction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kintoneops import logger
from kintoneops.typing.enums import LayoutNodeType, LayoutPolicy
from kintoneops.typing.models import (
    NO_GROUP_NAME,
    ExtractedField,
    FieldProperty,
    FormLayout,
    LayoutExtraction,
    LayoutGroup,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from kintoneops.typing.models import LayoutNode

_WalkResult = tuple[list[ExtractedField], list[LayoutGroup], int]


def parse_properties(raw: Mapping[str, Any]) -> dict[str, FieldProperty]:
    """Validate the `properties` mapping of a field definitions document.

    Args:
        raw (Mapping[str, Any]): Field code to raw definition.

    Returns:
        dict[str, FieldProperty]: Field code to validated definition, in document order.
    """
    return {code: FieldProperty.model_validate({"code": code, **definition}) for code, definition in raw.items()}


def parse_layout(raw: object) -> FormLayout | None:
    """Validate a layout document.

    Args:
        raw (object): Parsed `app_form_layout.json` payload.

    Returns:
        FormLayout | None: Layout, or None when the payload has no `layout` list.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("layout"), list):
        return None
    return FormLayout.model_validate(raw)


def _extracted(
    prop: FieldProperty,
    *,
    group_index: int,
    group_name: str | None,
    is_subtable: bool = False,
) -> ExtractedField:
    return ExtractedField(
        code=prop.code,
        label=prop.label or prop.code,
        type=prop.type,
        required=prop.required,
        unique=prop.unique,
        group_index=group_index,
        group_name=group_name,
        is_subtable=is_subtable,
    )


def _close_group(pending: list[ExtractedField], index: int, group_name: str | None) -> LayoutGroup:
    return LayoutGroup(
        index=index,
        fields=tuple(pending),
        is_multi_field=len(pending) > 1,
        group_name=group_name or NO_GROUP_NAME,
    )


def _walk(
    nodes: Sequence[LayoutNode],
    properties: Mapping[str, FieldProperty],
    *,
    group_name: str | None,
    start_index: int,
) -> _WalkResult:
    """Fold one layout level into fields, closed groups and the next group index.

    The pending buffer is local to the level: a GROUP or SUBTABLE boundary
    closes it before the nested content is emitted.
    """
    fields: list[ExtractedField] = []
    groups: list[LayoutGroup] = []
    pending: list[ExtractedField] = []
    index = start_index

    for node in nodes:
        kind = node.kind
        if kind is LayoutNodeType.ROW:
            for ref in node.fields:
                if not ref.code:
                    continue
                prop = properties.get(ref.code)
                if prop is None:
                    logger.warning(
                        "Field found in layout but not in field definitions",
                        extra={"field_code": ref.code},
                    )
                    continue
                field = _extracted(prop, group_index=index, group_name=group_name)
                pending.append(field)
                fields.append(field)

        elif kind is LayoutNodeType.GROUP and node.layout:
            if pending:
                groups.append(_close_group(pending, index, group_name))
                index += 1
                pending = []
            logger.debug("Processing layout group", extra={"group_code": node.code})
            child_fields, child_groups, index = _walk(
                node.layout,
                properties,
                group_name=node.code,
                start_index=index,
            )
            fields.extend(child_fields)
            groups.extend(child_groups)

        elif kind is LayoutNodeType.SUBTABLE:
            prop = properties.get(node.code) if node.code else None
            if prop is None:
                if node.code:
                    logger.warning(
                        "Subtable found in layout but not in field definitions",
                        extra={"field_code": node.code},
                    )
                continue
            if pending:
                groups.append(_close_group(pending, index, group_name))
                index += 1
                pending = []
            field = _extracted(prop, group_index=index, group_name=group_name, is_subtable=True)
            fields.append(field)
            groups.append(
                LayoutGroup(
                    index=index,
                    fields=(field,),
                    is_subtable=True,
                    group_name=group_name or NO_GROUP_NAME,
                ),
            )
            index += 1

    if pending:
        groups.append(_close_group(pending, index, group_name))
        index += 1

    return fields, groups, index


def _append_unreferenced(
    fields: list[ExtractedField],
    groups: list[LayoutGroup],
    properties: Mapping[str, FieldProperty],
    next_index: int,
) -> None:
    referenced = {field.code for field in fields}
    leftovers = [
        _extracted(prop, group_index=next_index, group_name=None)
        for code, prop in properties.items()
        if code not in referenced
    ]
    if not leftovers:
        return
    logger.info(
        "Appending fields missing from layout",
        extra={"field_codes": [field.code for field in leftovers]},
    )
    fields.extend(leftovers)
    groups.append(_close_group(leftovers, next_index, None))


def extract_fields(
    properties: Mapping[str, FieldProperty],
    layout: FormLayout | None = None,
    *,
    policy: LayoutPolicy = LayoutPolicy.LAYOUT_AUTHORITATIVE,
) -> LayoutExtraction:
    """Extract ordered fields and display groups of one app.

    With a layout, fields follow the depth-first layout order and are grouped
    by row runs, GROUP boundaries and subtables. Without a layout, every
    property is emitted in definition order with group index 0 and no group.

    Args:
        properties (Mapping[str, FieldProperty]): Field definitions keyed by code.
        layout (FormLayout | None): Optional form layout.
        policy (LayoutPolicy): Handling of definitions the layout does not reference.

    Returns:
        LayoutExtraction: Extracted fields and groups.
    """
    if layout is None:
        logger.debug("No layout available, using definition order")
        return LayoutExtraction(
            fields=tuple(_extracted(prop, group_index=0, group_name=None) for prop in properties.values()),
        )

    fields, groups, next_index = _walk(layout.layout, properties, group_name=None, start_index=0)
    if policy is LayoutPolicy.UNION_WITH_DEFINITIONS:
        _append_unreferenced(fields, groups, properties, next_index)

    logger.debug(
        "Layout groups created",
        extra={"group_count": len(groups), "field_order": [field.code for field in fields]},
    )
    return LayoutExtraction(fields=tuple(fields), layout_groups=tuple(groups))
