"""App schema domain models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kintoneops.typing.enums import LayoutNodeType, RelationshipKind

NO_GROUP_NAME = "なし"


class FieldProperty(BaseModel):
    """Field definition as found in `app_form_fields.json` properties."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    code: str
    label: str = ""
    type: str
    required: bool = False
    unique: bool = False

    @model_validator(mode="before")
    @classmethod
    def _label_defaults_to_code(cls, data: Any) -> Any:  # noqa: ANN401
        if isinstance(data, dict) and not data.get("label"):
            return {**data, "label": data.get("code", "")}
        return data


class LayoutFieldRef(BaseModel):
    """Element placed in a layout row."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    code: str | None = None


class LayoutNode(BaseModel):
    """Node of a form layout tree."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    code: str | None = None
    fields: tuple[LayoutFieldRef, ...] = ()
    layout: tuple[LayoutNode, ...] = ()

    @property
    def kind(self) -> LayoutNodeType | None:
        """Return the node kind, or None for kinds the extractor does not walk."""
        try:
            return LayoutNodeType(self.type)
        except ValueError:
            return None


class FormLayout(BaseModel):
    """Layout document as found in `app_form_layout.json`."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    layout: tuple[LayoutNode, ...] = ()


class ExtractedField(BaseModel):
    """Field emitted by layout extraction."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    label: str
    type: str
    required: bool = False
    unique: bool = False
    group_index: int = 0
    group_name: str | None = None
    is_subtable: bool = False


class LayoutGroup(BaseModel):
    """Display group of adjacent fields."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int
    fields: tuple[ExtractedField, ...]
    is_multi_field: bool = False
    is_subtable: bool = False
    group_name: str = NO_GROUP_NAME


class LayoutExtraction(BaseModel):
    """Ordered fields and groups of one app."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fields: tuple[ExtractedField, ...] = ()
    layout_groups: tuple[LayoutGroup, ...] = ()


class FieldOccurrence(BaseModel):
    """One app declaring a given field code."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_name: str
    type: str
    required: bool = False


class Relationship(BaseModel):
    """Association between two apps sharing a field."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    from_app: str = Field(alias="from")
    to_app: str = Field(alias="to")
    field: str
    kind: RelationshipKind = RelationshipKind.COMMON_FIELD


class CategoryInfo(BaseModel):
    """Display information of an app category."""

    model_config = ConfigDict(extra="allow")

    name: str
    description: str = ""


class AppSchema(BaseModel):
    """Extracted schema of one app."""

    model_config = ConfigDict(extra="forbid")

    name: str
    sanitized_name: str
    category: str
    fields: list[ExtractedField] = Field(default_factory=list)
    layout_groups: list[LayoutGroup] = Field(default_factory=list)


class SchemaStatistics(BaseModel):
    """Aggregate counters of a schema document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_count: int = 0
    field_count: int = 0
    relationship_count: int = 0
    average_fields_per_app: int = 0


class CommonField(BaseModel):
    """Field code declared by several apps."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    occurrences: tuple[FieldOccurrence, ...]

    @property
    def app_count(self) -> int:
        """Return the number of apps declaring the field."""
        return len(self.occurrences)


class SchemaDocument(BaseModel):
    """Schema documentation of a whole kintone environment."""

    model_config = ConfigDict(extra="forbid")

    generated_at: datetime
    categories: dict[str, CategoryInfo] = Field(default_factory=dict)
    apps: list[AppSchema] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    common_fields: list[CommonField] = Field(default_factory=list)
    statistics: SchemaStatistics = Field(default_factory=SchemaStatistics)

    @property
    def is_empty(self) -> bool:
        """Return whether no app was collected."""
        return not self.apps
