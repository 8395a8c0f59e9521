"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class FieldType(_EnumMixin):
    """kintone form field types."""

    SINGLE_LINE_TEXT = "SINGLE_LINE_TEXT"
    MULTI_LINE_TEXT = "MULTI_LINE_TEXT"
    RICH_TEXT = "RICH_TEXT"
    NUMBER = "NUMBER"
    DECIMAL = "DECIMAL"
    CALC = "CALC"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"
    DROP_DOWN = "DROP_DOWN"
    RADIO_BUTTON = "RADIO_BUTTON"
    CHECK_BOX = "CHECK_BOX"
    MULTI_SELECT = "MULTI_SELECT"
    USER_SELECT = "USER_SELECT"
    ORGANIZATION_SELECT = "ORGANIZATION_SELECT"
    GROUP_SELECT = "GROUP_SELECT"
    FILE = "FILE"
    LINK = "LINK"
    SUBTABLE = "SUBTABLE"
    REFERENCE_TABLE = "REFERENCE_TABLE"
    LOOKUP = "LOOKUP"
    RECORD_NUMBER = "RECORD_NUMBER"
    CREATOR = "CREATOR"
    CREATED_TIME = "CREATED_TIME"
    MODIFIER = "MODIFIER"
    UPDATED_TIME = "UPDATED_TIME"
    STATUS = "STATUS"
    STATUS_ASSIGNEE = "STATUS_ASSIGNEE"
    CATEGORY = "CATEGORY"
    GROUP = "GROUP"
    LABEL = "LABEL"
    SPACER = "SPACER"
    HR = "HR"


class LayoutNodeType(_EnumMixin):
    """Top-level node kinds of a form layout."""

    ROW = "ROW"
    GROUP = "GROUP"
    SUBTABLE = "SUBTABLE"


class LayoutPolicy(_EnumMixin):
    """How fields that the layout does not reference are handled."""

    LAYOUT_AUTHORITATIVE = "layout-authoritative"
    UNION_WITH_DEFINITIONS = "union-with-definitions"


class RelationshipKind(_EnumMixin):
    """Kinds of inferred app relationships."""

    COMMON_FIELD = "common_field"


class SyncAction(_EnumMixin):
    """Direction of a ginue synchronization."""

    EXPORT = "export"
    IMPORT = "import"

    @property
    def ginue_verb(self) -> str:
        """Return the ginue subcommand matching the action."""
        return "pull" if self is SyncAction.EXPORT else "push"


class Environment(_EnumMixin):
    """kintone environments managed by the toolkit."""

    DEV = "dev"
    PROD = "prod"
