"""Core domain model exports."""

from kintoneops.typing.models.registry import (
    AppConfig,
    AppConfigEnvironment,
    AppEnvironment,
    AppFilter,
    AppGroup,
    AppGroupsConfig,
    AppHistory,
    Registry,
    RegistryApp,
    RegistryEnvironment,
)
from kintoneops.typing.models.schema import (
    NO_GROUP_NAME,
    AppSchema,
    CategoryInfo,
    CommonField,
    ExtractedField,
    FieldOccurrence,
    FieldProperty,
    FormLayout,
    LayoutExtraction,
    LayoutFieldRef,
    LayoutGroup,
    LayoutNode,
    Relationship,
    SchemaDocument,
    SchemaStatistics,
)

__all__ = [
    "NO_GROUP_NAME",
    "AppConfig",
    "AppConfigEnvironment",
    "AppEnvironment",
    "AppFilter",
    "AppGroup",
    "AppGroupsConfig",
    "AppHistory",
    "AppSchema",
    "CategoryInfo",
    "CommonField",
    "ExtractedField",
    "FieldOccurrence",
    "FieldProperty",
    "FormLayout",
    "LayoutExtraction",
    "LayoutFieldRef",
    "LayoutGroup",
    "LayoutNode",
    "Registry",
    "RegistryApp",
    "RegistryEnvironment",
    "Relationship",
    "SchemaDocument",
    "SchemaStatistics",
]
