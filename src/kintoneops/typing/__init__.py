"""Typing-centric domain modules."""

from kintoneops.typing.enums import (
    Environment,
    FieldType,
    LayoutNodeType,
    LayoutPolicy,
    RelationshipKind,
    SyncAction,
)
from kintoneops.typing.models import (
    AppSchema,
    ExtractedField,
    FieldOccurrence,
    FieldProperty,
    FormLayout,
    LayoutExtraction,
    LayoutGroup,
    LayoutNode,
    Registry,
    RegistryApp,
    Relationship,
    SchemaDocument,
)
from kintoneops.typing.protocol import CommandRunner, RegistryBackend

__all__ = [
    "AppSchema",
    "CommandRunner",
    "Environment",
    "ExtractedField",
    "FieldOccurrence",
    "FieldProperty",
    "FieldType",
    "FormLayout",
    "LayoutExtraction",
    "LayoutGroup",
    "LayoutNode",
    "LayoutNodeType",
    "LayoutPolicy",
    "Registry",
    "RegistryApp",
    "RegistryBackend",
    "Relationship",
    "RelationshipKind",
    "SchemaDocument",
    "SyncAction",
]
