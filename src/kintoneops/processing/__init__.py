"""Schema processing helpers."""

from kintoneops.processing.categories import AppClassifier, CategoryRule, build_classifier, resolve_categories
from kintoneops.processing.layout import extract_fields, parse_layout, parse_properties
from kintoneops.processing.relationships import (
    build_field_frequency,
    infer_relationships,
    select_common_fields,
)

__all__ = [
    "AppClassifier",
    "CategoryRule",
    "build_classifier",
    "build_field_frequency",
    "extract_fields",
    "infer_relationships",
    "parse_layout",
    "parse_properties",
    "resolve_categories",
    "select_common_fields",
]
