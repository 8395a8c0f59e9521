"""App schema documentation generation."""

from __future__ import annotations

import json
import math
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from kintoneops import logger
from kintoneops.processing.categories import AppClassifier, build_classifier, resolve_categories
from kintoneops.processing.layout import extract_fields, parse_layout, parse_properties
from kintoneops.processing.relationships import (
    build_field_frequency,
    infer_relationships,
    select_common_fields,
)
from kintoneops.registry_store import RegistryStore, load_registry_or_none
from kintoneops.report import render_summary
from kintoneops.typing.enums import LayoutPolicy
from kintoneops.typing.models import AppSchema, SchemaDocument, SchemaStatistics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kintoneops.settings import Settings
    from kintoneops.typing.models import Registry

FIELDS_FILE_NAME = "app_form_fields.json"
LAYOUT_FILE_NAME = "app_form_layout.json"
SCHEMA_FILE_NAME = "app_schema.json"
SUMMARY_FILE_NAME = "README.md"
UNKNOWN_APP_NAME = "Unknown"
_SANITIZED_NAME_LENGTH = 25


class AppDocuments(BaseModel):
    """Raw design documents of one app."""

    model_config = ConfigDict(extra="forbid")

    name: str
    fields: dict[str, Any] | None = None
    layout: dict[str, Any] | None = None


def extract_app_name(path: Path, design_dir: Path | None = None) -> str:
    """Return the app directory name of a design document.

    Below `design_dir`, the first path component names the app unless the
    relative path still contains an `apps` directory, in which case the
    component following `apps` is used.

    Args:
        path (Path): Design document path, e.g. `design/apps/<name>/dev/app_form_fields.json`.
        design_dir (Path | None): Directory the path was found under.

    Returns:
        str: App name, or `Unknown` when no app directory can be found.
    """
    parts = path.parts
    if design_dir is not None and path.is_relative_to(design_dir):
        parts = path.relative_to(design_dir).parts
        if len(parts) > 1 and "apps" not in parts[:-1]:
            return parts[0]
    if "apps" in parts:
        index = parts.index("apps")
        if index + 1 < len(parts):
            return parts[index + 1]
    return UNKNOWN_APP_NAME


def sanitize_app_name(name: str) -> str:
    """Return an identifier-safe short form of an app display name."""
    cleaned = re.sub(r"【.*?】", "", name)
    cleaned = re.sub(r"[^A-Za-z0-9_\s]", "", cleaned)
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned[:_SANITIZED_NAME_LENGTH]


def _read_json(path: Path) -> dict[str, Any] | None:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to parse design document", extra={"path": str(path), "error": str(exc)})
        return None
    if not isinstance(payload, dict):
        logger.warning("Design document is not a JSON object", extra={"path": str(path)})
        return None
    return payload


def collect_app_documents(design_dir: Path) -> list[AppDocuments]:
    """Find field and layout documents of every app below a design directory.

    Unparsable documents are skipped with a warning.

    Args:
        design_dir (Path): Root of pulled app designs.

    Returns:
        list[AppDocuments]: Documents grouped by app name, in discovery order.
    """
    if not design_dir.is_dir():
        logger.warning("Design directory not found", extra={"design_dir": str(design_dir)})
        return []

    apps: dict[str, AppDocuments] = {}
    for file_name, attribute in ((FIELDS_FILE_NAME, "fields"), (LAYOUT_FILE_NAME, "layout")):
        for path in sorted(design_dir.rglob(file_name)):
            app_name = extract_app_name(path, design_dir)
            documents = apps.setdefault(app_name, AppDocuments(name=app_name))
            payload = _read_json(path)
            if payload is not None:
                setattr(documents, attribute, payload)
    return list(apps.values())


def build_app_schema(
    documents: AppDocuments,
    classifier: AppClassifier,
    *,
    policy: LayoutPolicy = LayoutPolicy.LAYOUT_AUTHORITATIVE,
) -> AppSchema | None:
    """Extract the schema of one app.

    Args:
        documents (AppDocuments): Raw app documents.
        classifier (AppClassifier): Category classifier.
        policy (LayoutPolicy): Handling of fields absent from the layout.

    Returns:
        AppSchema | None: App schema, or None when the app has no usable field definitions.
    """
    raw_properties = (documents.fields or {}).get("properties")
    if not isinstance(raw_properties, dict):
        return None

    try:
        properties = parse_properties(raw_properties)
        layout = parse_layout(documents.layout)
    except (TypeError, ValidationError) as exc:
        logger.warning("Invalid design documents", extra={"app_name": documents.name, "error": str(exc)})
        return None

    logger.debug("Extracting fields", extra={"app_name": documents.name, "has_layout": layout is not None})
    extraction = extract_fields(properties, layout, policy=policy)
    return AppSchema(
        name=documents.name,
        sanitized_name=sanitize_app_name(documents.name),
        category=classifier.classify(documents.name),
        fields=list(extraction.fields),
        layout_groups=list(extraction.layout_groups),
    )


def compute_statistics(apps: Iterable[AppSchema], relationship_count: int) -> SchemaStatistics:
    """Aggregate document counters.

    The average is rounded half up and is 0 when no app was collected.
    """
    app_list = list(apps)
    field_count = sum(len(app.fields) for app in app_list)
    average = math.floor(field_count / len(app_list) + 0.5) if app_list else 0
    return SchemaStatistics(
        app_count=len(app_list),
        field_count=field_count,
        relationship_count=relationship_count,
        average_fields_per_app=average,
    )


def build_schema_document(
    app_documents: Iterable[AppDocuments],
    registry: Registry | None,
    settings: Settings,
    *,
    now: datetime | None = None,
) -> SchemaDocument:
    """Run extraction, analysis and relationship inference over loaded documents.

    Args:
        app_documents (Iterable[AppDocuments]): Raw documents per app.
        registry (Registry | None): Apps registry, used for categories.
        settings (Settings): Runtime settings.
        now (datetime | None): Generation timestamp override.

    Returns:
        SchemaDocument: Generated document.
    """
    classifier = build_classifier(registry)
    apps = [
        app
        for documents in app_documents
        if (app := build_app_schema(documents, classifier, policy=settings.layout_policy)) is not None
    ]
    logger.info("Collected apps", extra={"app_count": len(apps)})

    frequency = build_field_frequency(apps)
    relationships = infer_relationships(
        frequency,
        max_common_fields=settings.max_common_fields,
        max_apps_per_field=settings.max_apps_per_field,
        rare_field_threshold=settings.rare_field_threshold,
    )
    return SchemaDocument(
        generated_at=now or datetime.now(UTC),
        categories=resolve_categories(registry),
        apps=apps,
        relationships=relationships,
        common_fields=select_common_fields(frequency),
        statistics=compute_statistics(apps, len(relationships)),
    )


def generate_schema_document(settings: Settings, *, design_dir: Path | None = None) -> SchemaDocument:
    """Load design documents and the registry from disk and build the document."""
    registry = load_registry_or_none(RegistryStore(path=settings.registry_path))
    documents = collect_app_documents(design_dir or settings.design_apps_path)
    return build_schema_document(documents, registry, settings)


def persist_document(document: SchemaDocument, output_dir: Path) -> list[Path]:
    """Write the JSON document and its Markdown summary.

    Args:
        document (SchemaDocument): Generated document.
        output_dir (Path): Output directory, created when missing.

    Returns:
        list[Path]: Written files.
    """
    if document.is_empty:
        logger.warning("No apps collected, writing an empty schema document")

    output_dir.mkdir(parents=True, exist_ok=True)
    schema_path = output_dir / SCHEMA_FILE_NAME
    schema_path.write_text(
        json.dumps(document.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    summary_path = output_dir / SUMMARY_FILE_NAME
    summary_path.write_text(render_summary(document), encoding="utf-8")

    logger.info(
        "Schema documentation written",
        extra={"schema_path": str(schema_path), "summary_path": str(summary_path)},
    )
    return [schema_path, summary_path]
