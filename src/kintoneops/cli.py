"""CLI entry point for kintoneops."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

from kintoneops import __version__, logger
from kintoneops.dependencies import ensure_cli_tools
from kintoneops.exceptions import PackageError
from kintoneops.helper import AppConfigHelper
from kintoneops.logging import configure_logging
from kintoneops.processing.categories import category_display_name
from kintoneops.registry_store import AppRegistry, RegistryStore, load_categories
from kintoneops.schema_generator import generate_schema_document, persist_document
from kintoneops.settings import get_settings
from kintoneops.sync import GinueSync
from kintoneops.typing.enums import Environment, LayoutPolicy, SyncAction
from kintoneops.typing.models import AppFilter
from kintoneops.upload import upload_customization

if TYPE_CHECKING:
    from collections.abc import Callable

    from kintoneops.settings import Settings

ENVIRONMENT_CHOICES = [environment.value for environment in Environment]


def _tags_from_cli(value: str) -> list[str]:
    """Split a comma separated `--tags` value.

    Args:
        value (str): CLI value, e.g. `core,master`.

    Raises:
        argparse.ArgumentTypeError: If no tag is given.

    Returns:
        list[str]: Tags.
    """
    tags = [tag.strip() for tag in value.split(",") if tag.strip()]
    if not tags:
        raise argparse.ArgumentTypeError("--tags expects at least one tag")  # noqa: TRY003
    return tags


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="kintoneops")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    schema_parser = subparsers.add_parser("schema", help="Generate schema documentation from pulled designs")
    schema_parser.add_argument("--design-dir", type=Path, default=None, dest="design_dir")
    schema_parser.add_argument("--output-dir", type=Path, default=None, dest="output_dir")
    schema_parser.add_argument(
        "--layout-policy",
        choices=[policy.value for policy in LayoutPolicy],
        default=None,
        dest="layout_policy",
    )

    for action in SyncAction:
        verb = "Pull designs from" if action is SyncAction.EXPORT else "Push dev designs to"
        sync_parser = subparsers.add_parser(action.value, help=f"{verb} a kintone environment")
        sync_parser.add_argument("target", help="'all', a comma separated list or a single app name")
        sync_parser.add_argument("environment", choices=ENVIRONMENT_CHOICES)

    list_parser = subparsers.add_parser("list", help="List registry apps")
    list_parser.add_argument("environment", nargs="?", choices=ENVIRONMENT_CHOICES, default=None)

    add_parser = subparsers.add_parser("add", help="Declare an app in the registry")
    add_parser.add_argument("app_name")
    add_parser.add_argument("title")
    add_parser.add_argument("dev_app_id")
    add_parser.add_argument("prod_app_id")
    add_parser.add_argument("category", nargs="?", default="other")
    add_parser.add_argument("description", nargs="?", default="")

    apps_parser = subparsers.add_parser("apps", help="List app configurations with optional filtering")
    apps_parser.add_argument("--enabled", action="store_true", dest="enabled_only")
    apps_parser.add_argument("--tags", type=_tags_from_cli, default=None)
    apps_parser.add_argument("--priority", type=int, default=None)
    apps_parser.add_argument("--env", choices=ENVIRONMENT_CHOICES, default=None, dest="environment")

    status_parser = subparsers.add_parser("status", help="Show app status and design files")
    status_parser.add_argument("app_name")

    create_parser = subparsers.add_parser("create", help="Create a new app configuration")
    create_parser.add_argument("app_name")
    create_parser.add_argument("dev_app_id")
    create_parser.add_argument("prod_app_id")
    create_parser.add_argument("description", nargs="?", default=None)

    subparsers.add_parser("groups", help="Show app groups")

    upload_parser = subparsers.add_parser("upload", help="Upload JavaScript/CSS customization")
    upload_parser.add_argument("app_name")
    upload_parser.add_argument("--env", choices=ENVIRONMENT_CHOICES, default=Environment.DEV.value, dest="environment")

    return parser


def _run_schema(args: argparse.Namespace, settings: Settings) -> int:
    if args.layout_policy:
        settings = settings.model_copy(update={"layout_policy": LayoutPolicy.from_str(args.layout_policy)})
    document = generate_schema_document(settings, design_dir=args.design_dir)
    persist_document(document, args.output_dir or settings.schema_output_path)
    print(f"Generated schema for {document.statistics.app_count} apps")  # noqa: T201
    return 0


def _run_sync(args: argparse.Namespace, settings: Settings) -> int:
    action = SyncAction.from_str(args.command)
    ensure_cli_tools(settings.ginue_command, purpose=action.value)
    registry = AppRegistry(RegistryStore(path=settings.registry_path))
    targets = registry.resolve_targets(args.target)
    report = GinueSync(settings, registry).sync_apps(action, targets, args.environment)
    print(f"{action.value}: {len(report.succeeded)} succeeded, {len(report.failed)} failed")  # noqa: T201
    if report.failed:
        print(f"Failed apps: {', '.join(report.failed)}")  # noqa: T201
    return 0 if report.ok else 1


def _run_list(args: argparse.Namespace, settings: Settings) -> int:
    store = RegistryStore(path=settings.registry_path)
    registry = AppRegistry(store)
    if args.environment:
        print(f"Apps in {args.environment} environment:")  # noqa: T201
        for name, app in registry.registered_for(args.environment):
            app_id = app.environments[args.environment].app_id
            print(f"  {name}: {app.name} (ID: {app_id})")  # noqa: T201
        return 0

    categories = load_categories(store)
    print("Available apps:")  # noqa: T201
    for category, apps in registry.apps_by_category().items():
        print(f"\n{category_display_name(category, categories)}:")  # noqa: T201
        for name, app in apps:
            print(f"  {name}: {app.name}")  # noqa: T201
    return 0


def _run_add(args: argparse.Namespace, settings: Settings) -> int:
    registry = AppRegistry(RegistryStore(path=settings.registry_path))
    registry.add_app(
        args.app_name,
        args.title,
        args.dev_app_id,
        args.prod_app_id,
        category=args.category,
        description=args.description,
    )
    print(f"Added app '{args.app_name}' to registry")  # noqa: T201
    return 0


def _run_apps(args: argparse.Namespace, settings: Settings) -> int:
    helper = AppConfigHelper(settings)
    criteria = AppFilter(
        enabled=True if args.enabled_only else None,
        tags=args.tags or [],
        priority=args.priority,
        environment=args.environment,
    )
    names = helper.filter_apps(criteria) if criteria.is_active else helper.list_app_dirs()
    if not names:
        print("No apps found matching the criteria.")  # noqa: T201
        return 0

    for name in names:
        config = helper.load_app_config(name)
        if config is None:
            print(f"\n🔸 {name} (No config file)")  # noqa: T201
            continue
        print(f"\n{'🟢' if config.enabled else '🔴'} {name}")  # noqa: T201
        print(f"   Description: {config.description or 'No description'}")  # noqa: T201
        if config.tags:
            print(f"   Tags: {', '.join(config.tags)}")  # noqa: T201
        if config.priority is not None:
            print(f"   Priority: {config.priority}")  # noqa: T201
        for environment in Environment:
            env_config = config.environments.get(environment.value)
            app_id = env_config.app_id if env_config and env_config.app_id else "Not set"
            disabled = " (Disabled)" if env_config and not env_config.enabled else ""
            print(f"   {environment.value} App ID: {app_id}{disabled}")  # noqa: T201

    groups = helper.load_app_groups()
    for group_name, group in groups.app_groups.items():
        members = [app for app in group.apps if app in names]
        if members:
            print(f"\n📂 {group_name}: {', '.join(members)}")  # noqa: T201
    return 0


def _run_status(args: argparse.Namespace, settings: Settings) -> int:
    status = AppConfigHelper(settings).app_status(args.app_name)
    print(f"📊 Status for {status.app_name}:")  # noqa: T201
    for env_status in status.environments:
        print(f"\n{env_status.environment.upper()} Environment:")  # noqa: T201
        print(f"   App ID: {env_status.app_id or 'Not set'}")  # noqa: T201
        print(f"   Domain: {env_status.domain or 'Not set'}")  # noqa: T201
        print(f"   Design Files: {'✅ Available' if env_status.has_design_files else '❌ Not found'}")  # noqa: T201
        print(f"   Last Export: {env_status.last_exported or 'Never'}")  # noqa: T201
        print(f"   Last Import: {env_status.last_imported or 'Never'}")  # noqa: T201
        if env_status.has_design_files:
            print(f"   Files: {', '.join(env_status.files)}")  # noqa: T201
    return 0


def _run_create(args: argparse.Namespace, settings: Settings) -> int:
    path = AppConfigHelper(settings).create_app_config(
        args.app_name,
        args.dev_app_id,
        args.prod_app_id,
        args.description,
    )
    print(f"✅ Created app config for '{args.app_name}': {path}")  # noqa: T201
    return 0


def _run_groups(args: argparse.Namespace, settings: Settings) -> int:  # noqa: ARG001
    groups = AppConfigHelper(settings).load_app_groups()
    if not groups.app_groups:
        print("No app groups defined.")  # noqa: T201
        return 0
    for group_name, group in groups.app_groups.items():
        print(f"\n🏷️  {group_name}")  # noqa: T201
        print(f"   Description: {group.description}")  # noqa: T201
        print(f"   Apps: {', '.join(group.apps) if group.apps else 'None'}")  # noqa: T201
    if groups.default_group:
        print(f"\n⭐ Default Group: {groups.default_group}")  # noqa: T201
    return 0


def _run_upload(args: argparse.Namespace, settings: Settings) -> int:
    ensure_cli_tools(settings.uploader_command, purpose="upload")
    manifest = upload_customization(settings, args.app_name, args.environment)
    print(f"Uploaded {manifest}")  # noqa: T201
    return 0


_HANDLERS: dict[str, Callable[[argparse.Namespace, Settings], int]] = {
    "schema": _run_schema,
    SyncAction.EXPORT.value: _run_sync,
    SyncAction.IMPORT.value: _run_sync,
    "list": _run_list,
    "add": _run_add,
    "apps": _run_apps,
    "status": _run_status,
    "create": _run_create,
    "groups": _run_groups,
    "upload": _run_upload,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments, defaults to `sys.argv[1:]`.

    Returns:
        int: Exit code (0 for success, 1 for error, 130 when interrupted).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args, settings)
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user", extra={"command": args.command})
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
