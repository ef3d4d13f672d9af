"""CLI module for SurrealDB schema sync.

Compares the schema declared in model modules with a live database (or a
``.surql`` schema dump), pulls database changes into the model files and
pushes code changes to the database as a migration.

Usage:
    surql-sync profiles
    surql-sync diff --detailed
    surql-sync diff --schema-file schema.surql --models-dir models
    surql-sync pull --dry-run
    surql-sync --profile staging pull
    surql-sync push --dry-run
    surql-sync push --confirm

Commands:
    profiles  - List available profiles
    diff      - Show differences between database and model code
    pull      - Update model files from the database schema
    push      - Apply model code changes to the database
"""

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from surql_sync.codegen.planner import (
    FileChangeType,
    format_file_changes,
    plan_file_changes,
    summarize_file_changes,
)
from surql_sync.config.loader import load_sync_config
from surql_sync.factory import ProfileNotFoundError, get_active_profile_name, get_adapter
from surql_sync.schema.apply import apply_migration, plan_migration
from surql_sync.schema.comparator import compare_schemas, format_changes
from surql_sync.schema.extractor import extract_schema_from_definables
from surql_sync.schema.introspector import SchemaIntrospector
from surql_sync.schema.loader import load_definables, read_model_files
from surql_sync.schema.migration import generate_migration
from surql_sync.schema.models import SchemaAST, SyncDirection
from surql_sync.schema.parser import parse_surql_file
from surql_sync.schema.warnings import WarningCollector

console = Console()


# ============================================================================
# Schema loading helpers (CLI-internal)
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _resolve_models_dir(args: argparse.Namespace) -> Path:
    """Models directory from ``--models-dir``, then the config, then ``models``."""
    if getattr(args, "models_dir", None):
        return Path(args.models_dir)
    try:
        config = load_sync_config(_config_path(args))
    except (FileNotFoundError, ValueError):
        return Path("models")
    return Path(config.codegen.models_dir)


def _load_code_schema(models_dir: Path) -> SchemaAST:
    """Extract the schema declared in a models directory.

    A missing directory yields an empty schema so ``pull`` can create it.
    """
    if not models_dir.exists():
        return SchemaAST()
    return extract_schema_from_definables(load_definables(models_dir))


async def _load_database_schema(
    args: argparse.Namespace, warnings: WarningCollector
) -> SchemaAST:
    """Read the database schema from ``--schema-file`` or a live profile.

    Raises:
        FileNotFoundError: If the schema or config file doesn't exist.
        ProfileNotFoundError: If no usable profile is configured.
        SurrealQueryError: If the database cannot be queried.
    """
    schema_file = getattr(args, "schema_file", None)
    if schema_file:
        console.print(f"Reading schema file: [cyan]{schema_file}[/cyan]", style="dim")
        return parse_surql_file(schema_file, warnings)

    profile, adapter = get_adapter(
        profile_name=getattr(args, "profile", None),
        config_path=_config_path(args),
        env_prefix=getattr(args, "env_prefix", ""),
    )
    console.print(f"Introspecting profile: [bold cyan]{profile}[/bold cyan]", style="dim")
    try:
        result = await SchemaIntrospector(adapter).introspect(warnings)
    finally:
        await adapter.close()

    if result.skipped_tables:
        console.print(
            f"[yellow]Skipped tables:[/yellow] {', '.join(result.skipped_tables)}"
        )
    return result.schema


def _print_warnings(warnings: WarningCollector) -> None:
    if warnings:
        console.print()
        console.print(f"[yellow]{warnings.format_report()}[/yellow]")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_diff(args: argparse.Namespace) -> int:
    """Async implementation for diff command.

    Args:
        args: Parsed arguments with schema_file, models_dir, detailed.

    Returns:
        0 if schemas match, 1 on differences or failure.
    """
    warnings = WarningCollector()
    models_dir = _resolve_models_dir(args)

    try:
        db_schema = await _load_database_schema(args, warnings)
        code_schema = _load_code_schema(models_dir)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] Connection failed: {e}")
        return 1

    changes = compare_schemas(db_schema, code_schema, SyncDirection.PULL)
    _print_warnings(warnings)
    console.print()

    if not changes:
        console.print("[bold green]v[/bold green] Schemas are identical")
        return 0

    console.print(f"[bold]{len(changes)} difference(s) found:[/bold]")
    console.print(format_changes(changes, detailed=args.detailed), markup=False)
    return 1


async def _async_pull(args: argparse.Namespace) -> int:
    """Async implementation for pull command.

    Args:
        args: Parsed arguments with schema_file, models_dir, dry_run.

    Returns:
        0 on success, 1 on failure.
    """
    warnings = WarningCollector()
    models_dir = _resolve_models_dir(args)

    try:
        db_schema = await _load_database_schema(args, warnings)
        code_schema = _load_code_schema(models_dir)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] Connection failed: {e}")
        return 1

    existing_files = read_model_files(models_dir)
    changes = plan_file_changes(
        db_schema, existing_files, code_schema if existing_files else None
    )
    _print_warnings(warnings)

    console.print()
    if not changes:
        console.print("[bold green]v[/bold green] Model files are up to date")
        return 0

    console.print(format_file_changes(changes), markup=False)
    summary = summarize_file_changes(changes)

    if args.dry_run:
        console.print()
        console.print(
            f"[dim]Dry run:[/dim] {summary['total']} file change(s) planned, "
            "nothing written."
        )
        return 0

    models_dir.mkdir(parents=True, exist_ok=True)
    for change in changes:
        path = models_dir / change.filename
        if change.type == FileChangeType.DELETE:
            path.unlink(missing_ok=True)
        else:
            path.write_text(change.new_content)

    console.print()
    console.print(
        f"[bold green]v[/bold green] Pull complete: "
        f"{summary['created']} created, {summary['updated']} updated, "
        f"{summary['deleted']} deleted in [cyan]{models_dir}[/cyan]"
    )
    return 0


async def _async_push(args: argparse.Namespace) -> int:
    """Async implementation for push command.

    Diffs the model code (source) against the live database (target),
    shows the migration, and applies it only with ``--confirm``.

    Args:
        args: Parsed arguments with models_dir, dry_run, confirm.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")
    models_dir = _resolve_models_dir(args)

    # An empty code schema would drop every database table
    if not models_dir.is_dir():
        console.print(f"[red]Error: Models directory not found: {models_dir}[/red]")
        console.print("[dim]Run[/dim] [cyan]surql-sync pull[/cyan] [dim]first.[/dim]")
        return 1

    try:
        code_schema = _load_code_schema(models_dir)
        profile, adapter = get_adapter(
            profile_name=getattr(args, "profile", None),
            config_path=_config_path(args),
            env_prefix=env_prefix,
        )
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"Analyzing schema for profile: [bold cyan]{profile}[/bold cyan]")

    try:
        warnings = WarningCollector()
        try:
            introspection = await SchemaIntrospector(adapter).introspect(warnings)
        except Exception as e:
            console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
            return 1
        db_schema = introspection.schema
        _print_warnings(warnings)

        changes = compare_schemas(code_schema, db_schema, SyncDirection.PUSH)
        if not changes:
            console.print()
            console.print("[bold green]v[/bold green] Database is up to date - nothing to push")
            return 0

        plan = plan_migration(changes, code_schema, db_schema)

        console.print()
        diff_table = Table(title="Schema Changes", show_header=True, header_style="bold")
        diff_table.add_column("Table", style="dim")
        diff_table.add_column("Change")
        diff_table.add_column("Description")
        for change in changes:
            diff_table.add_row(change.table, change.type.value, change.description)
        console.print(diff_table)

        console.print()
        console.print("[bold]Migration:[/bold]")
        console.print(generate_migration(changes, code_schema, db_schema), markup=False)

        if plan.skipped:
            console.print(
                f"[yellow]{len(plan.skipped)} change(s) have no statement "
                "and need manual review.[/yellow]"
            )

        if args.dry_run or not args.confirm:
            console.print()
            console.print(
                "[dim]To apply the migration, add[/dim] [cyan]--confirm[/cyan] "
                "[dim]flag.[/dim]"
            )
            return 0

        console.print()
        console.print("[bold]Applying migration...[/bold]")
        result = await apply_migration(adapter, plan, dry_run=False, confirm=True)
    finally:
        await adapter.close()

    if result.success:
        console.print(
            f"[bold green]v[/bold green] Applied {result.statements_applied} statement(s)."
        )
        return 0
    else:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1


# ============================================================================
# Sync command wrappers (cmd_profiles reads local files only)
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from surql-sync.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if the config is missing or invalid.
    """
    try:
        config = load_sync_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(
            config,
            getattr(args, "profile", None),
            getattr(args, "env_prefix", ""),
        )
    except ProfileNotFoundError:
        current = None

    table = Table(title="Connection Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("URL")
    table.add_column("NS/DB")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.url,
            f"{profile.namespace}/{profile.database}",
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Show differences between the database and the model code.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 if identical, 1 on differences or failure.
    """
    return asyncio.run(_async_diff(args))


def cmd_pull(args: argparse.Namespace) -> int:
    """Update model files from the database schema.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_pull(args))


def cmd_push(args: argparse.Namespace) -> int:
    """Apply model code changes to the database.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_push(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surql-sync",
        description="SurrealDB schema sync between database and model code",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the config file (default: ./surql-sync.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_SURQL_PROFILE)"
        ),
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Connection profile to use (overrides SURQL_PROFILE and default_profile)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # diff command
    p_diff = subparsers.add_parser(
        "diff",
        help="Show differences between database and model code",
    )
    p_diff.add_argument(
        "--schema-file",
        default=None,
        help="Compare against a .surql schema file instead of a live database",
    )
    p_diff.add_argument(
        "--models-dir",
        default=None,
        help="Directory containing model modules (default: [codegen] models_dir)",
    )
    p_diff.add_argument(
        "--detailed",
        action="store_true",
        help="Show old and new values for each change",
    )
    p_diff.set_defaults(func=cmd_diff)

    # pull command
    p_pull = subparsers.add_parser(
        "pull",
        help="Update model files from the database schema",
    )
    p_pull.add_argument(
        "--schema-file",
        default=None,
        help="Pull from a .surql schema file instead of a live database",
    )
    p_pull.add_argument(
        "--models-dir",
        default=None,
        help="Directory containing model modules (default: [codegen] models_dir)",
    )
    p_pull.add_argument(
        "--dry-run",
        action="store_true",
        help="Show planned file changes without writing",
    )
    p_pull.set_defaults(func=cmd_pull)

    # push command
    p_push = subparsers.add_parser(
        "push",
        help="Apply model code changes to the database",
    )
    p_push.add_argument(
        "--models-dir",
        default=None,
        help="Directory containing model modules (default: [codegen] models_dir)",
    )
    push_mode = p_push.add_mutually_exclusive_group()
    push_mode.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the migration without applying it",
    )
    push_mode.add_argument(
        "--confirm",
        action="store_true",
        help="Actually apply the migration",
    )
    p_push.set_defaults(func=cmd_push)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
