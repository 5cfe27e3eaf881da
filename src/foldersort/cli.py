"""Command line interface for FolderSort."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from foldersort.catalog import ScanError, ScanMode
from foldersort.config import ConfigError, ConfigManager, FolderSortConfig
from foldersort.relocation import NoDestinationError, RelocationReport
from foldersort.tags import PersistenceError
from foldersort.workspace import Workspace

console = Console()
err_console = Console(stderr=True)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print output honoring quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: One of ``detail``, ``summary``, ``warning``, or ``error``.
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("foldersort")
    logger.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False))


def _load_config(ctx: click.Context) -> FolderSortConfig:
    """Load configuration once per invocation and apply its logging level."""
    obj = ctx.ensure_object(dict)
    config = obj.get("config")
    if config is None:
        try:
            config = ConfigManager().load(cli_overrides=obj.get("overrides") or None)
        except ConfigError as exc:
            raise click.ClickException(str(exc)) from exc
        _configure_logging(config.logging.level)
        obj["config"] = config
    return config


def _open_workspace(ctx: click.Context, *, json_output: bool = False) -> Workspace:
    config = _load_config(ctx)
    try:
        return Workspace.from_config(config, store_path=ctx.obj.get("store_path"))
    except PersistenceError as exc:
        _handle_cli_error(str(exc), code="tag_store_error", json_output=json_output, original=exc)


def _parse_overrides(values: tuple[str, ...]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for value in values:
        key, separator, raw = value.partition("=")
        if not separator or not key.strip():
            raise click.BadParameter(
                f"Expected KEY=VALUE, got {value!r}.", param_hint="'--override'"
            )
        try:
            overrides[key.strip()] = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise click.BadParameter(
                f"Unable to parse value for {key.strip()}: {exc}", param_hint="'--override'"
            ) from exc
    return overrides


def _parse_assignments(values: tuple[str, ...]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for value in values:
        tag_name, separator, pattern = value.partition("=")
        if not separator or not tag_name.strip() or not pattern.strip():
            raise click.BadParameter(
                f"Expected TAG=GLOB, got {value!r}.", param_hint="'--assign'"
            )
        pairs.append((tag_name.strip(), pattern.strip()))
    return pairs


def _report_payload(report: RelocationReport) -> dict[str, Any]:
    return {
        "tag": report.tag,
        "destination": str(report.destination) if report.destination else None,
        "moved": [
            {
                "id": record.entry_id,
                "source": str(record.source),
                "destination": str(record.destination),
                "conflict_applied": record.conflict_applied,
            }
            for record in report.moved
        ],
        "skipped": [str(path) for path in report.skipped],
        "failed": [
            {"id": failure.entry_id, "source": str(failure.source), "reason": failure.reason}
            for failure in report.failed
        ],
    }


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="foldersort")
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=str),
    help="Tag store location (overrides tags.store_path).",
)
@click.option(
    "-o",
    "--override",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a configuration value for this run (repeatable).",
)
@click.pass_context
def cli(ctx: click.Context, store_path: str | None, overrides: tuple[str, ...]) -> None:
    """FolderSort indexes a directory, tags its files, and moves them by tag."""
    obj = ctx.ensure_object(dict)
    obj["store_path"] = store_path
    obj["overrides"] = _parse_overrides(overrides)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Include all subdirectories.")
@click.option("--json", "json_output", is_flag=True, help="Emit indexed entries as JSON.")
@click.pass_context
def scan(ctx: click.Context, path: str, recursive: bool, json_output: bool) -> None:
    """Index PATH and list the discovered entries."""
    config = _load_config(ctx)
    workspace = _open_workspace(ctx, json_output=json_output)
    mode = ScanMode.RECURSIVE if recursive or config.catalog.recursive else ScanMode.TOP_LEVEL

    try:
        count = workspace.scan(path, mode)
    except ScanError as exc:
        _handle_cli_error(str(exc), code="scan_error", json_output=json_output, original=exc)

    entries = workspace.entries()
    if json_output:
        console.print_json(
            data={
                "root": str(workspace.catalog.root),
                "mode": mode.value,
                "entries": [entry.model_dump(mode="json") for entry in entries],
            }
        )
        return

    table = Table(title=f"Entries in {workspace.catalog.root}")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Path", overflow="fold")
    for entry in entries:
        table.add_row(str(entry.id), entry.name, entry.kind.value, str(entry.path))
    console.print(table)
    console.print(_format_summary_line("Scan", workspace.catalog.root, {"entries": count}))


@cli.group()
def tags() -> None:
    """Manage tag definitions and destinations."""


@tags.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit tags as JSON.")
@click.pass_context
def tags_list(ctx: click.Context, json_output: bool) -> None:
    """List known tags with their destinations."""
    workspace = _open_workspace(ctx, json_output=json_output)
    summaries = workspace.tag_summaries()

    if json_output:
        console.print_json(data={"tags": [summary.model_dump() for summary in summaries]})
        return

    if not summaries:
        console.print("[yellow]No tags defined.[/yellow]")
        return

    table = Table(title="Tags")
    table.add_column("Tag")
    table.add_column("Destination", overflow="fold")
    for summary in summaries:
        table.add_row(summary.name, summary.destination or "[dim]unset[/dim]")
    console.print(table)


@tags.command("create")
@click.argument("name")
@click.pass_context
def tags_create(ctx: click.Context, name: str) -> None:
    """Create tag NAME with no destination."""
    workspace = _open_workspace(ctx)
    if not workspace.create_tag(name):
        raise click.ClickException(f"Unable to create tag '{name}'; it may already exist.")
    console.print(f"[green]Created tag '{name}'.[/green]")


@tags.command("delete")
@click.argument("name")
@click.pass_context
def tags_delete(ctx: click.Context, name: str) -> None:
    """Delete tag NAME. Its destination directory is kept."""
    workspace = _open_workspace(ctx)
    if not workspace.delete_tag(name):
        raise click.ClickException(f"Unable to delete tag '{name}'; it may not exist.")
    console.print(f"[green]Deleted tag '{name}'.[/green]")


@tags.command("dest")
@click.argument("name")
@click.argument("path", type=click.Path(path_type=str))
@click.pass_context
def tags_dest(ctx: click.Context, name: str, path: str) -> None:
    """Set the destination directory of tag NAME, creating it when missing."""
    workspace = _open_workspace(ctx)
    if name not in workspace.registry:
        raise click.ClickException(f"Unknown tag '{name}'.")
    if not workspace.set_destination(name, path):
        raise click.ClickException(f"Unable to use {path} as the destination for '{name}'.")
    console.print(
        f"[green]Destination for '{name}' set to {workspace.registry.get_destination(name)}.[/green]"
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Include all subdirectories.")
@click.option(
    "-a",
    "--assign",
    "assignments",
    multiple=True,
    metavar="TAG=GLOB",
    help="Tag files whose name matches GLOB (repeatable).",
)
@click.option("--tag", "tag_name", type=str, help="Only move files carrying this tag.")
@click.option("--json", "json_output", is_flag=True, help="Emit moves as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def sort(
    ctx: click.Context,
    path: str,
    recursive: bool,
    assignments: tuple[str, ...],
    tag_name: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Index PATH, tag matching files, and move them into tag destinations."""
    config = _load_config(ctx)
    pairs = _parse_assignments(assignments)
    quiet = quiet or config.cli.quiet_default
    summary_only = summary_mode or config.cli.summary_default

    workspace = _open_workspace(ctx, json_output=json_output)
    mode = ScanMode.RECURSIVE if recursive or config.catalog.recursive else ScanMode.TOP_LEVEL
    try:
        workspace.scan(path, mode)
    except ScanError as exc:
        _handle_cli_error(str(exc), code="scan_error", json_output=json_output, original=exc)

    assigned = sum(workspace.assign_matching(pattern, name) for name, pattern in pairs)

    if tag_name is not None:
        try:
            reports = [workspace.move_by_tag(tag_name)]
        except NoDestinationError as exc:
            _handle_cli_error(
                str(exc), code="no_destination", json_output=json_output, original=exc
            )
    else:
        reports = workspace.move_all().reports

    moved = sum(report.moved_count for report in reports)
    skipped = sum(len(report.skipped) for report in reports)
    failed = sum(len(report.failed) for report in reports)

    if json_output:
        console.print_json(
            data={
                "root": str(workspace.catalog.root),
                "counts": {
                    "assigned": assigned,
                    "moved": moved,
                    "skipped": skipped,
                    "failed": failed,
                },
                "reports": [_report_payload(report) for report in reports],
            }
        )
        return

    for report in reports:
        for record in report.moved:
            _emit_message(
                f"[cyan]{record.source} -> {record.destination}[/cyan]",
                mode="detail",
                quiet=quiet,
                summary_only=summary_only,
            )
        for failure in report.failed:
            _emit_message(
                f"[red]Failed to move {failure.source}: {failure.reason}[/red]",
                mode="error",
                quiet=quiet,
                summary_only=summary_only,
            )

    _emit_message(
        _format_summary_line(
            "Sort",
            workspace.catalog.root or path,
            {"assigned": assigned, "moved": moved, "skipped": skipped, "failed": failed},
        ),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


@cli.group()
def config() -> None:
    """Manage FolderSort configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        effective = manager.load(
            cli_overrides=ctx.ensure_object(dict).get("overrides") or None,
            include_env=not no_env,
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


__all__ = ["cli"]
