"""
CLI interface for tool ledger.

Inspects the invocation and issue ledgers and manages style preferences.
"""

import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tool_ledger.config.loader import LedgerSettings, load_ledger_settings
from tool_ledger.config.styles import StyleConfigStore, StyleScope
from tool_ledger.core.collector import CollectorNotInitializedError
from tool_ledger.core.issues import IssueCollector
from tool_ledger.logging_config import configure_logging
from tool_ledger.sdk.report_issue import validate_issue_arguments
from tool_ledger.sdk.tools import ToolInputError
from tool_ledger.storage.persistence import file_size_bytes, load_issues, load_metrics

app = typer.Typer()
styles_app = typer.Typer(help="Manage saved styles and folder associations.")
app.add_typer(styles_app, name="styles")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _settings(ctx: typer.Context) -> LedgerSettings:
    return ctx.find_root().obj


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="debug, info, warn, error or silent (overrides settings)"
    ),
):
    """Tool Ledger CLI."""
    try:
        settings = load_ledger_settings(str(config) if config is not None else None)
        configure_logging(log_level or settings.log_level)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading settings:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    ctx.obj = settings
    if ctx.invoked_subcommand is None:
        console.print("Tool Ledger - Use --help to see available commands")


@app.command()
def status(ctx: typer.Context):
    """Show whether metrics are enabled and where the ledgers live."""
    settings = _settings(ctx)
    state = "[green]enabled[/]" if settings.metrics_enabled else "[yellow]disabled[/]"
    console.print(f"[bold]Server:[/] {escape(settings.server_name)} {escape(settings.server_version)}")
    console.print(f"[bold]Metrics:[/] {state}")
    for label, path in (("Ledger", settings.metrics_file), ("Issues", settings.issues_file)):
        if path.exists():
            detail = f"{file_size_bytes(path):,} bytes"
        else:
            detail = "not created yet"
        console.print(f"[bold]{label}:[/] {escape(str(path))} ({detail})", soft_wrap=True)


@app.command()
def stats(ctx: typer.Context):
    """Show per-tool statistics from the invocation ledger."""
    settings = _settings(ctx)
    if not settings.metrics_file.exists():
        console.print("\n[bold yellow]No invocation ledger found[/]")
        console.print("Run a server with metrics enabled to start recording tool calls.\n")
        sys.exit(EXIT_CODE_PASS)

    document = load_metrics(settings.metrics_file, settings.server_name)
    console.print(f"\n[bold]Tool usage for {escape(document.server_name)}[/bold]")
    console.print(
        f"Total invocations: {document.total_invocations:,} "
        f"(retained: {len(document.invocations):,})"
    )
    if not document.tool_stats:
        console.print("\n[dim]No tool calls recorded yet.[/]")
        return

    table = Table()
    table.add_column("Tool")
    table.add_column("Calls", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Avg ms", justify="right")
    table.add_column("Last used")
    ordered = sorted(document.tool_stats.items(), key=lambda item: item[1].call_count, reverse=True)
    for name, tool in ordered:
        table.add_row(
            escape(name),
            str(tool.call_count),
            str(tool.error_count),
            str(tool.avg_duration_ms),
            tool.last_used,
        )
    console.print(table)


@app.command()
def issues(
    ctx: typer.Context,
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Maximum number of issues to show"
    ),
):
    """Show reported issues, newest first."""
    settings = _settings(ctx)
    document = load_issues(settings.issues_file, settings.server_name)
    if not document.issues:
        console.print("[dim]No issues reported.[/]")
        return

    console.print(
        f"\n[bold]Issues for {escape(document.server_name)}[/bold] "
        f"({document.total_issues:,} reported, {len(document.issues):,} retained)"
    )
    table = Table()
    table.add_column("ID", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Title")
    table.add_column("Created", no_wrap=True)
    for issue in document.issues[:limit]:
        table.add_row(
            issue.id,
            issue.severity.value,
            issue.category.value,
            escape(issue.title),
            issue.created_at,
        )
    console.print(table)


@app.command("report-issue")
def report_issue(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t", help="Brief, descriptive title"),
    description: str = typer.Option(..., "--description", "-d", help="Detailed description"),
    severity: str = typer.Option("medium", "--severity", help="low, medium, high or critical"),
    category: str = typer.Option(
        "bug",
        "--category",
        help="bug, feature_request, documentation, performance, security or other"
    ),
    steps: Optional[str] = typer.Option(None, "--steps", help="Steps to reproduce"),
    expected: Optional[str] = typer.Option(None, "--expected", help="Expected behavior"),
    actual: Optional[str] = typer.Option(None, "--actual", help="Actual behavior"),
    environment: Optional[str] = typer.Option(None, "--environment", help="Environment details"),
):
    """Record an issue report in the issue ledger."""
    settings = _settings(ctx)
    try:
        params = validate_issue_arguments(
            title=title,
            description=description,
            severity=severity,
            category=category,
            steps_to_reproduce=steps,
            expected_behavior=expected,
            actual_behavior=actual,
            environment=environment,
        )
    except ToolInputError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    collector = IssueCollector(settings.server_name, metrics_dir=settings.metrics_dir)
    collector.initialize()
    try:
        issue = collector.report(**params)
    except (CollectorNotInitializedError, ValueError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    # No event loop here, so the write above has already run
    if collector.write_queue.failed_writes:
        console.print(f"[red]Error:[/] could not write {escape(str(collector.file_path))}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Issue {issue.id} reported")
    console.print(f"Saved to {escape(str(collector.file_path))}", soft_wrap=True)


def _store(project_root: Optional[Path]) -> StyleConfigStore:
    return StyleConfigStore(project_root=project_root)


def _scope_option():
    return typer.Option(
        StyleScope.PROJECT.value,
        "--scope",
        "-s",
        help="global or project"
    )


def _project_root_option():
    return typer.Option(
        None,
        "--project-root",
        help="Project root (defaults to the current directory)"
    )


def _parse_scope(scope: str) -> StyleScope:
    try:
        return StyleScope(scope)
    except ValueError:
        console.print(f"[red]Error:[/] scope must be 'global' or 'project', got {escape(scope)!r}")
        sys.exit(EXIT_CODE_FAIL)


@styles_app.command("list")
def styles_list(project_root: Optional[Path] = _project_root_option()):
    """List styles and folder associations from both scopes."""
    merged = _store(project_root).merge()
    if not merged.styles and not merged.folders:
        console.print("[dim]No styles saved.[/]")
        return

    table = Table(title="Styles")
    table.add_column("Name")
    table.add_column("Tags")
    table.add_column("Scope")
    for name in sorted(merged.styles):
        table.add_row(escape(name), escape(", ".join(merged.styles[name])), merged.sources.styles[name])
    console.print(table)

    if merged.folders:
        folders = Table(title="Folders")
        folders.add_column("Folder")
        folders.add_column("Style")
        folders.add_column("Scope")
        for folder in sorted(merged.folders):
            folders.add_row(
                escape(folder or "/"),
                escape(merged.folders[folder]),
                merged.sources.folders[folder],
            )
        console.print(folders)


@styles_app.command("save")
def styles_save(
    name: str = typer.Argument(..., help="Style name"),
    tags: List[str] = typer.Argument(..., help="One or more tags"),
    scope: str = _scope_option(),
    project_root: Optional[Path] = _project_root_option(),
):
    """Create or replace a named style."""
    scope_value = _parse_scope(scope)
    try:
        _store(project_root).save_style(name, tags, scope_value)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Saved style {escape(name)} ({scope_value.value})")


@styles_app.command("delete")
def styles_delete(
    name: str = typer.Argument(..., help="Style name"),
    scope: str = _scope_option(),
    project_root: Optional[Path] = _project_root_option(),
):
    """Delete a style and its folder associations in the same scope."""
    scope_value = _parse_scope(scope)
    try:
        deleted = _store(project_root).delete_style(name, scope_value)
    except OSError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    if not deleted:
        console.print(f"[red]Error:[/] style {escape(name)} not found in {scope_value.value} config")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Deleted style {escape(name)} ({scope_value.value})")


@styles_app.command("set-folder")
def styles_set_folder(
    folder: str = typer.Argument(..., help="Folder path"),
    style: str = typer.Argument(..., help="Existing style name"),
    scope: str = _scope_option(),
    project_root: Optional[Path] = _project_root_option(),
):
    """Associate a folder with an existing style."""
    scope_value = _parse_scope(scope)
    store = _store(project_root)
    if store.get_style_tags(style) is None:
        console.print(f"[red]Error:[/] style {escape(style)} does not exist")
        sys.exit(EXIT_CODE_FAIL)
    try:
        normalized = store.set_folder_style(folder, style, scope_value)
    except OSError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] {escape(normalized or '/')} -> {escape(style)} ({scope_value.value})")


@styles_app.command("remove-folder")
def styles_remove_folder(
    folder: str = typer.Argument(..., help="Folder path"),
    scope: str = _scope_option(),
    project_root: Optional[Path] = _project_root_option(),
):
    """Remove a folder association."""
    scope_value = _parse_scope(scope)
    try:
        removed = _store(project_root).remove_folder_style(folder, scope_value)
    except OSError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)
    if not removed:
        console.print(f"[red]Error:[/] no association for {escape(folder)} in {scope_value.value} config")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Removed association for {escape(folder)} ({scope_value.value})")


@styles_app.command("resolve")
def styles_resolve(
    folder: str = typer.Argument(..., help="Folder path"),
    project_root: Optional[Path] = _project_root_option(),
):
    """Show the style that applies to a folder."""
    match = _store(project_root).resolve_folder(folder)
    if match is None:
        console.print(f"[dim]No style configured for {escape(folder)} or any parent folder[/]")
        return
    console.print(f"[bold]Style:[/] {escape(match.style)}")
    console.print(f"[bold]Tags:[/] {escape(', '.join(match.tags))}")
    console.print(f"[bold]Matched:[/] {escape(match.matched_path or '/')}")


if __name__ == "__main__":
    app()
