"""prsync CLI: all commands."""

from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from prsync import __version__
from prsync.config import DEFAULT_CONFIG_PATH, SyncConfig, load_config
from prsync.errors import ConfigError, GitHubError, SyncCancelled
from prsync.providers.base import RepositoryService
from prsync.providers.github import GitHubProvider
from prsync.settings import get_settings
from prsync.sync import run_sync

app = typer.Typer(help="Keep a GitHub project board in sync with your roster's pull requests", no_args_is_help=True)

ConfigOpt = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the sync config file (YAML or TOML)"),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config(path: Path) -> SyncConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        rprint(f"[red]Error in config {escape(str(path))}:[/red] {escape(str(exc))}")
        raise typer.Exit(1)


def get_provider(config: SyncConfig) -> RepositoryService:
    settings = get_settings()
    try:
        return GitHubProvider(settings, base_url=config.github.url)
    except RuntimeError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)


def _rules_row(values: list) -> str:
    return escape(", ".join(str(v) for v in values)) if values else "[dim]—[/dim]"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("sync")
def sync_cmd(
    config_path: ConfigOpt = DEFAULT_CONFIG_PATH,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Report what would change without touching the board")
    ] = False,
    verbose: VerboseOpt = False,
) -> None:
    """Add the roster's pull requests to the board and remove completed ones."""
    config = _load_config(config_path)
    rprint(f"Config file: {escape(str(config_path))}")
    rprint(f"  Dry run: {dry_run}")

    provider = get_provider(config)
    try:
        provider.check_endpoint()
        summary = run_sync(provider, config, dry_run=dry_run, verbose=verbose)
    except GitHubError as exc:
        rprint(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    except (SyncCancelled, KeyboardInterrupt):
        rprint("[yellow]Cancelled.[/yellow] Changes already made to the board are kept.")
        raise typer.Exit(130)

    rprint(
        f"[green]✓[/green] {summary.inspected} inspected, {summary.added} added, {summary.deleted} deleted"
        + (" [dim](dry run)[/dim]" if dry_run else "")
    )
    rprint(f"Took {summary.elapsed:.2f} sec")


@app.command("check")
def check_cmd(config_path: ConfigOpt = DEFAULT_CONFIG_PATH) -> None:
    """Verify the GitHub API endpoint and credentials."""
    config = _load_config(config_path)
    provider = get_provider(config)
    try:
        provider.check_endpoint()
    except GitHubError as exc:
        rprint(f"[red]Error checking API endpoint:[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] GraphQL and REST endpoints reachable at {escape(config.github.url)}")


@app.command("config-show")
def config_show(config_path: ConfigOpt = DEFAULT_CONFIG_PATH) -> None:
    """Show resolved configuration (masks credentials)."""
    config = _load_config(config_path)
    settings = get_settings()

    def mask(val: str | None, prefix: str = "") -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"{prefix}...{val[-5:]}"

    table = Table(title="prsync Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("github_auth", settings.github_auth)
    table.add_row(
        "github_token",
        mask(settings.github_token.get_secret_value() if settings.github_token else None, prefix="ghp_"),
    )
    table.add_row("http_timeout", f"{settings.http_timeout:g}s")
    table.add_row("github.url", escape(config.github.url))
    table.add_row("project", escape(str(config.project)))
    table.add_row("repos", _rules_row(config.repos))

    for side in ("include", "exclude"):
        rules = getattr(config.authors, side)
        table.add_row(f"authors.{side}.users", _rules_row(rules.users))
        table.add_row(f"authors.{side}.teams", _rules_row(rules.teams))
        table.add_row(f"authors.{side}.orgs", _rules_row(rules.orgs))

    add, delete = config.pull_requests.add, config.pull_requests.delete
    table.add_row("add.states", _rules_row([s.value for s in add.states]))
    table.add_row("add.assignAuthor", str(add.assign_author))
    table.add_row("add.drafts", str(add.drafts))
    table.add_row("delete.states", _rules_row([s.value for s in delete.states]))
    table.add_row("delete.drafts", str(delete.drafts))
    table.add_row("delete.allAuthors", str(delete.all_authors))

    rprint(table)


@app.command("version")
def version_cmd() -> None:
    """Print version and exit."""
    typer.echo(f"prsync version {__version__}")
