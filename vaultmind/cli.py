"""CLI entrypoint for vaultmind."""

import sys
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_FILENAME, IndexerConfig
from .errors import VaultMindError
from .logging_config import configure_logging


def _auto_detect_vault(start: Path) -> Path:
    """Walk up from `start` to a folder holding vaultmind state or config; else `start`."""
    cur = start.resolve()
    state_dir = IndexerConfig().state_dir
    for p in (cur, *cur.parents):
        if (p / state_dir).is_dir() or (p / CONFIG_FILENAME).is_file():
            return p
    return cur


def _run(func, *args, **kwargs):
    """Call a command implementation, reporting vaultmind errors as CLI errors."""
    try:
        return func(*args, **kwargs)
    except VaultMindError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(__version__, prog_name="vaultmind")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the vault directory (defaults to auto-detected)",
)
@click.option("--verbose", is_flag=True, help="Show debug logging on stderr")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, verbose: bool) -> None:
    """vaultmind - tasks, goals and search for a markdown vault.

    Builds an index of every note in the vault, keeps it current while
    files change, and answers queries from it.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    if vault is None:
        vault = _auto_detect_vault(Path.cwd())

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()


@cli.command()
@click.option("--force", is_flag=True, help="Rebuild even if the stored index is fresh")
@click.option(
    "--keep-going",
    is_flag=True,
    help="Skip documents that fail to parse instead of aborting the rebuild",
)
@click.pass_context
def index(ctx: click.Context, force: bool, keep_going: bool) -> None:
    """Build (or refresh) the vault index.

    The stored index is reused unless it is more than a day old.

    Examples:

        vaultmind index

        vaultmind -v ~/notes index --force
    """
    from .commands.index_cmd import run_index

    exit_code = _run(run_index, ctx.obj["vault"], force=force, keep_going=keep_going)
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the stored index without rebuilding it."""
    from .commands.index_cmd import run_status

    exit_code = _run(run_status, ctx.obj["vault"])
    sys.exit(exit_code)


@cli.command()
@click.argument("query")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def search(ctx: click.Context, query: str, output_json: bool) -> None:
    """Search note titles, content and tags.

    Examples:

        vaultmind search roadmap

        vaultmind search "weekly review" --json
    """
    from .commands.query_cmd import run_search

    exit_code = _run(run_search, ctx.obj["vault"], query, output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.option("--open", "state", flag_value="open", help="Only open tasks")
@click.option("--done", "state", flag_value="done", help="Only completed tasks")
@click.option("--priority", type=click.Choice(["high", "medium", "low"]), default=None, help="Filter by priority")
@click.option("--tag", "tags", multiple=True, help="Filter by tag (any of). Repeatable.")
@click.option("--json", "output_json", is_flag=True, help="Output tasks as JSON")
@click.pass_context
def tasks(
    ctx: click.Context,
    state: str | None,
    priority: str | None,
    tags: tuple[str, ...],
    output_json: bool,
) -> None:
    """List tasks found in the vault.

    Examples:

        vaultmind tasks --open --priority high

        vaultmind tasks --tag work --tag errands
    """
    from .commands.query_cmd import run_tasks

    completed = {"open": False, "done": True}.get(state or "")
    exit_code = _run(
        run_tasks,
        ctx.obj["vault"],
        completed=completed,
        priority=priority,
        tags=list(tags),
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output goals as JSON")
@click.pass_context
def goals(ctx: click.Context, output_json: bool) -> None:
    """List goals declared in the vault."""
    from .commands.query_cmd import run_goals

    exit_code = _run(run_goals, ctx.obj["vault"], output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--keep-going",
    is_flag=True,
    help="Skip documents that fail to parse instead of aborting the rebuild",
)
@click.pass_context
def watch(ctx: click.Context, keep_going: bool) -> None:
    """Keep the index current while files change.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    _run(run_watch, ctx.obj["vault"], keep_going=keep_going)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
