"""
Notion → Static Site Export CLI

Usage:
    notion-export                      # Run export
    notion-export --dry-run            # Preview without touching files
    notion-export --date-source created
    notion-export check                # Verify the configured source is reachable
    notion-export version
"""

import sys
import traceback
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import COLLISION_POLICIES, DATE_SOURCES, Config, normalize_notion_id
from .exceptions import ConfigurationError, EmptyResultError, ExportError, RemoteError
from .export_engine import ExportEngine
from .notion_api import NotionAPI

console = Console()


@click.group(invoke_without_command=True)
@click.option("--database-id", help="Export the pages of this database")
@click.option("--parent-page-id", help="Export the child pages of this page")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory to write Markdown files into")
@click.option("--date-source", type=click.Choice(DATE_SOURCES),
              help="Use the export time (now) or the page creation time for 'date'")
@click.option("--on-collision", "slug_collision", type=click.Choice(COLLISION_POLICIES),
              help="What to do when two titles produce the same file name")
@click.option("--dry-run", is_flag=True, help="Preview without writing or deleting files")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, **options):
    """
    Notion → Static Site Export

    Exports Notion pages as Markdown files with front matter.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(options)

    # If no subcommand, run export
    if ctx.invoked_subcommand is None:
        ctx.invoke(export)


def _load_config(options: dict) -> Config:
    """Build the configuration from the environment plus CLI overrides."""
    load_dotenv()

    overrides = dict(options)
    # Flags only override the environment when given
    for flag in ("dry_run", "debug"):
        if not overrides.get(flag):
            overrides[flag] = None

    return Config.from_env(**overrides)


@cli.command()
@click.pass_context
def export(ctx):
    """Export Notion pages to Markdown files."""
    debug = ctx.obj.get("debug", False)

    try:
        config = _load_config(ctx.obj)
        debug = config.debug

        engine = ExportEngine(config)
        report = engine.run()

        # Exit with error code if any page failed
        if not report.success:
            sys.exit(1)

    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        console.print("\n[dim]Set the variables in your environment or a .env file.[/dim]")
        sys.exit(1)
    except EmptyResultError as e:
        console.print(f"[red]Nothing to export:[/red] {escape(str(e))}")
        sys.exit(1)
    except RemoteError as e:
        console.print(f"[red]Notion API error:[/red] {escape(str(e))}")
        if debug:
            traceback.print_exc()
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Export cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        if debug:
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.argument("block_id", required=False)
@click.pass_context
def check(ctx, block_id):
    """Retrieve a page or block by ID to verify access."""
    overrides = dict(ctx.obj)

    try:
        if block_id:
            # An explicit ID stands in for the export source
            overrides.update(
                database_id=None,
                parent_page_id=normalize_notion_id(block_id, "BLOCK_ID"),
            )
        config = _load_config(overrides)
        block = NotionAPI(config).get_block(config.source_id)
    except ExportError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)

    block_type = block.get("type", "unknown")
    title = block.get(block_type, {}).get("title", "")

    console.print("[green]✅ API call successful![/green]")
    console.print(f"  Type: [cyan]{block_type}[/cyan]")
    if title:
        console.print(f"  Title: [cyan]{escape(title)}[/cyan]")
    console.print(f"  Has children: {block.get('has_children', False)}")


@cli.command()
def version():
    """Show version information."""
    console.print(f"Notion → Static Site Export v{__version__}")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
