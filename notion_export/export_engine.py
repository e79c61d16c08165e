"""
Main export engine for Notion → static site export.

Orchestrates:
- Page discovery from Notion
- Content conversion and normalisation
- Front matter generation
- File writing
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import Config
from .emitter import MarkdownDocument, SlugRegistry, prepare_output_dir, write_document
from .exceptions import EmptyResultError, RemoteError, SlugCollisionError
from .markdown_converter import MarkdownConverter
from .normalizer import normalize, summarize
from .notion_api import NotionAPI, NotionPage

console = Console()


@dataclass
class PageResult:
    """Outcome of exporting a single page."""

    page: NotionPage
    status: str
    path: Optional[Path] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class ExportReport:
    """Result of an export run."""

    output_dir: Path
    dry_run: bool = False
    results: list[PageResult] = field(default_factory=list)
    removed_files: list[Path] = field(default_factory=list)

    @property
    def written(self) -> list[PageResult]:
        return [r for r in self.results if r.status == "written"]

    @property
    def failed(self) -> list[PageResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.results for w in r.warnings]

    @property
    def success(self) -> bool:
        """Check if every page was exported."""
        return len(self.failed) == 0


class ExportEngine:
    """
    Runs one export from Notion into the output directory.

    1. Discover pages (database query or parent page children)
    2. Clear the output directory
    3. Convert, normalise and write each page in source order
    4. Report per-page results
    """

    def __init__(
        self,
        config: Config,
        notion_api: Optional[NotionAPI] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize export engine.

        Args:
            config: Configuration instance.
            notion_api: Optional API wrapper (built from config if omitted).
            clock: Source of the export time used for the ``date`` field.
        """
        self.config = config
        self.notion_api = notion_api or NotionAPI(config)
        self.markdown_converter = MarkdownConverter(self.notion_api)
        self.clock = clock

    def discover_pages(self) -> list[NotionPage]:
        """
        Get the pages to export from the configured source.

        Raises:
            RemoteError: If the Notion API call fails.
            EmptyResultError: If no pages were found.
        """
        if self.config.source_mode == "database":
            pages = self.notion_api.query_database(
                self.config.database_id,
                status_property=self.config.status_property,
                published_value=self.config.published_value,
                status_type=self.config.status_type,
                title_property=self.config.title_property,
            )
            where = f"database {self.config.database_id}"
        else:
            # Fails fast with a clear error when the page is not shared
            self.notion_api.get_block(self.config.parent_page_id)
            pages = self.notion_api.get_child_pages(self.config.parent_page_id)
            where = f"parent page {self.config.parent_page_id}"

        if not pages:
            raise EmptyResultError(
                f"No pages found in {where}. "
                "Make sure the integration has access to the pages."
            )

        return pages

    def run(self) -> ExportReport:
        """
        Perform a full export.

        Returns:
            ExportReport with details of the operation.
        """
        report = ExportReport(output_dir=self.config.output_dir, dry_run=self.config.dry_run)

        console.print("\n[bold blue]📤 Starting Notion export[/bold blue]\n")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Discovering pages in Notion...", total=None)
            pages = self.discover_pages()
            progress.update(task, description=f"Found {len(pages)} pages")

        if self.config.dry_run:
            console.print("[dim]Dry run: output directory left untouched[/dim]")
        else:
            report.removed_files = prepare_output_dir(self.config.output_dir)
            if report.removed_files:
                console.print(
                    f"[dim]Removed {len(report.removed_files)} file(s) from "
                    f"{self.config.output_dir}[/dim]"
                )

        slugs = SlugRegistry(self.config.slug_collision)

        for page in pages:
            try:
                result = self._export_page(page, slugs)
            except (RemoteError, SlugCollisionError, OSError) as e:
                console.print(f"[red]Failed to export '{escape(page.title)}': {escape(str(e))}[/red]")
                result = PageResult(page=page, status="failed", error=str(e))

            report.results.append(result)

        self._print_summary(report)

        return report

    def _export_page(self, page: NotionPage, slugs: SlugRegistry) -> PageResult:
        """Convert and write a single page."""
        result = PageResult(page=page, status="written")

        body = normalize(self.markdown_converter.convert_page(page.id))
        if not body:
            self._warn(result, f"'{page.title}' has no content; writing front matter only")

        # Only pages that converted hold a slug
        slug, previous = slugs.claim(page.title)
        if previous is not None:
            self._warn(
                result,
                f"'{page.title}' has the same slug as '{previous}'; "
                f"writing {slug}.md ({self.config.slug_collision})",
            )

        document = MarkdownDocument(
            title=page.title,
            date=self._document_date(page),
            body=body,
            description=summarize(body) or None,
        )

        path = self.config.output_dir / f"{slug}.md"
        result.path = path

        if self.config.dry_run:
            result.status = "skipped"
            console.print(f"[dim]Would write:[/dim] {path}")
        else:
            write_document(path, document)
            console.print(f"[green]✅ Exported:[/green] {path.name}")

        return result

    def _document_date(self, page: NotionPage) -> datetime:
        if self.config.date_source == "created" and page.created_time:
            return page.created_time
        return self.clock()

    def _warn(self, result: PageResult, message: str) -> None:
        result.warnings.append(message)
        console.print(f"[yellow]Warning: {escape(message)}[/yellow]")

    def _print_summary(self, report: ExportReport) -> None:
        """Print export summary."""
        console.print("\n" + "=" * 50)
        console.print("[bold]Export Summary[/bold]")
        console.print("=" * 50)

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Output directory", str(report.output_dir))
        table.add_row("Pages written", str(len(report.written)))
        table.add_row("Pages failed", str(len(report.failed)))
        table.add_row("Warnings", str(len(report.warnings)))
        table.add_row("Stale files removed", str(len(report.removed_files)))
        table.add_row("API requests", str(self.notion_api.request_count))

        console.print(table)

        if report.failed:
            names = ", ".join(escape(r.page.title) for r in report.failed)
            console.print(f"\n[red]Failed:[/red] {names}")

        console.print("")
