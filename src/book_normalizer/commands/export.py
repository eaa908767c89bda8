"""Export command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from book_normalizer.commands.parse import display_images, parse_with_progress
from book_normalizer.core.book_exporter import BookExporter
from book_normalizer.models.output import ExportResult


def execute_export(
    book_path: Path,
    output_dir: Path,
    quiet: bool,
    console: Console,
) -> ExportResult:
    """Parse a book and write bookinfo.json plus one file per chapter."""
    model = parse_with_progress(book_path, console, quiet)
    result = BookExporter(output_dir).export(model, book_path)

    if not quiet:
        console.print()
        display_images(model, console)
        console.print(
            Panel(
                "\n".join(
                    [
                        f"[green]Exported {len(result.chapter_files)} chapter(s)[/]",
                        "",
                        f"[dim]Book info:[/] {result.book_info_path}",
                        f"[dim]Output directory:[/] {output_dir}",
                        f"[dim]BookId:[/] {result.book_id}",
                    ]
                ),
                title="Complete",
                border_style="green",
            )
        )

    return result
