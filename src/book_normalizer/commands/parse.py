"""Parse and info command implementations."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from book_normalizer.core.parser_factory import ParserFactory, parse_file
from book_normalizer.models.document import DocumentModel


def get_default_output_path(book_path: Path) -> Path:
    """<book dir>/<book stem>.json"""
    return book_path.with_suffix(".json")


def parse_with_progress(book_path: Path, console: Console, quiet: bool) -> DocumentModel:
    """Parse a file, showing a spinner unless quiet."""
    if quiet:
        return parse_file(book_path)

    format_name = ParserFactory.detect_format(book_path).upper()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Parsing {format_name}...", total=None)
        return parse_file(book_path)


def display_stats(model: DocumentModel, console: Console) -> None:
    """Show the aggregate counts of a parsed document."""
    stats = model.stats
    console.print(
        Panel(
            "\n".join(
                [
                    f"[bold]{model.metadata.title or 'Untitled'}[/]",
                    f"[dim]Author(s):[/] {model.metadata.author or 'Unknown'}",
                    f"[dim]Language:[/] {model.metadata.language}",
                    "",
                    f"[dim]Blocks:[/] {stats.total_paragraphs:,}",
                    f"[dim]Images:[/] {stats.total_images:,}",
                    f"[dim]TOC entries:[/] {stats.total_toc_items:,}",
                    f"[dim]Words:[/] {stats.total_words:,}",
                ]
            ),
            title="Document Info",
            border_style="green",
        )
    )


def display_toc(model: DocumentModel, console: Console) -> None:
    """Display table of contents."""
    if not model.table_of_contents:
        console.print("[dim]No table of contents found[/]")
        return

    table = Table(title="Table of Contents", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Level", justify="right", style="green")
    table.add_column("Page", justify="right", style="dim")

    for i, entry in enumerate(model.table_of_contents):
        indent = "  " * max(entry.level - 1, 0)
        page = str(entry.page) if entry.page is not None else "-"
        table.add_row(str(i + 1), f"{indent}{entry.title}", str(entry.level), page)

    console.print(table)


def display_images(model: DocumentModel, console: Console) -> None:
    """Report images that could not be saved."""
    failed = [image for image in model.images if image.error]
    for image in failed:
        console.print(f"[yellow]Image {image.id} not saved: {image.error}[/]")


def execute_parse(
    book_path: Path,
    output_path: Path | None,
    quiet: bool,
    console: Console,
) -> Path:
    """Execute the parse command; returns the written JSON path."""
    model = parse_with_progress(book_path, console, quiet)

    final_output = output_path or get_default_output_path(book_path)
    final_output.parent.mkdir(parents=True, exist_ok=True)
    final_output.write_text(model.to_json(), encoding="utf-8")

    if not quiet:
        console.print()
        display_stats(model, console)
        display_images(model, console)
        console.print(f"[green]Saved document to[/] {final_output}")

    return final_output


def execute_info(book_path: Path, console: Console) -> None:
    """Execute the info command."""
    model = parse_with_progress(book_path, console, quiet=False)
    console.print()
    display_stats(model, console)
    display_toc(model, console)
    display_images(model, console)
