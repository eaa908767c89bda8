"""Main CLI application."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from book_normalizer.commands.export import execute_export
from book_normalizer.commands.parse import execute_info, execute_parse
from book_normalizer.config import get_settings
from book_normalizer.core.id_generator import IdGenerator
from book_normalizer.core.parser_factory import ParserFactory
from book_normalizer.logging_setup import setup_logging

app = typer.Typer(
    name="book-normalizer",
    help="Normalize TXT/EPUB/PDF books into structured JSON and chapter files.",
    add_completion=False,
)

console = Console()

BookPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the book file (TXT, EPUB or PDF)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]
Verbose = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
Quiet = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Suppress progress output"),
]


def _prepare(book_path: Path, verbose: bool) -> None:
    """Configure logging and reject unsupported files."""
    setup_logging("DEBUG" if verbose else get_settings().log_level)

    if not ParserFactory.is_supported(book_path):
        console.print(f"[red]Unsupported file format: {book_path.suffix}[/]")
        console.print(
            f"[dim]Supported formats: {', '.join(ParserFactory.SUPPORTED_FORMATS)}[/]"
        )
        raise typer.Exit(1)


@app.command()
def parse(
    book_path: BookPath,
    output_path: Annotated[
        Optional[Path],
        typer.Argument(help="Output JSON file (default: {book_name}.json)"),
    ] = None,
    quiet: Quiet = False,
    verbose: Verbose = False,
) -> None:
    """Parse a book and save the normalized document as JSON."""
    _prepare(book_path, verbose)

    try:
        execute_parse(
            book_path=book_path,
            output_path=output_path,
            quiet=quiet,
            console=console,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def export(
    book_path: BookPath,
    output_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--output-dir",
            "-o",
            help="Output directory for bookinfo.json and chapter files (default: bookInfo)",
        ),
    ] = None,
    quiet: Quiet = False,
    verbose: Verbose = False,
) -> None:
    """Parse a book and export book info plus per-chapter files."""
    _prepare(book_path, verbose)

    try:
        execute_export(
            book_path=book_path,
            output_dir=output_dir or Path(get_settings().output_dir),
            quiet=quiet,
            console=console,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def info(book_path: BookPath, verbose: Verbose = False) -> None:
    """Show metadata, statistics and table of contents of a book."""
    _prepare(book_path, verbose)

    try:
        execute_info(book_path=book_path, console=console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command(name="id")
def generate_ids(
    count: Annotated[
        int,
        typer.Option("--count", "-n", help="Number of ids to print", min=1),
    ] = 1,
) -> None:
    """Print 16-digit unique ids."""
    generator = IdGenerator()
    for _ in range(count):
        console.print(generator.next_id())


if __name__ == "__main__":
    app()
