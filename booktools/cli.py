"""
Command-line interface for booktools.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .cleaner import clean_path
from .converter import DEFAULT_EXECUTABLE, Epub2md
from .fileops import format_size
from .interactive import InteractiveSession
from .merger import merge_directory
from .models import CleanOutcome, CleanReport, ProcessResult
from .pipeline import (
    DEFAULT_TEMPLATE,
    available_templates,
    copy_template,
    organize_book_folder,
    process_epub,
    tidy_directory,
)

console = Console()

EPUB2MD_ENVVAR = "BOOKTOOLS_EPUB2MD"

_OUTCOME_STYLES = {
    CleanOutcome.CHANGED: "[green]cleaned[/green]",
    CleanOutcome.UNCHANGED: "[dim]unchanged[/dim]",
    CleanOutcome.FAILED: "[red]failed[/red]",
}


def epub2md_option(default: Optional[str]):
    """The --epub2md option, also read from $BOOKTOOLS_EPUB2MD."""
    return click.option(
        "--epub2md",
        "epub2md_executable",
        envvar=EPUB2MD_ENVVAR,
        default=default,
        show_default=default is not None,
        help="epub2md executable",
    )


def configure_logging(verbose: bool) -> None:
    """Send log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def display_clean_report(report: CleanReport) -> None:
    """Display per-file cleaning outcomes in a table."""
    table = Table(
        title="🧹 Reference cleaning", show_header=True, header_style="bold magenta"
    )
    table.add_column("File", style="cyan")
    table.add_column("Result", justify="center")

    for path, outcome in report.outcomes.items():
        table.add_row(path.name, _OUTCOME_STYLES[outcome])

    console.print(table)
    console.print(
        f"[bold]{report.changed}[/bold] cleaned, "
        f"[bold]{report.unchanged}[/bold] unchanged, "
        f"[bold]{report.failed}[/bold] failed"
    )


def display_book_tree(result: ProcessResult) -> None:
    """Display the folder layout of a processed book."""
    tree = Tree(f"📁 [bold]{result.book_dir.name}/[/bold]")
    books = tree.add(
        f"📁 [cyan]{result.books_dir.name}/[/cyan] [dim]original chapters[/dim]"
    )
    chapters = []
    if result.books_dir.exists():
        chapters = sorted(p.name for p in result.books_dir.iterdir())
    for name in chapters[:5]:
        books.add(f"📄 {name}")
    if len(chapters) > 5:
        books.add(f"[dim]... {len(chapters) - 5} more[/dim]")

    wiki = tree.add(
        f"📁 [cyan]{result.wiki_dir.name}/[/cyan] [dim]merged manuscript[/dim]"
    )
    for path in sorted(result.wiki_dir.iterdir()):
        wiki.add(f"📄 {path.name}")

    console.print(tree)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="booktools")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@epub2md_option(DEFAULT_EXECUTABLE)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, epub2md_executable: str):
    """
    booktools - Turn EPUB files into organized Markdown.

    Run without a command to process an EPUB or tidy the current
    directory interactively.
    """
    configure_logging(verbose)
    ctx.obj = Epub2md(epub2md_executable)

    if ctx.invoked_subcommand is None:
        console.print("[bold blue]=== booktools ===[/bold blue]")
        console.print(f"Version: {__version__}")
        try:
            session = InteractiveSession(ctx.obj, console=console)
            session.run()
        except (KeyboardInterrupt, EOFError):
            console.print("\n[yellow]Cancelled.[/yellow]")
            sys.exit(1)
        if session.error is not None:
            sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path), default=".")
@click.option("--no-backup", is_flag=True, help="Do not keep .backup copies")
@click.option("--recursive", "-r", is_flag=True, help="Process subdirectories")
def clean(path: Path, no_backup: bool, recursive: bool):
    """
    Remove citation links and image references from Markdown files.

    PATH may be a Markdown file or a directory (default: current directory).
    A line holding nothing but a reference is deleted; references inside
    other text are cut out. Repeated blank lines are collapsed.
    """
    try:
        report = clean_path(path, recursive=recursive, backup=not no_backup)
        if not report.outcomes:
            console.print("[yellow]No Markdown files to clean.[/yellow]")
            return
        display_clean_report(report)
        if report.failed:
            sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument(
    "input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--headings", is_flag=True, help="Prefix each file with a '# name' heading")
@click.option("--suffix", type=str, default=None, help="Only merge files with this extension")
def merge(input_dir: Path, output_file: Path, headings: bool, suffix: Optional[str]):
    """Merge all files of INPUT_DIR, sorted by name, into OUTPUT_FILE."""
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Merging {input_dir}...", total=None)
            result = merge_directory(
                input_dir, output_file, add_headings=headings, suffix=suffix
            )
            progress.stop()

        for name in result.skipped:
            console.print(f"[yellow]⚠ Could not read {name}[/yellow]")

        size = format_size(output_file.stat().st_size)
        console.print(
            f"\n[green]✓[/green] Merged {result.success_count}/{result.total_count} "
            f"file(s) | {size}"
        )
        console.print(f"📄 {output_file}")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("epub_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "output_dir", type=click.Path(file_okay=False, path_type=Path), required=False
)
@click.option(
    "--no-clean-references", is_flag=True, help="Skip removing citation links and images"
)
@click.option("--headings", is_flag=True, help="Prefix each chapter with a heading")
@click.option(
    "--template",
    default=DEFAULT_TEMPLATE,
    show_default=True,
    help="Template copied into wiki/",
)
@click.option("--no-template", is_flag=True, help="Do not copy a template")
@click.option("--no-install", is_flag=True, help="Never install epub2md automatically")
# book-process runs this command without the group, so it takes the option too
@epub2md_option(None)
@click.pass_obj
def process(
    converter: Optional[Epub2md],
    epub_path: Path,
    output_dir: Optional[Path],
    no_clean_references: bool,
    headings: bool,
    template: str,
    no_template: bool,
    no_install: bool,
    epub2md_executable: Optional[str],
):
    """
    Convert EPUB_PATH to Markdown and organize the result.

    Creates OUTPUT_DIR/<book>/books with the chapter files and
    OUTPUT_DIR/<book>/wiki with the merged manuscript.
    """
    if epub2md_executable or converter is None:
        converter = Epub2md(epub2md_executable or DEFAULT_EXECUTABLE)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Processing {epub_path.name}...", total=None)
            result = process_epub(
                epub_path,
                converter,
                output_dir=output_dir,
                clean_references=not no_clean_references,
                add_headings=headings,
                template=None if no_template else template,
                auto_install=not no_install,
            )
            progress.stop()

        console.print(
            f"\n[green]✓[/green] Merged {result.merge.success_count}/"
            f"{result.merge.total_count} chapter file(s)"
            + (" and cleaned references" if result.cleaned else "")
        )
        display_book_tree(result)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("book_name")
@click.option(
    "--dir",
    "base_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Book folder (default: current directory)",
)
def organize(book_name: str, base_dir: Optional[Path]):
    """
    Archive generated files and rename wiki/ to BOOK_NAME.

    Moves the merged manuscript, GEMINI.md and todo.md from wiki/ into
    backup/.
    """
    try:
        target = organize_book_folder(book_name, base_dir)
        console.print(f"[green]✓[/green] wiki renamed to {target.name}")
        console.print(f"📁 {target}")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
def tidy(directory: Path):
    """Move the Markdown files of DIRECTORY into a subfolder of the same name."""
    try:
        moved = tidy_directory(directory)
        if moved == 0:
            console.print("[yellow]No Markdown files to move.[/yellow]")
        else:
            console.print(f"[green]✓[/green] Moved {moved} Markdown file(s)")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("name", default=DEFAULT_TEMPLATE)
@click.argument(
    "target_dir", type=click.Path(file_okay=False, path_type=Path), required=False
)
@click.option("--list", "list_templates", is_flag=True, help="List available templates")
def template(name: str, target_dir: Optional[Path], list_templates: bool):
    """Copy template NAME into TARGET_DIR (default: current directory)."""
    if list_templates:
        for template_name in available_templates():
            console.print(f"  • {template_name}")
        return
    try:
        target = copy_template(name, target_dir)
        console.print(f"[green]✓[/green] Copied {name} to {target}")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
