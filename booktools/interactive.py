"""
Interactive EPUB processing session.

The session is a small state machine: every state has a handler that talks
to the user and returns the next state, until DONE or EXIT is reached.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .converter import Epub2md
from .epubinfo import read_metadata
from .exceptions import BooktoolsError
from .fileops import find_epub_files, format_age, format_size
from .models import EpubFile, ProcessResult
from .pipeline import process_epub, tidy_directory

logger = logging.getLogger(__name__)


class State(Enum):
    CHOOSING_ACTION = auto()
    SCANNING = auto()
    SELECTING = auto()
    CHOOSING_OUTPUT_DIR = auto()
    CHOOSING_OPTIONS = auto()
    CONFIRMING = auto()
    RUNNING = auto()
    DONE = auto()
    EXIT = auto()


FINAL_STATES = (State.DONE, State.EXIT)


@dataclass
class Selection:
    """Choices collected from the user during a session."""

    epub: Optional[EpubFile] = None
    output_dir: Optional[Path] = None
    clean_references: bool = True
    add_headings: bool = False


class InteractiveSession:
    """
    Prompt-driven processing of one EPUB file, or tidying of a directory.

    Args:
        converter: epub2md wrapper used when processing
        root: Directory scanned for EPUB files (default: current directory)
        console: Console used for output
        ask: Text prompt, called like ``rich.prompt.Prompt.ask``
        confirm: Yes/no prompt, called like ``rich.prompt.Confirm.ask``
        read_titles: Read EPUB titles for the file list
    """

    def __init__(
        self,
        converter: Epub2md,
        root: Optional[Path] = None,
        console: Optional[Console] = None,
        ask: Callable[..., Any] = Prompt.ask,
        confirm: Callable[..., Any] = Confirm.ask,
        read_titles: bool = True,
    ):
        self.converter = converter
        self.root = (root or Path.cwd()).resolve()
        self.console = console or Console()
        self.ask = ask
        self.confirm = confirm
        self.read_titles = read_titles

        self.state = State.CHOOSING_ACTION
        self.files: list[EpubFile] = []
        self.selection = Selection()
        self.result: Optional[ProcessResult] = None
        self.error: Optional[Exception] = None
        self.tidied: Optional[int] = None

        self._handlers: dict[State, Callable[[], State]] = {
            State.CHOOSING_ACTION: self._choose_action,
            State.SCANNING: self._scan,
            State.SELECTING: self._select,
            State.CHOOSING_OUTPUT_DIR: self._choose_output_dir,
            State.CHOOSING_OPTIONS: self._choose_options,
            State.CONFIRMING: self._confirm,
            State.RUNNING: self._run,
        }

    def run(self) -> Optional[ProcessResult]:
        """Run the session until the user quits or the chosen action is done."""
        while self.state not in FINAL_STATES:
            logger.debug(f"Interactive state: {self.state.name}")
            self.state = self._handlers[self.state]()
        return self.result

    @property
    def succeeded(self) -> bool:
        return self.state is State.DONE and self.error is None

    def _choose_action(self) -> State:
        answer = self.ask(
            "[cyan]p[/cyan] process an EPUB file, "
            "[cyan]t[/cyan] tidy the Markdown files of this directory, "
            "[cyan]q[/cyan] quit",
            choices=["p", "t", "q"],
            default="p",
        )
        answer = answer.strip().lower()
        if answer == "p":
            return State.SCANNING
        if answer == "t":
            return self._tidy()
        self.console.print("[yellow]Bye![/yellow]")
        return State.EXIT

    def _tidy(self) -> State:
        self.console.print(f"\n[blue]Tidying {self.root}...[/blue]")
        try:
            self.tidied = tidy_directory(self.root)
        except OSError as e:
            self.error = e
            self.console.print(f"[red]Error:[/red] {e}")
            return State.EXIT

        if self.tidied:
            self.console.print(
                f"[green]✓[/green] Moved {self.tidied} Markdown file(s) to "
                f"{self.root / self.root.name}"
            )
        else:
            self.console.print("[yellow]No Markdown files to move.[/yellow]")
        return State.DONE

    def _scan(self) -> State:
        self.console.print(f"\n[blue]Scanning {self.root} for EPUB files...[/blue]")
        self.files = find_epub_files(self.root)
        if self.read_titles:
            for epub_file in self.files:
                try:
                    epub_file.title = read_metadata(epub_file.path).title
                except ValueError as e:
                    logger.debug(f"No title for {epub_file.name}: {e}")

        if self.files:
            self.console.print(f"[green]Found {len(self.files)} EPUB file(s)[/green]")
            return State.SELECTING

        self.console.print("[yellow]No EPUB files found.[/yellow]")
        answer = self.ask(
            "[cyan]r[/cyan] rescan, [cyan]d[/cyan] change directory, "
            "[cyan]q[/cyan] quit",
            choices=["r", "d", "q"],
            default="q",
        )
        return self._navigate(answer) or State.EXIT

    def _navigate(self, answer: str) -> Optional[State]:
        """Handle the shared rescan/directory/quit answers."""
        answer = answer.strip().lower()
        if answer == "q":
            self.console.print("[yellow]Bye![/yellow]")
            return State.EXIT
        if answer == "r":
            return State.SCANNING
        if answer == "d":
            self._change_directory()
            return State.SCANNING
        return None

    def _change_directory(self) -> None:
        entered = self.ask("[cyan]Directory to scan[/cyan]", default=str(self.root))
        path = Path(entered).expanduser().resolve()
        if path.is_dir():
            self.root = path
        else:
            self.console.print(f"[red]Not a directory: {path}[/red]")

    def _show_files(self) -> None:
        table = Table(title="EPUB files", show_header=True, header_style="bold magenta")
        table.add_column("#", style="dim", width=4)
        table.add_column("File", style="cyan")
        table.add_column("Title")
        table.add_column("Size", justify="right", style="green")
        table.add_column("Modified", style="yellow")
        table.add_column("Folder", style="dim")

        for idx, epub_file in enumerate(self.files, 1):
            table.add_row(
                str(idx),
                epub_file.name,
                epub_file.title or "",
                format_size(epub_file.size),
                format_age(epub_file.mtime),
                str(epub_file.relative_path.parent),
            )
        self.console.print(table)

    def _select(self) -> State:
        self._show_files()
        answer = self.ask(
            "\n[cyan]File number[/cyan] (r rescan, d change directory, q quit)",
            default="1",
        )
        state = self._navigate(answer)
        if state is not None:
            return state

        try:
            index = int(answer) - 1
        except ValueError:
            self.console.print(f"[red]Invalid input: {answer}[/red]")
            return State.SELECTING
        if not 0 <= index < len(self.files):
            self.console.print(f"[red]No file with number {answer}[/red]")
            return State.SELECTING

        self.selection = Selection(epub=self.files[index])
        return State.CHOOSING_OUTPUT_DIR

    def _choose_output_dir(self) -> State:
        entered = self.ask("[cyan]Output directory[/cyan]", default=str(self.root))
        self.selection.output_dir = Path(entered).expanduser().resolve()
        return State.CHOOSING_OPTIONS

    def _choose_options(self) -> State:
        self.selection.clean_references = bool(
            self.confirm("Remove citation links and images?", default=True)
        )
        self.selection.add_headings = bool(
            self.confirm("Add a heading for each chapter?", default=False)
        )
        return State.CONFIRMING

    def _confirm(self) -> State:
        selection = self.selection
        if selection.epub is None:
            return State.SELECTING
        lines = [
            f"[bold]File:[/bold] {selection.epub.name}",
            f"[bold]Output:[/bold] {selection.output_dir}",
            f"[bold]Clean references:[/bold] {'yes' if selection.clean_references else 'no'}",
            f"[bold]Chapter headings:[/bold] {'yes' if selection.add_headings else 'no'}",
        ]
        self.console.print(Panel("\n".join(lines), title="Summary", border_style="cyan"))
        if self.confirm("\nProceed?", default=True):
            return State.RUNNING
        return State.SELECTING

    def _run(self) -> State:
        selection = self.selection
        if selection.epub is None:
            return State.SELECTING

        if not self.converter.ensure(
            confirm=lambda: bool(self.confirm("Install epub2md with npm?", default=True))
        ):
            self.error = BooktoolsError(
                "epub2md is not available. Install it with: npm install -g epub2md"
            )
            self.console.print(f"[red]Error:[/red] {self.error}")
            return State.EXIT

        try:
            self.result = process_epub(
                selection.epub.path,
                self.converter,
                output_dir=selection.output_dir,
                clean_references=selection.clean_references,
                add_headings=selection.add_headings,
                auto_install=False,
            )
        except (BooktoolsError, OSError) as e:
            self.error = e
            self.console.print(f"[red]Error:[/red] {e}")
            return State.EXIT

        self.console.print(
            f"\n[green]✓[/green] Processed {selection.epub.name} into "
            f"{self.result.book_dir}"
        )
        return State.DONE
