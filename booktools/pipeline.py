"""
Book processing pipeline and folder organization.

A processed book looks like this::

    <output_dir>/<book_name>/
        books/          original chapter files and backups
        wiki/
            <book_name>.md
            GEMINI.md
"""

import logging
import shutil
from importlib import resources
from pathlib import Path
from typing import Optional

from .cleaner import clean_file
from .converter import Epub2md
from .exceptions import ConversionError, ConverterNotFoundError, OrganizeError
from .fileops import (
    extract_book_name,
    move_file_if_exists,
    move_files_to_directory,
    sanitize_file_name,
)
from .merger import merge_directory
from .models import CleanOutcome, ProcessResult

logger = logging.getLogger(__name__)

BOOKS_DIRNAME = "books"
WIKI_DIRNAME = "wiki"
BACKUP_DIRNAME = "backup"
DEFAULT_TEMPLATE = "GEMINI.md"
TODO_FILENAME = "todo.md"


def available_templates() -> list[str]:
    """Names of the templates shipped with booktools."""
    templates = resources.files("booktools") / "templates"
    return sorted(item.name for item in templates.iterdir() if item.is_file())


def copy_template(name: str = DEFAULT_TEMPLATE, target_dir: Optional[Path] = None) -> Path:
    """
    Copy a packaged template into ``target_dir``.

    An existing file with the same name is overwritten.

    Args:
        name: Template file name
        target_dir: Destination directory (default: current directory)

    Returns:
        Path of the copied file

    Raises:
        FileNotFoundError: If no template with that name exists
    """
    template = resources.files("booktools") / "templates" / name
    if not template.is_file():
        available = ", ".join(available_templates()) or "none"
        raise FileNotFoundError(
            f"Template not found: {name} (available: {available})"
        )

    target_dir = target_dir or Path.cwd()
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / name
    if target.exists():
        logger.warning(f"Overwriting existing file: {target}")
    target.write_bytes(template.read_bytes())
    logger.info(f"Copied template {name} to {target}")
    return target


def process_epub(
    epub_path: Path,
    converter: Epub2md,
    output_dir: Optional[Path] = None,
    clean_references: bool = True,
    add_headings: bool = False,
    template: Optional[str] = DEFAULT_TEMPLATE,
    auto_install: bool = True,
) -> ProcessResult:
    """
    Convert an EPUB and arrange the result into ``books/`` and ``wiki/``.

    Args:
        epub_path: EPUB file to process
        converter: epub2md wrapper used for the conversion
        output_dir: Where the book directory is created (default: current directory)
        clean_references: Remove citation links and images from the merged file
        add_headings: Prefix each chapter with a heading when merging
        template: Template copied into ``wiki/``, None to skip
        auto_install: Install epub2md when it is missing

    Returns:
        ProcessResult with the locations of the produced files

    Raises:
        ConverterNotFoundError: If epub2md is unavailable
        FileNotFoundError: If epub_path doesn't exist
        ConversionError: If the conversion fails or produces no book directory
    """
    if not converter.ensure(auto_install=auto_install):
        raise ConverterNotFoundError(
            "epub2md is not available. Install it with: npm install -g epub2md"
        )

    epub_path = epub_path.resolve()
    if not epub_path.exists():
        raise FileNotFoundError(f"File not found: {epub_path}")

    output_dir = (output_dir or Path.cwd()).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    book_name = extract_book_name(epub_path)
    book_dir = output_dir / book_name
    logger.info(f"Processing {epub_path.name} into {book_dir}")

    converter.convert(epub_path, output_dir)
    if not book_dir.is_dir():
        raise ConversionError(f"Book directory not found after conversion: {book_dir}")

    merged_file = book_dir / f"{book_name}.md"
    merge = merge_directory(book_dir, merged_file, add_headings=add_headings)

    cleaned = False
    if clean_references:
        outcome = clean_file(merged_file, backup=True)
        if outcome is CleanOutcome.FAILED:
            logger.warning("Reference cleaning failed, continuing without it")
        cleaned = outcome is not CleanOutcome.FAILED

    books_dir = book_dir / BOOKS_DIRNAME
    if not move_files_to_directory(book_dir, books_dir, exclude=[merged_file.name]):
        logger.warning(f"No files moved to {books_dir}")

    wiki_dir = book_dir / WIKI_DIRNAME
    wiki_dir.mkdir(parents=True, exist_ok=True)
    wiki_file = wiki_dir / merged_file.name
    shutil.move(str(merged_file), str(wiki_file))

    if template:
        try:
            copy_template(template, wiki_dir)
        except FileNotFoundError as e:
            logger.warning(str(e))

    return ProcessResult(
        book_name=book_name,
        book_dir=book_dir,
        books_dir=books_dir,
        wiki_dir=wiki_dir,
        merged_file=wiki_file,
        merge=merge,
        cleaned=cleaned,
    )


def organize_book_folder(book_name: str, base_dir: Optional[Path] = None) -> Path:
    """
    Archive generated files of a processed book and rename its wiki folder.

    Moves ``wiki/<book>.md``, ``wiki/GEMINI.md`` and ``wiki/todo.md`` into
    ``backup/`` and renames ``wiki/`` to the sanitized book name.

    Returns:
        Path of the renamed wiki directory

    Raises:
        OrganizeError: If the folder layout doesn't allow the reorganization
    """
    base = (base_dir or Path.cwd()).resolve()
    if not base.is_dir():
        raise OrganizeError(f"Base directory not found: {base}")

    name = sanitize_file_name(book_name)
    if not name:
        raise OrganizeError(f"Book name is empty after sanitizing: {book_name!r}")

    wiki_dir = base / WIKI_DIRNAME
    if not wiki_dir.is_dir():
        raise OrganizeError(f"wiki directory not found in {base}")

    target = base / name
    if target.exists():
        raise OrganizeError(f"Target directory already exists: {target}")

    backup_dir = base / BACKUP_DIRNAME
    moved = sum(
        move_file_if_exists(wiki_dir / filename, backup_dir)
        for filename in (f"{name}.md", DEFAULT_TEMPLATE, TODO_FILENAME)
    )
    if moved == 0:
        logger.warning("No files were moved to the backup directory")

    wiki_dir.rename(target)
    logger.info(f"Renamed {wiki_dir.name} to {target.name}")
    return target


def tidy_directory(directory: Optional[Path] = None) -> int:
    """
    Move the Markdown files of a directory into a subfolder named after it.

    ``todo.md`` stays where it is. Existing files in the subfolder are replaced.

    Returns:
        Number of files moved
    """
    directory = (directory or Path.cwd()).resolve()
    target = directory / directory.name

    files = sorted(
        p
        for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() == ".md" and p.name != TODO_FILENAME
    )
    if not files:
        logger.info(f"No Markdown files to move in {directory}")
        return 0

    target.mkdir(parents=True, exist_ok=True)
    moved = 0
    for path in files:
        dest = target / path.name
        try:
            if dest.exists():
                dest.unlink()
            shutil.move(str(path), str(dest))
            moved += 1
        except OSError as e:
            logger.warning(f"Failed to move {path.name}: {e}")
    logger.info(f"Moved {moved} Markdown file(s) to {target}")
    return moved
