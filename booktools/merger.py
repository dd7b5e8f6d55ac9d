"""
Merging of chapter files into a single manuscript.
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Optional

from .exceptions import AllFilesUnreadableError, EmptyInputError
from .models import MergeResult, SourceFile

logger = logging.getLogger(__name__)

PLAIN_SEPARATOR = "\n"
SECTION_SEPARATOR = "\n\n"


def _heading_section(source: SourceFile) -> str:
    return f"# {source.stem}\n\n{source.content}"


def merge_files(files: Sequence[SourceFile], add_headings: bool = False) -> MergeResult:
    """
    Concatenate files in filename order.

    Args:
        files: Files to merge; entries with ``content=None`` count as unreadable
        add_headings: Prefix each file with a ``# <name>`` heading and a blank
            line, and separate files with a blank line. Otherwise contents are
            joined with a single newline.

    Returns:
        MergeResult with the merged text and success/total counts

    Raises:
        EmptyInputError: If ``files`` is empty
        AllFilesUnreadableError: If no file could be read
    """
    if not files:
        raise EmptyInputError("No files to merge")

    ordered = sorted(files, key=lambda f: f.name)
    readable = [f for f in ordered if f.readable]
    skipped = [f.name for f in ordered if not f.readable]

    if not readable:
        raise AllFilesUnreadableError(len(files))

    for name in skipped:
        logger.warning(f"Skipping unreadable file: {name}")

    if add_headings:
        text = SECTION_SEPARATOR.join(_heading_section(f) for f in readable)
    else:
        text = PLAIN_SEPARATOR.join(f.content for f in readable)  # type: ignore[misc]

    return MergeResult(
        text=text,
        success_count=len(readable),
        total_count=len(files),
        skipped=skipped,
    )


def _read_source(path: Path) -> SourceFile:
    try:
        return SourceFile(name=path.name, content=path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read {path.name}: {e}")
        return SourceFile(name=path.name, content=None)


def read_source_files(
    directory: Path,
    suffix: Optional[str] = None,
    exclude: Iterable[str] = (),
) -> list[SourceFile]:
    """
    Read the regular files of a directory.

    Subdirectories are ignored. Files that cannot be read are returned with
    ``content=None`` so the merge can report them.

    Args:
        directory: Directory to read
        suffix: Only include files with this extension (case-insensitive)
        exclude: File names to leave out

    Raises:
        FileNotFoundError: If directory doesn't exist
        NotADirectoryError: If directory is not a directory
    """
    if not directory.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    excluded = set(exclude)
    wanted_suffix = suffix.lower() if suffix else None

    sources = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.name in excluded:
            continue
        if wanted_suffix and path.suffix.lower() != wanted_suffix:
            continue
        sources.append(_read_source(path))
    return sources


def merge_directory(
    directory: Path,
    output: Path,
    add_headings: bool = False,
    suffix: Optional[str] = None,
) -> MergeResult:
    """
    Merge all files of ``directory`` into ``output``.

    The output file itself is never part of the merge, so a directory can be
    merged into a file that lives inside it.

    Args:
        directory: Directory holding the chapter files
        output: File to write the merged text to
        add_headings: See merge_files()
        suffix: See read_source_files()

    Returns:
        MergeResult of the merge
    """
    exclude = []
    if output.resolve().parent == directory.resolve():
        exclude.append(output.name)

    sources = read_source_files(directory, suffix=suffix, exclude=exclude)
    logger.info(f"Found {len(sources)} file(s) in {directory}")

    result = merge_files(sources, add_headings=add_headings)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.text, encoding="utf-8")
    logger.info(
        f"Merged {result.success_count}/{result.total_count} file(s) into {output}"
    )
    return result
