"""
Reference cleaning for Markdown produced by epub2md.

Removes numeric and CJK citation links and image references. A line that
consists of nothing but one such reference is dropped entirely; otherwise
the references are cut out of the line and the rest is kept. Runs of blank
lines are collapsed afterwards.
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from .fileops import write_text_atomic
from .models import CleanOutcome, CleanReport, PatternRule

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"
MARKDOWN_SUFFIX = ".md"

# [\[12\]](./ref/12.html)
NUMERIC_CITATION = PatternRule(
    name="numeric_citation",
    pattern=re.compile(r"\[\\\[[0-9]+\\\]\]\([^)]+\)"),
)
# [〔一〕](./ref/1.html)
CJK_CITATION = PatternRule(
    name="cjk_citation",
    pattern=re.compile(r"\[〔[^〕]+〕\]\([^)]+\)"),
)
# ![](./images/00318.jpeg)
IMAGE_REFERENCE = PatternRule(
    name="image",
    pattern=re.compile(r"!\[[^\]]*\]\([^)]+\)"),
)

REFERENCE_RULES: tuple[PatternRule, ...] = (
    NUMERIC_CITATION,
    CJK_CITATION,
    IMAGE_REFERENCE,
)


# Whitespace and line terminators, including the byte order mark that a
# UTF-8 read leaves at the start of a file.
WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def _trim(line: str) -> str:
    return line.strip(WHITESPACE)


def _trim_start(line: str) -> str:
    return line.lstrip(WHITESPACE)


def _is_blank(line: str) -> bool:
    return len(_trim(line)) == 0


def _is_reference_line(line: str) -> bool:
    """Return True if the visible content of the line is a single reference."""
    stripped = _trim_start(line)
    trimmed = _trim(line)
    for rule in REFERENCE_RULES:
        match = rule.first_match(stripped)
        if match is not None and match == trimmed:
            return True
    return False


def _remove_references(line: str) -> str:
    for rule in REFERENCE_RULES:
        line = rule.remove(line)
    return line


def collapse_blank_lines(lines: Iterable[str]) -> list[str]:
    """
    Collapse runs of blank lines into the first blank line of the run.

    Args:
        lines: Lines to collapse

    Returns:
        New list of lines without consecutive blank lines
    """
    result: list[str] = []
    prev_blank = False
    for line in lines:
        blank = _is_blank(line)
        if not (blank and prev_blank):
            result.append(line)
        prev_blank = blank
    return result


def trim_blank_lines(lines: list[str]) -> list[str]:
    """Drop blank lines from the start and the end of ``lines``."""
    start = 0
    end = len(lines)
    while start < end and _is_blank(lines[start]):
        start += 1
    while end > start and _is_blank(lines[end - 1]):
        end -= 1
    return lines[start:end]


def clean_text(text: str) -> str:
    """
    Remove citation links and image references from Markdown text.

    Args:
        text: Markdown text

    Returns:
        Cleaned text, lines joined with "\\n" and without outer blank lines
    """
    kept: list[str] = []
    for line in text.split("\n"):
        if _is_reference_line(line):
            continue
        kept.append(_remove_references(line))

    return "\n".join(trim_blank_lines(collapse_blank_lines(kept)))


def clean_file(path: Path, backup: bool = True) -> CleanOutcome:
    """
    Clean a Markdown file in place.

    The file is only rewritten when cleaning changes its content. If
    ``backup`` is set, the original content is first saved next to it as
    ``<name>.backup``.

    Args:
        path: Markdown file to clean
        backup: Whether to keep a copy of the original content

    Returns:
        CleanOutcome describing what happened to the file
    """
    try:
        content = path.read_text(encoding="utf-8")
        cleaned = clean_text(content)

        if cleaned == content:
            logger.info(f"No changes needed: {path.name}")
            return CleanOutcome.UNCHANGED

        if backup:
            backup_path = path.with_name(path.name + BACKUP_SUFFIX)
            backup_path.write_text(content, encoding="utf-8")
            logger.info(f"Created backup: {backup_path.name}")

        write_text_atomic(path, cleaned)
        logger.info(f"Cleaned: {path.name}")
        return CleanOutcome.CHANGED
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to clean {path.name}: {e}")
        return CleanOutcome.FAILED


def _is_markdown(path: Path) -> bool:
    return path.suffix.lower() == MARKDOWN_SUFFIX


def find_markdown_files(directory: Path, recursive: bool = False) -> list[Path]:
    """List Markdown files in ``directory`` in sorted order."""
    candidates = directory.rglob("*") if recursive else directory.iterdir()
    return sorted(p for p in candidates if p.is_file() and _is_markdown(p))


def clean_path(path: Path, recursive: bool = False, backup: bool = True) -> CleanReport:
    """
    Clean a single Markdown file or every Markdown file in a directory.

    Args:
        path: File or directory to clean
        recursive: Descend into subdirectories when ``path`` is a directory
        backup: Whether to keep a copy of each changed file

    Returns:
        CleanReport with the outcome of each processed file

    Raises:
        FileNotFoundError: If path doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"Path not found: {path}")

    report = CleanReport()
    if path.is_file():
        if _is_markdown(path):
            report.outcomes[path] = clean_file(path, backup=backup)
        else:
            logger.warning(f"Skipping non-Markdown file: {path.name}")
        return report

    files = find_markdown_files(path, recursive=recursive)
    if not files:
        logger.warning(f"No Markdown files found in {path}")
    logger.info(f"Found {len(files)} Markdown file(s) in {path}")
    for md_file in files:
        report.outcomes[md_file] = clean_file(md_file, backup=backup)
    return report
