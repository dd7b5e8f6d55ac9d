"""
Data models for booktools.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PatternRule:
    """A reference pattern removed from Markdown lines."""

    name: str
    pattern: re.Pattern
    replacement: str = ""

    def first_match(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        return match.group(0) if match else None

    def remove(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


@dataclass
class SourceFile:
    """
    A file taking part in a merge.

    ``content`` is None when the file could not be read.
    """

    name: str
    content: Optional[str]

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def readable(self) -> bool:
        return self.content is not None


@dataclass
class MergeResult:
    """Outcome of merging a set of files."""

    text: str
    success_count: int
    total_count: int
    skipped: list[str] = field(default_factory=list)


class CleanOutcome(str, Enum):
    """What happened to a single file during cleaning."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class CleanReport:
    """Per-file outcomes of a cleaning run."""

    outcomes: dict[Path, CleanOutcome] = field(default_factory=dict)

    def count(self, outcome: CleanOutcome) -> int:
        return sum(1 for value in self.outcomes.values() if value is outcome)

    @property
    def changed(self) -> int:
        return self.count(CleanOutcome.CHANGED)

    @property
    def unchanged(self) -> int:
        return self.count(CleanOutcome.UNCHANGED)

    @property
    def failed(self) -> int:
        return self.count(CleanOutcome.FAILED)


@dataclass
class EpubMetadata:
    """Subset of Dublin Core metadata shown for an EPUB."""

    title: Optional[str] = None
    authors: list[str] = field(default_factory=list)


@dataclass
class EpubFile:
    """An EPUB file discovered on disk."""

    path: Path
    relative_path: Path
    size: int
    mtime: datetime
    title: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class ProcessResult:
    """Locations produced by processing one EPUB."""

    book_name: str
    book_dir: Path
    books_dir: Path
    wiki_dir: Path
    merged_file: Path
    merge: MergeResult
    cleaned: bool
