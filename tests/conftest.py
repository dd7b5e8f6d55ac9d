"""Shared fixtures for booktools tests."""

from pathlib import Path
from typing import Optional

import pytest

from booktools.exceptions import ConversionError
from booktools.fileops import extract_book_name

CHAPTERS = {
    "002.md": "Second chapter.\n\n[\\[2\\]](./ref/2.html)\n",
    "001.md": "First chapter![](./images/001.jpeg) text.\n\n\n\nEnd.",
}


class FakeConverter:
    """Stands in for Epub2md by writing a few chapter files."""

    def __init__(
        self,
        available: bool = True,
        chapters: Optional[dict[str, str]] = None,
        create_dir: bool = True,
    ):
        self.available = available
        self.chapters = CHAPTERS if chapters is None else chapters
        self.create_dir = create_dir
        self.converted: list[Path] = []

    def ensure(self, auto_install=True, confirm=None) -> bool:
        return self.available

    def convert(self, epub_path: Path, output_dir: Path) -> None:
        self.converted.append(epub_path)
        if not self.create_dir:
            return
        book_dir = output_dir / extract_book_name(epub_path)
        (book_dir / "images").mkdir(parents=True, exist_ok=True)
        (book_dir / "images" / "001.jpeg").write_bytes(b"\xff\xd8")
        for name, text in self.chapters.items():
            (book_dir / name).write_text(text, encoding="utf-8")


class FailingConverter(FakeConverter):
    def convert(self, epub_path: Path, output_dir: Path) -> None:
        raise ConversionError(f"epub2md failed to convert {epub_path.name}")


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def epub_file(tmp_path: Path) -> Path:
    path = tmp_path / "input" / "My Book.epub"
    path.parent.mkdir()
    path.write_bytes(b"PK\x03\x04 not really an epub")
    return path


@pytest.fixture
def make_converter():
    return FakeConverter


@pytest.fixture
def failing_converter() -> FailingConverter:
    return FailingConverter()
