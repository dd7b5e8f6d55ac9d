"""
Read basic EPUB metadata with ebooklib.
"""

import logging
from pathlib import Path

from ebooklib import epub  # type: ignore[import-untyped]

from .models import EpubMetadata

logger = logging.getLogger(__name__)


def _dc_values(book, field: str) -> list[str]:
    try:
        return [item[0] for item in book.get_metadata("DC", field) if len(item) > 0]
    except Exception as e:
        logger.warning(f"Error extracting {field}: {e}")
        return []


def read_metadata(path: Path) -> EpubMetadata:
    """
    Read title and authors from an EPUB file.

    Raises:
        ValueError: If the file is not a readable EPUB
    """
    try:
        book = epub.read_epub(str(path), options={"ignore_ncx": True})
    except Exception as e:
        raise ValueError(f"Failed to read EPUB file: {e}") from e

    titles = _dc_values(book, "title")
    return EpubMetadata(
        title=titles[0] if titles else None,
        authors=_dc_values(book, "creator"),
    )
