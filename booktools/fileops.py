"""Filesystem helpers shared by the booktools commands."""

import logging
import os
import re
import shutil
import tempfile
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import EpubFile

logger = logging.getLogger(__name__)

EPUB_SUFFIX = ".epub"
_SIZE_UNITS = ("B", "KB", "MB", "GB")


def sanitize_file_name(name: str) -> str:
    """
    Turn a book title into something usable as a directory name.

    Keeps ASCII word characters, CJK ideographs, dots, underscores and
    hyphens. Whitespace becomes an underscore.
    """
    name = re.sub(r'[<>:"/\\|?*]', "", name)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"[^A-Za-z0-9_\u4e00-\u9fff.\-]", "", name)
    name = re.sub(r"^\.+|\.+$", "", name)
    return name.strip()


def extract_book_name(epub_path: Path) -> str:
    """Return the sanitized book name for an EPUB path."""
    return sanitize_file_name(Path(epub_path).stem)


def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temporary file in the same directory."""
    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        tmp_path.replace(path)
    finally:
        if tmp_path and tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def move_files_to_directory(
    source_dir: Path, target_dir: Path, exclude: Iterable[str] = ()
) -> int:
    """
    Move every entry of ``source_dir`` into ``target_dir``.

    Args:
        source_dir: Directory whose entries are moved
        target_dir: Destination directory, created if missing
        exclude: Entry names to leave in place

    Returns:
        Number of entries moved
    """
    source = source_dir.resolve()
    target = target_dir.resolve()
    target.mkdir(parents=True, exist_ok=True)
    excluded = set(exclude)

    moved = 0
    for item in sorted(source.iterdir()):
        if item.name in excluded:
            continue
        # Never move the target into itself
        if item.resolve() == target:
            logger.debug(f"Skipping {item.name}: same as target directory")
            continue
        try:
            shutil.move(str(item), str(target / item.name))
            moved += 1
        except (OSError, shutil.Error) as e:
            logger.warning(f"Failed to move {item.name}: {e}")

    logger.info(f"Moved {moved} item(s) to {target}")
    return moved


def move_file_if_exists(source: Path, target_dir: Path) -> bool:
    """Move ``source`` into ``target_dir`` if it exists."""
    if not source.exists():
        logger.info(f"File not found, skipping: {source.name}")
        return False
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(target_dir / source.name))
        logger.info(f"Moved {source.name} -> {target_dir.name}/{source.name}")
        return True
    except (OSError, shutil.Error) as e:
        logger.error(f"Failed to move {source.name}: {e}")
        return False


def find_epub_files(root: Path) -> list[EpubFile]:
    """
    Recursively find EPUB files below ``root``.

    Directories that cannot be read are skipped.

    Returns:
        EpubFile entries sorted by path relative to ``root``
    """
    found: list[EpubFile] = []

    def on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory: {error}")

    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for filename in filenames:
            if Path(filename).suffix.lower() != EPUB_SUFFIX:
                continue
            path = Path(dirpath) / filename
            try:
                stat = path.stat()
            except OSError as e:
                logger.debug(f"Cannot stat {path}: {e}")
                continue
            found.append(
                EpubFile(
                    path=path,
                    relative_path=path.relative_to(root),
                    size=stat.st_size,
                    mtime=datetime.fromtimestamp(stat.st_mtime),
                )
            )

    return sorted(found, key=lambda f: str(f.relative_path))


def format_size(num_bytes: int) -> str:
    """Format a byte count, e.g. ``1536`` -> ``"1.5 KB"``."""
    if num_bytes <= 0:
        return "0 B"
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{round(size, 1):g} {_SIZE_UNITS[unit]}"


def format_age(mtime: datetime, now: Optional[datetime] = None) -> str:
    """Describe how long ago ``mtime`` was, in days or weeks."""
    now = now or datetime.now()
    days = (now - mtime).days
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return mtime.date().isoformat()
