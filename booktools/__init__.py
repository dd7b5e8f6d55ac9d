"""
booktools - Turn EPUB files into organized Markdown.

Converts EPUB files with epub2md, merges the chapter files into one
manuscript and removes leftover citation links and image references.
Usable both from the command line and as a library.
"""

from .cleaner import clean_file, clean_path, clean_text
from .exceptions import (
    AllFilesUnreadableError,
    BooktoolsError,
    ConversionError,
    ConverterNotFoundError,
    EmptyInputError,
    OrganizeError,
)
from .merger import merge_directory, merge_files, read_source_files
from .models import MergeResult, SourceFile

__all__ = [
    "clean_text",
    "clean_file",
    "clean_path",
    "merge_files",
    "merge_directory",
    "read_source_files",
    "MergeResult",
    "SourceFile",
    "BooktoolsError",
    "EmptyInputError",
    "AllFilesUnreadableError",
    "ConverterNotFoundError",
    "ConversionError",
    "OrganizeError",
]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "0.0.0+unknown"
