"""Exceptions raised by booktools."""


class BooktoolsError(Exception):
    """Base class for booktools errors."""


class EmptyInputError(BooktoolsError):
    """Raised when a merge is requested over zero files."""


class AllFilesUnreadableError(BooktoolsError):
    """Raised when none of the files in a merge could be read."""

    def __init__(self, total_count: int):
        self.total_count = total_count
        super().__init__(f"None of the {total_count} file(s) could be read")


class ConverterNotFoundError(BooktoolsError):
    """Raised when the external epub2md converter is not available."""


class ConversionError(BooktoolsError):
    """Raised when epub2md fails to convert a book."""


class OrganizeError(BooktoolsError):
    """Raised when a book folder cannot be reorganized."""
