"""Exception hierarchy for oodle parsing, storage, and collection operations."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class OodleError(Exception):
    """Base exception for oodle operations."""
    pass


class FormatError(OodleError):
    """Raised when oodle text does not follow the on-disk grammar.

    Format errors are always recoverable: a single hand-edited file that
    fails to parse must not take the rest of the collection down with it.
    """

    def __init__(self, message: str, line: Optional[str] = None, path: Optional[Path] = None):
        super().__init__(message)
        self.line = line
        self.path = path

    def __str__(self) -> str:
        text = super().__str__()
        if self.line is not None:
            text = f"{text}: {self.line!r}"
        if self.path is not None:
            text = f"{self.path}: {text}"
        return text


class MissingTitle(FormatError):
    """Raised when the document has no title line."""
    pass


class MalformedTitleMarkers(FormatError):
    """Raised when the title line is not wrapped in '-=' and '=-'."""
    pass


class MalformedIdentifierMarkers(FormatError):
    """Raised when an identifier line opens with '[' but is not a valid '[ID]'."""
    pass


class MissingDateline(FormatError):
    """Raised when a message has no dateline at all."""
    pass


class MalformedDateline(FormatError):
    """Raised when a dateline timestamp or its '(N)' index suffix is unparsable."""
    pass


class StorageError(OodleError):
    """Raised when reading or writing an oodle file fails at the I/O level."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class OodleNotFound(OodleError):
    """Raised when no loaded oodle matches the requested storage key."""
    pass


class MessageNotFound(OodleError):
    """Raised when an oodle has no message with the requested id."""
    pass


class DuplicateOodleError(OodleError):
    """Raised when creating an oodle under a storage key that is already used."""
    pass


class InvalidTitleError(OodleError):
    """Raised when a title is blank or spans more than one line."""
    pass


class InvalidFilenameError(OodleError):
    """Raised when a storage key is not a plain file name."""
    pass
