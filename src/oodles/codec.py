"""Text codec for messages and whole oodle files.

An oodle file looks like::

    -= Title =-
    [ABC123]

    2022-06-01 13:45:00-0500
    Line one!
    ..
    It was!
    .

    2022-06-01 14:15:00-0500 (4)
    Jumped ahead.
    .

A content line that is exactly '.' is written as '..' so it cannot be
mistaken for the message terminator. Indices are only printed where the
sequence jumps.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .dateline import format_dateline, parse_dateline
from .errors import (
    FormatError,
    MalformedIdentifierMarkers,
    MalformedTitleMarkers,
    MissingDateline,
    MissingTitle,
    StorageError,
)
from .models import Message, Oodle, generate_oodle_id

logger = logging.getLogger(__name__)

TERMINATOR = "."
ESCAPED_TERMINATOR = ".."
MESSAGE_SEPARATOR = "\n.\n"


def split_lines(text: str) -> list[str]:
    """Split on newlines only; a trailing newline does not start a new line."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def escape_line(line: str) -> str:
    """Escape a lone period line."""
    return ESCAPED_TERMINATOR if line == TERMINATOR else line


def unescape_line(line: str) -> str:
    """Undo escape_line."""
    return TERMINATOR if line == ESCAPED_TERMINATOR else line


# ========== Messages ==========

def format_message(message: Message, print_index: bool = False) -> str:
    """Render a message's dateline and escaped body, each line newline-terminated."""
    dateline = format_dateline(message.timestamp, message.message_id if print_index else None)
    parts = [dateline + "\n"]
    for line in split_lines(message.content):
        parts.append(escape_line(line) + "\n")
    return "".join(parts)


def parse_message(text: str) -> Message:
    """Parse a dateline followed by an escaped body.

    The id comes from the dateline's index suffix, or 0 when there is none
    (the owning oodle decides the final id).

    Raises:
        MissingDateline: If the text has no lines.
        MalformedDateline: If the first line is not a valid dateline.
    """
    lines = split_lines(text)
    if not lines:
        raise MissingDateline("Message has no dateline")

    index, timestamp = parse_dateline(lines[0])

    body = "".join(unescape_line(line) + "\n" for line in lines[1:])
    return Message(
        message_id=index if index is not None else 0,
        timestamp=timestamp,
        content=body.strip(),
    )


# ========== Oodles ==========

def extract_title(line: str) -> Optional[str]:
    """Return the trimmed title inside '-=' ... '=-', or None."""
    if len(line) < 4 or not line.startswith("-=") or not line.endswith("=-"):
        return None
    return line[2:-2].strip()


def extract_id(line: str) -> Optional[str]:
    """Return the identifier inside '[' ... ']', or None."""
    if len(line) < 2 or not line.startswith("[") or not line.endswith("]"):
        return None
    return line[1:-1]


def format_oodle(oodle: Oodle) -> str:
    """Serialize an oodle to its on-disk text."""
    parts = [f"-= {oodle.title} =-\n", f"[{oodle.oodle_id}]\n"]

    expected = 0
    for message in oodle.messages:
        parts.append("\n")
        if expected == message.message_id:
            parts.append(format_message(message, print_index=False))
        else:
            parts.append(format_message(message, print_index=True))
            expected = message.message_id
        parts.append(TERMINATOR + "\n")
        expected += 1

    return "".join(parts)


def parse_oodle(text: str, file: Optional[Path] = None) -> Oodle:
    """Parse on-disk oodle text.

    CRLF and bare CR line endings are accepted. The final message may omit its '.'
    terminator or the newline after it. A missing identifier line
    yields a freshly generated identifier.

    Raises:
        FormatError: Any of the format error subclasses.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    newline = text.find("\n")
    if newline == -1:
        raise MissingTitle("No title line", line=text or None)

    title_line = text[:newline]
    title = extract_title(title_line)
    if title is None:
        raise MalformedTitleMarkers("Title must be written as '-= Title =-'", line=title_line)
    rest = text[newline + 1:]

    newline = rest.find("\n")
    id_line = rest if newline == -1 else rest[:newline]
    oodle_id = None
    if id_line.startswith("["):
        oodle_id = extract_id(id_line)
        if not oodle_id:
            raise MalformedIdentifierMarkers("Identifier must be written as '[ID]'", line=id_line)
        rest = "" if newline == -1 else rest[newline + 1:]

    if oodle_id is None:
        oodle_id = generate_oodle_id()
        logger.info("Oodle %r has no identifier line, assigned %s", title, oodle_id)

    if rest.startswith("\n"):
        rest = rest[1:]

    oodle = Oodle(oodle_id=oodle_id, title=title, file=Path(file) if file is not None else Path())

    while True:
        found = rest.find(MESSAGE_SEPARATOR)
        if found == -1:
            break
        oodle.push_message(parse_message(rest[:found].strip()))
        rest = rest[found + len(MESSAGE_SEPARATOR):]

    # last terminator without its newline
    if rest.endswith("\n" + TERMINATOR):
        rest = rest[:-len(TERMINATOR)]
    if rest.strip():
        oodle.push_message(parse_message(rest.strip()))

    return oodle


def read_oodle(path: Path) -> Oodle:
    """Read and parse one oodle file, recording its path as the storage key.

    Raises:
        StorageError: If the file cannot be read.
        FormatError: If the file does not parse.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(f"Cannot read {path}: {e}", path=path) from e

    try:
        return parse_oodle(text, file=path)
    except FormatError as e:
        e.path = path
        raise
