"""Inline citation tokens and the scanner that extracts them from message text.

Three token shapes are recognized::

    {~3}        a message in the same oodle
    {abc123}    another oodle as a whole
    {abc123/4}  one message in another oodle

Malformed tokens are not errors; they are simply not references.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

_NUMBER = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class MessageReference:
    """Cites one message in a named oodle."""
    oodle_id: str
    message_id: int

    def __str__(self) -> str:
        return f"{{{self.oodle_id}/{self.message_id}}}"


@dataclass(frozen=True)
class OodleReference:
    """Cites an oodle as a whole."""
    oodle_id: str

    def __str__(self) -> str:
        return f"{{{self.oodle_id}}}"


@dataclass(frozen=True)
class SelfReference:
    """Cites a message in the same oodle as the citing message."""
    message_id: int

    def __str__(self) -> str:
        return f"{{~{self.message_id}}}"


Reference = Union[MessageReference, OodleReference, SelfReference]


def parse_reference(token: str) -> Optional[Reference]:
    """Interpret a single braced token such as ``{abc/2}``.

    Returns None when the token does not fit the grammar.
    """
    if len(token) < 2 or not token.startswith("{") or not token.endswith("}"):
        return None

    inner = token[1:-1]

    if inner.startswith("~"):
        number = inner[1:]
        if not _NUMBER.fullmatch(number):
            return None
        return SelfReference(message_id=int(number))

    oodle_id, sep, number = inner.partition("/")
    if not oodle_id:
        return None
    if not sep:
        return OodleReference(oodle_id=oodle_id)
    if not _NUMBER.fullmatch(number):
        return None
    return MessageReference(oodle_id=oodle_id, message_id=int(number))


def find_references(text: str) -> list[Reference]:
    """Scan text left to right for citation tokens.

    The first '}' after a '{' always closes the token; braces do not nest.
    A '{' with no closing '}' after it ends the scan.
    """
    found: list[Reference] = []
    position = 0

    while True:
        start = text.find("{", position)
        if start == -1:
            return found

        end = text.find("}", start)
        if end == -1:
            return found

        reference = parse_reference(text[start:end + 1])
        if reference is not None:
            found.append(reference)
        position = end + 1
