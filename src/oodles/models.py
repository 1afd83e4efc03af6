"""Data models for oodles, their messages, and backlinks."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from .dateline import format_timestamp
from .references import Reference, find_references

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
DEFAULT_ID_LENGTH = 6


def generate_oodle_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """Generate a random Base58 oodle identifier."""
    return "".join(secrets.choice(BASE58_ALPHABET) for _ in range(length))


def now_with_offset(offset_minutes: int = 0) -> datetime:
    """Current time at a fixed UTC offset, truncated to whole seconds."""
    tz = timezone(timedelta(minutes=offset_minutes))
    return datetime.now(tz).replace(microsecond=0)


@dataclass(frozen=True)
class Backlink:
    """Location of a message that cites the holder of this backlink."""
    oodle_id: str
    message_id: int

    def to_dict(self) -> dict:
        return {"oodle_id": self.oodle_id, "message_id": self.message_id}


def add_backlink(backlinks: list[Backlink], backlink: Backlink) -> bool:
    """Add a backlink unless it is already present. Returns True if added."""
    if backlink in backlinks:
        return False
    backlinks.append(backlink)
    return True


@dataclass
class Message:
    """A single timestamped post within an oodle.

    References are derived from the content when the message is built and
    again on every edit; they are never recomputed lazily.
    """
    message_id: int
    timestamp: datetime
    content: str
    references: list[Reference] = field(init=False, default_factory=list)
    backlinks: list[Backlink] = field(default_factory=list, compare=False)

    def __post_init__(self) -> None:
        self.references = find_references(self.content)

    @classmethod
    def new_now(cls, content: str, offset_minutes: int = 0) -> "Message":
        """Create an unnumbered message stamped with the current time."""
        return cls(message_id=0, timestamp=now_with_offset(offset_minutes), content=content)

    def edit(self, content: str) -> None:
        """Replace the content and re-derive references."""
        self.content = content
        self.references = find_references(content)

    def to_dict(self) -> dict:
        """Convert to the message read format (epoch seconds for the date)."""
        return {
            "id": self.message_id,
            "date": int(self.timestamp.timestamp()),
            "content": self.content,
        }


@dataclass
class Oodle:
    """A titled, append-mostly sequence of messages persisted as one file."""
    oodle_id: str
    title: str
    file: Path = field(default_factory=Path, compare=False)
    messages: list[Message] = field(default_factory=list)
    backlinks: list[Backlink] = field(default_factory=list, compare=False)

    @classmethod
    def new(
        cls,
        title: str,
        file: Path,
        first_message: Message,
        oodle_id: Optional[str] = None,
    ) -> "Oodle":
        """Create an oodle together with its first message.

        A random identifier is generated when none is supplied.
        """
        oodle = cls(
            oodle_id=oodle_id if oodle_id is not None else generate_oodle_id(),
            title=title,
            file=Path(file),
        )
        oodle.push_message(first_message)
        return oodle

    def next_message_id(self) -> int:
        """Id the next sequential message would receive."""
        if not self.messages:
            return 0
        return self.messages[-1].message_id + 1

    def push_message(self, message: Message) -> int:
        """Append a message, assigning its final id.

        A declared id greater than zero is kept when it does not go backwards,
        which preserves intentional jumps. Regressions, duplicates, and
        undeclared (zero) ids all become the next sequential id.

        Returns:
            The id stored on the message.
        """
        expected = self.next_message_id()
        if message.message_id == 0 or message.message_id < expected:
            message.message_id = expected

        self.messages.append(message)
        return message.message_id

    def message(self, message_id: int) -> Optional[Message]:
        """Find a message by id (not by position)."""
        for msg in self.messages:
            if msg.message_id == message_id:
                return msg
        return None

    def date(self) -> Optional[datetime]:
        """Timestamp of the earliest (first) message, if any."""
        if not self.messages:
            return None
        return self.messages[0].timestamp

    def summary(self) -> dict:
        """Metadata view: title plus earliest message time."""
        date = self.date()
        return {
            "oodle_id": self.oodle_id,
            "title": self.title,
            "filename": self.file.name,
            "date": int(date.timestamp()) if date else None,
            "message_count": len(self.messages),
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "oodle_id": self.oodle_id,
            "title": self.title,
            "filename": self.file.name,
            "messages": [
                {
                    **msg.to_dict(),
                    "timestamp": format_timestamp(msg.timestamp),
                    "references": [str(ref) for ref in msg.references],
                    "backlinks": [b.to_dict() for b in msg.backlinks],
                }
                for msg in self.messages
            ],
            "backlinks": [b.to_dict() for b in self.backlinks],
        }
