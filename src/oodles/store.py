"""Oodle collection store - every loaded oodle behind one read/write lock."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import portalocker

from .backlinks import rebuild_backlinks, remove_backlinks_from, resolve_backlinks, resolve_backlinks_to
from .codec import format_oodle, read_oodle
from .config import OodlesConfig
from .errors import (
    DuplicateOodleError,
    FormatError,
    InvalidFilenameError,
    InvalidTitleError,
    MessageNotFound,
    OodleError,
    OodleNotFound,
    StorageError,
)
from .locking import ReadWriteLock, locked_atomic_write
from .models import Backlink, Message, Oodle, generate_oodle_id

logger = logging.getLogger(__name__)

SKIPPED_SUFFIXES = (".lock", ".tmp")


def normalize_content(content: str) -> str:
    """Bring new message text into the form a reload would produce."""
    return content.replace("\r\n", "\n").replace("\r", "\n").strip()


class OodleStore:
    """The in-memory oodle collection and its on-disk directory.

    Lookups take the shared lock. Mutations take the exclusive lock and hold
    it through reference resolution and the file save, so no reader ever
    sees half an update.

    The pre_append hook runs under the exclusive lock and must not call
    back into the store. post_append and post_save run after it is released.
    """

    def __init__(self, config: OodlesConfig):
        self.config = config
        self._lock = ReadWriteLock()
        self._oodles: list[Oodle] = []
        self.load_errors: dict[Path, OodleError] = {}
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        self.config.get_oodles_path().mkdir(parents=True, exist_ok=True)

    # ========== Loading ==========

    def load_oodles(self) -> int:
        """(Re)load every oodle file in the storage directory.

        A file that fails to read or parse is logged and recorded in
        load_errors; it never prevents the others from loading.

        Returns:
            Number of oodles loaded.
        """
        directory = self.config.get_oodles_path()
        loaded: list[Oodle] = []
        errors: dict[Path, OodleError] = {}

        with self._lock.write_locked():
            for path in sorted(directory.iterdir()):
                if not path.is_file() or path.name.startswith(".") or path.name.endswith(SKIPPED_SUFFIXES):
                    continue
                try:
                    oodle = read_oodle(path)
                except (FormatError, StorageError) as e:
                    logger.warning("Skipping unreadable oodle %s: %s", path.name, e)
                    errors[path] = e
                    continue
                logger.info("Loaded oodle %r (%s) with %d messages",
                            oodle.title, oodle.oodle_id, len(oodle.messages))
                loaded.append(oodle)

            rebuild_backlinks(loaded)
            self._oodles = loaded
            self.load_errors = errors

        return len(loaded)

    # ========== Lookups ==========

    def _find_by_file(self, filename: str) -> Optional[Oodle]:
        name = Path(filename).name
        names = {name}
        if self.config.file_suffix and not name.endswith(self.config.file_suffix):
            names.add(name + self.config.file_suffix)
        for oodle in self._oodles:
            if oodle.file.name in names:
                return oodle
        return None

    def _find_by_id(self, oodle_id: str) -> Optional[Oodle]:
        for oodle in self._oodles:
            if oodle.oodle_id == oodle_id:
                return oodle
        return None

    def _require_oodle(self, filename: str) -> Oodle:
        oodle = self._find_by_file(filename)
        if oodle is None:
            raise OodleNotFound(f"No oodle stored as {filename!r}")
        return oodle

    def _require_message(self, oodle: Oodle, message_id: int) -> Message:
        message = oodle.message(message_id)
        if message is None:
            raise MessageNotFound(f"Oodle {oodle.file.name!r} has no message {message_id}")
        return message

    def oodles(self) -> list[Oodle]:
        """Snapshot of the loaded oodles, in load/creation order."""
        with self._lock.read_locked():
            return list(self._oodles)

    def oodle_metadata(self) -> list[tuple[str, Optional[datetime]]]:
        """Title and earliest message time of every oodle."""
        with self._lock.read_locked():
            return [(oodle.title, oodle.date()) for oodle in self._oodles]

    def get_oodle_by_name(self, name: str) -> Optional[Oodle]:
        """Find an oodle by title, ignoring case."""
        wanted = name.lower()
        with self._lock.read_locked():
            for oodle in self._oodles:
                if oodle.title.lower() == wanted:
                    return oodle
        return None

    def oodle_by_file(self, filename: str) -> Optional[Oodle]:
        """Find an oodle by storage key (file name; any directory part is ignored)."""
        with self._lock.read_locked():
            return self._find_by_file(filename)

    def oodle_by_id(self, oodle_id: str) -> Optional[Oodle]:
        with self._lock.read_locked():
            return self._find_by_id(oodle_id)

    def get_message(self, filename: str, message_id: int) -> dict:
        """Fetch one message as ``{id, date, content}``.

        Raises:
            OodleNotFound: If no oodle is stored under filename.
            MessageNotFound: If the oodle has no such message.
        """
        with self._lock.read_locked():
            oodle = self._require_oodle(filename)
            return self._require_message(oodle, message_id).to_dict()

    def backlinks(self, filename: str, message_id: Optional[int] = None) -> list[Backlink]:
        """Backlinks held by an oodle, or by one of its messages."""
        with self._lock.read_locked():
            oodle = self._require_oodle(filename)
            if message_id is None:
                return list(oodle.backlinks)
            return list(self._require_message(oodle, message_id).backlinks)

    # ========== Mutations ==========

    def _storage_path(self, filename: str) -> Path:
        name = filename.strip()
        if (
            not name
            or name in (".", "..")
            or name.startswith(".")
            or "/" in name
            or "\\" in name
        ):
            raise InvalidFilenameError(f"Not a plain file name: {filename!r}")

        suffix = self.config.file_suffix
        if suffix and not name.endswith(suffix):
            name += suffix
        if name.endswith(SKIPPED_SUFFIXES):
            raise InvalidFilenameError(f"Reserved file suffix: {filename!r}")

        return self.config.get_oodles_path() / name

    def _new_message(self, content: str) -> Message:
        return Message.new_now(normalize_content(content), self.config.utc_offset_minutes)

    def _unused_oodle_id(self) -> str:
        taken = {oodle.oodle_id for oodle in self._oodles}
        while True:
            oodle_id = generate_oodle_id(self.config.id_length)
            if oodle_id not in taken:
                return oodle_id

    def _pre_append(self, message: Message, oodle: Oodle) -> Message:
        hook = self.config.hooks.get("pre_append")
        if hook is None:
            return message
        replacement = hook(message, oodle)
        return replacement if replacement is not None else message

    def _post_append(self, message: Message, oodle: Oodle) -> None:
        if "post_append" in self.config.hooks:
            self.config.hooks["post_append"](message, oodle)

    def _post_save(self, oodle: Oodle) -> None:
        if "post_save" in self.config.hooks:
            self.config.hooks["post_save"](oodle)

    def _resolve(self, oodle: Oodle, message: Message) -> None:
        resolve_backlinks(self._find_by_id, oodle.oodle_id, message.message_id, message.references)

    def new_oodle(self, title: str, filename: str, content: str) -> Oodle:
        """Create an oodle with its first message and save it.

        Raises:
            InvalidTitleError: If the title is blank or has a line break.
            InvalidFilenameError: If filename is not a plain file name.
            DuplicateOodleError: If filename is already in use.
            StorageError: If the save fails (the oodle stays in memory).
        """
        if "\n" in title or "\r" in title:
            raise InvalidTitleError("Title must be a single line")
        if not title.strip():
            raise InvalidTitleError("Title must not be blank")
        path = self._storage_path(filename)

        with self._lock.write_locked():
            if self._find_by_file(path.name) is not None or path.exists():
                raise DuplicateOodleError(f"An oodle is already stored as {path.name!r}")

            oodle = Oodle(oodle_id=self._unused_oodle_id(), title=title.strip(), file=path)
            message = self._pre_append(self._new_message(content), oodle)
            oodle.push_message(message)
            self._oodles.append(oodle)

            self._resolve(oodle, message)
            resolve_backlinks_to(self._oodles, oodle)
            resolve_backlinks_to(self._oodles, oodle, message.message_id)
            self._save(oodle)

        self._post_save(oodle)
        self._post_append(message, oodle)
        logger.info("Created oodle %r (%s) as %s", oodle.title, oodle.oodle_id, path.name)
        return oodle

    def append_message(self, filename: str, content: str) -> Message:
        """Append a new message to an oodle and save it.

        Raises:
            OodleNotFound: If no oodle is stored under filename.
            StorageError: If the save fails (the message stays in memory).
        """
        with self._lock.write_locked():
            oodle = self._require_oodle(filename)
            message = self._pre_append(self._new_message(content), oodle)
            oodle.push_message(message)

            self._resolve(oodle, message)
            resolve_backlinks_to(self._oodles, oodle, message.message_id)
            self._save(oodle)

        self._post_save(oodle)
        self._post_append(message, oodle)
        return message

    def modify_message(self, filename: str, message_id: int, content: str) -> Message:
        """Replace a message's content, re-deriving references and backlinks.

        Backlinks the old content produced are removed before the new
        references are resolved.

        Raises:
            OodleNotFound: If no oodle is stored under filename.
            MessageNotFound: If the oodle has no such message.
            StorageError: If the save fails (the edit stays in memory).
        """
        with self._lock.write_locked():
            oodle = self._require_oodle(filename)
            message = self._require_message(oodle, message_id)
            message.edit(normalize_content(content))

            remove_backlinks_from(self._oodles, oodle.oodle_id, message.message_id)
            self._resolve(oodle, message)
            self._save(oodle)

        self._post_save(oodle)
        return message

    # ========== Persistence ==========

    def save(self, filename: str) -> None:
        """Write one oodle back to its file."""
        with self._lock.write_locked():
            oodle = self._require_oodle(filename)
            self._save(oodle)
        self._post_save(oodle)

    def _save(self, oodle: Oodle) -> None:
        text = format_oodle(oodle)
        try:
            with locked_atomic_write(oodle.file, timeout=self.config.lock_timeout) as f:
                f.write(text)
        except (OSError, portalocker.LockException) as e:
            raise StorageError(f"Cannot save {oodle.file}: {e}", path=oodle.file) from e

        logger.debug("Saved %s (%d bytes)", oodle.file, len(text))
