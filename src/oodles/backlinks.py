"""Backlink resolution.

Backlinks are not written to disk. They are rebuilt from every loaded
message when the collection loads, then kept current as messages are
created and edited. Callers hold the collection's write lock.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .models import Backlink, Oodle, add_backlink
from .references import MessageReference, OodleReference, Reference, SelfReference

logger = logging.getLogger(__name__)

OodleLookup = Callable[[str], Optional[Oodle]]


def resolve_backlinks(
    find_oodle: OodleLookup,
    source_oodle_id: str,
    source_message_id: int,
    references: Iterable[Reference],
) -> int:
    """Record a backlink on every target the references name.

    Targets that are not loaded are skipped, not errors.

    Returns:
        Number of backlinks added (already present ones are not counted).
    """
    backlink = Backlink(oodle_id=source_oodle_id, message_id=source_message_id)
    added = 0

    for ref in references:
        if isinstance(ref, OodleReference):
            target = find_oodle(ref.oodle_id)
            if target is None:
                logger.debug("Reference %s from %s/%d: oodle not loaded",
                             ref, source_oodle_id, source_message_id)
                continue
            added += add_backlink(target.backlinks, backlink)
            continue

        if isinstance(ref, SelfReference):
            target_id = source_oodle_id
        elif isinstance(ref, MessageReference):
            target_id = ref.oodle_id
        else:
            continue

        target = find_oodle(target_id)
        message = target.message(ref.message_id) if target is not None else None
        if message is None:
            logger.debug("Reference %s from %s/%d: message not loaded",
                         ref, source_oodle_id, source_message_id)
            continue
        added += add_backlink(message.backlinks, backlink)

    return added


def resolve_backlinks_to(oodles: list[Oodle], target: Oodle, message_id: Optional[int] = None) -> int:
    """Record backlinks from loaded messages that already cite a new target.

    A message may cite an oodle or message before it exists. Calling this
    when the target is added keeps the live backlinks equal to what
    rebuild_backlinks would compute. With message_id None the target is the
    oodle itself, otherwise its message with that id.

    Returns:
        Number of backlinks added.
    """
    first = next((oodle for oodle in oodles if oodle.oodle_id == target.oodle_id), None)
    if first is not target:
        return 0

    if message_id is None:
        holder = target.backlinks
    else:
        message = target.message(message_id)
        if message is None:
            return 0
        holder = message.backlinks

    added = 0
    for oodle in oodles:
        for msg in oodle.messages:
            for ref in msg.references:
                if message_id is None:
                    cites = isinstance(ref, OodleReference) and ref.oodle_id == target.oodle_id
                elif isinstance(ref, SelfReference):
                    cites = oodle.oodle_id == target.oodle_id and ref.message_id == message_id
                elif isinstance(ref, MessageReference):
                    cites = ref.oodle_id == target.oodle_id and ref.message_id == message_id
                else:
                    cites = False
                if cites:
                    added += add_backlink(holder, Backlink(oodle_id=oodle.oodle_id, message_id=msg.message_id))

    return added


def remove_backlinks_from(oodles: Iterable[Oodle], source_oodle_id: str, source_message_id: int) -> int:
    """Drop every backlink recorded for one citing message.

    Used before re-resolving an edited message so references it no longer
    makes do not linger.
    """
    stale = Backlink(oodle_id=source_oodle_id, message_id=source_message_id)
    removed = 0

    for oodle in oodles:
        holders = [oodle.backlinks] + [msg.backlinks for msg in oodle.messages]
        for backlinks in holders:
            while stale in backlinks:
                backlinks.remove(stale)
                removed += 1

    return removed


def rebuild_backlinks(oodles: list[Oodle]) -> int:
    """Recompute all backlinks from scratch by scanning every message.

    When two loaded oodles share an identifier, the first one loaded wins.

    Returns:
        Total number of backlinks recorded.
    """
    by_id: dict[str, Oodle] = {}
    for oodle in oodles:
        oodle.backlinks.clear()
        for msg in oodle.messages:
            msg.backlinks.clear()
        by_id.setdefault(oodle.oodle_id, oodle)

    total = 0
    for oodle in oodles:
        for msg in oodle.messages:
            total += resolve_backlinks(by_id.get, oodle.oodle_id, msg.message_id, msg.references)

    return total
