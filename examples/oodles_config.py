"""Oodles Configuration - Advanced Python Example

Copy to your data directory as oodles_config.py for full extensibility.

Convention:
- CONFIG dict for static configuration (same structure as TOML)
- Functions named hook_* become lifecycle hooks
- Functions named custom_tool_* become MCP tools
"""

import os

# =============================================================================
# Static Configuration (same structure as TOML)
# =============================================================================

CONFIG = {
    "storage": {
        "directory": "oodles",
        "suffix": ".oodle",
    },
    "messages": {
        # US Central daylight time
        "utc_offset_minutes": -300,
        "id_length": 6,
    },
    "locking": {
        "timeout": 5,
    },
    "logging": {
        "level": "INFO",
    },
}


# =============================================================================
# Hooks - Called during store operations
# =============================================================================

def hook_pre_append(message, oodle):
    """Called before a message is added to an oodle.

    Return a replacement Message, or None to keep the original. Runs while
    the store is locked for writing, so it must not call back into the store.

    Args:
        message: Message about to be appended
        oodle: Oodle receiving it
    """
    # Example: sign messages with the author from the environment
    author = os.environ.get("OODLES_AUTHOR")
    if author and not message.content.endswith(f"-- {author}"):
        message.edit(f"{message.content}\n\n-- {author}")
    return None


def hook_post_append(message, oodle):
    """Called after a message has been appended and saved.

    Useful for notifications, syncing, etc. Runs after the store lock is
    released, so it may query the store.
    """
    print(f"[Oodles] {oodle.title}: message {message.message_id} recorded")


def hook_post_save(oodle):
    """Called after an oodle file is written."""


# =============================================================================
# Custom Tools - Exposed as additional MCP tools
# =============================================================================

def custom_tool_most_cited(store, params) -> dict:
    """List oodles ordered by how many times they are cited.

    Counts oodle-level and message-level backlinks together.
    """
    limit = int(params.get("limit", 10))
    counts = []
    for oodle in store.oodles():
        cited = len(oodle.backlinks) + sum(len(m.backlinks) for m in oodle.messages)
        counts.append({"title": oodle.title, "oodle_id": oodle.oodle_id, "citations": cited})

    counts.sort(key=lambda c: c["citations"], reverse=True)
    return {"success": True, "oodles": counts[:limit]}


async def custom_tool_async_example(store, params) -> dict:
    """Example async custom tool.

    Custom tools can be async if needed for I/O operations.
    """
    import asyncio
    await asyncio.sleep(0.1)
    return {"success": True, "message": "Async tool completed"}
