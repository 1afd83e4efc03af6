"""Tool definitions wrapping the oodle store."""

from __future__ import annotations

from typing import Any

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
from .store import OodleStore


def make_tools(store: OodleStore) -> dict[str, dict]:
    """Create tool definitions for the oodle store.

    Returns:
        Dict mapping tool names to their definitions.
    """

    tools = {}

    tools["oodle_create"] = {
        "name": "oodle_create",
        "description": "Create a new oodle with its first message and save it.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "description": "Single-line title of the oodle",
                },
                "filename": {
                    "type": "string",
                    "description": "Plain file name the oodle is stored under",
                },
                "content": {
                    "type": "string",
                    "description": "Text of the first message. May cite {~N}, {ID} or {ID/N}",
                },
            },
            "required": ["title", "filename", "content"],
        },
    }

    tools["oodle_append"] = {
        "name": "oodle_append",
        "description": "Append a message to an oodle.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "filename": {
                    "type": "string",
                    "description": "Storage file name of the oodle",
                },
                "content": {
                    "type": "string",
                    "description": "Message text",
                },
            },
            "required": ["filename", "content"],
        },
    }

    tools["oodle_modify"] = {
        "name": "oodle_modify",
        "description": "Replace the content of an existing message. References and backlinks are re-derived.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "filename": {
                    "type": "string",
                    "description": "Storage file name of the oodle",
                },
                "message_id": {
                    "type": "integer",
                    "description": "Id of the message to edit",
                },
                "content": {
                    "type": "string",
                    "description": "New message text",
                },
            },
            "required": ["filename", "message_id", "content"],
        },
    }

    tools["oodle_get_message"] = {
        "name": "oodle_get_message",
        "description": "Fetch one message as {id, date, content}; date is seconds since the epoch.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "filename": {"type": "string"},
                "message_id": {"type": "integer"},
            },
            "required": ["filename", "message_id"],
        },
    }

    tools["oodle_list"] = {
        "name": "oodle_list",
        "description": "List every loaded oodle with its title and earliest message time.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    tools["oodle_read"] = {
        "name": "oodle_read",
        "description": "Read a whole oodle: identifier, title, messages, references and backlinks.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "filename": {"type": "string"},
            },
            "required": ["filename"],
        },
    }

    tools["oodle_find"] = {
        "name": "oodle_find",
        "description": "Find an oodle by title (case-insensitive).",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
            },
            "required": ["title"],
        },
    }

    tools["oodle_backlinks"] = {
        "name": "oodle_backlinks",
        "description": "List who cites an oodle, or one of its messages when message_id is given.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "filename": {"type": "string"},
                "message_id": {"type": "integer"},
            },
            "required": ["filename"],
        },
    }

    tools["oodle_reload"] = {
        "name": "oodle_reload",
        "description": "Reload every oodle from disk and rebuild backlinks. Reports files that failed to parse.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    return tools


async def execute_tool(store: OodleStore, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute an oodle tool and return the result.

    Args:
        store: OodleStore instance
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dict with success status and data or error
    """
    try:
        if name == "oodle_create":
            oodle = store.new_oodle(
                title=arguments["title"],
                filename=arguments["filename"],
                content=arguments["content"],
            )
            return {
                "success": True,
                "oodle_id": oodle.oodle_id,
                "filename": oodle.file.name,
                "message": f"Created oodle {oodle.oodle_id} as {oodle.file.name}",
            }

        elif name == "oodle_append":
            message = store.append_message(arguments["filename"], arguments["content"])
            return {
                "success": True,
                "message_id": message.message_id,
                "references": [str(ref) for ref in message.references],
                "message": f"Message {message.message_id} appended",
            }

        elif name == "oodle_modify":
            message = store.modify_message(
                arguments["filename"],
                int(arguments["message_id"]),
                arguments["content"],
            )
            return {
                "success": True,
                "message_id": message.message_id,
                "references": [str(ref) for ref in message.references],
                "message": f"Message {message.message_id} modified",
            }

        elif name == "oodle_get_message":
            return {
                "success": True,
                **store.get_message(arguments["filename"], int(arguments["message_id"])),
            }

        elif name == "oodle_list":
            oodles = [
                {"title": title, "date": int(date.timestamp()) if date else None}
                for title, date in store.oodle_metadata()
            ]
            return {"success": True, "count": len(oodles), "oodles": oodles}

        elif name == "oodle_read":
            oodle = store.oodle_by_file(arguments["filename"])
            if oodle is None:
                raise OodleNotFound(f"No oodle stored as {arguments['filename']!r}")
            return {"success": True, **oodle.to_dict()}

        elif name == "oodle_find":
            oodle = store.get_oodle_by_name(arguments["title"])
            if oodle is None:
                return {"success": True, "found": False}
            return {"success": True, "found": True, **oodle.summary()}

        elif name == "oodle_backlinks":
            message_id = arguments.get("message_id")
            backlinks = store.backlinks(
                arguments["filename"],
                int(message_id) if message_id is not None else None,
            )
            return {
                "success": True,
                "backlinks": [b.to_dict() for b in backlinks],
            }

        elif name == "oodle_reload":
            count = store.load_oodles()
            return {
                "success": True,
                "loaded": count,
                "errors": {path.name: str(err) for path, err in store.load_errors.items()},
            }

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
                "error_type": "unknown_tool",
            }

    except KeyError as e:
        return {
            "success": False,
            "error": f"Missing required parameter: {e}",
            "error_type": "missing_parameter",
        }

    except OodleNotFound as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "oodle_not_found",
            "suggestion": "Use oodle_list to see loaded oodles",
        }

    except MessageNotFound as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "message_not_found",
        }

    except DuplicateOodleError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "duplicate_oodle",
            "suggestion": "Choose a different filename",
        }

    except (InvalidTitleError, InvalidFilenameError) as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "invalid_argument",
        }

    except StorageError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "storage_error",
            "suggestion": "The change is kept in memory; retry once the file is writable",
        }

    except FormatError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "format_error",
        }

    except OodleError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "oodle_error",
        }

    except (TypeError, ValueError) as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "invalid_argument",
        }
