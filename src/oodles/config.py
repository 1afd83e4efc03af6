"""Configuration loading for oodles.

Supports three tiers:
1. Simple config via .toml or .json - most users
2. Python config via .py - hooks and custom tools
3. Constructing OodlesConfig directly - embedding and tests
"""

from __future__ import annotations

import importlib.util
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

# Python 3.11+ has tomllib in stdlib; fall back to tomli for older versions
try:
    import tomllib  # Python 3.11+
except ImportError:  # pragma: no cover
    import tomli as tomllib  # Python <3.11

from .models import DEFAULT_ID_LENGTH

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class OodlesConfig:
    """Configuration for an oodle collection."""

    # Root of everything the server keeps on disk
    data_directory: Path = field(default_factory=Path.cwd)

    # Oodle files live here (relative to data_directory)
    oodles_dir: str = "oodles"

    # Appended to new storage keys that lack it, e.g. ".oodle"
    file_suffix: str = ""

    # Offset stamped on newly created messages
    utc_offset_minutes: int = 0

    id_length: int = DEFAULT_ID_LENGTH

    # Seconds to wait for a file lock when saving
    lock_timeout: float = 10.0

    log_level: str = "WARNING"

    # Hooks (populated from Python config)
    hooks: dict[str, Callable] = field(default_factory=dict)

    # Custom tools (populated from Python config)
    custom_tools: dict[str, Callable] = field(default_factory=dict)

    def get_oodles_path(self) -> Path:
        return self.data_directory / self.oodles_dir


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_python_config(path: Path) -> tuple[dict[str, Any], dict[str, Callable], dict[str, Callable]]:
    """Load configuration from Python file.

    Returns:
        Tuple of (config_dict, hooks_dict, custom_tools_dict)

    Convention:
        - CONFIG dict for static configuration
        - Functions named hook_* become hooks (pre_append, post_append, post_save)
        - Functions named custom_tool_* become tools
    """
    spec = importlib.util.spec_from_file_location("oodles_config", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load Python config from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["oodles_config"] = module
    spec.loader.exec_module(module)

    config_dict = getattr(module, "CONFIG", {})

    hooks = {}
    custom_tools = {}
    for name in dir(module):
        if name.startswith("hook_"):
            hooks[name[len("hook_"):]] = getattr(module, name)
        elif name.startswith("custom_tool_"):
            custom_tools[name[len("custom_tool_"):]] = getattr(module, name)

    return config_dict, hooks, custom_tools


def dict_to_config(data: dict[str, Any], data_directory: Path) -> OodlesConfig:
    """Convert dictionary to OodlesConfig.

    Raises:
        ValueError: If a value has the wrong type or is out of range.
    """
    config = OodlesConfig(data_directory=data_directory)

    storage = data.get("storage", {})
    if "directory" in storage:
        config.oodles_dir = str(storage["directory"])
    if "suffix" in storage:
        config.file_suffix = str(storage["suffix"])

    messages = data.get("messages", {})
    if "utc_offset_minutes" in messages:
        offset = int(messages["utc_offset_minutes"])
        if not -24 * 60 < offset < 24 * 60:
            raise ValueError(f"utc_offset_minutes out of range: {offset}")
        config.utc_offset_minutes = offset
    if "id_length" in messages:
        length = int(messages["id_length"])
        if length < 1:
            raise ValueError(f"id_length must be positive: {length}")
        config.id_length = length

    locking = data.get("locking", {})
    if "timeout" in locking:
        config.lock_timeout = float(locking["timeout"])

    log = data.get("logging", {})
    if "level" in log:
        level = str(log["level"]).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {log['level']}")
        config.log_level = level

    return config


def find_config_file(data_directory: Path) -> Optional[Path]:
    """Find configuration file in the data directory.

    Search order:
    1. oodles_config.py (most flexible)
    2. oodles_config.toml
    3. oodles_config.json
    4. .oodles.toml
    5. .oodles.json
    """
    candidates = [
        "oodles_config.py",
        "oodles_config.toml",
        "oodles_config.json",
        ".oodles.toml",
        ".oodles.json",
    ]

    for name in candidates:
        path = data_directory / name
        if path.exists():
            return path

    return None


def load_config(data_directory: Path, config_path: Optional[Path] = None) -> OodlesConfig:
    """Load collection configuration.

    Args:
        data_directory: Root directory for oodle data
        config_path: Optional explicit path to config file

    Returns:
        OodlesConfig instance
    """
    if config_path is None:
        config_path = find_config_file(data_directory)

    if config_path is None:
        return OodlesConfig(data_directory=data_directory)

    logging.getLogger(__name__).info("Loading config from %s", config_path)
    suffix = config_path.suffix.lower()

    if suffix == ".py":
        config_dict, hooks, custom_tools = load_python_config(config_path)
        config = dict_to_config(config_dict, data_directory)
        config.hooks = hooks
        config.custom_tools = custom_tools
        return config

    elif suffix == ".toml":
        return dict_to_config(load_toml_config(config_path), data_directory)

    elif suffix == ".json":
        return dict_to_config(load_json_config(config_path), data_directory)

    else:
        raise ValueError(f"Unsupported config file type: {suffix}")
