"""Shared pytest fixtures for oodles tests."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from oodles.config import OodlesConfig
from oodles.models import Message
from oodles.store import OodleStore

CDT = timezone(timedelta(hours=-5))


def make_message(message_id=0, content="Looky here another message!", minute=45):
    """Message stamped 2022-06-01 13:MM -0500."""
    return Message(
        message_id=message_id,
        timestamp=datetime(2022, 6, 1, 13, minute, tzinfo=CDT),
        content=content,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir):
    """Create a test configuration."""
    return OodlesConfig(data_directory=temp_dir)


@pytest.fixture
def store(config):
    """Create an empty, loaded store."""
    s = OodleStore(config)
    s.load_oodles()
    return s


@pytest.fixture
def oodles_dir(config):
    """Storage directory of the test store."""
    path = config.get_oodles_path()
    path.mkdir(parents=True, exist_ok=True)
    return path
