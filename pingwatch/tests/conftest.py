"""
Pytest fixtures for pingwatch.

Provides loguru capture, temporary log paths and stand-in probe/throughput
executables (small ``python -c`` scripts run with the current interpreter).
"""
import sys
from pathlib import Path

# This file is at: pingwatch/tests/conftest.py
# Project root is 2 levels up: ../../
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from loguru import logger

# Configure loguru for tests
logger.remove()
logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def log_messages():
    """Collect loguru records emitted during a test as (level, message) tuples."""
    records = []

    def _sink(message):
        record = message.record
        records.append((record["level"].name, record["message"]))

    handler_id = logger.add(_sink, level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def sample_log(tmp_path):
    return tmp_path / "ping.log"


@pytest.fixture
def python_cmd():
    """Build an argv that runs a Python snippet as a child process."""

    def _build(code: str) -> list[str]:
        return [sys.executable, "-u", "-c", code]

    return _build
