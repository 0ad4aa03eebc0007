"""
Periodic broadband throughput sampling.

Every tick runs the throughput tool (``speedtest-cli --json`` by default)
to completion, parses its stdout as JSON and appends the record to a JSON
array file. The file is read in full, extended in memory and rewritten in
full; a file that does not hold an array is rejected and left untouched.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Sequence

from loguru import logger

from pingwatch.automation.errors import (
    ThroughputLogFormatError,
    ThroughputParseError,
    ThroughputSpawnError,
)


def load_collection(path: Path) -> list[Any]:
    """
    Read the persisted throughput array.

    Missing or empty file -> new empty list.

    Raises:
        ThroughputLogFormatError: content is not JSON or not a JSON array.
    """
    if not path.exists():
        return []

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ThroughputLogFormatError(f"{path} is not valid UTF-8: {e}") from e
    if not text.strip():
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ThroughputLogFormatError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ThroughputLogFormatError(
            f"{path} must contain a JSON array, found {type(data).__name__}"
        )
    return data


def append_record(path: str | Path, record: Any) -> int:
    """
    Append one record to the JSON array stored at ``path``.

    The whole array is rewritten through a temporary file and an atomic
    replace. Returns the new array length.
    """
    path = Path(path)
    records = load_collection(path)
    records.append(record)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp")
    tmp.write_text(json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    tmp.replace(path)

    logger.debug(f"Appended throughput record #{len(records)} to {path}")
    return len(records)


class ThroughputSampler:
    """Runs the throughput tool once per interval and persists its output."""

    def __init__(self, command: Sequence[str], log_path: str | Path, interval: float = 1800.0):
        self.command = list(command)
        self.log_path = Path(log_path)
        self.interval = interval
        self.ticks = 0

    async def measure(self) -> Any | None:
        """
        Run the tool once.

        Returns the parsed JSON value, or None when the tool exits non-zero.

        Raises:
            ThroughputSpawnError: the tool could not be started.
            ThroughputParseError: the tool succeeded but stdout is not JSON.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ThroughputSpawnError(f"Could not start {self.command[0]!r}: {e}") from e

        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            logger.error(
                f"Throughput measurement failed with status {proc.returncode}: {err or '(no stderr)'}"
            )
            return None

        try:
            return json.loads(stdout.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as e:
            raise ThroughputParseError(f"Throughput output is not JSON: {e}") from e

    async def tick(self) -> bool:
        """One measurement + append. Returns True when a record was written."""
        self.ticks += 1
        logger.info(f"Running throughput measurement (tick #{self.ticks})")

        record = await self.measure()
        if record is None:
            return False

        count = await asyncio.to_thread(append_record, self.log_path, record)
        logger.info(f"Throughput record saved to {self.log_path} ({count} total)")
        return True

    async def run_forever(self) -> None:
        """Tick now, then once per interval after each tick completes."""
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
