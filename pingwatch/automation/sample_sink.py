"""
Append-only persistence for latency samples.

Each sample is written as one ``"<timestamp> <latency_ms>\\n"`` line and
flushed straight away so it survives an abrupt exit.
"""

from pathlib import Path

from loguru import logger

from pingwatch.automation.errors import SampleSinkError
from pingwatch.automation.sample_models import LatencySample


class SampleSink:
    """Holds one append handle to the sample log for the lifetime of the sink."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fh = None
        self.written = 0

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close file handle."""
        self.close()

    def _handle(self):
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")
            logger.debug(f"Opened sample log {self.path}")
        return self._fh

    def append(self, sample: LatencySample) -> None:
        """
        Write and flush one sample.

        Raises:
            SampleSinkError: the file could not be opened, written or flushed.
        """
        try:
            fh = self._handle()
            fh.write(sample.to_log_line())
            fh.flush()
        except OSError as e:
            # drop the handle so a later append reopens it
            self.close()
            raise SampleSinkError(f"Failed to append sample to {self.path}: {e}") from e
        self.written += 1

    def close(self) -> None:
        """Close the held file handle, if any."""
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError as e:
                logger.warning(f"Error closing sample log {self.path}: {e}")
            self._fh = None
            logger.debug(f"Sample log {self.path} closed")
