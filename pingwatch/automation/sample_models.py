"""
Latency sample model and the probe-line parser.

A probe line looks like::

    [1700000000.123456] 64 bytes from 1.1.1.1: icmp_seq=1 ttl=55 time=23.4 ms

Only the bracketed timestamp and the integer part of ``time=`` are kept.
The scan is linear in the line length: probe output is untrusted and is
parsed on the event loop.
"""

from pydantic import BaseModel, Field

from pingwatch.automation.errors import NoMatchError, NumericOverflowError

U16_MAX = 65535

TIME_FIELD = "time="
ASCII_DIGITS = "0123456789"


class LatencySample(BaseModel):
    """One parsed probe reading."""

    timestamp: str = Field(..., min_length=1, description="Timestamp token, verbatim")
    latency_ms: int = Field(..., ge=0, le=U16_MAX, description="Round-trip time in milliseconds")

    def to_log_line(self) -> str:
        """Serialized form used by the sample log."""
        return f"{self.timestamp} {self.latency_ms}\n"

    def __str__(self) -> str:
        return f"{self.timestamp} {self.latency_ms}"


def _last_time_field(line: str) -> int:
    """Index of the last ``time=`` directly followed by an ASCII digit, or -1."""
    end = len(line)
    while True:
        pos = line.rfind(TIME_FIELD, 0, end)
        if pos < 0:
            return -1
        digit = pos + len(TIME_FIELD)
        if digit < len(line) and line[digit] in ASCII_DIGITS:
            return pos
        # next search must start strictly before pos
        end = pos + len(TIME_FIELD) - 1


def _split_fields(line: str) -> tuple[str, str] | None:
    """
    Same text as ``\\[(.+)\\].*time=([0-9]+)`` finds, without backtracking.

    The match starts at the first ``[`` before the last usable ``time=``;
    the timestamp runs to the last ``]`` before that ``time=``, with at
    least one character inside the brackets.
    """
    time_pos = _last_time_field(line)
    if time_pos < 0:
        return None

    open_pos = line.find("[", 0, time_pos)
    if open_pos < 0:
        return None
    close_pos = line.rfind("]", open_pos + 2, time_pos)
    if close_pos < 0:
        return None

    start = end = time_pos + len(TIME_FIELD)
    while end < len(line) and line[end] in ASCII_DIGITS:
        end += 1
    return line[open_pos + 1:close_pos], line[start:end]


def parse_sample(line: str) -> LatencySample:
    """
    Parse one line of probe output.

    Raises:
        NoMatchError: no ``[...]`` group followed by ``time=<digits>``.
        NumericOverflowError: the digits do not fit in 16 bits.
    """
    fields = _split_fields(line.rstrip("\r\n"))
    if fields is None:
        shown = line if len(line) <= 200 else line[:200] + "..."
        raise NoMatchError(f"No timestamp/time= fields in line: {shown!r}")

    timestamp, digits = fields

    # int() refuses very long digit strings; those overflow anyway
    significant = digits.lstrip("0") or "0"
    if len(significant) > len(str(U16_MAX)) or int(significant) > U16_MAX:
        shown = digits if len(digits) <= 20 else digits[:20] + "..."
        raise NumericOverflowError(f"Ping time {shown} exceeds {U16_MAX} ms")

    return LatencySample(timestamp=timestamp, latency_ms=int(significant))
