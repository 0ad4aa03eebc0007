"""
Runtime settings for pingwatch.

All values are fixed for the lifetime of the process. Defaults match the
monitor's normal deployment; any of them can be overridden through a
``PINGWATCH_*`` environment variable or a ``.env`` file (python-decouple).
"""

import shlex
from pathlib import Path

from decouple import config
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TARGET = "1.1.1.1"
DEFAULT_PROBE_TIMEOUT_SEC = 10.0
DEFAULT_THROUGHPUT_INTERVAL_SEC = 1800.0


def default_probe_command(target: str) -> list[str]:
    """ping with -D prints a bracketed unix timestamp before every reply."""
    return ["ping", "-D", target]


class MonitorSettings(BaseModel):
    """Read-only configuration for the probe loop and the throughput sampler."""

    model_config = ConfigDict(frozen=True)

    probe_target: str = Field(DEFAULT_TARGET, min_length=1, description="Address the probe pings")
    probe_command: list[str] = Field(
        default_factory=list, description="Probe argv; derived from probe_target when empty"
    )
    probe_timeout_sec: float = Field(
        DEFAULT_PROBE_TIMEOUT_SEC, gt=0, description="Max seconds between probe lines before restart"
    )
    sample_log_path: Path = Field(Path("ping.log"), description="Append-only latency sample log")

    throughput_command: list[str] = Field(
        default_factory=lambda: ["speedtest-cli", "--json"],
        min_length=1,
        description="Throughput tool argv; must print one JSON value on stdout",
    )
    throughput_interval_sec: float = Field(
        DEFAULT_THROUGHPUT_INTERVAL_SEC, gt=0, description="Seconds between throughput ticks"
    )
    throughput_log_path: Path = Field(Path("speedtest.json"), description="JSON array of throughput records")

    log_dir: Path = Field(Path("logs"), description="Directory for the operational log file")
    console_level: str = Field("INFO", description="Minimum level printed to the console")

    @field_validator("console_level")
    @classmethod
    def validate_console_level(cls, v: str) -> str:
        """Accept only levels loguru knows about."""
        level = v.upper()
        valid = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in valid:
            raise ValueError(f"Invalid console level: {v}. Must be one of {sorted(valid)}")
        return level

    @model_validator(mode="before")
    @classmethod
    def fill_probe_command(cls, data):
        """Derive the probe argv from the target unless one was given."""
        if isinstance(data, dict) and not data.get("probe_command"):
            target = data.get("probe_target") or DEFAULT_TARGET
            data = {**data, "probe_command": default_probe_command(target)}
        return data


def _split_command(value: str) -> list[str]:
    return shlex.split(value) if value else []


def load_settings(**overrides) -> MonitorSettings:
    """
    Build settings from the environment, then apply keyword overrides.

    Environment variables:
        PINGWATCH_TARGET, PINGWATCH_PROBE_COMMAND, PINGWATCH_PROBE_TIMEOUT,
        PINGWATCH_SAMPLE_LOG, PINGWATCH_THROUGHPUT_COMMAND,
        PINGWATCH_THROUGHPUT_INTERVAL, PINGWATCH_THROUGHPUT_LOG,
        PINGWATCH_LOG_DIR, PINGWATCH_CONSOLE_LEVEL
    """
    values = {
        "probe_target": config("PINGWATCH_TARGET", default=DEFAULT_TARGET),
        "probe_command": config("PINGWATCH_PROBE_COMMAND", default="", cast=_split_command),
        "probe_timeout_sec": config("PINGWATCH_PROBE_TIMEOUT", default=DEFAULT_PROBE_TIMEOUT_SEC, cast=float),
        "sample_log_path": config("PINGWATCH_SAMPLE_LOG", default="ping.log"),
        "throughput_command": config(
            "PINGWATCH_THROUGHPUT_COMMAND", default="speedtest-cli --json", cast=_split_command
        ),
        "throughput_interval_sec": config(
            "PINGWATCH_THROUGHPUT_INTERVAL", default=DEFAULT_THROUGHPUT_INTERVAL_SEC, cast=float
        ),
        "throughput_log_path": config("PINGWATCH_THROUGHPUT_LOG", default="speedtest.json"),
        "log_dir": config("PINGWATCH_LOG_DIR", default="logs"),
        "console_level": config("PINGWATCH_CONSOLE_LEVEL", default="INFO"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return MonitorSettings(**values)
