"""
Exception hierarchy for pingwatch.

Parse errors stay inside the latency path and are only logged.
Spawn and sink errors end the whole probe loop; throughput errors end
only the throughput task.
"""


class PingwatchError(Exception):
    """Base class for all pingwatch errors."""


class SampleParseError(PingwatchError):
    """A probe output line could not be turned into a sample."""


class NoMatchError(SampleParseError):
    """Line has no bracketed timestamp or no time= field."""


class NumericOverflowError(SampleParseError):
    """time= value does not fit in an unsigned 16-bit integer."""


class ProbeSpawnError(PingwatchError):
    """The probe executable could not be started."""


class SampleSinkError(PingwatchError):
    """Writing a sample to the sample log failed."""


class ThroughputError(PingwatchError):
    """Base class for throughput sampler failures."""


class ThroughputSpawnError(ThroughputError):
    """The throughput executable could not be started."""


class ThroughputParseError(ThroughputError):
    """Throughput executable output is not valid JSON."""


class ThroughputLogFormatError(ThroughputError):
    """Persisted throughput collection is not a JSON array."""


class LoggingSetupError(PingwatchError):
    """Log directory or sinks could not be created."""
