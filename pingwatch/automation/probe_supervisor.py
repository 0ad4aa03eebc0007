"""
Probe supervision: one ping process per session, restarted forever.

A session spawns the probe, reads its stdout line by line with a per-line
timeout and hands parsed samples to the sink. It ends on EOF or on a stall
(no line within the timeout). Either way the watcher task kills the child
and the session waits for it to be reaped before returning.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from pingwatch.automation.errors import ProbeSpawnError, SampleParseError
from pingwatch.automation.sample_models import parse_sample
from pingwatch.automation.sample_sink import SampleSink


class SessionOutcome(str, Enum):
    EOF = "eof"
    STALL = "stall"


@dataclass
class SessionResult:
    """How a session ended and the exit status of its probe process."""

    outcome: SessionOutcome
    returncode: int | None
    samples: int = 0
    malformed: int = 0


class ProbeSupervisor:
    """Runs probe sessions against a shared sample sink."""

    def __init__(self, command: Sequence[str], sink: SampleSink, timeout: float = 10.0):
        """
        Args:
            command: probe argv, e.g. ``["ping", "-D", "1.1.1.1"]``
            sink: where parsed samples are appended
            timeout: max seconds to wait for the next output line
        """
        if not command:
            raise ValueError("Probe command must not be empty")
        self.command = list(command)
        self.sink = sink
        self.timeout = timeout

    async def _spawn(self) -> asyncio.subprocess.Process:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeSpawnError(f"Could not start probe {self.command[0]!r}: {e}") from e
        logger.debug(f"Probe started pid={proc.pid} argv={self.command}")
        return proc

    @staticmethod
    async def _watch(proc: asyncio.subprocess.Process, cancel: asyncio.Event) -> int:
        """Wait for the child to exit or for cancel; on cancel kill and reap it."""
        exited = asyncio.ensure_future(proc.wait())
        cancelled = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({exited, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        if exited in done:
            logger.debug(f"Probe pid={proc.pid} exited with status {exited.result()}")
            return exited.result()

        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        status = await exited
        logger.debug(f"Probe pid={proc.pid} killed, status {status}")
        return status

    @staticmethod
    async def _next_line(stdout: asyncio.StreamReader) -> bytes | None:
        """
        Next line including its newline, b"" at EOF, or None when the line
        was longer than the stream limit and has been dropped whole.
        """
        try:
            return await stdout.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError:
            pass

        # discard the rest of the oversized line, however it arrives
        while True:
            try:
                await stdout.readuntil(b"\n")
                return None
            except asyncio.LimitOverrunError as e:
                await stdout.readexactly(e.consumed)
            except asyncio.IncompleteReadError:
                return None

    async def _read_lines(self, stdout: asyncio.StreamReader, result: SessionResult) -> SessionOutcome:
        while True:
            try:
                raw = await asyncio.wait_for(self._next_line(stdout), self.timeout)
            except asyncio.TimeoutError:
                logger.info(f"Ping took longer than {self.timeout:g} seconds.")
                return SessionOutcome.STALL

            if raw is None:
                result.malformed += 1
                logger.warning("Couldn't parse: probe line exceeds the stream buffer limit")
                continue

            if not raw:
                logger.info("Probe gave no more lines")
                return SessionOutcome.EOF

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            logger.debug(f"Line: {line}")
            try:
                sample = parse_sample(line)
            except SampleParseError as e:
                result.malformed += 1
                logger.warning(f"Couldn't parse: {e}")
                continue

            self.sink.append(sample)
            result.samples += 1

    async def run_session(self) -> SessionResult:
        """
        Run one probe lifecycle end to end.

        Raises:
            ProbeSpawnError: the probe could not be started.
            SampleSinkError: a sample could not be persisted.
        """
        proc = await self._spawn()
        cancel = asyncio.Event()
        watcher = asyncio.create_task(self._watch(proc, cancel))
        result = SessionResult(outcome=SessionOutcome.EOF, returncode=None)

        try:
            result.outcome = await self._read_lines(proc.stdout, result)
        finally:
            cancel.set()
            result.returncode = await watcher

        logger.debug(
            f"Session finished: outcome={result.outcome.value} samples={result.samples} "
            f"malformed={result.malformed} returncode={result.returncode}"
        )
        return result


async def run_forever(supervisor: ProbeSupervisor) -> None:
    """
    Restart loop: start a new session as soon as the previous one ends.

    There is no backoff; EOF or a stall already rate-limits restarts.
    Spawn and sink failures propagate and end the loop.
    """
    sessions = 0
    while True:
        sessions += 1
        logger.debug(f"Starting probe session #{sessions}")
        result = await supervisor.run_session()
        logger.info(f"Restarting probe after {result.outcome.value} (session #{sessions})")
