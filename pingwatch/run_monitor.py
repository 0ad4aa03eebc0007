#!/usr/bin/env python3
"""
pingwatch entry point.

Starts the throughput sampler in the background and runs the probe
restart loop in the foreground until a fatal error or Ctrl-C.
"""
import argparse
import asyncio

from loguru import logger
from pydantic import ValidationError

from pingwatch.automation.errors import LoggingSetupError, PingwatchError
from pingwatch.automation.logging_setup import setup_logging
from pingwatch.automation.probe_supervisor import ProbeSupervisor, run_forever
from pingwatch.automation.sample_sink import SampleSink
from pingwatch.automation.settings import MonitorSettings, load_settings
from pingwatch.services.throughput_sampler import ThroughputSampler


def _report_sampler_exit(task: asyncio.Task) -> None:
    """Throughput failures end that task only; make sure they are visible."""
    if task.cancelled():
        logger.debug("Throughput sampler cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error(f"Throughput sampler stopped: {exc}")


async def monitor(settings: MonitorSettings, with_throughput: bool = True) -> None:
    """Run the probe loop forever, with the throughput sampler alongside."""
    sampler_task = None
    if with_throughput:
        sampler = ThroughputSampler(
            settings.throughput_command,
            settings.throughput_log_path,
            interval=settings.throughput_interval_sec,
        )
        sampler_task = asyncio.create_task(sampler.run_forever(), name="throughput-sampler")
        sampler_task.add_done_callback(_report_sampler_exit)

    try:
        with SampleSink(settings.sample_log_path) as sink:
            supervisor = ProbeSupervisor(
                settings.probe_command, sink, timeout=settings.probe_timeout_sec
            )
            await run_forever(supervisor)
    finally:
        if sampler_task is not None and not sampler_task.done():
            sampler_task.cancel()


def main(argv=None):
    p = argparse.ArgumentParser(description="Continuous latency and throughput monitor")
    p.add_argument("--log-dir", help="directory for pingwatch.log (default: logs)")
    p.add_argument("--console-level", help="console log level (default: INFO)")
    p.add_argument("--no-throughput", action="store_true", help="do not run the throughput sampler")
    args = p.parse_args(argv)

    try:
        settings = load_settings(log_dir=args.log_dir, console_level=args.console_level)
    except ValidationError as e:
        logger.error(f"Invalid settings: {e}")
        return 2

    try:
        _, console = setup_logging(str(settings.log_dir), settings.console_level)
    except LoggingSetupError as e:
        logger.error(str(e))
        return 1

    logger.debug(f"Settings: {settings.model_dump()}")
    console.info(
        f"pingwatch: probing {settings.probe_target} -> {settings.sample_log_path}, "
        f"timeout {settings.probe_timeout_sec:g}s"
    )
    if not args.no_throughput:
        console.info(
            f"Throughput every {settings.throughput_interval_sec:g}s -> {settings.throughput_log_path}"
        )

    try:
        asyncio.run(monitor(settings, with_throughput=not args.no_throughput))
    except KeyboardInterrupt:
        console.info("Stopped by user")
        return 0
    except PingwatchError as e:
        console.error(f"Fatal: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
