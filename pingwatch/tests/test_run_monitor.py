"""Tests for the entry point wiring."""

import asyncio

import pytest

from pingwatch import run_monitor
from pingwatch.automation.errors import LoggingSetupError, ProbeSpawnError
from pingwatch.automation.settings import MonitorSettings


def _settings(tmp_path, python_cmd):
    return MonitorSettings(
        probe_command=["/nonexistent/pingwatch-probe"],
        sample_log_path=tmp_path / "ping.log",
        throughput_command=python_cmd("print('[1]')"),
        throughput_interval_sec=60,
        throughput_log_path=tmp_path / "speedtest.json",
        log_dir=tmp_path / "logs",
    )


def test_monitor_propagates_spawn_failure(tmp_path, python_cmd):
    """Test a broken probe environment ends the monitor with ProbeSpawnError."""
    settings = _settings(tmp_path, python_cmd)
    with pytest.raises(ProbeSpawnError):
        asyncio.run(run_monitor.monitor(settings, with_throughput=False))


def test_sampler_failure_does_not_stop_probe_loop(tmp_path, python_cmd, log_messages):
    """Test the sampler dying is logged while the probe loop keeps going."""
    throughput_log = tmp_path / "speedtest.json"
    throughput_log.write_text('"not an array"', encoding="utf-8")
    settings = MonitorSettings(
        probe_command=python_cmd("import time\nprint('[t] time=4', flush=True)\ntime.sleep(0.3)\n"),
        probe_timeout_sec=5,
        sample_log_path=tmp_path / "ping.log",
        throughput_command=python_cmd("print('{}')"),
        throughput_log_path=throughput_log,
    )

    async def scenario():
        task = asyncio.create_task(run_monitor.monitor(settings))
        await asyncio.sleep(2.0)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert throughput_log.read_text(encoding="utf-8") == '"not an array"'
    assert any("Throughput sampler stopped" in msg for level, msg in log_messages if level == "ERROR")
    # several sessions ran while the sampler was already dead
    assert (tmp_path / "ping.log").read_text(encoding="utf-8").count("t 4\n") >= 2


def test_main_returns_1_on_fatal_error(tmp_path, monkeypatch):
    """Test main exits non-zero when the probe cannot be spawned."""
    monkeypatch.setenv("PINGWATCH_PROBE_COMMAND", "/nonexistent/pingwatch-probe")
    monkeypatch.setenv("PINGWATCH_SAMPLE_LOG", str(tmp_path / "ping.log"))
    monkeypatch.setenv("PINGWATCH_LOG_DIR", str(tmp_path / "logs"))
    try:
        assert run_monitor.main(["--no-throughput"]) == 1
    finally:
        # setup_logging replaced the test sinks
        from loguru import logger
        logger.remove()
    assert (tmp_path / "logs" / "pingwatch.log").exists()


def test_main_returns_1_when_logging_fails(tmp_path, monkeypatch):
    """Test a logging initialisation failure is a non-zero exit."""
    def _broken(*args, **kwargs):
        raise LoggingSetupError("read-only filesystem")

    monkeypatch.setattr(run_monitor, "setup_logging", _broken)
    monkeypatch.setenv("PINGWATCH_LOG_DIR", str(tmp_path / "logs"))
    assert run_monitor.main(["--no-throughput"]) == 1


def test_main_returns_2_on_invalid_settings(monkeypatch):
    """Test invalid settings are rejected before anything starts."""
    monkeypatch.setenv("PINGWATCH_PROBE_TIMEOUT", "-1")
    assert run_monitor.main([]) == 2
