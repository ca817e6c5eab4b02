"""Start/stop simpleperf sample collection and turn its report into metrics.

Everything goes through an injected `DeviceShell`; the helper never owns a
global device handle. Failures are logged and reported as `False` (or as a
partial metrics mapping), never raised.
"""

from __future__ import annotations

import logging
import posixpath
import re
import shlex
import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Dict, Optional

from collectors_helper.config.loader import SimpleperfConfig
from collectors_helper.runtime.android.controller import (
    AdbResult,
    AndroidControllerError,
    DeviceShell,
)
from collectors_helper.runtime.polling import Clock, SystemClock, poll_until
from collectors_helper.simpleperf.report import ReportParseResult, parse_simpleperf_report

logger = logging.getLogger(__name__)

SIMPLEPERF_START_CMD = "{binary} {subcommand} -o {output} {arguments}"
SIMPLEPERF_STOP_CMD = "pkill -INT {binary}"
SIMPLEPERF_REPORT_CMD = "{binary} report -i {path} --pids {pids} --sort pid,symbol -o {report}"
PROC_ID_CMD = "pidof {process}"
MKDIR_CMD = "mkdir -p {directory}"
MOVE_CMD = "mv {src} {dst}"
READ_CMD = "cat {path}"

_PIDS_RE = re.compile(r"^\d+(?:\s+\d+)*$")


class SimpleperfLaunch:
    """Handle for the background worker running the simpleperf start command.

    The start command only returns once simpleperf exits, so the worker
    usually outlives `start_collecting`. Callers may wait for its output or
    abandon it; an abandoned launch still runs to completion.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        self.future: Future[str] = Future()
        self._thread: threading.Thread | None = None
        self._abandoned = False

    def start(self, device: DeviceShell, *, timeout_s: float | None) -> None:
        def _run() -> None:
            self.future.set_running_or_notify_cancel()
            logger.info("Start command: %s", self.command)
            try:
                res = device.execute_shell_command(self.command, timeout_s=timeout_s)
            except Exception as e:  # noqa: BLE001 - surfaced through the future
                logger.error("Failed to start simpleperf: %s", e)
                self.future.set_exception(e)
                return
            if not res.ok():
                logger.error(
                    "Simpleperf start command exited with rc=%d: %s",
                    res.returncode,
                    res.stderr.strip(),
                )
            logger.info("Simpleperf start command output - %s", res.stdout)
            self.future.set_result(res.stdout)

        self._thread = threading.Thread(target=_run, name="simpleperf-launch", daemon=True)
        self._thread.start()

    def done(self) -> bool:
        return self.future.done()

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def wait(self, timeout: float | None = None) -> Optional[str]:
        """Return the start command output, or None if it is still running or failed."""
        try:
            return self.future.result(timeout=timeout)
        except FutureTimeoutError:
            return None
        except Exception:  # noqa: BLE001 - already logged by the worker
            return None

    def abandon(self) -> None:
        # Only stops tracking; the worker is never cancelled and keeps running
        # until simpleperf exits.
        self._abandoned = True


class SimpleperfHelper:
    """Drive simpleperf on a device and collect its output and report metrics."""

    def __init__(
        self,
        device: DeviceShell,
        *,
        config: SimpleperfConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._device = device
        self._config = config or SimpleperfConfig()
        self._clock = clock or SystemClock()
        self._launch: SimpleperfLaunch | None = None

    @property
    def config(self) -> SimpleperfConfig:
        return self._config

    @property
    def launch(self) -> SimpleperfLaunch | None:
        return self._launch

    @property
    def tmp_output_path(self) -> str:
        return self._config.tmp_output_path

    @property
    def process_name(self) -> str:
        # pidof/pkill match on the executable name, not its path.
        return posixpath.basename(self._config.binary)

    def start_collecting(self, subcommand: str, arguments: str) -> bool:
        """Start simpleperf with `subcommand` and `arguments` writing to the temp record."""

        logger.info("Cleanup simpleperf before starting.")
        if self.is_simpleperf_running():
            logger.info("Simpleperf is already running. Stopping simpleperf.")
            if not self.stop_simpleperf():
                return False

        logger.info("Starting simpleperf")
        command = SIMPLEPERF_START_CMD.format(
            binary=self._config.binary,
            subcommand=subcommand,
            output=shlex.quote(self._config.tmp_output_path),
            arguments=arguments,
        ).strip()
        launch = SimpleperfLaunch(command)
        self._launch = launch
        launch.start(self._device, timeout_s=self._record_timeout())

        if not poll_until(
            self.is_simpleperf_running,
            self._config.start_wait,
            clock=self._clock,
            what="simpleperf start",
        ):
            logger.error("Simpleperf sampling failed to start.")
            return False

        logger.info("Simpleperf sampling started successfully.")
        return True

    def stop_collecting(self, destination_file: str) -> bool:
        """Stop the running session and move the temp record to `destination_file`."""

        logger.info("Stopping simpleperf.")
        if not self.stop_simpleperf():
            logger.error("Simpleperf failed to stop")
            return False
        return self._move_file_output(destination_file)

    def stop_simpleperf(self) -> bool:
        """Send SIGINT to simpleperf and wait for it to exit."""

        if not self.is_simpleperf_running():
            logger.error("Simpleperf stop called, but simpleperf is not running.")
            return False

        try:
            res = self._device.execute_shell_command(
                SIMPLEPERF_STOP_CMD.format(binary=self.process_name)
            )
        except AndroidControllerError as e:
            logger.error("Unable to stop the simpleperf sampling due to %s", e)
            return False
        # pkill exits 1 silently when simpleperf already exited; stderr means adb
        # or pkill itself failed.
        if not res.ok() and res.stderr.strip():
            logger.error("Unable to stop the simpleperf sampling due to %s", res.stderr.strip())
            return False
        logger.info("Simpleperf stop command ran")

        if not poll_until(
            lambda: not self.is_simpleperf_running(),
            self._config.stop_wait,
            clock=self._clock,
            what="simpleperf stop",
        ):
            logger.error("Simpleperf failed to stop")
            return False

        logger.info("Simpleperf stopped successfully.")
        return True

    def get_simpleperf_report(
        self,
        path: str,
        process_to_pid: Mapping[str, str],
        symbols: Iterable[str],
    ) -> Dict[str, str]:
        """Generate a report for the record at `path` and return its metrics.

        Keys are `{event}-{process}` and `{event}-{process}-{symbol}`; on any
        failure the metrics gathered so far are returned.
        """

        return dict(self.get_simpleperf_report_result(path, process_to_pid, symbols).metrics)

    def get_simpleperf_report_result(
        self,
        path: str,
        process_to_pid: Mapping[str, str],
        symbols: Iterable[str],
    ) -> ReportParseResult:
        wanted = frozenset(symbols)
        report_path = f"{path}.txt"
        results: Dict[str, str] = {}

        for process, pid in process_to_pid.items():
            pids = ",".join(str(pid).split())
            command = SIMPLEPERF_REPORT_CMD.format(
                binary=self._config.binary,
                path=shlex.quote(path),
                pids=shlex.quote(pids),
                report=shlex.quote(report_path),
            )
            try:
                report = self._device.execute_shell_command(command)
                if not report.ok():
                    error = _failure("simpleperf report", report)
                    logger.error("Could not generate report: %s", error)
                    return ReportParseResult(metrics=results, error=error)

                read = self._device.execute_shell_command(
                    READ_CMD.format(path=shlex.quote(report_path))
                )
                if not read.ok():
                    error = _failure(f"read {report_path}", read)
                    logger.error("Could not open report file: %s", error)
                    return ReportParseResult(metrics=results, error=error)
            except AndroidControllerError as e:
                logger.error("Could not generate report: %s", e)
                return ReportParseResult(metrics=results, error=str(e))

            parsed = parse_simpleperf_report(read.stdout, process, wanted)
            results.update(parsed.metrics)
            if not parsed.complete:
                return ReportParseResult(metrics=results, error=parsed.error)

        logger.info("Simpleperf Metrics report collected.")
        return ReportParseResult(metrics=results)

    def get_pid(self, process: str) -> str:
        """Resolve a process name to its PID(s); empty string when unknown."""

        try:
            res = self._device.execute_shell_command(
                PROC_ID_CMD.format(process=shlex.quote(process))
            )
        except Exception as e:  # noqa: BLE001 - lookup is best-effort
            logger.error("Could not resolve PID for %s: %s", process, e)
            return ""
        pids = res.stdout.strip()
        if not res.ok() or not _PIDS_RE.match(pids):
            logger.error("Could not resolve PID for %s: %s", process, res.output.strip())
            return ""
        return pids

    def is_simpleperf_running(self) -> bool:
        try:
            res = self._device.execute_shell_command(
                PROC_ID_CMD.format(process=self.process_name)
            )
        except AndroidControllerError as e:
            logger.error("Unable to check simpleperf status: %s", e)
            return False
        proc_id = res.stdout.strip()
        logger.info("Simpleperf process id - %s", proc_id)
        if res.stderr.strip():
            logger.error("Unable to check simpleperf status: %s", res.stderr.strip())
            return False
        return res.ok() and bool(_PIDS_RE.match(proc_id))

    def _record_timeout(self) -> float:
        # 0 tells the controller not to time the launch out.
        timeout = self._config.record_timeout_s
        return 0.0 if timeout is None else float(timeout)

    def _move_file_output(self, destination_file: str) -> bool:
        src = self._config.tmp_output_path
        dest_directory = posixpath.dirname(destination_file)

        try:
            if dest_directory:
                mkdir = self._device.execute_shell_command(
                    MKDIR_CMD.format(directory=shlex.quote(dest_directory))
                )
                if not mkdir.ok() or mkdir.output.strip():
                    logger.error(
                        "Result output directory %s not created successfully: %s",
                        dest_directory,
                        mkdir.output.strip(),
                    )
                    return False

            move = self._device.execute_shell_command(
                MOVE_CMD.format(src=shlex.quote(src), dst=shlex.quote(destination_file))
            )
        except AndroidControllerError as e:
            logger.error("Unable to move the simpleperf sample file to destination file. %s", e)
            return False

        if not move.ok() or move.output.strip():
            logger.error(
                "Unable to move simpleperf output file from %s to %s due to %s",
                src,
                destination_file,
                move.output.strip(),
            )
            return False
        return True


def _failure(what: str, res: AdbResult) -> str:
    detail = res.output.strip() or "no output"
    return f"{what} failed (rc={res.returncode}): {detail}"
