"""Android controller utilities.

A *minimal* adb wrapper used by the collectors. It standardizes:
  * auditable adb commands (stable `args`, captured stdout/stderr)
  * a single shell entry point (`execute_shell_command`) that collectors
    depend on through the `DeviceShell` protocol

Notes
-----
* The controller never retries; bounded polling lives with the callers.
* Invocation failures (missing adb binary, OS errors, timeouts) are always
  raised as `AndroidControllerError` so callers only need one except clause.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class AndroidControllerError(RuntimeError):
    """Raised when an adb operation fails."""


@dataclass(frozen=True)
class AdbResult:
    args: list[str]
    stdout: str
    stderr: str
    returncode: int

    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout or "") + (self.stderr or "")


class DeviceShell(Protocol):
    """Anything that can run a shell command on the device under test."""

    def execute_shell_command(
        self, command: str, *, timeout_s: float | None = None
    ) -> AdbResult:
        """Run `command` on the device.

        A non-zero exit is returned, not raised; callers decide what it means.
        Raises AndroidControllerError when the command could not be run.
        """
        ...


class AndroidController:
    """Thin wrapper around adb for device shell access."""

    def __init__(
        self,
        *,
        adb_path: str = "adb",
        serial: Optional[str] = None,
        timeout_s: float = 30.0,
    ) -> None:
        self._adb_path = adb_path
        self._serial = serial
        self._timeout_s = timeout_s

    @property
    def serial(self) -> Optional[str]:
        return self._serial

    def _base_cmd(self) -> list[str]:
        cmd = [self._adb_path]
        if self._serial:
            cmd += ["-s", self._serial]
        return cmd

    def _resolve_timeout(self, timeout_s: float | None) -> float | None:
        timeout = self._timeout_s if timeout_s is None else float(timeout_s)
        # Non-positive timeouts mean "wait for the command to exit".
        if timeout is None or timeout <= 0:
            return None
        return float(timeout)

    def adb(self, *args: str, timeout_s: float | None = None, check: bool = True) -> AdbResult:
        """Run an adb command and return stdout/stderr/returncode."""

        cmd = self._base_cmd() + list(args)
        logger.debug("adb: %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._resolve_timeout(timeout_s),
            )
        except subprocess.TimeoutExpired as e:
            raise AndroidControllerError(
                f"adb command timed out after {e.timeout}s: {' '.join(cmd)}"
            ) from e
        except OSError as e:
            raise AndroidControllerError(f"adb command could not run: {' '.join(cmd)}: {e}") from e

        result = AdbResult(
            args=cmd,
            stdout=proc.stdout,
            stderr=proc.stderr,
            returncode=proc.returncode,
        )
        if check and not result.ok():
            raise AndroidControllerError(
                f"adb command failed (rc={result.returncode}): {' '.join(cmd)}\n"
                f"stdout: {result.stdout}\n"
                f"stderr: {result.stderr}"
            )
        return result

    def adb_shell(
        self,
        command: str,
        *,
        timeout_s: float | None = None,
        timeout_ms: int | None = None,
        check: bool = True,
    ) -> AdbResult:
        if timeout_ms is not None:
            timeout_s = float(timeout_ms) / 1000.0
        return self.adb("shell", command, timeout_s=timeout_s, check=check)

    def execute_shell_command(
        self, command: str, *, timeout_s: float | None = None
    ) -> AdbResult:
        # `pidof` exits 1 when nothing matches, so the status is left to callers.
        return self.adb_shell(command, timeout_s=timeout_s, check=False)

    def pull_file(
        self, src: str, dst: str | Path, *, timeout_s: float | None = None, check: bool = True
    ) -> AdbResult:
        dst_path = Path(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        return self.adb("pull", str(src), str(dst_path), timeout_s=timeout_s, check=check)
