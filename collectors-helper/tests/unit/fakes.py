from __future__ import annotations

import threading
from typing import Iterable, Mapping, Sequence, Union

from collectors_helper.runtime.android.controller import AdbResult, AndroidControllerError

Output = Union[str, AdbResult]

SAMPLE_REPORT = """\
Cmdline: /system/bin/simpleperf record -e cpu-cycles,instructions -o perf.data -p 680
Arch: arm64
Event: cpu-cycles (type 0, config 0)
Samples: 2000
Event count: 1000

Overhead  Pid  Symbol
10.00%    680   foo()
25.50%    680   android::SurfaceFlinger::commit(long, long, long)
3.00%     680   bar()

Event: instructions (type 0, config 1)
Samples: 1500
Event count: 3498520605

Overhead  Pid  Symbol
0.02%     680   android::SurfaceFlinger::commit(long, long, long)
"""


class FakeDeviceShell:
    """Scripted device shell.

    `outputs` maps a command prefix to either one result or a sequence of
    results consumed in order (the last one repeats). A plain string is a
    successful command with that stdout; use `failed()` for a non-zero exit.
    Commands starting with a prefix in `errors` raise AndroidControllerError.
    Unknown commands succeed with no output.
    """

    def __init__(
        self,
        outputs: Mapping[str, Output | Sequence[Output]] | None = None,
        *,
        errors: Iterable[str] = (),
    ) -> None:
        self._outputs: dict[str, list[Output]] = {}
        for prefix, value in (outputs or {}).items():
            single = isinstance(value, (str, AdbResult))
            self._outputs[prefix] = [value] if single else list(value)
        self._errors = tuple(errors)
        self._lock = threading.Lock()
        self.commands: list[str] = []
        self.timeouts: dict[str, float | None] = {}

    def execute_shell_command(
        self, command: str, *, timeout_s: float | None = None
    ) -> AdbResult:
        with self._lock:
            self.commands.append(command)
            self.timeouts[command] = timeout_s

            if any(command.startswith(p) for p in self._errors):
                raise AndroidControllerError(f"fake adb failure: {command}")

            out: Output = ""
            # Longest prefix wins so `pidof simpleperf` beats `pidof `.
            for prefix in sorted(self._outputs, key=len, reverse=True):
                if command.startswith(prefix):
                    outs = self._outputs[prefix]
                    out = outs.pop(0) if len(outs) > 1 else outs[0]
                    break
        if isinstance(out, AdbResult):
            return out
        return AdbResult(args=["adb", "shell", command], stdout=out, stderr="", returncode=0)

    def count(self, prefix: str) -> int:
        with self._lock:
            return sum(1 for c in self.commands if c.startswith(prefix))


def failed(stderr: str, *, returncode: int = 1, stdout: str = "") -> AdbResult:
    return AdbResult(args=["adb", "shell"], stdout=stdout, stderr=stderr, returncode=returncode)
