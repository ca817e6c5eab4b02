from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from collectors_helper.config import CollectorConfig, ConfigValidationError, load_collector_config
from collectors_helper.runtime.android.controller import AndroidController, DeviceShell
from collectors_helper.runtime.polling import Clock, SystemClock
from collectors_helper.simpleperf.helper import SimpleperfHelper

logger = logging.getLogger(__name__)

_LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=_LOG_FORMAT)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Collect simpleperf samples and report metrics from an Android device."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Collector config (YAML or JSON). CLI flags override it.",
    )
    parser.add_argument("--serial", type=str, default=os.environ.get("ANDROID_SERIAL"))
    parser.add_argument("--adb_path", type=str, default=os.environ.get("COLLECTORS_ADB_PATH"))
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("status", help="Exit 0 if simpleperf is running on the device, else 1.")

    pid_p = sub.add_parser("pid", help="Print the PID(s) of a process on the device.")
    pid_p.add_argument("process", type=str)

    record_p = sub.add_parser("record", help="Run one sampling session and keep its record.")
    record_p.add_argument("--subcommand", type=str, default="record")
    record_p.add_argument(
        "--args",
        dest="arguments",
        type=str,
        default="",
        help='simpleperf arguments, e.g. "-e cpu-cycles -p 680".',
    )
    record_p.add_argument(
        "--dest",
        type=str,
        required=True,
        help="Device path the record is moved to once sampling stops.",
    )
    record_p.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to sample before stopping (Ctrl-C stops early).",
    )
    record_p.add_argument(
        "--pull",
        type=Path,
        default=None,
        help="Optional host path to pull the record to.",
    )

    report_p = sub.add_parser("report", help="Report per-process and per-symbol event counts.")
    report_p.add_argument("--record", type=str, required=True, help="Device path of the record.")
    report_p.add_argument("--process", action="append", required=True, dest="processes")
    report_p.add_argument("--symbol", action="append", default=[], dest="symbols")
    return parser


def _load_config(args: argparse.Namespace) -> CollectorConfig:
    if args.config is None:
        return CollectorConfig()
    return load_collector_config(args.config)


def _build_device(args: argparse.Namespace, config: CollectorConfig) -> AndroidController:
    return AndroidController(
        adb_path=args.adb_path or config.adb.adb_path,
        serial=args.serial or config.adb.serial,
        timeout_s=config.adb.timeout_s,
    )


def _record(
    helper: SimpleperfHelper,
    args: argparse.Namespace,
    *,
    device: DeviceShell,
    clock: Clock,
) -> int:
    if not helper.start_collecting(args.subcommand, args.arguments):
        return 1
    try:
        clock.sleep(max(0.0, float(args.duration)))
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping simpleperf early.")

    if not helper.stop_collecting(args.dest):
        return 1
    print(f"Wrote record -> {args.dest}")

    if args.pull is not None:
        if not isinstance(device, AndroidController):
            logger.error("--pull needs an adb device")
            return 1
        res = device.pull_file(args.dest, args.pull, check=False)
        if not res.ok():
            logger.error("adb pull failed: %s", res.output.strip())
            return 1
        print(f"Pulled record -> {args.pull}")
    return 0


def _report(helper: SimpleperfHelper, args: argparse.Namespace) -> int:
    process_to_pid: dict[str, str] = {}
    for process in args.processes:
        pid = helper.get_pid(process)
        if not pid:
            logger.error("Process %s is not running on the device", process)
            return 1
        process_to_pid[process] = pid

    result = helper.get_simpleperf_report_result(args.record, process_to_pid, args.symbols)
    print(json.dumps(result.metrics, indent=2, sort_keys=True))
    if not result.complete:
        logger.warning("Report is partial: %s", result.error)
        return 2
    return 0


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    device: DeviceShell | None = None,
    clock: Clock | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = _load_config(args)
    except (ConfigValidationError, FileNotFoundError, ValueError) as e:
        parser.error(str(e))

    device = device or _build_device(args, config)
    clock = clock or SystemClock()
    helper = SimpleperfHelper(device, config=config.simpleperf, clock=clock)

    if args.cmd == "status":
        running = helper.is_simpleperf_running()
        print("running" if running else "not running")
        return 0 if running else 1

    if args.cmd == "pid":
        pid = helper.get_pid(args.process)
        if not pid:
            return 1
        print(pid)
        return 0

    if args.cmd == "record":
        return _record(helper, args, device=device, clock=clock)

    if args.cmd == "report":
        return _report(helper, args)

    raise SystemExit(f"unknown subcommand: {args.cmd}")  # pragma: no cover


if __name__ == "__main__":
    raise SystemExit(main())
