from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from collectors_helper.runtime.polling import PollingPolicy

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "collector_config.schema.json"

SIMPLEPERF_TMP_FILE_PATH = "/data/local/tmp/perf.data"
SIMPLEPERF_START_WAIT = PollingPolicy(max_retries=3, delay_s=1.0)
SIMPLEPERF_STOP_WAIT = PollingPolicy(max_retries=12, delay_s=5.0)


class ConfigValidationError(RuntimeError):
    pass


@dataclass(frozen=True)
class AdbConfig:
    adb_path: str = "adb"
    serial: Optional[str] = None
    timeout_s: float = 30.0


@dataclass(frozen=True)
class SimpleperfConfig:
    binary: str = "simpleperf"
    tmp_output_path: str = SIMPLEPERF_TMP_FILE_PATH
    # None: the launch waits for as long as the record runs.
    record_timeout_s: Optional[float] = None
    start_wait: PollingPolicy = SIMPLEPERF_START_WAIT
    stop_wait: PollingPolicy = SIMPLEPERF_STOP_WAIT


@dataclass(frozen=True)
class CollectorConfig:
    adb: AdbConfig = field(default_factory=AdbConfig)
    simpleperf: SimpleperfConfig = field(default_factory=SimpleperfConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CollectorConfig":
        _check_schema(data)

        adb_raw = dict(data.get("adb") or {})
        perf_raw = dict(data.get("simpleperf") or {})

        adb = AdbConfig(**adb_raw)
        defaults = SimpleperfConfig()
        perf = SimpleperfConfig(
            binary=perf_raw.get("binary", defaults.binary),
            tmp_output_path=perf_raw.get("tmp_output_path", defaults.tmp_output_path),
            record_timeout_s=perf_raw.get("record_timeout_s", defaults.record_timeout_s),
            start_wait=_polling(perf_raw.get("start_wait"), defaults.start_wait),
            stop_wait=_polling(perf_raw.get("stop_wait"), defaults.stop_wait),
        )
        return cls(adb=adb, simpleperf=perf)


def _polling(raw: Mapping[str, Any] | None, default: PollingPolicy) -> PollingPolicy:
    if not raw:
        return default
    return PollingPolicy(
        max_retries=int(raw.get("max_retries", default.max_retries)),
        delay_s=float(raw.get("delay_s", default.delay_s)),
    )


_YAML_SUFFIXES = (".yaml", ".yml")


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in _YAML_SUFFIXES:
        # An empty YAML file is an empty config.
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError(f"Collector config must be .yaml, .yml or .json: {path}")

    if not isinstance(data, dict):
        raise ConfigValidationError(f"Collector config must be a mapping: {path}")
    return data


@lru_cache(maxsize=1)
def _config_validator() -> Draft202012Validator:
    return Draft202012Validator(json.loads(SCHEMA_PATH.read_text(encoding="utf-8")))


def _check_schema(data: Mapping[str, Any]) -> None:
    problems = [
        f"- config:{'/'.join(str(p) for p in e.path)}: {e.message}"
        for e in sorted(_config_validator().iter_errors(dict(data)), key=lambda e: list(e.path))
    ]
    if problems:
        raise ConfigValidationError("\n".join(problems))


def load_collector_config(path: Path) -> CollectorConfig:
    data = _read_config_file(path)
    try:
        return CollectorConfig.from_mapping(data)
    except ConfigValidationError as e:
        raise ConfigValidationError(f"Invalid collector config {path}:\n{e}") from e
