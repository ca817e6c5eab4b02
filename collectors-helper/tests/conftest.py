from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    src = repo_root / "collectors-helper" / "src"
    src_str = str(src)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)

    # Shared fakes live under `tests/unit/` (e.g., fake device shell).
    unit_tests_root = Path(__file__).resolve().parent / "unit"
    unit_tests_root_str = str(unit_tests_root)
    if unit_tests_root.is_dir() and unit_tests_root_str not in sys.path:
        sys.path.insert(0, unit_tests_root_str)


_ensure_src_on_path()
