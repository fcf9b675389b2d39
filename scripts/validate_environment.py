#!/usr/bin/env python3
"""Validate local lottery environment readiness."""

from __future__ import annotations

import importlib
import io
import random
import sys
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.models import Entry, Gender
from backend.repository.result_exporter import export_to_excel, export_to_pdf
from backend.repository.roster_reader import read_roster
from backend.services.allocation_service import allocate, summarize_allocation
from backend.services.shuffler import Shuffler

SEPARATOR_LINE = "=" * 44

SMOKE_ENTRIES = [
    Entry("E001", Gender.MALE, "南-16-1-1001-A"),
    Entry("E002", Gender.MALE, "南-16-1-1001-B"),
    Entry("E003", Gender.FEMALE, "南-16-1-1002-A"),
    Entry("E004", Gender.FEMALE, "南-16-1-1002-B"),
    Entry("E005", Gender.MALE, "南-16-1-1003"),
]


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1 — Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 — Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("multipart", "python-multipart"),
        ("pandas", "pandas"),
        ("openpyxl", "openpyxl"),
        ("xlrd", "xlrd"),
        ("reportlab", "reportlab"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{dist_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 3 — Smoke allocation
    assignments = []
    try:
        assignments = allocate(SMOKE_ENTRIES, Shuffler(random.Random(7)))
        summary = summarize_allocation(SMOKE_ENTRIES, assignments)
        if not summary.is_complete:
            raise RuntimeError(f"expected a complete draw, got {summary}")
        ok, line = _print_result("Smoke allocation", True, f": {len(assignments)} assigned")
    except Exception as exc:
        ok, line = _print_result("Smoke allocation", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4 — Spreadsheet round trip through the roster reader
    try:
        workbook = export_to_excel(assignments)
        parsed = read_roster(_strip_position_column(workbook), "check.csv")
        if len(parsed.entries) != len(assignments):
            raise RuntimeError(f"expected {len(assignments)} rows, got {len(parsed.entries)}")
        ok, line = _print_result("Spreadsheet export/import", True)
    except Exception as exc:
        ok, line = _print_result("Spreadsheet export/import", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 5 — PDF rendering with CJK font
    try:
        pdf_bytes = export_to_pdf(assignments)
        if not pdf_bytes.startswith(b"%PDF"):
            raise RuntimeError("output is not a PDF document")
        ok, line = _print_result("PDF export", True, f": {len(pdf_bytes)} bytes")
    except Exception as exc:
        ok, line = _print_result("PDF export", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    print(SEPARATOR_LINE)
    print(" Lottery Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


def _strip_position_column(workbook: bytes) -> bytes:
    """Turn an exported workbook back into a three-column roster CSV."""
    frame = pd.read_excel(io.BytesIO(workbook), engine="openpyxl", dtype=str)
    return frame.iloc[:, 1:].to_csv(index=False).encode("utf-8")


if __name__ == "__main__":
    raise SystemExit(main())
