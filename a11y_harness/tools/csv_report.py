"""Write CSV reports for each engine.

Column order is fixed; existing report consumers depend on it.
No file is written when there is nothing to report.
"""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from a11y_harness.models.concern import AccessibilityConcern

from .axe_checker import AxeCheckResult
from .pa11y_runner import Pa11yResult

logger = logging.getLogger(__name__)

CONTINUUM_HEADER = [
    "page", "path", "element", "attribute", "bestPracticeDescription", "Standard", "Notes-Comments",
]
PA11Y_HEADER = ["code", "context", "message", "type", "selector", "Notes-Comments"]
AXE_HEADER = ["URL", "Violation Type", "Impact", "Help", "HTML Element", "Messages", "DOM Element"]

NOTES_PLACEHOLDER = "**  "


def report_slug(name: str) -> str:
    """Test-case name as used in axe report file names."""
    return name.lower().replace(" ", "_")


def _write(path: Path, header: Sequence[str], rows: list[list[str]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    logger.info("Wrote %d row(s) to %s", len(rows), path)
    return path


def _standards_json(concern: AccessibilityConcern) -> str:
    standards = concern.best_practice_standards
    if standards is None:
        return "null"
    return json.dumps([s.model_dump() for s in standards])


def write_continuum_report(
    concerns: Iterable[AccessibilityConcern],
    page: str,
    reports_dir: str | Path,
) -> Path | None:
    """Write <page>-continuum-report.csv. Returns the path, or None if empty."""
    rows = [
        [
            page,
            c.path,
            c.element,
            c.attribute,
            c.best_practice_description or "",
            _standards_json(c),
            NOTES_PLACEHOLDER,
        ]
        for c in concerns
    ]
    if not rows:
        return None
    return _write(Path(reports_dir) / f"{page}-continuum-report.csv", CONTINUUM_HEADER, rows)


def write_pa11y_report(result: Pa11yResult, page: str, reports_dir: str | Path) -> Path | None:
    """Write <page>-pa11y-report.csv. Returns the path, or None if empty."""
    rows = [
        [i.code, i.context, i.message, i.type, i.selector, NOTES_PLACEHOLDER]
        for i in result.issues
    ]
    if not rows:
        return None
    return _write(Path(reports_dir) / f"{page}-pa11y-report.csv", PA11Y_HEADER, rows)


def write_axe_report(result: AxeCheckResult, test_case_name: str, reports_dir: str | Path) -> Path | None:
    """Write <test case>-axe-violations.csv, one row per failing node."""
    rows = []
    for v in result.violations:
        for node in v.nodes:
            rows.append([
                result.url,
                v.rule_id,
                v.impact,
                v.help_text,
                node.html,
                node.failure_summary,
                " ".join(node.target),
            ])
    if not rows:
        return None
    path = Path(reports_dir) / f"{report_slug(test_case_name)}-axe-violations.csv"
    return _write(path, AXE_HEADER, rows)
