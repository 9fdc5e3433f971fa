"""Convert raw Access Engine findings into AccessibilityConcern models."""

from __future__ import annotations

import json
import logging
from typing import Any

from a11y_harness.amp.best_practices import parse_int
from a11y_harness.models.concern import AccessibilityConcern, BestPractice, FixType

logger = logging.getLogger(__name__)

# Engine testResult code for instances that need manual review
NEEDS_REVIEW_TEST_RESULT = 3


def _parse_fix_type(raw_fix_type: Any) -> FixType | None:
    if not isinstance(raw_fix_type, dict):
        return None
    dom_spec = raw_fix_type.get("domSpec")
    helper_text = raw_fix_type.get("helperText")
    if dom_spec is None and helper_text is None:
        return None
    return FixType(
        dom_spec=bool(dom_spec) if dom_spec is not None else None,
        helper_text=str(helper_text) if helper_text is not None else None,
    )


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_finding(
    finding: dict[str, Any],
    catalog: dict[int, BestPractice] | None = None,
) -> AccessibilityConcern:
    """Normalize a single engine finding, enriching it from the catalog when possible."""
    best_practice_id = parse_int(finding.get("bestPracticeId"))
    best_practice = None
    if catalog and best_practice_id is not None:
        best_practice = catalog.get(best_practice_id)

    return AccessibilityConcern(
        path=_as_text(finding.get("path")),
        engine_test_id=parse_int(finding.get("engineTestId")),
        attribute=_as_text(finding.get("attributeDetail")),
        best_practice_id=best_practice_id,
        element=_as_text(finding.get("element")),
        fix_type=_parse_fix_type(finding.get("fixType")),
        needs_review=finding.get("testResult") == NEEDS_REVIEW_TEST_RESULT,
        raw=finding,
        best_practice=best_practice,
    )


def normalize_findings(
    raw_findings: str | list[dict[str, Any]] | None,
    catalog: dict[int, BestPractice] | None = None,
) -> list[AccessibilityConcern]:
    """Normalize engine output into concerns.

    Args:
        raw_findings: The engine's JSON string, an already-decoded list of
            findings, or None.
        catalog: Best-practice data keyed by id. Findings without a
            matching entry are left unenriched.

    Returns:
        One AccessibilityConcern per finding, in engine order.
    """
    if raw_findings is None:
        return []
    if isinstance(raw_findings, str):
        if not raw_findings.strip():
            return []
        raw_findings = json.loads(raw_findings)
    if not isinstance(raw_findings, list):
        return []

    concerns = [
        normalize_finding(finding, catalog)
        for finding in raw_findings
        if isinstance(finding, dict)
    ]
    logger.debug("Normalized %d finding(s)", len(concerns))
    return concerns
