"""Best-practice metadata from AMP, used to enrich accessibility concerns.

Fetching is best-effort: any failure is logged and an empty catalog is
returned, so concerns are simply left unenriched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from a11y_harness.config import DEFAULT_ACCESSIBILITY_STANDARD_IDS
from a11y_harness.models.concern import BestPractice, Standard

from .errors import AmpError
from .network import AmpClient

logger = logging.getLogger(__name__)

BEST_PRACTICES_PATH = "/api/cont/bestpractices"


def parse_int(value: Any) -> int | None:
    """Parse an integer id. Unparsable values and 0 become None."""
    if isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed or None


def parse_score(value: Any) -> int | None:
    """Parse a 1-10 severity/noticeability/tractability score, or None."""
    parsed = parse_int(value)
    if parsed is None or not 1 <= parsed <= 10:
        return None
    return parsed


def parse_standards(
    raw_standards: Any,
    standard_ids: Iterable[int] | None = DEFAULT_ACCESSIBILITY_STANDARD_IDS,
) -> tuple[Standard, ...]:
    """Turn AMP's {standardId: name} map into Standards, deduplicated and sorted by name."""
    if not isinstance(raw_standards, dict):
        return ()
    allowed = set(standard_ids) if standard_ids is not None else None
    by_id: dict[int, Standard] = {}
    for key, name in raw_standards.items():
        standard_id = parse_int(key)
        if standard_id is None or not name:
            continue
        if allowed is not None and standard_id not in allowed:
            continue
        by_id[standard_id] = Standard(id=standard_id, name=str(name).strip())
    return tuple(sorted(by_id.values(), key=lambda s: s.name))


def parse_best_practices(
    data: Any,
    standard_ids: Iterable[int] | None = DEFAULT_ACCESSIBILITY_STANDARD_IDS,
) -> dict[int, BestPractice]:
    """Build a catalog keyed by best-practice id from the AMP payload.

    Entries missing any field are skipped.
    """
    catalog: dict[int, BestPractice] = {}
    if not isinstance(data, list):
        return catalog

    for entry in data:
        if not isinstance(entry, dict):
            continue
        best_practice_id = parse_int(entry.get("bestPracticeID"))
        if best_practice_id is None:
            continue
        try:
            catalog[best_practice_id] = BestPractice(
                id=best_practice_id,
                name=entry.get("name"),
                severity=parse_score(entry.get("severity")),
                noticeability=parse_score(entry.get("noticeability")),
                tractability=parse_score(entry.get("tractability")),
                details_url=entry.get("href"),
                standards=parse_standards(entry.get("standards"), standard_ids),
            )
        except ValidationError:
            logger.debug("Skipping incomplete best practice %s", best_practice_id)
    return catalog


def fetch_best_practices(
    client: AmpClient,
    standard_ids: Iterable[int] | None = DEFAULT_ACCESSIBILITY_STANDARD_IDS,
) -> dict[int, BestPractice]:
    """Fetch and parse best-practice data. Returns {} on any failure."""
    try:
        data = client.get(BEST_PRACTICES_PATH, include_token=False)
    except AmpError as e:
        logger.warning(
            "Failed to fetch best practice data from AMP; accessibility concerns "
            "will not be enriched: %s", e,
        )
        return {}

    catalog = parse_best_practices(data, standard_ids)
    logger.info("Loaded %d best practice(s) from AMP", len(catalog))
    return catalog
