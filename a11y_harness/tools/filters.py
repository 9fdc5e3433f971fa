"""Filters over accessibility concerns.

A None criterion matches nothing, so each filter returns an empty list.
"""

from __future__ import annotations

from collections.abc import Iterable

from a11y_harness.models.concern import AccessibilityConcern


def filter_by_standards(
    concerns: Iterable[AccessibilityConcern] | None,
    standard_ids: Iterable[int] | None,
) -> list[AccessibilityConcern]:
    """Keep concerns whose best practice maps to any of the given standards."""
    if concerns is None or standard_ids is None:
        return []
    wanted = set(standard_ids)
    return [
        c for c in concerns
        if any(s.id in wanted for s in (c.best_practice_standards or ()))
    ]


def filter_by_best_practices(
    concerns: Iterable[AccessibilityConcern] | None,
    best_practice_ids: Iterable[int] | None,
) -> list[AccessibilityConcern]:
    if concerns is None or best_practice_ids is None:
        return []
    wanted = set(best_practice_ids)
    return [c for c in concerns if c.best_practice_id in wanted]


def filter_by_engine_tests(
    concerns: Iterable[AccessibilityConcern] | None,
    engine_test_ids: Iterable[int] | None,
) -> list[AccessibilityConcern]:
    if concerns is None or engine_test_ids is None:
        return []
    wanted = set(engine_test_ids)
    return [c for c in concerns if c.engine_test_id in wanted]


def _at_least(
    concerns: Iterable[AccessibilityConcern] | None,
    attribute: str,
    minimum: int | None,
) -> list[AccessibilityConcern]:
    if concerns is None or minimum is None:
        return []
    result = []
    for concern in concerns:
        value = getattr(concern, attribute)
        if value is not None and value >= minimum:
            result.append(concern)
    return result


def filter_by_min_severity(concerns, minimum: int | None) -> list[AccessibilityConcern]:
    return _at_least(concerns, "severity", minimum)


def filter_by_min_tractability(concerns, minimum: int | None) -> list[AccessibilityConcern]:
    return _at_least(concerns, "tractability", minimum)


def filter_by_min_noticeability(concerns, minimum: int | None) -> list[AccessibilityConcern]:
    return _at_least(concerns, "noticeability", minimum)
