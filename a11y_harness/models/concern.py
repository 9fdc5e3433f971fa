"""Accessibility concern models produced by the Continuum engine wrapper.

All models use Pydantic v2 with frozen=True for immutability.
A concern is created once per raw engine finding and never changes after.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Standard(BaseModel, frozen=True):
    """An accessibility standard, e.g. WCAG 2.1 Level AA."""
    id: int
    name: str


class FixType(BaseModel, frozen=True):
    """How a concern can be fixed, as reported by the engine."""
    dom_spec: bool | None = None  # True = page-specific fix, False = general
    helper_text: str | None = None

    @property
    def is_page_specific(self) -> bool:
        return bool(self.dom_spec)


class BestPractice(BaseModel, frozen=True):
    """Best-practice data fetched from AMP.

    Every field is required: an entry is either complete or not attached
    to a concern at all.
    """
    id: int
    name: str
    severity: int            # 1-10
    noticeability: int       # 1-10
    tractability: int        # 1-10
    details_url: str
    standards: tuple[Standard, ...] = ()  # sorted by name


class AccessibilityConcern(BaseModel, frozen=True):
    """One detected issue instance on a page."""
    path: str = ""                      # CSS selector or XPath of the element
    engine_test_id: int | None = None
    attribute: str = ""                 # human-readable description of the failure
    best_practice_id: int | None = None
    element: str = ""                   # offending markup
    fix_type: FixType | None = None
    needs_review: bool = False
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    best_practice: BestPractice | None = None

    @property
    def best_practice_description(self) -> str | None:
        return self.best_practice.name if self.best_practice else None

    @property
    def severity(self) -> int | None:
        return self.best_practice.severity if self.best_practice else None

    @property
    def noticeability(self) -> int | None:
        return self.best_practice.noticeability if self.best_practice else None

    @property
    def tractability(self) -> int | None:
        return self.best_practice.tractability if self.best_practice else None

    @property
    def best_practice_details_url(self) -> str | None:
        return self.best_practice.details_url if self.best_practice else None

    @property
    def best_practice_standards(self) -> tuple[Standard, ...] | None:
        return self.best_practice.standards if self.best_practice else None

    def to_json_dict(self) -> dict[str, Any]:
        """Readable JSON form of the concern. The raw engine payload is never included."""
        standards = self.best_practice_standards
        return {
            "path": self.path,
            "engineTestId": self.engine_test_id,
            "attribute": self.attribute,
            "bestPracticeId": self.best_practice_id,
            "element": self.element,
            "fixType": (
                {"domSpec": self.fix_type.dom_spec, "helperText": self.fix_type.helper_text}
                if self.fix_type else None
            ),
            "needsReview": self.needs_review,
            "bestPracticeDescription": self.best_practice_description,
            "severity": self.severity,
            "noticeability": self.noticeability,
            "tractability": self.tractability,
            "bestPracticeDetailsUrl": self.best_practice_details_url,
            "bestPracticeStandards": (
                [s.model_dump() for s in standards] if standards is not None else None
            ),
        }
