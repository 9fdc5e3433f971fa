"""Run Level Access' Access Engine on a Playwright page (Continuum).

The engine script is injected into the page, run there, and its JSON
output normalized into AccessibilityConcern models. Best-practice data
from AMP is fetched once per set_up() to enrich the concerns.

Requires: playwright, and an Access Engine script (AccessEngine.pro.js or
the community edition) on disk.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from a11y_harness.amp.best_practices import fetch_best_practices, parse_int
from a11y_harness.amp.errors import IllegalStateError
from a11y_harness.amp.network import AmpClient
from a11y_harness.config import DEFAULT_ACCESSIBILITY_STANDARD_IDS, WEB_MEDIA_TYPE_ID
from a11y_harness.models.concern import AccessibilityConcern, BestPractice

from . import filters
from .normalizer import normalize_findings

logger = logging.getLogger(__name__)

ENGINE_GLOBAL = "LevelAccess_AccessEngine"

# Engine test types: 4 = violations, 5 = potential violations
DEFAULT_TEST_TYPES = [4]
POTENTIAL_TEST_TYPES = [4, 5]

_TEST_INFO_SCRIPT = (
    "(testTypes) => LevelAccess_AccessEngine.getTestInfo("
    "{testType: testTypes, columns: ['description', 'bestPractice', 'mediaType']})"
)
_RUN_ALL_SCRIPT = (
    "(testTypes) => LevelAccess_AccessEngine.ast_runAllTests_returnInstances_JSON(testTypes)"
)
_RUN_NODE_SCRIPT = (
    "(selector) => LevelAccess_AccessEngine.runAllTests_returnInstances_JSON_NodeCapture("
    "document.querySelector(selector))"
)
_RUN_NODE_POTENTIAL_SCRIPT = (
    "([selector, testTypes]) => "
    "LevelAccess_AccessEngine.ast_runAllTests_returnInstances_JSON_NodeCapture("
    "document.querySelector(selector), testTypes)"
)


def make_injectable(engine_code: str) -> str:
    """Append the assignment that exposes the engine on window."""
    return engine_code + f"\nwindow.{ENGINE_GLOBAL}={ENGINE_GLOBAL};"


class Continuum:
    """Access Engine wrapper bound to one Playwright page."""

    def __init__(
        self,
        page: Any,
        engine_path: str | Path,
        amp_client: AmpClient | None = None,
        standard_ids: Iterable[int] | None = DEFAULT_ACCESSIBILITY_STANDARD_IDS,
    ):
        self.page = page
        self.engine_path = Path(engine_path)
        self.amp_client = amp_client
        self.standard_ids = standard_ids
        self.include_potential_accessibility_concerns = False
        self.accessibility_concerns: list[AccessibilityConcern] = []
        self.best_practice_data_by_id: dict[int, BestPractice] = {}
        self._engine_code: str | None = None
        self._web_best_practice_ids: set[int] = set()
        self._web_test_name_by_id: dict[int, str] = {}
        self._web_best_practice_name_by_id: dict[int, str] = {}
        self._web_standard_name_by_id: dict[int, str] = {}

    @property
    def is_pro_edition(self) -> bool:
        return ".pro." in self.engine_path.name.lower()

    @property
    def test_types(self) -> list[int]:
        return POTENTIAL_TEST_TYPES if self.include_potential_accessibility_concerns else DEFAULT_TEST_TYPES

    # ── Setup ────────────────────────────────────────────────────────

    def set_up(self) -> None:
        """Inject the engine, load its test info and fetch best-practice data.

        Both lookups are best-effort: on failure Continuum keeps working in a
        degraded state (no supported-test info, no enrichment).
        """
        self._web_best_practice_ids.clear()
        self._web_test_name_by_id.clear()
        try:
            self._load_test_info()
        except Exception:
            logger.warning(
                "Failed to fetch info about tests supported by Access Engine; "
                "get_supported_tests(), get_supported_best_practices() and "
                "get_supported_standards() will not return any data",
                exc_info=True,
            )

        self.best_practice_data_by_id = {}
        self._web_best_practice_name_by_id = {}
        self._web_standard_name_by_id = {}
        if self.amp_client is None:
            logger.info("No AMP client configured; concerns will not be enriched")
            return
        self.best_practice_data_by_id = fetch_best_practices(self.amp_client, self.standard_ids)
        for best_practice_id, best_practice in self.best_practice_data_by_id.items():
            if best_practice_id not in self._web_best_practice_ids:
                continue
            self._web_best_practice_name_by_id[best_practice_id] = best_practice.name
            for standard in best_practice.standards:
                self._web_standard_name_by_id[standard.id] = standard.name

    def _load_engine_code(self) -> str:
        if self._engine_code is None:
            self._engine_code = make_injectable(self.engine_path.read_text(encoding="utf-8"))
        return self._engine_code

    def _inject(self) -> None:
        if self.page.evaluate(f"() => !!window.{ENGINE_GLOBAL}"):
            return
        self.page.add_script_tag(content=self._load_engine_code())

    def _load_test_info(self) -> None:
        self._inject()
        test_info = self.page.evaluate(_TEST_INFO_SCRIPT, self.test_types) or {}
        for test_id_string, info in test_info.items():
            test_id = parse_int(test_id_string)
            if test_id is None or not isinstance(info, dict):
                continue
            if info.get("mediaType") != WEB_MEDIA_TYPE_ID:
                continue
            best_practice_id = parse_int(info.get("bestPractice"))
            if best_practice_id is not None:
                self._web_best_practice_ids.add(best_practice_id)
            self._web_test_name_by_id[test_id] = info.get("description", "")

    def set_include_potential_accessibility_concerns(self, include: bool) -> None:
        """Also report potential violations. Pro edition only; re-runs set_up()."""
        if not self.is_pro_edition:
            raise IllegalStateError(
                "Potential accessibility concerns are not available in the Community "
                "edition of Access Engine"
            )
        self.include_potential_accessibility_concerns = include
        self.set_up()

    # ── Running tests ────────────────────────────────────────────────

    def run_all_tests(self) -> list[AccessibilityConcern]:
        self._inject()
        output = self.page.evaluate(_RUN_ALL_SCRIPT, self.test_types)
        self.accessibility_concerns = normalize_findings(output, self.best_practice_data_by_id)
        logger.info("Access Engine found %d concern(s)", len(self.accessibility_concerns))
        return self.accessibility_concerns

    def run_all_tests_on_node(self, css_selector: str) -> list[AccessibilityConcern]:
        """Run every test against the subtree matched by css_selector."""
        self._inject()
        if self.include_potential_accessibility_concerns:
            output = self.page.evaluate(_RUN_NODE_POTENTIAL_SCRIPT, [css_selector, self.test_types])
        else:
            output = self.page.evaluate(_RUN_NODE_SCRIPT, css_selector)
        self.accessibility_concerns = normalize_findings(output, self.best_practice_data_by_id)
        return self.accessibility_concerns

    def _run(self, css_selector: str | None) -> list[AccessibilityConcern]:
        if css_selector is None:
            return self.run_all_tests()
        return self.run_all_tests_on_node(css_selector)

    def test_for_standards(self, standard_ids, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_standards(self._run(css_selector), standard_ids)
        return self.accessibility_concerns

    def test_for_best_practices(self, best_practice_ids, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_best_practices(
            self._run(css_selector), best_practice_ids,
        )
        return self.accessibility_concerns

    def run_tests(self, engine_test_ids, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_engine_tests(
            self._run(css_selector), engine_test_ids,
        )
        return self.accessibility_concerns

    def test_for_severity(self, min_severity: int | None, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_min_severity(self._run(css_selector), min_severity)
        return self.accessibility_concerns

    def test_for_tractability(self, min_tractability: int | None, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_min_tractability(
            self._run(css_selector), min_tractability,
        )
        return self.accessibility_concerns

    def test_for_noticeability(self, min_noticeability: int | None, css_selector: str | None = None):
        self.accessibility_concerns = filters.filter_by_min_noticeability(
            self._run(css_selector), min_noticeability,
        )
        return self.accessibility_concerns

    # ── Supported tests ──────────────────────────────────────────────

    def get_supported_tests(self) -> dict[int, str]:
        return dict(self._web_test_name_by_id)

    def get_supported_best_practices(self) -> dict[int, str]:
        return dict(self._web_best_practice_name_by_id)

    def get_supported_standards(self) -> dict[int, str]:
        return dict(self._web_standard_name_by_id)
