"""Run axe-core checks on a live web page via Playwright.

Wraps axe-playwright-python, running the wcag2a, wcag2aa, section508 and
best-practice rule sets against a page. Results feed the axe CSV report.

Requires: playwright, axe-playwright-python
Install browsers: python -m playwright install chromium
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_AXE_TAGS = ["wcag2aa", "wcag2a", "section508", "best-practice"]


@dataclass
class AxeNode:
    """One element that failed an axe rule."""
    html: str = ""
    target: list[str] = field(default_factory=list)  # CSS selector path
    failure_summary: str = ""


@dataclass
class AxeViolation:
    """A single axe-core violation."""
    rule_id: str               # e.g. "color-contrast", "image-alt"
    impact: str                # "critical", "serious", "moderate", "minor"
    description: str           # what the rule checks
    help_text: str             # how to fix
    help_url: str              # link to deque docs
    wcag_criteria: list[str] = field(default_factory=list)  # e.g. ["1.1.1", "1.4.3"]
    nodes: list[AxeNode] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return len(self.nodes)


@dataclass
class AxeCheckResult:
    """Result of running axe-core on a page."""
    success: bool
    url: str = ""
    page_title: str = ""
    violations: list[AxeViolation] = field(default_factory=list)
    passes_count: int = 0
    incomplete_count: int = 0
    inapplicable_count: int = 0
    error: str = ""

    @property
    def violation_count(self) -> int:
        return len(self.violations)


def _extract_wcag_criteria(tags: list[str]) -> list[str]:
    """Extract WCAG criterion IDs from axe-core tags.

    axe tags like 'wcag111' map to criterion '1.1.1',
    'wcag1410' maps to '1.4.10', etc.
    """
    criteria = []
    for tag in tags:
        if tag.startswith("wcag") and tag[4:].isdigit():
            digits = tag[4:]
            if len(digits) >= 3:
                criteria.append(f"{digits[0]}.{digits[1]}.{digits[2:]}")
    return criteria


def parse_axe_response(response: dict[str, Any], url: str = "", page_title: str = "") -> AxeCheckResult:
    """Turn the raw axe.run() response into an AxeCheckResult."""
    violations = []
    for v in response.get("violations", []):
        nodes = [
            AxeNode(
                html=node.get("html", ""),
                target=[str(t) for t in node.get("target", [])],
                failure_summary=node.get("failureSummary", ""),
            )
            for node in v.get("nodes", [])
        ]
        violations.append(AxeViolation(
            rule_id=v.get("id", ""),
            impact=v.get("impact") or "",
            description=v.get("description", ""),
            help_text=v.get("help", ""),
            help_url=v.get("helpUrl", ""),
            wcag_criteria=_extract_wcag_criteria(v.get("tags", [])),
            nodes=nodes,
        ))

    return AxeCheckResult(
        success=True,
        url=url or response.get("url", ""),
        page_title=page_title,
        violations=violations,
        passes_count=len(response.get("passes", [])),
        incomplete_count=len(response.get("incomplete", [])),
        inapplicable_count=len(response.get("inapplicable", [])),
    )


def run_axe_on_page(page: Any, tags: list[str] | None = None) -> AxeCheckResult:
    """Run axe-core on an already-open Playwright page."""
    try:
        from axe_playwright_python.sync_playwright import Axe
    except ImportError:
        return AxeCheckResult(
            success=False,
            error="axe-playwright-python not installed. Run: pip install axe-playwright-python",
        )

    try:
        results = Axe().run(
            page,
            options={"runOnly": {"type": "tag", "values": tags or DEFAULT_AXE_TAGS}},
        )
        return parse_axe_response(results.response, url=page.url, page_title=page.title())
    except Exception as e:
        logger.exception("axe-core check failed")
        return AxeCheckResult(success=False, url=getattr(page, "url", ""), error=f"axe-core check failed: {e}")


def check_url_accessibility(url: str, tags: list[str] | None = None) -> AxeCheckResult:
    """Open url in headless Chromium and run axe-core on it.

    Args:
        url: Page to check.
        tags: axe-core rule tags to run. Defaults to DEFAULT_AXE_TAGS.

    Returns:
        AxeCheckResult with violations and pass/fail counts.
    """
    try:
        from playwright.sync_api import sync_playwright
    except ImportError:
        return AxeCheckResult(
            success=False,
            url=url,
            error="playwright not installed. Run: pip install playwright && python -m playwright install chromium",
        )

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch()
            try:
                page = browser.new_page()
                page.goto(url)
                return run_axe_on_page(page, tags)
            finally:
                browser.close()
    except Exception as e:
        logger.exception("axe-core check failed")
        return AxeCheckResult(success=False, url=url, error=f"axe-core check failed: {e}")


def format_axe_report(result: AxeCheckResult) -> str:
    """Format an axe check result as human-readable text."""
    if not result.success:
        return f"axe-core check failed: {result.error}"

    lines = [
        f"axe-core Report for {result.url or 'page'}",
        f"Violations: {result.violation_count}",
        f"Passes: {result.passes_count}",
        f"Incomplete: {result.incomplete_count}",
        "",
    ]

    for v in result.violations:
        criteria_str = ", ".join(v.wcag_criteria) if v.wcag_criteria else "N/A"
        lines.append(f"[{v.impact.upper()}] {v.rule_id} (WCAG {criteria_str})")
        lines.append(f"  {v.description}")
        lines.append(f"  Fix: {v.help_text}")
        lines.append(f"  Affected: {v.node_count} element(s)")
        for node in v.nodes[:3]:
            lines.append(f"    - {node.html[:100]}")
        lines.append("")

    return "\n".join(lines)
