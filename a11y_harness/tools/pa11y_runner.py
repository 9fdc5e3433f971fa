"""Run pa11y against a URL via its CLI.

pa11y is a Node-based accessibility tester. This module wraps the CLI's
JSON reporter, parsing its output into structured results.

Requires: pa11y installed and on PATH (npm install -g pa11y), or a path
provided explicitly.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# pa11y exit codes: 0 = no issues, 2 = issues found, anything else = error
_OK_EXIT_CODES = (0, 2)


@dataclass
class Pa11yIssue:
    """A single issue reported by pa11y."""
    code: str                 # e.g. "WCAG2AA.Principle1.Guideline1_1.1_1_1.H37"
    context: str = ""         # offending markup
    message: str = ""
    type: str = ""            # "error", "warning", "notice"
    selector: str = ""


@dataclass
class Pa11yResult:
    """Result of running pa11y on a page."""
    success: bool
    url: str = ""
    issues: list[Pa11yIssue] = field(default_factory=list)
    error: str = ""

    @property
    def issue_count(self) -> int:
        return len(self.issues)


def _find_pa11y() -> str | None:
    """Find the pa11y executable on PATH."""
    return shutil.which("pa11y")


def run_pa11y(
    url: str,
    pa11y_path: str | None = None,
    standard: str | None = None,
    timeout_seconds: int = 120,
) -> Pa11yResult:
    """Run pa11y on a URL.

    Args:
        url: Page to test.
        pa11y_path: Path to the pa11y executable. If None, searches PATH.
        standard: Optional pa11y --standard value, e.g. "WCAG2AA".
        timeout_seconds: Maximum time to wait for pa11y.

    Returns:
        Pa11yResult with the issues found.
    """
    exe = pa11y_path or _find_pa11y()
    if not exe:
        return Pa11yResult(
            success=False,
            url=url,
            error="pa11y not found. Install with: npm install -g pa11y",
        )

    cmd = [exe, "--reporter", "json"]
    if standard:
        cmd += ["--standard", standard]
    cmd.append(url)

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        return Pa11yResult(
            success=False,
            url=url,
            error=f"pa11y timed out after {timeout_seconds}s",
        )
    except OSError as e:
        logger.exception("pa11y run failed")
        return Pa11yResult(success=False, url=url, error=f"pa11y run failed: {e}")

    if result.returncode not in _OK_EXIT_CODES:
        return Pa11yResult(
            success=False,
            url=url,
            error=f"pa11y exited with code {result.returncode}: {result.stderr[:500]}",
        )

    return _parse_pa11y_json(result.stdout, url)


def _parse_pa11y_json(json_str: str, url: str) -> Pa11yResult:
    """Parse pa11y's JSON reporter output into a Pa11yResult."""
    if not json_str.strip():
        return Pa11yResult(success=True, url=url)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        return Pa11yResult(
            success=False,
            url=url,
            error=f"Failed to parse pa11y JSON: {e}",
        )

    # The json reporter prints a bare list; the node API wraps it in {"issues": [...]}
    raw_issues = data.get("issues", []) if isinstance(data, dict) else data
    issues = [
        Pa11yIssue(
            code=issue.get("code", ""),
            context=issue.get("context") or "",
            message=issue.get("message", ""),
            type=issue.get("type", ""),
            selector=issue.get("selector", ""),
        )
        for issue in raw_issues or []
        if isinstance(issue, dict)
    ]
    return Pa11yResult(success=True, url=url, issues=issues)
