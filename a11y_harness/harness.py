"""Scan flows: open a page → run an engine → write the CSV → optionally report to AMP.

Single entry points used by the CLI, one per engine.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from a11y_harness.amp.errors import AmpError
from a11y_harness.amp.network import AmpClient
from a11y_harness.amp.reporting import AmpReportingService
from a11y_harness.config import PUBLIC_URLS, AmpSettings
from a11y_harness.models.amp import ModuleManagementStrategy, ReportManagementStrategy
from a11y_harness.models.concern import AccessibilityConcern
from a11y_harness.tools.axe_checker import check_url_accessibility
from a11y_harness.tools.continuum import Continuum
from a11y_harness.tools.csv_report import (
    write_axe_report,
    write_continuum_report,
    write_pa11y_report,
)
from a11y_harness.tools.pa11y_runner import run_pa11y

logger = logging.getLogger(__name__)


class AmpTarget(BaseModel, frozen=True):
    """Where in AMP a Continuum scan should be reported."""
    organization_id: str
    asset_id: str
    report_id: str | None = None
    report_name: str | None = None
    module_id: str | None = None
    module_name: str | None = None
    module_location: str | None = None
    report_strategy: ReportManagementStrategy = ReportManagementStrategy.APPEND
    module_strategy: ModuleManagementStrategy = ModuleManagementStrategy.APPEND


class ScanResult(BaseModel, frozen=True):
    """Outcome of one scan."""
    success: bool = False
    engine: str = ""
    url: str = ""
    page: str = ""
    finding_count: int = 0
    report_path: str = ""
    submitted_to_amp: bool | None = None  # None = not requested
    error: str = ""


def resolve_url(site: str | None = None, url: str | None = None) -> str:
    """Pick the URL to scan: an explicit url wins over a known site key."""
    if url:
        return url
    if site and site in PUBLIC_URLS:
        return PUBLIC_URLS[site]
    raise ValueError(f"Unknown site {site!r}; known sites: {', '.join(sorted(PUBLIC_URLS))}")


def run_axe_scan(url: str, test_case_name: str, reports_dir: str | Path) -> ScanResult:
    result = check_url_accessibility(url)
    if not result.success:
        return ScanResult(engine="axe", url=url, page=test_case_name, error=result.error)

    logger.info("Analyzing axe results for %s", test_case_name)
    path = write_axe_report(result, test_case_name, reports_dir)
    return ScanResult(
        success=True,
        engine="axe",
        url=url,
        page=test_case_name,
        finding_count=sum(v.node_count for v in result.violations),
        report_path=str(path or ""),
    )


def run_pa11y_scan(url: str, page: str, reports_dir: str | Path) -> ScanResult:
    result = run_pa11y(url)
    if not result.success:
        return ScanResult(engine="pa11y", url=url, page=page, error=result.error)

    path = write_pa11y_report(result, page, reports_dir)
    return ScanResult(
        success=True,
        engine="pa11y",
        url=url,
        page=page,
        finding_count=result.issue_count,
        report_path=str(path or ""),
    )


def submit_to_amp(
    service: AmpReportingService,
    target: AmpTarget,
    concerns: list[AccessibilityConcern],
) -> bool:
    """Point the session at target and submit concerns. AMP errors propagate."""
    service.set_active_organization(target.organization_id)
    service.set_active_asset(target.asset_id)
    if target.report_id:
        service.set_active_report_by_id(target.report_id)
    else:
        service.set_active_report_by_name(target.report_name)
    if target.module_id:
        service.set_active_module_by_id(target.module_id)
    else:
        service.set_active_module_by_name(target.module_name, target.module_location)
    service.set_active_report_management_strategy(target.report_strategy)
    service.set_active_module_management_strategy(target.module_strategy)
    return service.submit_accessibility_concerns(concerns)


def _run_continuum_in_browser(sync_playwright, url: str, engine_path: str | Path, client: AmpClient):
    with sync_playwright() as p:
        browser = p.chromium.launch()
        try:
            page = browser.new_page()
            page.goto(url)
            continuum = Continuum(page, engine_path, amp_client=client)
            continuum.set_up()
            return continuum.run_all_tests()
        finally:
            browser.close()


def run_continuum_scan(
    url: str,
    page_name: str,
    reports_dir: str | Path,
    engine_path: str | Path,
    settings: AmpSettings | None = None,
    amp_target: AmpTarget | None = None,
) -> ScanResult:
    """Run Access Engine on url, write the Continuum CSV and optionally report to AMP."""
    try:
        from playwright.sync_api import sync_playwright
    except ImportError:
        return ScanResult(
            engine="continuum",
            url=url,
            page=page_name,
            error="playwright not installed. Run: pip install playwright && python -m playwright install chromium",
        )

    if not Path(engine_path).exists():
        return ScanResult(
            engine="continuum", url=url, page=page_name,
            error=f"Access Engine script not found: {engine_path}",
        )

    with AmpClient(settings or AmpSettings()) as client:
        try:
            concerns = _run_continuum_in_browser(sync_playwright, url, engine_path, client)
        except Exception as e:
            logger.exception("Continuum scan failed")
            return ScanResult(
                engine="continuum", url=url, page=page_name,
                error=f"Continuum scan failed: {e}",
            )

        path = write_continuum_report(concerns, page_name, reports_dir)

        submitted = None
        if amp_target is not None:
            try:
                submitted = submit_to_amp(AmpReportingService(client), amp_target, concerns)
            except AmpError as e:
                logger.error("AMP submission failed: %s", e)
                return ScanResult(
                    engine="continuum",
                    url=url,
                    page=page_name,
                    finding_count=len(concerns),
                    report_path=str(path or ""),
                    submitted_to_amp=False,
                    error=f"AMP submission failed: {e}",
                )

    return ScanResult(
        success=True,
        engine="continuum",
        url=url,
        page=page_name,
        finding_count=len(concerns),
        report_path=str(path or ""),
        submitted_to_amp=submitted,
    )
