"""CLI entry point for the accessibility harnesses."""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from a11y_harness import config
from a11y_harness.config import AmpSettings
from a11y_harness.harness import (
    AmpTarget,
    ScanResult,
    resolve_url,
    run_axe_scan,
    run_continuum_scan,
    run_pa11y_scan,
)
from a11y_harness.models.amp import ModuleManagementStrategy, ReportManagementStrategy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a11y-harness",
        description="Run an accessibility engine against a web page and write a CSV report",
    )
    parser.add_argument("engine", choices=["axe", "continuum", "pa11y"], help="Engine to run")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--site", choices=sorted(config.PUBLIC_URLS), help="Known public site")
    target.add_argument("--url", help="URL to scan")
    parser.add_argument("--name", default="", help="Page / test-case name used in report file names")
    parser.add_argument("--reports-dir", default=config.REPORTS_DIR, help="Output directory")
    parser.add_argument("--engine-path", default=config.ACCESS_ENGINE_PATH,
                        help="Access Engine script (continuum only)")

    amp = parser.add_argument_group("AMP reporting (continuum only)")
    amp.add_argument("--amp-organization", help="Organization ID")
    amp.add_argument("--amp-asset", help="Asset ID")
    amp.add_argument("--amp-report-id", help="Existing report ID")
    amp.add_argument("--amp-report", help="Report name")
    amp.add_argument("--amp-module-id", help="Existing module ID")
    amp.add_argument("--amp-module", help="Module name")
    amp.add_argument("--amp-module-location", help="Where on the asset the module applies")
    amp.add_argument("--report-strategy", default=ReportManagementStrategy.APPEND.value,
                     choices=[s.value for s in ReportManagementStrategy])
    amp.add_argument("--module-strategy", default=ModuleManagementStrategy.APPEND.value,
                     choices=[s.value for s in ModuleManagementStrategy])

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")
    return parser


def _amp_target(args: argparse.Namespace) -> AmpTarget | None:
    if not args.amp_organization:
        return None
    return AmpTarget(
        organization_id=args.amp_organization,
        asset_id=args.amp_asset or "",
        report_id=args.amp_report_id,
        report_name=args.amp_report,
        module_id=args.amp_module_id,
        module_name=args.amp_module,
        module_location=args.amp_module_location or args.url or args.site,
        report_strategy=ReportManagementStrategy(args.report_strategy),
        module_strategy=ModuleManagementStrategy(args.module_strategy),
    )


def main(argv: list[str] | None = None):
    load_dotenv()

    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    url = resolve_url(args.site, args.url)
    name = args.name or args.site or "page"

    if args.engine == "axe":
        result = run_axe_scan(url, name, args.reports_dir)
    elif args.engine == "pa11y":
        result = run_pa11y_scan(url, name, args.reports_dir)
    else:
        result = run_continuum_scan(
            url,
            name,
            args.reports_dir,
            args.engine_path,
            settings=AmpSettings.from_env(),
            amp_target=_amp_target(args),
        )

    _print_result(result, as_json=args.json)
    if not result.success:
        sys.exit(1)


def _print_result(result: ScanResult, as_json: bool = False) -> None:
    if as_json:
        print(result.model_dump_json(indent=2))
        return
    if result.success:
        print(f"\n{result.engine} scan complete!")
        print(f"  URL:      {result.url}")
        print(f"  Findings: {result.finding_count}")
        print(f"  Report:   {result.report_path or '(nothing to report)'}")
        if result.submitted_to_amp is not None:
            print(f"  AMP:      {'submitted' if result.submitted_to_amp else 'skipped'}")
    else:
        print(f"\n{result.engine} scan failed: {result.error}", file=sys.stderr)


if __name__ == "__main__":
    main()
