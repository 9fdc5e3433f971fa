"""Shared test fixtures: an in-memory AMP service behind httpx.MockTransport."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from a11y_harness.amp.network import AmpClient
from a11y_harness.amp.reporting import AmpReportingService
from a11y_harness.config import AmpSettings


class FakeAmp:
    """Just enough of AMP's /api/cont endpoints to drive the reporting session."""

    def __init__(self):
        self.organizations = {"42"}
        self.assets = {"7"}
        self.reports: dict[int, dict] = {}   # id -> {"name", "asset_id"}
        self.modules: dict[int, dict] = {}   # id -> {"name", "report_id"}
        self.uploads: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.best_practices: list[dict] = []
        self.fail_report_create = False
        self.overwrite_error: str | None = None
        self._next_id = 100

    # ── Seeding helpers ──────────────────────────────────────────────

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_report(self, name: str, asset_id: str = "7") -> int:
        report_id = self._new_id()
        self.reports[report_id] = {"name": name, "asset_id": asset_id}
        return report_id

    def add_module(self, name: str, report_id: int) -> int:
        module_id = self._new_id()
        self.modules[module_id] = {"name": name, "report_id": report_id}
        return module_id

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    # ── Request handling ─────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        q = request.url.params
        body = json.loads(request.content) if request.content else {}

        if path == "/api/cont/bestpractices":
            return httpx.Response(200, json=self.best_practices)

        if path == "/api/cont/organization/validate":
            valid = q.get("organizationId") in self.organizations
            return httpx.Response(200, json={"valid": valid} if valid else {"valid": False, "message": "no access"})

        if path == "/api/cont/asset/validate":
            return httpx.Response(200, json={"valid": q.get("assetId") in self.assets})

        if path == "/api/cont/report/validate":
            if "reportId" in q:
                report = self.reports.get(int(q["reportId"]))
                return httpx.Response(200, json={"valid": report is not None})
            for report_id, report in self.reports.items():
                if report["name"] == q.get("reportName") and report["asset_id"] == q.get("assetId"):
                    return httpx.Response(200, json={"valid": True, "reportId": report_id})
            return httpx.Response(200, json={"valid": False})

        if path == "/api/cont/report/create":
            if self.fail_report_create:
                return httpx.Response(200, json={"valid": False, "message": "quota exceeded"})
            report_id = self.add_report(body["reportName"], str(body["assetId"]))
            return httpx.Response(200, json={"valid": True, "reportId": report_id})

        if path == "/api/cont/report/overwrite":
            report_id = int(body["reportId"])
            if self.overwrite_error:
                return httpx.Response(200, json={"valid": False, "message": self.overwrite_error})
            if report_id not in self.reports:
                return httpx.Response(200, json={"valid": False, "message": "unknown report"})
            self.modules = {
                mid: m for mid, m in self.modules.items() if m["report_id"] != report_id
            }
            return httpx.Response(200)

        if path == "/api/cont/module/validate":
            report_id = int(q["reportId"])
            if "moduleId" in q:
                module = self.modules.get(int(q["moduleId"]))
                valid = module is not None and module["report_id"] == report_id
                return httpx.Response(200, json={"valid": valid})
            for module_id, module in self.modules.items():
                if module["name"] == q.get("moduleName") and module["report_id"] == report_id:
                    return httpx.Response(200, json={"valid": True, "moduleId": module_id})
            return httpx.Response(200, json={"valid": False})

        if path == "/api/cont/module/create":
            module_id = self.add_module(body["moduleName"], int(body["reportId"]))
            return httpx.Response(200, json={"valid": True, "moduleId": module_id})

        if path == "/api/cont/module/upload":
            self.uploads.append(body)
            if int(body["moduleID"]) in self.modules:
                return httpx.Response(200, json={"moduleId": int(body["moduleID"])})
            return httpx.Response(200, json={})

        return httpx.Response(404)


class StepClock:
    """Deterministic clock; optionally returns the same instant every time."""

    def __init__(self, step: timedelta = timedelta(seconds=1), frozen: bool = False):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step
        self.frozen = frozen

    def __call__(self) -> datetime:
        current = self.now
        if not self.frozen:
            self.now += self.step
        return current


@pytest.fixture
def fake_amp() -> FakeAmp:
    return FakeAmp()


@pytest.fixture
def amp_client(fake_amp: FakeAmp):
    client = AmpClient(
        AmpSettings(host="amp.test", api_token="secret"),
        transport=httpx.MockTransport(fake_amp.handler),
    )
    yield client
    client.close()


@pytest.fixture
def clock_factory():
    return StepClock


@pytest.fixture
def service(amp_client: AmpClient) -> AmpReportingService:
    return AmpReportingService(amp_client, clock=StepClock())


@pytest.fixture
def ready_service(service: AmpReportingService) -> AmpReportingService:
    """Session with organization 42 and asset 7 already active."""
    service.set_active_organization(42)
    service.set_active_asset(7)
    return service


@pytest.fixture
def raw_findings() -> list[dict]:
    """Access Engine output for three findings across two best practices."""
    return [
        {
            "path": "html > body > img:nth-child(1)",
            "engineTestId": "101",
            "attributeDetail": "Image is missing alt text",
            "bestPracticeId": "12",
            "element": "<img src=\"logo.png\">",
            "testResult": 1,
            "fixType": {"domSpec": True, "helperText": "Add an alt attribute", "fixType": 2, "fix": {"alt": ""}},
            "fingerprint": "fp-1",
        },
        {
            "path": "html > body > img:nth-child(2)",
            "engineTestId": "101",
            "attributeDetail": "Image is missing alt text",
            "bestPracticeId": "12",
            "element": "<img src=\"hero.png\">",
            "testResult": 3,
        },
        {
            "path": "html > body > a",
            "engineTestId": "205",
            "attributeDetail": "Link has no accessible name",
            "bestPracticeId": "34",
            "element": "<a href=\"/\"></a>",
            "testResult": 1,
            "fixType": None,
        },
    ]


@pytest.fixture
def best_practice_payload() -> list[dict]:
    """AMP /api/cont/bestpractices payload."""
    return [
        {
            "bestPracticeID": "12",
            "name": "Provide text alternatives for images",
            "severity": "9",
            "noticeability": "6",
            "tractability": "3",
            "href": "https://amp.test/public/standards/view_best_practice.php?violation_id=12",
            "standards": {
                "1388": "WCAG 2.1 Level AA ",
                "610": "WCAG 2.0 Level A",
                "9999": "Internal Guideline",
            },
        },
        {
            "bestPracticeID": "56",
            "name": "Best practice with a bad score",
            "severity": "not a number",
            "noticeability": "4",
            "tractability": "4",
            "href": "https://amp.test/bp/56",
            "standards": {},
        },
    ]
