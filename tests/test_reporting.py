"""Tests for the AMP reporting session: call ordering, validation and the
report/module lifecycle, run against the in-memory FakeAmp service."""

from __future__ import annotations

import pytest

from a11y_harness.amp.errors import (
    AmpError,
    IllegalArgumentError,
    IllegalStateError,
    NotFoundError,
)
from a11y_harness.amp.reporting import AmpReportingService
from a11y_harness.models.amp import (
    Module,
    ModuleManagementStrategy,
    Report,
    ReportManagementStrategy,
)
from a11y_harness.models.concern import AccessibilityConcern


def _concerns(n: int = 2) -> list[AccessibilityConcern]:
    return [
        AccessibilityConcern(
            path=f"div:nth-child({i})",
            attribute="Missing label",
            best_practice_id=12,
            element="<input>",
            raw={"bestPracticeId": 12, "element": "<input>", "attributeDetail": "Missing label",
                 "path": f"div:nth-child({i})", "testResult": 1, "engineTestId": 101},
        )
        for i in range(n)
    ]


# ── Call ordering ─────────────────────────────────────────────────────


class TestCallOrdering:
    def test_asset_before_organization(self, service, fake_amp):
        with pytest.raises(IllegalStateError, match="organization"):
            service.set_active_asset(7)
        assert fake_amp.requests == []

    def test_asset_before_organization_with_invalid_argument(self, service):
        with pytest.raises(IllegalStateError):
            service.set_active_asset(None)

    def test_report_before_asset(self, service):
        service.set_active_organization(42)
        with pytest.raises(IllegalStateError, match="asset"):
            service.set_active_report_by_name("Nightly Run")
        with pytest.raises(IllegalStateError, match="asset"):
            service.set_active_report_by_id(101)

    def test_report_before_organization_with_invalid_argument(self, service):
        with pytest.raises(IllegalStateError):
            service.set_active_report_by_name("")
        with pytest.raises(IllegalStateError):
            service.set_active_report_by_id(None)

    def test_module_before_report(self, ready_service):
        with pytest.raises(IllegalStateError, match="report"):
            ready_service.set_active_module_by_name("Home", "https://example.com")
        with pytest.raises(IllegalStateError, match="report"):
            ready_service.set_active_module_by_id(5)

    def test_module_by_id_needs_resolved_report(self, ready_service):
        ready_service.set_active_report_by_name("Not yet created")
        with pytest.raises(IllegalStateError):
            ready_service.set_active_module_by_id(5)

    def test_module_before_report_with_invalid_argument(self, ready_service):
        with pytest.raises(IllegalStateError):
            ready_service.set_active_module_by_name(None, None)


# ── Organization / asset ──────────────────────────────────────────────


class TestSetActiveOrganization:
    def test_valid_organization(self, service, fake_amp):
        service.set_active_organization(42)
        assert service.active_organization_id == 42
        request = fake_amp.requests[0]
        assert request.url.params["organizationId"] == "42"
        assert request.url.params["apiToken"] == "secret"

    def test_unknown_organization_raises_not_found(self, service, fake_amp):
        fake_amp.organizations.clear()
        with pytest.raises(NotFoundError) as exc:
            service.set_active_organization(42)
        message = str(exc.value)
        assert "Organization with ID '42'" in message
        assert "amp.test" in message
        assert "no access" in message
        assert service.active_organization_id is None

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_organization(self, service, value):
        with pytest.raises(IllegalArgumentError):
            service.set_active_organization(value)

    def test_errors_share_a_base_class(self, service, fake_amp):
        fake_amp.organizations.clear()
        with pytest.raises(AmpError):
            service.set_active_organization(42)


class TestSetActiveAsset:
    def test_valid_asset(self, service):
        service.set_active_organization(42)
        service.set_active_asset("7")
        assert service.active_asset_id == "7"

    def test_unknown_asset_names_the_asset(self, service):
        service.set_active_organization(42)
        with pytest.raises(NotFoundError, match="Asset with ID '99'"):
            service.set_active_asset(99)

    def test_empty_asset(self, service):
        service.set_active_organization(42)
        with pytest.raises(IllegalArgumentError):
            service.set_active_asset("")


# ── Report / module ───────────────────────────────────────────────────


class TestSetActiveReport:
    def test_unknown_name_returns_none(self, ready_service):
        assert ready_service.set_active_report_by_name("Nightly Run") is None
        assert ready_service.active_report == Report(id=None, name="Nightly Run")

    def test_known_name_returns_id(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        assert ready_service.set_active_report_by_name("Nightly Run") == report_id
        assert ready_service.active_report.id == report_id

    def test_by_id(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Weekly")
        ready_service.set_active_report_by_id(report_id)
        assert ready_service.active_report == Report(id=report_id)

    def test_unknown_id_names_the_report(self, ready_service):
        with pytest.raises(NotFoundError, match="Report with ID '555'"):
            ready_service.set_active_report_by_id(555)

    def test_empty_name(self, ready_service):
        with pytest.raises(IllegalArgumentError):
            ready_service.set_active_report_by_name("")


class TestSetActiveModule:
    def test_by_name_without_report_id_skips_lookup(self, ready_service, fake_amp):
        ready_service.set_active_report_by_name("Nightly Run")
        before = len(fake_amp.requests)

        assert ready_service.set_active_module_by_name("Home", "https://example.com") is None
        assert len(fake_amp.requests) == before
        assert ready_service.active_module == Module(name="Home", location="https://example.com")

    def test_by_name_existing(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        module_id = fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_name("Nightly Run")
        assert ready_service.set_active_module_by_name("Home", "/") == module_id

    def test_location_required(self, ready_service):
        ready_service.set_active_report_by_name("Nightly Run")
        with pytest.raises(IllegalArgumentError, match="location"):
            ready_service.set_active_module_by_name("Home", "")

    def test_by_id(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        module_id = fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_id(module_id)
        assert ready_service.active_module.id == module_id

    def test_unknown_id_names_the_module(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        ready_service.set_active_report_by_id(report_id)
        with pytest.raises(NotFoundError, match="Module with ID '77'"):
            ready_service.set_active_module_by_id(77)


class TestStrategies:
    def test_defaults_to_append(self, service):
        assert service.active_report_management_strategy is ReportManagementStrategy.APPEND
        assert service.active_module_management_strategy is ModuleManagementStrategy.APPEND

    def test_accepts_string_values(self, service):
        service.set_active_report_management_strategy("UNIQUE")
        service.set_active_module_management_strategy("ABORT")
        assert service.active_report_management_strategy is ReportManagementStrategy.UNIQUE
        assert service.active_module_management_strategy is ModuleManagementStrategy.ABORT

    def test_rejects_unknown_values(self, service):
        with pytest.raises(IllegalArgumentError):
            service.set_active_report_management_strategy("REPLACE")
        with pytest.raises(IllegalArgumentError):
            service.set_active_module_management_strategy("SKIP")

    def test_reset_clears_session(self, ready_service):
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_report_management_strategy("OVERWRITE")
        ready_service.reset()
        assert ready_service.active_organization_id is None
        assert ready_service.active_asset_id is None
        assert ready_service.active_report is None
        assert ready_service.active_report_management_strategy is ReportManagementStrategy.APPEND
        assert ready_service.active_instance == "amp.test"


# ── Submission lifecycle ──────────────────────────────────────────────


class TestSubmit:
    def test_requires_report_and_module(self, ready_service):
        with pytest.raises(IllegalStateError, match="report"):
            ready_service.submit_accessibility_concerns(_concerns())
        ready_service.set_active_report_by_name("Nightly Run")
        with pytest.raises(IllegalStateError, match="module"):
            ready_service.submit_accessibility_concerns(_concerns())

    def test_requires_organization(self, service):
        with pytest.raises(IllegalStateError, match="organization"):
            service.submit_accessibility_concerns(_concerns())

    def test_creates_missing_report_and_module(self, ready_service, fake_amp):
        assert ready_service.set_active_report_by_name("Nightly Run") is None
        ready_service.set_active_module_by_name("Home", "https://example.com")

        assert ready_service.submit_accessibility_concerns(_concerns()) is True

        report_id = ready_service.active_report.id
        module_id = ready_service.active_module.id
        assert report_id is not None
        assert fake_amp.reports[report_id]["name"] == "Nightly Run"
        assert fake_amp.modules[module_id] == {"name": "Home", "report_id": report_id}

        upload = fake_amp.uploads[0]
        assert upload["reportID"] == str(report_id)
        assert upload["moduleID"] == str(module_id)
        assert upload["overwrite"] == "false"
        assert upload["moduleName"] == "Home"
        assert upload["moduleLocation"] == "https://example.com"
        assert len(upload["records"]["12"]["instances"]) == 2

    def test_revalidates_organization_and_asset(self, ready_service, fake_amp):
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        fake_amp.assets.clear()
        with pytest.raises(NotFoundError, match="Asset"):
            ready_service.submit_accessibility_concerns(_concerns())
        assert fake_amp.uploads == []

    def test_append_reuses_existing_report_and_module(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        module_id = fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")

        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        assert "/api/cont/report/create" not in fake_amp.paths()
        assert "/api/cont/module/create" not in fake_amp.paths()
        assert "/api/cont/report/overwrite" not in fake_amp.paths()
        assert fake_amp.uploads[0]["moduleID"] == str(module_id)
        assert fake_amp.uploads[0]["overwrite"] == "false"

    def test_module_overwrite_sets_flag(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_module_management_strategy(ModuleManagementStrategy.OVERWRITE)

        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        assert fake_amp.uploads[0]["overwrite"] == "true"

    def test_abort_skips_existing_module(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_module_management_strategy(ModuleManagementStrategy.ABORT)

        assert ready_service.submit_accessibility_concerns(_concerns()) is False
        assert fake_amp.uploads == []
        assert "/api/cont/module/upload" not in fake_amp.paths()

    def test_abort_still_uploads_to_new_module(self, ready_service, fake_amp):
        fake_amp.add_report("Nightly Run")
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_module_management_strategy(ModuleManagementStrategy.ABORT)

        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        assert len(fake_amp.uploads) == 1

    def test_abort_with_module_set_by_id(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        module_id = fake_amp.add_module("Home", report_id)
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_id(module_id)
        ready_service.set_active_module_management_strategy("ABORT")

        assert ready_service.submit_accessibility_concerns(_concerns()) is False
        assert fake_amp.uploads == []

    def test_report_overwrite_recreates_module(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        original_module_id = fake_amp.add_module("Home", report_id)
        other_module_id = fake_amp.add_module("About", report_id)
        ready_service.set_active_report_by_name("Nightly Run")
        assert ready_service.set_active_module_by_name("Home", "/") == original_module_id
        ready_service.set_active_report_management_strategy(ReportManagementStrategy.OVERWRITE)

        assert ready_service.submit_accessibility_concerns(_concerns()) is True

        assert "/api/cont/report/overwrite" in fake_amp.paths()
        assert original_module_id not in fake_amp.modules
        assert other_module_id not in fake_amp.modules
        new_module_id = ready_service.active_module.id
        assert new_module_id != original_module_id
        assert fake_amp.modules[new_module_id] == {"name": "Home", "report_id": report_id}
        assert ready_service.active_report.id == report_id
        assert fake_amp.uploads[0]["overwrite"] == "false"

    def test_report_overwrite_on_new_report_deletes_nothing(self, ready_service, fake_amp):
        ready_service.set_active_report_by_name("Fresh")
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_report_management_strategy("OVERWRITE")

        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        assert "/api/cont/report/overwrite" not in fake_amp.paths()

    def test_report_overwrite_failure(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_report_management_strategy("OVERWRITE")
        fake_amp.overwrite_error = "locked"

        with pytest.raises(NotFoundError, match="locked"):
            ready_service.submit_accessibility_concerns(_concerns())
        assert fake_amp.uploads == []

    def test_report_overwrite_needs_module_name_before_deleting(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        home_id = fake_amp.add_module("Home", report_id)
        about_id = fake_amp.add_module("About", report_id)
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_id(home_id)
        ready_service.set_active_report_management_strategy("OVERWRITE")

        with pytest.raises(IllegalArgumentError, match="OVERWRITE"):
            ready_service.submit_accessibility_concerns(_concerns())

        assert "/api/cont/report/overwrite" not in fake_amp.paths()
        assert set(fake_amp.modules) == {home_id, about_id}
        assert fake_amp.uploads == []

    def test_unique_creates_distinct_reports(self, ready_service, fake_amp):
        existing_id = fake_amp.add_report("Nightly Run")
        assert ready_service.set_active_report_by_name("Nightly Run") == existing_id
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_report_management_strategy(ReportManagementStrategy.UNIQUE)

        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        first = ready_service.active_report
        assert ready_service.submit_accessibility_concerns(_concerns()) is True
        second = ready_service.active_report

        assert first.name == "Nightly Run (2024-05-01T12:00:00+00:00)"
        assert second.name == "Nightly Run (2024-05-01T12:00:01+00:00)"
        assert len({existing_id, first.id, second.id}) == 3
        assert fake_amp.uploads[0]["reportID"] == str(first.id)
        assert fake_amp.uploads[1]["reportID"] == str(second.id)
        # each new report gets its own module
        assert fake_amp.uploads[0]["moduleID"] != fake_amp.uploads[1]["moduleID"]

    def test_unique_suffix_increases_with_frozen_clock(self, amp_client, clock_factory):
        service = AmpReportingService(amp_client, clock=clock_factory(frozen=True))
        service.set_active_organization(42)
        service.set_active_asset(7)
        service.set_active_report_management_strategy("UNIQUE")
        names = []
        for _ in range(2):
            service.set_active_report_by_name("Nightly Run")
            service.set_active_module_by_name("Home", "/")
            service.submit_accessibility_concerns(_concerns())
            names.append(service.active_report.name)
        assert names[0] != names[1]
        assert names[1].endswith("12:00:00.000001+00:00)")

    def test_unique_needs_report_name(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.set_active_report_management_strategy("UNIQUE")
        with pytest.raises(IllegalArgumentError):
            ready_service.submit_accessibility_concerns(_concerns())

    def test_report_create_failure(self, ready_service, fake_amp):
        fake_amp.fail_report_create = True
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        with pytest.raises(NotFoundError, match="quota exceeded"):
            ready_service.submit_accessibility_concerns(_concerns())

    def test_deleted_report_is_not_found(self, ready_service, fake_amp):
        report_id = fake_amp.add_report("Nightly Run")
        ready_service.set_active_report_by_id(report_id)
        ready_service.set_active_module_by_name("Home", "/")
        del fake_amp.reports[report_id]
        with pytest.raises(NotFoundError, match=f"Report with ID '{report_id}'"):
            ready_service.submit_accessibility_concerns(_concerns())

    def test_resubmission_reuses_resolved_ids(self, ready_service, fake_amp):
        ready_service.set_active_report_by_name("Nightly Run")
        ready_service.set_active_module_by_name("Home", "/")
        ready_service.submit_accessibility_concerns(_concerns())
        report_id = ready_service.active_report.id
        module_id = ready_service.active_module.id

        assert ready_service.submit_accessibility_concerns(_concerns(1)) is True
        assert len(fake_amp.reports) == 1
        assert len(fake_amp.modules) == 1
        assert fake_amp.uploads[1]["reportID"] == str(report_id)
        assert fake_amp.uploads[1]["moduleID"] == str(module_id)
        # name is kept when an id is revalidated
        assert fake_amp.uploads[1]["moduleName"] == "Home"
