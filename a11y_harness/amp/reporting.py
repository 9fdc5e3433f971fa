"""AMP reporting session: resolve organization → asset → report → module, then submit.

An AmpReportingService owns the active session state for one test flow.
It is not thread-safe; concurrent flows should each construct their own
service (or serialize access externally).

Typical use:

    service = AmpReportingService(AmpClient(AmpSettings.from_env()))
    service.set_active_organization(42)
    service.set_active_asset(7)
    service.set_active_report_by_name("Nightly Run")
    service.set_active_module_by_name("Home", "https://example.com/")
    service.submit_accessibility_concerns(concerns)

submit_accessibility_concerns() decides, per the configured strategies,
whether to reuse, create or overwrite the report and module before
uploading. It returns False without uploading when the module already
exists and the module strategy is ABORT.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from a11y_harness.config import WEB_MEDIA_TYPE_ID
from a11y_harness.models.amp import (
    EntityId,
    Module,
    ModuleManagementStrategy,
    Report,
    ReportManagementStrategy,
)
from a11y_harness.models.concern import AccessibilityConcern

from . import submission
from .errors import IllegalArgumentError, IllegalStateError, NotFoundError
from .network import AmpClient

logger = logging.getLogger(__name__)

ORGANIZATION_VALIDATE_PATH = "/api/cont/organization/validate"
ASSET_VALIDATE_PATH = "/api/cont/asset/validate"
REPORT_VALIDATE_PATH = "/api/cont/report/validate"
REPORT_CREATE_PATH = "/api/cont/report/create"
REPORT_OVERWRITE_PATH = "/api/cont/report/overwrite"
MODULE_VALIDATE_PATH = "/api/cont/module/validate"
MODULE_CREATE_PATH = "/api/cont/module/create"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_dict(response: Any) -> dict[str, Any]:
    return response if isinstance(response, dict) else {}


def _server_message(response: dict[str, Any]) -> str:
    message = response.get("message")
    return f"; {message}" if message else ""


class AmpReportingService:
    """Session state plus the report/module lifecycle for AMP submissions."""

    def __init__(
        self,
        client: AmpClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.active_instance = client.host
        self._clock = clock
        self._last_unique_stamp: datetime | None = None
        self.reset()

    def reset(self) -> None:
        """Forget all active entities and strategies."""
        self.active_organization_id: EntityId | None = None
        self.active_asset_id: EntityId | None = None
        self.active_report: Report | None = None
        self.active_module: Module | None = None
        self.active_report_management_strategy = ReportManagementStrategy.APPEND
        self.active_module_management_strategy = ModuleManagementStrategy.APPEND
        self._requested_report_name: str | None = None

    # ── Precondition checks ──────────────────────────────────────────

    def _require_organization(self) -> None:
        if not self.active_organization_id:
            raise IllegalStateError("Active organization has not been set")

    def _require_asset(self) -> None:
        self._require_organization()
        if not self.active_asset_id:
            raise IllegalStateError("Active asset has not been set")

    def _require_report(self, with_id: bool = False) -> None:
        self._require_asset()
        if self.active_report is None or (with_id and not self.active_report.id):
            raise IllegalStateError("Active report has not been set")

    # ── Remote lookups ───────────────────────────────────────────────

    def _validate_report_id(self, report_id: EntityId) -> None:
        response = _as_dict(self.client.get(REPORT_VALIDATE_PATH, {
            "assetId": self.active_asset_id,
            "reportId": report_id,
        }))
        if not response.get("valid"):
            raise NotFoundError(
                f"Report with ID '{report_id}' not found in active AMP instance "
                f"'{self.active_instance}'{_server_message(response)}"
            )

    def _lookup_report_id(self, report_name: str) -> EntityId | None:
        response = _as_dict(self.client.get(REPORT_VALIDATE_PATH, {
            "assetId": self.active_asset_id,
            "reportName": report_name,
        }))
        if response.get("valid") and response.get("reportId"):
            return response["reportId"]
        return None

    def _validate_module_id(self, module_id: EntityId) -> None:
        response = _as_dict(self.client.get(MODULE_VALIDATE_PATH, {
            "assetId": self.active_asset_id,
            "reportId": self.active_report.id,
            "moduleId": module_id,
        }))
        if not response.get("valid"):
            raise NotFoundError(
                f"Module with ID '{module_id}' not found in active AMP instance "
                f"'{self.active_instance}'{_server_message(response)}"
            )

    def _lookup_module_id(self, module_name: str) -> EntityId | None:
        response = _as_dict(self.client.get(MODULE_VALIDATE_PATH, {
            "assetId": self.active_asset_id,
            "reportId": self.active_report.id,
            "moduleName": module_name,
        }))
        if response.get("valid") and response.get("moduleId"):
            return response["moduleId"]
        return None

    # ── Session setters ──────────────────────────────────────────────

    def set_active_organization(self, organization_id: EntityId) -> None:
        """Validate an organization in AMP and make it active.

        Raises:
            IllegalArgumentError: organization_id is empty.
            NotFoundError: AMP does not know the organization.
        """
        if not organization_id:
            raise IllegalArgumentError("Active organization cannot be null")
        response = _as_dict(self.client.get(ORGANIZATION_VALIDATE_PATH, {
            "organizationId": organization_id,
        }))
        if not response.get("valid"):
            raise NotFoundError(
                f"Organization with ID '{organization_id}' not found in active AMP "
                f"instance '{self.active_instance}'{_server_message(response)}"
            )
        self.active_organization_id = organization_id

    def set_active_asset(self, asset_id: EntityId) -> None:
        """Validate an asset in AMP and make it active. Requires an active organization."""
        self._require_organization()
        if not asset_id:
            raise IllegalArgumentError("Active asset cannot be null")
        response = _as_dict(self.client.get(ASSET_VALIDATE_PATH, {"assetId": asset_id}))
        if not response.get("valid"):
            raise NotFoundError(
                f"Asset with ID '{asset_id}' not found in active AMP instance "
                f"'{self.active_instance}'{_server_message(response)}"
            )
        self.active_asset_id = asset_id

    def set_active_report_by_id(self, report_id: EntityId) -> None:
        """Validate an existing report and make it active."""
        self._require_asset()
        if not report_id:
            raise IllegalArgumentError("Active report cannot be null")
        self._validate_report_id(report_id)
        self.active_report = Report(id=report_id)
        self._requested_report_name = None

    def set_active_report_by_name(self, report_name: str) -> EntityId | None:
        """Make a report active by name.

        The report does not need to exist yet; it is created on submission.

        Returns:
            The report's id if AMP already has a report with this name, else None.
        """
        self._require_asset()
        if not report_name:
            raise IllegalArgumentError("Active report cannot be null")
        report_id = self._lookup_report_id(report_name)
        self.active_report = Report(id=report_id, name=report_name)
        self._requested_report_name = report_name
        return report_id

    def set_active_module_by_id(self, module_id: EntityId) -> None:
        """Validate an existing module of the active report and make it active."""
        self._require_report(with_id=True)
        if not module_id:
            raise IllegalArgumentError("Active module cannot be null")
        self._validate_module_id(module_id)
        self.active_module = Module(id=module_id)

    def set_active_module_by_name(self, module_name: str, module_location: str) -> EntityId | None:
        """Make a module active by name.

        AMP is only consulted when the active report already has an id.

        Returns:
            The module's id if it already exists in the active report, else None.
        """
        self._require_report()
        if not module_name:
            raise IllegalArgumentError("Active module cannot be null")
        if not module_location:
            raise IllegalArgumentError("Active module location cannot be null")
        module_id = None
        if self.active_report.id:
            module_id = self._lookup_module_id(module_name)
        self.active_module = Module(id=module_id, name=module_name, location=module_location)
        return module_id

    def set_active_report_management_strategy(
        self, strategy: ReportManagementStrategy | str,
    ) -> None:
        try:
            self.active_report_management_strategy = ReportManagementStrategy(strategy)
        except ValueError as e:
            raise IllegalArgumentError(f"Unknown report management strategy: {strategy!r}") from e

    def set_active_module_management_strategy(
        self, strategy: ModuleManagementStrategy | str,
    ) -> None:
        try:
            self.active_module_management_strategy = ModuleManagementStrategy(strategy)
        except ValueError as e:
            raise IllegalArgumentError(f"Unknown module management strategy: {strategy!r}") from e

    # ── Remote mutations ─────────────────────────────────────────────

    def _create_report(self, report_name: str) -> EntityId | None:
        self._require_asset()
        if not report_name:
            raise IllegalArgumentError("Active report cannot be null")
        response = _as_dict(self.client.post(REPORT_CREATE_PATH, {
            "assetId": self.active_asset_id,
            "reportName": report_name,
            "mediaTypeId": WEB_MEDIA_TYPE_ID,
        }))
        if not response.get("valid") and response.get("message"):
            raise NotFoundError(response["message"])
        if response.get("valid") and response.get("reportId"):
            logger.info("Created report '%s' (%s) in AMP", report_name, response["reportId"])
            return response["reportId"]
        return None

    def _delete_all_modules_in_active_report(self) -> bool:
        self._require_report(with_id=True)
        response = self.client.post(REPORT_OVERWRITE_PATH, {
            "assetId": self.active_asset_id,
            "reportId": self.active_report.id,
        })
        if not response:
            # this endpoint answers with an empty body on success
            logger.info("Deleted all modules from report %s", self.active_report.id)
            return True
        response = _as_dict(response)
        if not response.get("valid") and response.get("message"):
            raise NotFoundError(response["message"])
        return False

    def _create_module(self, module_name: str) -> EntityId | None:
        self._require_report(with_id=True)
        if not module_name:
            raise IllegalArgumentError("Active module cannot be null")
        response = _as_dict(self.client.post(MODULE_CREATE_PATH, {
            "assetId": self.active_asset_id,
            "reportId": self.active_report.id,
            "moduleName": module_name,
        }))
        if not response.get("valid") and response.get("message"):
            raise NotFoundError(response["message"])
        if response.get("valid") and response.get("moduleId"):
            logger.info("Created module '%s' (%s) in AMP", module_name, response["moduleId"])
            return response["moduleId"]
        return None

    # ── Lifecycle ────────────────────────────────────────────────────

    def _unique_suffix(self) -> str:
        """ISO-8601 timestamp, strictly increasing within this session."""
        stamp = self._clock()
        if self._last_unique_stamp is not None and stamp <= self._last_unique_stamp:
            stamp = self._last_unique_stamp + timedelta(microseconds=1)
        self._last_unique_stamp = stamp
        return stamp.isoformat()

    def _clear_active_module_id(self) -> None:
        if self.active_module is not None and self.active_module.id:
            self.active_module = self.active_module.model_copy(update={"id": None})

    def _resolve_report(self) -> bool:
        """Reuse or create the active report. Returns True if it already existed."""
        strategy = self.active_report_management_strategy
        report = self.active_report

        if report.id and strategy is not ReportManagementStrategy.UNIQUE:
            self._validate_report_id(report.id)
            return True

        if strategy is ReportManagementStrategy.UNIQUE:
            base_name = self._requested_report_name or report.name
            if not base_name:
                raise IllegalArgumentError(
                    "Active report needs a name under the UNIQUE report management strategy"
                )
            report_name = f"{base_name} ({self._unique_suffix()})"
            report_id = None
        elif strategy in (ReportManagementStrategy.APPEND, ReportManagementStrategy.OVERWRITE):
            report_name = report.name
            if not report_name:
                raise IllegalArgumentError("Active report cannot be null")
            report_id = self._lookup_report_id(report_name)
        else:
            raise IllegalArgumentError(f"Unknown report management strategy: {strategy!r}")

        if report_id:
            self.active_report = Report(id=report_id, name=report_name)
            return True

        report_id = self._create_report(report_name)
        if not report_id:
            raise NotFoundError(f"Could not create new report '{report_name}' in AMP")
        self.active_report = Report(id=report_id, name=report_name)
        # a module id from another report is meaningless in the new one
        self._clear_active_module_id()
        return False

    def _resolve_module(self) -> bool:
        """Reuse or create the active module. Returns True if it already existed."""
        module = self.active_module
        if module.id:
            self._validate_module_id(module.id)
            return True

        if not module.name:
            raise IllegalArgumentError("Active module cannot be null")
        module_id = self._lookup_module_id(module.name)
        if module_id:
            self.active_module = module.model_copy(update={"id": module_id})
            return True

        module_id = self._create_module(module.name)
        if not module_id:
            raise NotFoundError(f"Could not create new module '{module.name}' in AMP")
        self.active_module = module.model_copy(update={"id": module_id})
        return False

    def submit_accessibility_concerns(
        self, concerns: Iterable[AccessibilityConcern],
    ) -> bool:
        """Make sure the active report and module exist in AMP, then upload concerns.

        Returns:
            True if AMP accepted the upload. False if nothing was uploaded,
            including when the module already exists and the module
            strategy is ABORT.

        Raises:
            IllegalStateError: organization, asset, report or module not set.
            IllegalArgumentError: the active report/module cannot be resolved by name.
            NotFoundError: an entity vanished, or create/overwrite failed.
            HttpError: transport failure.
        """
        self._require_report()
        if self.active_module is None:
            raise IllegalStateError("Active module has not been set")

        self.set_active_organization(self.active_organization_id)
        self.set_active_asset(self.active_asset_id)

        report_existed = self._resolve_report()
        if report_existed and self.active_report_management_strategy is ReportManagementStrategy.OVERWRITE:
            # the module is recreated by name after the delete
            if not self.active_module.name:
                raise IllegalArgumentError(
                    "Active module needs a name under the OVERWRITE report management strategy"
                )
            if not self._delete_all_modules_in_active_report():
                report = self.active_report
                identifier = f"'{report.name}'" if report.name else f"ID {report.id}"
                raise NotFoundError(f"Could not delete existing modules from report {identifier} in AMP")
            # the module was deleted along with the others; recreate it by name
            self._clear_active_module_id()

        module_existed = self._resolve_module()
        overwrite = False
        if module_existed:
            strategy = self.active_module_management_strategy
            if strategy is ModuleManagementStrategy.ABORT:
                logger.info(
                    "Module %s already exists in AMP; skipping upload per ABORT strategy",
                    self.active_module.id,
                )
                return False
            elif strategy is ModuleManagementStrategy.OVERWRITE:
                overwrite = True
            elif strategy is not ModuleManagementStrategy.APPEND:
                raise IllegalArgumentError(f"Unknown module management strategy: {strategy!r}")

        return submission.submit(
            self.client,
            self.active_report.id,
            self.active_module.id,
            overwrite,
            list(concerns),
            module_name=self.active_module.name,
            module_location=self.active_module.location,
        )
