"""Upload accessibility concerns to an AMP module.

Concerns are grouped into one violation record per best practice, each
holding the instance payloads AMP expects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from a11y_harness.models.amp import EntityId
from a11y_harness.models.concern import AccessibilityConcern

from .errors import NotFoundError
from .network import AmpClient

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/cont/module/upload"
MAX_FIELD_LENGTH = 3000


def _truncate(value: Any) -> str:
    return ("" if value is None else str(value))[:MAX_FIELD_LENGTH]


def build_instance(concern: AccessibilityConcern) -> dict[str, Any]:
    """Build the AMP instance payload for one concern."""
    raw = concern.raw
    instance: dict[str, Any] = {
        "element": _truncate(raw.get("element", concern.element)),
        "attribute": _truncate(raw.get("attributeDetail", concern.attribute)),
        "xpath": raw.get("path", concern.path),
        "testResult": raw.get("testResult"),
        "engineTestId": raw.get("engineTestId", concern.engine_test_id),
    }
    # fix data and fingerprint are consumed by downstream dedup tooling
    fix_type = raw.get("fixType")
    if isinstance(fix_type, dict):
        instance["fixType"] = fix_type.get("fixType")
        instance["fix"] = fix_type.get("fix")
        instance["fingerprint"] = raw.get("fingerprint")
    return instance


def build_records(concerns: Iterable[AccessibilityConcern]) -> dict[str, dict[str, Any]]:
    """Group concerns into violation records keyed by best-practice id."""
    records: dict[str, dict[str, Any]] = {}
    for concern in concerns:
        best_practice_id = concern.raw.get("bestPracticeId", concern.best_practice_id)
        key = str(best_practice_id)
        record = records.get(key)
        if record is None:
            record = {
                "violation": {"violationID": best_practice_id},
                "instances": [],
            }
            records[key] = record
        record["instances"].append(build_instance(concern))
    return records


def submit(
    client: AmpClient,
    report_id: EntityId,
    module_id: EntityId,
    overwrite: bool,
    concerns: Iterable[AccessibilityConcern],
    module_name: str | None = None,
    module_location: str | None = None,
) -> bool:
    """Upload concerns to a module.

    Args:
        client: Connected AMP client.
        report_id: Report the module belongs to.
        module_id: Target module.
        overwrite: Replace the module's existing findings instead of adding.
        concerns: Normalized concerns to upload.
        module_name: Sent along when known.
        module_location: Sent along when known.

    Returns:
        True if AMP accepted the upload for the module.

    Raises:
        NotFoundError: AMP rejected the upload with a message.
        HttpError: Transport failure.
    """
    records = build_records(concerns)
    body: dict[str, Any] = {
        "reportID": str(report_id),
        "moduleID": str(module_id),
        "overwrite": "true" if overwrite else "false",
        "records": records,
    }
    if module_name:
        body["moduleName"] = module_name
    if module_location:
        body["moduleLocation"] = module_location

    logger.info(
        "Uploading %d violation record(s) to module %s of report %s (overwrite=%s)",
        len(records), module_id, report_id, overwrite,
    )
    response = client.post(UPLOAD_PATH, body)
    if not isinstance(response, dict):
        return False
    if response.get("valid") is False and response.get("message"):
        raise NotFoundError(response["message"])
    return bool(response.get("moduleId"))
