"""AMP entity models and management strategies."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

EntityId = int | str


class ReportManagementStrategy(str, Enum):
    """What to do with the active report before submitting to it."""
    APPEND = "APPEND"        # reuse or create, never delete
    OVERWRITE = "OVERWRITE"  # delete all modules of an existing report first
    UNIQUE = "UNIQUE"        # always create a new, timestamped report


class ModuleManagementStrategy(str, Enum):
    """What to do when the active module already exists in AMP."""
    APPEND = "APPEND"
    OVERWRITE = "OVERWRITE"
    ABORT = "ABORT"


class Report(BaseModel, frozen=True):
    """A report in AMP. id stays None until resolved or created."""
    id: EntityId | None = None
    name: str | None = None


class Module(BaseModel, frozen=True):
    """A module within a report. location describes where on the asset it applies."""
    id: EntityId | None = None
    name: str | None = None
    location: str | None = None
