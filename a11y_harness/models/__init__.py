from .amp import (
    Module,
    ModuleManagementStrategy,
    Report,
    ReportManagementStrategy,
)
from .concern import (
    AccessibilityConcern,
    BestPractice,
    FixType,
    Standard,
)

__all__ = [
    "Standard",
    "FixType",
    "BestPractice",
    "AccessibilityConcern",
    "Report",
    "Module",
    "ReportManagementStrategy",
    "ModuleManagementStrategy",
]
