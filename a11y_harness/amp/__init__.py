from .errors import (
    AmpError,
    HttpError,
    IllegalArgumentError,
    IllegalStateError,
    NotFoundError,
)
from .network import AmpClient
from .reporting import AmpReportingService

__all__ = [
    "AmpError",
    "HttpError",
    "IllegalArgumentError",
    "IllegalStateError",
    "NotFoundError",
    "AmpClient",
    "AmpReportingService",
]
