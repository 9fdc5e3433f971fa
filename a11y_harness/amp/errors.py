"""Exceptions raised by the AMP reporting client.

Every error derives from AmpError so callers can catch the whole family,
or match on the concrete type to decide whether a retry makes sense:

- IllegalArgumentError: bad argument at the call site, never retried.
- IllegalStateError: an operation was called before its predecessor state.
- NotFoundError: a remote entity is missing, or a create/delete failed.
- HttpError: transport failure (non-200, timeout, connection error).
"""

from __future__ import annotations


class AmpError(Exception):
    """Base class for AMP reporting failures."""


class IllegalArgumentError(AmpError, ValueError):
    pass


class IllegalStateError(AmpError, RuntimeError):
    pass


class NotFoundError(AmpError, LookupError):
    pass


class HttpError(AmpError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
