"""
shared/utils/errors.py
Error taxonomy shared by every function endpoint.
Each error carries the HTTP status the request wrapper answers with.
"""

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

T = TypeVar("T")


class FunctionError(Exception):
    """Base class. The message is returned to the caller as {"error": message}."""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(FunctionError):
    """Malformed or missing required input."""
    status_code = 400


class Unauthenticated(FunctionError):
    """Missing or rejected bearer credential."""
    status_code = 401


class Unauthorized(FunctionError):
    """Valid identity without the required role. Answered as 401 as well."""
    status_code = 401


class UpstreamError(FunctionError):
    """Stripe, Resend or the auth service failed."""
    status_code = 500


class PersistenceError(FunctionError):
    """A database write failed. Recorded on OperationResult where the write is best-effort."""
    status_code = 500


@dataclass
class OperationResult(Generic[T]):
    """
    Outcome of an operation that may succeed in degraded form.

    `warnings` holds the errors that were tolerated (e.g. a status write that did not
    land) so callers can tell a clean success from a best-effort one.
    """
    value: T
    warnings: List[FunctionError] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)
