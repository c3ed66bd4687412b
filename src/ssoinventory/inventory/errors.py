"""Error kinds and exceptions for the access inventory.

Remote failures are classified exactly once, at the directory client boundary,
into a closed set of kinds. The retry governor and the resolution cache only
ever branch on ``DirectoryError.kind``.
"""

from enum import Enum
from typing import TYPE_CHECKING

from botocore.exceptions import ClientError

if TYPE_CHECKING:
    from .models import WorkUnit


class ErrorKind(str, Enum):
    """Classification of a remote service failure."""

    THROTTLED = "throttled"
    NOT_FOUND = "not_found"
    OTHER = "other"


THROTTLING_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "TooManyRequestsException",
        "Throttling",
        "RequestLimitExceeded",
    }
)

NOT_FOUND_ERROR_CODES = frozenset({"ResourceNotFoundException"})


class InventoryError(Exception):
    """Base class for all inventory errors."""


class DirectoryError(InventoryError):
    """A remote directory call failed."""

    def __init__(
        self,
        kind: ErrorKind,
        operation: str,
        code: str = "Unknown",
        message: str = "",
    ):
        self.kind = kind
        self.operation = operation
        self.code = code
        self.message = message
        text = f"{operation} failed ({code})"
        super().__init__(f"{text}: {message}" if message else text)

    @property
    def is_throttled(self) -> bool:
        return self.kind == ErrorKind.THROTTLED

    @property
    def is_not_found(self) -> bool:
        return self.kind == ErrorKind.NOT_FOUND


class RetryExhaustedError(DirectoryError):
    """A throttled operation kept failing after every retry."""

    def __init__(self, label: str, retries: int, last_error: DirectoryError):
        self.label = label
        self.retries = retries
        self.last_error = last_error
        super().__init__(
            ErrorKind.THROTTLED,
            last_error.operation,
            code=last_error.code,
            message=f"{label} still throttled after {retries} retries",
        )


class StructuralError(InventoryError):
    """A required top-level resource is missing, e.g. no Identity Center instance."""


class WorkUnitError(InventoryError):
    """A work unit failed and the run was aborted."""

    def __init__(self, unit: "WorkUnit", error: Exception):
        self.unit = unit
        self.error = error
        super().__init__(f"Failed to process {unit.label}: {error}")


class ReportError(InventoryError):
    """The report could not be written."""


def classify_client_error(error: ClientError) -> ErrorKind:
    """Map a botocore ClientError onto an ErrorKind."""
    error_code = error.response.get("Error", {}).get("Code", "")
    status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if error_code in THROTTLING_ERROR_CODES or status_code == 429:
        return ErrorKind.THROTTLED
    if error_code in NOT_FOUND_ERROR_CODES or status_code == 404:
        return ErrorKind.NOT_FOUND
    return ErrorKind.OTHER


def to_directory_error(error: ClientError, operation: str) -> DirectoryError:
    """Wrap a ClientError raised by ``operation`` into a classified DirectoryError."""
    details = error.response.get("Error", {})
    return DirectoryError(
        kind=classify_client_error(error),
        operation=operation,
        code=details.get("Code", "Unknown"),
        message=details.get("Message", ""),
    )
