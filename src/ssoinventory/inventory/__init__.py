"""Concurrent access inventory for AWS IAM Identity Center.

This package provides:
- Paged, classified access to Organizations, Identity Center and Identity Store
- A retry governor with exponential backoff and jitter for throttled calls
- A single-flight resolution cache for user names, group names and members
- A semaphore-gated fan-out engine over (account, permission set) work units
- Aggregation, CSV reporting and live progress display
"""

from .aggregator import Aggregator
from .cache import DELETED_GROUP, DELETED_USER, ResolutionCache
from .directory import DirectoryClient
from .engine import FailurePolicy, FanOutEngine, UnitCompleted, build_work_units
from .errors import (
    DirectoryError,
    ErrorKind,
    InventoryError,
    ReportError,
    RetryExhaustedError,
    StructuralError,
    WorkUnitError,
    classify_client_error,
)
from .models import (
    Account,
    Assignment,
    IdentityCenterInstance,
    InventoryResult,
    PermissionSet,
    PrincipalReference,
    PrincipalType,
    UnitFailure,
    UnitResult,
    WorkUnit,
)
from .progress import NullProgressListener, ProgressListener, RichProgressReporter
from .report import REPORT_HEADER, render_csv, write_report
from .retry import ExponentialBackoff, RetryEvent, RetryGovernor
from .runner import InventoryRunner, run_inventory

__all__ = [
    # Models
    "Account",
    "Assignment",
    "IdentityCenterInstance",
    "InventoryResult",
    "PermissionSet",
    "PrincipalReference",
    "PrincipalType",
    "UnitFailure",
    "UnitResult",
    "WorkUnit",
    # Errors
    "DirectoryError",
    "ErrorKind",
    "InventoryError",
    "ReportError",
    "RetryExhaustedError",
    "StructuralError",
    "WorkUnitError",
    "classify_client_error",
    # Core
    "Aggregator",
    "DirectoryClient",
    "ExponentialBackoff",
    "FailurePolicy",
    "FanOutEngine",
    "InventoryRunner",
    "ResolutionCache",
    "RetryEvent",
    "RetryGovernor",
    "UnitCompleted",
    "build_work_units",
    "run_inventory",
    "DELETED_GROUP",
    "DELETED_USER",
    # Output
    "NullProgressListener",
    "ProgressListener",
    "REPORT_HEADER",
    "RichProgressReporter",
    "render_csv",
    "write_report",
]
