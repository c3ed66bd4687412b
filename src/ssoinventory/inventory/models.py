"""Data models for the access inventory.

These dataclasses describe the resources enumerated at startup (accounts,
permission sets), the unit of scheduling (work units) and the rows written to
the report (assignments).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class PrincipalType(str, Enum):
    """Principal types returned by ListAccountAssignments."""

    USER = "USER"
    GROUP = "GROUP"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["PrincipalType"]:
        """Return the matching member, or None for missing or unknown values."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Account:
    """An AWS Organizations account."""

    id: str
    name: str


@dataclass(frozen=True)
class PermissionSet:
    """An Identity Center permission set."""

    arn: str
    name: str


@dataclass(frozen=True)
class IdentityCenterInstance:
    """The Identity Center instance used for the run."""

    instance_arn: str
    identity_store_id: str


@dataclass(frozen=True)
class PrincipalReference:
    """A principal assigned to an (account, permission set) pair."""

    principal_id: Optional[str]
    principal_type: Optional[PrincipalType]

    @property
    def is_complete(self) -> bool:
        return bool(self.principal_id) and self.principal_type is not None


@dataclass(frozen=True)
class WorkUnit:
    """One (account, permission set) pair to query for assignments."""

    account_id: str
    account_name: str
    permission_set_arn: str
    permission_set_name: str

    @property
    def label(self) -> str:
        return f"{self.account_name} ({self.account_id}) / {self.permission_set_name}"


@dataclass
class Assignment:
    """A single row of the access report."""

    account_id: str
    account_name: str
    username: str
    permission_set_name: str
    group_name: Optional[str] = None

    @property
    def assignment_type(self) -> PrincipalType:
        return PrincipalType.GROUP if self.group_name is not None else PrincipalType.USER


@dataclass
class UnitResult:
    """Assignments produced by one work unit, in production order."""

    unit: WorkUnit
    assignments: List[Assignment] = field(default_factory=list)


@dataclass
class UnitFailure:
    """A work unit that could not be completed."""

    unit: WorkUnit
    error: Exception

    @property
    def message(self) -> str:
        return f"{self.unit.label}: {self.error}"


@dataclass
class InventoryResult:
    """Outcome of a full inventory run."""

    accounts: List[Account]
    permission_sets: List[PermissionSet]
    assignments: List[Assignment]
    failures: List[UnitFailure] = field(default_factory=list)
    total_units: int = 0
    elapsed_seconds: float = 0.0
    statistics: Dict[str, int] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures
