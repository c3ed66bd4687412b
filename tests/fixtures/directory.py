"""In-memory directory fake and error helpers for inventory tests."""

import asyncio
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
from botocore.exceptions import ClientError

from src.ssoinventory.inventory.errors import DirectoryError, ErrorKind
from src.ssoinventory.inventory.models import (
    Account,
    PermissionSet,
    PrincipalReference,
    PrincipalType,
)
from src.ssoinventory.utils.config import InventorySettings

INSTANCE_ARN = "arn:aws:sso:::instance/ssoins-1234567890abcdef"
IDENTITY_STORE_ID = "d-1234567890"


def ps_arn(name: str) -> str:
    return f"arn:aws:sso:::permissionSet/ssoins-1234567890abcdef/ps-{name.lower()}"


def client_error(code: str, status: int = 400, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given error code and HTTP status."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised by test"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def throttled(operation: str = "Operation") -> DirectoryError:
    return DirectoryError(ErrorKind.THROTTLED, operation, "ThrottlingException", "Rate exceeded")


def not_found(operation: str = "Operation") -> DirectoryError:
    return DirectoryError(ErrorKind.NOT_FOUND, operation, "ResourceNotFoundException")


def access_denied(operation: str = "Operation") -> DirectoryError:
    return DirectoryError(ErrorKind.OTHER, operation, "AccessDeniedException", "Not authorized")


class FakeDirectory:
    """Async stand-in for DirectoryClient backed by dictionaries.

    Every listing is paginated with ``page_size`` items per page. Errors can be
    scripted per (operation, key) with :meth:`fail`; they are raised in order,
    one per call, before the real answer is returned.
    """

    def __init__(
        self,
        accounts: Sequence[Account] = (),
        permission_sets: Sequence[PermissionSet] = (),
        assignments: Optional[Dict[Tuple[str, str], List[Tuple[str, str]]]] = None,
        users: Optional[Dict[str, str]] = None,
        groups: Optional[Dict[str, str]] = None,
        memberships: Optional[Dict[str, List[str]]] = None,
        instances: Optional[List[Dict[str, str]]] = None,
        page_size: int = 100,
    ):
        self.accounts = list(accounts)
        self.permission_sets = list(permission_sets)
        self.assignments = assignments or {}
        self.users = users or {}
        self.groups = groups or {}
        self.memberships = memberships or {}
        if instances is None:
            instances = [{"InstanceArn": INSTANCE_ARN, "IdentityStoreId": IDENTITY_STORE_ID}]
        self.instances = instances
        self.page_size = page_size

        self.calls: Counter = Counter()
        self.calls_by_key: Counter = Counter()
        self._failures: Dict[Tuple[str, str], List[Exception]] = defaultdict(list)

        self.assignment_calls_in_flight = 0
        self.max_assignment_calls_in_flight = 0

    def fail(self, operation: str, key: str, *errors: Exception) -> None:
        """Raise ``errors`` on the next calls of ``operation`` for ``key``."""
        self._failures[(operation, key)].extend(errors)

    async def _enter(self, operation: str, key: str = "") -> None:
        self.calls[operation] += 1
        self.calls_by_key[(operation, key)] += 1
        # Yield so that concurrent callers interleave
        await asyncio.sleep(0)
        pending = self._failures.get((operation, key))
        if pending:
            raise pending.pop(0)

    def _page(self, items: List, next_token: Optional[str]) -> Tuple[List, Optional[str]]:
        start = int(next_token) if next_token else 0
        end = start + self.page_size
        token = str(end) if end < len(items) else None
        return items[start:end], token

    async def list_accounts(self, next_token: Optional[str] = None):
        await self._enter("ListAccounts")
        return self._page(self.accounts, next_token)

    async def list_instances(self):
        await self._enter("ListInstances")
        return list(self.instances)

    async def list_permission_sets(self, instance_arn: str, next_token: Optional[str] = None):
        await self._enter("ListPermissionSets")
        return self._page([ps.arn for ps in self.permission_sets], next_token)

    async def describe_permission_set(self, instance_arn: str, permission_set_arn: str):
        await self._enter("DescribePermissionSet", permission_set_arn)
        for permission_set in self.permission_sets:
            if permission_set.arn == permission_set_arn:
                return permission_set
        raise not_found("DescribePermissionSet")

    async def list_account_assignments(
        self,
        instance_arn: str,
        account_id: str,
        permission_set_arn: str,
        next_token: Optional[str] = None,
    ):
        self.assignment_calls_in_flight += 1
        self.max_assignment_calls_in_flight = max(
            self.max_assignment_calls_in_flight, self.assignment_calls_in_flight
        )
        try:
            await self._enter("ListAccountAssignments", account_id)
            await asyncio.sleep(0)
            raw = self.assignments.get((account_id, permission_set_arn), [])
            references = [
                PrincipalReference(
                    principal_id=principal_id or None,
                    principal_type=PrincipalType.parse(principal_type),
                )
                for principal_id, principal_type in raw
            ]
            return self._page(references, next_token)
        finally:
            self.assignment_calls_in_flight -= 1

    async def describe_user(self, identity_store_id: str, user_id: str):
        await self._enter("DescribeUser", user_id)
        if user_id not in self.users:
            raise not_found("DescribeUser")
        return self.users[user_id]

    async def describe_group(self, identity_store_id: str, group_id: str):
        await self._enter("DescribeGroup", group_id)
        if group_id not in self.groups:
            raise not_found("DescribeGroup")
        return self.groups[group_id]

    async def list_group_memberships(
        self, identity_store_id: str, group_id: str, next_token: Optional[str] = None
    ):
        await self._enter("ListGroupMemberships", group_id)
        if group_id not in self.memberships:
            raise not_found("ListGroupMemberships")
        return self._page(self.memberships[group_id], next_token)

    def close(self) -> None:
        pass


async def no_sleep(delay: float) -> None:
    """Backoff sleep replacement that returns immediately."""
    return None


@pytest.fixture
def fast_settings():
    """Inventory settings with zero backoff delays."""
    return InventorySettings(
        region="us-east-1",
        concurrency=4,
        max_retries=3,
        initial_delay_ms=0,
        jitter_max_ms=0,
        progress=False,
    )


@pytest.fixture
def small_directory():
    """Two accounts, two permission sets, a direct user and a two-member group."""
    admin = PermissionSet(arn=ps_arn("Admin"), name="AdministratorAccess")
    read_only = PermissionSet(arn=ps_arn("ReadOnly"), name="ReadOnly")
    return FakeDirectory(
        accounts=[Account("111111111111", "prod"), Account("222222222222", "dev")],
        permission_sets=[admin, read_only],
        assignments={
            ("111111111111", admin.arn): [("u-alice", "USER")],
            ("111111111111", read_only.arn): [("g-eng", "GROUP")],
            ("222222222222", read_only.arn): [("g-eng", "GROUP"), ("u-alice", "USER")],
        },
        users={"u-alice": "alice", "u-bob": "bob", "u-carol": "carol"},
        groups={"g-eng": "Engineers"},
        memberships={"g-eng": ["u-bob", "u-carol"]},
    )
