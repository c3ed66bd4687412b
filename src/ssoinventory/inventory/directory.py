"""Remote directory client for Organizations, Identity Center and Identity Store.

Every method issues exactly one remote request and returns one page of results
together with the continuation token, so that callers can wrap each page in the
retry governor individually. boto3 clients are blocking, so calls run in a
thread pool and are awaited from the event loop.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from .errors import DirectoryError, ErrorKind, to_directory_error
from .models import Account, PermissionSet, PrincipalReference, PrincipalType

logger = logging.getLogger(__name__)

Page = Tuple[List[Any], Optional[str]]


class DirectoryClient:
    """Async, page-at-a-time access to the directory services."""

    def __init__(
        self,
        organizations_client: Any,
        sso_admin_client: Any,
        identity_store_client: Any,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the directory client.

        Args:
            organizations_client: boto3 Organizations client
            sso_admin_client: boto3 SSO Admin (Identity Center) client
            identity_store_client: boto3 Identity Store client
            executor: Thread pool used for the blocking boto3 calls. When omitted
                the event loop's default executor is used.
        """
        self.organizations_client = organizations_client
        self.sso_admin_client = sso_admin_client
        self.identity_store_client = identity_store_client
        self._executor = executor

    @classmethod
    def from_client_manager(cls, client_manager: Any, max_workers: int) -> "DirectoryClient":
        """Create a directory client from an AWSClientManager."""
        return cls(
            organizations_client=client_manager.get_organizations_client(),
            sso_admin_client=client_manager.get_identity_center_client(),
            identity_store_client=client_manager.get_identity_store_client(),
            executor=ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="ssoinventory"
            ),
        )

    def close(self) -> None:
        """Release the thread pool, if this client owns one."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    async def _call(self, operation: str, func: Callable[..., Dict[str, Any]], **kwargs) -> Dict:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(func, **kwargs))
        except ClientError as e:
            raise to_directory_error(e, operation) from e
        except BotoCoreError as e:
            # Connection and timeout failures carry no error code
            raise DirectoryError(ErrorKind.OTHER, operation, type(e).__name__, str(e)) from e

    @staticmethod
    def _with_token(kwargs: Dict[str, Any], next_token: Optional[str]) -> Dict[str, Any]:
        if next_token:
            kwargs["NextToken"] = next_token
        return kwargs

    async def list_accounts(self, next_token: Optional[str] = None) -> Page:
        """Return one page of organization accounts."""
        response = await self._call(
            "ListAccounts",
            self.organizations_client.list_accounts,
            **self._with_token({}, next_token),
        )
        accounts = [
            Account(id=account["Id"], name=account["Name"])
            for account in response.get("Accounts", [])
            if account.get("Id") and account.get("Name")
        ]
        return accounts, response.get("NextToken")

    async def list_instances(self) -> List[Dict[str, Any]]:
        """Return the Identity Center instances visible to the caller."""
        response = await self._call("ListInstances", self.sso_admin_client.list_instances)
        return response.get("Instances", [])

    async def list_permission_sets(
        self, instance_arn: str, next_token: Optional[str] = None
    ) -> Page:
        """Return one page of permission set ARNs."""
        response = await self._call(
            "ListPermissionSets",
            self.sso_admin_client.list_permission_sets,
            **self._with_token({"InstanceArn": instance_arn}, next_token),
        )
        return list(response.get("PermissionSets", [])), response.get("NextToken")

    async def describe_permission_set(
        self, instance_arn: str, permission_set_arn: str
    ) -> PermissionSet:
        response = await self._call(
            "DescribePermissionSet",
            self.sso_admin_client.describe_permission_set,
            InstanceArn=instance_arn,
            PermissionSetArn=permission_set_arn,
        )
        name = response.get("PermissionSet", {}).get("Name") or ""
        return PermissionSet(arn=permission_set_arn, name=name)

    async def list_account_assignments(
        self,
        instance_arn: str,
        account_id: str,
        permission_set_arn: str,
        next_token: Optional[str] = None,
    ) -> Page:
        """Return one page of principals assigned to an account/permission set pair."""
        response = await self._call(
            "ListAccountAssignments",
            self.sso_admin_client.list_account_assignments,
            **self._with_token(
                {
                    "InstanceArn": instance_arn,
                    "AccountId": account_id,
                    "PermissionSetArn": permission_set_arn,
                },
                next_token,
            ),
        )
        references = [
            PrincipalReference(
                principal_id=assignment.get("PrincipalId"),
                principal_type=PrincipalType.parse(assignment.get("PrincipalType")),
            )
            for assignment in response.get("AccountAssignments", [])
        ]
        return references, response.get("NextToken")

    async def describe_user(self, identity_store_id: str, user_id: str) -> Optional[str]:
        """Return the user's UserName, or None when the service has none."""
        response = await self._call(
            "DescribeUser",
            self.identity_store_client.describe_user,
            IdentityStoreId=identity_store_id,
            UserId=user_id,
        )
        return response.get("UserName")

    async def describe_group(self, identity_store_id: str, group_id: str) -> Optional[str]:
        """Return the group's DisplayName, or None when the service has none."""
        response = await self._call(
            "DescribeGroup",
            self.identity_store_client.describe_group,
            IdentityStoreId=identity_store_id,
            GroupId=group_id,
        )
        return response.get("DisplayName")

    async def list_group_memberships(
        self, identity_store_id: str, group_id: str, next_token: Optional[str] = None
    ) -> Page:
        """Return one page of member user ids for a group."""
        response = await self._call(
            "ListGroupMemberships",
            self.identity_store_client.list_group_memberships,
            **self._with_token(
                {"IdentityStoreId": identity_store_id, "GroupId": group_id}, next_token
            ),
        )
        member_ids = []
        for membership in response.get("GroupMemberships", []):
            user_id = membership.get("MemberId", {}).get("UserId")
            if user_id:
                member_ids.append(user_id)
        return member_ids, response.get("NextToken")
