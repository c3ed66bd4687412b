"""Startup enumeration of accounts, the Identity Center instance and permission sets.

Everything here runs before the first work unit is scheduled, so the account and
permission set lists are fixed for the rest of the run.
"""

import functools
import logging
from typing import List

from .directory import DirectoryClient
from .errors import StructuralError
from .models import Account, IdentityCenterInstance, PermissionSet
from .retry import RetryGovernor

logger = logging.getLogger(__name__)


async def list_accounts(directory: DirectoryClient, governor: RetryGovernor) -> List[Account]:
    """Return every organization account, in enumeration order."""
    accounts: List[Account] = []
    next_token = None

    while True:
        page, next_token = await governor.execute(
            functools.partial(directory.list_accounts, next_token), "ListAccounts"
        )
        accounts.extend(page)
        if not next_token:
            break

    logger.info(f"Found {len(accounts)} accounts")
    return accounts


async def get_identity_center_instance(
    directory: DirectoryClient, governor: RetryGovernor
) -> IdentityCenterInstance:
    """Return the first Identity Center instance.

    Raises:
        StructuralError: If there is no instance or it lacks an ARN or identity store id
    """
    instances = await governor.execute(directory.list_instances, "ListInstances")
    if not instances:
        raise StructuralError("No SSO instance found")

    instance = instances[0]
    instance_arn = instance.get("InstanceArn")
    identity_store_id = instance.get("IdentityStoreId")
    if not instance_arn or not identity_store_id:
        raise StructuralError("SSO instance is missing InstanceArn or IdentityStoreId")

    if len(instances) > 1:
        logger.warning(f"Found {len(instances)} SSO instances, using {instance_arn}")
    logger.debug(f"Using SSO instance {instance_arn} with identity store {identity_store_id}")
    return IdentityCenterInstance(instance_arn=instance_arn, identity_store_id=identity_store_id)


async def list_permission_sets(
    directory: DirectoryClient, governor: RetryGovernor, instance_arn: str
) -> List[PermissionSet]:
    """Return every permission set with its name, in enumeration order."""
    arns: List[str] = []
    next_token = None

    while True:
        page, next_token = await governor.execute(
            functools.partial(directory.list_permission_sets, instance_arn, next_token),
            "ListPermissionSets",
        )
        arns.extend(page)
        if not next_token:
            break

    permission_sets = []
    for arn in arns:
        permission_set = await governor.execute(
            functools.partial(directory.describe_permission_set, instance_arn, arn),
            f"DescribePermissionSet({arn.split('/')[-1]})",
        )
        permission_sets.append(permission_set)

    logger.info(f"Found {len(permission_sets)} permission sets")
    return permission_sets
