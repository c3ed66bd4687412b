"""Task fan-out engine.

Builds one work unit per (account, permission set) pair and runs them as
asyncio tasks gated by a semaphore. Each unit pages through its account
assignments and expands users and groups into report rows through the
resolution cache.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from .cache import ResolutionCache
from .directory import DirectoryClient
from .errors import WorkUnitError
from .models import (
    Account,
    Assignment,
    PermissionSet,
    PrincipalReference,
    PrincipalType,
    UnitFailure,
    UnitResult,
    WorkUnit,
)
from .progress import NullProgressListener, ProgressListener
from .retry import RetryGovernor

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10


class FailurePolicy(str, Enum):
    """What to do when a work unit fails with an unrecoverable error."""

    FAIL_FAST = "fail-fast"
    CONTINUE = "continue"


@dataclass(frozen=True)
class UnitCompleted:
    """Published to the progress listener when a work unit finishes."""

    unit: WorkUnit
    assignment_count: int
    completed: int
    total: int


def build_work_units(
    accounts: Sequence[Account], permission_sets: Sequence[PermissionSet]
) -> List[WorkUnit]:
    """Return every (account, permission set) pair, accounts in the outer loop."""
    return [
        WorkUnit(
            account_id=account.id,
            account_name=account.name,
            permission_set_arn=permission_set.arn,
            permission_set_name=permission_set.name,
        )
        for account in accounts
        for permission_set in permission_sets
    ]


class FanOutEngine:
    """Runs work units concurrently under a fixed ceiling."""

    def __init__(
        self,
        directory: DirectoryClient,
        governor: RetryGovernor,
        cache: ResolutionCache,
        instance_arn: str,
        concurrency: int = DEFAULT_CONCURRENCY,
        failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST,
        listener: Optional[ProgressListener] = None,
    ):
        """
        Initialize the engine.

        Args:
            directory: Directory client for assignment listings
            governor: Retry governor wrapping every remote call
            cache: Resolution cache for principal names and group members
            instance_arn: Identity Center instance ARN
            concurrency: Maximum number of work units in flight
            failure_policy: FAIL_FAST aborts the run on the first failed unit,
                CONTINUE records the failure and carries on
            listener: Receives completion and failure events
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.directory = directory
        self.governor = governor
        self.cache = cache
        self.instance_arn = instance_arn
        self.concurrency = concurrency
        self.failure_policy = failure_policy
        self.listener = listener or NullProgressListener()

        self.completed = 0
        self.failed = 0
        self.total = 0

    async def run(self, units: Sequence[WorkUnit]) -> Tuple[List[UnitResult], List[UnitFailure]]:
        """Run all work units.

        Returns:
            Tuple of (results, failures). Results are in the order of ``units``;
            failures is always empty under FAIL_FAST.

        Raises:
            WorkUnitError: Under FAIL_FAST, for the first unit that fails
        """
        self.completed = 0
        self.failed = 0
        self.total = len(units)

        semaphore = asyncio.Semaphore(self.concurrency)
        stop = asyncio.Event()
        tasks = [asyncio.ensure_future(self._run_unit(unit, semaphore, stop)) for unit in units]

        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results = [outcome for outcome in outcomes if isinstance(outcome, UnitResult)]
        failures = [outcome for outcome in outcomes if isinstance(outcome, UnitFailure)]
        return results, failures

    async def _run_unit(
        self, unit: WorkUnit, semaphore: asyncio.Semaphore, stop: asyncio.Event
    ) -> Union[UnitResult, UnitFailure, None]:
        async with semaphore:
            if stop.is_set():
                return None
            try:
                assignments = await self.process_unit(unit)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return self._handle_failure(unit, e, stop)

        self.completed += 1
        self.listener.on_unit_completed(
            UnitCompleted(
                unit=unit,
                assignment_count=len(assignments),
                completed=self.completed,
                total=self.total,
            )
        )
        return UnitResult(unit=unit, assignments=assignments)

    def _handle_failure(self, unit: WorkUnit, error: Exception, stop: asyncio.Event) -> UnitFailure:
        self.failed += 1
        failure = UnitFailure(unit=unit, error=error)
        self.listener.on_unit_failed(failure)

        if self.failure_policy == FailurePolicy.FAIL_FAST:
            stop.set()
            raise WorkUnitError(unit, error) from error

        logger.error(f"Skipping {unit.label}: {error}")
        return failure

    async def process_unit(self, unit: WorkUnit) -> List[Assignment]:
        """Return the report rows for one work unit, in listing order."""
        assignments: List[Assignment] = []
        next_token = None

        while True:
            references, next_token = await self.governor.execute(
                functools.partial(
                    self.directory.list_account_assignments,
                    self.instance_arn,
                    unit.account_id,
                    unit.permission_set_arn,
                    next_token,
                ),
                f"ListAccountAssignments({unit.account_id})",
            )
            for reference in references:
                assignments.extend(await self._expand_reference(unit, reference))
            if not next_token:
                break

        return assignments

    async def _expand_reference(
        self, unit: WorkUnit, reference: PrincipalReference
    ) -> List[Assignment]:
        principal_id = reference.principal_id
        if principal_id is None or not reference.is_complete:
            return []

        if reference.principal_type == PrincipalType.USER:
            username = await self.cache.resolve_user_name(principal_id)
            return [self._assignment(unit, username)]

        group_name = await self.cache.resolve_group_name(principal_id)
        member_ids = await self.cache.resolve_group_members(principal_id)
        rows = []
        for member_id in member_ids:
            username = await self.cache.resolve_user_name(member_id)
            rows.append(self._assignment(unit, username, group_name))
        return rows

    @staticmethod
    def _assignment(unit: WorkUnit, username: str, group_name: Optional[str] = None) -> Assignment:
        return Assignment(
            account_id=unit.account_id,
            account_name=unit.account_name,
            username=username,
            permission_set_name=unit.permission_set_name,
            group_name=group_name,
        )
