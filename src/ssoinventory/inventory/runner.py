"""Wires the inventory components together for one run."""

import asyncio
import functools
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional

from ..utils.config import InventorySettings
from .aggregator import Aggregator
from .cache import ResolutionCache
from .directory import DirectoryClient
from .discovery import get_identity_center_instance, list_accounts, list_permission_sets
from .engine import FailurePolicy, FanOutEngine, build_work_units
from .models import InventoryResult
from .progress import NullProgressListener, ProgressListener
from .retry import ExponentialBackoff, RetryGovernor, RetryObserver, log_retry_event

logger = logging.getLogger(__name__)


class InventoryRunner:
    """Runs discovery, fan-out and aggregation against one directory."""

    def __init__(
        self,
        directory: DirectoryClient,
        settings: InventorySettings,
        listener: Optional[ProgressListener] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        random_func: Callable[[float, float], float] = random.uniform,
    ):
        """
        Initialize the runner.

        Args:
            directory: Directory client for all remote calls
            settings: Run settings (concurrency, retry budget, failure policy)
            listener: Progress listener, also subscribed to retry events
            sleep: Coroutine used for backoff waits
            random_func: Jitter source for the backoff
        """
        self.directory = directory
        self.settings = settings
        self.listener = listener or NullProgressListener()

        retry_log: RetryObserver = log_retry_event
        if self.listener.reports_retries:
            # Shown in the progress display; logged only with --verbose
            retry_log = functools.partial(log_retry_event, level=logging.DEBUG)

        self.governor = RetryGovernor(
            max_retries=settings.max_retries,
            backoff=ExponentialBackoff(
                initial_delay=settings.initial_delay_seconds,
                jitter_max=settings.jitter_max_seconds,
                random_func=random_func,
            ),
            observer=retry_log,
            sleep=sleep,
        )
        self.governor.add_observer(self.listener.on_retry)

    @property
    def failure_policy(self) -> FailurePolicy:
        if self.settings.continue_on_error:
            return FailurePolicy.CONTINUE
        return FailurePolicy.FAIL_FAST

    async def run(self) -> InventoryResult:
        """Build the complete inventory.

        Raises:
            StructuralError: If there is no usable Identity Center instance
            DirectoryError: If discovery fails
            WorkUnitError: Under fail-fast, when a work unit fails
        """
        start_time = time.time()

        accounts = await list_accounts(self.directory, self.governor)
        instance = await get_identity_center_instance(self.directory, self.governor)
        permission_sets = await list_permission_sets(
            self.directory, self.governor, instance.instance_arn
        )

        units = build_work_units(accounts, permission_sets)
        logger.info(
            f"Processing {len(units)} work units "
            f"({len(accounts)} accounts x {len(permission_sets)} permission sets)"
        )

        cache = ResolutionCache(self.directory, self.governor, instance.identity_store_id)
        engine = FanOutEngine(
            directory=self.directory,
            governor=self.governor,
            cache=cache,
            instance_arn=instance.instance_arn,
            concurrency=self.settings.concurrency,
            failure_policy=self.failure_policy,
            listener=self.listener,
        )

        self.listener.on_run_started(accounts, len(permission_sets))
        try:
            results, failures = await engine.run(units)
        except BaseException:
            logger.debug(f"Run aborted after {engine.completed} of {len(units)} units")
            self.listener.on_run_aborted()
            raise

        aggregator = Aggregator(accounts, units)
        aggregator.add_all(results)
        assignments = aggregator.assignments()
        self.listener.on_run_finished(len(assignments))

        statistics = {}
        statistics.update(self.governor.get_stats())
        statistics.update(cache.get_stats())
        statistics.update(aggregator.statistics())
        statistics["failed_units"] = len(failures)

        return InventoryResult(
            accounts=accounts,
            permission_sets=permission_sets,
            assignments=assignments,
            failures=failures,
            total_units=len(units),
            elapsed_seconds=time.time() - start_time,
            statistics=statistics,
        )


def run_inventory(
    directory: DirectoryClient,
    settings: InventorySettings,
    listener: Optional[ProgressListener] = None,
) -> InventoryResult:
    """Run a complete inventory on a fresh event loop."""
    runner = InventoryRunner(directory, settings, listener)
    return asyncio.run(runner.run())
