"""In-memory resolution cache for principal names and group memberships.

The cache lives for one run and is never invalidated. Lookups are single-flight:
the first miss for a key starts one fetch and concurrent callers for the same
key await that fetch instead of issuing their own request. A fetch that fails
with anything other than "not found" is not cached, so the next caller tries
again from scratch.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from .directory import DirectoryClient
from .errors import DirectoryError
from .retry import RetryGovernor

logger = logging.getLogger(__name__)

DELETED_USER = "[Deleted User: {id}]"
DELETED_GROUP = "[Deleted Group: {id}]"


def _short_id(identifier: str) -> str:
    return f"{identifier[:8]}..."


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # Waiters may have been cancelled; keep the loop from reporting an unretrieved error.
    if not task.cancelled():
        task.exception()


class ResolutionCache:
    """Memoizes user names, group names and group members by id."""

    def __init__(
        self,
        directory: DirectoryClient,
        governor: RetryGovernor,
        identity_store_id: str,
    ):
        """
        Initialize the cache.

        Args:
            directory: Directory client used on cache misses
            governor: Retry governor wrapping every remote call
            identity_store_id: Identity Store that owns the principals
        """
        self.directory = directory
        self.governor = governor
        self.identity_store_id = identity_store_id

        self._user_names: Dict[str, str] = {}
        self._group_names: Dict[str, str] = {}
        self._group_members: Dict[str, List[str]] = {}
        self._in_flight: Dict[Tuple[str, str], "asyncio.Future[Any]"] = {}

        self.hits = 0
        self.misses = 0
        self.tombstones = 0

    async def resolve_user_name(self, user_id: str) -> str:
        """Return the user's name, or a tombstone if the user no longer exists."""
        return await self._resolve("user", self._user_names, user_id, self._fetch_user_name)

    async def resolve_group_name(self, group_id: str) -> str:
        """Return the group's display name, or a tombstone if the group no longer exists."""
        return await self._resolve("group", self._group_names, group_id, self._fetch_group_name)

    async def resolve_group_members(self, group_id: str) -> List[str]:
        """Return the user ids of the group's members, empty if the group no longer exists."""
        return await self._resolve(
            "members", self._group_members, group_id, self._fetch_group_members
        )

    async def _resolve(
        self,
        kind: str,
        store: Dict[str, Any],
        key: str,
        fetch: Callable[[str], Awaitable[Any]],
    ) -> Any:
        if key in store:
            self.hits += 1
            return store[key]

        flight_key = (kind, key)
        future = self._in_flight.get(flight_key)
        if future is None:
            self.misses += 1
            future = asyncio.ensure_future(self._fill(store, flight_key, key, fetch))
            future.add_done_callback(_consume_exception)
            self._in_flight[flight_key] = future
        else:
            self.hits += 1

        # One cancelled waiter must not cancel the fetch shared with the others.
        return await asyncio.shield(future)

    async def _fill(
        self,
        store: Dict[str, Any],
        flight_key: Tuple[str, str],
        key: str,
        fetch: Callable[[str], Awaitable[Any]],
    ) -> Any:
        try:
            value = await fetch(key)
            store.setdefault(key, value)
            return store[key]
        finally:
            self._in_flight.pop(flight_key, None)

    async def _fetch_user_name(self, user_id: str) -> str:
        try:
            name = await self.governor.execute(
                functools.partial(self.directory.describe_user, self.identity_store_id, user_id),
                f"DescribeUser({_short_id(user_id)})",
            )
        except DirectoryError as e:
            if not e.is_not_found:
                raise
            logger.debug(f"User {user_id} not found, recording as deleted")
            self.tombstones += 1
            return DELETED_USER.format(id=user_id)
        return name or user_id

    async def _fetch_group_name(self, group_id: str) -> str:
        try:
            name = await self.governor.execute(
                functools.partial(self.directory.describe_group, self.identity_store_id, group_id),
                f"DescribeGroup({_short_id(group_id)})",
            )
        except DirectoryError as e:
            if not e.is_not_found:
                raise
            logger.debug(f"Group {group_id} not found, recording as deleted")
            self.tombstones += 1
            return DELETED_GROUP.format(id=group_id)
        return name or group_id

    async def _fetch_group_members(self, group_id: str) -> List[str]:
        members: List[str] = []
        next_token = None
        try:
            while True:
                page, next_token = await self.governor.execute(
                    functools.partial(
                        self.directory.list_group_memberships,
                        self.identity_store_id,
                        group_id,
                        next_token,
                    ),
                    f"ListGroupMemberships({_short_id(group_id)})",
                )
                members.extend(page)
                if not next_token:
                    break
        except DirectoryError as e:
            if not e.is_not_found:
                raise
            logger.debug(f"Group {group_id} not found while listing members")
            return []
        return members

    def get_stats(self) -> Dict[str, int]:
        return {
            "cache_hits": self.hits,
            "cache_misses": self.misses,
            "tombstones": self.tombstones,
            "cached_users": len(self._user_names),
            "cached_groups": len(self._group_names),
        }
