# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-through cache of student aggregates.

Keys are ``<namespace>:<student_id>:<term>`` and entries carry a TTL. The
cache is never the source of truth: a missing, expired or unreadable entry
is recomputed from the ledger by the aggregation engine.

Every invalidation bumps a per-key generation counter. A reader records the
generation before scanning the ledger and only stores its snapshot if the
counter has not moved, so a snapshot computed before a write can never land
after that write's invalidation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from src.core.exceptions import DependencyUnavailableError
from src.infrastructure.cache.redis_client import RedisError

if TYPE_CHECKING:
    from src.domains.academics.aggregation import AggregateSnapshot

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "grades"
DEFAULT_TTL_SECONDS = 3600
GENERATION_TTL_SECONDS = 86400


class KeyValueStore(Protocol):
    """The subset of ``RedisClient`` the cache relies on."""

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, expire_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def incr(self, key: str, expire_seconds: int | None = None) -> int: ...

    async def set_if_unchanged(
        self,
        key: str,
        value: Any,
        guard_key: str,
        expected: int,
        expire_seconds: int | None = None,
    ) -> bool: ...


class AggregateCache:
    """Student aggregate cache over a key-value store.

    Attributes:
        store: Backing store, normally the shared ``RedisClient``.
        namespace: Key prefix.
        ttl_seconds: Default entry lifetime.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = DEFAULT_NAMESPACE,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds

    def key(self, student_id: str, term: str) -> str:
        """Build the cache key of a (student, term) pair."""
        return f"{self.namespace}:{student_id}:{term}"

    def generation_key(self, student_id: str, term: str) -> str:
        """Build the key of the invalidation counter of a (student, term) pair."""
        return f"{self.namespace}-generation:{student_id}:{term}"

    async def get(self, student_id: str, term: str) -> AggregateSnapshot | None:
        """Return the cached snapshot, or None on a miss.

        An entry that cannot be decoded is deleted and reported as a miss.

        Raises:
            DependencyUnavailableError: If the store is unreachable.
        """
        from src.domains.academics.aggregation import AggregateSnapshot

        key = self.key(student_id, term)
        try:
            payload = await self.store.get(key)
        except RedisError as e:
            raise DependencyUnavailableError("cache", "Aggregate cache read failed", e) from e

        if payload is None:
            return None

        try:
            return AggregateSnapshot.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Discarding unreadable aggregate cache entry %s", key)
            await self._delete(key)
            return None

    async def generation(self, student_id: str, term: str) -> int:
        """Return the invalidation counter of a (student, term) pair.

        Raises:
            DependencyUnavailableError: If the store is unreachable.
        """
        try:
            value = await self.store.get(self.generation_key(student_id, term))
        except RedisError as e:
            raise DependencyUnavailableError("cache", "Aggregate cache read failed", e) from e
        return int(value or 0)

    async def put(
        self,
        snapshot: AggregateSnapshot,
        ttl_seconds: int | None = None,
        generation: int | None = None,
    ) -> bool:
        """Store a snapshot, replacing any previous entry for its key.

        Args:
            snapshot: Snapshot to cache.
            ttl_seconds: Entry lifetime, the cache default when omitted.
            generation: Counter read before the snapshot was computed. When
                given, the snapshot is dropped if an invalidation happened
                since.

        Returns:
            True if the entry was written.

        Raises:
            DependencyUnavailableError: If the store is unreachable.
        """
        key = self.key(snapshot.student_id, snapshot.term)
        expire_seconds = ttl_seconds or self.ttl_seconds
        try:
            if generation is None:
                await self.store.set(key, snapshot.to_dict(), expire_seconds=expire_seconds)
                return True
            stored = await self.store.set_if_unchanged(
                key,
                snapshot.to_dict(),
                guard_key=self.generation_key(snapshot.student_id, snapshot.term),
                expected=generation,
                expire_seconds=expire_seconds,
            )
        except RedisError as e:
            raise DependencyUnavailableError("cache", "Aggregate cache write failed", e) from e

        if not stored:
            logger.debug("Dropped aggregate for %s, invalidated while computing", key)
        return stored

    async def invalidate(self, student_id: str, term: str) -> None:
        """Remove the entry for a (student, term) pair.

        The generation counter is bumped first, so a snapshot computed
        before this call cannot be stored afterwards. Removing an absent
        entry is not an error.

        Raises:
            DependencyUnavailableError: If the store is unreachable.
        """
        key = self.key(student_id, term)
        try:
            await self.store.incr(
                self.generation_key(student_id, term),
                expire_seconds=GENERATION_TTL_SECONDS,
            )
        except RedisError as e:
            raise DependencyUnavailableError(
                "cache", "Aggregate cache invalidation failed", e
            ) from e
        removed = await self._delete(key)
        logger.debug("Invalidated aggregate cache entry %s (present=%s)", key, removed)

    async def _delete(self, key: str) -> bool:
        try:
            return await self.store.delete(key)
        except RedisError as e:
            raise DependencyUnavailableError(
                "cache", "Aggregate cache invalidation failed", e
            ) from e
