from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from dikernel.exceptions import DIKernelClosedError
from dikernel.lock_mode import LockMode
from dikernel.scopes import TRANSIENT, ScopeHandle

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.activation.pipeline import Pipeline
    from dikernel.activation.reference import InstanceReference

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    """One remembered instance together with the context that created it."""

    context: Context
    reference: InstanceReference


class _ScopeBucket:
    """Entries of one scope key plus a way to tell whether the key is still alive.

    Keys are held weakly when they support weak references, so a bucket dies
    with its scope. ``ScopeHandle`` keys additionally die when closed. Other
    keys are held strongly and stay alive until cleared.
    """

    __slots__ = ("entries", "key_id", "lock", "_get_scope")

    def __init__(self, scope: Any, lock: AbstractContextManager[object]) -> None:
        self.key_id = id(scope)
        self.lock = lock
        self.entries: list[CacheEntry] = []
        try:
            self._get_scope: Callable[[], Any] = weakref.ref(scope)
        except TypeError:
            self._get_scope = lambda: scope

    def holds(self, scope: Any) -> bool:
        return self._get_scope() is scope

    def is_alive(self) -> bool:
        scope = self._get_scope()
        if scope is None:
            return False
        return not isinstance(scope, ScopeHandle) or scope.is_alive


class Cache:
    """Track scoped instances per scope key and deactivate them when the scope dies.

    Entries are grouped in one bucket per scope identity. ``prune`` drops every
    bucket whose scope is no longer alive and deactivates its instances exactly
    once through the pipeline. Bucket bookkeeping is guarded by one cache lock;
    ``scope_lock`` exposes a reentrant per-scope lock that serializes
    get-or-create of instances within one scope.
    """

    def __init__(self, pipeline: Pipeline, *, lock_mode: LockMode = LockMode.THREAD) -> None:
        self.pipeline = pipeline
        self._lock_mode = lock_mode
        self._lock = lock_mode.create_lock()
        self._buckets: dict[int, _ScopeBucket] = {}
        self._orphans: list[_ScopeBucket] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def scope_lock(self, scope: Any) -> AbstractContextManager[object]:
        """Return the reentrant lock of ``scope``, creating its bucket if needed."""
        with self._lock:
            self._ensure_open()
            return self._bucket(scope, create=True).lock

    def try_get(self, context: Context, scope: Any) -> Any:
        """Return the instance cached for the binding of ``context`` in ``scope``, or ``None``."""
        if scope is TRANSIENT:
            return None
        with self._lock:
            bucket = self._bucket(scope, create=False)
            if bucket is None or not bucket.is_alive():
                return None
            for entry in bucket.entries:
                cached = entry.context
                if (
                    cached.binding is context.binding
                    and cached.generic_arguments == context.generic_arguments
                ):
                    return entry.reference.instance
        return None

    def remember(self, context: Context, scope: Any, reference: InstanceReference) -> None:
        """Record ``reference`` under ``scope``; transient scopes are not recorded."""
        if scope is TRANSIENT:
            return
        with self._lock:
            self._ensure_open()
            self._bucket(scope, create=True).entries.append(CacheEntry(context, reference))
        logger.debug("Remembered %r in scope %r", context.request.service, scope)

    def release(self, instance: Any) -> bool:
        """Remove and deactivate the entry holding ``instance``.

        Returns:
            ``True`` when the instance was tracked, ``False`` otherwise.

        """
        with self._lock:
            entry = self._pop_entry(instance)
        if entry is None:
            return False
        logger.debug("Releasing %r", instance)
        self._deactivate([entry])
        return True

    def forget(self, reference: InstanceReference) -> bool:
        """Drop the entry holding ``reference`` without deactivating it.

        Used when an instance fails initialization or activation after it was
        remembered, so later lookups never observe it.

        Returns:
            ``True`` when an entry was removed.

        """
        with self._lock:
            for bucket in [*self._buckets.values(), *self._orphans]:
                for index, entry in enumerate(bucket.entries):
                    if entry.reference is reference:
                        del bucket.entries[index]
                        logger.debug("Forgot %r", reference.instance)
                        return True
        return False

    def clear(self, scope: Any = None) -> int:
        """Deactivate and forget every entry of ``scope``, or of all scopes.

        Returns:
            Number of deactivated entries.

        """
        with self._lock:
            if scope is None:
                buckets = [*self._buckets.values(), *self._orphans]
                self._buckets.clear()
                self._orphans.clear()
            else:
                bucket = self._bucket(scope, create=False)
                buckets = [] if bucket is None else [self._buckets.pop(bucket.key_id)]
            entries = _drain(buckets)
        self._deactivate(entries)
        return len(entries)

    def prune(self) -> int:
        """Remove the buckets of dead scopes and deactivate their entries.

        Dead buckets are detached atomically under the cache lock; their
        entries are deactivated afterwards, outside the lock, in one pass.

        Returns:
            Number of pruned entries.

        """
        with self._lock:
            dead = [bucket for bucket in self._buckets.values() if not bucket.is_alive()]
            for bucket in dead:
                del self._buckets[bucket.key_id]
            dead.extend(self._orphans)
            self._orphans.clear()
            entries = _drain(dead)
        self._deactivate(entries)
        if entries:
            logger.debug("Pruned %d entries from %d dead scope(s)", len(entries), len(dead))
        return len(entries)

    def close(self) -> int:
        """Refuse new entries, then deactivate and forget every cached entry.

        Each scope is drained while holding its scope lock, so a get-or-create
        already running in that scope finishes first; one that reaches
        ``remember`` after the cache closed fails instead of leaking an entry.

        Returns:
            Number of deactivated entries.

        """
        with self._lock:
            self._closed = True
            buckets = [*self._buckets.values(), *self._orphans]
        entries: list[CacheEntry] = []
        for bucket in buckets:
            with bucket.lock, self._lock:
                entries.extend(_drain([bucket]))
        with self._lock:
            self._buckets.clear()
            self._orphans.clear()
        self._deactivate(entries)
        return len(entries)

    def count(self, scope: Any = None) -> int:
        """Return the number of cached entries in ``scope``, or in all scopes."""
        with self._lock:
            if scope is None:
                buckets: Iterable[_ScopeBucket] = [*self._buckets.values(), *self._orphans]
            else:
                bucket = self._bucket(scope, create=False)
                buckets = [] if bucket is None else [bucket]
            return sum(len(bucket.entries) for bucket in buckets)

    def _bucket(self, scope: Any, *, create: bool) -> _ScopeBucket | None:
        bucket = self._buckets.get(id(scope))
        if bucket is not None and not bucket.holds(scope):
            # The previous key was collected and its identity reused.
            self._orphans.append(self._buckets.pop(bucket.key_id))
            bucket = None
        if bucket is None and create:
            bucket = _ScopeBucket(scope, self._lock_mode.create_lock())
            self._buckets[bucket.key_id] = bucket
        return bucket

    def _pop_entry(self, instance: Any) -> CacheEntry | None:
        for bucket in [*self._buckets.values(), *self._orphans]:
            for index, entry in enumerate(bucket.entries):
                if entry.reference.instance is instance:
                    return bucket.entries.pop(index)
        return None

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "The cache is closed; its kernel no longer accepts scoped instances."
            raise DIKernelClosedError(msg)

    def _deactivate(self, entries: list[CacheEntry]) -> None:
        # Detached entries are unreachable afterwards, so every one of them is
        # deactivated even when an earlier one fails; the first error is raised.
        if not entries:
            return
        first_error: Exception | None = None
        with self.pipeline.activation_cache.pass_():
            for entry in entries:
                try:
                    self.pipeline.deactivate(entry.context, entry.reference)
                except Exception as error:
                    if first_error is None:
                        first_error = error
                    else:
                        logger.exception("Deactivating %r failed", entry.reference.instance)
        if first_error is not None:
            raise first_error


def _drain(buckets: Iterable[_ScopeBucket]) -> list[CacheEntry]:
    entries: list[CacheEntry] = []
    for bucket in buckets:
        entries.extend(bucket.entries)
        bucket.entries.clear()
    return entries


class CachePruner:
    """Prune a cache from a daemon thread at a fixed interval."""

    def __init__(self, cache: Cache, interval: float) -> None:
        self.cache = cache
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="dikernel-cache-pruner", daemon=True)
        self._thread.start()
        logger.debug("Started cache pruner with interval %.3fs", self.interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stopped.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.debug("Stopped cache pruner")

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.cache.prune()
            except Exception:
                # Nobody awaits this thread; keep pruning on the next tick.
                logger.exception("Cache pruning failed")


__all__ = ["Cache", "CacheEntry", "CachePruner"]
