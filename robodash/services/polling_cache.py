from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Protocol

from robodash.common.logging_config import TRACE
from robodash.state import (
    ErrorInfo,
    ErrorKind,
    FetchResult,
    QueryState,
    QueryStatus,
    ResourceKey,
)


class ResourceFetcher(Protocol):
    def fetch(self, key: ResourceKey) -> Awaitable[FetchResult[Any]]: ...


@dataclass(frozen=True)
class SubscriptionHandle:
    key: ResourceKey
    token: int


class _Entry:
    """Mutable bookkeeping for one key. Only touched from the event loop thread."""

    def __init__(self, key: ResourceKey, interval_s: float) -> None:
        self.key = key
        self.interval_s = interval_s
        self.state: QueryState[Any] = QueryState()
        self.handles: set[int] = set()
        self.seq_issued = 0
        self.skipped_ticks = 0
        self.in_flight: asyncio.Task | None = None
        self.schedule: asyncio.Task | None = None
        # monotonic stamps for freshness/idle checks (wall clock lives in state)
        self.fetched_mono: float | None = None
        self.released_mono: float | None = None


class PollingCache:
    """
    Keeps a set of remote resources fresh on a fixed interval.

    - Subscriptions are reference counted per key; all subscribers of a key share
      one schedule and one cached QueryState.
    - A tick that finds a request for its key still in flight is skipped, so at
      most one request per key is outstanding.
    - Every request carries a per-key sequence number; completions that are not
      the latest issued are discarded.
    - Failures never trigger an early retry; the next tick is the retry.
    - With keep_stale_on_error, a failure after a success keeps status SUCCESS
      and the last good data, and records the error alongside it. Without it,
      any failure moves the entry to ERROR.
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        default_interval_s: float = 1.0,
        keep_stale_on_error: bool = True,
    ) -> None:
        if default_interval_s <= 0:
            raise ValueError("default_interval_s must be > 0")
        self._fetcher = fetcher
        self.default_interval_s = default_interval_s
        self.keep_stale_on_error = keep_stale_on_error
        self._entries: dict[ResourceKey, _Entry] = {}
        self._tokens = itertools.count(1)

    # ---- Subscriptions ----

    def subscribe(self, key: ResourceKey, interval_s: float | None = None) -> SubscriptionHandle:
        """
        Register interest in `key`. Must be called from within the event loop.

        The first subscriber of an idle key starts its schedule. If the kept data
        is younger than the interval it is reused and the first request waits for
        the remainder of the interval; otherwise a request is issued immediately.
        Later subscribers share the running schedule and its interval.
        """
        interval = self.default_interval_s if interval_s is None else interval_s
        if interval <= 0:
            raise ValueError("interval_s must be > 0")

        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(key, interval)
            self._entries[key] = entry

        token = next(self._tokens)
        reviving = not entry.handles
        entry.handles.add(token)
        if reviving:
            entry.interval_s = interval
            entry.released_mono = None
            self._start_schedule(entry)
        return SubscriptionHandle(key=key, token=token)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Drop one subscription; the last one stops polling but keeps the entry."""
        entry = self._entries.get(handle.key)
        if entry is None or handle.token not in entry.handles:
            return
        entry.handles.discard(handle.token)
        if entry.handles:
            return

        if entry.schedule is not None:
            entry.schedule.cancel()
            entry.schedule = None
        if entry.in_flight is not None and not entry.in_flight.done():
            # If the transport ignores cancellation, the seq check drops the result
            entry.in_flight.cancel()
        entry.in_flight = None
        entry.released_mono = time.monotonic()
        entry.state = replace(entry.state, is_fetching=False, next_poll_at=None)
        logging.debug("Polling stopped for %s", _describe(handle.key))

    # ---- Reads ----

    def get(self, key: ResourceKey) -> QueryState[Any]:
        """Current snapshot for `key` (IDLE if nothing was ever subscribed)."""
        entry = self._entries.get(key)
        return entry.state if entry is not None else QueryState()

    def subscriber_count(self, key: ResourceKey) -> int:
        entry = self._entries.get(key)
        return len(entry.handles) if entry is not None else 0

    def is_in_flight(self, key: ResourceKey) -> bool:
        entry = self._entries.get(key)
        return bool(entry and entry.in_flight is not None and not entry.in_flight.done())

    def skipped_ticks(self, key: ResourceKey) -> int:
        entry = self._entries.get(key)
        return entry.skipped_ticks if entry is not None else 0

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ---- Ticks ----

    def poll(self, key: ResourceKey) -> asyncio.Task | None:
        """Run one tick for `key` now. Returns the request task, or None if skipped."""
        entry = self._entries.get(key)
        if entry is None or not entry.handles:
            return None
        return self._tick(entry)

    def _start_schedule(self, entry: _Entry) -> None:
        delay = 0.0
        if entry.fetched_mono is not None:
            age = time.monotonic() - entry.fetched_mono
            if age < entry.interval_s:
                delay = entry.interval_s - age
        if delay == 0.0:
            self._tick(entry)
            delay = entry.interval_s
        else:
            logging.debug(
                "Reusing cached %s (next poll in %.3fs)", _describe(entry.key), delay
            )
            entry.state = replace(entry.state, next_poll_at=time.time() + delay)
        entry.schedule = asyncio.create_task(self._run_schedule(entry, delay))

    async def _run_schedule(self, entry: _Entry, delay: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + delay
        while True:
            sleep_for = max(0.0, next_tick - loop.time())
            await asyncio.sleep(sleep_for)
            self._tick(entry)
            next_tick += entry.interval_s
            now = loop.time()
            # After a stall, realign instead of firing a burst of ticks
            if next_tick < now:
                next_tick = now + entry.interval_s

    def _tick(self, entry: _Entry) -> asyncio.Task | None:
        if entry.in_flight is not None and not entry.in_flight.done():
            entry.skipped_ticks += 1
            logging.log(TRACE, "Tick skipped for %s: request in flight", _describe(entry.key))
            return None

        entry.seq_issued += 1
        seq = entry.seq_issued
        status = entry.state.status
        if status is QueryStatus.IDLE:
            status = QueryStatus.LOADING
        entry.state = replace(
            entry.state,
            status=status,
            is_fetching=True,
            next_poll_at=time.time() + entry.interval_s,
        )
        entry.in_flight = asyncio.create_task(self._fetch(entry, seq))
        return entry.in_flight

    async def _fetch(self, entry: _Entry, seq: int) -> None:
        try:
            result = await self._fetcher.fetch(entry.key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logging.exception("Fetcher raised for %s", _describe(entry.key))
            result = FetchResult.failure(ErrorInfo(ErrorKind.UNREACHABLE, message=str(e)))

        if seq != entry.seq_issued or not entry.handles:
            logging.debug(
                "Discarding response #%d for %s (latest #%d)",
                seq,
                _describe(entry.key),
                entry.seq_issued,
            )
            return
        self._apply(entry, result)

    def _apply(self, entry: _Entry, result: FetchResult[Any]) -> None:
        prev = entry.state
        now = time.time()
        if result.ok:
            entry.fetched_mono = time.monotonic()
            if prev.error is not None:
                logging.info("%s recovered", _describe(entry.key))
            entry.state = replace(
                prev,
                status=QueryStatus.SUCCESS,
                data=result.value,
                error=None,
                last_fetched_at=now,
                is_fetching=False,
                updated_count=prev.updated_count + 1,
            )
            return

        has_data = entry.fetched_mono is not None
        if self.keep_stale_on_error and has_data:
            status = QueryStatus.SUCCESS
        else:
            status = QueryStatus.ERROR
        if prev.error != result.error:
            logging.warning(
                "Fetch failed for %s: %s%s",
                _describe(entry.key),
                result.error,
                " (showing last good data)" if status is QueryStatus.SUCCESS else "",
            )
        entry.state = replace(
            prev,
            status=status,
            error=result.error,
            is_fetching=False,
            updated_count=prev.updated_count + 1,
        )

    # ---- Housekeeping ----

    def prune(self, idle_s: float | None = None) -> int:
        """Forget entries without subscribers idle for longer than idle_s (default: their interval)."""
        now = time.monotonic()
        dropped = [
            key
            for key, entry in self._entries.items()
            if not entry.handles
            and entry.released_mono is not None
            and now - entry.released_mono >= (entry.interval_s if idle_s is None else idle_s)
        ]
        for key in dropped:
            del self._entries[key]
        if dropped:
            logging.debug("Pruned %d idle cache entries", len(dropped))
        return len(dropped)

    async def close(self) -> None:
        """Cancel every schedule and in-flight request."""
        tasks: list[asyncio.Task] = []
        for entry in self._entries.values():
            for task in (entry.schedule, entry.in_flight):
                if task is not None and not task.done():
                    task.cancel()
                    tasks.append(task)
            entry.schedule = None
            entry.in_flight = None
            entry.handles.clear()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task


def _describe(key: ResourceKey) -> str:
    return f"{key.robot_id}/{key.kind.value}"
