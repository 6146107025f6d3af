from __future__ import annotations

import asyncio
from dataclasses import dataclass
import threading
from typing import Awaitable, Callable, Optional

from loguru import logger

from .types import ReadinessState, VideoSource

ProbeFn = Callable[[str], Awaitable[bool]]


@dataclass
class _ReadinessEntry:
    state: ReadinessState
    task: Optional["asyncio.Task[bool]"] = None


class MediaSourceCache:
    """
    Process-lifetime caches for source resolution.

    Holds resolved VideoSource values per asset path and the HLS readiness
    state per asset base URL. Entries never expire; a base that probed
    NOT_READY stays that way until `invalidate` is called explicitly.
    All map access is guarded by one lock that is never held across I/O.
    """

    def __init__(self) -> None:
        self._sources: dict[str, VideoSource] = {}
        self._readiness: dict[str, _ReadinessEntry] = {}
        self._lock = threading.Lock()

    def get_source(self, asset_path: str) -> Optional[VideoSource]:
        """
        Return the cached VideoSource for `asset_path`, or None on a miss.
        """
        with self._lock:
            source = self._sources.get(asset_path)
        if source is None:
            logger.trace("Resolution cache miss for {}", asset_path)
        else:
            logger.trace("Resolution cache hit for {}", asset_path)
        return source

    def remember_source(self, asset_path: str, source: VideoSource) -> VideoSource:
        """
        Store `source` unless another resolution got there first.

        Returns:
            VideoSource: The value now cached for `asset_path`; the first
            stored result wins so every caller observes the same kind.
        """
        with self._lock:
            return self._sources.setdefault(asset_path, source)

    def readiness_state(self, base_url: str) -> ReadinessState:
        with self._lock:
            entry = self._readiness.get(base_url)
            return entry.state if entry else ReadinessState.UNKNOWN

    async def readiness(self, base_url: str, probe: ProbeFn) -> bool:
        """
        Return HLS readiness for `base_url`, probing at most once per key.

        A terminal state answers from memory. While a probe is in flight every
        caller awaits the same task; it is shielded so a cancelled caller does
        not abort the probe the others are waiting on.

        Parameters:
            base_url (str): Absolute asset base URL.
            probe (ProbeFn): Coroutine function performing the network check.
        """
        with self._lock:
            entry = self._readiness.get(base_url)
            if entry is not None and entry.state.is_terminal:
                logger.trace("Readiness cache hit for {}: {}", base_url, entry.state.value)
                return entry.state is ReadinessState.READY
            if entry is None:
                entry = _ReadinessEntry(state=ReadinessState.PROBING)
                entry.task = asyncio.ensure_future(self._run_probe(base_url, probe, entry))
                self._readiness[base_url] = entry
                logger.debug("Started HLS readiness probe for {}", base_url)
            else:
                logger.trace("Joining in-flight readiness probe for {}", base_url)
            task = entry.task
        return await asyncio.shield(task)

    async def _run_probe(
        self, base_url: str, probe: ProbeFn, entry: _ReadinessEntry
    ) -> bool:
        ready = False
        try:
            ready = bool(await probe(base_url))
        except Exception as exc:
            logger.warning("HLS readiness probe for {} raised: {}", base_url, exc)
        finally:
            with self._lock:
                if self._readiness.get(base_url) is entry:
                    entry.state = (
                        ReadinessState.READY if ready else ReadinessState.NOT_READY
                    )
                    entry.task = None
        return ready

    def invalidate(self, asset_path: str, base_url: str | None = None) -> None:
        """
        Drop the resolution for `asset_path` and, when given, the readiness
        state of `base_url`. An in-flight probe keeps running for its current
        waiters but its result is discarded.
        """
        logger.info("Invalidating resolution for {}", asset_path)
        with self._lock:
            self._sources.pop(asset_path, None)
            if base_url is not None:
                self._readiness.pop(base_url, None)

    def clear(self) -> None:
        with self._lock:
            self._sources.clear()
            self._readiness.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            probing = sum(
                1
                for e in self._readiness.values()
                if e.state is ReadinessState.PROBING
            )
            return {
                "sources": len(self._sources),
                "readiness": len(self._readiness),
                "probing": probing,
            }
