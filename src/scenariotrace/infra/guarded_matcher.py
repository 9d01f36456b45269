"""Timeout, single-retry and per-run caching around a similarity matcher."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from scenariotrace.domain.ports import MatchCandidate, SimilarityMatcherPort
from scenariotrace.errors import MatcherUnavailable
from scenariotrace.hashing import comparison_key

logger = logging.getLogger(__name__)

RETRIES = 1


class GuardedMatcher:
    """Wraps a matcher so every comparison is bounded in time and retried once.

    One instance belongs to one analysis run; its cache is never shared with
    another run. Call :meth:`close` (or use it as a context manager) to release
    the worker threads.
    """

    def __init__(
        self,
        inner: SimilarityMatcherPort,
        *,
        timeout_s: float = 30.0,
        max_workers: int = 4,
    ) -> None:
        self.inner = inner
        self.timeout_s = timeout_s
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="similarity-matcher"
        )
        self._cache: Dict[str, List[MatchCandidate]] = {}
        self._lock = threading.Lock()
        self.calls = 0
        self.failures = 0

    def __enter__(self) -> "GuardedMatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        key = comparison_key(text, candidates)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        last_error: Optional[Exception] = None
        for attempt in range(RETRIES + 1):
            try:
                ranked = self._call(text, candidates)
            except (MatcherUnavailable, concurrent.futures.TimeoutError, ValueError) as exc:
                last_error = exc
                with self._lock:
                    self.failures += 1
                if attempt < RETRIES:
                    logger.warning("Similarity matcher failed (%s); retrying once", exc)
                continue
            with self._lock:
                self._cache[key] = ranked
            return list(ranked)
        raise MatcherUnavailable(f"Similarity matcher unavailable after retry: {last_error}")

    def _call(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        with self._lock:
            self.calls += 1
        future = self._executor.submit(self.inner.compare, text, list(candidates))
        try:
            ranked = future.result(timeout=self.timeout_s)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise concurrent.futures.TimeoutError(
                f"comparison exceeded {self.timeout_s:.1f}s"
            ) from None
        return _validated(ranked, len(candidates))


def _validated(ranked: Sequence[MatchCandidate], count: int) -> List[MatchCandidate]:
    result: List[MatchCandidate] = []
    for item in ranked:
        if not 0 <= item.index < count:
            raise MatcherUnavailable(f"Matcher returned index {item.index} for {count} candidates")
        if not 0.0 <= item.score <= 1.0:
            raise MatcherUnavailable(f"Matcher returned score {item.score} outside [0, 1]")
        result.append(item)
    return result
