"""Per-client sliding-window admission control.

Each client identity owns an ordered list of request timestamps.  On every
check the entries that have aged out of the window are pruned, and the
request is admitted only while the remaining count is below the limit.
Rejected attempts are not recorded, so a client that keeps hammering the
gateway regains capacity as soon as its oldest admitted request ages out.

Design notes
------------
* ``InMemoryRateLimiter`` is per-process: a restart or a second replica
  starts from empty counters.  The read-prune-append runs under a
  ``threading.Lock`` so one process never over-admits.
* ``RedisRateLimiter`` shares counters across replicas.  Its prune, count
  and append are separate round trips, so concurrent replicas can exceed
  the limit by a small margin.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import monotonic, time
from typing import Any, Protocol
from uuid import uuid4

try:  # pragma: no cover - optional dependency at runtime
    import redis  # type: ignore[import-not-found,import-untyped]
except Exception:  # pragma: no cover - optional dependency at runtime
    redis = None

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_REQUESTS = 100
DEFAULT_SWEEP_EVERY = 256


class RateLimitBackendError(Exception):
    """Raised when the rate-limit backend is unavailable or misconfigured."""


class RateLimitStore(Protocol):
    def admit(self, identity: str) -> bool:
        """Record and admit the request, or return False when over the limit."""


@dataclass
class RequestWindow:
    """Timestamps (milliseconds) of admitted requests for one identity."""
    timestamps: list[float] = field(default_factory=list)

    def prune(self, now_ms: float, window_ms: int) -> None:
        self.timestamps = [ts for ts in self.timestamps if now_ms - ts < window_ms]


class InMemoryRateLimiter:
    """In-process sliding-window limiter.

    Parameters
    ----------
    max_requests : int
        Requests admitted per identity inside one window.
    window_ms : int
        Sliding window length in milliseconds.
    clock : callable, optional
        Returns the current time in seconds; defaults to ``time.monotonic``.
    sweep_every : int, optional
        Number of ``admit`` calls after which identities whose newest request
        has aged out of the window are dropped. A sweep also runs once a full
        window has passed since the previous one.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = monotonic,
        sweep_every: int = DEFAULT_SWEEP_EVERY,
    ) -> None:
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock
        self._sweep_every = max(sweep_every, 1)
        self._windows: dict[str, RequestWindow] = {}
        self._calls_since_sweep = 0
        self._last_sweep_ms: float | None = None
        self._lock = threading.Lock()

    @property
    def identity_count(self) -> int:
        """Number of identities currently holding a window."""
        with self._lock:
            return len(self._windows)

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def admit(self, identity: str) -> bool:
        now_ms = self._now_ms()
        with self._lock:
            self._calls_since_sweep += 1
            if self._last_sweep_ms is None:
                self._last_sweep_ms = now_ms
            if (
                self._calls_since_sweep >= self._sweep_every
                or now_ms - self._last_sweep_ms >= self._window_ms
            ):
                self._sweep(now_ms)

            window = self._windows.get(identity)
            if window is not None:
                window.prune(now_ms, self._window_ms)
                if len(window.timestamps) >= self._max_requests:
                    return False
            else:
                window = self._windows[identity] = RequestWindow()
            window.timestamps.append(now_ms)
            return True

    def usage(self, identity: str) -> int:
        """Return how many requests are counted for *identity* right now."""
        now_ms = self._now_ms()
        with self._lock:
            window = self._windows.get(identity)
            if window is None:
                return 0
            window.prune(now_ms, self._window_ms)
            if not window.timestamps:
                del self._windows[identity]
                return 0
            return len(window.timestamps)

    def reset(self, identity: str) -> None:
        with self._lock:
            self._windows.pop(identity, None)

    def _sweep(self, now_ms: float) -> None:
        # Caller holds the lock. Timestamps are appended in order, so the last
        # one is the newest.
        self._calls_since_sweep = 0
        self._last_sweep_ms = now_ms
        stale = [
            identity
            for identity, window in self._windows.items()
            if not window.timestamps or now_ms - window.timestamps[-1] >= self._window_ms
        ]
        for identity in stale:
            del self._windows[identity]


class RedisRateLimiter:
    """Redis-backed sliding-window limiter for multi-replica deployments."""

    def __init__(
        self,
        redis_url: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        key_prefix: str = "edge:ratelimit",
        clock: Callable[[], float] = time,
    ) -> None:
        if redis is None:  # pragma: no cover - runtime dependency gate
            raise RateLimitBackendError(
                "Redis rate-limit backend selected but redis package is not installed"
            )
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._key_prefix = key_prefix
        self._clock = clock
        try:
            self._client: Any = redis.Redis.from_url(redis_url, decode_responses=True)
            self._client.ping()
        except Exception as exc:  # pragma: no cover - runtime guard
            raise RateLimitBackendError(
                f"Failed to initialize Redis rate-limit backend: {exc}"
            ) from exc

    def _key(self, identity: str) -> str:
        return f"{self._key_prefix}:{identity}"

    def admit(self, identity: str) -> bool:
        key = self._key(identity)
        now_ms = self._clock() * 1000.0
        cutoff = now_ms - self._window_ms
        try:
            self._client.zremrangebyscore(key, "-inf", cutoff)
            current = int(self._client.zcard(key))
        except Exception as exc:
            raise RateLimitBackendError(f"Redis read failed: {exc}") from exc

        if current >= self._max_requests:
            return False

        member = f"{now_ms:.3f}:{uuid4().hex}"
        try:
            pipe = self._client.pipeline()
            pipe.zadd(key, {member: now_ms})
            pipe.pexpire(key, self._window_ms)
            pipe.execute()
        except Exception as exc:
            raise RateLimitBackendError(f"Redis write failed: {exc}") from exc
        return True
