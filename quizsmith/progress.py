"""Generation progress: real provider status when available, a time curve otherwise."""
from __future__ import annotations

import enum
import logging
import math
import time
from dataclasses import dataclass, field

log = logging.getLogger("quizsmith.progress")

# Estimates while the provider is still working never reach 100.
STATUS_CEILING = 95
SYNTHETIC_CEILING = 99
NO_RATIO_ESTIMATE = 50
STARTED_ESTIMATE = 20

# Synthetic curve: a fast rise towards 95 with a slow tail towards 99.
CURVE_TAU = 8.0
TRACKER_TTL = 5 * 60


class ProgressState(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass
class ProgressReport:
    progress: int
    status: ProgressState
    data: dict | None = None

    def to_dict(self) -> dict:
        d: dict = {"progress": self.progress, "status": self.status.value}
        if self.data is not None:
            d["data"] = self.data
        return d


def estimate_from_status(status: dict) -> ProgressReport:
    """Map a provider status object to a report.

    A finish reason means complete.  Otherwise the completion/total token
    ratio is used when both are known, then a fixed mid-range guess while
    content exists, then a low guess.
    """
    data = status.get("data") if isinstance(status.get("data"), dict) else status
    if data.get("finish_reason") or data.get("native_finish_reason"):
        return ProgressReport(100, ProgressState.COMPLETE, status)

    usage = data.get("usage") or {}
    completion = usage.get("completion_tokens") or data.get("tokens_completion")
    total = usage.get("total_tokens") or data.get("max_tokens")
    if data.get("choices") or completion:
        if completion and total:
            progress = min(STATUS_CEILING, round(completion / total * 100))
        else:
            progress = NO_RATIO_ESTIMATE
    else:
        progress = STARTED_ESTIMATE
    return ProgressReport(progress, ProgressState.IN_PROGRESS, status)


def synthetic_progress(elapsed: float) -> int:
    """Percentage for a backend without status polling after *elapsed* seconds.

    Non-decreasing in *elapsed*, 0 at the start and never above 99.
    """
    if elapsed <= 0:
        return 0
    fast = STATUS_CEILING * (1 - math.exp(-elapsed / CURVE_TAU))
    slow = (SYNTHETIC_CEILING - STATUS_CEILING) * (1 - math.exp(-elapsed / (10 * CURVE_TAU)))
    return min(SYNTHETIC_CEILING, round(fast + slow))


@dataclass
class ProgressTracker:
    """Progress of one generation as seen by pollers; never goes backwards."""

    started: float = field(default_factory=time.monotonic)
    touched: float = field(default_factory=time.monotonic)
    last: int = 0
    state: ProgressState = ProgressState.IN_PROGRESS
    remote: bool = False  # fed by provider status polls rather than the clock

    def _report(self, progress: int, data: dict | None = None) -> ProgressReport:
        self.touched = time.monotonic()
        if self.state is ProgressState.COMPLETE:
            return ProgressReport(100, ProgressState.COMPLETE, data)
        self.last = max(self.last, min(progress, SYNTHETIC_CEILING))
        return ProgressReport(self.last, self.state, data)

    def synthetic(self, now: float | None = None) -> ProgressReport:
        now = time.monotonic() if now is None else now
        return self._report(synthetic_progress(now - self.started))

    def from_status(self, status: dict) -> ProgressReport:
        report = estimate_from_status(status)
        if report.status is ProgressState.COMPLETE:
            self.complete()
        return self._report(report.progress, report.data)

    def complete(self) -> None:
        self.state = ProgressState.COMPLETE
        self.last = 100

    def expired(self, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.touched > TRACKER_TTL


class TrackerRegistry:
    """Process-local trackers keyed by request id and, once known, generation id."""

    def __init__(self):
        self._trackers: dict[str, ProgressTracker] = {}

    def start(self, *keys: str | None) -> ProgressTracker:
        self.prune()
        tracker = ProgressTracker()
        self.alias(tracker, *keys)
        return tracker

    def alias(self, tracker: ProgressTracker, *keys: str | None) -> None:
        for key in keys:
            if key:
                self._trackers[key] = tracker

    def get(self, key: str) -> ProgressTracker | None:
        return self._trackers.get(key)

    def prune(self, now: float | None = None) -> int:
        stale = [k for k, t in self._trackers.items() if t.expired(now)]
        for k in stale:
            del self._trackers[k]
        if stale:
            log.debug("Pruned %d stale progress trackers", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._trackers)
