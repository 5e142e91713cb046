"""
Rep detection: incremental (live) and batch (replay of a recorded series).
Uses the vertical offset between the tracked proximal and distal joints with
two hysteresis margins; a rep is one below -> above crossing.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from .config import CounterConfig
from .keypoints import Side, TrackedPair, admit, select_pair
from .pose import to_joint_estimates

logger = logging.getLogger(__name__)

WAITING = "waiting"
# Placeholder shown for an interval that does not exist yet.
NO_VALUE = "—"


def _as_height(value: Any) -> Optional[float]:
    try:
        h = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(h) or h <= 0:
        return None
    return h


class Phase(str, Enum):
    UNKNOWN = "unknown"
    BELOW = "below"
    ABOVE = "above"


@dataclass
class SessionState:
    """
    Everything the counter remembers between frames.
    Invariant: len(intervals) == max(rep_count - 1, 0).
    Timestamps and intervals are in caller clock units.
    """

    rep_count: int = 0
    phase: Phase = Phase.UNKNOWN
    last_rep_at: Optional[float] = None
    intervals: list[float] = field(default_factory=list)

    def clear(self) -> None:
        # Fresh list so snapshots handed out earlier are not emptied under the caller.
        self.rep_count = 0
        self.phase = Phase.UNKNOWN
        self.last_rep_at = None
        self.intervals = []

    @property
    def last_interval(self) -> Optional[float]:
        return self.intervals[-1] if self.intervals else None

    @property
    def average_interval(self) -> Optional[float]:
        if not self.intervals:
            return None
        return float(np.mean(self.intervals))


def update_phase(
    state: SessionState,
    delta: float,
    frame_height: float,
    now: float,
    config: CounterConfig,
) -> bool:
    """
    Advance the phase for one admitted frame. Returns True if a rep was counted.

    delta = proximal.y - distal.y, positive when the distal joint is higher.
    Between -below_margin and +above_margin nothing changes (dead zone).
    """
    below_margin, above_margin = config.margins(frame_height)
    if delta < -below_margin:
        state.phase = Phase.BELOW
        return False
    if state.phase is Phase.BELOW and delta > above_margin:
        state.rep_count += 1
        if state.last_rep_at is not None:
            state.intervals.append(now - state.last_rep_at)
        state.last_rep_at = now
        state.phase = Phase.ABOVE
        return True
    return False


@dataclass(frozen=True)
class RepStats:
    rep_count: int
    phase: Phase
    last_interval_seconds: Optional[float]
    avg_interval_seconds: Optional[float]

    @staticmethod
    def format_interval(seconds: Optional[float]) -> str:
        return f"{seconds:.2f}s" if seconds is not None else NO_VALUE

    def to_dict(self) -> dict[str, Any]:
        return {
            "rep_count": self.rep_count,
            "phase": self.phase.value,
            "last_interval_seconds": self.last_interval_seconds,
            "avg_interval_seconds": self.avg_interval_seconds,
        }


@dataclass(frozen=True)
class FrameResult:
    """Outcome of one process_frame call. tracked_pair is for optional visualization only."""

    admitted: bool
    phase: Phase
    tracked_pair: Optional[TrackedPair]
    delta: Optional[float] = None
    rep_counted: bool = False

    @property
    def status(self) -> str:
        return self.phase.value if self.admitted else WAITING


class RepCounter:
    """
    Per-frame rep counter: select side -> confidence gate -> phase update.
    Not thread-safe; the host must deliver frames one at a time.
    """

    def __init__(self, config: Optional[CounterConfig] = None):
        self.config = config or CounterConfig()
        self.config.apply_log_level()
        self.state = SessionState()
        self._last_side: Optional[Side] = None

    def _clock(self) -> float:
        return time.perf_counter() / self.config.time_scale

    def process_frame(
        self,
        joints: Any,
        frame_height: float,
        now: Optional[float] = None,
        frame_size: Optional[tuple[float, float]] = None,
    ) -> FrameResult:
        """
        Push one frame of estimator output (any shape pose.to_joint_estimates accepts).
        now is in caller clock units (see CounterConfig.time_scale); defaults to perf_counter.
        Never raises on bad frame data; unusable frames come back not admitted.
        """
        estimates = to_joint_estimates(joints, frame_size)
        pair = select_pair(estimates, self.config.joints)
        if pair is not None and pair.side is not self._last_side:
            logger.debug("live_rep: tracking %s side (score=%.2f)", pair.side.value, pair.score)
            self._last_side = pair.side

        if not admit(pair, self.config.score_threshold):
            logger.debug(
                "live_rep: frame not admitted (score=%s)",
                "none" if pair is None else f"{pair.score:.2f}",
            )
            return FrameResult(admitted=False, phase=self.state.phase, tracked_pair=pair)
        height = _as_height(frame_height)
        if height is None:
            logger.debug("live_rep: ignoring frame with frame_height=%r", frame_height)
            return FrameResult(admitted=False, phase=self.state.phase, tracked_pair=pair)

        if now is None:
            now = self._clock()
        delta = pair.delta
        counted = update_phase(self.state, delta, height, now, self.config)
        if counted:
            last = self.state.last_interval
            logger.info(
                "live_rep: rep %s (side=%s interval=%s)",
                self.state.rep_count,
                pair.side.value,
                RepStats.format_interval(last * self.config.time_scale if last is not None else None),
            )
        return FrameResult(
            admitted=True,
            phase=self.state.phase,
            tracked_pair=pair,
            delta=delta,
            rep_counted=counted,
        )

    def get_stats(self) -> RepStats:
        scale = self.config.time_scale
        last = self.state.last_interval
        avg = self.state.average_interval
        return RepStats(
            rep_count=self.state.rep_count,
            phase=self.state.phase,
            last_interval_seconds=last * scale if last is not None else None,
            avg_interval_seconds=avg * scale if avg is not None else None,
        )

    def reset(self) -> None:
        logger.info("live_rep: reset (previous_rep_count=%s)", self.state.rep_count)
        self.state.clear()
        self._last_side = None


def count_reps_batch(
    series: Iterable[Any],
    frame_height: float | Sequence[float],
    fps: float,
    config: Optional[CounterConfig] = None,
) -> tuple[list[FrameResult], RepStats]:
    """
    Replay a recorded series (one estimator output per frame, None for no pose)
    through a fresh counter. Frame i is stamped at i / fps seconds.
    frame_height is a single value or one per frame.
    """
    if not fps or fps <= 0:
        raise ValueError(f"fps must be positive, got {fps!r}")
    frames = list(series)
    heights = None if np.isscalar(frame_height) else list(frame_height)
    if heights is not None and len(heights) != len(frames):
        raise ValueError(f"got {len(heights)} frame heights for {len(frames)} frames")
    counter = RepCounter(config)
    results: list[FrameResult] = []
    for idx, joints in enumerate(frames):
        h = heights[idx] if heights is not None else frame_height
        now = idx / fps / counter.config.time_scale
        results.append(counter.process_frame(joints, h, now))
    stats = counter.get_stats()
    logger.info("batch_rep: %s frames, %s reps", len(results), stats.rep_count)
    return results, stats
