"""
Tuning constants and counter configuration.
Values can be overridden from the environment (or a .env file) via CounterConfig.from_env().
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

# Minimum per-joint confidence for a frame to be counted.
SCORE_THRESHOLD = 0.5
# Hysteresis bands as a fraction of frame height (3% each). Scaling by height
# keeps the detector resolution-independent.
ABOVE_MARGIN_RATIO = 0.03
BELOW_MARGIN_RATIO = 0.03
# Seconds per timestamp unit. 1.0 for time.perf_counter(); 0.001 for millisecond clocks.
TIME_SCALE = 1.0

ENV_PREFIX = "CURLCOUNTER_"


@dataclass(frozen=True)
class JointRole:
    """
    One logical joint (e.g. left shoulder): identifiers accepted from the
    estimator, in priority order, plus a positional index used when the
    estimator reports no identifiers at all.
    """

    identifiers: tuple[str, ...]
    fallback_index: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.identifiers and self.fallback_index is None:
            raise ValueError("JointRole needs at least one identifier or a fallback_index")
        if self.fallback_index is not None and self.fallback_index < 0:
            raise ValueError("fallback_index must be non-negative")


@dataclass(frozen=True)
class LimbJoints:
    """Proximal/distal roles for both sides of the tracked limb segment."""

    left_proximal: JointRole
    left_distal: JointRole
    right_proximal: JointRole
    right_distal: JointRole


# MediaPipe Pose landmark indices (same as PoseLandmark), used as the fallback
class LandmarkIdx:
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14


SHOULDER_ELBOW = LimbJoints(
    left_proximal=JointRole(("left_shoulder", "leftShoulder"), LandmarkIdx.LEFT_SHOULDER),
    left_distal=JointRole(("left_elbow", "leftElbow"), LandmarkIdx.LEFT_ELBOW),
    right_proximal=JointRole(("right_shoulder", "rightShoulder"), LandmarkIdx.RIGHT_SHOULDER),
    right_distal=JointRole(("right_elbow", "rightElbow"), LandmarkIdx.RIGHT_ELBOW),
)

# Same roles for 17-keypoint COCO estimators (MoveNet, YOLO pose), where 11-14 are hips/knees.
COCO_SHOULDER_ELBOW = LimbJoints(
    left_proximal=JointRole(("left_shoulder", "leftShoulder"), 5),
    left_distal=JointRole(("left_elbow", "leftElbow"), 7),
    right_proximal=JointRole(("right_shoulder", "rightShoulder"), 6),
    right_distal=JointRole(("right_elbow", "rightElbow"), 8),
)


def _check_ratio(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite number >= 0, got {value!r}")


@dataclass(frozen=True)
class CounterConfig:
    """
    Recognized options for RepCounter.

    Attributes:
        score_threshold: Minimum per-joint confidence to admit a frame.
        above_margin_ratio: Fraction of frame height defining the "above" band.
        below_margin_ratio: Fraction of frame height defining the "below" band.
        time_scale: Seconds per unit of the timestamps passed to process_frame.
        joints: Which landmarks bound the tracked limb segment on each side.
        log_level: Optional level applied to the package logger.
    """

    score_threshold: float = SCORE_THRESHOLD
    above_margin_ratio: float = ABOVE_MARGIN_RATIO
    below_margin_ratio: float = BELOW_MARGIN_RATIO
    time_scale: float = TIME_SCALE
    joints: LimbJoints = field(default=SHOULDER_ELBOW)
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError(f"score_threshold must be in [0, 1], got {self.score_threshold!r}")
        _check_ratio("above_margin_ratio", self.above_margin_ratio)
        _check_ratio("below_margin_ratio", self.below_margin_ratio)
        if not math.isfinite(self.time_scale) or self.time_scale <= 0:
            raise ValueError(f"time_scale must be positive, got {self.time_scale!r}")
        if self.log_level is not None and not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"log_level must be a logging level name, got {self.log_level!r}")

    def margins(self, frame_height: float) -> tuple[float, float]:
        """Return (below_margin, above_margin) in frame units for the given height."""
        return (frame_height * self.below_margin_ratio, frame_height * self.above_margin_ratio)

    def apply_log_level(self) -> None:
        if self.log_level:
            logging.getLogger("curlcounter").setLevel(self.log_level.upper())

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        load_dotenv_file: bool = True,
    ) -> "CounterConfig":
        """
        Build config from CURLCOUNTER_* variables; unset variables keep defaults.
        Loads .env from the working directory first (existing variables win).
        """
        if environ is None:
            if load_dotenv_file:
                from dotenv import find_dotenv, load_dotenv
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        def _float(key: str, default: float) -> float:
            raw = environ.get(ENV_PREFIX + key)
            if raw is None or not raw.strip():
                return default
            try:
                return float(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}") from None

        return cls(
            score_threshold=_float("SCORE_THRESHOLD", SCORE_THRESHOLD),
            above_margin_ratio=_float("ABOVE_MARGIN_RATIO", ABOVE_MARGIN_RATIO),
            below_margin_ratio=_float("BELOW_MARGIN_RATIO", BELOW_MARGIN_RATIO),
            time_scale=_float("TIME_SCALE", TIME_SCALE),
            log_level=environ.get(ENV_PREFIX + "LOG_LEVEL") or None,
        )
