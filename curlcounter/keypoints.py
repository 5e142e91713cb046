"""
Joint estimates, side selection and the confidence gate.

Coordinates are in source-frame pixels with y growing downward, so a smaller
y is higher in the image. Nothing here raises on odd estimator output: a
missing joint or score just scores 0.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from .config import SCORE_THRESHOLD, SHOULDER_ELBOW, JointRole, LimbJoints


def as_float(value: Any) -> float:
    """float(value), or NaN when value is missing or not numeric."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class JointEstimate:
    """One landmark for one frame. score is clamped to [0, 1] by the adapters in pose.py."""

    x: float
    y: float
    score: float = 0.0
    name: Optional[str] = None

    @property
    def usable(self) -> bool:
        return math.isfinite(as_float(self.x)) and math.isfinite(as_float(self.y))


@dataclass(frozen=True)
class TrackedPair:
    """Proximal/distal joints picked for this frame. Either may be None if undetected."""

    side: Side
    proximal: Optional[JointEstimate]
    distal: Optional[JointEstimate]

    @property
    def score(self) -> float:
        return min(_score(self.proximal), _score(self.distal))

    @property
    def delta(self) -> Optional[float]:
        """
        proximal.y - distal.y. Positive means the distal joint (e.g. elbow) sits
        above the proximal one (e.g. shoulder). None if either joint is missing.
        """
        if self.proximal is None or self.distal is None:
            return None
        if not (self.proximal.usable and self.distal.usable):
            return None
        return as_float(self.proximal.y) - as_float(self.distal.y)


def _score(joint: Optional[JointEstimate]) -> float:
    if joint is None or not joint.usable:
        return 0.0
    score = as_float(joint.score)
    if not math.isfinite(score):
        return 0.0
    return min(1.0, max(0.0, score))


def find_joint(joints: Sequence[JointEstimate], role: JointRole) -> Optional[JointEstimate]:
    """
    Look up a joint by identifier, in the role's priority order; when an
    identifier repeats, the first estimate carrying it wins. Fall back to the
    role's index only when that estimate carries no identifier (estimators that
    report positions without names).
    """
    by_name: dict[str, JointEstimate] = {}
    for j in joints:
        if j.name:
            by_name.setdefault(j.name, j)
    for ident in role.identifiers:
        found = by_name.get(ident)
        if found is not None:
            return found
    idx = role.fallback_index
    if idx is not None and idx < len(joints) and not joints[idx].name:
        return joints[idx]
    return None


def select_pair(
    joints: Optional[Sequence[JointEstimate]],
    roles: LimbJoints = SHOULDER_ELBOW,
) -> Optional[TrackedPair]:
    """
    Pick the side whose weaker joint is more confident.
    Ties go to the left side; a side with nothing detected never wins.
    Returns None only when neither side has any joint.
    """
    if not joints:
        return None
    left = TrackedPair(
        Side.LEFT,
        find_joint(joints, roles.left_proximal),
        find_joint(joints, roles.left_distal),
    )
    right = TrackedPair(
        Side.RIGHT,
        find_joint(joints, roles.right_proximal),
        find_joint(joints, roles.right_distal),
    )
    candidates = [p for p in (left, right) if p.proximal is not None or p.distal is not None]
    if not candidates:
        return None
    # max() keeps the first of equal scores, so left wins ties.
    return max(candidates, key=lambda p: p.score)


def admit(pair: Optional[TrackedPair], threshold: float = SCORE_THRESHOLD) -> bool:
    """True iff both tracked joints are present with score >= threshold."""
    if pair is None or pair.delta is None:
        return False
    return _score(pair.proximal) >= threshold and _score(pair.distal) >= threshold
