"""
Convert pose-estimator output into JointEstimate lists.

Accepts the shapes common estimators produce: {name: (x, y, conf)} dicts,
lists of keypoint dicts/objects (MoveNet, MediaPipe landmarks), positional
(x, y[, conf]) tuples and numpy arrays. Malformed records become joints with
score 0 rather than errors.
"""
from __future__ import annotations

import math
from typing import Any, Mapping, Optional

import numpy as np

from .keypoints import JointEstimate, as_float


_NAME_KEYS = ("name", "part")
_SCORE_KEYS = ("score", "confidence", "visibility")


def _clamp_score(value: Any) -> float:
    s = as_float(value)
    if not math.isfinite(s):
        return 0.0
    return min(1.0, max(0.0, s))


def _field(record: Any, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if isinstance(record, Mapping):
            if record.get(key) is not None:
                return record[key]
        else:
            value = getattr(record, key, None)
            if value is not None:
                return value
    return None


def _from_record(
    record: Any,
    name: Optional[str] = None,
    scale: tuple[float, float] = (1.0, 1.0),
) -> JointEstimate:
    sx, sy = scale
    if record is None:
        return JointEstimate(math.nan, math.nan, 0.0, name)
    if isinstance(record, (tuple, list, np.ndarray)):
        vals = list(record)
        x = as_float(vals[0]) if len(vals) > 0 else math.nan
        y = as_float(vals[1]) if len(vals) > 1 else math.nan
        score = _clamp_score(vals[2]) if len(vals) > 2 else 0.0
        return JointEstimate(x * sx, y * sy, score, name)
    raw_name = _field(record, _NAME_KEYS)
    if name is None and raw_name is not None:
        name = str(raw_name) or None
    x = as_float(_field(record, ("x",)))
    y = as_float(_field(record, ("y",)))
    return JointEstimate(x * sx, y * sy, _clamp_score(_field(record, _SCORE_KEYS)), name)


def to_joint_estimates(
    raw: Any,
    frame_size: Optional[tuple[float, float]] = None,
) -> list[JointEstimate]:
    """
    Normalize one frame of estimator output.
    frame_size=(w, h) scales normalized [0, 1] coordinates (MediaPipe) to pixels.
    Returns [] for None/empty input.

    Unnamed positional input is matched by index, so the index layout must
    agree with the roles in use: SHOULDER_ELBOW expects MediaPipe's 33
    landmarks, COCO_SHOULDER_ELBOW the 17-keypoint COCO order (MoveNet, YOLO).
    """
    if raw is None:
        return []
    scale = (float(frame_size[0]), float(frame_size[1])) if frame_size else (1.0, 1.0)

    if isinstance(raw, Mapping):
        # {name: (x, y, conf)} or {name: {"x":..., "y":..., "score":...}}
        return [_from_record(rec, str(name), scale) for name, rec in raw.items()]

    if isinstance(raw, np.ndarray):
        try:
            arr = np.asarray(raw, dtype=float)
        except (TypeError, ValueError):
            return []
        if arr.ndim != 2 or arr.shape[1] < 2:
            return []
        return [_from_record(row, None, scale) for row in arr]

    # MediaPipe results expose the list under .landmark (legacy) or are a plain list
    landmarks = getattr(raw, "landmark", raw)
    try:
        records = list(landmarks)
    except TypeError:
        return []
    return [_from_record(rec, None, scale) for rec in records]
