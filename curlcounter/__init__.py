"""curlcounter: repetition counting from per-frame pose keypoints.

Feed each frame's keypoints to RepCounter.process_frame; read counts and
inter-rep timing from RepCounter.get_stats.
"""

from .config import COCO_SHOULDER_ELBOW, SHOULDER_ELBOW, CounterConfig, JointRole, LimbJoints
from .keypoints import JointEstimate, Side, TrackedPair, admit, select_pair
from .reps import FrameResult, Phase, RepCounter, RepStats, SessionState, count_reps_batch, update_phase

__all__ = [
    "COCO_SHOULDER_ELBOW",
    "CounterConfig",
    "FrameResult",
    "JointEstimate",
    "JointRole",
    "LimbJoints",
    "Phase",
    "RepCounter",
    "RepStats",
    "SHOULDER_ELBOW",
    "SessionState",
    "Side",
    "TrackedPair",
    "admit",
    "count_reps_batch",
    "select_pair",
    "update_phase",
]

__version__ = "0.1.0"
