"""
Sample and setting validation.
"""

import math
import re
from typing import Iterable, Mapping, Sequence

import numpy as np

from .transforms import relative_rotation_angle

# Smallest allowed rotation between samples, 5 degrees
MIN_ROTATION = math.pi / 36.0

REQUIRED_FRAMES = ("sensor", "object", "base", "eef")

# Characters a tf frame id may contain
FRAME_NAME_PATTERN = re.compile(r"[A-Za-z0-9_./~-]+")


def min_rotation_angle(candidate: np.ndarray, priors: Iterable[np.ndarray]) -> float:
    """
    Smallest relative rotation angle between a candidate and prior transforms.

    Returns ``math.inf`` when there are no priors.
    """
    smallest = math.inf
    for prior in priors:
        smallest = min(smallest, relative_rotation_angle(candidate, prior))
    return smallest


def has_sufficient_rotation(
    candidate: np.ndarray,
    priors: Iterable[np.ndarray],
    threshold: float = MIN_ROTATION,
) -> bool:
    """True if the candidate is at least ``threshold`` away from every prior."""
    return not min_rotation_angle(candidate, priors) < threshold


def frame_names_complete(frame_names: Mapping[str, str]) -> bool:
    """All four frame names needed for a transform pair are non-empty."""
    return all(frame_names.get(key) for key in REQUIRED_FRAMES)


def frame_name_valid(name: str) -> bool:
    return FRAME_NAME_PATTERN.fullmatch(name) is not None


def joint_states_valid(
    joint_names: Sequence[str],
    joint_states: Sequence[Sequence[float]],
) -> bool:
    """
    Check that there are joint states and each matches the joint names.

    Parameters
    ----------
    joint_names : sequence of str
        Joint names shared by all states.
    joint_states : sequence of sequence of float
        Recorded joint positions.

    Returns
    -------
    bool
        False if either sequence is empty or any state has the wrong length.
    """
    if not joint_names or not joint_states:
        return False
    return all(len(state) == len(joint_names) for state in joint_states)
