"""
Contracts for the collaborators the calibration core talks to.

Transform lookup, motion planning and execution, the robot's joint groups and
transform publishing live outside this package; anything that provides these
methods can be plugged in.
"""

from typing import Any, Protocol, Sequence

import numpy as np

from .errors import TransformLookupError
from .transforms import invert_transform


class TransformLookup(Protocol):
    def lookup_transform(self, target_frame: str, source_frame: str) -> np.ndarray:
        """
        Latest pose of ``source_frame`` expressed in ``target_frame`` (4x4).

        Raises TransformLookupError if it is not available.
        """
        ...


class PlanningContext(Protocol):
    """Robot model and live robot state."""

    def group_names(self) -> list[str]:
        ...

    def active_joint_names(self, group_name: str) -> list[str]:
        ...

    def current_joint_positions(self, group_name: str) -> list[float]:
        ...

    def current_state(self) -> Any:
        """Robot state used as the start state for planning."""
        ...


class MotionTarget(Protocol):
    """A planning group that can plan to and execute joint-space goals."""

    name: str

    def active_joints(self) -> list[str]:
        ...

    def plan(
        self,
        start_state: Any,
        joint_goal: Sequence[float],
        velocity_scaling: float,
        acceleration_scaling: float,
    ) -> Any | None:
        """Plan artifact, or None if planning failed."""
        ...

    def execute(self, plan: Any) -> bool:
        ...


class TransformPublisher(Protocol):
    def publish_transform(self, pose: np.ndarray, from_frame: str, to_frame: str) -> bool:
        ...


class TransformBuffer:
    """
    In-memory transform lookup.

    Stores ``parent -> child`` transforms and answers lookups for a stored edge
    or its inverse. Useful for offline sessions and tests.
    """

    def __init__(self):
        self._transforms: dict[tuple[str, str], np.ndarray] = {}

    def set_transform(self, parent: str, child: str, T: np.ndarray) -> None:
        self._transforms[(parent, child)] = np.array(T, dtype=np.float64)

    def clear(self) -> None:
        self._transforms.clear()

    def lookup_transform(self, target_frame: str, source_frame: str) -> np.ndarray:
        if (target_frame, source_frame) in self._transforms:
            return self._transforms[(target_frame, source_frame)].copy()
        if (source_frame, target_frame) in self._transforms:
            return invert_transform(self._transforms[(source_frame, target_frame)])
        raise TransformLookupError(
            f"No transform from '{target_frame}' to '{source_frame}'"
        )
