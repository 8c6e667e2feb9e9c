"""
Pose sample storage.

The store keeps two parallel lists of transforms (end-effector in base and
object in sensor) that always have the same length, plus the joint states the
robot was in when samples were taken.
"""

import logging
from typing import Iterable, Sequence

import numpy as np

from .errors import EmptyStoreError, InsufficientRotationError
from .transforms import renormalize_transform
from .types import JointStateSample, TransformPair
from .validation import MIN_ROTATION, min_rotation_angle

logger = logging.getLogger(__name__)


class SampleStore:
    """
    Ordered transform pairs and joint state samples.

    Parameters
    ----------
    min_rotation : float
        Minimum relative rotation (radians) a new sample must have with respect
        to every stored sample, for both halves of the pair.
    """

    def __init__(self, min_rotation: float = MIN_ROTATION):
        self.min_rotation = min_rotation
        self._effector_wrt_world: list[np.ndarray] = []
        self._object_wrt_sensor: list[np.ndarray] = []
        self._joint_names: list[str] = []
        self._joint_states: list[list[float]] = []

    # ------------------------------------------------------------------
    # Transform pairs
    # ------------------------------------------------------------------

    @property
    def effector_wrt_world(self) -> list[np.ndarray]:
        """Copy of the end-effector poses, oldest first."""
        return list(self._effector_wrt_world)

    @property
    def object_wrt_sensor(self) -> list[np.ndarray]:
        """Copy of the object poses, oldest first."""
        return list(self._object_wrt_sensor)

    @property
    def pairs(self) -> list[TransformPair]:
        return [
            TransformPair(e, o)
            for e, o in zip(self._effector_wrt_world, self._object_wrt_sensor)
        ]

    def size(self) -> int:
        return len(self._effector_wrt_world)

    def __len__(self) -> int:
        return self.size()

    def append(self, pair: TransformPair) -> TransformPair:
        """
        Add a pair if it is rotationally distinct from every stored pair.

        Parameters
        ----------
        pair : TransformPair
            New sample.

        Returns
        -------
        TransformPair
            The stored (renormalized) pair.

        Raises
        ------
        InsufficientRotationError
            If either half is within ``min_rotation`` of the corresponding half
            of any stored pair. The store is not modified.
        """
        effector = renormalize_transform(pair.effector_wrt_world)
        sensor = renormalize_transform(pair.object_wrt_sensor)

        angle = min_rotation_angle(effector, self._effector_wrt_world)
        if angle < self.min_rotation:
            raise InsufficientRotationError("effector", angle)

        angle = min_rotation_angle(sensor, self._object_wrt_sensor)
        if angle < self.min_rotation:
            raise InsufficientRotationError("sensor", angle)

        self._effector_wrt_world.append(effector)
        self._object_wrt_sensor.append(sensor)
        logger.debug("Stored sample %d", self.size())
        return TransformPair(effector, sensor)

    def replace(self, pairs: Iterable[TransformPair]) -> None:
        """Replace all pairs at once, without the rotation check."""
        pairs = list(pairs)
        self._effector_wrt_world = [np.array(p.effector_wrt_world, dtype=np.float64) for p in pairs]
        self._object_wrt_sensor = [np.array(p.object_wrt_sensor, dtype=np.float64) for p in pairs]

    def delete_latest(self) -> None:
        """
        Remove the most recent pair and the most recent joint state.

        Raises
        ------
        EmptyStoreError
            If there is neither a pair nor a joint state to remove.
        """
        if not self._effector_wrt_world and not self._joint_states:
            raise EmptyStoreError("Cannot delete last sample, list is already empty.")

        if self._effector_wrt_world:
            self._effector_wrt_world.pop()
            self._object_wrt_sensor.pop()
        if self._joint_states:
            self._joint_states.pop()

    def clear(self) -> None:
        """Remove all pairs and joint states."""
        self._effector_wrt_world = []
        self._object_wrt_sensor = []
        self._joint_states = []

    # ------------------------------------------------------------------
    # Joint states
    # ------------------------------------------------------------------

    @property
    def joint_names(self) -> list[str]:
        return list(self._joint_names)

    @property
    def joint_states(self) -> list[list[float]]:
        return [list(state) for state in self._joint_states]

    @property
    def joint_state_count(self) -> int:
        return len(self._joint_states)

    def record_joint_state(self, sample: JointStateSample) -> bool:
        """
        Record the joint positions the robot was in for the latest sample.

        A sample for a different list of joint names discards all previously
        recorded states. Samples whose value count doesn't match the name
        count are ignored.

        Returns
        -------
        bool
            True if the sample was recorded.
        """
        names = list(sample.names)
        if names != self._joint_names:
            if self._joint_states:
                logger.info("Joint names changed, clearing %d recorded joint states",
                            len(self._joint_states))
            self._joint_names = []
            self._joint_states = []

        if not sample.is_valid:
            return False

        self._joint_names = names
        self._joint_states.append([float(v) for v in sample.values])
        return True

    def set_joint_states(self, names: Sequence[str], states: Iterable[Sequence[float]]) -> None:
        """Replace joint names and states at once."""
        self._joint_names = list(names)
        self._joint_states = [[float(v) for v in state] for state in states]

    def clear_joint_states(self) -> None:
        self._joint_states = []
