"""
Core data types for hand-eye calibration.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .transforms import transform_to_euler, transform_to_quaternion


class SensorMountType(Enum):
    """Where the sensor is mounted."""

    EYE_TO_HAND = 0  # sensor fixed in the environment, observes the end-effector
    EYE_IN_HAND = 1  # sensor rigidly attached to the end-effector

    @property
    def from_frame_tag(self) -> str:
        """Frame role that is the reference ("from") frame of the result."""
        return "base" if self is SensorMountType.EYE_TO_HAND else "eef"

    @property
    def label(self) -> str:
        """Human-readable label used in launch script headers."""
        return "EYE-TO-HAND" if self is SensorMountType.EYE_TO_HAND else "EYE-IN-HAND"

    @classmethod
    def parse(cls, value: "str | int | SensorMountType") -> "SensorMountType":
        """
        Accept an enum member, its index, its name or its label.

        Raises
        ------
        ValueError
            If the value does not name a mount type.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        key = str(value).strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown sensor mount type: {value!r}") from None


@dataclass(frozen=True)
class TransformPair:
    """
    Two rigid transforms captured at the same instant.

    Attributes
    ----------
    effector_wrt_world : np.ndarray
        4x4 pose of the end-effector in the robot base frame.
    object_wrt_sensor : np.ndarray
        4x4 pose of the calibration object in the sensor frame.
    """

    effector_wrt_world: np.ndarray
    object_wrt_sensor: np.ndarray


@dataclass(frozen=True)
class JointStateSample:
    """Joint positions for an ordered list of joint names."""

    names: tuple[str, ...]
    values: tuple[float, ...]

    @property
    def is_valid(self) -> bool:
        return len(self.names) > 0 and len(self.values) == len(self.names)


@dataclass(frozen=True)
class CalibrationResult:
    """
    Output of one successful solve.

    Attributes
    ----------
    camera_robot_pose : np.ndarray
        4x4 pose of the sensor in the reference frame (robot base for
        eye-to-hand, end-effector for eye-in-hand).
    translation_error : float
        Reprojection error in meters.
    rotation_error : float
        Reprojection error in radians.
    """

    camera_robot_pose: np.ndarray
    translation_error: float
    rotation_error: float
    solver: str = field(default="")

    @property
    def translation(self) -> np.ndarray:
        return self.camera_robot_pose[:3, 3].copy()

    @property
    def quaternion(self) -> np.ndarray:
        """[x, y, z, w]"""
        return transform_to_quaternion(self.camera_robot_pose)

    @property
    def euler(self) -> np.ndarray:
        """[roll, pitch, yaw] in radians."""
        return transform_to_euler(self.camera_robot_pose)
