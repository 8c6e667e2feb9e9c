"""
Rigid transform helpers.

Transforms are 4x4 homogeneous numpy arrays (float64), rotation in the upper
left 3x3 block and translation in the last column.
"""

import numpy as np
from scipy.spatial.transform import Rotation as R


def make_transform(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    """
    Build a 4x4 homogeneous transform.

    Parameters
    ----------
    rotation : np.ndarray
        3x3 rotation matrix.
    translation : np.ndarray
        Translation vector (any shape with 3 elements).

    Returns
    -------
    np.ndarray
        4x4 transformation matrix.
    """
    T = np.eye(4)
    T[:3, :3] = rotation
    T[:3, 3] = np.asarray(translation, dtype=np.float64).flatten()
    return T


def invert_transform(T: np.ndarray) -> np.ndarray:
    """Invert a rigid transform without a general matrix inverse."""
    R_inv = T[:3, :3].T
    return make_transform(R_inv, -R_inv @ T[:3, 3])


def transform_from_pose(position, quaternion) -> np.ndarray:
    """Build a transform from [x, y, z] and an [x, y, z, w] quaternion."""
    return make_transform(R.from_quat(quaternion).as_matrix(), position)


def transform_from_row_major(values) -> np.ndarray:
    """
    Build a transform from 16 numbers in row-major order.

    Raises
    ------
    ValueError
        If there are not exactly 16 finite numbers.
    """
    flat = np.asarray(values, dtype=np.float64).flatten()
    if flat.size != 16:
        raise ValueError(f"Expected 16 values, got {flat.size}")
    if not np.all(np.isfinite(flat)):
        raise ValueError("Transform contains non-finite values")
    return flat.reshape(4, 4)


def transform_to_row_major(T: np.ndarray) -> list[float]:
    """Flatten a transform into 16 Python floats (row-major)."""
    return [float(v) for v in np.asarray(T, dtype=np.float64).flatten()]


def renormalize_transform(T: np.ndarray) -> np.ndarray:
    """
    Project the rotation block back onto SO(3).

    Removes numerical drift by round-tripping the rotation through a unit
    quaternion. The homogeneous row is reset to [0, 0, 0, 1].
    """
    T = np.asarray(T, dtype=np.float64)
    quat = R.from_matrix(T[:3, :3]).as_quat()
    quat = quat / np.linalg.norm(quat)
    return make_transform(R.from_quat(quat).as_matrix(), T[:3, 3])


def relative_rotation_angle(T_a: np.ndarray, T_b: np.ndarray) -> float:
    """
    Angle (radians) of the rotation taking T_a's orientation to T_b's.

    Equal to the angle of ``inv(T_a) @ T_b`` and symmetric in its arguments.
    """
    R_rel = T_a[:3, :3].T @ T_b[:3, :3]
    # trace formula loses precision near 0 and pi
    return float(R.from_matrix(R_rel).magnitude())


def transform_to_quaternion(T: np.ndarray) -> np.ndarray:
    """Rotation of a transform as a unit quaternion [x, y, z, w]."""
    return R.from_matrix(T[:3, :3]).as_quat()


def transform_to_euler(T: np.ndarray) -> np.ndarray:
    """Rotation of a transform as extrinsic X-Y-Z angles (roll, pitch, yaw)."""
    return R.from_matrix(T[:3, :3]).as_euler("xyz")


def format_pose(T: np.ndarray) -> str:
    """Compact ``((x, y, z,), (qx, qy, qz, qw))`` text for a transform."""
    t = T[:3, 3]
    q = transform_to_quaternion(T)
    return (
        f"(({t[0]:g}, {t[1]:g}, {t[2]:g},), "
        f"({q[0]:g}, {q[1]:g}, {q[2]:g}, {q[3]:g}))"
    )
