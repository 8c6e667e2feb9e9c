"""
Hand-eye (AX=XB) solvers and the registry that names them.

A solver is addressed by a descriptor ``"<plugin>/<variant>"``. Plugins are
registered with a :class:`SolverRegistry`; each plugin instance is created and
initialized once and lists the variants it supports.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Sequence

import cv2
import numpy as np
from scipy.spatial.transform import Rotation as R

from .errors import InsufficientSamplesError, NoSolverAvailableError, SolverError
from .transforms import invert_transform, make_transform, renormalize_transform
from .types import SensorMountType

logger = logging.getLogger(__name__)

# Fewest poses OpenCV's hand-eye methods accept
MIN_POSES = 3


def parse_solver_name(descriptor: str, delimiter: str = "/") -> str:
    """Variant part of a ``plugin/variant`` descriptor (its last component)."""
    return descriptor.split(delimiter)[-1]


def _check_inputs(effector_wrt_world: Sequence, object_wrt_sensor: Sequence) -> None:
    if len(effector_wrt_world) != len(object_wrt_sensor):
        raise SolverError(
            f"Different number of poses: {len(effector_wrt_world)} end-effector, "
            f"{len(object_wrt_sensor)} sensor"
        )
    if len(effector_wrt_world) < MIN_POSES:
        raise InsufficientSamplesError(
            f"Need at least {MIN_POSES} poses for calibration (have {len(effector_wrt_world)})."
        )


def _robot_side(effector_wrt_world: Sequence, mount_type: SensorMountType) -> list:
    """
    Robot poses in the form OpenCV's gripper2base inputs expect.

    For eye-to-hand the base-to-gripper transforms are passed instead, which
    makes the solvers return the camera pose in the robot base frame.
    """
    if mount_type is SensorMountType.EYE_IN_HAND:
        return [np.asarray(T, dtype=np.float64) for T in effector_wrt_world]
    return [invert_transform(np.asarray(T, dtype=np.float64)) for T in effector_wrt_world]


def compute_consistency_metrics(
    effector_wrt_world: Sequence[np.ndarray],
    object_wrt_sensor: Sequence[np.ndarray],
    camera_robot_pose: np.ndarray,
    mount_type: SensorMountType,
) -> tuple[float, float]:
    """
    Compute consistency/repeatability metrics for a calibration.

    With a correct calibration the object pose is the same for every sample:
    in the robot base frame for eye-in-hand, in the end-effector frame for
    eye-to-hand.

    Parameters
    ----------
    effector_wrt_world : sequence of np.ndarray
        4x4 end-effector poses in the base frame.
    object_wrt_sensor : sequence of np.ndarray
        4x4 object poses in the sensor frame.
    camera_robot_pose : np.ndarray
        4x4 sensor pose in the reference frame.
    mount_type : SensorMountType
        Sensor mounting.

    Returns
    -------
    tuple
        (translation_rms, rotation_rms) in meters and radians, measured
        against the mean object pose.
    """
    if len(effector_wrt_world) == 0:
        return 0.0, 0.0

    object_poses = []
    for T_eef, T_obj in zip(effector_wrt_world, object_wrt_sensor):
        if mount_type is SensorMountType.EYE_IN_HAND:
            # T_object2base = T_eef2base * T_cam2eef * T_object2cam
            object_poses.append(T_eef @ camera_robot_pose @ T_obj)
        else:
            # T_object2eef = T_base2eef * T_cam2base * T_object2cam
            object_poses.append(invert_transform(T_eef) @ camera_robot_pose @ T_obj)

    positions = np.array([T[:3, 3] for T in object_poses])
    mean_pos = np.mean(positions, axis=0)
    pos_errors = np.linalg.norm(positions - mean_pos, axis=1)

    rotations = R.from_matrix(np.array([T[:3, :3] for T in object_poses]))
    mean_rot = rotations.mean()
    rot_errors = (mean_rot.inv() * rotations).magnitude()

    translation_rms = float(np.sqrt(np.mean(pos_errors ** 2)))
    rotation_rms = float(np.sqrt(np.mean(np.asarray(rot_errors) ** 2)))
    return translation_rms, rotation_rms


class HandEyeSolverBase(ABC):
    """
    Interface every hand-eye solver plugin implements.

    Subclasses list their variants in :meth:`solver_names` and implement
    :meth:`solve`. :meth:`initialize` is called once by the registry before
    first use; an exception there disables the plugin.
    """

    def __init__(self):
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        self._setup()
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _setup(self) -> None:
        """One-time plugin setup. Raise to disable the plugin."""

    @abstractmethod
    def solver_names(self) -> list[str]:
        """Names of the solver variants this plugin supports."""

    @abstractmethod
    def solve(
        self,
        effector_wrt_world: Sequence[np.ndarray],
        object_wrt_sensor: Sequence[np.ndarray],
        mount_type: SensorMountType,
        solver_name: str,
    ) -> np.ndarray:
        """
        Solve for the sensor pose.

        Returns
        -------
        np.ndarray
            4x4 sensor pose in the reference frame.

        Raises
        ------
        SolverError
            If the inputs are unusable or the solver does not converge.
        """

    def reprojection_error(
        self,
        effector_wrt_world: Sequence[np.ndarray],
        object_wrt_sensor: Sequence[np.ndarray],
        camera_robot_pose: np.ndarray,
        mount_type: SensorMountType,
    ) -> tuple[float, float]:
        """(translation_error_m, rotation_error_rad) of a solved pose."""
        return compute_consistency_metrics(
            effector_wrt_world, object_wrt_sensor, camera_robot_pose, mount_type
        )

    @staticmethod
    def _finish(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
        T = make_transform(np.asarray(rotation), np.asarray(translation))
        if not np.all(np.isfinite(T)):
            raise SolverError("Solver returned a non-finite pose (degenerate samples?).")
        return renormalize_transform(T)


class OpenCVHandEyeSolver(HandEyeSolverBase):
    """AX=XB solvers from ``cv2.calibrateHandEye``."""

    METHODS = {
        "TsaiLenz1989": cv2.CALIB_HAND_EYE_TSAI,
        "ParkBryan1994": cv2.CALIB_HAND_EYE_PARK,
        "HoraudDornaika1995": cv2.CALIB_HAND_EYE_HORAUD,
        "Andreff1999": cv2.CALIB_HAND_EYE_ANDREFF,
        "Daniilidis1999": cv2.CALIB_HAND_EYE_DANIILIDIS,
    }

    def _setup(self) -> None:
        if not hasattr(cv2, "calibrateHandEye"):
            raise RuntimeError(f"OpenCV {cv2.__version__} has no calibrateHandEye")

    def solver_names(self) -> list[str]:
        return list(self.METHODS)

    def solve(self, effector_wrt_world, object_wrt_sensor, mount_type, solver_name):
        if solver_name not in self.METHODS:
            raise SolverError(f"Unknown solver variant: {solver_name}")
        _check_inputs(effector_wrt_world, object_wrt_sensor)

        robot = _robot_side(effector_wrt_world, mount_type)
        R_gripper2base = [T[:3, :3] for T in robot]
        t_gripper2base = [T[:3, 3].reshape(3, 1) for T in robot]
        R_target2cam = [np.asarray(T, dtype=np.float64)[:3, :3] for T in object_wrt_sensor]
        t_target2cam = [np.asarray(T, dtype=np.float64)[:3, 3].reshape(3, 1) for T in object_wrt_sensor]

        try:
            R_cam, t_cam = cv2.calibrateHandEye(
                R_gripper2base=R_gripper2base,
                t_gripper2base=t_gripper2base,
                R_target2cam=R_target2cam,
                t_target2cam=t_target2cam,
                method=self.METHODS[solver_name],
            )
        except cv2.error as e:
            raise SolverError(f"{solver_name}: {e}") from e

        return self._finish(R_cam, t_cam)


class OpenCVRobotWorldSolver(HandEyeSolverBase):
    """
    Simultaneous robot-world/hand-eye (AX=ZB) solvers from
    ``cv2.calibrateRobotWorldHandEye``. Only the hand-eye part is returned.
    """

    METHODS = {
        "Shah2013": cv2.CALIB_ROBOT_WORLD_HAND_EYE_SHAH,
        "Li2010": cv2.CALIB_ROBOT_WORLD_HAND_EYE_LI,
    }

    def _setup(self) -> None:
        if not hasattr(cv2, "calibrateRobotWorldHandEye"):
            raise RuntimeError(f"OpenCV {cv2.__version__} has no calibrateRobotWorldHandEye")

    def solver_names(self) -> list[str]:
        return list(self.METHODS)

    def solve(self, effector_wrt_world, object_wrt_sensor, mount_type, solver_name):
        if solver_name not in self.METHODS:
            raise SolverError(f"Unknown solver variant: {solver_name}")
        _check_inputs(effector_wrt_world, object_wrt_sensor)

        # base2gripper is the inverse of what calibrateHandEye takes
        robot = [invert_transform(T) for T in _robot_side(effector_wrt_world, mount_type)]
        R_base2gripper = [T[:3, :3] for T in robot]
        t_base2gripper = [T[:3, 3].reshape(3, 1) for T in robot]
        R_world2cam = [np.asarray(T, dtype=np.float64)[:3, :3] for T in object_wrt_sensor]
        t_world2cam = [np.asarray(T, dtype=np.float64)[:3, 3].reshape(3, 1) for T in object_wrt_sensor]

        try:
            _, _, R_gripper2cam, t_gripper2cam = cv2.calibrateRobotWorldHandEye(
                R_world2cam=R_world2cam,
                t_world2cam=t_world2cam,
                R_base2gripper=R_base2gripper,
                t_base2gripper=t_base2gripper,
                method=self.METHODS[solver_name],
            )
        except cv2.error as e:
            raise SolverError(f"{solver_name}: {e}") from e

        return invert_transform(self._finish(R_gripper2cam, t_gripper2cam))


class SolverRegistry:
    """
    Maps plugin names to solver factories.

    Plugins are instantiated and initialized lazily, once. A plugin whose
    factory or ``initialize()`` raises is logged and never retried; the other
    plugins stay usable.
    """

    def __init__(self):
        self._factories: dict[str, Callable[[], HandEyeSolverBase]] = {}
        self._instances: dict[str, HandEyeSolverBase] = {}
        self._failed: set[str] = set()

    def register(self, plugin_name: str, factory: Callable[[], HandEyeSolverBase]) -> None:
        if not plugin_name or "/" in plugin_name:
            raise ValueError(f"Invalid solver plugin name: {plugin_name!r}")
        self._factories[plugin_name] = factory
        self._instances.pop(plugin_name, None)
        self._failed.discard(plugin_name)

    @property
    def plugin_names(self) -> list[str]:
        return list(self._factories)

    def instance(self, plugin_name: str) -> HandEyeSolverBase | None:
        """Initialized plugin instance, or None if it is unknown or failed."""
        if plugin_name in self._instances:
            return self._instances[plugin_name]
        if plugin_name in self._failed or plugin_name not in self._factories:
            return None

        try:
            solver = self._factories[plugin_name]()
            solver.initialize()
        except Exception as e:
            logger.error("Exception while loading handeye solver plugin %s: %s", plugin_name, e)
            self._failed.add(plugin_name)
            return None

        self._instances[plugin_name] = solver
        return solver

    def descriptors(self) -> list[str]:
        """All ``plugin/variant`` names of plugins that initialized."""
        names = []
        for plugin_name in self._factories:
            solver = self.instance(plugin_name)
            if solver is None:
                continue
            names.extend(f"{plugin_name}/{variant}" for variant in solver.solver_names())
        return names

    def resolve(self, descriptor: str | None) -> tuple[HandEyeSolverBase, str]:
        """
        Look up the solver instance and variant for a descriptor.

        Raises
        ------
        NoSolverAvailableError
            If the descriptor is empty or does not name an initialized
            plugin and one of its variants.
        """
        if not descriptor or "/" not in descriptor:
            raise NoSolverAvailableError("No available handeye calibration solver instance.")

        plugin_name, _, _ = descriptor.rpartition("/")
        variant = parse_solver_name(descriptor)
        solver = self.instance(plugin_name)
        if solver is None or variant not in solver.solver_names():
            raise NoSolverAvailableError(f"Solver {descriptor!r} is not available.")
        return solver, variant


def default_registry() -> SolverRegistry:
    """Registry with the built-in OpenCV solvers."""
    registry = SolverRegistry()
    registry.register("opencv", OpenCVHandEyeSolver)
    registry.register("opencv_robot_world", OpenCVRobotWorldSolver)
    return registry
