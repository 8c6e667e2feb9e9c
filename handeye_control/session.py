"""
Calibration session: samples, solver selection, results and files.

A :class:`CalibrationSession` owns all mutable calibration state. Collaborators
(transform lookup, planning context, motion target factory, transform
publisher) are injected and may be missing; operations that need a missing
collaborator report it instead of failing silently.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping

from . import persistence
from .config import SessionConfig
from .errors import (
    FrameNamesError,
    HandEyeError,
    InsufficientSamplesError,
    JointStateError,
    NoSolverAvailableError,
    SolverError,
    TransformLookupError,
)
from .interfaces import MotionTarget, PlanningContext, TransformLookup, TransformPublisher
from .launch_file import LaunchParameters, save_launch_file
from .samples import SampleStore
from .solver import SolverRegistry, default_registry
from .types import CalibrationResult, JointStateSample, SensorMountType, TransformPair
from .validation import REQUIRED_FRAMES, frame_names_complete, joint_states_valid
from .workflow import ProgressCounter

logger = logging.getLogger(__name__)


class StatusLevel(Enum):
    OK = "ok"
    WARN = "warn"
    ERROR = "error"


class CalibrationSession:
    """
    Orchestrates sampling and solving for one sensor.

    Parameters
    ----------
    transform_lookup : TransformLookup, optional
        Source of the sensor->object and base->eef transforms.
    solvers : SolverRegistry, optional
        Solver plugins; the built-in OpenCV solvers by default.
    planning_context : PlanningContext, optional
        Robot model and live joint state, used to record joint states.
    motion_target_factory : callable, optional
        ``factory(group_name) -> MotionTarget``.
    transform_publisher : TransformPublisher, optional
        Receives the solved transform.
    config : SessionConfig, optional
        Initial settings.
    """

    def __init__(
        self,
        transform_lookup: TransformLookup | None = None,
        solvers: SolverRegistry | None = None,
        planning_context: PlanningContext | None = None,
        motion_target_factory: Callable[[str], MotionTarget] | None = None,
        transform_publisher: TransformPublisher | None = None,
        config: SessionConfig | None = None,
    ):
        self.transform_lookup = transform_lookup
        self.solvers = solvers if solvers is not None else default_registry()
        self.planning_context = planning_context
        self.motion_target_factory = motion_target_factory
        self.transform_publisher = transform_publisher

        self.store = SampleStore()
        self.progress = ProgressCounter()
        self.move_group: MotionTarget | None = None
        self.group_name = ""
        self.mount_type = SensorMountType.EYE_TO_HAND
        self.frame_names = {key: "" for key in REQUIRED_FRAMES}
        self.solver_name = ""
        self.velocity_scaling = 0.5
        self.acceleration_scaling = 0.5
        self.min_samples_to_solve = 5
        self.result: CalibrationResult | None = None
        self.status = (StatusLevel.OK, "Collect 5 samples to start calibration.")
        self.status_listeners: list[Callable[[StatusLevel, str], None]] = []

        descriptors = self.solvers.descriptors()
        if descriptors:
            self.solver_name = descriptors[0]

        if config is not None:
            self.apply_config(config)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def from_frame_tag(self) -> str:
        return self.mount_type.from_frame_tag

    @property
    def from_frame(self) -> str:
        return self.frame_names.get(self.from_frame_tag, "")

    @property
    def to_frame(self) -> str:
        return self.frame_names.get("sensor", "")

    def set_mount_type(self, mount_type) -> None:
        self.mount_type = SensorMountType.parse(mount_type)
        logger.debug("Sensor mount type: %s", self.mount_type.label)

    def update_frame_names(self, names: Mapping[str, str]) -> None:
        for key, value in names.items():
            self.frame_names[key] = value or ""
        logger.debug("Frame names: %s", self.frame_names)

    def available_solvers(self) -> list[str]:
        return self.solvers.descriptors()

    def select_solver(self, descriptor: str) -> None:
        """
        Select a ``plugin/variant`` solver; an empty descriptor deselects.

        Raises
        ------
        NoSolverAvailableError
            If the descriptor does not name an available solver.
        """
        if descriptor:
            self.solvers.resolve(descriptor)
        self.solver_name = descriptor or ""

    def available_groups(self) -> list[str]:
        if self.planning_context is None:
            return []
        return list(self.planning_context.group_names())

    def set_group_name(self, name: str) -> bool:
        """
        Switch the planning group.

        Recorded joint states belong to the previous group and are discarded.

        Returns
        -------
        bool
            False if the motion target could not be created.
        """
        if not name:
            logger.warning("Empty planning group name")
            return False
        if self.move_group is not None and self.move_group.name == name:
            return True
        if self.motion_target_factory is None:
            logger.error("No motion target factory, cannot use group %s", name)
            return False

        try:
            move_group = self.motion_target_factory(name)
        except Exception as e:
            logger.error("Could not create motion target for group %s: %s", name, e)
            return False

        self.move_group = move_group
        self.group_name = name
        self.store.clear_joint_states()
        self.progress.reset(0)
        logger.info("Planning group: %s", name)
        return True

    def export_config(self) -> SessionConfig:
        return SessionConfig(
            solver=self.solver_name,
            group=self.group_name,
            sensor_mount_type=self.mount_type,
            frame_names=dict(self.frame_names),
            velocity_scaling=self.velocity_scaling,
            acceleration_scaling=self.acceleration_scaling,
            min_samples_to_solve=self.min_samples_to_solve,
        )

    def apply_config(self, config: SessionConfig) -> None:
        """Apply saved settings; an unavailable solver or group is skipped."""
        self.set_mount_type(config.sensor_mount_type)
        self.update_frame_names(config.frame_names)
        self.velocity_scaling = config.velocity_scaling
        self.acceleration_scaling = config.acceleration_scaling
        self.min_samples_to_solve = config.min_samples_to_solve

        if config.solver:
            if config.solver in self.available_solvers():
                self.solver_name = config.solver
            else:
                logger.warning("Configured solver %s is not available", config.solver)

        if config.group:
            groups = self.available_groups()
            if config.group in groups or (not groups and self.motion_target_factory is not None):
                self.set_group_name(config.group)
            else:
                logger.warning("Configured planning group %s is not available", config.group)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _set_status(self, level: StatusLevel, message: str) -> None:
        self.status = (level, message)
        for listener in self.status_listeners:
            listener(level, message)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def take_transform_sample(self) -> TransformPair:
        """
        Look up the current transforms and append them to the store.

        Raises
        ------
        FrameNamesError
            If any of the four frame names is empty.
        TransformLookupError
            If there is no transform lookup or a lookup fails.
        InsufficientRotationError
            If the sample is too similar to a stored one.
        """
        if not frame_names_complete(self.frame_names):
            raise FrameNamesError("At least one of the four frame names is empty.")
        if self.transform_lookup is None:
            raise TransformLookupError("No transform lookup available.")

        names = self.frame_names
        object_wrt_sensor = self.transform_lookup.lookup_transform(names["sensor"], names["object"])
        effector_wrt_world = self.transform_lookup.lookup_transform(names["base"], names["eef"])

        pair = self.store.append(TransformPair(effector_wrt_world, object_wrt_sensor))
        logger.info("Sample %d recorded", len(self.store))
        return pair

    def take_sample(self) -> TransformPair:
        """
        Record a transform sample and the joint state it was taken at.

        Solves automatically once enough samples exist; a failed automatic
        solve is reported through :attr:`status` and does not undo the sample.
        """
        pair = self.take_transform_sample()
        self._record_joint_state()
        self.solve_if_possible()
        return pair

    def _record_joint_state(self) -> None:
        if self.planning_context is None or not self.group_name:
            return
        names = self.planning_context.active_joint_names(self.group_name)
        values = self.planning_context.current_joint_positions(self.group_name)
        if self.store.record_joint_state(JointStateSample(tuple(names), tuple(values))):
            self.progress.set_maximum(self.store.joint_state_count)

    def delete_latest_sample(self) -> None:
        self.store.delete_latest()
        self.progress.set_maximum(self.store.joint_state_count)
        logger.info("Deleted latest sample, %d left", len(self.store))

    def clear_samples(self) -> None:
        self.store.clear()
        self.progress.reset(0)
        logger.info("Cleared all samples")

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve_if_possible(self) -> CalibrationResult | None:
        """Solve if the store holds enough samples; errors only set the status."""
        if len(self.store) < self.min_samples_to_solve:
            remaining = self.min_samples_to_solve - len(self.store)
            self._set_status(StatusLevel.OK, f"Collect {remaining} more samples to start calibration.")
            return None
        try:
            return self.solve()
        except HandEyeError as e:
            logger.warning("Automatic solve failed: %s", e)
            return None

    def solve(self) -> CalibrationResult:
        """
        Solve for the sensor pose with the selected solver.

        Raises
        ------
        NoSolverAvailableError
            If no solver is selected or it is unavailable.
        InsufficientSamplesError
            If the store is empty.
        SolverError
            If the solver fails; the previous result is kept.
        """
        try:
            solver, variant = self.solvers.resolve(self.solver_name)
        except NoSolverAvailableError:
            self._set_status(StatusLevel.ERROR, "No available handeye calibration solver instance.")
            raise

        if len(self.store) == 0:
            self._set_status(StatusLevel.ERROR, "No samples to solve with.")
            raise InsufficientSamplesError("No samples to solve with.")

        effector_wrt_world = self.store.effector_wrt_world
        object_wrt_sensor = self.store.object_wrt_sensor
        try:
            pose = solver.solve(effector_wrt_world, object_wrt_sensor, self.mount_type, variant)
        except SolverError as e:
            logger.error("Solver %s failed: %s", self.solver_name, e)
            self._set_status(StatusLevel.ERROR, "Solver failed.")
            raise

        translation_error, rotation_error = solver.reprojection_error(
            effector_wrt_world, object_wrt_sensor, pose, self.mount_type
        )
        self.result = CalibrationResult(pose, translation_error, rotation_error, solver=self.solver_name)
        logger.info(
            "Reprojection error: %.6f m, %.6f rad", translation_error, rotation_error
        )

        if self.from_frame and self.to_frame:
            if self.transform_publisher is not None:
                self.transform_publisher.publish_transform(pose, self.from_frame, self.to_frame)
            self._set_status(StatusLevel.OK, "Calibration successful.")
        else:
            logger.error(
                "Found camera pose, but %s or sensor frame is undefined.", self.from_frame_tag
            )
            self._set_status(StatusLevel.WARN, "Calibration successful, but frames are undefined.")
        return self.result

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def save_samples(self, path: str | Path) -> Path:
        return persistence.save_samples(path, self.store.pairs)

    def load_samples(self, path: str | Path) -> int:
        """Replace the stored pairs with those in ``path``; returns the count."""
        pairs = persistence.load_samples(path)
        self.store.replace(pairs)
        return len(pairs)

    def save_joint_states(self, path: str | Path) -> Path:
        """
        Raises
        ------
        JointStateError
            If there are no joint states or one doesn't match the joint names.
        """
        names = self.store.joint_names
        states = self.store.joint_states
        if not joint_states_valid(names, states):
            raise JointStateError("No joint states or joint state doesn't match joint names.")
        return persistence.save_joint_states(path, names, states)

    def load_joint_states(self, path: str | Path) -> int:
        names, states = persistence.load_joint_states(path)
        self.store.set_joint_states(names, states)
        self.progress.reset(len(states))
        return len(states)

    def save_camera_pose(self, path: str | Path) -> Path:
        """
        Write a static transform publisher launch script for the result.

        Raises
        ------
        FrameNamesError
            If the reference or sensor frame is undefined.
        HandEyeError
            If nothing has been solved yet.
        """
        if not self.from_frame or not self.to_frame:
            raise FrameNamesError(f"The {self.from_frame_tag} or sensor frame name is empty.")
        if self.result is None:
            raise HandEyeError("No calibration result to save.")

        params = LaunchParameters.from_pose(
            self.result.camera_robot_pose, self.mount_type, self.from_frame, self.to_frame
        )
        path = save_launch_file(path, params)
        logger.info("Saved camera pose to %s", path)
        return path
