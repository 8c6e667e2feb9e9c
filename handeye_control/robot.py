"""
Franka robot interface for calibration with recorded joint states.
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

# Set default server IP before importing franky
os.environ.setdefault("FRANKY_SERVER_IP", "192.168.122.100")

try:
    from franky import (
        Robot as FrankyRobot,
        JointMotion,
        RelativeDynamicsFactor,
    )
    FRANKY_AVAILABLE = True
except ImportError:
    FRANKY_AVAILABLE = False

logger = logging.getLogger(__name__)

FR3_JOINT_NAMES = tuple(f"fr3_joint{i}" for i in range(1, 8))

# FR3 joint position limits (radians)
FR3_JOINT_LIMITS = (
    (-2.7437, 2.7437),
    (-1.7837, 1.7837),
    (-2.9007, 2.9007),
    (-3.0421, -0.1518),
    (-2.8065, 2.8065),
    (0.5445, 4.5169),
    (-3.0159, 3.0159),
)


class RobotController:
    """
    Franka robot controller for hand-eye calibration.

    Parameters
    ----------
    host : str
        Robot FCI IP address.
    dynamics_factor : float
        Global relative dynamics factor (0.0 to 1.0). Lower = slower/safer.
    jerk : float
        Jerk factor used for joint motions with explicit scaling.
    """

    def __init__(self, host: str, dynamics_factor: float = 0.1, jerk: float = 0.1):
        if not FRANKY_AVAILABLE:
            raise RuntimeError("franky is not installed")

        self.host = host
        self.jerk = jerk
        self._robot = FrankyRobot(host)
        self._robot.recover_from_errors()
        self._robot.relative_dynamics_factor = dynamics_factor

    @property
    def robot(self) -> "FrankyRobot":
        """Access underlying franky Robot object."""
        return self._robot

    def recover(self):
        """
        Recover from errors.

        If recover_from_errors() fails (e.g. connection lost), the robot
        connection is re-created.
        """
        try:
            self._robot.recover_from_errors()
        except Exception as e:
            logger.warning("Recovery failed (%s), attempting full reconnection...", e)
            current_dynamics = self._robot.relative_dynamics_factor
            self._robot = FrankyRobot(self.host)
            self._robot.recover_from_errors()
            self._robot.relative_dynamics_factor = current_dynamics
            logger.info("Reconnection successful")

    def get_state(self) -> dict:
        """
        Get current robot state.

        Returns
        -------
        dict
            'q' (joint angles) and 'O_T_EE' (4x4 end-effector pose in base).
        """
        state = self._robot.state
        q = [float(v) for v in state.q]
        O_T_EE = np.array(state.O_T_EE.matrix, dtype=np.float64).reshape(4, 4)
        return {"q": q, "O_T_EE": O_T_EE}

    def move_joints(
        self,
        joint_positions: Sequence[float],
        velocity_scaling: float | None = None,
        acceleration_scaling: float | None = None,
    ):
        """
        Move to joint positions.

        Parameters
        ----------
        joint_positions : sequence
            7 joint angles in radians.
        velocity_scaling, acceleration_scaling : float, optional
            Per-motion dynamics; the global dynamics factor applies if omitted.
        """
        if velocity_scaling is None and acceleration_scaling is None:
            motion = JointMotion(list(joint_positions))
        else:
            dynamics = RelativeDynamicsFactor(
                velocity=velocity_scaling if velocity_scaling is not None else 1.0,
                acceleration=acceleration_scaling if acceleration_scaling is not None else 1.0,
                jerk=self.jerk,
            )
            motion = JointMotion(list(joint_positions), relative_dynamics_factor=dynamics)
        self._robot.move(motion)


@dataclass(frozen=True)
class JointMotionPlan:
    """A validated joint-space goal with its dynamics."""

    joint_names: tuple[str, ...]
    start: tuple[float, ...]
    goal: tuple[float, ...]
    velocity_scaling: float
    acceleration_scaling: float

    @property
    def max_joint_delta(self) -> float:
        return max((abs(g - s) for s, g in zip(self.start, self.goal)), default=0.0)


def check_joint_goal(
    goal: Sequence[float],
    limits: Sequence[tuple[float, float]] = FR3_JOINT_LIMITS,
) -> str | None:
    """Reason a joint goal is unreachable, or None if it is valid."""
    if len(goal) != len(limits):
        return f"Expected {len(limits)} joint values, got {len(goal)}"
    for i, (value, (lower, upper)) in enumerate(zip(goal, limits)):
        if not math.isfinite(value):
            return f"Joint {i + 1} value is not finite"
        if not lower <= value <= upper:
            return f"Joint {i + 1} value {value:.4f} outside limits [{lower}, {upper}]"
    return None


class FrankaMoveGroup:
    """
    Single planning group for a 7-joint Franka arm.

    Serves both as the planning context (robot model and live state) and the
    motion target (plan and execute joint goals) of a calibration session.

    Parameters
    ----------
    controller : RobotController
        Anything with ``get_state()``, ``move_joints()`` and ``recover()``.
    name : str
        Planning group name.
    joint_names : sequence of str
        Joint names of the group, in controller order.
    """

    def __init__(
        self,
        controller: Any,
        name: str = "fr3_arm",
        joint_names: Sequence[str] = FR3_JOINT_NAMES,
        joint_limits: Sequence[tuple[float, float]] = FR3_JOINT_LIMITS,
    ):
        self.controller = controller
        self.name = name
        self._joint_names = list(joint_names)
        self._joint_limits = tuple(joint_limits)

    # PlanningContext

    def group_names(self) -> list[str]:
        return [self.name]

    def active_joint_names(self, group_name: str) -> list[str]:
        self._check_group(group_name)
        return list(self._joint_names)

    def current_joint_positions(self, group_name: str) -> list[float]:
        self._check_group(group_name)
        return list(self.controller.get_state()["q"])

    def current_state(self) -> dict:
        return self.controller.get_state()

    def _check_group(self, group_name: str) -> None:
        if group_name != self.name:
            raise ValueError(f"Unknown planning group: {group_name}")

    # MotionTarget

    def active_joints(self) -> list[str]:
        return list(self._joint_names)

    def plan(
        self,
        start_state: dict,
        joint_goal: Sequence[float],
        velocity_scaling: float = 0.5,
        acceleration_scaling: float = 0.5,
    ) -> JointMotionPlan | None:
        goal = [float(v) for v in joint_goal]
        reason = check_joint_goal(goal, self._joint_limits)
        if reason is not None:
            logger.error("Planning failed: %s", reason)
            return None

        start = tuple(float(v) for v in start_state["q"]) if start_state else tuple(goal)
        return JointMotionPlan(
            joint_names=tuple(self._joint_names),
            start=start,
            goal=tuple(goal),
            velocity_scaling=velocity_scaling,
            acceleration_scaling=acceleration_scaling,
        )

    def execute(self, plan: JointMotionPlan) -> bool:
        if list(plan.joint_names) != self._joint_names:
            logger.error("Plan is for joints %s, group has %s", plan.joint_names, self._joint_names)
            return False

        logger.info("Moving %s, max joint delta %.3f rad", self.name, plan.max_joint_delta)
        try:
            self.controller.move_joints(
                list(plan.goal),
                velocity_scaling=plan.velocity_scaling,
                acceleration_scaling=plan.acceleration_scaling,
            )
        except Exception as e:
            logger.error("Motion failed: %s", e)
            self.controller.recover()
            return False
        return True
