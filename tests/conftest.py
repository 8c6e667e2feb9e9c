"""
Pytest configuration and shared fixtures.
"""

import tempfile
import threading
from pathlib import Path

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from handeye_control.solver import HandEyeSolverBase, SolverRegistry
from handeye_control.errors import SolverError
from handeye_control.transforms import invert_transform, make_transform

JOINT_NAMES = [f"fr3_joint{i}" for i in range(1, 8)]

# Gripper orientations (degrees, extrinsic xyz) that are pairwise > 5 deg apart
GRIPPER_EULER = [
    (180, 0, 0),
    (160, 20, 10),
    (200, -15, 30),
    (170, 10, -40),
    (190, 25, 60),
    (150, -20, -10),
    (210, 5, 45),
    (175, -25, 20),
]


def pose(euler_deg, translation) -> np.ndarray:
    return make_transform(R.from_euler("xyz", euler_deg, degrees=True).as_matrix(), translation)


def gripper_poses() -> list[np.ndarray]:
    return [
        pose(euler, [0.4 + 0.03 * i, -0.1 + 0.04 * (i % 3), 0.45 + 0.02 * (i % 4)])
        for i, euler in enumerate(GRIPPER_EULER)
    ]


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def eye_in_hand_data():
    """
    Noise-free eye-in-hand samples.

    Returns (X, effector_wrt_world, object_wrt_sensor) where X is the camera
    pose in the end-effector frame and the target is fixed in the base frame.
    """
    X = pose((5, -10, 90), [0.05, -0.03, 0.08])
    T_base_target = pose((0, 0, 15), [0.6, 0.05, 0.0])
    effector = gripper_poses()
    objects = [invert_transform(X) @ invert_transform(E) @ T_base_target for E in effector]
    return X, effector, objects


@pytest.fixture
def eye_to_hand_data():
    """
    Noise-free eye-to-hand samples.

    Returns (X, effector_wrt_world, object_wrt_sensor) where X is the camera
    pose in the base frame and the target is fixed to the end-effector.
    """
    X = pose((-120, 0, 90), [1.2, 0.1, 0.6])
    T_eef_target = pose((0, 0, 30), [0.0, 0.02, 0.1])
    effector = gripper_poses()
    objects = [invert_transform(X) @ E @ T_eef_target for E in effector]
    return X, effector, objects


class FakePlanningContext:
    def __init__(self, group="fr3_arm", joint_names=None, positions=None):
        self.group = group
        self.joint_names = list(joint_names or JOINT_NAMES)
        self.positions = list(positions or [0.0, 0.0, 0.0, -2.2, 0.0, 2.2, 0.7])

    def group_names(self):
        return [self.group]

    def active_joint_names(self, group_name):
        return list(self.joint_names)

    def current_joint_positions(self, group_name):
        return list(self.positions)

    def current_state(self):
        return {"q": list(self.positions)}


class FakeMotionTarget:
    """
    Motion target that records calls.

    ``plan_gate`` (a threading.Event) blocks planning until it is set.
    ``on_execute`` is called with the goal after a successful execution.
    ``plan_error`` and ``execute_error`` are raised from planning and execution when set.
    """

    def __init__(self, name="fr3_arm", joints=None, plan_ok=True, execute_ok=True):
        self.name = name
        self.joints = list(joints or JOINT_NAMES)
        self.plan_ok = plan_ok
        self.execute_ok = execute_ok
        self.plan_gate: threading.Event | None = None
        self.on_execute = None
        self.plan_error: Exception | None = None
        self.execute_error: Exception | None = None
        self.plan_calls = []
        self.executed = []

    def active_joints(self):
        return list(self.joints)

    def plan(self, start_state, joint_goal, velocity_scaling, acceleration_scaling):
        if self.plan_gate is not None:
            self.plan_gate.wait(timeout=5.0)
        self.plan_calls.append((start_state, list(joint_goal), velocity_scaling, acceleration_scaling))
        if self.plan_error is not None:
            raise self.plan_error
        if not self.plan_ok:
            return None
        return {"goal": list(joint_goal)}

    def execute(self, plan):
        if self.execute_error is not None:
            raise self.execute_error
        if not self.execute_ok:
            return False
        self.executed.append(plan)
        if self.on_execute is not None:
            self.on_execute(plan["goal"])
        return True


class RecordingSolver(HandEyeSolverBase):
    """Returns a fixed pose and counts calls."""

    def __init__(self, pose=None, fail=False):
        super().__init__()
        self.pose = np.eye(4) if pose is None else pose
        self.fail = fail
        self.calls = 0

    def solver_names(self):
        return ["fixed"]

    def solve(self, effector_wrt_world, object_wrt_sensor, mount_type, solver_name):
        self.calls += 1
        if self.fail:
            raise SolverError("did not converge")
        return self.pose.copy()


class RecordingPublisher:
    def __init__(self):
        self.published = []

    def publish_transform(self, pose, from_frame, to_frame):
        self.published.append((pose, from_frame, to_frame))
        return True


@pytest.fixture
def recording_solver():
    return RecordingSolver()


@pytest.fixture
def recording_registry(recording_solver):
    registry = SolverRegistry()
    registry.register("recording", lambda: recording_solver)
    return registry
