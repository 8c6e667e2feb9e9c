"""
Tests for handeye_control.session.
"""

import numpy as np
import pytest

from conftest import (
    JOINT_NAMES,
    FakeMotionTarget,
    FakePlanningContext,
    RecordingPublisher,
    RecordingSolver,
)

from handeye_control.config import SessionConfig
from handeye_control.errors import (
    EmptyStoreError,
    FrameNamesError,
    HandEyeError,
    InsufficientRotationError,
    InsufficientSamplesError,
    JointStateError,
    NoSolverAvailableError,
    SolverError,
    TransformLookupError,
)
from handeye_control.interfaces import TransformBuffer
from handeye_control.session import CalibrationSession, StatusLevel
from handeye_control.solver import SolverRegistry
from handeye_control.types import SensorMountType, TransformPair

FRAMES = {"sensor": "camera", "object": "target", "base": "fr3_link0", "eef": "fr3_hand"}


def set_sample(buffer, effector, obj):
    buffer.set_transform("fr3_link0", "fr3_hand", effector)
    buffer.set_transform("camera", "target", obj)


@pytest.fixture
def buffer():
    return TransformBuffer()


@pytest.fixture
def session(buffer):
    session = CalibrationSession(transform_lookup=buffer)
    session.set_mount_type(SensorMountType.EYE_IN_HAND)
    session.update_frame_names(FRAMES)
    return session


class TestSettings:
    def test_initial_status(self):
        session = CalibrationSession()
        assert session.status == (StatusLevel.OK, "Collect 5 samples to start calibration.")

    def test_first_solver_selected_by_default(self):
        session = CalibrationSession()
        assert session.solver_name == "opencv/TsaiLenz1989"
        assert "opencv_robot_world/Li2010" in session.available_solvers()

    def test_select_solver(self):
        session = CalibrationSession()
        session.select_solver("opencv/Daniilidis1999")
        assert session.solver_name == "opencv/Daniilidis1999"
        with pytest.raises(NoSolverAvailableError):
            session.select_solver("opencv/Unknown")
        assert session.solver_name == "opencv/Daniilidis1999"

    def test_from_frame_follows_mount_type(self, session):
        assert session.from_frame_tag == "eef"
        assert session.from_frame == "fr3_hand"
        session.set_mount_type("EYE_TO_HAND")
        assert session.from_frame_tag == "base"
        assert session.from_frame == "fr3_link0"
        assert session.to_frame == "camera"

    def test_config_roundtrip(self):
        session = CalibrationSession(
            planning_context=FakePlanningContext(),
            motion_target_factory=lambda name: FakeMotionTarget(name=name),
        )
        config = SessionConfig(
            solver="opencv/ParkBryan1994",
            group="fr3_arm",
            sensor_mount_type=SensorMountType.EYE_IN_HAND,
            frame_names=dict(FRAMES),
            velocity_scaling=0.3,
        )
        session.apply_config(config)
        assert session.solver_name == "opencv/ParkBryan1994"
        assert session.group_name == "fr3_arm"
        assert session.move_group.name == "fr3_arm"
        assert session.export_config() == config

    def test_config_with_unavailable_solver_keeps_selection(self):
        session = CalibrationSession(config=SessionConfig(solver="nope/Nothing"))
        assert session.solver_name == "opencv/TsaiLenz1989"


class TestSampling:
    def test_frames_undefined(self, buffer, eye_in_hand_data):
        _, effector, objects = eye_in_hand_data
        set_sample(buffer, effector[0], objects[0])
        session = CalibrationSession(transform_lookup=buffer)
        with pytest.raises(FrameNamesError):
            session.take_sample()
        assert len(session.store) == 0

    def test_no_lookup(self):
        session = CalibrationSession()
        session.update_frame_names(FRAMES)
        with pytest.raises(TransformLookupError):
            session.take_sample()

    def test_lookup_failure(self, session):
        with pytest.raises(TransformLookupError):
            session.take_sample()
        assert len(session.store) == 0

    def test_repeated_pose_rejected(self, session, buffer, eye_in_hand_data):
        _, effector, objects = eye_in_hand_data
        set_sample(buffer, effector[0], objects[0])
        session.take_sample()
        with pytest.raises(InsufficientRotationError):
            session.take_sample()
        assert len(session.store) == 1

    def test_auto_solve_after_fifth_sample(self, session, buffer, eye_in_hand_data):
        X, effector, objects = eye_in_hand_data
        for i in range(4):
            set_sample(buffer, effector[i], objects[i])
            session.take_sample()
            assert session.result is None
        assert session.status[1] == "Collect 1 more samples to start calibration."

        set_sample(buffer, effector[4], objects[4])
        session.take_sample()
        assert session.result is not None
        np.testing.assert_allclose(session.result.camera_robot_pose, X, atol=1e-4)
        assert session.result.translation_error < 1e-4
        assert session.status == (StatusLevel.OK, "Calibration successful.")

    def test_records_joint_states(self, buffer, eye_in_hand_data):
        _, effector, objects = eye_in_hand_data
        context = FakePlanningContext()
        session = CalibrationSession(
            transform_lookup=buffer,
            planning_context=context,
            motion_target_factory=lambda name: FakeMotionTarget(name=name),
        )
        session.update_frame_names(FRAMES)
        assert session.set_group_name("fr3_arm")

        for i in range(2):
            context.positions[0] = 0.1 * i
            set_sample(buffer, effector[i], objects[i])
            session.take_sample()

        assert session.store.joint_names == JOINT_NAMES
        assert session.store.joint_state_count == 2
        assert session.store.joint_states[1][0] == pytest.approx(0.1)
        assert session.progress.maximum == 2

    def test_delete_and_clear(self, session, buffer, eye_in_hand_data):
        _, effector, objects = eye_in_hand_data
        for i in range(2):
            set_sample(buffer, effector[i], objects[i])
            session.take_sample()
        session.delete_latest_sample()
        assert len(session.store) == 1
        session.clear_samples()
        assert len(session.store) == 0
        assert session.progress.value == 0
        with pytest.raises(EmptyStoreError):
            session.delete_latest_sample()


class TestGroups:
    def test_set_group_clears_joint_states(self):
        created = []

        def factory(name):
            created.append(name)
            return FakeMotionTarget(name=name)

        session = CalibrationSession(motion_target_factory=factory)
        session.set_group_name("arm_a")
        session.store.set_joint_states(["j1"], [[0.0], [1.0]])
        session.progress.reset(2)

        assert session.set_group_name("arm_a")
        assert session.store.joint_state_count == 2
        assert created == ["arm_a"]

        assert session.set_group_name("arm_b")
        assert session.store.joint_state_count == 0
        assert session.progress.maximum == 0
        assert session.move_group.name == "arm_b"

    def test_factory_failure_keeps_group(self):
        def factory(name):
            if name == "bad":
                raise RuntimeError("no such group")
            return FakeMotionTarget(name=name)

        session = CalibrationSession(motion_target_factory=factory)
        session.set_group_name("fr3_arm")
        assert not session.set_group_name("bad")
        assert session.group_name == "fr3_arm"

    def test_available_groups(self):
        assert CalibrationSession().available_groups() == []
        session = CalibrationSession(planning_context=FakePlanningContext(group="g"))
        assert session.available_groups() == ["g"]


class TestSolve:
    def test_no_solver_registered(self):
        session = CalibrationSession(solvers=SolverRegistry())
        assert session.solver_name == ""
        with pytest.raises(NoSolverAvailableError):
            session.solve()
        assert session.status[0] is StatusLevel.ERROR

    def test_no_solver_selected(self, recording_registry, recording_solver):
        session = CalibrationSession(solvers=recording_registry)
        session.select_solver("")
        with pytest.raises(NoSolverAvailableError):
            session.solve()
        assert recording_solver.calls == 0

    def test_zero_samples(self, recording_registry, recording_solver):
        session = CalibrationSession(solvers=recording_registry)
        assert session.solver_name == "recording/fixed"
        with pytest.raises(InsufficientSamplesError):
            session.solve()
        assert recording_solver.calls == 0
        assert session.result is None

    def test_solver_failure_keeps_previous_result(self, buffer, eye_in_hand_data):
        _, effector, objects = eye_in_hand_data
        solver = RecordingSolver()
        registry = SolverRegistry()
        registry.register("recording", lambda: solver)
        session = CalibrationSession(transform_lookup=buffer, solvers=registry)
        session.update_frame_names(FRAMES)
        set_sample(buffer, effector[0], objects[0])
        session.take_sample()

        first = session.solve()
        solver.fail = True
        with pytest.raises(SolverError):
            session.solve()
        assert session.result is first
        assert session.status == (StatusLevel.ERROR, "Solver failed.")

    def test_publishes_when_frames_defined(self, buffer, eye_in_hand_data, recording_registry):
        _, effector, objects = eye_in_hand_data
        publisher = RecordingPublisher()
        session = CalibrationSession(
            transform_lookup=buffer, solvers=recording_registry, transform_publisher=publisher
        )
        session.set_mount_type(SensorMountType.EYE_TO_HAND)
        session.update_frame_names(FRAMES)
        set_sample(buffer, effector[0], objects[0])
        session.take_sample()
        session.solve()

        assert len(publisher.published) == 1
        _, from_frame, to_frame = publisher.published[0]
        assert (from_frame, to_frame) == ("fr3_link0", "camera")

    def test_warns_when_frames_undefined(self, recording_registry):
        session = CalibrationSession(solvers=recording_registry)
        session.store.replace([TransformPair(np.eye(4), np.eye(4))])
        session.solve()
        assert session.status[0] is StatusLevel.WARN
        assert session.result is not None


class TestFiles:
    def test_samples_roundtrip(self, session, buffer, eye_in_hand_data, temp_dir):
        _, effector, objects = eye_in_hand_data
        for i in range(3):
            set_sample(buffer, effector[i], objects[i])
            session.take_sample()
        path = session.save_samples(temp_dir / "samples")

        other = CalibrationSession()
        assert other.load_samples(path) == 3
        np.testing.assert_allclose(other.store.effector_wrt_world[2], session.store.effector_wrt_world[2])

    def test_save_joint_states_requires_states(self, temp_dir):
        with pytest.raises(JointStateError):
            CalibrationSession().save_joint_states(temp_dir / "joints")

    def test_joint_states_roundtrip(self, temp_dir):
        session = CalibrationSession()
        session.store.set_joint_states(JOINT_NAMES, [[0.0] * 7, [0.1] * 7, [0.2] * 7])
        path = session.save_joint_states(temp_dir / "joints")

        other = CalibrationSession()
        other.progress.reset(10)
        other.progress.set_value(4)
        assert other.load_joint_states(path) == 3
        assert other.progress.maximum == 3
        assert other.progress.value == 0
        assert other.store.joint_names == JOINT_NAMES

    def test_save_camera_pose_requires_frames(self, temp_dir):
        session = CalibrationSession()
        with pytest.raises(FrameNamesError):
            session.save_camera_pose(temp_dir / "pose")

    def test_save_camera_pose_requires_result(self, session, temp_dir):
        with pytest.raises(HandEyeError):
            session.save_camera_pose(temp_dir / "pose")

    def test_save_camera_pose(self, session, buffer, eye_in_hand_data, temp_dir):
        _, effector, objects = eye_in_hand_data
        for i in range(5):
            set_sample(buffer, effector[i], objects[i])
            session.take_sample()

        path = session.save_camera_pose(temp_dir / "camera_pose")
        assert path.name == "camera_pose.launch.py"
        text = path.read_text()
        assert "EYE-IN-HAND: fr3_hand -> camera" in text
        assert '"--child-frame-id",' in text
