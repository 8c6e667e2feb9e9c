"""
Tests for handeye_control.robot (without a robot).
"""

import math

import numpy as np
import pytest

from handeye_control.robot import (
    FR3_JOINT_NAMES,
    FrankaMoveGroup,
    JointMotionPlan,
    check_joint_goal,
)

HOME = [0.0, 0.0, 0.0, -2.2, 0.0, 2.2, 0.7]


class FakeController:
    def __init__(self, fail=False):
        self.q = list(HOME)
        self.fail = fail
        self.moves = []
        self.recovered = 0

    def get_state(self):
        return {"q": list(self.q), "O_T_EE": np.eye(4)}

    def move_joints(self, joint_positions, velocity_scaling=None, acceleration_scaling=None):
        if self.fail:
            raise RuntimeError("reflex")
        self.moves.append((list(joint_positions), velocity_scaling, acceleration_scaling))
        self.q = list(joint_positions)

    def recover(self):
        self.recovered += 1


class TestCheckJointGoal:
    def test_home_is_valid(self):
        assert check_joint_goal(HOME) is None

    def test_wrong_count(self):
        assert "Expected 7" in check_joint_goal(HOME[:6])

    def test_not_finite(self):
        goal = list(HOME)
        goal[2] = math.nan
        assert "not finite" in check_joint_goal(goal)

    def test_outside_limits(self):
        goal = list(HOME)
        goal[3] = 0.0
        assert "Joint 4" in check_joint_goal(goal)


class TestFrankaMoveGroup:
    def test_planning_context(self):
        group = FrankaMoveGroup(FakeController())
        assert group.group_names() == ["fr3_arm"]
        assert group.active_joint_names("fr3_arm") == list(FR3_JOINT_NAMES)
        assert group.current_joint_positions("fr3_arm") == HOME
        with pytest.raises(ValueError):
            group.active_joint_names("other")

    def test_plan(self):
        group = FrankaMoveGroup(FakeController())
        goal = list(HOME)
        goal[0] = 0.5
        plan = group.plan(group.current_state(), goal, 0.5, 0.25)
        assert isinstance(plan, JointMotionPlan)
        assert plan.goal == tuple(goal)
        assert plan.max_joint_delta == pytest.approx(0.5)

    def test_plan_rejects_unreachable_goal(self):
        group = FrankaMoveGroup(FakeController())
        goal = list(HOME)
        goal[5] = 0.0
        assert group.plan(group.current_state(), goal) is None

    def test_execute(self):
        controller = FakeController()
        group = FrankaMoveGroup(controller)
        goal = list(HOME)
        goal[6] = 0.0
        plan = group.plan(group.current_state(), goal, 0.5, 0.25)
        assert group.execute(plan)
        assert controller.moves == [(goal, 0.5, 0.25)]
        assert group.current_joint_positions("fr3_arm") == goal

    def test_execute_failure_recovers(self):
        controller = FakeController(fail=True)
        group = FrankaMoveGroup(controller)
        plan = group.plan(group.current_state(), HOME)
        assert not group.execute(plan)
        assert controller.recovered == 1

    def test_execute_rejects_foreign_plan(self):
        controller = FakeController()
        group = FrankaMoveGroup(controller)
        plan = JointMotionPlan(("a",), (0.0,), (1.0,), 0.5, 0.5)
        assert not group.execute(plan)
        assert controller.moves == []
