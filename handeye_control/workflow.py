"""
Calibration with recorded joint states.

The workflow walks a list of recorded joint states: *plan* a motion to the next
state, *execute* it, then take a transform sample there and solve once enough
samples exist. *Skip* moves past a state without visiting it.

Planning and execution run on a single background worker so they never overlap
each other. Workers only compute; their results are posted to a queue and
applied to the session by :meth:`AutoCalibrationWorkflow.process_events`, which
the owning (interactive) thread calls.
"""

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable

from .errors import HandEyeError, InsufficientRotationError, WorkflowBusyError
from .validation import frame_names_complete, joint_states_valid

if TYPE_CHECKING:
    from .interfaces import MotionTarget, PlanningContext
    from .session import CalibrationSession

logger = logging.getLogger(__name__)


class PlanningResult(Enum):
    SUCCESS = auto()
    FAILURE_NO_JOINT_STATE = auto()
    FAILURE_INVALID_JOINT_STATE = auto()
    FAILURE_NO_PSM = auto()
    FAILURE_NO_MOVE_GROUP = auto()
    FAILURE_WRONG_MOVE_GROUP = auto()
    FAILURE_PLAN_FAILED = auto()


FAILURE_MESSAGES = {
    PlanningResult.FAILURE_NO_JOINT_STATE:
        "Could not compute plan. No more prerecorded joint states to execute.",
    PlanningResult.FAILURE_INVALID_JOINT_STATE:
        "Could not compute plan. Invalid joint states (names wrong or missing).",
    PlanningResult.FAILURE_NO_PSM:
        "Could not compute plan. No planning scene monitor.",
    PlanningResult.FAILURE_NO_MOVE_GROUP:
        "Could not compute plan. Missing move_group.",
    PlanningResult.FAILURE_WRONG_MOVE_GROUP:
        "Could not compute plan. Joint names for recorded state do not match names "
        "from current planning group.",
    PlanningResult.FAILURE_PLAN_FAILED:
        "Could not compute plan. Planning failed.",
}

EXECUTION_FAILED_MESSAGE = "Execution failed."


class WorkflowState(Enum):
    IDLE = auto()
    PLANNING = auto()
    PLAN_READY = auto()
    PLAN_FAILED = auto()
    EXECUTING = auto()
    EXEC_FAILED = auto()


class ProgressCounter:
    """
    Cursor over the recorded joint states.

    ``value`` stays within ``[0, maximum]``; out-of-range values are ignored.
    """

    def __init__(self, maximum: int = 0, value: int = 0):
        self._maximum = max(0, maximum)
        self._value = min(max(0, value), self._maximum)

    @property
    def value(self) -> int:
        return self._value

    @property
    def maximum(self) -> int:
        return self._maximum

    @property
    def exhausted(self) -> bool:
        return self._value >= self._maximum

    def set_maximum(self, maximum: int) -> None:
        self._maximum = max(0, maximum)
        self._value = min(self._value, self._maximum)

    def set_value(self, value: int) -> bool:
        if not 0 <= value <= self._maximum:
            return False
        self._value = value
        return True

    def advance(self) -> bool:
        return self.set_value(self._value + 1)

    def reset(self, maximum: int = 0) -> None:
        self._maximum = max(0, maximum)
        self._value = 0

    def __repr__(self) -> str:
        return f"ProgressCounter({self._value}/{self._maximum})"


@dataclass(frozen=True)
class PlanRequest:
    """Snapshot of what a background plan needs, taken on the owning thread."""

    joint_names: tuple[str, ...]
    joint_states: tuple[tuple[float, ...], ...]
    progress: int
    progress_max: int
    velocity_scaling: float = 0.5
    acceleration_scaling: float = 0.5


@dataclass(frozen=True)
class WorkflowEvent:
    """Completion message posted by a background task."""

    kind: str  # "plan" or "execute"
    result: PlanningResult
    plan: Any = None
    message: str = ""


def compute_plan(
    request: PlanRequest,
    planning_context: "PlanningContext | None",
    move_group: "MotionTarget | None",
) -> tuple[PlanningResult, Any]:
    """
    Validate a plan request and plan to the next recorded joint state.

    Checks run in a fixed order and the first failing check decides the
    result.

    Returns
    -------
    tuple
        (result, plan) where plan is None unless result is SUCCESS.
    """
    if request.progress_max != len(request.joint_states) or request.progress >= request.progress_max:
        return PlanningResult.FAILURE_NO_JOINT_STATE, None

    if not joint_states_valid(request.joint_names, request.joint_states):
        return PlanningResult.FAILURE_INVALID_JOINT_STATE, None

    if planning_context is None:
        return PlanningResult.FAILURE_NO_PSM, None

    if move_group is None:
        return PlanningResult.FAILURE_NO_MOVE_GROUP, None

    if list(move_group.active_joints()) != list(request.joint_names):
        return PlanningResult.FAILURE_WRONG_MOVE_GROUP, None

    start_state = planning_context.current_state()
    goal = list(request.joint_states[request.progress])
    plan = move_group.plan(
        start_state, goal, request.velocity_scaling, request.acceleration_scaling
    )
    if plan is None:
        logger.error("Planning failed.")
        return PlanningResult.FAILURE_PLAN_FAILED, None

    logger.debug("Planning succeed.")
    return PlanningResult.SUCCESS, plan


def compute_execution(move_group: "MotionTarget | None", plan: Any) -> PlanningResult:
    """Execute a plan; any executor failure maps to FAILURE_PLAN_FAILED."""
    if move_group is None or plan is None:
        logger.error("Execution failed: no plan to execute.")
        return PlanningResult.FAILURE_PLAN_FAILED

    if move_group.execute(plan):
        logger.debug("Execution succeed.")
        return PlanningResult.SUCCESS

    logger.error(EXECUTION_FAILED_MESSAGE)
    return PlanningResult.FAILURE_PLAN_FAILED


class AutoCalibrationWorkflow:
    """
    Plan/execute/skip state machine over a session's recorded joint states.

    Parameters
    ----------
    session : CalibrationSession
        Owner of the samples, progress counter, planning context and
        motion target.
    executor : ThreadPoolExecutor, optional
        Worker for planning and execution. A single-worker pool is created
        when omitted.
    """

    def __init__(self, session: "CalibrationSession", executor: ThreadPoolExecutor | None = None):
        self.session = session
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="handeye-workflow")
        self._events: "queue.Queue[WorkflowEvent]" = queue.Queue()
        self._plan_future: Future | None = None
        self._execute_future: Future | None = None
        self._plan: Any = None
        self._state = WorkflowState.IDLE
        self.last_result: PlanningResult | None = None
        self.listeners: list[Callable[[WorkflowEvent], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def progress(self):
        return self.session.progress

    @property
    def has_plan(self) -> bool:
        return self._plan is not None

    @property
    def plan_in_flight(self) -> bool:
        return self._plan_future is not None

    @property
    def execute_in_flight(self) -> bool:
        return self._execute_future is not None

    @property
    def plan_enabled(self) -> bool:
        return not (self.plan_in_flight or self.execute_in_flight)

    @property
    def execute_enabled(self) -> bool:
        return not self.execute_in_flight

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def plan(self) -> Future:
        """
        Start planning to the next recorded joint state in the background.

        Raises
        ------
        WorkflowBusyError
            While a previous plan or execution has not been processed.
        """
        if not self.plan_enabled:
            raise WorkflowBusyError("A plan or execution is already in progress.")

        session = self.session
        request = PlanRequest(
            joint_names=tuple(session.store.joint_names),
            joint_states=tuple(tuple(s) for s in session.store.joint_states),
            progress=session.progress.value,
            progress_max=session.progress.maximum,
            velocity_scaling=session.velocity_scaling,
            acceleration_scaling=session.acceleration_scaling,
        )
        planning_context = session.planning_context
        move_group = session.move_group

        self._plan = None
        self._state = WorkflowState.PLANNING
        self._plan_future = self._executor.submit(
            self._run_plan, request, planning_context, move_group
        )
        return self._plan_future

    def execute(self) -> Future:
        """
        Start executing the retained plan in the background.

        A plan still being computed is waited for first.

        Raises
        ------
        WorkflowBusyError
            While a previous execution has not been processed.
        """
        if not self.execute_enabled:
            raise WorkflowBusyError("An execution is already in progress.")

        if self._plan_future is not None:
            self._plan_future.result()
            self.process_events()

        plan, self._plan = self._plan, None
        move_group = self.session.move_group

        self._state = WorkflowState.EXECUTING
        self._execute_future = self._executor.submit(self._run_execute, move_group, plan)
        return self._execute_future

    def skip(self) -> int:
        """Move past the current recorded joint state. Stops at the last one."""
        if not self.session.progress.advance():
            logger.info("No more recorded joint states to skip")
        return self.session.progress.value

    # ------------------------------------------------------------------
    # Completion handling (owning thread)
    # ------------------------------------------------------------------

    def process_events(self, timeout: float | None = None) -> list[WorkflowEvent]:
        """
        Apply completed background results.

        Parameters
        ----------
        timeout : float, optional
            Wait up to this long for the first event. By default only events
            that are already queued are processed.

        Returns
        -------
        list
            The events that were applied, oldest first.
        """
        processed = []
        block = timeout is not None
        while True:
            try:
                event = self._events.get(block=block, timeout=timeout)
            except queue.Empty:
                break
            block = False
            if event.kind == "plan":
                self._plan_finished(event)
            else:
                self._execute_finished(event)
            processed.append(event)
            for listener in self.listeners:
                listener(event)
        return processed

    def wait(self) -> list[WorkflowEvent]:
        """Block until outstanding work finishes, then process its events."""
        for future in (self._plan_future, self._execute_future):
            if future is not None:
                future.result()
        return self.process_events()

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _plan_finished(self, event: WorkflowEvent) -> None:
        self._plan_future = None
        self.last_result = event.result
        if event.result is PlanningResult.SUCCESS:
            self._plan = event.plan
            self._state = WorkflowState.PLAN_READY
        else:
            self._state = WorkflowState.PLAN_FAILED
            logger.warning(event.message)
        logger.debug("Plan finished")

    def _execute_finished(self, event: WorkflowEvent) -> None:
        self._execute_future = None
        self.last_result = event.result
        if event.result is not PlanningResult.SUCCESS:
            self._state = WorkflowState.EXEC_FAILED
            logger.warning(event.message)
            return

        session = self.session
        session.progress.advance()
        self._state = WorkflowState.IDLE

        if frame_names_complete(session.frame_names):
            try:
                session.take_transform_sample()
            except InsufficientRotationError as e:
                logger.info("Sample after execution not recorded: %s", e)
            except HandEyeError as e:
                logger.warning("Sample after execution failed: %s", e)
        else:
            logger.warning("At least one of the four frame names is empty.")

        if len(session.store) >= session.min_samples_to_solve:
            session.solve_if_possible()
        logger.debug("Execution finished")

    # ------------------------------------------------------------------
    # Background tasks (worker thread; no session access)
    # ------------------------------------------------------------------

    def _run_plan(self, request, planning_context, move_group) -> PlanningResult:
        try:
            result, plan = compute_plan(request, planning_context, move_group)
        except Exception as e:
            logger.exception("Planning raised an exception")
            self._events.put(WorkflowEvent("plan", PlanningResult.FAILURE_PLAN_FAILED, None, str(e)))
            return PlanningResult.FAILURE_PLAN_FAILED
        message = FAILURE_MESSAGES.get(result, "")
        self._events.put(WorkflowEvent("plan", result, plan, message))
        return result

    def _run_execute(self, move_group, plan) -> PlanningResult:
        try:
            result = compute_execution(move_group, plan)
        except Exception as e:
            logger.exception("Execution raised an exception")
            self._events.put(WorkflowEvent("execute", PlanningResult.FAILURE_PLAN_FAILED, None, str(e)))
            return PlanningResult.FAILURE_PLAN_FAILED
        message = "" if result is PlanningResult.SUCCESS else EXECUTION_FAILED_MESSAGE
        self._events.put(WorkflowEvent("execute", result, None, message))
        return result
