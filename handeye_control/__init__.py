"""
Hand-Eye Calibration Control Package

Sample collection, solving and result export for hand-eye calibration, with an
optional workflow that replays recorded robot joint states.

Modules
-------
samples : Rotation-diverse pose sample storage
solver : Hand-eye solvers and the solver registry
session : Calibration session orchestration
workflow : Plan/execute/skip over recorded joint states
persistence : Sample, joint state and result files
launch_file : Static transform publisher launch scripts
robot : Franka robot control
"""

from .errors import (
    HandEyeError,
    ValidationError,
    InsufficientRotationError,
    FrameNamesError,
    JointStateError,
    EmptyStoreError,
    PersistenceError,
    SampleFileError,
    JointStateFileError,
    UnsupportedFormatError,
    SolverError,
    InsufficientSamplesError,
    NoSolverAvailableError,
    WorkflowBusyError,
    TransformLookupError,
)
from .types import SensorMountType, TransformPair, JointStateSample, CalibrationResult
from .samples import SampleStore
from .solver import (
    HandEyeSolverBase,
    OpenCVHandEyeSolver,
    OpenCVRobotWorldSolver,
    SolverRegistry,
    default_registry,
    compute_consistency_metrics,
)
from .interfaces import TransformBuffer
from .persistence import (
    NumpyEncoder,
    save_samples,
    load_samples,
    save_joint_states,
    load_joint_states,
    save_calibration_result,
    load_calibration_result,
)
from .launch_file import LaunchParameters, save_launch_file
from .config import SessionConfig, load_session_config, save_session_config
from .workflow import AutoCalibrationWorkflow, PlanningResult, WorkflowState, ProgressCounter
from .session import CalibrationSession, StatusLevel
from .robot import RobotController, FrankaMoveGroup, JointMotionPlan

__version__ = "0.1.0"
__all__ = [
    # Errors
    "HandEyeError",
    "ValidationError",
    "InsufficientRotationError",
    "FrameNamesError",
    "JointStateError",
    "EmptyStoreError",
    "PersistenceError",
    "SampleFileError",
    "JointStateFileError",
    "UnsupportedFormatError",
    "SolverError",
    "InsufficientSamplesError",
    "NoSolverAvailableError",
    "WorkflowBusyError",
    "TransformLookupError",
    # Types
    "SensorMountType",
    "TransformPair",
    "JointStateSample",
    "CalibrationResult",
    # Samples
    "SampleStore",
    # Solver
    "HandEyeSolverBase",
    "OpenCVHandEyeSolver",
    "OpenCVRobotWorldSolver",
    "SolverRegistry",
    "default_registry",
    "compute_consistency_metrics",
    # Files
    "TransformBuffer",
    "NumpyEncoder",
    "save_samples",
    "load_samples",
    "save_joint_states",
    "load_joint_states",
    "save_calibration_result",
    "load_calibration_result",
    "LaunchParameters",
    "save_launch_file",
    # Config
    "SessionConfig",
    "load_session_config",
    "save_session_config",
    # Session and workflow
    "CalibrationSession",
    "StatusLevel",
    "AutoCalibrationWorkflow",
    "PlanningResult",
    "WorkflowState",
    "ProgressCounter",
    # Robot
    "RobotController",
    "FrankaMoveGroup",
    "JointMotionPlan",
]
