"""
Reading and writing pose samples, joint states and calibration results.
"""

import json
import logging
from pathlib import Path
from typing import Sequence

import numpy as np
import yaml

from .errors import JointStateFileError, SampleFileError
from .transforms import transform_from_row_major, transform_to_row_major
from .types import CalibrationResult, SensorMountType, TransformPair

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def ensure_suffix(path: str | Path, suffix: str = ".yaml") -> Path:
    """Append ``suffix`` unless the file name already ends with it."""
    path = Path(path)
    if not path.name.endswith(suffix):
        path = path.with_name(path.name + suffix)
    return path


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(text)


# =============================================================================
# Pose samples
# =============================================================================

def dump_samples(pairs: Sequence[TransformPair]) -> str:
    """
    Serialize transform pairs to YAML.

    Each pair becomes a map with ``effector_wrt_world`` and
    ``object_wrt_sensor``, each a flat list of 16 numbers (4x4, row-major).
    """
    records = [
        {
            "effector_wrt_world": transform_to_row_major(pair.effector_wrt_world),
            "object_wrt_sensor": transform_to_row_major(pair.object_wrt_sensor),
        }
        for pair in pairs
    ]
    return yaml.safe_dump(records, default_flow_style=False, sort_keys=False)


def parse_samples(text: str) -> list[TransformPair]:
    """
    Parse the YAML produced by :func:`dump_samples`.

    Raises
    ------
    SampleFileError
        If the document is not a list of well-formed sample records.
    """
    try:
        records = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SampleFileError(f"YAML exception: {e}\nCheck that the sample file has the correct format.") from e

    if records is None:
        return []
    if not isinstance(records, list):
        raise SampleFileError("Sample file must contain a list of samples.")

    pairs = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise SampleFileError(f"Sample {i + 1} is not a map.")
        try:
            effector = transform_from_row_major(record["effector_wrt_world"])
            sensor = transform_from_row_major(record["object_wrt_sensor"])
        except KeyError as e:
            raise SampleFileError(f"Sample {i + 1} is missing {e}.") from e
        except (TypeError, ValueError) as e:
            raise SampleFileError(f"Sample {i + 1}: {e}") from e
        pairs.append(TransformPair(effector, sensor))
    return pairs


def save_samples(path: str | Path, pairs: Sequence[TransformPair]) -> Path:
    """
    Save transform pairs to a YAML file (``.yaml`` is appended if missing).

    Returns
    -------
    Path
        The file written.
    """
    path = ensure_suffix(path)
    text = dump_samples(pairs)
    try:
        _write_text(path, text)
    except OSError as e:
        raise SampleFileError(f"Unable to open file {path}: {e}") from e
    logger.info("Saved %d samples to %s", len(pairs), path)
    return path


def load_samples(path: str | Path) -> list[TransformPair]:
    """Load transform pairs from a YAML sample file."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as e:
        raise SampleFileError(f"Unable to open file {path}: {e}") from e
    pairs = parse_samples(text)
    logger.info("Loaded %d samples from %s", len(pairs), path)
    return pairs


# =============================================================================
# Joint states
# =============================================================================

def dump_joint_states(joint_names: Sequence[str], joint_states: Sequence[Sequence[float]]) -> str:
    data = {
        "joint_names": [str(name) for name in joint_names],
        "joint_values": [[float(v) for v in state] for state in joint_states],
    }
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def parse_joint_states(text: str) -> tuple[list[str], list[list[float]]]:
    """
    Parse a joint state document.

    States whose length differs from the number of joint names are dropped
    individually.

    Returns
    -------
    tuple
        (joint_names, joint_states)

    Raises
    ------
    JointStateFileError
        If the document is not a map or lacks either key.
    """
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise JointStateFileError(f"YAML exception: {e}") from e

    if not isinstance(doc, dict):
        raise JointStateFileError("Joint state file must contain a map.")

    names = doc.get("joint_names")
    if not isinstance(names, list) or not names:
        raise JointStateFileError("Can't find 'joint_names' in the opened file.")
    names = [str(name) for name in names]

    values = doc.get("joint_values")
    if not isinstance(values, list):
        raise JointStateFileError("Can't find 'joint_values' in the opened file.")

    states = []
    for i, state in enumerate(values):
        if not isinstance(state, list) or len(state) != len(names):
            logger.warning("Dropping joint state %d: expected %d values", i, len(names))
            continue
        try:
            states.append([float(v) for v in state])
        except (TypeError, ValueError) as e:
            raise JointStateFileError(f"Joint state {i}: {e}") from e
    return names, states


def save_joint_states(
    path: str | Path,
    joint_names: Sequence[str],
    joint_states: Sequence[Sequence[float]],
) -> Path:
    """Save joint names and states to YAML (``.yaml`` is appended if missing)."""
    path = ensure_suffix(path)
    text = dump_joint_states(joint_names, joint_states)
    try:
        _write_text(path, text)
    except OSError as e:
        raise JointStateFileError(f"Unable to open file {path}: {e}") from e
    logger.info("Saved %d joint states to %s", len(joint_states), path)
    return path


def load_joint_states(path: str | Path) -> tuple[list[str], list[list[float]]]:
    """Load joint names and states from a YAML file."""
    path = Path(path)
    logger.debug("Load joint states from file: %s", path)
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as e:
        raise JointStateFileError(f"Unable to open file {path}: {e}") from e
    names, states = parse_joint_states(text)
    logger.info("Loaded and parsed: %s", path)
    return names, states


# =============================================================================
# Calibration result (JSON)
# =============================================================================

def save_calibration_result(
    output_path: str | Path,
    result: CalibrationResult,
    mount_type: SensorMountType,
    from_frame: str = "",
    to_frame: str = "",
) -> dict:
    """
    Save a calibration result to a JSON file.

    Parameters
    ----------
    output_path : str or Path
        Output file path.
    result : CalibrationResult
        Solved pose and its reprojection error.
    mount_type : SensorMountType
        Sensor mounting the result was solved for.
    from_frame, to_frame : str
        Reference and sensor frame names.

    Returns
    -------
    dict
        The saved result dictionary.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "sensor_mount_type": mount_type.name,
        "from_frame": from_frame,
        "to_frame": to_frame,
        "solver": result.solver,
        "T_camera_robot": result.camera_robot_pose,
        "xyz": result.translation,
        "quaternion_xyzw": result.quaternion,
        "rpy": result.euler,
        "translation_error": result.translation_error,
        "rotation_error": result.rotation_error,
    }

    with open(output_path, "w") as f:
        json.dump(data, f, indent=4, cls=NumpyEncoder)

    return json.loads(json.dumps(data, cls=NumpyEncoder))


def load_calibration_result(calib_path: str | Path) -> CalibrationResult:
    """
    Load a calibration result from a JSON file written by
    :func:`save_calibration_result`.
    """
    with open(calib_path, "r") as f:
        calib = json.load(f)

    return CalibrationResult(
        camera_robot_pose=np.array(calib["T_camera_robot"], dtype=np.float64),
        translation_error=float(calib.get("translation_error", 0.0)),
        rotation_error=float(calib.get("rotation_error", 0.0)),
        solver=calib.get("solver", ""),
    )
