"""
Session configuration (YAML).

Example ``config/session.yaml``::

    solver: opencv/TsaiLenz1989
    group: fr3_arm
    sensor_mount_type: EYE_IN_HAND
    frame_names:
      sensor: camera_color_optical_frame
      object: handeye_target
      base: fr3_link0
      eef: fr3_hand
    velocity_scaling: 0.5
    acceleration_scaling: 0.5
    min_samples_to_solve: 5
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from .types import SensorMountType
from .validation import REQUIRED_FRAMES


@dataclass
class SessionConfig:
    """Persisted settings of a calibration session."""

    solver: str = ""
    group: str = ""
    sensor_mount_type: SensorMountType = SensorMountType.EYE_TO_HAND
    frame_names: dict[str, str] = field(
        default_factory=lambda: {key: "" for key in REQUIRED_FRAMES}
    )
    velocity_scaling: float = 0.5
    acceleration_scaling: float = 0.5
    min_samples_to_solve: int = 5

    @classmethod
    def from_dict(cls, data: dict) -> "SessionConfig":
        """
        Build a config from a parsed YAML map; missing keys keep defaults.

        Raises
        ------
        ValueError
            If a value has the wrong type or range.
        """
        config = cls()
        if not data:
            return config
        if not isinstance(data, dict):
            raise ValueError("Session config must be a map")

        config.solver = str(data.get("solver") or "")
        config.group = str(data.get("group") or "")
        if "sensor_mount_type" in data:
            config.sensor_mount_type = SensorMountType.parse(data["sensor_mount_type"])

        names = data.get("frame_names") or {}
        if not isinstance(names, dict):
            raise ValueError("frame_names must be a map")
        for key, value in names.items():
            config.frame_names[str(key)] = "" if value is None else str(value)

        for key in ("velocity_scaling", "acceleration_scaling"):
            if key in data:
                value = float(data[key])
                if not 0.0 < value <= 1.0:
                    raise ValueError(f"{key} must be in (0, 1], got {value}")
                setattr(config, key, value)

        if "min_samples_to_solve" in data:
            config.min_samples_to_solve = int(data["min_samples_to_solve"])
            if config.min_samples_to_solve < 1:
                raise ValueError("min_samples_to_solve must be at least 1")
        return config

    def to_dict(self) -> dict:
        data = asdict(self)
        data["sensor_mount_type"] = self.sensor_mount_type.name
        return data


def load_session_config(path: str | Path) -> SessionConfig:
    """
    Load a session configuration file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Session config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    return SessionConfig.from_dict(data)


def save_session_config(path: str | Path, config: SessionConfig) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    return path
