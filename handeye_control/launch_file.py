"""
Static transform publisher launch scripts for a calibration result.

Three launch formats are supported, chosen by file extension: Python
(``.py``), XML (``.xml``) and YAML (``.yaml`` / ``.yml``). The quaternion is
authoritative; roll/pitch/yaw are written as comments for reference only.
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .errors import FrameNamesError, PersistenceError, UnsupportedFormatError
from .transforms import transform_to_euler, transform_to_quaternion
from .types import SensorMountType
from .validation import frame_name_valid

HEADER = "Static transform publisher acquired via hand-eye calibration"


@dataclass(frozen=True)
class LaunchParameters:
    """Everything a launch script renderer needs."""

    from_frame: str
    to_frame: str
    translation: tuple[float, float, float]
    quaternion: tuple[float, float, float, float]  # x, y, z, w
    euler: tuple[float, float, float]  # roll, pitch, yaw
    mount_type: str

    @classmethod
    def from_pose(
        cls,
        camera_robot_pose: np.ndarray,
        mount_type: SensorMountType,
        from_frame: str,
        to_frame: str,
    ) -> "LaunchParameters":
        t = camera_robot_pose[:3, 3]
        q = transform_to_quaternion(camera_robot_pose)
        e = transform_to_euler(camera_robot_pose)
        return cls(
            from_frame=from_frame,
            to_frame=to_frame,
            translation=(float(t[0]), float(t[1]), float(t[2])),
            quaternion=(float(q[0]), float(q[1]), float(q[2]), float(q[3])),
            euler=(float(e[0]), float(e[1]), float(e[2])),
            mount_type=mount_type.label,
        )

    def arguments(self) -> list[tuple[str, str]]:
        """(flag, value) pairs for static_transform_publisher."""
        x, y, z = self.translation
        qx, qy, qz, qw = self.quaternion
        return [
            ("--frame-id", self.from_frame),
            ("--child-frame-id", self.to_frame),
            ("--x", f"{x:g}"),
            ("--y", f"{y:g}"),
            ("--z", f"{z:g}"),
            ("--qx", f"{qx:g}"),
            ("--qy", f"{qy:g}"),
            ("--qz", f"{qz:g}"),
            ("--qw", f"{qw:g}"),
        ]

    def euler_arguments(self) -> list[tuple[str, str]]:
        roll, pitch, yaw = self.euler
        return [("roll", f"{roll:g}"), ("pitch", f"{pitch:g}"), ("yaw", f"{yaw:g}")]


def render_python(params: LaunchParameters) -> str:
    lines = [
        f'""" {HEADER} """',
        f'""" {params.mount_type}: {params.from_frame} -> {params.to_frame} """',
        "from launch import LaunchDescription",
        "from launch_ros.actions import Node",
        "",
        "",
        "def generate_launch_description() -> LaunchDescription:",
        "    nodes = [",
        "        Node(",
        '            package="tf2_ros",',
        '            executable="static_transform_publisher",',
        '            output="log",',
        "            arguments=[",
    ]
    for flag, value in params.arguments():
        lines.append(f'                "{flag}",')
        lines.append(f'                "{value}",')
    for name, value in params.euler_arguments():
        lines.append(f'                # "--{name}",')
        lines.append(f'                # "{value}",')
    lines += [
        "            ],",
        "        ),",
        "    ]",
        "    return LaunchDescription(nodes)",
    ]
    return "\n".join(lines) + "\n"


def render_xml(params: LaunchParameters) -> str:
    lines = [
        f"<!-- {HEADER} -->",
        f"<!-- {params.mount_type}: {params.from_frame} -> {params.to_frame} -->",
        "",
        "<launch>",
        "    <node",
        '        pkg="tf2_ros"',
        '        exec="static_transform_publisher"',
        '        output="log"',
        '        args="',
    ]
    lines += [f"            {flag} {value}" for flag, value in params.arguments()]
    lines += [
        '        "',
        "    />",
        "    <!--",
    ]
    lines += [f"            {name} {value}" for name, value in params.euler_arguments()]
    lines += [
        "    -->",
        "</launch>",
    ]
    return "\n".join(lines) + "\n"


def render_yaml(params: LaunchParameters) -> str:
    lines = [
        f"# {HEADER}",
        f"# {params.mount_type}: {params.from_frame} -> {params.to_frame}",
        "",
        "launch:",
        "    - node:",
        "          pkg: tf2_ros",
        "          exec: static_transform_publisher",
        "          output: log",
        "          args:",
        '              "',
    ]
    lines += [f"              {flag} {value}" for flag, value in params.arguments()]
    lines.append('              "')
    lines += [f"              # --{name} {value}" for name, value in params.euler_arguments()]
    return "\n".join(lines) + "\n"


RENDERERS = {
    ".py": render_python,
    ".xml": render_xml,
    ".yaml": render_yaml,
    ".yml": render_yaml,
}


def normalize_launch_path(path: str | Path) -> Path:
    """
    Default the launch file extension.

    A name without any ``.`` gets ``.launch.py``; a name ending in ``.launch``
    gets ``.py``.
    """
    path = Path(path)
    if "." not in path.name:
        path = path.with_name(path.name + ".launch.py")
    elif path.name.endswith(".launch"):
        path = path.with_name(path.name + ".py")
    return path


def render_launch_file(path: str | Path, params: LaunchParameters) -> str:
    """
    Render the launch script matching the extension of ``path``.

    Raises
    ------
    UnsupportedFormatError
        For any extension other than .py, .xml, .yaml or .yml.
    FrameNamesError
        If a frame name contains characters a launch script cannot hold.
    """
    for name in (params.from_frame, params.to_frame):
        if not frame_name_valid(name):
            raise FrameNamesError(
                f"Invalid frame name {name!r}: only letters, digits and _ . / ~ - are allowed."
            )

    suffix = Path(path).suffix.lower()
    renderer = RENDERERS.get(suffix)
    if renderer is None:
        raise UnsupportedFormatError(
            "Unable to save file, unknown file type. Only `.py`, `.xml`, and "
            "`.yaml`/`.yml` are currently supported for launch scripts."
        )
    return renderer(params)


def save_launch_file(path: str | Path, params: LaunchParameters) -> Path:
    """Write a launch script and return the (normalized) path written."""
    path = normalize_launch_path(path)
    text = render_launch_file(path, params)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(text)
    except OSError as e:
        raise PersistenceError(f"Unable to open file {path}: {e}") from e
    return path
