"""
Tests for handeye_control.launch_file.
"""

import dataclasses

import numpy as np
import pytest
import yaml

from handeye_control.errors import FrameNamesError, UnsupportedFormatError
from handeye_control.launch_file import (
    LaunchParameters,
    normalize_launch_path,
    render_launch_file,
    render_python,
    render_xml,
    render_yaml,
    save_launch_file,
)
from handeye_control.transforms import make_transform
from handeye_control.types import SensorMountType


@pytest.fixture
def params():
    return LaunchParameters(
        from_frame="fr3_hand",
        to_frame="camera_link",
        translation=(0.1, -0.2, 0.3),
        quaternion=(0.0, 0.0, 0.0, 1.0),
        euler=(0.5, 0.0, -1.25),
        mount_type="EYE-IN-HAND",
    )


PYTHON_LAUNCH = '''""" Static transform publisher acquired via hand-eye calibration """
""" EYE-IN-HAND: fr3_hand -> camera_link """
from launch import LaunchDescription
from launch_ros.actions import Node


def generate_launch_description() -> LaunchDescription:
    nodes = [
        Node(
            package="tf2_ros",
            executable="static_transform_publisher",
            output="log",
            arguments=[
                "--frame-id",
                "fr3_hand",
                "--child-frame-id",
                "camera_link",
                "--x",
                "0.1",
                "--y",
                "-0.2",
                "--z",
                "0.3",
                "--qx",
                "0",
                "--qy",
                "0",
                "--qz",
                "0",
                "--qw",
                "1",
                # "--roll",
                # "0.5",
                # "--pitch",
                # "0",
                # "--yaw",
                # "-1.25",
            ],
        ),
    ]
    return LaunchDescription(nodes)
'''

XML_LAUNCH = '''<!-- Static transform publisher acquired via hand-eye calibration -->
<!-- EYE-IN-HAND: fr3_hand -> camera_link -->

<launch>
    <node
        pkg="tf2_ros"
        exec="static_transform_publisher"
        output="log"
        args="
            --frame-id fr3_hand
            --child-frame-id camera_link
            --x 0.1
            --y -0.2
            --z 0.3
            --qx 0
            --qy 0
            --qz 0
            --qw 1
        "
    />
    <!--
            roll 0.5
            pitch 0
            yaw -1.25
    -->
</launch>
'''


class TestRenderers:
    def test_python(self, params):
        assert render_python(params) == PYTHON_LAUNCH

    def test_python_is_valid_source(self, params):
        compile(render_python(params), "camera_pose.launch.py", "exec")

    def test_xml(self, params):
        assert render_xml(params) == XML_LAUNCH

    def test_yaml_parses(self, params):
        text = render_yaml(params)
        assert text.startswith("# Static transform publisher acquired via hand-eye calibration\n")
        assert "# EYE-IN-HAND: fr3_hand -> camera_link" in text
        doc = yaml.safe_load(text)
        node = doc["launch"][0]["node"]
        assert node["pkg"] == "tf2_ros"
        assert node["exec"] == "static_transform_publisher"
        args = node["args"].split()
        assert args[:4] == ["--frame-id", "fr3_hand", "--child-frame-id", "camera_link"]
        assert args[-2:] == ["--qw", "1"]
        assert "# --yaw -1.25" in text

    def test_six_significant_digits(self):
        p = LaunchParameters("a", "b", (0.123456789, 1234567.0, 0.0), (0, 0, 0, 1), (0, 0, 0), "EYE-TO-HAND")
        values = dict(p.arguments())
        assert values["--x"] == "0.123457"
        assert values["--y"] == "1.23457e+06"

    def test_from_pose(self):
        T = make_transform(np.eye(3), [1.0, 2.0, 3.0])
        p = LaunchParameters.from_pose(T, SensorMountType.EYE_TO_HAND, "fr3_link0", "camera_link")
        assert p.mount_type == "EYE-TO-HAND"
        assert p.translation == (1.0, 2.0, 3.0)
        assert abs(p.quaternion[3]) == pytest.approx(1.0)


class TestLaunchPath:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("camera_pose", "camera_pose.launch.py"),
            ("camera_pose.launch", "camera_pose.launch.py"),
            ("camera_pose.launch.py", "camera_pose.launch.py"),
            ("camera_pose.xml", "camera_pose.xml"),
            ("camera_pose.yaml", "camera_pose.yaml"),
        ],
    )
    def test_normalize(self, name, expected):
        assert normalize_launch_path(name).name == expected

    def test_unsupported_extension(self, params):
        with pytest.raises(UnsupportedFormatError):
            render_launch_file("camera_pose.txt", params)

    def test_save_picks_format(self, temp_dir, params):
        path = save_launch_file(temp_dir / "camera_pose", params)
        assert path.name == "camera_pose.launch.py"
        assert path.read_text() == PYTHON_LAUNCH

        path = save_launch_file(temp_dir / "camera_pose.xml", params)
        assert path.read_text() == XML_LAUNCH

    def test_save_unsupported_writes_nothing(self, temp_dir, params):
        with pytest.raises(UnsupportedFormatError):
            save_launch_file(temp_dir / "camera_pose.json", params)
        assert not (temp_dir / "camera_pose.json").exists()

    @pytest.mark.parametrize("bad", ['camera"link', "camera<link>", "camera link", "cam\nera", ""])
    @pytest.mark.parametrize("suffix", [".py", ".xml", ".yaml"])
    def test_malformed_frame_rejected(self, temp_dir, params, bad, suffix):
        with pytest.raises(FrameNamesError):
            render_launch_file("camera_pose" + suffix, dataclasses.replace(params, to_frame=bad))
        with pytest.raises(FrameNamesError):
            save_launch_file(temp_dir / ("camera_pose" + suffix), dataclasses.replace(params, from_frame=bad))
        assert not (temp_dir / ("camera_pose" + suffix)).exists()

    def test_namespaced_frames_accepted(self, params):
        namespaced = dataclasses.replace(params, from_frame="robot/fr3_hand", to_frame="cam-1.optical")
        text = render_launch_file("camera_pose.xml", namespaced)
        assert "--frame-id robot/fr3_hand" in text
