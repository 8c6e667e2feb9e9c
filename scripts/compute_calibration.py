#!/usr/bin/env python3
"""
Hand-Eye Calibration - Compute Calibration Script

Solves hand-eye calibration from a saved sample file.
Can be run standalone or imported as a module.

Usage:
    python scripts/compute_calibration.py --samples data/samples.yaml \\
        --mount EYE_IN_HAND --from-frame fr3_hand --to-frame camera_link \\
        --launch data/camera_pose.launch.py --plot
"""

import sys
import argparse
import logging
import numpy as np
from pathlib import Path

# Add parent directory to path for standalone execution
sys.path.insert(0, str(Path(__file__).parent.parent))

from handeye_control import (
    CalibrationSession,
    HandEyeError,
    SensorMountType,
    load_session_config,
    save_calibration_result,
)
from handeye_control.transforms import format_pose, invert_transform

DEFAULT_SOLVER = "opencv/TsaiLenz1989"


def plot_frames(effector_wrt_world, object_wrt_sensor, camera_robot_pose, mount_type):
    """
    Plot 3D visualization of coordinate frames for the last sample.

    Parameters
    ----------
    effector_wrt_world : list
        4x4 end-effector poses in the robot base frame.
    object_wrt_sensor : list
        4x4 object poses in the camera frame.
    camera_robot_pose : np.ndarray
        Solved 4x4 camera pose (in the end-effector frame for eye-in-hand,
        in the base frame for eye-to-hand).
    mount_type : SensorMountType
        Camera mounting.
    """
    import matplotlib.pyplot as plt

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    def plot_frame(T, label, scale=0.1):
        R, t = T[:3, :3], T[:3, 3]
        ax.quiver(t[0], t[1], t[2], R[0, 0], R[1, 0], R[2, 0], length=scale, color='r')
        ax.quiver(t[0], t[1], t[2], R[0, 1], R[1, 1], R[2, 1], length=scale, color='g')
        ax.quiver(t[0], t[1], t[2], R[0, 2], R[1, 2], R[2, 2], length=scale, color='b')
        ax.text(t[0], t[1], t[2], label)

    T_eef = effector_wrt_world[-1]
    if mount_type is SensorMountType.EYE_IN_HAND:
        T_cam = T_eef @ camera_robot_pose
    else:
        T_cam = camera_robot_pose
    T_obj = T_cam @ object_wrt_sensor[-1]

    plot_frame(np.eye(4), "Base")
    plot_frame(T_eef, "Gripper")
    plot_frame(T_cam, "Camera")
    plot_frame(T_obj, "Target")

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')

    all_points = np.vstack([np.zeros(3), T_eef[:3, 3], T_cam[:3, 3], T_obj[:3, 3]])
    min_xyz = np.min(all_points, axis=0)
    max_xyz = np.max(all_points, axis=0)
    ax.set_xlim(min_xyz[0] - 0.2, max_xyz[0] + 0.2)
    ax.set_ylim(min_xyz[1] - 0.2, max_xyz[1] + 0.2)
    ax.set_zlim(min_xyz[2] - 0.2, max_xyz[2] + 0.2)

    plt.title(f"Frames Visualization ({mount_type.label}, last sample)")
    plt.show()


def run_calibration(
    samples_path: str,
    solver: str | None = None,
    mount_type: str | SensorMountType | None = None,
    from_frame: str = "",
    to_frame: str = "",
    launch_path: str | None = None,
    output_path: str | None = None,
    show_plot: bool = False,
    config_path: str | None = None,
):
    """
    Run the calibration pipeline on a sample file.

    Parameters
    ----------
    samples_path : str
        YAML sample file.
    solver : str, optional
        ``plugin/variant`` solver descriptor. Taken from the config when
        omitted, else ``DEFAULT_SOLVER``.
    mount_type : str or SensorMountType, optional
        Camera mounting. Taken from the config when omitted, else
        EYE_IN_HAND.
    from_frame, to_frame : str
        Reference and camera frame names for the launch script.
    launch_path : str, optional
        Write a static transform publisher launch script here.
    output_path : str, optional
        Write the result as JSON here.
    show_plot : bool
        Whether to show 3D visualization.
    config_path : str, optional
        Session config file; command-line values take precedence.

    Returns
    -------
    CalibrationResult or None
        The result, or None if calibration failed.
    """
    try:
        config = load_session_config(config_path) if config_path else None
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return None
    session = CalibrationSession(config=config)
    if mount_type is not None:
        session.set_mount_type(mount_type)
    elif config is None:
        session.set_mount_type(SensorMountType.EYE_IN_HAND)

    reference_tag = session.from_frame_tag
    frames = {}
    if from_frame:
        frames[reference_tag] = from_frame
    if to_frame:
        frames["sensor"] = to_frame
    session.update_frame_names(frames)

    try:
        count = session.load_samples(samples_path)
        print(f"Loaded {count} samples from {samples_path}")

        if solver is not None:
            session.select_solver(solver)
        elif config is None:
            session.select_solver(DEFAULT_SOLVER)
        print(f"Running calibration using {session.solver_name} ({session.mount_type.label})...")
        result = session.solve()
    except HandEyeError as e:
        print(f"Error: {e}")
        return None

    print("\nCalibration Result (T_camera_robot):")
    print(result.camera_robot_pose)
    print("\nInverse:")
    print(invert_transform(result.camera_robot_pose))
    print(f"\n{format_pose(result.camera_robot_pose)}")

    print("\n--- Repeatability / Consistency Metrics ---")
    print(f"Translation Error (RMS): {result.translation_error:.6f} m")
    print(f"Rotation Error (RMS): {result.rotation_error:.6f} rad")

    if output_path:
        save_calibration_result(
            output_path, result, session.mount_type, session.from_frame, session.to_frame
        )
        print(f"\nSaved result to {output_path}")

    if launch_path:
        try:
            written = session.save_camera_pose(launch_path)
        except HandEyeError as e:
            print(f"Error: {e}")
            return None
        print(f"Saved launch script to {written}")

    if show_plot:
        plot_frames(
            session.store.effector_wrt_world,
            session.store.object_wrt_sensor,
            result.camera_robot_pose,
            session.mount_type,
        )

    return result


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compute Hand-Eye Calibration")
    parser.add_argument("--samples", required=True, help="YAML sample file")
    parser.add_argument("--solver", default=None, help=f"Solver as plugin/variant (default: config, else {DEFAULT_SOLVER})")
    parser.add_argument("--mount", default=None, help="EYE_IN_HAND or EYE_TO_HAND (default: config, else EYE_IN_HAND)")
    parser.add_argument("--from-frame", default="", help="Reference frame (eef or base)")
    parser.add_argument("--to-frame", default="", help="Camera frame")
    parser.add_argument("--launch", default=None, help="Launch script to write (.py, .xml, .yaml)")
    parser.add_argument("--output", default=None, help="JSON result file")
    parser.add_argument("--config", default=None, help="Session config YAML")
    parser.add_argument("--plot", action="store_true", help="Show 3D plot of frames")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("Hand-Eye Calibration - Compute")
    print("=" * 60)

    mount_type = None
    if args.mount is not None:
        try:
            mount_type = SensorMountType.parse(args.mount)
        except ValueError as e:
            print(f"Error: {e}")
            return 1

    result = run_calibration(
        args.samples,
        solver=args.solver,
        mount_type=mount_type,
        from_frame=args.from_frame,
        to_frame=args.to_frame,
        launch_path=args.launch,
        output_path=args.output,
        show_plot=args.plot,
        config_path=args.config,
    )

    if result:
        print("\n" + "=" * 60)
        print("SUCCESS: Calibration complete!")
        print("=" * 60)
        return 0
    else:
        return 1


if __name__ == "__main__":
    exit(main())
