"""
Hand-Eye Calibration Control Package Setup
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="handeye-control",
    version="0.1.0",
    author="kvasios",
    description="Hand-eye calibration sample collection, solving and launch file export",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "opencv-contrib-python<5",
        "PyYAML",
        "scipy",
        "matplotlib",
    ],
    extras_require={
        "robot": [
            "franky-remote @ git+https://github.com/kvasios/franky-remote.git",
        ],
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "handeye-calibrate=scripts.compute_calibration:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Robotics",
    ],
    keywords="robotics, calibration, hand-eye, franka, tf2, launch",
)
