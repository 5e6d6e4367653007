[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vslam"
version = "0.1.0"
description = "Building blocks for visual SLAM: Lie groups, curve fitting, ORB descriptors, two-view geometry, ICP, PnP and bundle adjustment"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "slam",
    "visual-odometry",
    "lie-group",
    "se3",
    "so3",
    "orb",
    "bundle-adjustment",
    "gauss-newton",
    "levenberg-marquardt",
    "icp",
    "pnp",
    "triangulation",
    "point-cloud",
    "undistortion",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
vslam-curve-fit = "vslam.curve_fitting:main"
vslam-trajectory-error = "vslam.trajectory:main"

[tool.hatch.build.targets.wheel]
packages = ["vslam"]

[tool.hatch.build.targets.sdist]
include = [
    "vslam",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
