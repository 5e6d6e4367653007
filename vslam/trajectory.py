"""Reading camera trajectories and comparing them by absolute pose error."""

from __future__ import annotations

import argparse
import math
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from vslam.lie import SE3

DEFAULT_GROUNDTRUTH = "./example/groundtruth.txt"
DEFAULT_ESTIMATED = "./example/estimated.txt"


def parse_trajectory(lines: Iterable[str]) -> list[SE3]:
    """Parse lines of ``time tx ty tz qx qy qz qw`` into poses.

    Blank lines and lines starting with ``#`` are skipped.
    """
    trajectory = []
    for number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        fields = text.split()
        if len(fields) != 8:
            raise ValueError(f"line {number}: expected 8 values, got {len(fields)}")
        try:
            _, tx, ty, tz, qx, qy, qz, qw = (float(f) for f in fields)
        except ValueError as exc:
            raise ValueError(f"line {number}: {exc}") from exc
        trajectory.append(SE3.from_quaternion((qw, qx, qy, qz), (tx, ty, tz)))
    return trajectory


def read_trajectory(path) -> list[SE3]:
    """Read a trajectory file."""
    with Path(path).open(encoding="utf-8") as handle:
        return parse_trajectory(handle)


def trajectory_rmse(groundtruth: list[SE3], estimated: list[SE3]) -> float:
    """Root-mean-square of ``|log(gt^-1 * est)|`` over paired poses."""
    if not groundtruth or not estimated:
        raise ValueError("trajectories must not be empty")
    if len(groundtruth) != len(estimated):
        raise ValueError("trajectories must have the same length")
    total = sum(
        float(np.linalg.norm((gt.inverse() * est).log())) ** 2
        for gt, est in zip(groundtruth, estimated)
    )
    return math.sqrt(total / len(estimated))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Compute the RMSE between two trajectories.")
    parser.add_argument("groundtruth", nargs="?", default=DEFAULT_GROUNDTRUTH)
    parser.add_argument("estimated", nargs="?", default=DEFAULT_ESTIMATED)
    args = parser.parse_args(argv)
    groundtruth = read_trajectory(args.groundtruth)
    estimated = read_trajectory(args.estimated)
    print(f"RMSE = {trajectory_rmse(groundtruth, estimated)}")
    return 0