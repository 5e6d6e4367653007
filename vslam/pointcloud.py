"""Point clouds from RGB-D frames and from stereo disparity maps."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from vslam.image_ops import Intrinsics
from vslam.lie import SE3

RGBD_INTRINSICS = Intrinsics(518.0, 519.0, 325.5, 253.5)
RGBD_DEPTH_SCALE = 1000.0
STEREO_INTRINSICS = Intrinsics(718.856, 718.856, 607.1928, 185.2157)
STEREO_BASELINE = 0.573
STEREO_MAX_DISPARITY = 96.0


def parse_poses(lines: Iterable[str]) -> list[SE3]:
    """Parse lines of ``tx ty tz qx qy qz qw`` into poses; blank lines are skipped."""
    poses = []
    for number, line in enumerate(lines, start=1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 7:
            raise ValueError(f"line {number}: expected 7 values, got {len(fields)}")
        try:
            tx, ty, tz, qx, qy, qz, qw = (float(f) for f in fields)
        except ValueError as exc:
            raise ValueError(f"line {number}: {exc}") from exc
        poses.append(SE3.from_quaternion((qw, qx, qy, qz), (tx, ty, tz)))
    return poses


def rgbd_point_cloud(
    color,
    depth,
    pose: SE3,
    intrinsics: Intrinsics = RGBD_INTRINSICS,
    depth_scale: float = RGBD_DEPTH_SCALE,
) -> np.ndarray:
    """World points ``(x, y, z, r, g, b)`` for every pixel with non-zero depth.

    ``color`` is an ``H x W x 3`` image in blue-green-red order.
    """
    col = np.asarray(color)
    dep = np.asarray(depth)
    if col.ndim != 3 or col.shape[2] < 3:
        raise ValueError("color must be an H x W x 3 image")
    if dep.shape != col.shape[:2]:
        raise ValueError("depth must have the same height and width as color")
    if depth_scale <= 0:
        raise ValueError("depth_scale must be positive")
    v, u = np.nonzero(dep)
    z = dep[v, u].astype(float) / depth_scale
    camera = np.column_stack([
        (u - intrinsics.cx) * z / intrinsics.fx,
        (v - intrinsics.cy) * z / intrinsics.fy,
        z,
    ])
    world = pose * camera
    bgr = col[v, u, :3].astype(float)
    return np.column_stack([world, bgr[:, ::-1]])


def join_point_clouds(
    frames: Iterable[tuple],
    intrinsics: Intrinsics = RGBD_INTRINSICS,
    depth_scale: float = RGBD_DEPTH_SCALE,
) -> np.ndarray:
    """Concatenate the clouds of ``(color, depth, pose)`` frames in order."""
    clouds = [rgbd_point_cloud(c, d, p, intrinsics, depth_scale) for c, d, p in frames]
    if not clouds:
        return np.zeros((0, 6))
    return np.vstack(clouds)


def stereo_point_cloud(
    gray,
    disparity,
    intrinsics: Intrinsics = STEREO_INTRINSICS,
    baseline: float = STEREO_BASELINE,
    max_disparity: float = STEREO_MAX_DISPARITY,
) -> np.ndarray:
    """Points ``(x, y, z, intensity)`` for pixels with ``0 < disparity < max_disparity``.

    Intensity is the gray value scaled to ``[0, 1]``.
    """
    img = np.asarray(gray)
    disp = np.asarray(disparity, dtype=float)
    if img.ndim != 2:
        raise ValueError("gray must be a 2-D image")
    if disp.shape != img.shape:
        raise ValueError("disparity must have the same shape as gray")
    valid = (disp > 0.0) & (disp < max_disparity)
    v, u = np.nonzero(valid)
    d = disp[v, u]
    z = intrinsics.fx * baseline / d
    x = (u - intrinsics.cx) / intrinsics.fx * z
    y = (v - intrinsics.cy) / intrinsics.fy * z
    return np.column_stack([x, y, z, img[v, u].astype(float) / 255.0])