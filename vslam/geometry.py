"""Two-view geometry: match filtering, epipolar constraints and triangulation."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from vslam.orb import Match

DEFAULT_CAMERA_MATRIX = np.array(
    [[520.9, 0.0, 325.1], [0.0, 521.0, 249.7], [0.0, 0.0, 1.0]]
)
MIN_DISTANCE_FLOOR = 30.0
DEPTH_LOW = 10.0
DEPTH_HIGH = 50.0


def _camera(camera_matrix) -> np.ndarray:
    k = np.asarray(camera_matrix, dtype=float)
    if k.shape != (3, 3):
        raise ValueError(f"camera_matrix must have shape (3, 3), got {k.shape}")
    return k


def _points2d(points, name: str) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"{name} must have shape (N, 2), got {arr.shape}")
    return arr


def _pair(points1, points2) -> tuple[np.ndarray, np.ndarray]:
    p1 = _points2d(points1, "points1")
    p2 = _points2d(points2, "points2")
    if p1.shape != p2.shape:
        raise ValueError("points1 and points2 must have the same length")
    return p1, p2


def _pose(rotation, translation) -> tuple[np.ndarray, np.ndarray]:
    r = np.asarray(rotation, dtype=float)
    t = np.asarray(translation, dtype=float).reshape(-1)
    if r.shape != (3, 3):
        raise ValueError(f"rotation must have shape (3, 3), got {r.shape}")
    if t.shape != (3,):
        raise ValueError(f"translation must hold three values, got {t.shape}")
    return r, t


def pixel_to_camera(point, camera_matrix=DEFAULT_CAMERA_MATRIX) -> np.ndarray:
    """Normalized camera coordinates of a pixel ``(u, v)`` or of an ``N x 2`` array."""
    k = _camera(camera_matrix)
    p = np.asarray(point, dtype=float)
    if p.shape[-1:] != (2,) or p.ndim > 2:
        raise ValueError(f"point must have shape (2,) or (N, 2), got {p.shape}")
    offset = np.array([k[0, 2], k[1, 2]])
    focal = np.array([k[0, 0], k[1, 1]])
    return (p - offset) / focal


def filter_matches(matches: Iterable[Match]) -> list[Match]:
    """Keep matches whose distance is at most twice the smallest, but no less than 30."""
    matches = list(matches)
    if not matches:
        return []
    min_dist = min(m.distance for m in matches)
    threshold = max(2.0 * min_dist, MIN_DISTANCE_FLOOR)
    return [m for m in matches if m.distance <= threshold]


def skew(vector) -> np.ndarray:
    """Skew-symmetric matrix ``[v]x`` such that ``skew(v) @ w == cross(v, w)``."""
    v = np.asarray(vector, dtype=float).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"vector must hold three values, got {v.shape}")
    x, y, z = v
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def essential_from_pose(rotation, translation) -> np.ndarray:
    """Essential matrix ``t^ R`` of the relative pose."""
    r, t = _pose(rotation, translation)
    return skew(t) @ r


def epipolar_residuals(
    points1, points2, rotation, translation, camera_matrix=DEFAULT_CAMERA_MATRIX
) -> np.ndarray:
    """Values of ``y2^T t^ R y1`` for matched pixel pairs; zero for a perfect pose."""
    p1, p2 = _pair(points1, points2)
    essential = essential_from_pose(rotation, translation)
    ones = np.ones((len(p1), 1))
    y1 = np.hstack([pixel_to_camera(p1, camera_matrix), ones])
    y2 = np.hstack([pixel_to_camera(p2, camera_matrix), ones])
    return np.einsum("ij,jk,ik->i", y2, essential, y1)


def _normalizer(points: np.ndarray) -> np.ndarray:
    centre = points.mean(axis=0)
    spread = np.mean(np.linalg.norm(points - centre, axis=1))
    scale = np.sqrt(2.0) / spread if spread > 0 else 1.0
    return np.array(
        [[scale, 0.0, -scale * centre[0]], [0.0, scale, -scale * centre[1]], [0.0, 0.0, 1.0]]
    )


def fundamental_eight_point(points1, points2) -> np.ndarray:
    """Fundamental matrix from at least eight pixel correspondences.

    Uses the normalized eight-point algorithm with rank-2 enforcement; the
    result satisfies ``x2^T F x1 = 0`` and is scaled so that ``F[2, 2] == 1``
    where that element is not zero.
    """
    p1, p2 = _pair(points1, points2)
    if len(p1) < 8:
        raise ValueError("at least eight correspondences are required")
    t1, t2 = _normalizer(p1), _normalizer(p2)
    ones = np.ones((len(p1), 1))
    h1 = np.hstack([p1, ones]) @ t1.T
    h2 = np.hstack([p2, ones]) @ t2.T
    a = np.einsum("ni,nj->nij", h2, h1).reshape(len(p1), 9)
    _, _, vt = np.linalg.svd(a)
    f = vt[-1].reshape(3, 3)
    u, s, vt = np.linalg.svd(f)
    s[2] = 0.0
    f = t2.T @ (u @ np.diag(s) @ vt) @ t1
    if abs(f[2, 2]) > 1e-12:
        return f / f[2, 2]
    return f / np.linalg.norm(f)


def triangulate_points(rotation, translation, points1, points2) -> np.ndarray:
    """Triangulate normalized coordinates seen from ``[I|0]`` and ``[R|t]``.

    Returns an ``N x 3`` array of points in the first camera's frame.
    """
    r, t = _pose(rotation, translation)
    p1, p2 = _pair(points1, points2)
    proj1 = np.hstack([np.eye(3), np.zeros((3, 1))])
    proj2 = np.hstack([r, t.reshape(3, 1)])
    result = np.empty((len(p1), 3))
    for index, ((x1, y1), (x2, y2)) in enumerate(zip(p1, p2)):
        a = np.vstack([
            x1 * proj1[2] - proj1[0],
            y1 * proj1[2] - proj1[1],
            x2 * proj2[2] - proj2[0],
            y2 * proj2[2] - proj2[1],
        ])
        _, _, vt = np.linalg.svd(a)
        homogeneous = vt[-1]
        result[index] = homogeneous[:3] / homogeneous[3]
    return result


def depth_color(depth: float) -> tuple[float, float, float]:
    """Blue-green-red colour for a depth, clamped to the range 10 to 50."""
    up, low = DEPTH_HIGH, DEPTH_LOW
    span = up - low
    d = min(max(float(depth), low), up)
    return (255.0 * d / span, 0.0, 255.0 * (1.0 - d / span))