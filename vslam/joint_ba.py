"""Joint refinement of a camera pose and the 3-D points it observes.

Every observation links the pose to its own point. Reprojection errors are
weighted by a Huber kernel. The problem is linearised by central differences,
and plain Gauss-Newton steps are taken.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from vslam.geometry import DEFAULT_CAMERA_MATRIX
from vslam.lie import SE3

DEFAULT_HUBER_DELTA = 1.0
_DIFF_STEP = 1e-6


@dataclass
class JointResult:
    """Refined pose and points, final robust cost and the cost before each step."""

    pose: SE3
    points: np.ndarray
    cost: float
    iterations: int
    history: list[float] = field(default_factory=list)


def huber_weight(squared_error: float, delta: float = DEFAULT_HUBER_DELTA) -> float:
    """Derivative of the Huber kernel w.r.t. the squared error.

    This is 1 inside the threshold and ``delta / |e|`` beyond it.
    """
    if delta <= 0:
        raise ValueError("delta must be positive")
    if squared_error < 0:
        raise ValueError("squared_error must not be negative")
    if squared_error <= delta * delta:
        return 1.0
    return delta / math.sqrt(squared_error)


def _weights(squared: np.ndarray, delta: float) -> np.ndarray:
    inside = squared <= delta * delta
    safe = np.where(inside, 1.0, squared)
    return np.where(inside, 1.0, delta / np.sqrt(safe))


def _robust_cost(squared: np.ndarray, delta: float) -> float:
    inside = squared <= delta * delta
    outer = 2.0 * np.sqrt(squared) * delta - delta * delta
    return float(np.where(inside, squared, outer).sum())


def _errors(k: np.ndarray, pose: SE3, points: np.ndarray, observed: np.ndarray) -> np.ndarray:
    camera = pose * points
    normalized = camera / camera[:, 2:3]
    pixels = normalized @ k.T
    return observed - pixels[:, :2]


def _inputs(points_3d, points_2d, camera_matrix):
    p3 = np.asarray(points_3d, dtype=float)
    p2 = np.asarray(points_2d, dtype=float)
    k = np.asarray(camera_matrix, dtype=float)
    if p3.ndim != 2 or p3.shape[1] != 3:
        raise ValueError(f"points_3d must have shape (N, 3), got {p3.shape}")
    if p2.ndim != 2 or p2.shape[1] != 2:
        raise ValueError(f"points_2d must have shape (N, 2), got {p2.shape}")
    if len(p3) != len(p2):
        raise ValueError("points_3d and points_2d must have the same length")
    if len(p3) == 0:
        raise ValueError("at least one correspondence is required")
    if k.shape != (3, 3):
        raise ValueError(f"camera_matrix must have shape (3, 3), got {k.shape}")
    return p3.copy(), p2, k


def _jacobian(k, pose, points, observed) -> np.ndarray:
    n = len(points)
    size = 6 + 3 * n
    jac = np.zeros((2 * n, size))
    for i in range(6):
        step = np.zeros(6)
        step[i] = _DIFF_STEP
        plus = _errors(k, SE3.exp(step) * pose, points, observed)
        minus = _errors(k, SE3.exp(-step) * pose, points, observed)
        jac[:, i] = ((plus - minus) / (2.0 * _DIFF_STEP)).reshape(-1)
    per_edge = jac.reshape(n, 2, size)
    index = np.arange(n)
    for j in range(3):
        offset = np.zeros(3)
        offset[j] = _DIFF_STEP
        plus = _errors(k, pose, points + offset, observed)
        minus = _errors(k, pose, points - offset, observed)
        per_edge[index, :, 6 + 3 * index + j] = (plus - minus) / (2.0 * _DIFF_STEP)
    return jac


def joint_bundle_adjustment(
    points_3d,
    points_2d,
    camera_matrix=DEFAULT_CAMERA_MATRIX,
    iterations: int = 10,
    huber_delta: float = DEFAULT_HUBER_DELTA,
) -> JointResult:
    """Refine a pose (from the identity) together with the observed points.

    Each step solves the Huber-weighted linearised problem in the
    minimum-norm sense, since the joint problem has gauge freedom.
    """
    points, observed, k = _inputs(points_3d, points_2d, camera_matrix)
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    if huber_delta <= 0:
        raise ValueError("huber_delta must be positive")
    pose = SE3()
    history: list[float] = []
    for _ in range(iterations):
        error = _errors(k, pose, points, observed)
        squared = (error * error).sum(axis=1)
        cost = _robust_cost(squared, huber_delta)
        if not np.isfinite(cost):
            break
        jac = _jacobian(k, pose, points, observed)
        scale = np.repeat(np.sqrt(_weights(squared, huber_delta)), 2)
        try:
            dx, *_ = np.linalg.lstsq(jac * scale[:, np.newaxis], -scale * error.reshape(-1), rcond=None)
        except np.linalg.LinAlgError:
            break
        if not np.all(np.isfinite(dx)):
            break
        history.append(cost)
        pose = SE3.exp(dx[:6]) * pose
        points = points + dx[6:].reshape(-1, 3)
    final = _errors(k, pose, points, observed)
    final_cost = _robust_cost((final * final).sum(axis=1), huber_delta)
    return JointResult(pose, points, final_cost, len(history), history)