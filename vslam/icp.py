"""Rigid alignment of matched 3-D point sets (ICP with known correspondences).

Both functions estimate the transform that maps ``points2`` onto ``points1``,
so that ``p1 ~ R @ p2 + t`` for every matched pair.
"""

from __future__ import annotations

import numpy as np

from vslam.lie import SE3

_LM_TAU = 1e-5
_LM_MAX_TRIES = 10


def _points3d(points, name: str) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N, 3), got {arr.shape}")
    return arr


def _pair(points1, points2) -> tuple[np.ndarray, np.ndarray]:
    p1 = _points3d(points1, "points1")
    p2 = _points3d(points2, "points2")
    if p1.shape != p2.shape:
        raise ValueError("points1 and points2 must have the same length")
    if len(p1) == 0:
        raise ValueError("at least one point pair is required")
    return p1, p2


def _hat_rows(points: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrices of each row of an ``N x 3`` array."""
    x, y, z = points[:, 0], points[:, 1], points[:, 2]
    zero = np.zeros_like(x)
    return np.stack(
        [
            np.stack([zero, -z, y], axis=-1),
            np.stack([z, zero, -x], axis=-1),
            np.stack([-y, x, zero], axis=-1),
        ],
        axis=1,
    )


def icp_svd(points1, points2) -> tuple[np.ndarray, np.ndarray]:
    """Closed-form alignment by SVD of the cross-covariance matrix.

    Returns ``(R, t)`` with ``points1 ~ points2 @ R.T + t``.
    """
    p1, p2 = _pair(points1, points2)
    c1 = p1.mean(axis=0)
    c2 = p2.mean(axis=0)
    w = (p1 - c1).T @ (p2 - c2)
    u, _, vt = np.linalg.svd(w)
    rotation = u @ vt
    if np.linalg.det(rotation) < 0:
        rotation = -rotation
    translation = c1 - rotation @ c2
    return rotation, translation


def _residuals(pose: SE3, p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    return p1 - pose * p2


def icp_optimize(points1, points2, iterations: int = 10) -> SE3:
    """Pose-only Levenberg-Marquardt refinement starting from the identity.

    The error of each pair is ``p1 - T * p2`` and updates are applied by left
    multiplication, ``T <- exp(dx) * T``.
    """
    p1, p2 = _pair(points1, points2)
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    pose = SE3()
    damping = None
    growth = 2.0
    for _ in range(iterations):
        transformed = pose * p2
        error = p1 - transformed
        cost = float((error * error).sum())
        jac = np.concatenate(
            [np.broadcast_to(-np.eye(3), (len(p1), 3, 3)), _hat_rows(transformed)], axis=2
        )
        hessian = np.einsum("nij,nik->jk", jac, jac)
        gradient = -np.einsum("nij,ni->j", jac, error)
        if not np.all(np.isfinite(gradient)) or np.max(np.abs(gradient)) <= 1e-14:
            break
        if damping is None:
            damping = _LM_TAU * float(np.max(np.diag(hessian)))
        improved = False
        for _ in range(_LM_MAX_TRIES):
            try:
                dx = np.linalg.solve(hessian + damping * np.eye(6), gradient)
            except np.linalg.LinAlgError:
                damping *= growth
                growth *= 2.0
                continue
            if not np.all(np.isfinite(dx)):
                break
            candidate = SE3.exp(dx) * pose
            candidate_error = _residuals(candidate, p1, p2)
            new_cost = float((candidate_error * candidate_error).sum())
            if new_cost < cost:
                pose = candidate
                damping = max(damping / 3.0, 1e-15)
                growth = 2.0
                improved = True
                break
            damping *= growth
            growth *= 2.0
        if not improved:
            break
    return pose