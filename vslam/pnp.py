"""Camera pose from 3-D to 2-D correspondences by bundle adjustment."""

from __future__ import annotations

import numpy as np

from vslam.geometry import DEFAULT_CAMERA_MATRIX, pixel_to_camera
from vslam.lie import SE3

DEPTH_SCALE = 5000.0
CONVERGENCE_STEP = 1e-6


def _camera(camera_matrix) -> np.ndarray:
    k = np.asarray(camera_matrix, dtype=float)
    if k.shape != (3, 3):
        raise ValueError(f"camera_matrix must have shape (3, 3), got {k.shape}")
    return k


def _correspondences(points_3d, points_2d) -> tuple[np.ndarray, np.ndarray]:
    p3 = np.asarray(points_3d, dtype=float)
    p2 = np.asarray(points_2d, dtype=float)
    if p3.ndim != 2 or p3.shape[1] != 3:
        raise ValueError(f"points_3d must have shape (N, 3), got {p3.shape}")
    if p2.ndim != 2 or p2.shape[1] != 2:
        raise ValueError(f"points_2d must have shape (N, 2), got {p2.shape}")
    if len(p3) != len(p2):
        raise ValueError("points_3d and points_2d must have the same length")
    if len(p3) == 0:
        raise ValueError("at least one correspondence is required")
    return p3, p2


def back_project(pixel, depth_value, camera_matrix=DEFAULT_CAMERA_MATRIX, depth_scale=DEPTH_SCALE):
    """Camera-frame point of a pixel with a raw depth reading.

    Returns ``None`` for a zero reading, which marks a missing measurement.
    """
    if depth_scale <= 0:
        raise ValueError("depth_scale must be positive")
    if depth_value == 0:
        return None
    depth = float(depth_value) / depth_scale
    x, y = pixel_to_camera(pixel, camera_matrix)
    return np.array([x * depth, y * depth, depth])


def _jacobians(points_camera: np.ndarray, k: np.ndarray) -> np.ndarray:
    fx, fy = k[0, 0], k[1, 1]
    x, y, z = points_camera[:, 0], points_camera[:, 1], points_camera[:, 2]
    inv_z = 1.0 / z
    inv_z2 = inv_z * inv_z
    zero = np.zeros_like(x)
    row_u = np.stack(
        [-fx * inv_z, zero, fx * x * inv_z2, fx * x * y * inv_z2,
         -fx - fx * x * x * inv_z2, fx * y * inv_z],
        axis=-1,
    )
    row_v = np.stack(
        [zero, -fy * inv_z, fy * y * inv_z2, fy + fy * y * y * inv_z2,
         -fy * x * y * inv_z2, -fy * x * inv_z],
        axis=-1,
    )
    return np.stack([row_u, row_v], axis=1)


def reprojection_jacobian(point_camera, camera_matrix=DEFAULT_CAMERA_MATRIX) -> np.ndarray:
    """2 x 6 derivative of the reprojection error w.r.t. a left pose perturbation."""
    k = _camera(camera_matrix)
    p = np.asarray(point_camera, dtype=float)
    if p.shape != (3,):
        raise ValueError(f"point_camera must have shape (3,), got {p.shape}")
    if p[2] == 0.0:
        raise ValueError("point must not lie in the camera plane")
    return _jacobians(p[np.newaxis, :], k)[0]


def _linearize(p3: np.ndarray, p2: np.ndarray, k: np.ndarray, pose: SE3):
    camera = pose * p3
    projected = np.column_stack([
        k[0, 0] * camera[:, 0] / camera[:, 2] + k[0, 2],
        k[1, 1] * camera[:, 1] / camera[:, 2] + k[1, 2],
    ])
    error = p2 - projected
    cost = float((error * error).sum())
    jac = _jacobians(camera, k)
    hessian = np.einsum("nij,nik->jk", jac, jac)
    gradient = -np.einsum("nij,ni->j", jac, error)
    return cost, hessian, gradient


def _solve(hessian: np.ndarray, gradient: np.ndarray):
    try:
        dx = np.linalg.solve(hessian, gradient)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(dx)):
        return None
    return dx


def bundle_adjustment_gauss_newton(
    points_3d, points_2d, camera_matrix=DEFAULT_CAMERA_MATRIX, pose=None, iterations=10
) -> SE3:
    """Gauss-Newton refinement of the pose that projects ``points_3d`` onto ``points_2d``.

    Stops when the cost stops decreasing or the step becomes negligible.
    """
    p3, p2 = _correspondences(points_3d, points_2d)
    k = _camera(camera_matrix)
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    pose = SE3() if pose is None else pose
    last_cost = 0.0
    for iteration in range(iterations):
        cost, hessian, gradient = _linearize(p3, p2, k, pose)
        dx = _solve(hessian, gradient)
        if dx is None:
            break
        if iteration > 0 and cost >= last_cost:
            break
        pose = SE3.exp(dx) * pose
        last_cost = cost
        if np.linalg.norm(dx) < CONVERGENCE_STEP:
            break
    return pose


def bundle_adjustment_graph(
    points_3d, points_2d, camera_matrix=DEFAULT_CAMERA_MATRIX, iterations=10
) -> SE3:
    """Pose-graph Gauss-Newton with one unary projection edge per correspondence.

    Starts from the identity pose and takes every step for the given number of
    iterations, stopping early only when the linear system cannot be solved.
    """
    p3, p2 = _correspondences(points_3d, points_2d)
    k = _camera(camera_matrix)
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    pose = SE3()
    for _ in range(iterations):
        _, hessian, gradient = _linearize(p3, p2, k, pose)
        dx = _solve(hessian, gradient)
        if dx is None:
            break
        pose = SE3.exp(dx) * pose
    return pose