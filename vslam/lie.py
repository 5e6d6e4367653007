"""Rotation group SO(3) and rigid-body group SE(3) with their Lie algebras.

Quaternions are given as ``(w, x, y, z)``. Tangent vectors of SE(3) hold the
translational part first and the rotational part last.
"""

from __future__ import annotations

import math

import numpy as np

_SMALL_ANGLE = 1e-5
_ORTHO_TOL = 1e-6


def _vector(value, size: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {arr.shape}")
    return arr


def _square(value, size: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.shape != (size, size):
        raise ValueError(f"{name} must have shape ({size}, {size}), got {arr.shape}")
    return arr


def angle_axis_matrix(angle: float, axis) -> np.ndarray:
    """Rotation matrix for a rotation of ``angle`` radians about ``axis``."""
    a = _vector(axis, 3, "axis")
    norm = np.linalg.norm(a)
    if norm == 0.0:
        raise ValueError("axis must be non-zero")
    return SO3.exp(a / norm * angle).matrix()


def quaternion_from_matrix(matrix) -> np.ndarray:
    """Unit quaternion ``(w, x, y, z)`` with ``w >= 0`` for a rotation matrix."""
    m = _square(matrix, 3, "matrix")
    diag_sum = float(m[0, 0] + m[1, 1] + m[2, 2])
    if diag_sum > 0.0:
        s = 2.0 * math.sqrt(diag_sum + 1.0)
        q = [s / 4.0, (m[2, 1] - m[1, 2]) / s, (m[0, 2] - m[2, 0]) / s, (m[1, 0] - m[0, 1]) / s]
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        q = [(m[2, 1] - m[1, 2]) / s, s / 4.0, (m[0, 1] + m[1, 0]) / s, (m[0, 2] + m[2, 0]) / s]
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        q = [(m[0, 2] - m[2, 0]) / s, (m[0, 1] + m[1, 0]) / s, s / 4.0, (m[1, 2] + m[2, 1]) / s]
    else:
        s = 2.0 * math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        q = [(m[1, 0] - m[0, 1]) / s, (m[0, 2] + m[2, 0]) / s, (m[1, 2] + m[2, 1]) / s, s / 4.0]
    quat = np.array(q, dtype=float)
    quat /= np.linalg.norm(quat)
    if quat[0] < 0.0:
        quat = -quat
    return quat


def _apply(matrix: np.ndarray, offset: np.ndarray, points) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.shape == (3,):
        return matrix @ arr + offset
    if arr.ndim == 2 and arr.shape[1] == 3:
        return arr @ matrix.T + offset
    raise ValueError(f"points must have shape (3,) or (N, 3), got {arr.shape}")


class SO3:
    """A rotation in three dimensions."""

    def __init__(self, matrix=None):
        m = np.eye(3) if matrix is None else _square(matrix, 3, "matrix").copy()
        if not np.allclose(m @ m.T, np.eye(3), atol=_ORTHO_TOL) or np.linalg.det(m) <= 0.0:
            raise ValueError("matrix is not a proper rotation matrix")
        self._matrix = m

    @classmethod
    def from_quaternion(cls, quaternion) -> "SO3":
        q = _vector(quaternion, 4, "quaternion")
        norm = np.linalg.norm(q)
        if norm == 0.0:
            raise ValueError("quaternion must be non-zero")
        w, x, y, z = q / norm
        return cls(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
                [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
                [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
            ]
        )

    @classmethod
    def exp(cls, omega) -> "SO3":
        w = _vector(omega, 3, "omega")
        theta = float(np.linalg.norm(w))
        k = cls.hat(w)
        if theta < _SMALL_ANGLE:
            a = 1.0 - theta * theta / 6.0
            b = 0.5 - theta * theta / 24.0
        else:
            a = math.sin(theta) / theta
            b = (1.0 - math.cos(theta)) / (theta * theta)
        return cls(np.eye(3) + a * k + b * (k @ k))

    def log(self) -> np.ndarray:
        q = quaternion_from_matrix(self._matrix)
        w, vec = q[0], q[1:]
        n = float(np.linalg.norm(vec))
        if n < 1e-10:
            factor = 2.0 / w - (2.0 / 3.0) * n * n / (w ** 3)
        else:
            factor = 2.0 * math.atan2(n, w) / n
        return factor * vec

    @staticmethod
    def hat(omega) -> np.ndarray:
        x, y, z = _vector(omega, 3, "omega")
        return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])

    @staticmethod
    def vee(matrix) -> np.ndarray:
        m = _square(matrix, 3, "matrix")
        return np.array([m[2, 1], m[0, 2], m[1, 0]])

    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    def inverse(self) -> "SO3":
        return SO3(self._matrix.T)

    def __mul__(self, other):
        if isinstance(other, SO3):
            return SO3(self._matrix @ other._matrix)
        if isinstance(other, (np.ndarray, list, tuple)):
            return _apply(self._matrix, np.zeros(3), other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"SO3({self._matrix.tolist()!r})"


class SE3:
    """A rigid-body transform: rotation followed by translation."""

    def __init__(self, rotation=None, translation=None):
        if rotation is None:
            self._rotation = SO3()
        elif isinstance(rotation, SO3):
            self._rotation = rotation
        else:
            self._rotation = SO3(rotation)
        if translation is None:
            self._translation = np.zeros(3)
        else:
            self._translation = _vector(translation, 3, "translation").copy()

    @property
    def rotation(self) -> SO3:
        return self._rotation

    @property
    def translation(self) -> np.ndarray:
        return self._translation.copy()

    @classmethod
    def from_quaternion(cls, quaternion, translation) -> "SE3":
        return cls(SO3.from_quaternion(quaternion), translation)

    @classmethod
    def exp(cls, xi) -> "SE3":
        v = _vector(xi, 6, "xi")
        rho, phi = v[:3], v[3:]
        theta = float(np.linalg.norm(phi))
        k = SO3.hat(phi)
        if theta < _SMALL_ANGLE:
            b = 0.5 - theta * theta / 24.0
            c = 1.0 / 6.0 - theta * theta / 120.0
        else:
            b = (1.0 - math.cos(theta)) / (theta * theta)
            c = (theta - math.sin(theta)) / (theta ** 3)
        jac = np.eye(3) + b * k + c * (k @ k)
        return cls(SO3.exp(phi), jac @ rho)

    def log(self) -> np.ndarray:
        phi = self._rotation.log()
        theta = float(np.linalg.norm(phi))
        k = SO3.hat(phi)
        if theta < _SMALL_ANGLE:
            c = 1.0 / 12.0 + theta * theta / 720.0
        else:
            half = theta / 2.0
            c = (1.0 - theta * math.cos(half) / (2.0 * math.sin(half))) / (theta * theta)
        jac_inv = np.eye(3) - 0.5 * k + c * (k @ k)
        return np.concatenate([jac_inv @ self._translation, phi])

    @staticmethod
    def hat(xi) -> np.ndarray:
        v = _vector(xi, 6, "xi")
        m = np.zeros((4, 4))
        m[:3, :3] = SO3.hat(v[3:])
        m[:3, 3] = v[:3]
        return m

    @staticmethod
    def vee(matrix) -> np.ndarray:
        m = _square(matrix, 4, "matrix")
        return np.concatenate([m[:3, 3], SO3.vee(m[:3, :3])])

    def matrix(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self._rotation.matrix()
        m[:3, 3] = self._translation
        return m

    def inverse(self) -> "SE3":
        r_inv = self._rotation.inverse()
        return SE3(r_inv, -(r_inv.matrix() @ self._translation))

    def __mul__(self, other):
        if isinstance(other, SE3):
            r = self._rotation.matrix()
            return SE3(self._rotation * other._rotation, r @ other._translation + self._translation)
        if isinstance(other, (np.ndarray, list, tuple)):
            return _apply(self._rotation.matrix(), self._translation, other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"SE3({self.matrix().tolist()!r})"