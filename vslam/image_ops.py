"""Basic image inspection and lens-distortion removal for grayscale images."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Intrinsics:
    """Pinhole camera intrinsics: focal lengths and principal point in pixels."""

    fx: float
    fy: float
    cx: float
    cy: float


@dataclass(frozen=True)
class Distortion:
    """Radial (k1, k2) and tangential (p1, p2) distortion coefficients."""

    k1: float
    k2: float
    p1: float
    p2: float


DEFAULT_INTRINSICS = Intrinsics(458.654, 457.296, 367.215, 248.375)
DEFAULT_DISTORTION = Distortion(-0.28340811, 0.07395907, 0.00019359, 1.76187114e-05)


def describe_image(image) -> tuple[int, int, int]:
    """Return ``(width, height, channels)`` of an 8-bit gray or three-channel image."""
    img = np.asarray(image)
    if img.ndim == 2:
        channels = 1
    elif img.ndim == 3:
        channels = img.shape[2]
    else:
        raise ValueError(f"image must be 2-D or 3-D, got shape {img.shape}")
    if img.dtype != np.uint8 or channels not in (1, 3):
        raise ValueError("image must be an 8-bit grayscale or 3-channel colour image")
    height, width = img.shape[:2]
    return width, height, channels


def fill_region(image: np.ndarray, x: int, y: int, width: int, height: int, value) -> np.ndarray:
    """Set a rectangle of ``image`` to ``value`` in place and return the image."""
    if not isinstance(image, np.ndarray) or image.ndim not in (2, 3):
        raise ValueError("image must be a 2-D or 3-D numpy array")
    rows, cols = image.shape[:2]
    if x < 0 or y < 0 or width < 0 or height < 0 or x + width > cols or y + height > rows:
        raise ValueError("region lies outside the image")
    image[y:y + height, x:x + width] = value
    return image


def distort_normalized(x, y, distortion: Distortion):
    """Apply the radial-tangential model to normalized coordinates ``(x, y)``."""
    r2 = x * x + y * y
    radial = 1 + distortion.k1 * r2 + distortion.k2 * r2 * r2
    x_d = x * radial + 2 * distortion.p1 * x * y + distortion.p2 * (r2 + 2 * x * x)
    y_d = y * radial + distortion.p1 * (r2 + 2 * y * y) + 2 * distortion.p2 * x * y
    return x_d, y_d


def undistort_image(
    image,
    intrinsics: Intrinsics = DEFAULT_INTRINSICS,
    distortion: Distortion = DEFAULT_DISTORTION,
) -> np.ndarray:
    """Remove lens distortion from a grayscale image by nearest-neighbour lookup.

    Pixels whose source location falls outside the image become zero.
    """
    img = np.asarray(image)
    if img.ndim != 2:
        raise ValueError(f"image must be a 2-D grayscale array, got shape {img.shape}")
    rows, cols = img.shape
    v, u = np.mgrid[0:rows, 0:cols]
    x = (u - intrinsics.cx) / intrinsics.fx
    y = (v - intrinsics.cy) / intrinsics.fy
    x_d, y_d = distort_normalized(x, y, distortion)
    u_d = intrinsics.fx * x_d + intrinsics.cx
    v_d = intrinsics.fy * y_d + intrinsics.cy
    valid = (u_d >= 0) & (v_d >= 0) & (u_d < cols) & (v_d < rows)
    result = np.zeros((rows, cols), dtype=np.uint8)
    result[valid] = img[v_d[valid].astype(np.int64), u_d[valid].astype(np.int64)]
    return result