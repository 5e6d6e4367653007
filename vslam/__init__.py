"""Building blocks for visual SLAM: Lie groups, curve fitting, ORB descriptors, image and point-cloud helpers, two-view geometry, ICP, PnP and bundle adjustment."""

__version__ = "0.1.0"

__all__ = [
    "curve_fitting",
    "geometry",
    "icp",
    "image_ops",
    "joint_ba",
    "lie",
    "orb",
    "pnp",
    "pointcloud",
    "trajectory",
]