# vslam

Small, readable building blocks for visual SLAM, written on top of NumPy.

## Modules

- `vslam.lie`: the rotation group `SO3` and the rigid-motion group `SE3`,
  with `exp`, `log`, `hat`, `vee`, `matrix`, `inverse` and composition by
  `*`. Multiplying by a 3-vector or an `N x 3` array transforms the points.
  Quaternions are given as `(w, x, y, z)`. In `SE3` the tangent vector is
  ordered translation first, rotation second. Helpers: `angle_axis_matrix`
  and `quaternion_from_matrix`.
- `vslam.curve_fitting`: fitting `y = exp(a*x^2 + b*x + c)` to samples.
  `generate_samples` makes noisy data, `gauss_newton_fit` and
  `levenberg_marquardt_fit` return a `FitResult` (parameters, final cost,
  number of accepted steps and their costs).
- `vslam.trajectory`: `parse_trajectory` and `read_trajectory` read lines of
  `time tx ty tz qx qy qz qw` into `SE3` poses; `trajectory_rmse` gives the
  root-mean-square of `|log(gt^-1 * est)|` over paired poses.
- `vslam.orb`: `compute_orb` computes rotated BRIEF descriptors (eight 32-bit
  words) for given `Keypoint`s of a grayscale image; `hamming_distance` and
  `bf_match` do brute-force matching, returning `Match` records.
- `vslam.image_ops`: `describe_image` (width, height, channels),
  `fill_region`, and lens undistortion with a radial-tangential model
  (`Intrinsics`, `Distortion`, `distort_normalized`, `undistort_image`).
- `vslam.pointcloud`: `parse_poses` reads `tx ty tz qx qy qz qw` lines;
  `rgbd_point_cloud` and `join_point_clouds` build `(x, y, z, r, g, b)` world
  points from colour and depth images; `stereo_point_cloud` builds
  `(x, y, z, intensity)` points from a disparity map.
- `vslam.geometry`: `pixel_to_camera`, `filter_matches` (keep matches no
  farther than twice the smallest distance, with a floor of 30), `skew`,
  `essential_from_pose`, `epipolar_residuals`, `fundamental_eight_point`
  (normalized eight-point algorithm), `triangulate_points` and `depth_color`.
- `vslam.icp`: aligning matched 3-D point sets so that `p1 ~ R @ p2 + t`,
  in closed form with `icp_svd` or iteratively with `icp_optimize`, which
  returns an `SE3`.
- `vslam.pnp`: `back_project` turns a pixel and raw depth reading into a
  camera-frame point; `reprojection_jacobian`,
  `bundle_adjustment_gauss_newton` and `bundle_adjustment_graph` refine a
  camera pose from 3-D to 2-D correspondences.
- `vslam.joint_ba`: `joint_bundle_adjustment` refines a pose together with
  the observed points under a Huber kernel (`huber_weight`), returning a
  `JointResult`.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

```
vslam-curve-fit
```

Generates noisy samples of the exponential curve with true parameters
`a=1, b=2, c=1`, fits them starting from `a=2, b=-1, c=5`, and prints the
cost of each accepted step, the time taken and the estimated parameters.
Options: `--method gauss-newton|levenberg-marquardt`, `--count`, `--sigma`,
`--seed` and `--iterations`.

```
vslam-trajectory-error [GROUNDTRUTH] [ESTIMATED]
```

Reads a ground-truth and an estimated trajectory and prints their RMSE. The
files default to `./example/groundtruth.txt` and `./example/estimated.txt`.

## Using the library

```python
import math
import numpy as np
from vslam.lie import SO3, SE3, angle_axis_matrix

R = angle_axis_matrix(math.pi / 2, np.array([0.0, 0.0, 1.0]))
rotation = SO3(R)
omega = rotation.log()               # rotation vector
assert np.allclose(SO3.vee(SO3.hat(omega)), omega)

pose = SE3(R, np.array([1.0, 0.0, 0.0]))
xi = pose.log()                      # translation first, then rotation
updated = SE3.exp(np.array([1e-4, 0, 0, 0, 0, 0])) * pose
print(updated.matrix())
```

Matching descriptors:

```python
from vslam.orb import Keypoint, compute_orb, bf_match

descriptors1 = compute_orb(image1, [Keypoint(40.0, 52.0), Keypoint(80.0, 31.0)])
descriptors2 = compute_orb(image2, [Keypoint(42.0, 50.0)])
matches = bf_match(descriptors1, descriptors2, 40)
```

Keypoints within 16 pixels of the image border get `None` instead of a
descriptor and are never matched; a match is kept only when its Hamming
distance is below the given maximum.

Aligning two point sets:

```python
from vslam.icp import icp_svd

rotation, translation = icp_svd(points1, points2)
# points1[i] is close to rotation @ points2[i] + translation
```

## What the package does not do

- It does not read or write image files, and it shows nothing on screen:
  images, depth maps and disparity maps are passed in as NumPy arrays, and
  point clouds and trajectories come back as arrays and `SE3` objects to be
  plotted by other means.
- It does not detect keypoints; `compute_orb` describes keypoints that the
  caller supplies.
- It does not compute disparity from a stereo pair; `stereo_point_cloud`
  needs a disparity map already made.
- It does not estimate an essential matrix or a homography, recover a pose
  from one, or solve PnP from scratch; the pose refinements in `vslam.pnp`
  and `vslam.joint_ba` start from a given or identity pose.