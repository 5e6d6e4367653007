import numpy as np
import pytest

from vslam.image_ops import Intrinsics
from vslam.lie import SE3
from vslam.pointcloud import (
    join_point_clouds,
    parse_poses,
    rgbd_point_cloud,
    stereo_point_cloud,
)

CAM = Intrinsics(10.0, 10.0, 2.0, 1.0)


def _frame():
    color = np.zeros((3, 4, 3), dtype=np.uint8)
    depth = np.zeros((3, 4), dtype=np.uint16)
    color[1, 2] = (10, 20, 30)
    depth[1, 2] = 2000
    color[0, 0] = (1, 2, 3)
    depth[0, 0] = 500
    return color, depth


def test_parse_identity_pose():
    poses = parse_poses(["0 0 0 0 0 0 1", "", "1 2 3 0 0 0 1"])
    assert len(poses) == 2
    np.testing.assert_allclose(poses[0].matrix(), np.eye(4))
    np.testing.assert_allclose(poses[1].translation, [1, 2, 3])


def test_parse_wrong_field_count():
    with pytest.raises(ValueError):
        parse_poses(["1 2 3"])


def test_empty_depth_gives_empty_cloud():
    cloud = rgbd_point_cloud(np.zeros((2, 2, 3), np.uint8), np.zeros((2, 2), np.uint16), SE3(), CAM, 1000.0)
    assert cloud.shape == (0, 6)


def test_principal_point_lies_on_axis():
    color, depth = _frame()
    cloud = rgbd_point_cloud(color, depth, SE3(), CAM, 1000.0)
    assert cloud.shape == (2, 6)
    row = cloud[1]
    np.testing.assert_allclose(row[:3], [0.0, 0.0, 2000 / 1000.0])
    np.testing.assert_allclose(row[3:], [30, 20, 10])


def test_pose_translation_shifts_cloud():
    color, depth = _frame()
    base = rgbd_point_cloud(color, depth, SE3(), CAM, 1000.0)
    moved = rgbd_point_cloud(color, depth, SE3(None, [1.0, -2.0, 0.5]), CAM, 1000.0)
    np.testing.assert_allclose(moved[:, :3], base[:, :3] + [1.0, -2.0, 0.5])
    np.testing.assert_allclose(moved[:, 3:], base[:, 3:])


def test_rgbd_shape_mismatch():
    with pytest.raises(ValueError):
        rgbd_point_cloud(np.zeros((2, 2, 3), np.uint8), np.zeros((3, 2), np.uint16), SE3(), CAM, 1000.0)


def test_join_concatenates_frames():
    color, depth = _frame()
    joined = join_point_clouds([(color, depth, SE3()), (color, depth, SE3())], CAM, 1000.0)
    single = rgbd_point_cloud(color, depth, SE3(), CAM, 1000.0)
    assert joined.shape == (2 * len(single), 6)
    np.testing.assert_allclose(joined[len(single):], single)


def test_stereo_filters_and_scales():
    gray = np.array([[0, 255], [51, 102]], dtype=np.uint8)
    disparity = np.array([[0.0, 8.0], [96.0, 16.0]])
    cloud = stereo_point_cloud(gray, disparity, CAM, 0.5, 96.0)
    assert cloud.shape == (2, 4)
    valid = disparity[(disparity > 0) & (disparity < 96)]
    np.testing.assert_allclose(cloud[:, 2] * valid, CAM.fx * 0.5)
    np.testing.assert_allclose(cloud[:, 3], np.array([255, 102]) / 255.0)


def test_stereo_shape_mismatch():
    with pytest.raises(ValueError):
        stereo_point_cloud(np.zeros((2, 2), np.uint8), np.zeros((2, 3)), CAM, 0.5, 96.0)