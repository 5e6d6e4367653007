import math

import numpy as np
import pytest

from vslam.geometry import DEFAULT_CAMERA_MATRIX
from vslam.joint_ba import JointResult, huber_weight, joint_bundle_adjustment
from vslam.lie import SE3


def _project(pose, points):
    camera = pose * points
    pixels = (camera / camera[:, 2:3]) @ DEFAULT_CAMERA_MATRIX.T
    return pixels[:, :2]


def _scene(count=12, seed=3):
    rng = np.random.default_rng(seed)
    return np.column_stack([
        rng.uniform(-1.0, 1.0, count),
        rng.uniform(-1.0, 1.0, count),
        rng.uniform(3.0, 6.0, count),
    ])


def test_huber_weight_is_one_inside_threshold():
    assert huber_weight(0.0, 1.0) == 1.0
    assert huber_weight(1.0, 1.0) == 1.0


def test_huber_weight_beyond_threshold_scales_inverse_to_error():
    for squared in (4.0, 9.0, 100.0):
        w = huber_weight(squared, 1.5)
        assert w < 1.0
        assert w * math.sqrt(squared) == pytest.approx(1.5)


def test_huber_weight_rejects_bad_arguments():
    with pytest.raises(ValueError):
        huber_weight(1.0, 0.0)
    with pytest.raises(ValueError):
        huber_weight(-1.0, 1.0)


def test_perfect_observations_keep_identity_and_points():
    points = _scene()
    observed = _project(SE3(), points)
    result = joint_bundle_adjustment(points, observed)
    assert isinstance(result, JointResult)
    assert result.cost == pytest.approx(0.0, abs=1e-12)
    np.testing.assert_allclose(result.pose.matrix(), np.eye(4), atol=1e-8)
    np.testing.assert_allclose(result.points, points, atol=1e-8)


def test_refinement_reduces_reprojection_cost():
    points = _scene()
    true_pose = SE3.exp([0.01, -0.02, 0.015, 0.005, -0.01, 0.008])
    observed = _project(true_pose, points)
    result = joint_bundle_adjustment(points, observed, iterations=20)
    assert result.history
    assert result.history[0] > 1.0
    assert result.cost < 1e-4
    np.testing.assert_allclose(_project(result.pose, result.points), observed, atol=1e-2)


def test_history_length_matches_iterations():
    points = _scene()
    observed = _project(SE3.exp([0.0, 0.0, 0.0, 0.0, 0.01, 0.0]), points)
    result = joint_bundle_adjustment(points, observed, iterations=3)
    assert result.iterations == 3
    assert len(result.history) == 3


def test_input_points_are_not_modified():
    points = _scene()
    original = points.copy()
    observed = _project(SE3.exp([0.02, 0.0, 0.0, 0.0, 0.0, 0.0]), points)
    joint_bundle_adjustment(points, observed)
    np.testing.assert_array_equal(points, original)


@pytest.mark.parametrize(
    "points_3d, points_2d",
    [
        (np.zeros((3, 2)), np.zeros((3, 2))),
        (np.ones((3, 3)), np.zeros((3, 3))),
        (np.ones((3, 3)), np.zeros((2, 2))),
        (np.zeros((0, 3)), np.zeros((0, 2))),
    ],
)
def test_bad_shapes_raise(points_3d, points_2d):
    with pytest.raises(ValueError):
        joint_bundle_adjustment(points_3d, points_2d)


def test_bad_settings_raise():
    points = _scene(4)
    observed = _project(SE3(), points)
    with pytest.raises(ValueError):
        joint_bundle_adjustment(points, observed, iterations=0)
    with pytest.raises(ValueError):
        joint_bundle_adjustment(points, observed, huber_delta=0.0)
    with pytest.raises(ValueError):
        joint_bundle_adjustment(points, observed, camera_matrix=np.eye(2))