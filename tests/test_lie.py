import math

import numpy as np
import pytest

from vslam.lie import SE3, SO3, angle_axis_matrix, quaternion_from_matrix

Z_AXIS = (0.0, 0.0, 1.0)


@pytest.fixture
def rz():
    return angle_axis_matrix(math.pi / 2, Z_AXIS)


def test_quarter_turn_about_z_maps_x_to_y(rz):
    assert np.allclose(rz @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0])


def test_so3_from_matrix_equals_from_quaternion(rz):
    q = quaternion_from_matrix(rz)
    assert np.allclose(SO3(rz).matrix(), SO3.from_quaternion(q).matrix())


def test_so3_log_of_quarter_turn(rz):
    assert np.allclose(SO3(rz).log(), [0.0, 0.0, math.pi / 2])


def test_hat_vee_round_trip_and_antisymmetry():
    w = np.array([0.3, -1.2, 0.7])
    h = SO3.hat(w)
    assert np.allclose(h, -h.T)
    assert np.allclose(SO3.vee(h), w)


@pytest.mark.parametrize("seed", range(5))
def test_so3_exp_log_round_trip(seed):
    rng = np.random.default_rng(seed)
    w = rng.normal(size=3)
    w *= rng.uniform(0.0, 3.0) / np.linalg.norm(w)
    assert np.allclose(SO3.exp(w).log(), w, atol=1e-9)


def test_so3_small_angle_exp():
    w = np.array([1e-9, 0.0, 0.0])
    assert np.allclose(SO3.exp(w).log(), w, atol=1e-15)


def test_so3_log_at_half_turn_round_trips():
    r = SO3.exp([math.pi, 0.0, 0.0])
    w = r.log()
    assert math.isclose(np.linalg.norm(w), math.pi, rel_tol=1e-9)
    assert np.allclose(SO3.exp(w).matrix(), r.matrix(), atol=1e-9)


def test_so3_left_update_is_recovered(rz):
    update = np.array([1e-4, 0.0, 0.0])
    updated = SO3.exp(update) * SO3(rz)
    assert np.allclose((updated * SO3(rz).inverse()).log(), update, atol=1e-12)


def test_so3_rejects_non_rotation():
    with pytest.raises(ValueError):
        SO3(np.eye(3) * 2.0)
    with pytest.raises(ValueError):
        SO3.from_quaternion([0.0, 0.0, 0.0, 0.0])


def test_se3_from_rotation_equals_from_quaternion(rz):
    t = [1.0, 0.0, 0.0]
    q = quaternion_from_matrix(rz)
    assert np.allclose(SE3(rz, t).matrix(), SE3.from_quaternion(q, t).matrix())


def test_se3_log_puts_translation_first():
    xi = SE3(np.eye(3), [1.0, 0.0, 0.0]).log()
    assert np.allclose(xi, [1.0, 0.0, 0.0, 0.0, 0.0, 0.0])


def test_se3_exp_log_round_trip(rz):
    pose = SE3(rz, [1.0, 0.0, 0.0])
    assert np.allclose(SE3.exp(pose.log()).matrix(), pose.matrix(), atol=1e-12)


def test_se3_hat_vee_round_trip(rz):
    xi = SE3(rz, [1.0, 0.0, 0.0]).log()
    h = SE3.hat(xi)
    assert np.allclose(h[3], 0.0)
    assert np.allclose(SE3.vee(h), xi)


def test_se3_inverse_composes_to_identity(rz):
    pose = SE3(rz, [1.0, -2.0, 0.5])
    assert np.allclose((pose * pose.inverse()).matrix(), np.eye(4), atol=1e-12)


def test_se3_acts_on_points_like_its_matrix(rz):
    pose = SE3(rz, [1.0, -2.0, 0.5])
    p = np.array([0.2, 0.4, 3.0])
    expected = (pose.matrix() @ np.append(p, 1.0))[:3]
    assert np.allclose(pose * p, expected)
    batch = np.stack([p, 2 * p])
    assert np.allclose((pose * batch)[0], expected)


def test_se3_left_update_is_recovered(rz):
    pose = SE3(rz, [1.0, 0.0, 0.0])
    update = np.zeros(6)
    update[0] = 1e-4
    updated = SE3.exp(update) * pose
    assert np.allclose((updated * pose.inverse()).log(), update, atol=1e-12)


def test_se3_rejects_bad_shapes():
    with pytest.raises(ValueError):
        SE3(np.eye(3), [1.0, 2.0])
    with pytest.raises(ValueError):
        SE3.hat([1.0, 2.0, 3.0])