import numpy as np
import pytest

from vslam.orb import Keypoint, Match, bf_match, compute_orb, hamming_distance

ZERO = (0,) * 8
FULL = (0xFFFFFFFF,) * 8


def _shifted_pair():
    big = np.random.default_rng(0).integers(0, 256, size=(80, 80), dtype=np.uint8)
    img1 = big[0:64, 0:64]
    img2 = big[5:69, 7:71]
    kps1 = [Keypoint(30, 30), Keypoint(35, 28), Keypoint(40, 33), Keypoint(28, 40)]
    kps2 = [Keypoint(k.x - 7, k.y - 5) for k in kps1]
    return img1, kps1, img2, kps2


def test_hamming_identical_is_zero():
    desc = (1, 2, 3, 4, 5, 6, 7, 8)
    assert hamming_distance(desc, desc) == 0


def test_hamming_all_bits_differ():
    assert hamming_distance(ZERO, FULL) == 256


def test_hamming_is_symmetric():
    a = (0xF0F0F0F0, 1, 0, 0, 0, 0, 0, 7)
    b = (0x0F0F0F0F, 3, 0, 0, 9, 0, 0, 0)
    assert hamming_distance(a, b) == hamming_distance(b, a)


def test_hamming_length_mismatch():
    with pytest.raises(ValueError):
        hamming_distance((1, 2), (1, 2, 3))


def test_border_keypoints_get_none():
    img = np.random.default_rng(1).integers(0, 256, size=(64, 64), dtype=np.uint8)
    kps = [Keypoint(15, 30), Keypoint(48, 30), Keypoint(30, 15.5), Keypoint(47.9, 30)]
    desc = compute_orb(img, kps)
    assert len(desc) == len(kps)
    assert desc[0] is None
    assert desc[1] is None
    assert desc[2] is None
    assert desc[3] is not None and len(desc[3]) == 8


def test_uniform_image_gives_zero_descriptor():
    img = np.full((64, 64), 100, dtype=np.uint8)
    assert compute_orb(img, [Keypoint(32, 32)]) == [ZERO]


def test_descriptor_words_fit_32_bits():
    img = np.random.default_rng(2).integers(0, 256, size=(64, 64), dtype=np.uint8)
    (desc,) = compute_orb(img, [Keypoint(32, 30)])
    assert len(desc) == 8
    assert all(0 <= w < 2 ** 32 for w in desc)


def test_descriptor_depends_only_on_local_patch():
    img1, kps1, img2, kps2 = _shifted_pair()
    assert compute_orb(img1, kps1) == compute_orb(img2, kps2)


def test_compute_orb_rejects_color_image():
    with pytest.raises(ValueError):
        compute_orb(np.zeros((64, 64, 3), dtype=np.uint8), [Keypoint(32, 32)])


def test_shifted_images_match_one_to_one():
    img1, kps1, img2, kps2 = _shifted_pair()
    matches = bf_match(compute_orb(img1, kps1), compute_orb(img2, kps2))
    assert [(m.query_idx, m.train_idx, m.distance) for m in matches] == [
        (i, i, 0) for i in range(len(kps1))
    ]


def test_bf_match_skips_missing_and_far():
    one_bit = (1, 0, 0, 0, 0, 0, 0, 0)
    matches = bf_match([ZERO, None, FULL], [None, one_bit])
    assert matches == [Match(0, 1, 1)]


def test_bf_match_threshold_is_strict():
    one_bit = (1, 0, 0, 0, 0, 0, 0, 0)
    assert bf_match([ZERO], [one_bit], max_distance=1) == []
    assert bf_match([ZERO], [one_bit], max_distance=2) == [Match(0, 0, 1)]


def test_bf_match_tie_prefers_first():
    assert bf_match([ZERO], [FULL, ZERO, ZERO]) == [Match(0, 1, 0)]


def test_bf_match_empty_inputs():
    assert bf_match([], [ZERO]) == []
    assert bf_match([ZERO], []) == []