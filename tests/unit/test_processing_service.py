import numpy as np
import pytest

from src.domain.services.processing_service import ProcessingService as PS


def _grid(h=2, w=3):
    return np.arange(h * w, dtype=np.float32).reshape(h, w) / (h * w)


def test_crop_selects_region():
    img = _grid(4, 5)
    out = PS.crop(img, x=1, y=2, width=3, height=2)
    assert out.dtype == np.float32
    assert out.shape == (2, 3)
    assert np.allclose(out, img[2:4, 1:4])


def test_crop_out_of_bounds_raises():
    img = _grid(4, 5)
    with pytest.raises(ValueError):
        PS.crop(img, x=3, y=0, width=3, height=2)


def test_rotate_90_is_clockwise():
    # a b c        d a
    # d e f   ->   e b
    #              f c
    img = np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]], dtype=np.float32)
    out = PS.rotate(img, 90)
    assert out.shape == (3, 2)
    assert np.allclose(out, [[0.4, 0.1], [0.5, 0.2], [0.6, 0.3]])


def test_rotate_180_keeps_shape_and_reverses():
    img = _grid(2, 3)
    out = PS.rotate(img, 180)
    assert out.shape == img.shape
    assert np.allclose(out, img[::-1, ::-1])


def test_four_quarter_turns_are_identity_rgb():
    img = np.random.default_rng(0).random((5, 7, 3)).astype(np.float32)
    out = img
    for _ in range(4):
        out = PS.rotate(out, 90)
    assert np.array_equal(out, img)


def test_rotate_rejects_non_right_angle():
    with pytest.raises(ValueError):
        PS.rotate(_grid(), 45)


def test_flip_horizontal_and_vertical():
    img = _grid(2, 3)
    assert np.allclose(PS.flip(img, "horizontal"), img[:, ::-1])
    assert np.allclose(PS.flip(img, "vertical"), img[::-1, :])
    with pytest.raises(ValueError):
        PS.flip(img, "diagonal")


@pytest.mark.parametrize(
    "fit,expected_hw",
    [
        ("inside", (3, 4)),
        ("contain", (4, 4)),
        ("fill", (4, 4)),
        ("cover", (4, 4)),
    ],
)
def test_resize_fit_modes(fit, expected_hw):
    img = np.ones((6, 8, 3), dtype=np.float32)
    out = PS.resize(img, 4, 4, fit)
    assert out.shape[:2] == expected_hw
    assert out.shape[2] == 3


def test_resize_contain_pads_with_zeros():
    img = np.ones((6, 8), dtype=np.float32)
    out = PS.resize(img, 4, 4, "contain")
    assert out.shape == (4, 4)
    # 4x3 content centred vertically leaves exactly one zero row
    assert out.sum() == pytest.approx(12.0)


def test_resize_never_enlarges():
    img = _grid(4, 4)
    for fit in ("inside", "contain", "fill", "cover"):
        assert PS.resize(img, 100, 50, fit).shape == (4, 4)


def test_resize_unknown_fit_raises():
    with pytest.raises(ValueError):
        PS.resize(_grid(), 2, 2, "stretch")
