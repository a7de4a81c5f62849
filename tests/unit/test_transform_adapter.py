import io
import time

import numpy as np
import pytest
from PIL import Image

from src.domain.entities.transform import (
    CropTransform,
    FlipTransform,
    ResizeTransform,
    RotateTransform,
)
from src.domain.errors import InvalidParametersError, TransformFailedError
from src.domain.services.processing_service import ProcessingService
from src.domain.services.transform_adapter import TransformAdapter, format_for_filename


def _decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def test_probe_reads_dimensions(transforms, image_bytes):
    probe = transforms.probe(image_bytes(w=8, h=6))
    assert (probe.width, probe.height) == (8, 6)
    assert probe.format == "PNG"
    assert probe.mime_type == "image/png"
    assert probe.mode == "RGB"


def test_probe_returns_none_for_garbage(transforms):
    assert transforms.probe(b"definitely not an image") is None


def test_rotate_swaps_dimensions(transforms, image_bytes):
    result = transforms.apply(image_bytes(w=8, h=6), RotateTransform(degrees=90))
    assert (result.width, result.height) == (6, 8)
    assert result.content_type == "image/png"
    assert result.size == len(result.data)
    assert _decode(result.data).size == (6, 8)


def test_crop_preserves_pixels_losslessly(transforms, image_bytes):
    source = image_bytes(w=8, h=6)
    result = transforms.apply(source, CropTransform(x=2, y=1, width=4, height=3))
    expected = np.asarray(_decode(source))[1:4, 2:6]
    assert np.array_equal(np.asarray(_decode(result.data)), expected)


def test_crop_outside_decoded_image_is_invalid(transforms, image_bytes):
    with pytest.raises(InvalidParametersError):
        transforms.apply(image_bytes(w=8, h=6), CropTransform(x=5, y=0, width=4, height=3))


def test_flip_then_flip_is_identity(transforms, image_bytes):
    source = image_bytes(w=5, h=4)
    once = transforms.apply(source, FlipTransform(direction="horizontal"))
    twice = transforms.apply(once.data, FlipTransform(direction="horizontal"))
    assert np.array_equal(np.asarray(_decode(twice.data)), np.asarray(_decode(source)))


def test_grayscale_stays_grayscale(transforms, image_bytes):
    result = transforms.apply(image_bytes(w=6, h=4, mode="L"), FlipTransform(direction="vertical"))
    assert _decode(result.data).mode == "L"


def test_jpeg_source_encoded_as_jpeg(transforms, image_bytes):
    result = transforms.apply(
        image_bytes(w=16, h=12, fmt="JPEG"), ResizeTransform(width=8, height=8, fit="inside")
    )
    assert result.content_type == "image/jpeg"
    assert (result.width, result.height) == (8, 6)


def test_explicit_format_wins(transforms, image_bytes):
    result = transforms.apply(image_bytes(), RotateTransform(degrees=180), fmt="JPEG")
    assert result.content_type == "image/jpeg"


def test_undecodable_source_fails(transforms):
    with pytest.raises(TransformFailedError):
        transforms.apply(b"\x00\x01\x02", RotateTransform(degrees=90))


def test_invalid_transform_rejected_before_decoding(transforms):
    with pytest.raises(InvalidParametersError):
        transforms.apply(b"not even read", RotateTransform(degrees=45))


def test_timeout_raises_transform_failed(image_bytes):
    class SlowProcessing(ProcessingService):
        @staticmethod
        def rotate(matrix, degrees):
            time.sleep(0.5)
            return matrix

    adapter = TransformAdapter(processing=SlowProcessing(), timeout_seconds=0.05)
    with pytest.raises(TransformFailedError, match="timed out"):
        adapter.apply(image_bytes(), RotateTransform(degrees=90))


def test_timeout_read_from_env(monkeypatch):
    monkeypatch.setenv("EDITION_TRANSFORM_TIMEOUT_SECONDS", "2.5")
    assert TransformAdapter().timeout_seconds == 2.5


def test_format_for_filename():
    assert format_for_filename("a.jpg") == "JPEG"
    assert format_for_filename("b.PNG") == "PNG"
    assert format_for_filename("noext") is None


def test_decompression_bomb_not_probed(transforms, image_bytes, monkeypatch):
    data = image_bytes(w=40, h=40)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    assert transforms.probe(data) is None


def test_decompression_bomb_fails_transform(transforms, image_bytes, monkeypatch):
    data = image_bytes(w=40, h=40)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(TransformFailedError, match="decode"):
        transforms.apply(data, RotateTransform(degrees=90))
