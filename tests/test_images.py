"""
Tests for image normalization.
"""

import io

import pytest
from PIL import Image

from conftest import make_image
from photo_report_backend.exceptions import DecodeError
from photo_report_backend.images import ImageNormalizer


def decode(data):
    with Image.open(io.BytesIO(data)) as image:
        return image.format, image.size, image.mode


class TestImageNormalizer:
    def test_large_image_is_fitted_in_box_keeping_aspect_ratio(self):
        result = ImageNormalizer(max_dimension=1024).normalize(make_image(3000, 1500))
        assert (result.width, result.height) == (1024, 512)
        assert decode(result.data) == ("JPEG", (1024, 512), "RGB")

    def test_portrait_image_is_bounded_by_height(self):
        result = ImageNormalizer(max_dimension=100).normalize(make_image(200, 400, fmt="JPEG"))
        assert (result.width, result.height) == (50, 100)

    def test_small_image_is_never_upscaled(self):
        result = ImageNormalizer().normalize(make_image(10, 10))
        assert (result.width, result.height) == (10, 10)

    def test_transparent_image_is_flattened(self):
        result = ImageNormalizer().normalize(make_image(20, 20, mode="RGBA"))
        assert decode(result.data) == ("JPEG", (20, 20), "RGB")

    def test_other_formats_are_reencoded_as_jpeg(self):
        result = ImageNormalizer().normalize(make_image(30, 30, fmt="GIF"))
        assert decode(result.data)[0] == "JPEG"

    def test_garbage_raises_decode_error(self):
        with pytest.raises(DecodeError):
            ImageNormalizer().normalize(b"definitely not an image")

    def test_truncated_image_raises_decode_error(self):
        data = make_image(200, 200, fmt="PNG")
        with pytest.raises(DecodeError):
            ImageNormalizer().normalize(data[: len(data) // 2])

    @pytest.mark.parametrize("kwargs", [{"max_dimension": 0}, {"quality": 0}, {"quality": 100}])
    def test_rejects_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            ImageNormalizer(**kwargs)

    def test_encoder_failure_raises_decode_error(self, monkeypatch):
        def broken_save(image, *args, **kwargs):
            raise OSError("encoder error -2 when writing image file")

        monkeypatch.setattr(Image.Image, "save", broken_save)
        with pytest.raises(DecodeError):
            ImageNormalizer().normalize(make_image(20, 20))
