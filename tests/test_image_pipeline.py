"""Tests for the photo compression pipeline."""

import io

import pytest
from PIL import Image as PILImage

from report_engine.image_pipeline import ImageCompressor, calculate_sample_size
from report_engine.utils.exceptions import ImageDecodeError


class TestCalculateSampleSize:
    """Power-of-two decode factor."""

    def test_small_image_is_not_sampled(self):
        assert calculate_sample_size(800, 600, 800, 800) == 1

    def test_image_just_over_bound_is_not_sampled(self):
        # Halving 1000px would go below the 800px bound
        assert calculate_sample_size(1000, 1000, 800, 800) == 1

    def test_camera_photo(self):
        assert calculate_sample_size(3000, 4000, 800, 800) == 2

    def test_very_large_photo(self):
        assert calculate_sample_size(8000, 8000, 800, 800) == 8


class TestImageCompressor:
    """Test cases for ImageCompressor."""

    @pytest.fixture
    def compressor(self, settings):
        return ImageCompressor(settings)

    def test_output_is_jpeg(self, compressor, image_factory):
        data = compressor.compress(image_factory(fmt="PNG"))
        assert data[:2] == b"\xff\xd8"

    def test_large_photo_is_bounded(self, compressor, large_photo_bytes):
        result = compressor.compress_image(large_photo_bytes)

        assert max(result.width, result.height) <= 800
        assert result.height == 800
        with PILImage.open(io.BytesIO(result.data)) as decoded:
            assert max(decoded.size) <= 800

    def test_custom_dimension_bound(self, compressor, image_factory):
        result = compressor.compress_image(image_factory(640, 480), max_dimension_px=100)
        assert (result.width, result.height) == (100, 75)

    def test_small_image_keeps_its_size(self, compressor, image_factory):
        result = compressor.compress_image(image_factory(120, 90))
        assert (result.width, result.height) == (120, 90)

    def test_fits_budget_on_first_attempt(self, compressor, image_factory):
        result = compressor.compress_image(image_factory(200, 200))

        assert result.quality == 90
        assert result.attempts == 1
        assert result.size_bytes <= 500 * 1024

    def test_quality_loop_stops_at_floor(self, compressor, noise_factory):
        result = compressor.compress_image(noise_factory(400, 400), max_bytes=1000)

        assert result.quality == 10
        assert result.attempts == 9
        assert result.size_bytes > 1000

    def test_quality_loop_stops_when_within_budget(self, compressor, noise_factory):
        noise = noise_factory(300, 300)
        first = compressor.compress_image(noise)
        budget = first.size_bytes - 1

        result = compressor.compress_image(noise, max_bytes=budget)

        assert 1 < result.attempts <= 9
        assert result.size_bytes <= budget or result.quality == 10

    def test_alpha_png_is_converted(self, compressor, image_factory):
        data = compressor.compress(image_factory(fmt="PNG", mode="RGBA"))
        with PILImage.open(io.BytesIO(data)) as decoded:
            assert decoded.mode == "RGB"

    def test_exif_orientation_is_applied(self, compressor):
        image = PILImage.new("RGB", (200, 100), (10, 200, 10))
        exif = PILImage.Exif()
        exif[0x0112] = 6  # rotated 90 degrees clockwise
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", exif=exif.tobytes())

        result = compressor.compress_image(buffer.getvalue())

        assert (result.width, result.height) == (100, 200)

    def test_accepts_file_path(self, compressor, image_factory, tmp_path):
        path = tmp_path / "photo.jpg"
        path.write_bytes(image_factory(50, 40))

        result = compressor.compress_image(str(path))

        assert (result.width, result.height) == (50, 40)

    def test_probe_dimensions(self, compressor, large_photo_bytes):
        assert compressor.probe_dimensions(large_photo_bytes) == (3000, 4000)

    def test_corrupt_bytes_raise(self, compressor):
        with pytest.raises(ImageDecodeError):
            compressor.compress(b"definitely not an image")

    def test_empty_bytes_raise(self, compressor):
        with pytest.raises(ImageDecodeError):
            compressor.compress(b"")

    def test_missing_file_raises(self, compressor, tmp_path):
        with pytest.raises(ImageDecodeError):
            compressor.compress(str(tmp_path / "missing.jpg"))

    def test_oversized_image_raises(self, compressor, image_factory, monkeypatch):
        monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 1000)

        with pytest.raises(ImageDecodeError):
            compressor.compress(image_factory(100, 100))

    def test_settings_are_read(self, settings, image_factory):
        settings["image_processing"]["max_dimension_px"] = 64
        compressor = ImageCompressor(settings)

        result = compressor.compress_image(image_factory(640, 320))

        assert (result.width, result.height) == (64, 32)
