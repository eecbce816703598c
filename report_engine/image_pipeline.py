"""Photo compression for cell-embedded report images.

Large camera photos are probed for their size first, decoded at a reduced
resolution where the codec allows it, scaled to fit a square bound, and then
re-encoded as JPEG with decreasing quality until the result fits a byte
budget or the quality floor is reached.
"""

import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image as PILImage
from PIL import ImageOps, UnidentifiedImageError

from .config_manager import default_report_settings
from .utils.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

RawImage = Union[bytes, bytearray, str, Path]


@dataclass
class CompressedImage:
    """Result of one compression run."""

    data: bytes
    width: int
    height: int
    quality: int
    attempts: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def calculate_sample_size(width: int, height: int, max_width: int, max_height: int) -> int:
    """Largest power-of-two factor that keeps both halves at or above the bound."""
    sample_size = 1
    if height > max_height or width > max_width:
        half_height = height // 2
        half_width = width // 2
        while (
            half_height // sample_size >= max_height
            and half_width // sample_size >= max_width
        ):
            sample_size *= 2
    return sample_size


class ImageCompressor:
    """Downsamples and JPEG-encodes photos to a pixel and byte budget."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None) -> None:
        settings = settings or default_report_settings()
        image_config = settings.get("image_processing", {})
        self.max_dimension_px = image_config.get("max_dimension_px", 800)
        self.max_bytes = image_config.get("max_size_kb", 500) * 1024
        self.initial_quality = image_config.get("initial_quality", 90)
        self.quality_step = image_config.get("quality_step", 10)
        self.min_quality = image_config.get("min_quality", 10)

    def compress(
        self,
        raw: RawImage,
        max_dimension_px: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> bytes:
        """Return JPEG bytes for ``raw`` within the configured budgets."""
        return self.compress_image(raw, max_dimension_px, max_bytes).data

    def compress_image(
        self,
        raw: RawImage,
        max_dimension_px: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> CompressedImage:
        """Compress ``raw`` and report the final dimensions and quality.

        Raises:
            ImageDecodeError: if ``raw`` is not a readable, decodable image.
        """
        max_dimension = max_dimension_px or self.max_dimension_px
        byte_budget = max_bytes or self.max_bytes

        image = self._decode_scaled(raw, max_dimension)
        try:
            data, quality, attempts = self._encode_within_budget(image, byte_budget)
            result = CompressedImage(
                data=data,
                width=image.width,
                height=image.height,
                quality=quality,
                attempts=attempts,
            )
        finally:
            image.close()

        if result.size_bytes > byte_budget:
            logger.warning(
                f"Image still {result.size_bytes} bytes at quality floor {quality} "
                f"(budget {byte_budget})"
            )
        else:
            logger.debug(
                f"Compressed image to {result.width}x{result.height}px, "
                f"{result.size_bytes} bytes at quality {quality} ({attempts} attempts)"
            )
        return result

    def probe_dimensions(self, raw: RawImage) -> Tuple[int, int]:
        """Read the image size from its header without decoding pixel data."""
        with self._open(raw) as image:
            return image.size

    def _open(self, raw: RawImage) -> PILImage.Image:
        """Open ``raw`` lazily; only the header is read at this point."""
        try:
            if isinstance(raw, (bytes, bytearray)):
                return PILImage.open(io.BytesIO(bytes(raw)))
            return PILImage.open(os.fspath(raw))
        except (
            UnidentifiedImageError,
            PILImage.DecompressionBombError,
            OSError,
            ValueError,
            TypeError,
        ) as e:
            raise ImageDecodeError(f"Could not decode image: {e}")

    def _decode_scaled(self, raw: RawImage, max_dimension: int) -> PILImage.Image:
        source = self._open(raw)
        try:
            width, height = source.size
            sample_size = calculate_sample_size(width, height, max_dimension, max_dimension)
            if sample_size > 1:
                # JPEG decoders honour draft() by decoding at 1/2, 1/4 or 1/8 scale
                source.draft("RGB", (width // sample_size, height // sample_size))

            source.load()
            image = ImageOps.exif_transpose(source)
            if image.mode != "RGB":
                converted = image.convert("RGB")
                if image is not source:
                    image.close()
                image = converted
            if image is source:
                image = source.copy()
        except (OSError, ValueError, SyntaxError, PILImage.DecompressionBombError) as e:
            raise ImageDecodeError(f"Could not decode image: {e}")
        finally:
            source.close()

        if image.width > max_dimension or image.height > max_dimension:
            original_size = image.size
            image.thumbnail((max_dimension, max_dimension), PILImage.Resampling.LANCZOS)
            logger.debug(
                f"Resized image from {original_size[0]}x{original_size[1]}px "
                f"to {image.width}x{image.height}px"
            )
        return image

    def _encode_within_budget(
        self, image: PILImage.Image, byte_budget: int
    ) -> Tuple[bytes, int, int]:
        quality = self.initial_quality
        data = self._encode(image, quality)
        attempts = 1

        while len(data) > byte_budget and quality > self.min_quality:
            quality = max(self.min_quality, quality - self.quality_step)
            data = self._encode(image, quality)
            attempts += 1

        return data, quality, attempts

    @staticmethod
    def _encode(image: PILImage.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()
