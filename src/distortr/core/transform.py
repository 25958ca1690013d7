"""The distortion pipeline.

:func:`distort` takes raw upload bytes and returns a deliberately degraded
JPEG of the same dimensions.  The damage comes from repeating a short round
of operations on the image:

1. nearest-neighbour resize to a randomly chosen intermediate size
   (stretching, the aspect ratio is not preserved)
2. rotate 180 degrees
3. rotate the hue by 180 degrees
4. encode as a low-quality JPEG with a random quality
5. decode that JPEG again
6. nearest-neighbour resize back to the original size

Two rotations per round cancel out geometrically, but every resize and every
JPEG round trip throws information away.  The intermediate size is drawn
once per call from ``[W/2, 2W] x [H/2, 2H]``; the quality is drawn per pass.

The function is pure: no I/O beyond in-memory buffers, no shared state.  A
``random.Random`` can be injected for deterministic replay; by default each
call gets its own generator, which keeps concurrent calls independent.

Usage
-----
::

    from distortr.core.transform import distort

    jpeg_bytes = distort(upload_bytes)
"""

from __future__ import annotations

import io
import logging
import random
from dataclasses import dataclass

from PIL import Image

from distortr.core.errors import DecodeError, TransformError

logger = logging.getLogger(__name__)

OUTPUT_CONTENT_TYPE = "image/jpeg"

# Lookup table shifting the 0-255 HSV hue channel by half a turn.
_HUE_HALF_TURN = [(value + 128) % 256 for value in range(256)]


@dataclass(frozen=True)
class DistortionSettings:
    """Tunable bounds of the pipeline.

    Attributes:
        passes: Number of degrade rounds.
        quality_range: Inclusive ``(low, high)`` bounds of the per-pass JPEG
            quality draw.
        final_quality: JPEG quality of the returned payload.
    """

    passes: int = 2
    quality_range: tuple[int, int] = (10, 30)
    final_quality: int = 25

    @classmethod
    def from_config(cls, config) -> DistortionSettings:
        """Build settings from a :class:`~distortr.core.config.DistortrConfig`."""
        return cls(
            passes=config.distortion_passes,
            quality_range=(config.min_quality, config.max_quality),
            final_quality=config.final_quality,
        )


DEFAULT_SETTINGS = DistortionSettings()


def decode_image(data: bytes) -> Image.Image:
    """Decode ``data`` into a fully loaded Pillow image.

    Raises:
        DecodeError: If the payload is empty, in an unrecognised format, or
            corrupt.
    """
    if not data:
        raise DecodeError("Empty image payload")
    try:
        image = Image.open(io.BytesIO(data))
        # Force the pixel data in now so truncated files fail here, not mid-pipeline.
        image.load()
    except (OSError, EOFError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e
    return image


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode ``image`` as a JPEG at ``quality``."""
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def rotate_hue(image: Image.Image) -> Image.Image:
    """Rotate the hue of an RGB image by 180 degrees."""
    hue, saturation, value = image.convert("HSV").split()
    hue = hue.point(_HUE_HALF_TURN)
    return Image.merge("HSV", (hue, saturation, value)).convert("RGB")


def pick_intermediate_size(size: tuple[int, int], rng: random.Random) -> tuple[int, int]:
    """Draw the stretched size used by every pass.

    Each dimension is drawn uniformly from ``[n // 2, n * 2]`` inclusive,
    never smaller than one pixel.
    """
    width, height = size
    return (
        rng.randint(max(1, width // 2), width * 2),
        rng.randint(max(1, height // 2), height * 2),
    )


def _degrade(
    image: Image.Image,
    original_size: tuple[int, int],
    intermediate_size: tuple[int, int],
    quality: int,
) -> Image.Image:
    image = image.resize(intermediate_size, Image.Resampling.NEAREST)
    image = image.transpose(Image.Transpose.ROTATE_180)
    image = rotate_hue(image)
    image = Image.open(io.BytesIO(encode_jpeg(image, quality)))
    image.load()
    return image.convert("RGB").resize(original_size, Image.Resampling.NEAREST)


def distort(
    data: bytes,
    *,
    rng: random.Random | None = None,
    settings: DistortionSettings = DEFAULT_SETTINGS,
) -> bytes:
    """Run the distortion pipeline over an encoded image.

    Args:
        data: Encoded image bytes in any format Pillow can decode.
        rng: Random source for the intermediate size and per-pass quality.
            A fresh ``random.Random()`` is used when omitted.
        settings: Pass count and quality bounds.

    Returns:
        JPEG bytes decoding to an image with the same dimensions as the input.

    Raises:
        DecodeError: If ``data`` is not a decodable image.
        TransformError: If any later step fails.
    """
    image = decode_image(data)
    rng = rng or random.Random()
    original_size = image.size
    low, high = settings.quality_range

    try:
        image = image.convert("RGB")
        intermediate_size = pick_intermediate_size(original_size, rng)
        for _ in range(settings.passes):
            image = _degrade(image, original_size, intermediate_size, rng.randint(low, high))
        result = encode_jpeg(image, settings.final_quality)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        # The stretched intermediate can exceed Pillow's pixel limit even when the input does not.
        raise TransformError(f"Distortion failed: {e}") from e

    logger.debug(
        f"Distorted {original_size[0]}x{original_size[1]} image via "
        f"{intermediate_size[0]}x{intermediate_size[1]} in {settings.passes} passes"
    )
    return result
