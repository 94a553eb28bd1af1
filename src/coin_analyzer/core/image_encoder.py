#!/usr/bin/env python3
"""
image_encoder.py: Downscale a captured coin photo and encode it as JPEG for upload.

Images whose sides are both within the size limit are only re-encoded; larger images
are scaled so the longer side matches the limit exactly. Supports JPEG, PNG, and
HEIC (requires pillow-heif).

Usage:
    python3 -m coin_analyzer.core.image_encoder <input_image> -o <out.jpg> [--max-dimension 800]

Dependencies:
    pip install pillow pillow-heif
"""

import argparse
import io
import logging
import os
from typing import Tuple, Union

from ..api.errors import InvalidRequest
from ..api.models import EncodedImage
from ..utils.log_utils import configure_logging, get_logger
logger = get_logger(__name__)

try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    pass

from PIL import Image, ImageOps

MAX_DIMENSION = 800
JPEG_QUALITY = 70
DEFAULT_FILENAME = "coin_image.jpg"

# EXIF orientations that swap width and height
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}
_EXIF_ORIENTATION = 0x0112

ImageSource = Union[Image.Image, bytes, bytearray, str, os.PathLike]


def target_size(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> Tuple[int, int]:
    """Size after fitting (width, height) into a max_dimension box, keeping the aspect ratio."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width >= height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def _open(image: ImageSource) -> Image.Image:
    try:
        if isinstance(image, (bytes, bytearray)):
            return Image.open(io.BytesIO(image))
        return Image.open(image)
    except (OSError, ValueError, Image.DecompressionBombError) as err:
        logger.error("Failed to open image: %s", err)
        raise InvalidRequest(f"Invalid image data: {err}") from err


def prepare_image(
    image: ImageSource,
    *,
    max_dimension: int = MAX_DIMENSION,
    quality: int = JPEG_QUALITY,
    filename: str = DEFAULT_FILENAME,
) -> EncodedImage:
    """Downscale `image` if needed and encode it as JPEG.

    Args:
        image: A PIL image, encoded image bytes, or a path to an image file
        max_dimension: Longest allowed side in pixels (default: 800)
        quality: JPEG quality (default: 70)
        filename: Suggested upload filename

    Returns:
        The encoded image with its final dimensions

    Raises:
        InvalidRequest: If the image cannot be decoded or encoded
    """
    opened_here = not isinstance(image, Image.Image)
    img = _open(image) if opened_here else image

    try:
        raw_w, raw_h = img.size
        transposed = img.getexif().get(_EXIF_ORIENTATION) in _TRANSPOSED_ORIENTATIONS
        upright_w, upright_h = (raw_h, raw_w) if transposed else (raw_w, raw_h)
        new_w, new_h = target_size(upright_w, upright_h, max_dimension)

        if opened_here and (new_w, new_h) != (upright_w, upright_h):
            # Decode JPEGs at a reduced DCT scale that is still >= the target size
            img.draft("RGB", (new_h, new_w) if transposed else (new_w, new_h))

        # Decode fully here so truncated or corrupt pixel data fails fast
        img.load()
        img = ImageOps.exif_transpose(img)
        if img.size != (new_w, new_h):
            img = img.resize((new_w, new_h), resample=Image.Resampling.BILINEAR)
        if img.mode != "RGB":
            img = img.convert("RGB")

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError, Image.DecompressionBombError) as err:
        logger.error("Failed to encode image: %s", err)
        raise InvalidRequest(f"Invalid image data: {err}") from err

    data = buffer.getvalue()
    logger.debug(
        "Prepared image %dx%d -> %dx%d, %d bytes (quality %d)",
        upright_w, upright_h, new_w, new_h, len(data), quality,
    )
    return EncodedImage(data=data, width=new_w, height=new_h, filename=filename)


def parse_args():
    # mainly used to check what gets uploaded
    parser = argparse.ArgumentParser(
        description="Downscale and JPEG-encode an image the way it is uploaded for analysis."
    )
    parser.add_argument("input", help="Path to the input image file.")
    parser.add_argument("-o", "--output", required=True, help="Where to write the encoded JPEG.")
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=MAX_DIMENSION,
        help=f"Longest side in pixels (default: {MAX_DIMENSION}).",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical", "none"],
        default="none",
        help="Set logging level ('none' disables logging)",
    )
    return parser.parse_args()


def main():
    args = parse_args()
    if args.log_level.lower() != 'none':
        configure_logging(getattr(logging, args.log_level.upper()))
    encoded = prepare_image(args.input, max_dimension=args.max_dimension)
    with open(args.output, "wb") as f:
        f.write(encoded.data)
    print(f"{args.output}: {encoded.width}x{encoded.height}, {len(encoded.data)} bytes")


if __name__ == "__main__":
    main()
