"""
multipart/form-data encoding of coin images.

Field names and filenames are a fixed contract with the backend:

    single image:  image / coin_image.jpg
    both sides:    front_image / coin_front.jpg, back_image / coin_back.jpg
"""

import uuid
from typing import Sequence, Tuple

from .errors import InvalidRequest
from .models import CoinSide, EncodedImage

CRLF = b"\r\n"

Part = Tuple[CoinSide, EncodedImage]


def content_type_for(boundary: str) -> str:
    return f"multipart/form-data; boundary={boundary}"


def new_boundary(parts: Sequence[Part]) -> str:
    """Return a random boundary token that does not occur in any part."""
    while True:
        boundary = str(uuid.uuid4()).upper()
        token = boundary.encode("ascii")
        if not any(token in image.data for _, image in parts):
            return boundary


def _check_layout(parts: Sequence[Part]) -> None:
    sides = [side for side, _ in parts]
    if sides not in ([CoinSide.SINGLE], [CoinSide.FRONT, CoinSide.BACK]):
        raise InvalidRequest(
            f"Expected a single image or front and back images, got {[s.name for s in sides]}"
        )


def encode_multipart(parts: Sequence[Part], boundary: str) -> bytes:
    """Serialize the images into a multipart/form-data body.

    Args:
        parts: (side, image) pairs, either one SINGLE or FRONT followed by BACK
        boundary: Boundary token; must not occur in any image payload

    Returns:
        The request body

    Raises:
        InvalidRequest: On an unsupported part layout or a colliding boundary
    """
    _check_layout(parts)
    delimiter = b"--" + boundary.encode("ascii")

    body = bytearray()
    for side, image in parts:
        if delimiter[2:] in image.data:
            raise InvalidRequest("Multipart boundary occurs in image data")
        body += delimiter + CRLF
        body += (
            f'Content-Disposition: form-data; name="{side.field_name}"; '
            f'filename="{side.filename}"'
        ).encode("utf-8") + CRLF
        body += f"Content-Type: {image.content_type}".encode("utf-8") + CRLF + CRLF
        body += image.data + CRLF
    body += delimiter + b"--" + CRLF
    return bytes(body)
