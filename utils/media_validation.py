"""Validation helpers for generated image payloads."""

import base64
import io

from PIL import Image


def to_image_data_uri(data: str) -> str:
    """Turn base64 image data into a ready-to-render data URI.

    The payload must decode to an image Pillow can identify; the media type
    of the URI follows the detected format.

    Raises:
        ValueError: If the data is not base64 or not a supported image.
    """
    data_bytes = data.encode("utf-8")

    try:
        raw = base64.b64decode(data_bytes, validate=True)
    except Exception as exc:
        raise ValueError("Invalid base64 data provided") from exc

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
            image_format = img.format or "PNG"
    except Exception as exc:
        raise ValueError("Decoded bytes are not a supported image format") from exc

    mime_type = Image.MIME.get(image_format.upper(), f"image/{image_format.lower()}")
    return f"data:{mime_type};base64,{data_bytes.decode('ascii')}"
