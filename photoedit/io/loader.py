"""
Source image loading for PhotoEdit.

Sources come from an external content collaborator as an http(s) URL, a
filesystem path or raw bytes. They are decoded once into an owned uint8
RGB or RGBA buffer.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Union

import numpy as np
import requests
from PIL import Image, ImageOps

from photoedit.errors import DecodeFailure

logger = logging.getLogger(__name__)

SourceRef = Union[str, Path, bytes, bytearray]

DEFAULT_TIMEOUT = 30


def is_url(source: SourceRef) -> bool:
    return isinstance(source, str) and source.lower().startswith(('http://', 'https://'))


def describe_source(source: SourceRef) -> str:
    """Short description of a source for logs and error messages."""
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return str(source)


def fetch_bytes(source: SourceRef, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """
    Read the encoded bytes of a source.

    Args:
        source: URL, path or bytes
        timeout: Request timeout in seconds for URLs

    Returns:
        Encoded image bytes

    Raises:
        DecodeFailure: if the source cannot be read
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if is_url(source):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DecodeFailure(f"Failed to fetch {source}: {e}", source=source) from e
        logger.debug(f"Fetched {len(response.content)} bytes from {source}")
        return response.content

    path = Path(source)
    try:
        return path.read_bytes()
    except OSError as e:
        raise DecodeFailure(f"Failed to read {path}: {e}", source=source) from e


def decode_image(data: bytes, source: SourceRef = None) -> np.ndarray:
    """
    Decode encoded bytes to a pixel buffer, honouring EXIF orientation.

    Returns:
        uint8 array of shape (H, W, 4) when the image has transparency,
        otherwise (H, W, 3)

    Raises:
        DecodeFailure: if the bytes are not a decodable image
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            has_alpha = img.mode in ('RGBA', 'LA', 'PA') or (
                img.mode == 'P' and 'transparency' in img.info
            )
            img = img.convert('RGBA' if has_alpha else 'RGB')
            buffer = np.array(img, dtype=np.uint8)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        label = describe_source(source) if source is not None else f"<{len(data)} bytes>"
        raise DecodeFailure(f"Failed to decode {label}: {e}", source=source) from e

    if buffer.ndim != 3 or buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise DecodeFailure(f"Decoded image has unusable shape {buffer.shape}", source=source)
    return buffer


def load_image(source: SourceRef, timeout: float = DEFAULT_TIMEOUT) -> np.ndarray:
    """Fetch and decode a source into a pixel buffer."""
    data = fetch_bytes(source, timeout=timeout)
    buffer = decode_image(data, source=source)
    logger.info(f"Loaded {describe_source(source)}: {buffer.shape[1]}x{buffer.shape[0]}")
    return buffer
