"""PNG and raw-byte import/export for (H, W, 3) uint8 pixel arrays."""

import io
import logging
import os
import struct

# Suppress pygame welcome message before importing, importing the library
# should print nothing.
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import numpy as np
import pygame

from errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_BIT_DEPTH = 8
# IHDR color types we can read; 2 is truecolor, 6 is truecolor with alpha
PNG_COLOR_TYPES = {2: "RGB", 6: "RGBA"}


def read_png_header(data: bytes) -> tuple[int, int, int, int]:
    """Return (width, height, bit_depth, color_type) from the IHDR chunk."""
    if len(data) < 26 or data[:8] != PNG_SIGNATURE or data[12:16] != b"IHDR":
        raise DecodeError("Not a PNG file")
    return struct.unpack(">IIBB", data[16:26])


def encode_png(pixels: np.ndarray, path, overwrite: bool = True) -> None:
    """Write pixels as an 8-bit RGB PNG.

    The image is encoded in memory first so a failed encode leaves no file
    behind. With ``overwrite=False`` an existing file raises FileExistsError.
    """
    height, width, _ = pixels.shape
    surface = pygame.Surface((width, height), depth=24)
    pygame.surfarray.blit_array(surface, pixels.transpose(1, 0, 2))
    buffer = io.BytesIO()
    try:
        pygame.image.save(surface, buffer, "png")
    except pygame.error as exc:
        raise EncodeError(f"Can't encode PNG: {exc}") from exc
    with open(path, "wb" if overwrite else "xb") as fh:
        fh.write(buffer.getvalue())
    logger.debug("Wrote %dx%d PNG to %s", width, height, path)


def decode_png(path) -> np.ndarray:
    """Read an 8-bit RGB or RGBA PNG. Alpha is discarded."""
    with open(path, "rb") as fh:
        data = fh.read()

    width, height, bit_depth, color_type = read_png_header(data)
    if bit_depth != PNG_BIT_DEPTH:
        raise DecodeError(f"Unsupported PNG bit depth {bit_depth}, expected 8")
    if color_type not in PNG_COLOR_TYPES:
        raise DecodeError(f"Unsupported PNG color type {color_type}, expected RGB or RGBA")

    try:
        surface = pygame.image.load(io.BytesIO(data), "png")
    except pygame.error as exc:
        raise DecodeError(f"Can't decode PNG: {exc}") from exc
    if surface.get_size() != (width, height):
        raise DecodeError("PNG header does not match decoded image size")

    rgb = pygame.surfarray.array3d(surface)  # shape (W, H, 3)
    logger.debug("Read %dx%d %s PNG from %s", width, height,
                 PNG_COLOR_TYPES[color_type], path)
    return np.ascontiguousarray(rgb.transpose(1, 0, 2), dtype=np.uint8)


def encode_bytes(pixels: np.ndarray) -> bytes:
    """Row-major RGB bytes, length W*H*3."""
    return pixels.tobytes()


def decode_bytes(width: int, height: int, data: bytes) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise DecodeError(f"Invalid image size {width}x{height}")
    if len(data) != width * height * 3:
        raise DecodeError(
            f"Got {len(data)} bytes, an RGB image of {width}x{height} needs {width * height * 3}"
        )
    return np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 3).copy()
