"""Error types raised by the drawing engine and its codec."""


class DrawError(Exception):
    """Base class for every error raised by this library."""


class OutOfBounds(DrawError, IndexError):
    """Direct pixel access outside the canvas."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"Pixel ({x}, {y}) is outside the {width}x{height} canvas")
        self.x = x
        self.y = y


class UnsupportedGeometry(DrawError, ValueError):
    """A shape the rasterizer refuses to draw; the canvas is left untouched."""


class DecodeError(DrawError, ValueError):
    """Malformed or unsupported image data on import."""


class EncodeError(DrawError):
    """The codec could not encode the canvas."""


class InvalidColor(DrawError, ValueError):
    pass


class InvalidOpacity(DrawError, ValueError):
    pass


class InvalidSize(DrawError, ValueError):
    pass
