"""Drawing engine: RGB8 pixel buffer with anti-aliased draw ops."""

import logging
import numpy as np

import codec
from errors import InvalidColor, InvalidOpacity, InvalidSize, OutOfBounds, UnsupportedGeometry
from raster import (
    blend,
    blend_array,
    circle_coverage,
    ellipse_coverage,
    line_samples,
    normalize_corners,
    rectangle_border_samples,
)

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _check_color(color) -> tuple:
    if len(color) != 3:
        raise InvalidColor(f"Expected an (r, g, b) color, got {color!r}")
    for channel in color:
        if not _is_int(channel) or not 0 <= channel <= 255:
            raise InvalidColor(f"Color channels must be integers in 0-255, got {color!r}")
    return tuple(int(c) for c in color)


def _check_opacity(opacity: float) -> float:
    # NaN fails the comparison as well
    if not 0.0 <= opacity <= 1.0:
        raise InvalidOpacity(f"Opacity must be within [0, 1], got {opacity!r}")
    return float(opacity)


def _check_non_negative(value: int, name: str) -> int:
    if not _is_int(value) or value < 0:
        raise InvalidSize(f"{name} must be a non-negative integer, got {value!r}")
    return int(value)


def _check_coordinates(**coords) -> list[int]:
    for name, value in coords.items():
        if not _is_int(value):
            raise InvalidSize(f"{name} must be an integer, got {value!r}")
    return [int(v) for v in coords.values()]


class Canvas:
    """A width x height RGB8 image, row-major, origin at the top-left pixel.

    Draw operations mutate the pixels in place. Lines and rectangles are
    clipped per pixel; circles and ellipses must fit inside the canvas.
    """

    def __init__(self, width: int, height: int, fill_color: tuple):
        for name, value in (("width", width), ("height", height)):
            if not _is_int(value) or value <= 0:
                raise InvalidSize(f"{name} must be a positive integer, got {value!r}")
        self.width = int(width)
        self.height = int(height)
        color = _check_color(fill_color)
        self.pixels = np.full((self.height, self.width, 3), color, dtype=np.uint8)
        # Either a color tuple or a copy of the pixels the canvas was imported from
        self._background: tuple | np.ndarray = color

    @classmethod
    def _from_pixels(cls, pixels: np.ndarray) -> "Canvas":
        canvas = cls.__new__(cls)
        canvas.height, canvas.width = pixels.shape[:2]
        canvas.pixels = pixels
        canvas._background = pixels.copy()
        return canvas

    # --- Import / export ---

    @classmethod
    def from_png(cls, path) -> "Canvas":
        """Load an 8-bit RGB or RGBA PNG; ``clear()`` restores this image."""
        return cls._from_pixels(codec.decode_png(path))

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "Canvas":
        """Build a canvas from row-major RGB bytes of length width*height*3."""
        return cls._from_pixels(codec.decode_bytes(width, height, data))

    def to_png(self, path, overwrite: bool = True):
        """Save as an 8-bit RGB PNG. Raises FileExistsError if ``path`` exists
        and ``overwrite`` is false."""
        codec.encode_png(self.pixels, path, overwrite)

    def to_bytes(self) -> bytes:
        return codec.encode_bytes(self.pixels)

    # --- Pixel access ---

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_pixel(self, x: int, y: int) -> tuple:
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.width, self.height)
        return tuple(self.pixels[y, x].tolist())

    def set_pixel(self, x: int, y: int, color: tuple):
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.width, self.height)
        self.pixels[y, x] = _check_color(color)

    def set_pixel_transparent(self, x: int, y: int, color: tuple, opacity: float):
        """Blend ``color`` over the pixel at (x, y) with the given opacity."""
        x, y = _check_coordinates(x=x, y=y)
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.width, self.height)
        self.pixels[y, x] = blend(self.pixels[y, x].tolist(), color, opacity)

    def set_region_transparent(self, x: int, y: int, w: int, h: int,
                               color: tuple, opacity: float):
        """Blend ``color`` over the w x h block whose top-left pixel is (x, y).

        The whole block must lie on the canvas; otherwise OutOfBounds names
        the first corner that does not and nothing is drawn.
        """
        x, y = _check_coordinates(x=x, y=y)
        w = _check_non_negative(w, "w")
        h = _check_non_negative(h, "h")
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        if w == 0 or h == 0:
            return
        for cx, cy in ((x, y), (x + w - 1, y + h - 1)):
            if not self.in_bounds(cx, cy):
                raise OutOfBounds(cx, cy, self.width, self.height)
        self._composite_region(x, y, np.ones((h, w), dtype=np.float64), color, opacity)

    def get_pixels_rgb(self, x: int = 0, y: int = 0,
                       w: int | None = None, h: int | None = None) -> list[list[list[int]]]:
        """Return a 2D list of [r, g, b] values (row-major) for the given region."""
        if w is None:
            w = self.width - x
        if h is None:
            h = self.height - y
        # Clamp to canvas bounds
        x = max(0, min(x, self.width - 1))
        y = max(0, min(y, self.height - 1))
        w = max(0, min(w, self.width - x))
        h = max(0, min(h, self.height - y))
        return self.pixels[y:y + h, x:x + w].tolist()

    # --- Background ---

    def clear(self):
        """Reset to the fill color, or to the imported image for imported canvases."""
        self.pixels[:] = self._background

    def set_background_color(self, color: tuple):
        """Change what ``clear()`` restores. The pixels are not touched."""
        self._background = _check_color(color)

    def copy(self) -> "Canvas":
        other = Canvas._from_pixels(self.pixels.copy())
        other._background = (self._background.copy()
                             if isinstance(self._background, np.ndarray) else self._background)
        return other

    # --- Compositing ---

    def _composite_samples(self, samples: list, color: tuple, opacity: float):
        """Blend samples in order, dropping the ones outside the canvas."""
        dropped = 0
        for x, y, coverage in samples:
            if not self.in_bounds(x, y):
                dropped += 1
                continue
            base = self.pixels[y, x].tolist()
            self.pixels[y, x] = blend(base, color, coverage * opacity)
        if dropped:
            logger.debug("Clipped %d of %d samples outside %dx%d canvas",
                         dropped, len(samples), self.width, self.height)

    def _composite_region(self, left: int, top: int, coverage: np.ndarray,
                          color: tuple, opacity: float):
        h, w = coverage.shape
        region = self.pixels[top:top + h, left:left + w]
        region[:] = blend_array(region, color, coverage * opacity)

    def _require_inside(self, left: int, top: int, right: int, bottom: int, shape: str):
        if left < 0 or top < 0 or right >= self.width or bottom >= self.height:
            logger.debug("Rejected %s with bounding box (%d, %d)-(%d, %d) on %dx%d canvas",
                         shape, left, top, right, bottom, self.width, self.height)
            raise UnsupportedGeometry(
                f"{shape} bounding box ({left}, {top})-({right}, {bottom}) "
                f"exceeds the {self.width}x{self.height} canvas"
            )

    # --- Drawing operations ---

    def draw_line(self, x0: int, y0: int, x1: int, y1: int, color: tuple,
                  thickness: int, opacity: float):
        """Anti-aliased line from (x0, y0) to (x1, y1).

        ``thickness`` pixels wide across the minor axis; 0 draws nothing.
        Pixels outside the canvas are skipped.
        """
        x0, y0, x1, y1 = _check_coordinates(x0=x0, y0=y0, x1=x1, y1=y1)
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        thickness = _check_non_negative(thickness, "thickness")
        samples = line_samples(x0, y0, x1, y1, thickness, clip=(self.width, self.height))
        self._composite_samples(samples, color, opacity)

    def draw_rectangle(self, x0: int, y0: int, x1: int, y1: int, color: tuple,
                       thickness: int, opacity: float):
        """Axis-aligned rectangle between two opposite corners, both inclusive.

        ``thickness`` is added to the inside of the rectangle. If set to 0,
        the rectangle is filled.
        """
        x0, y0, x1, y1 = _check_coordinates(x0=x0, y0=y0, x1=x1, y1=y1)
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        thickness = _check_non_negative(thickness, "thickness")

        if thickness > 0:
            samples = rectangle_border_samples(x0, y0, x1, y1, thickness,
                                               clip=(self.width, self.height))
            self._composite_samples(samples, color, opacity)
            return

        left, top, right, bottom = normalize_corners(x0, y0, x1, y1)
        left, top = max(left, 0), max(top, 0)
        right, bottom = min(right, self.width - 1), min(bottom, self.height - 1)
        if left > right or top > bottom:
            logger.debug("Filled rectangle lies entirely outside the canvas")
            return
        coverage = np.ones((bottom - top + 1, right - left + 1), dtype=np.float64)
        self._composite_region(left, top, coverage, color, opacity)

    def draw_circle(self, cx: int, cy: int, radius: int, color: tuple,
                    thickness: int, opacity: float):
        """Circle centered on (cx, cy). Thickness 0 fills it.

        Raises UnsupportedGeometry, leaving the canvas unchanged, when the
        (2*radius + 1) bounding box does not fit inside the canvas.
        """
        cx, cy = _check_coordinates(cx=cx, cy=cy)
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        radius = _check_non_negative(radius, "radius")
        thickness = _check_non_negative(thickness, "thickness")
        self._require_inside(cx - radius, cy - radius, cx + radius, cy + radius, "circle")
        self._composite_region(cx - radius, cy - radius,
                               circle_coverage(radius, thickness), color, opacity)

    def draw_ellipse(self, cx: int, cy: int, rx: int, ry: int, color: tuple,
                     thickness: int, opacity: float):
        """Axis-aligned ellipse with semi-axes ``rx`` and ``ry``. Thickness 0 fills it.

        Thickness above 1 is accepted but the stroke width drifts around
        the ellipse.
        """
        cx, cy = _check_coordinates(cx=cx, cy=cy)
        color = _check_color(color)
        opacity = _check_opacity(opacity)
        rx = _check_non_negative(rx, "rx")
        ry = _check_non_negative(ry, "ry")
        thickness = _check_non_negative(thickness, "thickness")
        if rx == 0 or ry == 0:
            raise UnsupportedGeometry(f"Ellipse semi-axes must be positive, got {rx}x{ry}")
        self._require_inside(cx - rx, cy - ry, cx + rx, cy + ry, "ellipse")
        self._composite_region(cx - rx, cy - ry,
                               ellipse_coverage(rx, ry, thickness), color, opacity)

    # --- Command dispatch ---

    def execute(self, cmd: dict):
        action = cmd.get("action")
        method = getattr(self, f"_do_{action}", None)
        if method is None:
            raise ValueError(f"Unknown action: {action}")
        method(cmd)

    def _do_set_pixel(self, cmd: dict):
        self.set_pixel(cmd["x"], cmd["y"], cmd["color"])

    def _do_set_pixel_transparent(self, cmd: dict):
        self.set_pixel_transparent(cmd["x"], cmd["y"], cmd["color"], cmd["opacity"])

    def _do_set_region_transparent(self, cmd: dict):
        self.set_region_transparent(cmd["x"], cmd["y"], cmd["w"], cmd["h"],
                                    cmd["color"], cmd["opacity"])

    def _do_set_background_color(self, cmd: dict):
        self.set_background_color(cmd["color"])

    def _do_clear(self, cmd: dict):
        self.clear()

    def _do_draw_line(self, cmd: dict):
        self.draw_line(cmd["x0"], cmd["y0"], cmd["x1"], cmd["y1"],
                       cmd["color"], cmd["thickness"], cmd["opacity"])

    def _do_draw_rectangle(self, cmd: dict):
        self.draw_rectangle(cmd["x0"], cmd["y0"], cmd["x1"], cmd["y1"],
                            cmd["color"], cmd["thickness"], cmd["opacity"])

    def _do_draw_circle(self, cmd: dict):
        self.draw_circle(cmd["cx"], cmd["cy"], cmd["radius"],
                         cmd["color"], cmd["thickness"], cmd["opacity"])

    def _do_draw_ellipse(self, cmd: dict):
        self.draw_ellipse(cmd["cx"], cmd["cy"], cmd["rx"], cmd["ry"],
                          cmd["color"], cmd["thickness"], cmd["opacity"])
