"""Coverage rasterizers and the blend rule that composites them.

Lines and rectangle borders come out as ordered lists of ``(x, y, coverage)``
samples. Circles and ellipses come out as a float coverage array covering
their bounding box. Nothing in here touches a canvas.
"""

import math
import numpy as np


# Minor-axis positions this close to a pixel center are not split.
SUBPIXEL_EPSILON = 1e-5

Sample = tuple[int, int, float]


def blend(base: tuple, over: tuple, coverage: float) -> tuple:
    """Mix two colors. coverage=1.0 means all over, 0.0 means all base."""
    c = min(1.0, max(0.0, coverage))
    return tuple(min(255, max(0, math.floor(b * (1.0 - c) + o * c + 0.5)))
                 for b, o in zip(base, over))


def blend_array(base: np.ndarray, over: tuple, coverage: np.ndarray) -> np.ndarray:
    """Same rule as :func:`blend` for an (h, w, 3) region and (h, w) coverage."""
    c = np.clip(coverage, 0.0, 1.0)[:, :, np.newaxis]
    color = np.asarray(over, dtype=np.float64)
    result = base.astype(np.float64) * (1.0 - c) + color * c
    return np.clip(np.floor(result + 0.5), 0, 255).astype(np.uint8)


# --- Lines ---

def stroke_offsets(thickness: int) -> range:
    """Minor-axis offsets of the passes making up a stroke ``thickness`` wide."""
    half = thickness // 2
    return range(-half, thickness - half)


def _split(major: int, minor: float, x_major: bool) -> list[Sample]:
    """Share one step's intensity between the two pixels straddling ``minor``."""
    low = math.floor(minor)
    frac = minor - low
    if frac < SUBPIXEL_EPSILON:
        cells = [(low, 1.0)]
    elif frac > 1.0 - SUBPIXEL_EPSILON:
        cells = [(low + 1, 1.0)]
    else:
        cells = [(low, 1.0 - frac), (low + 1, frac)]
    if x_major:
        return [(major, m, c) for m, c in cells]
    return [(m, major, c) for m, c in cells]


def _walk(x0: int, y0: int, x1: int, y1: int) -> tuple:
    """(x_major, steps, major0, step, minor0, minor_delta) for a line; ties go to x."""
    dx = x1 - x0
    dy = y1 - y0
    if abs(dx) >= abs(dy):
        return True, abs(dx), x0, (1 if dx > 0 else -1), y0, dy
    return False, abs(dy), y0, (1 if dy > 0 else -1), x0, dx


def _visible_steps(major0: int, step: int, steps: int, limit: int) -> tuple[int, int]:
    """First and last step index whose major coordinate lies in [0, limit)."""
    if step > 0:
        return max(-major0, 0), min(limit - 1 - major0, steps)
    return max(major0 - limit + 1, 0), min(major0, steps)


def _minor_at(minor0: int, delta: int, steps: int, i: int) -> float:
    if steps == 0:
        return minor0
    return minor0 + delta * i / steps


def wu_samples(x0: int, y0: int, x1: int, y1: int, offset: int = 0,
               clip: tuple[int, int] | None = None) -> list[Sample]:
    """One single-pixel Wu pass from (x0, y0) to (x1, y1), start to end.

    ``offset`` shifts the pass along the minor axis (y for x-major lines,
    x for y-major lines). With ``clip=(width, height)`` only the steps whose
    major coordinate falls inside the canvas are walked.
    """
    x_major, steps, major0, step, minor0, delta = _walk(x0, y0, x1, y1)
    first, last = 0, steps
    if clip is not None:
        width, height = clip
        first, last = _visible_steps(major0, step, steps, width if x_major else height)

    samples = []
    for i in range(first, last + 1):
        minor = _minor_at(minor0 + offset, delta, steps, i)
        samples.extend(_split(major0 + i * step, minor, x_major))
    return samples


def _visible_offsets(x0: int, y0: int, x1: int, y1: int, offsets: range,
                     clip: tuple[int, int]) -> range:
    """The offsets whose pass can touch the canvas; a superset by at most a pixel."""
    x_major, steps, major0, step, minor0, delta = _walk(x0, y0, x1, y1)
    width, height = clip
    first, last = _visible_steps(major0, step, steps, width if x_major else height)
    if first > last:
        return range(0)
    ends = [_minor_at(minor0, delta, steps, i) for i in (first, last)]
    limit = height if x_major else width
    low = math.ceil(-1 - max(ends))
    high = math.floor(limit - min(ends))
    return range(max(offsets.start, low), min(offsets.stop, high + 1))


def line_samples(x0: int, y0: int, x1: int, y1: int, thickness: int,
                 clip: tuple[int, int] | None = None) -> list[Sample]:
    """All passes of a line, lowest offset first. Thickness 0 yields nothing."""
    offsets = stroke_offsets(thickness)
    if clip is not None:
        offsets = _visible_offsets(x0, y0, x1, y1, offsets, clip)
    samples = []
    for offset in offsets:
        samples.extend(wu_samples(x0, y0, x1, y1, offset, clip))
    return samples


# --- Rectangles ---

def normalize_corners(x0: int, y0: int, x1: int, y1: int) -> tuple[int, int, int, int]:
    """Return (left, top, right, bottom) with left <= right and top <= bottom."""
    return min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)


def _clip_range(r: range, limit: int) -> range:
    """Keep the values of a +1 or -1 stepped range that lie in [0, limit)."""
    if r.step > 0:
        return range(max(r.start, 0), min(r.stop, limit))
    return range(min(r.start, limit - 1), max(r.stop, -1), -1)


def rectangle_border_samples(x0: int, y0: int, x1: int, y1: int, thickness: int,
                             clip: tuple[int, int] | None = None) -> list[Sample]:
    """Border strokes grown inward, in edge order top, bottom, left, right.

    Every border pixel belongs to exactly one edge: top and bottom rows run
    the full width, left and right columns only the rows between them.
    """
    left, top, right, bottom = normalize_corners(x0, y0, x1, y1)
    depth = min(thickness, (right - left) // 2 + 1, (bottom - top) // 2 + 1)

    top_rows = range(top, top + depth)
    bottom_rows = range(bottom, max(bottom - depth, top + depth - 1), -1)
    left_cols = range(left, left + depth)
    right_cols = range(right, max(right - depth, left + depth - 1), -1)
    inner_top, inner_bottom = top + depth, bottom - depth
    if clip is not None:
        width, height = clip
        top_rows, bottom_rows = _clip_range(top_rows, height), _clip_range(bottom_rows, height)
        left_cols, right_cols = _clip_range(left_cols, width), _clip_range(right_cols, width)

    samples = []
    for y in list(top_rows) + list(bottom_rows):
        samples.extend(wu_samples(left, y, right, y, clip=clip))
    if inner_top <= inner_bottom:
        for x in list(left_cols) + list(right_cols):
            samples.extend(wu_samples(x, inner_top, x, inner_bottom, clip=clip))
    return samples


# --- Circles and ellipses ---

def _ramp(signed: np.ndarray, edge: float) -> np.ndarray:
    # 1 well inside ``edge``, 0 well outside, linear across a 1px band
    return np.clip(edge + 0.5 - signed, 0.0, 1.0)


def band_coverage(signed: np.ndarray, thickness: int) -> np.ndarray:
    """Coverage from a signed boundary distance (negative inside).

    Thickness 0 fills; otherwise the band is centered on the boundary.
    """
    if thickness == 0:
        return _ramp(signed, 0.0)
    half = thickness / 2.0
    return np.clip(_ramp(signed, half) - _ramp(signed, -half), 0.0, 1.0)


def _box_offsets(rx: int, ry: int) -> tuple[np.ndarray, np.ndarray]:
    xs = np.arange(-rx, rx + 1, dtype=np.float64)
    ys = np.arange(-ry, ry + 1, dtype=np.float64)
    return np.meshgrid(xs, ys)


def circle_coverage(radius: int, thickness: int) -> np.ndarray:
    """(2r+1, 2r+1) coverage array, center at [radius, radius]."""
    xx, yy = _box_offsets(radius, radius)
    return band_coverage(np.hypot(xx, yy) - radius, thickness)


def ellipse_coverage(rx: int, ry: int, thickness: int) -> np.ndarray:
    """(2ry+1, 2rx+1) coverage array for semi-axes ``rx`` and ``ry``.

    The distance to the boundary is approximated by (f - 1) / |grad f| with
    f = (x/rx)^2 + (y/ry)^2. This is close near the boundary and drifts
    away from it, which is why thick ellipse strokes look uneven.
    """
    xx, yy = _box_offsets(rx, ry)
    f = (xx / rx) ** 2 + (yy / ry) ** 2
    grad = 2.0 * np.sqrt((xx / rx ** 2) ** 2 + (yy / ry ** 2) ** 2)
    with np.errstate(divide="ignore", invalid="ignore"):
        signed = np.where(grad > 0.0, (f - 1.0) / grad, -np.inf)
    return band_coverage(signed, thickness)
