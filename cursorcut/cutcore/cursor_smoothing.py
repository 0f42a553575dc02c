"""Cursor telemetry extraction and Catmull-Rom smoothing.

The recorder stores raw events in capture-device coordinates (bottom-left
origin).  This module converts them into overlay space (top-left origin,
one unit = one source pixel), separates out clicks and keystroke
positions for auto-zoom, and resamples the sparse, jittery move stream
into one cursor position per output frame.

Resampling uses a **centripetal Catmull-Rom** spline (alpha = 0.5)
evaluated in its cubic Bézier form.  Centripetal parameterisation avoids
the cusps and self-intersections the uniform variant produces when the
cursor doubles back, and every denominator is bounded away from zero so
degenerate input (duplicates, reversals) still yields finite output.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import (
    CursorClick,
    CursorMetadata,
    CursorStyle,
    EventType,
    InteractionPoint,
    MouseButton,
    Size,
    SmoothedCursorPoint,
)

logger = logging.getLogger(__name__)


# ── Tuning constants ────────────────────────────────────────────────

MIN_SEGMENT_DURATION = 1e-4   # s; shorter raw intervals hold position
CATMULL_ROM_ALPHA = 0.5       # 0 = uniform, 0.5 = centripetal, 1 = chordal
MIN_KNOT_DISTANCE = 0.001     # px; floor for knot spacing
CIRCLE_DOT_BASE_SIZE = 24.0   # px at size 1.0

# Pixel hotspot and image size of the platform cursors at 1x, used when
# the platform does not report its own.
SYSTEM_CURSOR_HOTSPOTS: Dict[CursorStyle, Tuple[float, float]] = {
    CursorStyle.ARROW: (4.0, 4.0),
    CursorStyle.POINTER: (6.0, 1.0),
    CursorStyle.CROSSHAIR: (8.0, 8.0),
}
SYSTEM_CURSOR_SIZES: Dict[CursorStyle, Tuple[float, float]] = {
    CursorStyle.ARROW: (17.0, 23.0),
    CursorStyle.POINTER: (18.0, 18.0),
    CursorStyle.CROSSHAIR: (16.0, 16.0),
}

_POSITION_EVENTS = {EventType.MOVE, EventType.CLICK, EventType.RELEASE, EventType.SCROLL}

RawPosition = Tuple[float, float, float]  # (timestamp, x, y)


@dataclass
class Interactions:
    """Clicks and keystroke positions extracted from telemetry."""
    clicks: List[CursorClick]
    key_interactions: List[InteractionPoint]
    source_size: Size


# ── Coordinate conversion ───────────────────────────────────────────


def to_overlay_point(metadata: CursorMetadata, raw_x: float, raw_y: float) -> Tuple[float, float]:
    """Convert a capture-space point (bottom-left origin) to overlay space."""
    x = raw_x - metadata.capture_origin_x
    y = metadata.effective_display_height - raw_y - metadata.capture_origin_y
    return x, y


def extract_interactions(metadata: CursorMetadata) -> Interactions:
    """Pull clicks and key-press positions out of the telemetry.

    Clicks keep their button (left when the recorder didn't say).  Key
    presses carry only the cursor position at the time of the keystroke.
    """
    clicks: List[CursorClick] = []
    keys: List[InteractionPoint] = []
    for event in metadata.events:
        if event.type is EventType.CLICK:
            x, y = to_overlay_point(metadata, event.x, event.y)
            clicks.append(CursorClick(
                timestamp=event.timestamp, x=x, y=y,
                button=event.button or MouseButton.LEFT,
            ))
        elif event.type is EventType.KEY_DOWN:
            x, y = to_overlay_point(metadata, event.x, event.y)
            keys.append(InteractionPoint(timestamp=event.timestamp, x=x, y=y))

    clicks.sort(key=lambda c: c.timestamp)
    keys.sort(key=lambda k: k.timestamp)
    logger.debug("Extracted %d clicks, %d key interactions", len(clicks), len(keys))
    return Interactions(clicks=clicks, key_interactions=keys, source_size=metadata.source_size)


def raw_positions(metadata: CursorMetadata) -> List[RawPosition]:
    """Cursor samples (move, click, release, scroll) in overlay space, time-ordered."""
    samples = []
    for event in metadata.events:
        if event.type in _POSITION_EVENTS:
            x, y = to_overlay_point(metadata, event.x, event.y)
            samples.append((event.timestamp, x, y))
    samples.sort(key=lambda s: s[0])
    return samples


# ── Catmull-Rom resampling ──────────────────────────────────────────


def _knot(dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    dist = np.hypot(dx, dy)
    return np.power(np.maximum(dist, MIN_KNOT_DISTANCE), CATMULL_ROM_ALPHA)


def _catmull_rom(
    ts: np.ndarray, xs: np.ndarray, ys: np.ndarray, times: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Evaluate the centripetal spline through (ts, xs, ys) at *times*."""
    n = len(ts)
    i1 = np.clip(np.searchsorted(ts, times, side="right") - 1, 0, n - 1)
    i0 = np.maximum(i1 - 1, 0)
    i2 = np.minimum(i1 + 1, n - 1)
    i3 = np.minimum(i2 + 1, n - 1)

    x0, x1, x2, x3 = xs[i0], xs[i1], xs[i2], xs[i3]
    y0, y1, y2, y3 = ys[i0], ys[i1], ys[i2], ys[i3]

    seg = ts[i2] - ts[i1]
    hold = seg < MIN_SEGMENT_DURATION
    u = np.clip((times - ts[i1]) / np.where(hold, 1.0, seg), 0.0, 1.0)

    d01 = _knot(x1 - x0, y1 - y0)
    d12 = _knot(x2 - x1, y2 - y1)
    d23 = _knot(x3 - x2, y3 - y2)

    # Bézier control points of the Catmull-Rom segment p1→p2
    w1 = 3.0 * d01 * (d01 + d12)
    c1x = (d01 * d01 * x2 - d12 * d12 * x0 + (2 * d01 * d01 + 3 * d01 * d12 + d12 * d12) * x1) / w1
    c1y = (d01 * d01 * y2 - d12 * d12 * y0 + (2 * d01 * d01 + 3 * d01 * d12 + d12 * d12) * y1) / w1
    w2 = 3.0 * d23 * (d23 + d12)
    c2x = (d23 * d23 * x1 - d12 * d12 * x3 + (2 * d23 * d23 + 3 * d23 * d12 + d12 * d12) * x2) / w2
    c2y = (d23 * d23 * y1 - d12 * d12 * y3 + (2 * d23 * d23 + 3 * d23 * d12 + d12 * d12) * y2) / w2

    mu = 1.0 - u
    b0 = mu * mu * mu
    b1 = 3.0 * mu * mu * u
    b2 = 3.0 * mu * u * u
    b3 = u * u * u
    x = b0 * x1 + b1 * c1x + b2 * c2x + b3 * x2
    y = b0 * y1 + b1 * c1y + b2 * c2y + b3 * y2

    x = np.where(hold, x1, x)
    y = np.where(hold, y1, y)

    # Overflow on absurd coordinates falls back to the linear chord
    bad = ~(np.isfinite(x) & np.isfinite(y))
    if bad.any():
        x = np.where(bad, x1 + (x2 - x1) * u, x)
        y = np.where(bad, y1 + (y2 - y1) * u, y)
    return x, y


def smooth_positions(
    positions: Sequence[RawPosition], output_frame_rate: float
) -> List[SmoothedCursorPoint]:
    """Resample raw cursor samples to one point per output frame.

    Samples run from t=0 to the last raw timestamp (inclusive) in steps
    of ``1 / output_frame_rate``.  Fewer than two raw samples are
    returned as-is; a zero-length recording yields no points.
    """
    if output_frame_rate <= 0:
        raise ValueError(f"Output frame rate must be positive, got {output_frame_rate}")
    if len(positions) < 2:
        return [SmoothedCursorPoint(timestamp=t, x=x, y=y) for t, x, y in positions]

    ordered = sorted(positions, key=lambda p: p[0])
    total = ordered[-1][0]
    if not math.isfinite(total) or total < MIN_SEGMENT_DURATION:
        return []

    ts = np.array([p[0] for p in ordered], dtype=float)
    xs = np.array([p[1] for p in ordered], dtype=float)
    ys = np.array([p[2] for p in ordered], dtype=float)

    count = int(math.floor(total * output_frame_rate + 1e-9)) + 1
    times = np.arange(count, dtype=float) / output_frame_rate
    with np.errstate(over="ignore", invalid="ignore"):
        sx, sy = _catmull_rom(ts, xs, ys, times)

    logger.debug(
        "Smoothed %d raw samples into %d points at %.0f fps",
        len(ordered), count, output_frame_rate,
    )
    return [
        SmoothedCursorPoint(timestamp=float(t), x=float(x), y=float(y))
        for t, x, y in zip(times, sx, sy)
    ]


# ── Cursor image geometry ───────────────────────────────────────────


def cursor_image_size(
    style: CursorStyle, size: float, backing_scale_factor: float = 1.0
) -> Tuple[float, float]:
    """Pixel size of the rendered cursor image."""
    if not style.is_system:
        s = CIRCLE_DOT_BASE_SIZE * size
        return s, s
    w, h = SYSTEM_CURSOR_SIZES[style]
    scale = backing_scale_factor * size
    return w * scale, h * scale


def cursor_hotspot(
    style: CursorStyle,
    size: float,
    backing_scale_factor: float = 1.0,
    platform_hotspot: Optional[Tuple[float, float]] = None,
) -> Tuple[float, float]:
    """Hotspot of the rendered cursor image, in image pixels.

    The dot style is centred; system cursors scale the platform's pixel
    hotspot by ``backing_scale_factor * size``.
    """
    if not style.is_system:
        center = CIRCLE_DOT_BASE_SIZE * size / 2
        return center, center
    hx, hy = platform_hotspot if platform_hotspot is not None else SYSTEM_CURSOR_HOTSPOTS[style]
    scale = backing_scale_factor * size
    return hx * scale, hy * scale
