"""Per-frame overlay geometry for the renderer.

Given a prepared (preview) or remapped (export) overlay state and a
query time in that state's domain, computes everything the compositor
needs to draw one frame: the zoom crop rectangle, where the cursor
hotspot lands in output pixels, and the geometry of any click ripples
still animating.  Nothing here touches pixels.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import CursorOverlayState, Rect, Size, SmoothedCursorPoint
from .utils import lerp, smoothstep
from .zoom_engine import zoom_crop_rect


# ── Click effect appearance ─────────────────────────────────────────

CLICK_MAX_OPACITY = 0.6       # ripple opacity at the moment of the click
CLICK_RING_WIDTH = 3.0        # px at the moment of the click
CLICK_MIN_RING_WIDTH = 1.5    # px as the ripple fades


@dataclass(frozen=True)
class ClickEffect:
    """One click ripple, in output coordinates."""
    x: float
    y: float
    radius: float
    opacity: float
    ring_width: float


@dataclass(frozen=True)
class FrameGeometry:
    crop_rect: Optional[Rect]
    cursor: Optional[Tuple[float, float]]
    click_effects: List[ClickEffect]


def lookup_position(
    points: Sequence[SmoothedCursorPoint], timestamp: float
) -> Optional[Tuple[float, float]]:
    """Interpolate the cursor position at *timestamp*.

    Returns (x, y) in overlay coordinates, clamped to the first / last
    point outside the track, or None if there is no data.
    """
    if not points:
        return None
    if timestamp <= points[0].timestamp:
        return points[0].x, points[0].y
    if timestamp >= points[-1].timestamp:
        return points[-1].x, points[-1].y

    # Binary search for the right interval
    lo, hi = 0, len(points) - 1
    while lo < hi - 1:
        mid = (lo + hi) // 2
        if points[mid].timestamp <= timestamp:
            lo = mid
        else:
            hi = mid

    a, b = points[lo], points[hi]
    dt = b.timestamp - a.timestamp
    if dt <= 1e-4:
        return a.x, a.y
    t = (timestamp - a.timestamp) / dt
    return lerp(a.x, b.x, t), lerp(a.y, b.y, t)


def map_to_output(
    x: float,
    y: float,
    source_size: Size,
    crop_rect: Optional[Rect] = None,
    output_size: Optional[Size] = None,
    recording_rect: Optional[Rect] = None,
) -> Tuple[float, float]:
    """Map an overlay-space point into output coordinates.

    With a crop active the point is moved into the crop and scaled so
    the crop fills *output_size* (the source size when omitted).  With a
    *recording_rect* the result is then aspect-fitted into that rect,
    as when the recording sits on a padded background.
    """
    out = output_size or source_size
    if crop_rect is not None and crop_rect.width > 0 and crop_rect.height > 0:
        x = (x - crop_rect.x) * (out.width / crop_rect.width)
        y = (y - crop_rect.y) * (out.height / crop_rect.height)
    elif output_size is not None and source_size.width > 0 and source_size.height > 0:
        x = x * (out.width / source_size.width)
        y = y * (out.height / source_size.height)

    if recording_rect is None or out.width <= 0 or out.height <= 0:
        return x, y

    scale = min(recording_rect.width / out.width, recording_rect.height / out.height)
    offset_x = recording_rect.mid_x - out.width * scale / 2
    offset_y = recording_rect.mid_y - out.height * scale / 2
    return offset_x + x * scale, offset_y + y * scale


def cursor_position(
    state: CursorOverlayState,
    timestamp: float,
    crop_rect: Optional[Rect] = None,
    output_size: Optional[Size] = None,
) -> Optional[Tuple[float, float]]:
    """Cursor hotspot position in output coordinates at *timestamp*."""
    if not state.settings.is_enabled:
        return None
    pos = lookup_position(state.smoothed_points, timestamp)
    if pos is None:
        return None
    return map_to_output(pos[0], pos[1], state.source_size, crop_rect, output_size)


def active_click_effects(
    state: CursorOverlayState,
    timestamp: float,
    crop_rect: Optional[Rect] = None,
    output_size: Optional[Size] = None,
) -> List[ClickEffect]:
    """Ripples for clicks still animating at *timestamp*.

    Each ripple grows to the configured max radius while fading out and
    thinning its ring, eased with smoothstep over the effect duration.
    """
    settings = state.settings
    duration = settings.click_effect_duration
    if not settings.is_enabled or not settings.click_effect_enabled or duration <= 0:
        return []

    effects: List[ClickEffect] = []
    for click in state.clicks:
        if not click.timestamp <= timestamp < click.timestamp + duration:
            continue
        eased = smoothstep((timestamp - click.timestamp) / duration)
        x, y = map_to_output(click.x, click.y, state.source_size, crop_rect, output_size)
        effects.append(ClickEffect(
            x=x,
            y=y,
            radius=settings.click_effect_max_radius * eased,
            opacity=CLICK_MAX_OPACITY * (1.0 - eased),
            ring_width=max(CLICK_MIN_RING_WIDTH, CLICK_RING_WIDTH * (1.0 - eased)),
        ))
    return effects


def frame_geometry(
    state: CursorOverlayState,
    timestamp: float,
    source_extent: Optional[Rect] = None,
    output_size: Optional[Size] = None,
) -> FrameGeometry:
    """Everything the compositor needs for the frame at *timestamp*.

    ``crop_rect`` is in *source_extent* space; cursor and ripple positions
    are in output coordinates either way.
    """
    extent = source_extent or Rect.from_size(state.source_size)
    crop = zoom_crop_rect(state, timestamp, extent)
    # Overlay points are relative to the extent origin
    local_crop = crop.offset(-extent.x, -extent.y) if crop is not None else None
    return FrameGeometry(
        crop_rect=crop,
        cursor=cursor_position(state, timestamp, local_crop, output_size),
        click_effects=active_click_effects(state, timestamp, local_crop, output_size),
    )
