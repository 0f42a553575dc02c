"""Zoom engine — expands zoom regions into keyframes and interpolates them.

Keyframe semantics: the transition *into* keyframe ``k`` starts at the
timestamp of keyframe ``k-1`` and lasts ``k.easing_duration`` seconds,
eased with smoothstep.  A zero easing duration is an instant cut to
``k``'s values.  Because of that, each region needs explicit "hold"
keyframes to anchor when its transitions begin::

    [start @1.0] → [hold @1.0] → [zoom-in peak] → [hold @peak] → [zoom-out @1.0]

so the zoom-in finishes exactly as the region starts and the zoom-out
finishes exactly as it ends.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .models import (
    AutoZoomSensitivity,
    CursorOverlayState,
    Rect,
    Size,
    ZoomKeyframe,
    ZoomRegion,
)
from .utils import lerp, smoothstep

logger = logging.getLogger(__name__)


MIN_HOLD_TIME = 0.01     # s; earliest hold keyframe / shortest peak hold
ZOOM_EPSILON = 0.001     # zoom at or below 1 + this is treated as full frame
EASING_EPSILON = 0.001   # s; shorter easing is an instant cut


def zoom_keyframes(
    regions: Sequence[ZoomRegion],
    sensitivity: AutoZoomSensitivity,
    source_size: Size,
) -> List[ZoomKeyframe]:
    """Expand enabled *regions* into a time-sorted keyframe list.

    A single region yields exactly five keyframes, starting and ending at
    full frame; each further region adds four (the opening full-frame
    keyframe is shared).  Disabled regions contribute nothing and an
    empty result means no zoom anywhere.
    """
    enabled = sorted((r for r in regions if r.is_enabled), key=lambda r: r.start_time)
    if not enabled:
        return []

    cx, cy = source_size.width / 2, source_size.height / 2
    zoom_in = sensitivity.zoom_in_duration
    zoom_out = sensitivity.zoom_out_duration

    keyframes: List[ZoomKeyframe] = [ZoomKeyframe(0.0, 1.0, cx, cy, 0.0)]
    for region in enabled:
        hold_time = max(MIN_HOLD_TIME, region.start_time - zoom_in)
        peak_hold_end = max(region.start_time + MIN_HOLD_TIME, region.end_time - zoom_out)
        keyframes.extend([
            ZoomKeyframe(hold_time, 1.0, cx, cy, 0.0),
            ZoomKeyframe(region.start_time, region.zoom_level,
                         region.focus_x, region.focus_y, zoom_in),
            ZoomKeyframe(peak_hold_end, region.zoom_level,
                         region.focus_x, region.focus_y, 0.0),
            ZoomKeyframe(region.end_time, 1.0, cx, cy, zoom_out),
        ])

    keyframes.sort(key=lambda k: k.timestamp)
    logger.debug("Expanded %d zoom regions into %d keyframes", len(enabled), len(keyframes))
    return keyframes


def interpolate_zoom(
    keyframes: Sequence[ZoomKeyframe], timestamp: float
) -> Tuple[float, float, float]:
    """Returns (zoom, focus_x, focus_y) at *timestamp*.

    Outside the keyframe span the nearest end keyframe's values hold.
    """
    if not keyframes:
        return 1.0, 0.0, 0.0
    first, last = keyframes[0], keyframes[-1]
    if timestamp <= first.timestamp:
        return first.zoom_level, first.focus_x, first.focus_y
    if timestamp >= last.timestamp:
        return last.zoom_level, last.focus_x, last.focus_y

    prev_idx = 0
    for i, kf in enumerate(keyframes):
        if kf.timestamp <= timestamp:
            prev_idx = i
        else:
            break
    prev = keyframes[prev_idx]
    nxt = keyframes[min(prev_idx + 1, len(keyframes) - 1)]

    if nxt.easing_duration <= EASING_EPSILON:
        return nxt.zoom_level, nxt.focus_x, nxt.focus_y

    eased = smoothstep((timestamp - prev.timestamp) / nxt.easing_duration)
    return (
        lerp(prev.zoom_level, nxt.zoom_level, eased),
        lerp(prev.focus_x, nxt.focus_x, eased),
        lerp(prev.focus_y, nxt.focus_y, eased),
    )


def crop_rect_for(
    zoom: float, focus_x: float, focus_y: float, source_extent: Rect
) -> Optional[Rect]:
    """Crop rectangle for *zoom* centred on the focus point, or None at full frame.

    The focus point is relative to the extent's origin.  The rectangle is
    shifted, never resized, to stay inside *source_extent*.
    """
    if zoom <= 1.0 + ZOOM_EPSILON:
        return None
    w = source_extent.width / zoom
    h = source_extent.height / zoom
    x = source_extent.x + focus_x - w / 2
    y = source_extent.y + focus_y - h / 2
    x = max(source_extent.x, min(source_extent.max_x - w, x))
    y = max(source_extent.y, min(source_extent.max_y - h, y))
    return Rect(x, y, w, h)


def zoom_crop_rect(
    state: CursorOverlayState, timestamp: float, source_extent: Rect
) -> Optional[Rect]:
    """Zoom crop for the frame at *timestamp* in the state's time domain."""
    if not state.settings.auto_zoom_enabled or not state.zoom_keyframes:
        return None
    zoom, fx, fy = interpolate_zoom(state.zoom_keyframes, timestamp)
    return crop_rect_for(zoom, fx, fy, source_extent)
