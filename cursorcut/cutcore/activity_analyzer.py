"""Analyze click + keyboard activity to auto-generate zoom regions.

Clicks and keystrokes are merged into one time-ordered interaction
stream and split into bursts wherever the gap between consecutive
interactions exceeds the sensitivity's cluster window.  Each burst that
is dense enough becomes a :class:`ZoomRegion`:

* **Focus** — centroid of the burst's interaction positions, clamped so
  the zoomed crop box never leaves the source frame.
* **Span** — starts ``LEAD_TIME`` before the first interaction (so the
  viewer sees what triggers it) and holds for the sensitivity's hold
  duration after the last one.

Regions that would start less than ``REGION_MERGE_GAP`` after the
previous one ends are merged instead of producing a zoom-out / zoom-in
flicker.  Keyboard-only bursts are as valid as click bursts.

The regions are ordinary editable objects; the editor may move, resize
or disable them before they are expanded into keyframes.
"""

import logging
from typing import List, Sequence, Tuple

from .models import (
    AutoZoomSensitivity,
    CursorClick,
    InteractionPoint,
    Size,
    ZoomRegion,
)

logger = logging.getLogger(__name__)


# ── Tuning constants ────────────────────────────────────────────────

LEAD_TIME = 0.3          # s before the first interaction the region starts
REGION_MERGE_GAP = 1.0   # s; closer regions are merged

Burst = Tuple[float, float, float, float]  # (start, end, center_x, center_y)


def clamp_focus_point(
    x: float, y: float, zoom: float, source_size: Size
) -> Tuple[float, float]:
    """Clamp a focus point so a ``source_size / zoom`` crop around it fits the source."""
    zoom = max(zoom, 1.0)
    half_w = source_size.width / zoom / 2
    half_h = source_size.height / zoom / 2
    fx = max(half_w, min(source_size.width - half_w, x))
    fy = max(half_h, min(source_size.height - half_h, y))
    return fx, fy


def _centroid(points: Sequence[InteractionPoint]) -> Tuple[float, float]:
    n = len(points)
    return sum(p.x for p in points) / n, sum(p.y for p in points) / n


def _find_bursts(
    interactions: Sequence[InteractionPoint], sensitivity: AutoZoomSensitivity
) -> List[Burst]:
    """Split the time-ordered stream at gaps wider than the cluster window."""
    bursts: List[Burst] = []
    current: List[InteractionPoint] = []

    def close(group: List[InteractionPoint]) -> None:
        if len(group) >= sensitivity.minimum_cluster_size:
            cx, cy = _centroid(group)
            bursts.append((group[0].timestamp, group[-1].timestamp, cx, cy))

    for point in interactions:
        if current and point.timestamp - current[-1].timestamp > sensitivity.cluster_window:
            close(current)
            current = [point]
        else:
            current.append(point)
    if current:
        close(current)
    return bursts


def generate_zoom_regions(
    clicks: Sequence[CursorClick],
    key_interactions: Sequence[InteractionPoint],
    sensitivity: AutoZoomSensitivity,
    zoom_level: float,
    source_size: Size,
) -> List[ZoomRegion]:
    """Cluster interaction bursts into zoom regions (source time).

    Returns regions sorted by start time.  No interactions, or no burst
    dense enough for *sensitivity*, yields an empty list.
    """
    interactions = [InteractionPoint(c.timestamp, c.x, c.y) for c in clicks]
    interactions.extend(key_interactions)
    interactions.sort(key=lambda p: p.timestamp)

    logger.info(
        "Zoom analysis: %d clicks, %d key interactions, source=%dx%d, zoom=%.1f, %s",
        len(clicks), len(key_interactions),
        int(source_size.width), int(source_size.height),
        zoom_level, sensitivity.value,
    )
    if not interactions:
        return []

    bursts = _find_bursts(interactions, sensitivity)
    for i, (start, end, cx, cy) in enumerate(bursts):
        logger.debug("  burst[%d] center=(%.0f,%.0f) t=%.2f-%.2f", i, cx, cy, start, end)
    if not bursts:
        return []

    # Pad each burst and merge spans that nearly touch
    merged: List[Burst] = []
    for start, end, cx, cy in bursts:
        region_start = max(0.0, start - LEAD_TIME)
        region_end = end + sensitivity.hold_duration
        if merged and region_start - merged[-1][1] < REGION_MERGE_GAP:
            prev_start, _, px, py = merged[-1]
            merged[-1] = (prev_start, region_end, (px + cx) / 2, (py + cy) / 2)
        else:
            merged.append((region_start, region_end, cx, cy))

    regions: List[ZoomRegion] = []
    for start, end, cx, cy in merged:
        fx, fy = clamp_focus_point(cx, cy, zoom_level, source_size)
        logger.debug(
            "  region: focus raw=(%.0f,%.0f) clamped=(%.0f,%.0f) t=%.2f-%.2f",
            cx, cy, fx, fy, start, end,
        )
        regions.append(ZoomRegion(
            start_time=start,
            end_time=end,
            zoom_level=zoom_level,
            focus_x=fx,
            focus_y=fy,
        ))

    logger.info("Generated %d zoom regions from %d bursts", len(regions), len(bursts))
    return regions
