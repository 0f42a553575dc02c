"""Export remapping — moves overlay data from source time to composition time.

Preview shows the raw recording, so a prepared :class:`CursorOverlayState`
is stamped in source time.  Export renders the edited timeline, so every
smoothed point, click and zoom keyframe has to be re-stamped with the
composition time at which its source moment is played.

The reverse lookup (source → composition) searches the remap table for
the entry whose source time is nearest; items further than
``REVERSE_LOOKUP_TOLERANCE`` from every entry fall inside a cut segment
and are dropped.  The tolerance trades recall near segment edges against
leakage from cut ranges, so it is a keyword argument rather than a fixed
policy.

Cuts make the source time jump between two adjacent table entries.  The
cursor would teleport there, so :func:`inject_cursor_bridges` adds a
short eased run of points across each jump.
"""

import logging
from bisect import bisect_left
from dataclasses import replace
from typing import List, Optional, Sequence

from .models import (
    MAX_SPEED,
    CursorClick,
    CursorOverlayState,
    SmoothedCursorPoint,
    TimeDomain,
    TimeRemapTable,
    ZoomKeyframe,
)
from .utils import lerp, smoothstep
from .zoom_engine import interpolate_zoom

logger = logging.getLogger(__name__)


# ── Tuning constants ────────────────────────────────────────────────

REVERSE_LOOKUP_TOLERANCE = 1.0   # s of source time
BRIDGE_POINT_COUNT = 12          # synthesized points per cut
BRIDGE_JUMP_THRESHOLD = 0.1      # s of source time beyond what playback can cover


def _is_jump(table: TimeRemapTable, i: int) -> bool:
    """True when entries i → i+1 skip source time rather than play it."""
    comp = table.composition_times
    src = table.source_times
    comp_delta = comp[i + 1] - comp[i]
    src_delta = src[i + 1] - src[i]
    return src_delta > comp_delta * MAX_SPEED + BRIDGE_JUMP_THRESHOLD


def find_source_jumps(table: TimeRemapTable) -> List[int]:
    """Indices ``i`` where a cut lies between entry ``i`` and ``i + 1``."""
    return [i for i in range(len(table) - 1) if _is_jump(table, i)]


def composition_time_for_source_time(
    source_time: float,
    table: TimeRemapTable,
    tolerance: float = REVERSE_LOOKUP_TOLERANCE,
) -> Optional[float]:
    """Reverse-map *source_time* through *table*.

    Inside a played stretch the result is interpolated between the two
    bracketing entries; otherwise the nearest entry's composition time
    is used if it lies within *tolerance*.  Returns None when nothing is
    close enough.  The empty (identity) table returns *source_time*.
    """
    if not table.entries:
        return source_time

    src = table.source_times
    comp = table.composition_times
    hi = bisect_left(src, source_time)

    if 0 < hi < len(src) and not _is_jump(table, hi - 1):
        lo = hi - 1
        span = src[hi] - src[lo]
        if span <= 1e-9:
            return comp[lo]
        frac = (source_time - src[lo]) / span
        return comp[lo] + frac * (comp[hi] - comp[lo])

    best: Optional[int] = None
    best_dist = float("inf")
    for idx in (hi - 1, hi):
        if 0 <= idx < len(src):
            dist = abs(src[idx] - source_time)
            if dist < best_dist:
                best, best_dist = idx, dist
    if best is None or best_dist >= tolerance:
        return None
    return comp[best]


def _nearest_point_before(points: Sequence[SmoothedCursorPoint], t: float) -> Optional[SmoothedCursorPoint]:
    candidate = None
    for p in points:
        if p.timestamp <= t:
            candidate = p
        else:
            break
    return candidate


def _nearest_point_after(points: Sequence[SmoothedCursorPoint], t: float) -> Optional[SmoothedCursorPoint]:
    for p in points:
        if p.timestamp > t:
            return p
    return None


def inject_cursor_bridges(
    remapped_points: Sequence[SmoothedCursorPoint],
    remap_table: TimeRemapTable,
) -> List[SmoothedCursorPoint]:
    """Add eased cursor motion across every cut in *remap_table*.

    For each source-time jump, ``BRIDGE_POINT_COUNT`` points are spread
    over the composition-time gap at the jump, easing from the last
    cursor position before the cut to the first one after it.  The
    merged sequence is sorted by timestamp.
    """
    points = sorted(remapped_points, key=lambda p: p.timestamp)
    if not points:
        return points

    comp = remap_table.composition_times
    bridges: List[SmoothedCursorPoint] = []
    for i in find_source_jumps(remap_table):
        gap_start, gap_end = comp[i], comp[i + 1]
        before = _nearest_point_before(points, gap_start) or points[0]
        after = _nearest_point_after(points, gap_end) or points[-1]

        for k in range(BRIDGE_POINT_COUNT):
            frac = (k + 1) / (BRIDGE_POINT_COUNT + 1)
            eased = smoothstep(frac)
            bridges.append(SmoothedCursorPoint(
                timestamp=lerp(gap_start, gap_end, frac),
                x=lerp(before.x, after.x, eased),
                y=lerp(before.y, after.y, eased),
            ))
        logger.debug(
            "Bridge at %.3fs: (%.0f,%.0f) -> (%.0f,%.0f)",
            gap_start, before.x, before.y, after.x, after.y,
        )

    if not bridges:
        return points
    merged = points + bridges
    merged.sort(key=lambda p: p.timestamp)
    return merged


def _remap_keyframes(
    state: CursorOverlayState,
    remap_table: TimeRemapTable,
    tolerance: float,
) -> List[ZoomKeyframe]:
    """Re-stamp zoom keyframes, re-anchoring the zoom wherever a cut dropped some.

    A keyframe only defines the transition that ends at it, so losing its
    predecessors to a cut would stretch that transition back to the last
    surviving keyframe.  The first survivor after a dropped run therefore
    holds the previous zoom up to the cut, then snaps to the zoom preview
    shows at the first source moment played after it.
    """
    source_kfs = sorted(state.zoom_keyframes, key=lambda k: k.timestamp)
    src = remap_table.source_times
    comp = remap_table.composition_times

    keyframes: List[ZoomKeyframe] = []
    last_dropped: Optional[ZoomKeyframe] = None
    for kf in source_kfs:
        t = composition_time_for_source_time(kf.timestamp, remap_table, tolerance)
        if t is None:
            last_dropped = kf
            continue
        if last_dropped is not None:
            resume = min(bisect_left(src, last_dropped.timestamp), len(src) - 1)
            cut_time = min(comp[resume], t)
            if keyframes:
                held = replace(keyframes[-1], timestamp=cut_time, easing_duration=0.0)
            else:
                held = ZoomKeyframe(cut_time, 1.0, state.source_size.width / 2,
                                    state.source_size.height / 2, 0.0)
            zoom, fx, fy = interpolate_zoom(source_kfs, src[resume])
            keyframes.append(held)
            if (zoom, fx, fy) != (held.zoom_level, held.focus_x, held.focus_y):
                keyframes.append(ZoomKeyframe(cut_time, zoom, fx, fy, 0.0))
            logger.debug(
                "Zoom re-anchored at %.3fs: %.2fx -> %.2fx", cut_time, held.zoom_level, zoom,
            )
            last_dropped = None
        keyframes.append(replace(kf, timestamp=t))

    keyframes.sort(key=lambda k: k.timestamp)
    return keyframes


def remap_for_export(
    state: CursorOverlayState,
    remap_table: TimeRemapTable,
    tolerance: float = REVERSE_LOOKUP_TOLERANCE,
) -> CursorOverlayState:
    """Convert a preview-domain state into the export (composition) domain.

    Items that fall in cut ranges are dropped.  With an empty table there
    is no output timeline for the cursor, so all smoothed points are
    dropped while clicks and keyframes keep their timestamps.
    """
    if state.domain is not TimeDomain.PREVIEW:
        raise ValueError("remap_for_export expects a preview-domain overlay state")

    points: List[SmoothedCursorPoint] = []
    if remap_table.entries:
        last_time = float("-inf")
        for p in state.smoothed_points:
            t = composition_time_for_source_time(p.timestamp, remap_table, tolerance)
            # Points inside a cut collapse onto the boundary; keep the first
            if t is None or t <= last_time:
                continue
            points.append(SmoothedCursorPoint(timestamp=t, x=p.x, y=p.y))
            last_time = t
        points = inject_cursor_bridges(points, remap_table)

    clicks: List[CursorClick] = []
    for c in state.clicks:
        t = composition_time_for_source_time(c.timestamp, remap_table, tolerance)
        if t is not None:
            clicks.append(replace(c, timestamp=t))

    keyframes = _remap_keyframes(state, remap_table, tolerance)

    logger.info(
        "Export remap: points %d -> %d, clicks %d -> %d, zoom keyframes %d -> %d",
        len(state.smoothed_points), len(points),
        len(state.clicks), len(clicks),
        len(state.zoom_keyframes), len(keyframes),
    )
    return replace(
        state,
        smoothed_points=points,
        clicks=clicks,
        zoom_keyframes=keyframes,
        domain=TimeDomain.EXPORT,
    )
