"""Timeline remapping — segments → composition/source time table.

The editor splits a recording into :class:`Segment` objects, each with
its own playback speed and an enabled flag.  Export renders the enabled
segments back-to-back, so every time-dependent overlay signal has to be
moved from *source* time (the recording) to *composition* time (the
output).  :func:`build_time_remap_table` produces the densely sampled
:class:`TimeRemapTable` used for that mapping.

Speed changes between consecutive enabled segments are not applied
instantly: a short ramp zone straddles each boundary, split into
micro-pieces whose speed follows a smoothstep curve between the two
segment speeds.  Integrating the eased speed piece by piece keeps source
and composition time consistent through the ramp.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .models import MAX_SPEED, MIN_SPEED, Segment, TimeRemapEntry, TimeRemapTable
from .utils import smoothstep

logger = logging.getLogger(__name__)


# ── Tuning constants ────────────────────────────────────────────────

HALF_RAMP_DURATION = 0.15        # s of source time on each side of a boundary
RAMP_STEPS = 5                   # micro-pieces per ramp half
SPEED_EPSILON = 0.01             # speeds closer than this need no ramp
REMAP_SAMPLES_PER_SECOND = 60.0  # table density, per second of composition time
MIN_SPLIT_GAP = 0.05             # s; splits closer than this are rejected


@dataclass(frozen=True)
class RemapPiece:
    """A source range played at a constant speed."""
    source_start: float
    source_end: float
    speed: float

    @property
    def source_duration(self) -> float:
        return self.source_end - self.source_start

    @property
    def composition_duration(self) -> float:
        return self.source_duration / self.speed


@dataclass(frozen=True)
class _RampZone:
    pre_duration: float   # ramp length inside the earlier segment
    post_duration: float  # ramp length inside the later segment
    from_speed: float
    to_speed: float

    @property
    def total(self) -> float:
        return self.pre_duration + self.post_duration

    def speed_at(self, progress: float) -> float:
        eased = smoothstep(progress)
        return self.from_speed + (self.to_speed - self.from_speed) * eased


def enabled_segments(segments: Iterable[Segment]) -> List[Segment]:
    """Enabled segments in source-time order."""
    return sorted((s for s in segments if s.is_enabled), key=lambda s: s.start_time)


def total_output_duration(segments: Iterable[Segment]) -> float:
    """Nominal output length: each enabled segment at its own speed, no ramps."""
    return sum(s.output_duration for s in segments if s.is_enabled)


def _ramp_pieces(
    start: float, end: float, ramp: _RampZone, offset: float
) -> List[RemapPiece]:
    """Split ``[start, end]`` into RAMP_STEPS pieces at eased speeds.

    *offset* is how far into the ramp zone *start* lies, so the pre and
    post halves share one continuous progress curve even when a cut
    separates them in source time.
    """
    length = end - start
    if length <= 0:
        return []
    bounds = [start + length * (s / RAMP_STEPS) for s in range(RAMP_STEPS)] + [end]
    pieces: List[RemapPiece] = []
    for s in range(RAMP_STEPS):
        a, b = bounds[s], bounds[s + 1]
        if b <= a:
            continue
        mid = offset + (a + b) / 2 - start
        pieces.append(RemapPiece(a, b, ramp.speed_at(mid / ramp.total)))
    return pieces


def expand_with_ramps(
    segments: Sequence[Segment],
    half_ramp_duration: float = HALF_RAMP_DURATION,
) -> List[RemapPiece]:
    """Expand enabled segments into constant-speed pieces with speed ramps.

    Disabled segments are skipped entirely; the ramp between the enabled
    neighbours on either side of them still applies.
    """
    enabled = enabled_segments(segments)
    if not enabled:
        return []

    ramps: List[Optional[_RampZone]] = []  # ramps[i] sits between enabled[i] and enabled[i+1]
    for a, b in zip(enabled, enabled[1:]):
        if abs(a.speed - b.speed) > SPEED_EPSILON:
            ramps.append(_RampZone(
                pre_duration=min(half_ramp_duration, a.duration / 2),
                post_duration=min(half_ramp_duration, b.duration / 2),
                from_speed=a.speed,
                to_speed=b.speed,
            ))
        else:
            ramps.append(None)

    pieces: List[RemapPiece] = []
    for i, seg in enumerate(enabled):
        ramp_in = ramps[i - 1] if i > 0 else None
        ramp_out = ramps[i] if i < len(ramps) else None

        main_start = seg.start_time + ramp_in.post_duration if ramp_in else seg.start_time
        main_end = seg.end_time - ramp_out.pre_duration if ramp_out else seg.end_time

        if ramp_in:
            pieces.extend(_ramp_pieces(seg.start_time, main_start, ramp_in,
                                       offset=ramp_in.pre_duration))
        if main_end > main_start:
            pieces.append(RemapPiece(main_start, main_end, seg.speed))
        if ramp_out:
            pieces.extend(_ramp_pieces(main_end, seg.end_time, ramp_out, offset=0.0))

    return pieces


def build_time_remap_table(segments: Sequence[Segment]) -> TimeRemapTable:
    """Build the composition-time → source-time table for *segments*.

    An empty segment list yields the empty (identity) table.  Disabled
    segments add no composition time, so the table's source time jumps
    across them.
    """
    pieces = expand_with_ramps(segments)
    if not pieces:
        return TimeRemapTable([])

    entries: List[TimeRemapEntry] = []
    composition_time = 0.0

    for piece in pieces:
        comp_dur = piece.composition_duration
        src_dur = piece.source_duration
        comp_end = composition_time + comp_dur
        steps = max(1, int(comp_dur * REMAP_SAMPLES_PER_SECOND))

        for i in range(steps + 1):
            if i == steps:
                comp, src = comp_end, piece.source_end
            else:
                frac = i / steps
                comp = min(composition_time + comp_dur * frac, comp_end)
                src = min(piece.source_start + src_dur * frac, piece.source_end)
            if entries:
                prev = entries[-1]
                if prev.composition_time == comp and prev.source_time == src:
                    continue
                comp = max(comp, prev.composition_time)
                src = max(src, prev.source_time)
            entries.append(TimeRemapEntry(composition_time=comp, source_time=src))

        composition_time = comp_end

    logger.info(
        "Remap table: %d segments (%d enabled) -> %d pieces, %d entries, %.2fs output",
        len(segments), len(enabled_segments(segments)), len(pieces),
        len(entries), composition_time,
    )
    return TimeRemapTable(entries)


# ── Editor helpers ──────────────────────────────────────────────────


def clamp_speed(speed: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, speed))


def add_split_point(
    split_points: Sequence[float], time: float, source_duration: float
) -> List[float]:
    """Return *split_points* with *time* added, if it is a valid split.

    The time is rounded to 0.01 s.  Splits too close to either end of the
    recording, or to an existing split, are rejected and the points are
    returned unchanged.
    """
    t = round(time * 100) / 100
    points = sorted(split_points)
    if not MIN_SPLIT_GAP < t < source_duration - MIN_SPLIT_GAP:
        logger.debug("Split at %.2fs rejected: too close to recording edge", t)
        return points
    if any(abs(p - t) < MIN_SPLIT_GAP for p in points):
        logger.debug("Split at %.2fs rejected: too close to existing split", t)
        return points
    points.append(t)
    points.sort()
    return points


def split_segments(
    source_duration: float,
    split_points: Sequence[float],
    existing: Sequence[Segment] = (),
) -> List[Segment]:
    """Partition ``[0, source_duration]`` at *split_points*.

    Each new range inherits speed and enabled state from the existing
    segment that contains it, so splitting a 2x segment yields two 2x
    halves.
    """
    inside = sorted(p for p in split_points if 0.0 < p < source_duration)
    times = [0.0] + inside + [source_duration]
    result: List[Segment] = []
    for start, end in zip(times, times[1:]):
        if end <= start:
            continue
        parent = next(
            (s for s in existing
             if s.start_time <= start + 0.02 and s.end_time >= end - 0.02),
            None,
        )
        result.append(Segment(
            start_time=start,
            end_time=end,
            speed=parent.speed if parent else 1.0,
            is_enabled=parent.is_enabled if parent else True,
        ))
    return result


# ── Scrubber fraction mapping ───────────────────────────────────────


def output_fraction_to_source_fraction(
    segments: Sequence[Segment], output_fraction: float, source_duration: float
) -> float:
    """Map a position on the output timeline (0-1) to the source timeline (0-1)."""
    if source_duration <= 0:
        return 0.0
    enabled = enabled_segments(segments)
    output_time = output_fraction * total_output_duration(enabled)
    acc = 0.0
    for seg in enabled:
        if output_time <= acc + seg.output_duration + 0.001:
            within = max(0.0, output_time - acc) * seg.speed
            return min(seg.start_time + within, seg.end_time) / source_duration
        acc += seg.output_duration
    return 1.0


def source_fraction_to_output_fraction(
    segments: Sequence[Segment], source_fraction: float, source_duration: float
) -> float:
    """Map a source-timeline fraction to the output timeline.

    Source positions inside a disabled segment snap to the nearest
    enabled boundary.
    """
    enabled = enabled_segments(segments)
    total = total_output_duration(enabled)
    if total <= 0:
        return 0.0
    source_time = source_fraction * source_duration

    acc = 0.0
    for seg in enabled:
        if seg.start_time <= source_time <= seg.end_time:
            return (acc + (source_time - seg.start_time) / seg.speed) / total
        acc += seg.output_duration

    best_fraction = 0.0
    best_dist = float("inf")
    acc = 0.0
    for seg in enabled:
        start_dist = abs(source_time - seg.start_time)
        end_dist = abs(source_time - seg.end_time)
        if start_dist < best_dist:
            best_dist = start_dist
            best_fraction = acc / total
        if end_dist < best_dist:
            best_dist = end_dist
            best_fraction = (acc + seg.output_duration) / total
        acc += seg.output_duration
    return max(0.0, min(1.0, best_fraction))
