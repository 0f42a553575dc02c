"""Tests for cutcore.export_remapper — reverse lookup, cut bridges, export domain."""

import pytest

from cutcore.export_remapper import (
    BRIDGE_POINT_COUNT,
    REVERSE_LOOKUP_TOLERANCE,
    composition_time_for_source_time,
    find_source_jumps,
    inject_cursor_bridges,
    remap_for_export,
)
from cutcore.models import (
    CursorClick,
    Rect,
    Segment,
    SmoothedCursorPoint,
    TimeDomain,
    TimeRemapEntry,
    TimeRemapTable,
    ZoomKeyframe,
    ZoomRegion,
)
from cutcore.time_remap import build_time_remap_table
from cutcore.zoom_engine import zoom_crop_rect, zoom_keyframes


def _track(duration: float, fps: int = 60) -> list[SmoothedCursorPoint]:
    """Cursor moving right 1px per frame, in source time."""
    n = int(duration * fps)
    return [SmoothedCursorPoint(timestamp=i / fps, x=float(i), y=100.0) for i in range(n + 1)]


def _is_sorted(points) -> bool:
    return all(b.timestamp >= a.timestamp for a, b in zip(points, points[1:]))


# ── Jump detection ──────────────────────────────────────────────────


class TestFindSourceJumps:
    def test_jump_table(self, jump_table: TimeRemapTable) -> None:
        assert find_source_jumps(jump_table) == [60]

    def test_continuous_table(self, continuous_table: TimeRemapTable) -> None:
        assert find_source_jumps(continuous_table) == []

    def test_fast_playback_is_not_a_jump(self) -> None:
        """32x playback covers a lot of source time but is not a cut."""
        table = build_time_remap_table([Segment(0.0, 10.0, 32.0)])
        assert find_source_jumps(table) == []

    def test_built_table_with_cut(self, cut_segments) -> None:
        table = build_time_remap_table(cut_segments)
        jumps = find_source_jumps(table)
        assert len(jumps) == 1
        assert table.source_times[jumps[0]] == pytest.approx(4.0)


# ── Reverse lookup ──────────────────────────────────────────────────


class TestReverseLookup:
    def test_empty_table_identity(self) -> None:
        assert composition_time_for_source_time(3.3, TimeRemapTable([])) == 3.3

    def test_before_cut(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(0.5, jump_table) == pytest.approx(0.5)

    def test_after_cut(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(5.5, jump_table) == pytest.approx(1.501)

    def test_interpolates_between_entries(self, continuous_table: TimeRemapTable) -> None:
        t = 0.5 + 0.25 / 60
        assert composition_time_for_source_time(t, continuous_table) == pytest.approx(t)

    def test_inside_cut_dropped(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(3.0, jump_table) is None

    def test_near_cut_edges_snap(self, jump_table: TimeRemapTable) -> None:
        """Source times just inside a cut snap onto the nearest played boundary."""
        assert composition_time_for_source_time(1.5, jump_table) == pytest.approx(1.0)
        assert composition_time_for_source_time(4.6, jump_table) == pytest.approx(1.001)

    def test_tolerance_is_configurable(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(3.0, jump_table, tolerance=2.5) is not None
        assert composition_time_for_source_time(1.5, jump_table, tolerance=0.25) is None

    def test_past_end(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(6.5, jump_table) == pytest.approx(2.001)
        assert composition_time_for_source_time(6.0 + REVERSE_LOOKUP_TOLERANCE + 0.5, jump_table) is None

    def test_before_start(self, jump_table: TimeRemapTable) -> None:
        assert composition_time_for_source_time(-0.5, jump_table) == 0.0


# ── Bridges ─────────────────────────────────────────────────────────


class TestInjectCursorBridges:
    def test_bridge_count(self, jump_table: TimeRemapTable) -> None:
        points = [
            SmoothedCursorPoint(0.5, 0, 0),
            SmoothedCursorPoint(1.0, 10, 10),
            SmoothedCursorPoint(1.2, 100, 50),
        ]
        out = inject_cursor_bridges(points, jump_table)
        assert len(out) == 3 + BRIDGE_POINT_COUNT
        assert _is_sorted(out)

    def test_bridge_positions_eased(self, jump_table: TimeRemapTable) -> None:
        """Bridge points ease from the last position before the cut to the first after it."""
        points = [SmoothedCursorPoint(1.0, 10, 10), SmoothedCursorPoint(1.2, 100, 50)]
        out = inject_cursor_bridges(points, jump_table)
        bridge = [p for p in out if 1.0 < p.timestamp < 1.001]
        assert len(bridge) == BRIDGE_POINT_COUNT
        xs = [p.x for p in bridge]
        assert xs == sorted(xs)
        assert all(10 < x < 100 for x in xs)
        # Eased: small first step, larger middle step
        assert xs[1] - xs[0] < xs[6] - xs[5]

    def test_no_bridges_without_cuts(self, continuous_table: TimeRemapTable) -> None:
        points = _track(2.0)
        assert inject_cursor_bridges(points, continuous_table) == points

    def test_zero_width_cut(self) -> None:
        """All bridge points share the cut timestamp and stay in list order."""
        table = TimeRemapTable([
            TimeRemapEntry(0.0, 0.0), TimeRemapEntry(1.0, 1.0),
            TimeRemapEntry(1.0, 5.0), TimeRemapEntry(2.0, 6.0),
        ])
        points = [SmoothedCursorPoint(0.5, 0, 0), SmoothedCursorPoint(1.0, 20, 0),
                  SmoothedCursorPoint(1.5, 80, 0)]
        out = inject_cursor_bridges(points, table)
        bridge = [p for p in out if p not in points]
        assert len(bridge) == BRIDGE_POINT_COUNT
        assert all(p.timestamp == 1.0 for p in bridge)
        assert _is_sorted(out)

    def test_empty_points(self, jump_table: TimeRemapTable) -> None:
        assert inject_cursor_bridges([], jump_table) == []

    def test_unsorted_points_sorted(self, continuous_table: TimeRemapTable) -> None:
        points = [SmoothedCursorPoint(1.0, 1, 1), SmoothedCursorPoint(0.5, 0, 0)]
        assert _is_sorted(inject_cursor_bridges(points, continuous_table))


# ── remap_for_export ────────────────────────────────────────────────


class TestRemapForExport:
    def test_rejects_export_state(self, make_state, continuous_table) -> None:
        state = make_state(points=_track(1.0), domain=TimeDomain.EXPORT)
        with pytest.raises(ValueError):
            remap_for_export(state, continuous_table)

    def test_marks_export_domain(self, make_state, continuous_table) -> None:
        state = make_state(points=_track(1.0))
        out = remap_for_export(state, continuous_table)
        assert out.domain is TimeDomain.EXPORT
        assert state.domain is TimeDomain.PREVIEW

    def test_identity_table_keeps_times(self, make_state, continuous_table) -> None:
        state = make_state(points=_track(2.0), clicks=[CursorClick(0.75, 5, 5)])
        out = remap_for_export(state, continuous_table)
        assert len(out.smoothed_points) == len(state.smoothed_points)
        for a, b in zip(state.smoothed_points, out.smoothed_points):
            assert b.timestamp == pytest.approx(a.timestamp)
        assert out.clicks[0].timestamp == pytest.approx(0.75)

    def test_cut_points_dropped_and_bridged(self, make_state, jump_table) -> None:
        state = make_state(points=_track(6.0))
        out = remap_for_export(state, jump_table)
        assert _is_sorted(out.smoothed_points)
        assert len(out.smoothed_points) < len(state.smoothed_points)
        bridge = [p for p in out.smoothed_points if 1.0 < p.timestamp < 1.001]
        assert len(bridge) == BRIDGE_POINT_COUNT
        assert out.smoothed_points[-1].timestamp == pytest.approx(2.001)

    def test_remapped_points_strictly_increasing(self, make_state, jump_table) -> None:
        """Points collapsing onto a cut boundary are kept only once."""
        state = make_state(points=_track(6.0))
        out = remap_for_export(state, jump_table)
        plain = [p for p in out.smoothed_points if not 1.0 < p.timestamp < 1.001]
        assert all(b.timestamp > a.timestamp for a, b in zip(plain, plain[1:]))

    def test_clicks_in_cut_dropped(self, make_state, jump_table) -> None:
        clicks = [CursorClick(0.5, 1, 1), CursorClick(3.0, 2, 2), CursorClick(5.5, 3, 3)]
        out = remap_for_export(make_state(clicks=clicks), jump_table)
        assert [c.timestamp for c in out.clicks] == pytest.approx([0.5, 1.501])
        assert [c.x for c in out.clicks] == [1, 3]

    def test_keyframes_remapped(self, make_state, jump_table) -> None:
        kfs = [
            ZoomKeyframe(0.0, 1.0, 960, 540),
            ZoomKeyframe(0.5, 2.0, 600, 400, 0.5),
            ZoomKeyframe(3.0, 2.0, 600, 400),
            ZoomKeyframe(5.5, 1.0, 960, 540, 0.8),
        ]
        out = remap_for_export(make_state(keyframes=kfs), jump_table)
        # 3.0s is inside the cut; the zoom is re-anchored where playback resumes
        assert [k.timestamp for k in out.zoom_keyframes] == pytest.approx(
            [0.0, 0.5, 1.001, 1.001, 1.501])
        assert [k.zoom_level for k in out.zoom_keyframes] == pytest.approx(
            [1.0, 2.0, 2.0, 1.0, 1.0])
        assert out.zoom_keyframes[-1].easing_duration == 0.8

    def test_no_reanchor_without_dropped_keyframes(self, make_state, jump_table) -> None:
        kfs = [ZoomKeyframe(0.0, 1.0, 960, 540), ZoomKeyframe(5.5, 2.0, 600, 400, 0.5)]
        out = remap_for_export(make_state(keyframes=kfs), jump_table)
        assert [k.timestamp for k in out.zoom_keyframes] == pytest.approx([0.0, 1.501])

    def test_region_starting_in_cut_stays_full_frame_before_cut(
        self, make_state, zoom_settings, source_size,
    ) -> None:
        """A region whose zoom-in was cut must not zoom the footage before the cut."""
        segments = [Segment(0.0, 4.0), Segment(4.0, 8.0, is_enabled=False), Segment(8.0, 14.0)]
        table = build_time_remap_table(segments)
        region = ZoomRegion(start_time=6.0, end_time=12.0, zoom_level=2.0,
                            focus_x=960, focus_y=540)
        kfs = zoom_keyframes([region], zoom_settings.auto_zoom_sensitivity, source_size)
        preview = make_state(keyframes=kfs)
        export = remap_for_export(preview, table)
        extent = Rect.from_size(source_size)

        assert zoom_crop_rect(preview, 2.0, extent) is None
        assert zoom_crop_rect(export, 2.0, extent) is None
        assert zoom_crop_rect(export, 3.9, extent) is None
        # Source 9s plays at 5s and is zoomed in both domains
        assert zoom_crop_rect(export, 5.0, extent) == zoom_crop_rect(preview, 9.0, extent)
        assert zoom_crop_rect(export, 5.0, extent) is not None

    def test_empty_table(self, make_state) -> None:
        """Without a table there is no output timeline for the cursor."""
        kfs = [ZoomKeyframe(0.0, 1.0, 960, 540), ZoomKeyframe(2.0, 2.0, 600, 400, 0.5)]
        state = make_state(points=_track(2.0), clicks=[CursorClick(1.5, 1, 1)], keyframes=kfs)
        out = remap_for_export(state, TimeRemapTable([]))
        assert out.smoothed_points == []
        assert [c.timestamp for c in out.clicks] == [1.5]
        assert [k.timestamp for k in out.zoom_keyframes] == [0.0, 2.0]

    def test_built_table_end_to_end(self, make_state, cut_segments) -> None:
        """No cursor position from the cut range leaks into the export."""
        table = build_time_remap_table(cut_segments)
        out = remap_for_export(make_state(points=_track(12.0)), table)
        assert _is_sorted(out.smoothed_points)
        assert out.smoothed_points[-1].timestamp == pytest.approx(table.composition_duration)
        cut_time = table.composition_times[find_source_jumps(table)[0]]
        # Outside the bridge, no cursor position from the cut range survives
        plain = [p for p in out.smoothed_points if p.timestamp != cut_time]
        assert not any(4.0 < p.x / 60 < 8.0 for p in plain)
