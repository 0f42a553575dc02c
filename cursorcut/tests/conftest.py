"""Shared pytest fixtures for cursorcut tests."""

import pytest

from cutcore.models import (
    AutoZoomSensitivity,
    CursorClick,
    CursorEvent,
    CursorMetadata,
    CursorOverlayState,
    CursorSettings,
    EventType,
    MouseButton,
    Segment,
    Size,
    SmoothedCursorPoint,
    TimeRemapEntry,
    TimeRemapTable,
    ZoomRegion,
)


# ── Source frame ────────────────────────────────────────────────────

@pytest.fixture
def source_size() -> Size:
    """A 1920×1080 recording."""
    return Size(1920, 1080)


# ── Segments ────────────────────────────────────────────────────────

@pytest.fixture
def cut_segments() -> list[Segment]:
    """0-4s @1x, 4-8s disabled, 8-12s @2x."""
    return [
        Segment(0.0, 4.0, 1.0, True),
        Segment(4.0, 8.0, 1.0, False),
        Segment(8.0, 12.0, 2.0, True),
    ]


@pytest.fixture
def mixed_speed_segments() -> list[Segment]:
    return [
        Segment(0.0, 3.0, 1.0),
        Segment(3.0, 5.0, 4.0),
        Segment(5.0, 9.0, 0.5),
        Segment(9.0, 10.0, 1.0),
    ]


# ── Remap tables ────────────────────────────────────────────────────

@pytest.fixture
def jump_table() -> TimeRemapTable:
    """Comp 0-1s plays source 0-1s, then jumps to source 5-6s at comp ~1s."""
    entries = [TimeRemapEntry(i / 60.0, i / 60.0) for i in range(61)]
    entries.append(TimeRemapEntry(1.001, 5.0))
    entries.extend(
        TimeRemapEntry(1.001 + i / 60.0, 5.0 + i / 60.0) for i in range(1, 61)
    )
    return TimeRemapTable(entries)


@pytest.fixture
def continuous_table() -> TimeRemapTable:
    return TimeRemapTable([TimeRemapEntry(i / 60.0, i / 60.0) for i in range(121)])


# ── Cursor data ─────────────────────────────────────────────────────

@pytest.fixture
def line_points() -> list[SmoothedCursorPoint]:
    """120 points moving diagonally over 2s."""
    return [
        SmoothedCursorPoint(timestamp=i / 119 * 2.0, x=i * 10.0, y=i * 5.0)
        for i in range(120)
    ]


@pytest.fixture
def click_burst() -> list[CursorClick]:
    """3 clicks near (960, 540) around 6s."""
    return [
        CursorClick(timestamp=6.0, x=950, y=530),
        CursorClick(timestamp=6.5, x=960, y=540),
        CursorClick(timestamp=7.0, x=970, y=550, button=MouseButton.RIGHT),
    ]


@pytest.fixture
def sample_metadata() -> CursorMetadata:
    """2s of moves on a 1920×1080 capture, plus clicks and keystrokes."""
    events = [
        CursorEvent(timestamp=i * 0.05, x=100.0 + i * 20, y=980.0 - i * 10, type=EventType.MOVE)
        for i in range(41)
    ]
    events += [
        CursorEvent(0.5, 300.0, 880.0, EventType.CLICK, MouseButton.LEFT),
        CursorEvent(0.55, 300.0, 880.0, EventType.RELEASE, MouseButton.LEFT),
        CursorEvent(1.0, 500.0, 780.0, EventType.KEY_DOWN),
        CursorEvent(1.2, 500.0, 780.0, EventType.KEY_DOWN),
        CursorEvent(1.5, 700.0, 680.0, EventType.CLICK, MouseButton.RIGHT),
    ]
    events.sort(key=lambda e: e.timestamp)
    return CursorMetadata(
        frame_rate=60,
        source_width=1920,
        source_height=1080,
        events=events,
    )


@pytest.fixture
def zoom_settings() -> CursorSettings:
    return CursorSettings(
        auto_zoom_enabled=True,
        auto_zoom_level=2.0,
        auto_zoom_sensitivity=AutoZoomSensitivity.BALANCED,
    )


@pytest.fixture
def zoom_region() -> ZoomRegion:
    return ZoomRegion(start_time=3.0, end_time=6.0, zoom_level=2.0, focus_x=600, focus_y=400)


@pytest.fixture
def make_state(source_size, zoom_settings):
    """Factory for overlay states with sensible defaults."""
    def _make(points=(), clicks=(), keyframes=(), settings=None, domain=None) -> CursorOverlayState:
        kwargs = {}
        if domain is not None:
            kwargs["domain"] = domain
        return CursorOverlayState(
            smoothed_points=list(points),
            clicks=list(clicks),
            cursor_hotspot=(4.0, 4.0),
            source_size=source_size,
            capture_origin=(0.0, 0.0),
            settings=settings or zoom_settings,
            zoom_keyframes=list(keyframes),
            **kwargs,
        )
    return _make
