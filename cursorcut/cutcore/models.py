"""Core data models for cursorcut.

Defines the dataclasses shared by every stage of the overlay pipeline:
timeline segments and the composition↔source remap table, recorder
telemetry, smoothed cursor data, zoom regions / keyframes and the
aggregate :class:`CursorOverlayState`.  Models that cross a persistence
boundary support JSON serialization via ``to_dict()`` / ``from_dict()``
(or ``to_json()`` / ``from_json()`` for the telemetry file).

All times are in **seconds**.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple
import json
import logging
import uuid

logger = logging.getLogger(__name__)


DEFAULT_FPS = 60
METADATA_VERSION = 1       # newest telemetry format this package understands

MIN_SPEED = 0.25
MAX_SPEED = 32.0


# ── Geometry ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, top-left origin."""
    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    def offset(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def contains_rect(self, other: "Rect", tol: float = 1e-6) -> bool:
        return (
            other.x >= self.x - tol
            and other.y >= self.y - tol
            and other.max_x <= self.max_x + tol
            and other.max_y <= self.max_y + tol
        )

    @staticmethod
    def from_size(size: Size) -> "Rect":
        return Rect(0.0, 0.0, size.width, size.height)


# ── Timeline ────────────────────────────────────────────────────────


@dataclass
class Segment:
    """A contiguous slice of the source recording with its own speed.

    Segments partition ``[0, source_duration]``; disabled segments are
    cut from the output but still occupy source time.
    """
    start_time: float
    end_time: float
    speed: float = 1.0
    is_enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Segment end ({self.end_time}) must be after start ({self.start_time})"
            )
        if self.speed <= 0:
            raise ValueError(f"Segment speed must be positive, got {self.speed}")

    @staticmethod
    def create(
        start_time: float,
        end_time: float,
        speed: float = 1.0,
        is_enabled: bool = True,
    ) -> "Segment":
        """Factory that clamps *speed* into the supported range."""
        return Segment(
            start_time=start_time,
            end_time=end_time,
            speed=max(MIN_SPEED, min(MAX_SPEED, speed)),
            is_enabled=is_enabled,
        )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def output_duration(self) -> float:
        return self.duration / self.speed

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "speed": self.speed,
            "isEnabled": self.is_enabled,
        }

    @staticmethod
    def from_dict(d: dict) -> "Segment":
        seg = Segment.create(
            start_time=float(d["startTime"]),
            end_time=float(d["endTime"]),
            speed=float(d.get("speed", 1.0)),
            is_enabled=bool(d.get("isEnabled", True)),
        )
        if "id" in d:
            seg.id = str(d["id"])
        return seg


@dataclass(frozen=True)
class TimeRemapEntry:
    """One sample of the composition-time → source-time mapping."""
    composition_time: float
    source_time: float


@dataclass
class TimeRemapTable:
    """Piecewise mapping between composition (output) and source time.

    Entries are non-decreasing in both ``composition_time`` and
    ``source_time``.  An empty table is the identity mapping.
    """
    entries: List[TimeRemapEntry] = field(default_factory=list)
    _comp: List[float] = field(init=False, repr=False, compare=False)
    _src: List[float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._comp = [e.composition_time for e in self.entries]
        self._src = [e.source_time for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def composition_times(self) -> List[float]:
        return self._comp

    @property
    def source_times(self) -> List[float]:
        return self._src

    @property
    def is_identity(self) -> bool:
        return not self.entries

    @property
    def composition_duration(self) -> float:
        """Output duration covered by the table (0 for identity)."""
        return self._comp[-1] if self._comp else 0.0

    def source_time(self, composition_time: float) -> float:
        """Map *composition_time* to source time.

        Clamps outside the table's range; the empty table passes the
        time through unchanged.
        """
        if not self.entries:
            return composition_time
        comp = self._comp
        if composition_time <= comp[0]:
            return self._src[0]
        if composition_time >= comp[-1]:
            return self._src[-1]

        hi = bisect_right(comp, composition_time)
        lo = hi - 1
        span = comp[hi] - comp[lo]
        if span <= 1e-4:
            return self._src[lo]
        frac = (composition_time - comp[lo]) / span
        return self._src[lo] + frac * (self._src[hi] - self._src[lo])


# ── Recorder telemetry ──────────────────────────────────────────────


class EventType(str, Enum):
    MOVE = "move"
    CLICK = "click"
    RELEASE = "release"
    SCROLL = "scroll"
    KEY_DOWN = "keyDown"


class MouseButton(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass
class CursorEvent:
    """A raw recorder event in capture-device coordinates (bottom-left origin)."""
    timestamp: float
    x: float
    y: float
    type: EventType
    button: Optional[MouseButton] = None

    def to_dict(self) -> dict:
        d = {
            "timestamp": self.timestamp,
            "x": self.x,
            "y": self.y,
            "type": self.type.value,
        }
        if self.button is not None:
            d["button"] = self.button.value
        return d

    @staticmethod
    def from_dict(d: dict) -> "CursorEvent":
        button = d.get("button")
        return CursorEvent(
            timestamp=float(d["timestamp"]),
            x=float(d["x"]),
            y=float(d["y"]),
            type=EventType(d["type"]),
            button=MouseButton(button) if button is not None else None,
        )


@dataclass
class CursorMetadata:
    """Decoded cursor telemetry written by the recorder.

    Optional fields default so older and newer files both load.
    """
    frame_rate: float
    source_width: float
    source_height: float
    events: List[CursorEvent]
    capture_origin_x: float = 0.0
    capture_origin_y: float = 0.0
    display_height: Optional[float] = None
    backing_scale_factor: float = 1.0
    version: int = METADATA_VERSION

    @property
    def source_size(self) -> Size:
        return Size(self.source_width, self.source_height)

    @property
    def capture_origin(self) -> Tuple[float, float]:
        return self.capture_origin_x, self.capture_origin_y

    @property
    def effective_display_height(self) -> float:
        if self.display_height is not None:
            return self.display_height
        return self.source_height + self.capture_origin_y

    def to_dict(self) -> dict:
        d: dict = {
            "version": self.version,
            "frameRate": self.frame_rate,
            "sourceSize": {"width": self.source_width, "height": self.source_height},
            "events": [e.to_dict() for e in self.events],
        }
        if self.capture_origin_x or self.capture_origin_y:
            d["captureOrigin"] = {"x": self.capture_origin_x, "y": self.capture_origin_y}
        if self.display_height is not None:
            d["displayHeight"] = self.display_height
        if self.backing_scale_factor != 1.0:
            d["backingScaleFactor"] = self.backing_scale_factor
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @staticmethod
    def from_dict(d: Any) -> "CursorMetadata":
        """Build from decoded JSON, skipping events this version can't read.

        Raises ``ValueError`` when the document itself is unusable; a bad
        individual event is only logged and skipped.
        """
        if not isinstance(d, dict):
            raise ValueError("Cursor metadata must be a JSON object")
        try:
            version = int(d.get("version", 1))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid cursor metadata version {d.get('version')!r}") from exc
        if version > METADATA_VERSION:
            raise ValueError(f"Unsupported cursor metadata version {version}")
        size = d.get("sourceSize")
        if not isinstance(size, dict) or "width" not in size or "height" not in size:
            raise ValueError("Cursor metadata is missing sourceSize")
        raw_events = d.get("events") or []
        if not isinstance(raw_events, list):
            raise ValueError("Cursor metadata events must be a JSON array")
        origin = d.get("captureOrigin") or {}
        if not isinstance(origin, dict):
            raise ValueError("Cursor metadata captureOrigin must be a JSON object")

        events: List[CursorEvent] = []
        skipped = 0
        for raw in raw_events:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            try:
                events.append(CursorEvent.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                skipped += 1
        if skipped:
            logger.warning("Skipped %d unreadable cursor events", skipped)

        display_height = d.get("displayHeight")
        try:
            return CursorMetadata(
                frame_rate=float(d.get("frameRate", DEFAULT_FPS)),
                source_width=float(size["width"]),
                source_height=float(size["height"]),
                events=events,
                capture_origin_x=float(origin.get("x", 0.0)),
                capture_origin_y=float(origin.get("y", 0.0)),
                display_height=float(display_height) if display_height is not None else None,
                backing_scale_factor=float(d.get("backingScaleFactor", 1.0)),
                version=version,
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Malformed cursor metadata field: {exc}") from exc

    @staticmethod
    def from_json(s: str) -> "CursorMetadata":
        try:
            data = json.loads(s)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Cursor metadata is not valid JSON: {exc}") from exc
        return CursorMetadata.from_dict(data)


# ── Smoothed overlay data ───────────────────────────────────────────


@dataclass(frozen=True)
class SmoothedCursorPoint:
    timestamp: float
    x: float  # overlay coordinates (top-left origin)
    y: float


@dataclass(frozen=True)
class CursorClick:
    timestamp: float
    x: float
    y: float
    button: MouseButton = MouseButton.LEFT


@dataclass(frozen=True)
class InteractionPoint:
    """Position-only interaction sample (keystroke or click) for zoom clustering."""
    timestamp: float
    x: float
    y: float


# ── Zoom ────────────────────────────────────────────────────────────


@dataclass
class ZoomRegion:
    """A user-editable zoom-in span in source time.

    ``focus_x`` / ``focus_y`` are in overlay coordinates.
    """
    start_time: float
    end_time: float
    zoom_level: float
    focus_x: float
    focus_y: float
    is_enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "zoomLevel": self.zoom_level,
            "focusX": self.focus_x,
            "focusY": self.focus_y,
            "isEnabled": self.is_enabled,
        }

    @staticmethod
    def from_dict(d: dict) -> "ZoomRegion":
        region = ZoomRegion(
            start_time=float(d["startTime"]),
            end_time=float(d["endTime"]),
            zoom_level=max(1.0, float(d.get("zoomLevel", 1.0))),
            focus_x=float(d["focusX"]),
            focus_y=float(d["focusY"]),
            is_enabled=bool(d.get("isEnabled", True)),
        )
        if "id" in d:
            region.id = str(d["id"])
        return region


@dataclass(frozen=True)
class ZoomKeyframe:
    """A zoom target reached at ``timestamp``.

    The transition *into* this keyframe starts at the previous keyframe's
    timestamp and lasts ``easing_duration`` seconds (0 = instant cut).
    """
    timestamp: float
    zoom_level: float
    focus_x: float
    focus_y: float
    easing_duration: float = 0.0


# ── Settings ────────────────────────────────────────────────────────


class CursorStyle(str, Enum):
    ARROW = "arrow"
    POINTER = "pointer"
    CROSSHAIR = "crosshair"
    CIRCLE_DOT = "circleDot"

    @property
    def display_name(self) -> str:
        return _STYLE_NAMES[self]

    @property
    def is_system(self) -> bool:
        return self is not CursorStyle.CIRCLE_DOT

    @staticmethod
    def from_display_name(name: str) -> "CursorStyle":
        for style, label in _STYLE_NAMES.items():
            if label == name:
                return style
        return CursorStyle.ARROW


_STYLE_NAMES = {
    CursorStyle.ARROW: "Arrow",
    CursorStyle.POINTER: "Pointer",
    CursorStyle.CROSSHAIR: "Cross",
    CursorStyle.CIRCLE_DOT: "Dot",
}


class AutoZoomSensitivity(str, Enum):
    """How eagerly interactions turn into zoom regions.

    ``subtle`` needs denser bursts and eases slowly; ``dramatic`` zooms on
    single interactions, holds longer and eases quickly.
    """
    SUBTLE = "subtle"
    BALANCED = "balanced"
    DRAMATIC = "dramatic"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def cluster_window(self) -> float:
        return {"subtle": 4.0, "balanced": 3.0, "dramatic": 2.0}[self.value]

    @property
    def minimum_cluster_size(self) -> int:
        return {"subtle": 3, "balanced": 2, "dramatic": 1}[self.value]

    @property
    def hold_duration(self) -> float:
        return {"subtle": 1.0, "balanced": 1.5, "dramatic": 2.5}[self.value]

    @property
    def zoom_in_duration(self) -> float:
        return {"subtle": 0.8, "balanced": 0.5, "dramatic": 0.3}[self.value]

    @property
    def zoom_out_duration(self) -> float:
        return {"subtle": 1.0, "balanced": 0.8, "dramatic": 0.5}[self.value]


@dataclass
class CursorSettings:
    is_enabled: bool = True
    style: CursorStyle = CursorStyle.ARROW
    size: float = 1.2
    click_effect_enabled: bool = True
    click_effect_color: Tuple[float, float, float] = (1.0, 0.35, 0.37)
    click_effect_max_radius: float = 40.0
    click_effect_duration: float = 0.4
    auto_zoom_enabled: bool = False
    auto_zoom_level: float = 1.3
    auto_zoom_sensitivity: AutoZoomSensitivity = AutoZoomSensitivity.BALANCED

    def to_dict(self) -> dict:
        return {
            "isEnabled": self.is_enabled,
            "style": self.style.value,
            "size": self.size,
            "clickEffectEnabled": self.click_effect_enabled,
            "clickEffectColor": list(self.click_effect_color),
            "clickEffectMaxRadius": self.click_effect_max_radius,
            "clickEffectDuration": self.click_effect_duration,
            "autoZoomEnabled": self.auto_zoom_enabled,
            "autoZoomLevel": self.auto_zoom_level,
            "autoZoomSensitivity": self.auto_zoom_sensitivity.value,
        }

    @staticmethod
    def from_dict(d: dict) -> "CursorSettings":
        """Reconstruct from a dict; missing keys keep their defaults."""
        s = CursorSettings()
        if "isEnabled" in d:
            s.is_enabled = bool(d["isEnabled"])
        if "style" in d:
            try:
                s.style = CursorStyle(d["style"])
            except ValueError:
                logger.warning("Unknown cursor style %r, using arrow", d["style"])
        if "size" in d:
            s.size = float(d["size"])
        if "clickEffectEnabled" in d:
            s.click_effect_enabled = bool(d["clickEffectEnabled"])
        if "clickEffectColor" in d:
            given = list(d["clickEffectColor"])[:3]
            rgb = given + list(s.click_effect_color)[len(given):]
            s.click_effect_color = (float(rgb[0]), float(rgb[1]), float(rgb[2]))
        if "clickEffectMaxRadius" in d:
            s.click_effect_max_radius = float(d["clickEffectMaxRadius"])
        if "clickEffectDuration" in d:
            s.click_effect_duration = float(d["clickEffectDuration"])
        if "autoZoomEnabled" in d:
            s.auto_zoom_enabled = bool(d["autoZoomEnabled"])
        if "autoZoomLevel" in d:
            s.auto_zoom_level = max(1.0, float(d["autoZoomLevel"]))
        if "autoZoomSensitivity" in d:
            try:
                s.auto_zoom_sensitivity = AutoZoomSensitivity(d["autoZoomSensitivity"])
            except ValueError:
                logger.warning("Unknown zoom sensitivity %r, using balanced",
                               d["autoZoomSensitivity"])
        return s


# ── Aggregate overlay state ─────────────────────────────────────────


class TimeDomain(str, Enum):
    PREVIEW = "preview"  # timestamps are source time
    EXPORT = "export"    # timestamps are composition time


@dataclass(frozen=True)
class CursorOverlayState:
    """Immutable overlay data handed to the renderer.

    ``cursor_image`` is an opaque handle owned by the renderer; it is
    drawn at ``cursor_size`` pixels with ``cursor_hotspot`` on the point.
    """
    smoothed_points: List[SmoothedCursorPoint]
    clicks: List[CursorClick]
    cursor_hotspot: Tuple[float, float]
    source_size: Size
    capture_origin: Tuple[float, float]
    settings: CursorSettings
    zoom_keyframes: List[ZoomKeyframe]
    cursor_image: Any = None
    domain: TimeDomain = TimeDomain.PREVIEW
    cursor_size: Tuple[float, float] = (0.0, 0.0)
