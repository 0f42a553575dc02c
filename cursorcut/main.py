"""cursorcut — overlay timing diagnostics for edited screen recordings.

Loads a cursor telemetry file (and optionally the editor's segment list),
runs the preview and export overlay pipelines and logs what a renderer
would receive.
"""

import argparse
import logging
import sys

from cutcore.cursor_overlay import auto_zoom_regions, prepare
from cutcore.export_remapper import find_source_jumps, remap_for_export
from cutcore.frame_geometry import frame_geometry
from cutcore.metadata_file import load_cursor_metadata, load_segments
from cutcore.models import AutoZoomSensitivity, CursorSettings, DEFAULT_FPS, Segment
from cutcore.time_remap import build_time_remap_table
from cutcore.utils import fmt_time

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s | %(levelname)s | %(message)s",
)

_logger = logging.getLogger(__name__)


def _global_exception_handler(exc_type, exc_value, exc_tb):
    """Log unhandled exceptions instead of crashing silently."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    _logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))


def _parse_args(argv):
    parser = argparse.ArgumentParser(prog="cursorcut", description=__doc__.splitlines()[0])
    parser.add_argument("metadata", help="cursor telemetry JSON file")
    parser.add_argument("--segments", help="JSON array of timeline segments")
    parser.add_argument("--fps", type=float, default=DEFAULT_FPS, help="output frame rate")
    parser.add_argument("--auto-zoom", action="store_true", help="generate auto-zoom regions")
    parser.add_argument(
        "--sensitivity",
        choices=[s.value for s in AutoZoomSensitivity],
        default=AutoZoomSensitivity.BALANCED.value,
    )
    parser.add_argument("--zoom-level", type=float, default=1.3)
    parser.add_argument("--at", dest="times", type=float, action="append", default=[],
                        help="output time (s) to print frame geometry for")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point — returns a process exit code."""
    sys.excepthook = _global_exception_handler
    args = _parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        metadata = load_cursor_metadata(args.metadata)
        segments = load_segments(args.segments) if args.segments else []
    except ValueError as exc:
        _logger.error("%s", exc)
        return 1

    settings = CursorSettings(
        auto_zoom_enabled=args.auto_zoom,
        auto_zoom_level=max(1.0, args.zoom_level),
        auto_zoom_sensitivity=AutoZoomSensitivity(args.sensitivity),
    )
    regions = auto_zoom_regions(metadata, settings) if args.auto_zoom else []
    preview = prepare(metadata, settings, args.fps, regions)

    if not segments and preview.smoothed_points:
        # Whole recording as one 1x segment
        end = max(preview.smoothed_points[-1].timestamp, 1.0 / args.fps)
        segments = [Segment(start_time=0.0, end_time=end)]

    table = build_time_remap_table(segments)
    export = remap_for_export(preview, table)

    _logger.info(
        "Output %s, %d cuts bridged, %d zoom regions",
        fmt_time(table.composition_duration), len(find_source_jumps(table)), len(regions),
    )
    for t in args.times:
        geo = frame_geometry(export, t)
        _logger.info(
            "t=%.3fs source=%.3fs crop=%s cursor=%s ripples=%d",
            t, table.source_time(t), geo.crop_rect, geo.cursor, len(geo.click_effects),
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
