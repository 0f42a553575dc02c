"""Overlay pipeline assembly — telemetry + settings → preview overlay state.

Call :func:`prepare` whenever the telemetry, cursor settings, frame rate
or zoom regions change; the result is rebuilt from scratch, never
patched.  For export, pass the prepared state through
:func:`cutcore.export_remapper.remap_for_export`.
"""

import logging
from typing import Any, List, Sequence

from .activity_analyzer import generate_zoom_regions
from .cursor_smoothing import (
    cursor_hotspot,
    cursor_image_size,
    extract_interactions,
    raw_positions,
    smooth_positions,
)
from .models import (
    DEFAULT_FPS,
    CursorMetadata,
    CursorOverlayState,
    CursorSettings,
    TimeDomain,
    ZoomKeyframe,
    ZoomRegion,
)
from .zoom_engine import zoom_keyframes

logger = logging.getLogger(__name__)


def prepare(
    metadata: CursorMetadata,
    settings: CursorSettings,
    output_frame_rate: float = DEFAULT_FPS,
    zoom_regions: Sequence[ZoomRegion] = (),
    cursor_image: Any = None,
) -> CursorOverlayState:
    """Build the preview-domain (source time) overlay state.

    Zoom keyframes are only produced when auto-zoom is enabled and there
    are regions to expand.
    """
    interactions = extract_interactions(metadata)
    smoothed = smooth_positions(raw_positions(metadata), output_frame_rate)
    hotspot = cursor_hotspot(settings.style, settings.size, metadata.backing_scale_factor)
    image_size = cursor_image_size(settings.style, settings.size, metadata.backing_scale_factor)

    kfs: List[ZoomKeyframe] = []
    if settings.auto_zoom_enabled and zoom_regions:
        kfs = zoom_keyframes(zoom_regions, settings.auto_zoom_sensitivity, metadata.source_size)

    logger.info(
        "Prepared overlay: %d events -> %d points, %d clicks, %d zoom keyframes",
        len(metadata.events), len(smoothed), len(interactions.clicks), len(kfs),
    )
    return CursorOverlayState(
        smoothed_points=smoothed,
        clicks=interactions.clicks,
        cursor_hotspot=hotspot,
        source_size=metadata.source_size,
        capture_origin=metadata.capture_origin,
        settings=settings,
        zoom_keyframes=kfs,
        cursor_image=cursor_image,
        domain=TimeDomain.PREVIEW,
        cursor_size=image_size,
    )


def auto_zoom_regions(metadata: CursorMetadata, settings: CursorSettings) -> List[ZoomRegion]:
    """Generate zoom regions from telemetry using the settings' level and sensitivity."""
    interactions = extract_interactions(metadata)
    return generate_zoom_regions(
        interactions.clicks,
        interactions.key_interactions,
        settings.auto_zoom_sensitivity,
        settings.auto_zoom_level,
        interactions.source_size,
    )
