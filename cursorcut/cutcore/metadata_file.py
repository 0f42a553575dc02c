"""Telemetry and segment file loading.

The recorder writes cursor telemetry as a versioned JSON file next to
the captured video::

    {
      "version": 1,
      "frameRate": 60,
      "sourceSize": {"width": 2880, "height": 1800},
      "captureOrigin": {"x": 0, "y": 0},          # optional
      "displayHeight": 1800,                      # optional
      "backingScaleFactor": 2.0,                  # optional
      "events": [{"timestamp": 0.0, "x": 10, "y": 20, "type": "move"}, ...]
    }

Segment lists (from the editor) are a JSON array of segment dicts.
"""

import json
import logging
import os
from typing import List

from .models import CursorMetadata, Segment

logger = logging.getLogger(__name__)


METADATA_EXT = ".cursor.json"


def load_cursor_metadata(input_path: str) -> CursorMetadata:
    """Read and decode a telemetry file.

    Raises ``ValueError`` if the file is missing, not JSON, or not a
    telemetry document this version understands.
    """
    if not os.path.isfile(input_path):
        raise ValueError(f"Cursor metadata file not found: {input_path}")

    with open(input_path, "r", encoding="utf-8") as f:
        metadata = CursorMetadata.from_json(f.read())

    logger.info(
        "Loaded %s: v%d, %d events, %dx%d @ %.0f fps",
        os.path.basename(input_path), metadata.version, len(metadata.events),
        int(metadata.source_width), int(metadata.source_height), metadata.frame_rate,
    )
    return metadata


def save_cursor_metadata(output_path: str, metadata: CursorMetadata) -> str:
    """Write *metadata* as JSON.  Returns the final output path."""
    if not output_path.lower().endswith(".json"):
        output_path += METADATA_EXT
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(metadata.to_json())
    return output_path


def load_segments(input_path: str) -> List[Segment]:
    """Read a JSON array of segments, ordered by start time."""
    with open(input_path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Segment file is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("Segment file must contain a JSON array")
    try:
        segments = [Segment.from_dict(d) for d in data]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed segment entry: {exc}") from exc
    segments.sort(key=lambda s: s.start_time)
    return segments
