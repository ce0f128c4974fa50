"""Metadata probe — native dimensions and duration of a loaded source."""

import logging
import subprocess
from pathlib import Path

from cropforge import ffutil
from cropforge.models import MediaMetadata

logger = logging.getLogger(__name__)


def probe_metadata(input_path: Path) -> MediaMetadata | None:
    """Probe once; return None if the file cannot be read as video.

    The caller decides how to surface a missing result to the user.
    """
    try:
        metadata = ffutil.probe(input_path)
    except (subprocess.CalledProcessError, OSError, ValueError, KeyError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("Could not read metadata from %s: %s", input_path, e)
        return None

    logger.info(
        "Probed %s: %dx%d, %.2fs",
        input_path.name, metadata.width, metadata.height, metadata.duration,
    )
    return metadata
