"""Reading-status normalization and progress clamping."""

import logging
import re


logger = logging.getLogger(__name__)

STATUSES = ("reading", "completed", "on_hold", "dropped", "plan_to_read")
DEFAULT_STATUS = "reading"

_STATUS_MAP = {
    "reading": "reading",
    "completed": "completed",
    "finished": "completed",
    "complete": "completed",
    "on_hold": "on_hold",
    "onhold": "on_hold",
    "paused": "on_hold",
    "dropped": "dropped",
    "plan_to_read": "plan_to_read",
    "planning": "plan_to_read",
    "planned": "plan_to_read",
    "want_to_read": "plan_to_read",
    "to_read": "plan_to_read",
    "ptw": "plan_to_read",
}

_INVALID_CHARS = re.compile(r"[^a-z_]")


def normalize_status(value):
    """Map any status-like value onto the closed status set.

    Every character outside ``[a-z_]`` becomes an underscore, so
    ``"Plan To Read"`` becomes ``"plan_to_read"``. Unrecognized values fall
    back to ``"reading"``.
    """
    if not value or not isinstance(value, str):
        return DEFAULT_STATUS
    key = _INVALID_CHARS.sub("_", value.lower())
    result = _STATUS_MAP.get(key, DEFAULT_STATUS)
    if result != value:
        logger.debug("Status normalized: %r -> %r", value, result)
    return result


def clamp_progress(progress, chapters=None):
    """Clamp progress to [0, chapters]; unbounded above when chapters is unknown."""
    progress = max(0, int(progress or 0))
    if chapters is not None and progress > chapters:
        return max(0, int(chapters))
    return progress
