"""Lane registry — core lanes, default template, lane-id normalization.

Everything here is immutable configuration loaded once at import time.
Callers that need a mutable lane list use default_lanes(), which hands
out fresh dict copies.
"""

import re
from types import MappingProxyType

from laneboard.errors import InvalidLaneId

LANE_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

CORE_LANE_IDS = ("backlog", "in_progress", "done")

CORE_LANE_LABELS = MappingProxyType({
    "backlog": "Backlog",
    "in_progress": "In Progress",
    "done": "Done",
})

DEFAULT_PROJECT_LANES = (
    ("backlog", "Backlog"),
    ("todo", "To Do"),
    ("in_progress", "In Progress"),
    ("review", "Review"),
    ("done", "Done"),
)


def default_lanes():
    """Return a fresh copy of the five-lane default template."""
    return [{"id": lane_id, "name": name} for lane_id, name in DEFAULT_PROJECT_LANES]


def normalize_lane_id(raw_id):
    """Lowercase and squash a raw string into lane-id characters.

    Does not validate — the result may be empty or start with a digit.
    """
    value = (raw_id or "").strip().lower()
    value = re.sub(r"[\s-]+", "_", value)     # whitespace/hyphens -> _
    value = re.sub(r"[^a-z0-9_]", "", value)  # strip everything else
    value = re.sub(r"_+", "_", value)         # collapse runs
    return value


def to_lane_id_from_name(name):
    """Derive a lane id from a display name.

    Examples:
        "QA Ready!"   -> "qa_ready"
        "In-Progress" -> "in_progress"

    Raises:
        InvalidLaneId: If nothing usable is left, or the result does not
            start with a letter.
    """
    normalized = normalize_lane_id(name)
    if not normalized or not LANE_ID_PATTERN.match(normalized):
        raise InvalidLaneId(
            "Lane names must produce a valid id (letters, numbers, underscore; "
            "must start with a letter)."
        )
    return normalized
