"""Lane resolver — validate candidate lane lists, resolve stored ones.

normalize_lane_drafts() is the strict validator used for anything a
user submits. resolve_project_lanes() is what every other component
calls to read a project's lanes: stored configurations that are
missing or fail validation resolve to the default template instead of
raising, so legacy or corrupted rows still render a usable board.
"""

import logging

from laneboard.errors import (
    CoreLaneRenamed,
    DuplicateLaneId,
    DuplicateLaneName,
    EmptyLaneList,
    InvalidLaneId,
    LaneNameRequired,
    MissingCoreLane,
    ValidationError,
)
from laneboard.services.lane_registry import (
    CORE_LANE_IDS,
    CORE_LANE_LABELS,
    LANE_ID_PATTERN,
    default_lanes,
    normalize_lane_id,
)

logger = logging.getLogger(__name__)


def _sanitize_lane_name(raw_name):
    """Trim and collapse internal whitespace."""
    return " ".join(raw_name.split())


def _normalize_draft(draft):
    if not isinstance(draft, dict):
        raise LaneNameRequired()

    raw_name = draft.get("name")
    if not isinstance(raw_name, str):
        raise LaneNameRequired()
    name = _sanitize_lane_name(raw_name)
    if not name:
        raise LaneNameRequired()

    raw_id = draft.get("id")
    if raw_id is not None and not isinstance(raw_id, str):
        raise InvalidLaneId()
    lane_id = normalize_lane_id(raw_id or name)
    if not lane_id or not LANE_ID_PATTERN.match(lane_id):
        raise InvalidLaneId()

    return {"id": lane_id, "name": name}


def normalize_lane_drafts(drafts):
    """Validate and canonicalize a candidate lane list.

    Args:
        drafts: List of {"id"?, "name"} dicts. ``id`` may be omitted or
            empty, in which case it is derived from the name.

    Returns:
        New list of {"id", "name"} dicts in the input order.

    Raises:
        EmptyLaneList, LaneNameRequired, InvalidLaneId, DuplicateLaneId,
        DuplicateLaneName, MissingCoreLane, CoreLaneRenamed.
    """
    if not drafts:
        raise EmptyLaneList()

    lanes = [_normalize_draft(draft) for draft in drafts]

    seen_ids = set()
    seen_names = set()
    for lane in lanes:
        if lane["id"] in seen_ids:
            raise DuplicateLaneId(f'Lane id "{lane["id"]}" is duplicated.')
        seen_ids.add(lane["id"])

        name_lower = lane["name"].lower()
        if name_lower in seen_names:
            raise DuplicateLaneName(f'Lane name "{lane["name"]}" is duplicated.')
        seen_names.add(name_lower)

    by_id = {lane["id"]: lane for lane in lanes}
    for core_id in CORE_LANE_IDS:
        label = CORE_LANE_LABELS[core_id]
        found = by_id.get(core_id)
        if found is None:
            raise MissingCoreLane(f'Lane "{label}" is required.')
        if found["name"] != label:
            raise CoreLaneRenamed(f'Lane "{label}" cannot be renamed.')

    return lanes


def try_normalize_lane_drafts(drafts):
    """Non-raising form of normalize_lane_drafts().

    Returns:
        tuple: (lanes, error_message)
            - If valid: (list_of_lanes, None)
            - If invalid: (None, "reason string")
    """
    if not isinstance(drafts, (list, tuple)):
        return None, "Lane configuration must be a list."
    try:
        return normalize_lane_drafts(drafts), None
    except ValidationError as e:
        return None, e.message


def resolve_project_lanes(stored):
    """Resolve a project's stored lane list to a valid, ordered one.

    Never raises: absent, empty, or invalid configurations resolve to the
    default template.
    """
    if not stored:
        return default_lanes()

    lanes, error = try_normalize_lane_drafts(stored)
    if error:
        logger.warning(f"Stored lane configuration is invalid ({error}); using defaults")
        return default_lanes()
    return lanes


def lane_ids(lanes):
    return [lane["id"] for lane in lanes]


def has_lane(lanes, lane_id):
    return any(lane["id"] == lane_id for lane in lanes)


def get_default_task_lane_id(lanes):
    """Lane new tasks land in: "todo" when configured, else "backlog"."""
    if has_lane(lanes, "todo"):
        return "todo"
    return "backlog"
