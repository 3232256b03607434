"""Tests for the lane registry and lane resolver.

Covers:
- Lane id derivation from display names
- Strict lane-list validation (empty, duplicates, core lanes)
- Resolution of stored configurations with fallback to defaults
- Default lane selection for new tasks
"""

import pytest

from laneboard.errors import (
    CoreLaneRenamed,
    DuplicateLaneId,
    DuplicateLaneName,
    EmptyLaneList,
    InvalidLaneId,
    LaneNameRequired,
    MissingCoreLane,
)
from laneboard.services.lane_registry import (
    CORE_LANE_IDS,
    CORE_LANE_LABELS,
    LANE_ID_PATTERN,
    default_lanes,
    to_lane_id_from_name,
)
from laneboard.services.lane_resolver import (
    get_default_task_lane_id,
    has_lane,
    normalize_lane_drafts,
    resolve_project_lanes,
    try_normalize_lane_drafts,
)


def _core_lanes():
    return [
        {"id": "backlog", "name": "Backlog"},
        {"id": "in_progress", "name": "In Progress"},
        {"id": "done", "name": "Done"},
    ]


# ─── Registry ──────────────────────────────────────────────

class TestLaneRegistry:

    def test_lane_id_from_name_strips_punctuation(self):
        assert to_lane_id_from_name("QA Ready!") == "qa_ready"

    def test_lane_id_from_name_collapses_separators(self):
        assert to_lane_id_from_name("  Needs -- Design   Review ") == "needs_design_review"

    def test_lane_id_from_name_rejects_leading_digit(self):
        with pytest.raises(InvalidLaneId):
            to_lane_id_from_name("2nd pass")

    def test_lane_id_from_name_rejects_empty_result(self):
        with pytest.raises(InvalidLaneId):
            to_lane_id_from_name("!!!")

    def test_default_lanes_are_fresh_copies(self):
        lanes = default_lanes()
        lanes[0]["name"] = "Mutated"
        assert default_lanes()[0]["name"] == "Backlog"

    def test_default_template_order(self):
        assert [lane["id"] for lane in default_lanes()] == [
            "backlog", "todo", "in_progress", "review", "done",
        ]

    def test_core_labels_are_read_only(self):
        with pytest.raises(TypeError):
            CORE_LANE_LABELS["done"] = "Finished"


# ─── normalize_lane_drafts ─────────────────────────────────

class TestNormalizeLaneDrafts:

    def test_empty_list_rejected(self):
        with pytest.raises(EmptyLaneList):
            normalize_lane_drafts([])

    def test_missing_in_progress_rejected(self):
        lanes = [{"id": "backlog", "name": "Backlog"}, {"id": "done", "name": "Done"}]
        with pytest.raises(MissingCoreLane, match="In Progress"):
            normalize_lane_drafts(lanes)

    def test_renaming_done_rejected(self):
        lanes = _core_lanes()
        lanes[2]["name"] = "Finished"
        with pytest.raises(CoreLaneRenamed, match="Done"):
            normalize_lane_drafts(lanes)

    def test_blank_name_rejected(self):
        lanes = _core_lanes() + [{"id": "qa", "name": "   "}]
        with pytest.raises(LaneNameRequired):
            normalize_lane_drafts(lanes)

    def test_malformed_id_rejected(self):
        lanes = _core_lanes() + [{"id": "9lives", "name": "Nine Lives"}]
        with pytest.raises(InvalidLaneId):
            normalize_lane_drafts(lanes)

    def test_duplicate_id_rejected(self):
        lanes = _core_lanes() + [
            {"id": "qa", "name": "QA"},
            {"id": "qa", "name": "Quality"},
        ]
        with pytest.raises(DuplicateLaneId):
            normalize_lane_drafts(lanes)

    def test_duplicate_name_is_case_insensitive(self):
        lanes = _core_lanes() + [
            {"id": "qa", "name": "QA"},
            {"id": "qa_two", "name": "qa"},
        ]
        with pytest.raises(DuplicateLaneName):
            normalize_lane_drafts(lanes)

    def test_id_derived_from_name_when_missing(self):
        lanes = _core_lanes() + [{"name": "QA Ready!"}, {"id": "", "name": "Blocked"}]
        result = normalize_lane_drafts(lanes)
        assert result[3] == {"id": "qa_ready", "name": "QA Ready!"}
        assert result[4] == {"id": "blocked", "name": "Blocked"}

    def test_name_whitespace_collapsed(self):
        lanes = _core_lanes() + [{"id": "qa", "name": "  Ready   for  QA "}]
        assert normalize_lane_drafts(lanes)[3]["name"] == "Ready for QA"

    def test_supplied_id_is_normalized(self):
        lanes = _core_lanes() + [{"id": "Code-Review", "name": "Code Review"}]
        assert normalize_lane_drafts(lanes)[3]["id"] == "code_review"

    def test_input_order_preserved(self):
        lanes = [
            {"id": "done", "name": "Done"},
            {"id": "ideas", "name": "Ideas"},
            {"id": "in_progress", "name": "In Progress"},
            {"id": "backlog", "name": "Backlog"},
        ]
        assert [lane["id"] for lane in normalize_lane_drafts(lanes)] == [
            "done", "ideas", "in_progress", "backlog",
        ]

    def test_non_dict_draft_rejected(self):
        with pytest.raises(LaneNameRequired):
            normalize_lane_drafts(_core_lanes() + ["qa"])


# ─── resolve_project_lanes ─────────────────────────────────

class TestResolveProjectLanes:

    @pytest.mark.parametrize("stored", [
        None,
        [],
        [{"id": "backlog", "name": "Backlog"}],                  # missing core lanes
        _core_lanes() + [{"id": "done", "name": "Again"}],       # duplicate id
        [{"id": "backlog"}, {"id": "in_progress"}, {"id": "done"}],  # no names
        "backlog,done",                                          # not a list
        [None, 42, "x"],
    ])
    def test_invalid_configurations_fall_back_to_defaults(self, stored):
        assert resolve_project_lanes(stored) == default_lanes()

    def test_valid_configuration_is_kept(self):
        stored = _core_lanes() + [{"id": "qa", "name": "QA"}]
        assert resolve_project_lanes(stored) == stored

    def test_resolved_lanes_always_hold_core_lanes(self):
        for stored in (None, _core_lanes(), [{"id": "junk", "name": "Junk"}]):
            lanes = resolve_project_lanes(stored)
            by_id = {lane["id"]: lane["name"] for lane in lanes}
            for core_id in CORE_LANE_IDS:
                assert by_id[core_id] == CORE_LANE_LABELS[core_id]
            assert all(LANE_ID_PATTERN.match(lane["id"]) for lane in lanes)

    def test_try_normalize_reports_error_without_raising(self):
        lanes, error = try_normalize_lane_drafts([])
        assert lanes is None
        assert error == "At least one lane is required."

    def test_try_normalize_returns_lanes_when_valid(self):
        lanes, error = try_normalize_lane_drafts(_core_lanes())
        assert error is None
        assert lanes == _core_lanes()


class TestLaneHelpers:

    def test_has_lane(self):
        lanes = default_lanes()
        assert has_lane(lanes, "review")
        assert not has_lane(lanes, "qa")

    def test_default_task_lane_prefers_todo(self):
        assert get_default_task_lane_id(default_lanes()) == "todo"

    def test_default_task_lane_falls_back_to_backlog(self):
        assert get_default_task_lane_id(_core_lanes()) == "backlog"
