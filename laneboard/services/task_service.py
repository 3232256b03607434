"""Task service — CRUD and drag-and-drop placement.

Every task lives in exactly one lane of its project (``task.status``).
Lane membership is checked against the project's resolved lanes on
every write. Sort keys come from the sort-key allocator:

- create / quick add / lane change via update_task: append (max + gap)
- move_task: insert at a visual index and repack both affected lanes

All title/description input is sanitized with bleach.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import date, datetime, timezone

from laneboard.errors import InvalidLane, TaskNotFound, ValidationError
from laneboard.extensions import db
from laneboard.models.task import Task
from laneboard.services import member_service, sort_keys
from laneboard.services.lane_resolver import (
    get_default_task_lane_id,
    has_lane,
    resolve_project_lanes,
)
from laneboard.services.sanitize import sanitize

logger = logging.getLogger(__name__)


# ─── Field helpers ───────────────────────────────────────────────

def _assert_valid_lane(lanes, lane_id):
    if not isinstance(lane_id, str) or not has_lane(lanes, lane_id):
        raise InvalidLane()


def _clean_title(title):
    title = sanitize(title) if isinstance(title, str) else ""
    if not title:
        raise ValidationError("Task title is required.")
    return title


def _clean_description(description):
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Task description must be text.")
    return sanitize(description)


def _clean_priority(priority):
    if priority not in Task.PRIORITIES:
        raise ValidationError(
            f"Invalid priority '{priority}'. Must be one of: {', '.join(Task.PRIORITIES)}"
        )
    return priority


def _clean_tags(tags):
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("Tags must be a list.")
    return [sanitize(str(tag)) for tag in tags if sanitize(str(tag))]


def _clean_estimate(estimate):
    if isinstance(estimate, bool) or not isinstance(estimate, int) or estimate < 0:
        raise ValidationError("Estimate must be a non-negative whole number.")
    return estimate


def _parse_due_date(value):
    """Accept None, a date, or a complete ISO date or datetime string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError("Due date must be an ISO date (YYYY-MM-DD).")


def _resolve_assignee(project_id, candidate_id, fallback_id):
    """Keep ``candidate_id`` if they are a project member, else ``fallback_id``."""
    if candidate_id and member_service.is_project_member(project_id, candidate_id):
        return candidate_id
    return fallback_id


def _load_task_for_member(task_id, user_id):
    task = db.session.get(Task, task_id)
    if task is None:
        raise TaskNotFound()
    member_service.require_membership(task.project_id, user_id)
    return task


def task_to_dict(task):
    """Serialize a Task to a JSON-safe dict."""
    return {
        "id": task.id,
        "project_id": task.project_id,
        "title": task.title,
        "description": task.description or "",
        "status": task.status,
        "priority": task.priority,
        "assignee_id": task.assignee_user_id,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "tags": list(task.tags or []),
        "estimate_points": task.estimate_points,
        "sort_order": task.sort_order,
        "created_at": task.created_at.isoformat() if task.created_at else None,
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
    }


# ─── Create ──────────────────────────────────────────────────────

def create_task(
    project_id,
    user_id,
    title,
    description=None,
    status=None,
    priority=None,
    assignee_id=None,
    due_date=None,
    tags=None,
    estimate_points=None,
):
    """Create a task at the end of its lane.

    Args:
        project_id: Project UUID string.
        user_id: Acting user (must be a member).
        title: Task title (sanitized, required).
        status: Lane id; defaults to "todo" if configured, else "backlog".
        priority: One of Task.PRIORITIES; defaults to "medium".
        assignee_id: Must be a project member, otherwise the actor is used.

    Returns:
        The created Task.

    Raises:
        NotAMember, ProjectNotFound, InvalidLane, ValidationError.
    """
    member_service.require_membership(project_id, user_id)
    project = member_service.require_project(project_id)
    lanes = resolve_project_lanes(project.lanes)

    title = _clean_title(title)
    lane_id = status if status is not None else get_default_task_lane_id(lanes)
    _assert_valid_lane(lanes, lane_id)

    now = datetime.now(timezone.utc)
    task = Task(
        project_id=project_id,
        title=title,
        description=_clean_description(description),
        status=lane_id,
        priority=_clean_priority(priority or Task.DEFAULT_PRIORITY),
        assignee_user_id=_resolve_assignee(project_id, assignee_id or user_id, user_id),
        due_date=_parse_due_date(due_date),
        tags=_clean_tags(tags),
        estimate_points=_clean_estimate(
            Task.DEFAULT_ESTIMATE_POINTS if estimate_points is None else estimate_points
        ),
        sort_order=sort_keys.next_sort_order_for_lane(project_id, lane_id),
        created_at=now,
        updated_at=now,
    )
    db.session.add(task)
    project.updated_at = now
    db.session.flush()

    return task


def quick_add_task(project_id, user_id, status, title):
    """Create a task in a specific lane with every other field defaulted."""
    member_service.require_membership(project_id, user_id)
    project = member_service.require_project(project_id)
    lanes = resolve_project_lanes(project.lanes)
    _assert_valid_lane(lanes, status)

    title = _clean_title(title)

    now = datetime.now(timezone.utc)
    task = Task(
        project_id=project_id,
        title=title,
        description="",
        status=status,
        priority=Task.DEFAULT_PRIORITY,
        assignee_user_id=user_id,
        due_date=None,
        tags=[],
        estimate_points=Task.DEFAULT_ESTIMATE_POINTS,
        sort_order=sort_keys.next_sort_order_for_lane(project_id, status),
        created_at=now,
        updated_at=now,
    )
    db.session.add(task)
    db.session.flush()

    return task


# ─── Update / delete ─────────────────────────────────────────────

_UNSET = object()


def update_task(
    task_id,
    user_id,
    title=_UNSET,
    description=_UNSET,
    status=_UNSET,
    priority=_UNSET,
    assignee_id=_UNSET,
    due_date=_UNSET,
    tags=_UNSET,
    estimate_points=_UNSET,
):
    """Apply a partial edit. Only the fields passed are changed.

    Changing ``status`` re-validates the lane and appends the task to the
    end of the new lane; otherwise the sort key is left alone.
    """
    task = _load_task_for_member(task_id, user_id)
    project = member_service.require_project(task.project_id)
    lanes = resolve_project_lanes(project.lanes)

    next_status = task.status if status is _UNSET else status
    _assert_valid_lane(lanes, next_status)

    next_title = task.title if title is _UNSET else _clean_title(title)

    if status is not _UNSET and status != task.status:
        task.sort_order = sort_keys.next_sort_order_for_lane(task.project_id, next_status)
        task.status = next_status

    task.title = next_title
    if description is not _UNSET:
        task.description = _clean_description(description)
    if priority is not _UNSET:
        task.priority = _clean_priority(priority)
    if assignee_id is not _UNSET:
        task.assignee_user_id = _resolve_assignee(
            task.project_id, assignee_id, task.assignee_user_id
        )
    if due_date is not _UNSET:
        task.due_date = _parse_due_date(due_date)
    if tags is not _UNSET:
        task.tags = _clean_tags(tags)
    if estimate_points is not _UNSET:
        task.estimate_points = _clean_estimate(estimate_points)

    task.updated_at = datetime.now(timezone.utc)
    db.session.flush()

    return task


def delete_task(task_id, user_id):
    """Delete a task. The gap it leaves is harmless; keys stay increasing."""
    task = _load_task_for_member(task_id, user_id)
    db.session.delete(task)
    db.session.flush()


# ─── Placement ───────────────────────────────────────────────────

def move_task(task_id, destination_lane_id, visual_index, user_id):
    """Move a task to ``visual_index`` within ``destination_lane_id``.

    The destination lane is rebuilt with the task inserted at the clamped
    index and repacked; when the task changes lanes, the source lane is
    repacked too to close the gap. The moved task is always written,
    other tasks only if their key or lane actually changed.

    Raises:
        TaskNotFound, NotAMember, InvalidLane, ValidationError.
    """
    task = _load_task_for_member(task_id, user_id)
    project = member_service.require_project(task.project_id)
    lanes = resolve_project_lanes(project.lanes)
    _assert_valid_lane(lanes, destination_lane_id)

    if isinstance(visual_index, bool) or not isinstance(visual_index, int):
        raise ValidationError("Index must be a whole number.")

    source_lane_id = task.status
    source_list = sort_keys.lane_tasks(
        task.project_id, source_lane_id, exclude_task_id=task.id
    )

    if destination_lane_id == source_lane_id:
        destination_base = source_list
    else:
        destination_base = sort_keys.lane_tasks(task.project_id, destination_lane_id)

    index = max(0, min(visual_index, len(destination_base)))
    destination_list = list(destination_base)
    destination_list.insert(index, task)

    now = datetime.now(timezone.utc)
    sort_keys.repack_lane(
        destination_list, destination_lane_id, now=now, always_write={task.id}
    )
    if destination_lane_id != source_lane_id:
        sort_keys.repack_lane(source_list, source_lane_id, now=now)

    logger.debug(
        f"Task {task.id} moved {source_lane_id} -> {destination_lane_id} "
        f"at index {index} by {user_id}"
    )
