"""Project service — projects, board reads, lane configuration.

update_project_lanes() is the only path that changes a project's lanes.
It validates everything first (new lane list, mapping table, a
destination for every removed lane that still holds tasks) and only
then remaps tasks and persists, so a rejected request leaves nothing
half-applied even before the caller rolls back.

Functions flush but do NOT commit — the caller commits.
"""

import logging
import re
from datetime import datetime, timezone

from laneboard.errors import (
    DuplicateMapping,
    InvalidDestination,
    MissingDestinationMapping,
    ValidationError,
)
from laneboard.extensions import db
from laneboard.models.project import Project, ProjectMember
from laneboard.models.task import Task
from laneboard.services import member_service, sort_keys
from laneboard.services.lane_registry import default_lanes
from laneboard.services.lane_resolver import (
    lane_ids,
    normalize_lane_drafts,
    resolve_project_lanes,
)
from laneboard.services.sanitize import sanitize
from laneboard.services.task_service import task_to_dict

logger = logging.getLogger(__name__)

THEME_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


# ─── Helpers ─────────────────────────────────────────────────────

def _task_counts(project_id, lanes):
    """Per-lane task counts, zero-filled for every configured lane."""
    counts = {lane["id"]: 0 for lane in lanes}
    rows = (
        db.session.query(Task.status, db.func.count(Task.id))
        .filter(Task.project_id == project_id)
        .group_by(Task.status)
        .all()
    )
    for status, count in rows:
        if status in counts:
            counts[status] = count
    return counts


def _task_statuses(project_id):
    """Distinct lane ids referenced by the project's tasks, sorted."""
    rows = (
        db.session.query(Task.status)
        .filter(Task.project_id == project_id)
        .distinct()
        .order_by(Task.status.asc())
        .all()
    )
    return [status for (status,) in rows]


def _project_summary(project, lanes, membership):
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description or "",
        "theme_color": project.theme_color,
        "lanes": lanes,
        "task_counts": _task_counts(project.id, lanes),
        "viewer_role": membership.role,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def _parse_mappings(removed_lane_mappings):
    """Build {from_lane_id: to_lane_id}; a from-lane may appear once."""
    table = {}
    for entry in removed_lane_mappings or []:
        if not isinstance(entry, dict):
            raise ValidationError("Each lane mapping needs a source and a destination.")
        from_id = entry.get("from_lane_id")
        to_id = entry.get("to_lane_id")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            raise ValidationError("Each lane mapping needs a source and a destination.")
        if from_id in table:
            raise DuplicateMapping(f'Lane "{from_id}" is mapped more than once.')
        table[from_id] = to_id
    return table


# ─── Create / list ───────────────────────────────────────────────

def create_project(user_id, name, description="", theme_color=None, lanes=None):
    """Create a project and make the creator its owner.

    Args:
        user_id: Creator's user UUID string.
        name: Project name (sanitized, required).
        description: Optional description (sanitized).
        theme_color: Hex "#rrggbb"; defaults to Project.DEFAULT_THEME_COLOR.
        lanes: Optional lane drafts. Validated strictly; omitted means the
            default template.

    Returns:
        The created Project.

    Raises:
        ValidationError (or a lane validation subclass).
    """
    name = sanitize(name) if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Project name is required.")

    description = sanitize(description) if isinstance(description, str) else ""

    theme_color = theme_color or Project.DEFAULT_THEME_COLOR
    if not isinstance(theme_color, str) or not THEME_COLOR_PATTERN.match(theme_color):
        raise ValidationError("Theme color must be a hex color like #0f766e.")

    resolved_lanes = normalize_lane_drafts(lanes) if lanes is not None else default_lanes()

    now = datetime.now(timezone.utc)
    project = Project(
        name=name,
        description=description,
        theme_color=theme_color.lower(),
        lanes=resolved_lanes,
        created_by_user_id=user_id,
        created_at=now,
        updated_at=now,
    )
    db.session.add(project)
    db.session.flush()

    db.session.add(ProjectMember(
        project_id=project.id,
        user_id=user_id,
        role="owner",
        added_by_user_id=user_id,
    ))
    db.session.flush()

    logger.info(f"Project {project.id} created by {user_id}")
    return project


def list_projects_for_user(user_id):
    """Projects the user belongs to, most recently updated first."""
    rows = (
        db.session.query(ProjectMember, Project)
        .join(Project, Project.id == ProjectMember.project_id)
        .filter(ProjectMember.user_id == user_id)
        .order_by(Project.updated_at.desc())
        .all()
    )
    return [
        _project_summary(project, resolve_project_lanes(project.lanes), membership)
        for membership, project in rows
    ]


# ─── Board / settings ────────────────────────────────────────────

def get_board(project_id, user_id):
    """Everything the board view renders in one payload.

    Tasks are ordered by lane display position, then sort key. Tasks in a
    lane the project no longer configures sort after all others.
    """
    membership = member_service.require_membership(project_id, user_id)
    project = member_service.require_project(project_id)
    lanes = resolve_project_lanes(project.lanes)

    lane_position = {lane["id"]: i for i, lane in enumerate(lanes)}
    tasks = (
        Task.query
        .filter_by(project_id=project_id)
        .order_by(Task.sort_order.asc(), Task.created_at.asc())
        .all()
    )
    tasks.sort(key=lambda t: lane_position.get(t.status, len(lanes)))

    can_manage = membership.can_manage
    return {
        "project": _project_summary(project, lanes, membership),
        "tasks": [task_to_dict(t) for t in tasks],
        "members": member_service.list_members(project_id),
        "viewer_role": membership.role,
        "can_manage_members": can_manage,
        "can_manage_lanes": can_manage,
    }


def get_project_settings(project_id, user_id):
    membership = member_service.require_membership(project_id, user_id)
    project = member_service.require_project(project_id)
    lanes = resolve_project_lanes(project.lanes)

    return {
        "project": {
            "id": project.id,
            "name": project.name,
            "description": project.description or "",
            "theme_color": project.theme_color,
            "lanes": lanes,
            "task_counts_by_lane": _task_counts(project.id, lanes),
        },
        "viewer_role": membership.role,
        "can_manage_lanes": membership.can_manage,
    }


# ─── Lane lifecycle ──────────────────────────────────────────────

def update_project_lanes(project_id, user_id, next_lanes, removed_lane_mappings=None):
    """Replace a project's lane configuration.

    Lanes present now but absent from ``next_lanes`` are removed. Any
    removed lane that still holds tasks needs an entry in
    ``removed_lane_mappings`` pointing at a lane that survives; its tasks
    are appended (in their existing order) to that lane, and every lane
    that received tasks is repacked afterwards.

    Args:
        project_id: Project UUID string.
        user_id: Acting user; must be owner or admin.
        next_lanes: Lane drafts for the new configuration.
        removed_lane_mappings: List of {"from_lane_id", "to_lane_id"}.

    Returns:
        The new lane list.

    Raises:
        ProjectNotFound, Forbidden, lane validation errors,
        DuplicateMapping, MissingDestinationMapping, InvalidDestination.
    """
    project = member_service.require_project(project_id)
    member_service.require_manager(
        project_id, user_id,
        "Only project owners or admins can manage lanes.",
    )

    current_lanes = resolve_project_lanes(project.lanes)
    lanes = normalize_lane_drafts(next_lanes)

    next_ids = set(lane_ids(lanes))
    removed_ids = [lane_id for lane_id in lane_ids(current_lanes) if lane_id not in next_ids]
    # Tasks may sit in lanes the resolved list no longer shows (e.g. the
    # stored config was corrupt and fell back to defaults). Those count as
    # removed too, after the configured ones.
    removed_ids += [
        status for status in _task_statuses(project_id)
        if status not in next_ids and status not in removed_ids
    ]
    removed_set = set(removed_ids)
    mappings = _parse_mappings(removed_lane_mappings)

    # --- Validate every removal before touching any task ---
    remaps = []
    for lane_id in removed_ids:
        tasks = sort_keys.lane_tasks(project_id, lane_id)
        if not tasks:
            continue
        destination = mappings.get(lane_id)
        if destination is None:
            raise MissingDestinationMapping(
                f'Choose where tasks in lane "{lane_id}" should go.'
            )
        if destination not in next_ids or destination in removed_set:
            raise InvalidDestination(
                f'Tasks from "{lane_id}" must move to a lane that is being kept.'
            )
        remaps.append((lane_id, destination, tasks))

    # --- Append removed lanes' tasks to their destinations ---
    now = datetime.now(timezone.utc)
    buckets = {}
    for lane_id, destination, tasks in remaps:
        bucket = buckets.get(destination)
        if bucket is None:
            bucket = sort_keys.lane_tasks(project_id, destination)
            buckets[destination] = bucket
        next_key = sort_keys.next_sort_order(bucket)
        for task in tasks:
            task.status = destination
            task.sort_order = next_key
            task.updated_at = now
            bucket.append(task)
            next_key += sort_keys.SORT_ORDER_GAP
        logger.info(
            f"Project {project_id}: moved {len(tasks)} task(s) from removed lane "
            f"{lane_id} to {destination}"
        )

    # --- Repack each destination once all sources have fed it ---
    for destination, bucket in buckets.items():
        sort_keys.repack_lane(bucket, destination, now=now)

    project.lanes = lanes
    project.updated_at = now
    db.session.flush()

    logger.info(
        f"Project {project_id} lanes updated by {user_id}: {', '.join(lane_ids(lanes))}"
        + (f" (removed: {', '.join(removed_ids)})" if removed_ids else "")
    )
    return lanes
