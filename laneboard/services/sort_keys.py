"""Sort-key allocator — append keys and lane repacking.

Keys are integers spaced SORT_ORDER_GAP apart. Appends take the lane's
max + gap; structural changes (moves, lane removal) repack the whole
lane to (position + 1) * gap rather than inserting between neighbours.

Functions flush but do NOT commit — the caller commits.
"""

from datetime import datetime, timezone

from laneboard.extensions import db
from laneboard.models.task import Task

SORT_ORDER_GAP = 1000


def next_sort_order(tasks_in_lane):
    """Key that appends after every task in ``tasks_in_lane``."""
    highest = max((task.sort_order or 0 for task in tasks_in_lane), default=0)
    return max(highest, 0) + SORT_ORDER_GAP


def lane_tasks(project_id, lane_id, exclude_task_id=None):
    """Tasks in one lane, in display order (sort key, then insertion)."""
    query = Task.query.filter_by(project_id=project_id, status=lane_id)
    if exclude_task_id is not None:
        query = query.filter(Task.id != exclude_task_id)
    return query.order_by(Task.sort_order.asc(), Task.created_at.asc()).all()


def next_sort_order_for_lane(project_id, lane_id):
    return next_sort_order(lane_tasks(project_id, lane_id))


def repack_lane(tasks, lane_id, now=None, always_write=()):
    """Rewrite keys so ``tasks`` occupy ``lane_id`` in the given order.

    Each task gets ``sort_order = (index + 1) * SORT_ORDER_GAP`` and
    ``status = lane_id``. Tasks whose key and status already match are
    left untouched (no write, no updated_at bump) unless their id is in
    ``always_write``.

    Args:
        tasks: Tasks in the desired display order.
        lane_id: Lane the tasks belong to after the repack.
        now: Timestamp for updated_at; defaults to the current UTC time.
        always_write: Task ids to write even if nothing changed.

    Returns:
        List of the tasks that were written.
    """
    now = now or datetime.now(timezone.utc)
    written = []
    for index, task in enumerate(tasks):
        target = (index + 1) * SORT_ORDER_GAP
        if (
            task.sort_order == target
            and task.status == lane_id
            and task.id not in always_write
        ):
            continue
        task.sort_order = target
        task.status = lane_id
        task.updated_at = now
        written.append(task)

    if written:
        db.session.flush()
    return written
