"""Tasks blueprint — task CRUD and drag-and-drop moves.

Route Map:
  POST   /api/projects/<id>/tasks            — create task
  POST   /api/projects/<id>/tasks/quick-add  — create task in a lane
  PUT    /api/tasks/<id>                     — partial update
  DELETE /api/tasks/<id>                     — delete task
  PUT    /api/tasks/<id>/move                — move to lane + index
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from laneboard.extensions import db
from laneboard.services import task_service
from laneboard.services.task_service import task_to_dict

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api")

# Fields a client may set through create/update.
TASK_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "assignee_id",
    "due_date",
    "tags",
    "estimate_points",
)


@tasks_bp.route("/projects/<project_id>/tasks", methods=["POST"])
@login_required
def create_task(project_id):
    data = request.get_json(silent=True) or {}
    fields = {key: data[key] for key in TASK_FIELDS if key in data and key != "title"}
    task = task_service.create_task(
        project_id, current_user.id, data.get("title"), **fields
    )
    db.session.commit()
    return jsonify(task_to_dict(task)), 201


@tasks_bp.route("/projects/<project_id>/tasks/quick-add", methods=["POST"])
@login_required
def quick_add_task(project_id):
    data = request.get_json(silent=True) or {}
    task = task_service.quick_add_task(
        project_id, current_user.id, data.get("status"), data.get("title")
    )
    db.session.commit()
    return jsonify(task_to_dict(task)), 201


@tasks_bp.route("/tasks/<task_id>", methods=["PUT"])
@login_required
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    fields = {key: data[key] for key in TASK_FIELDS if key in data}
    task = task_service.update_task(task_id, current_user.id, **fields)
    db.session.commit()
    return jsonify(task_to_dict(task))


@tasks_bp.route("/tasks/<task_id>", methods=["DELETE"])
@login_required
def delete_task(task_id):
    task_service.delete_task(task_id, current_user.id)
    db.session.commit()
    return jsonify({"success": True})


@tasks_bp.route("/tasks/<task_id>/move", methods=["PUT"])
@login_required
def move_task(task_id):
    data = request.get_json(silent=True) or {}
    task_service.move_task(
        task_id,
        data.get("status"),
        data.get("index", 0),
        current_user.id,
    )
    db.session.commit()
    return jsonify({"success": True})
