"""Projects blueprint — /api/projects/*

Project creation, board/settings reads, and lane configuration.
Errors raised by the services are turned into JSON by the app-level
BoardError handler.

Route Map:
  GET  /api/projects                      — projects for the current user
  POST /api/projects                      — create project
  GET  /api/projects/<id>/board           — full board payload
  GET  /api/projects/<id>/settings        — settings + lane task counts
  PUT  /api/projects/<id>/lanes           — replace lanes (with remaps)
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from laneboard.extensions import db
from laneboard.services import project_service

projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@projects_bp.route("", methods=["GET"])
@login_required
def list_projects():
    return jsonify(project_service.list_projects_for_user(current_user.id))


@projects_bp.route("", methods=["POST"])
@login_required
def create_project():
    data = request.get_json(silent=True) or {}
    project = project_service.create_project(
        current_user.id,
        name=data.get("name"),
        description=data.get("description", ""),
        theme_color=data.get("theme_color"),
        lanes=data.get("lanes"),
    )
    db.session.commit()
    return jsonify({"project_id": project.id}), 201


@projects_bp.route("/<project_id>/board")
@login_required
def board(project_id):
    return jsonify(project_service.get_board(project_id, current_user.id))


@projects_bp.route("/<project_id>/settings")
@login_required
def settings(project_id):
    return jsonify(project_service.get_project_settings(project_id, current_user.id))


@projects_bp.route("/<project_id>/lanes", methods=["PUT"])
@login_required
def update_lanes(project_id):
    data = request.get_json(silent=True) or {}
    lanes = project_service.update_project_lanes(
        project_id,
        current_user.id,
        next_lanes=data.get("lanes") or [],
        removed_lane_mappings=data.get("removed_lane_mappings") or [],
    )
    db.session.commit()
    return jsonify({"lanes": lanes})
