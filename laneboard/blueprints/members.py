"""Members blueprint — /api/projects/<id>/members/*

Route Map:
  GET    /api/projects/<id>/members/search?q=  — find users to invite
  POST   /api/projects/<id>/members            — invite by email
  PUT    /api/projects/<id>/members/<user_id>  — change role
  DELETE /api/projects/<id>/members/<user_id>  — remove member
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from laneboard.extensions import db
from laneboard.services import member_service

members_bp = Blueprint(
    "members", __name__, url_prefix="/api/projects/<project_id>/members"
)


@members_bp.route("/search")
@login_required
def search(project_id):
    results = member_service.search_by_email(
        project_id, current_user.id, request.args.get("q", "")
    )
    return jsonify(results)


@members_bp.route("", methods=["POST"])
@login_required
def invite(project_id):
    data = request.get_json(silent=True) or {}
    member_service.invite_member(
        project_id,
        current_user.id,
        data.get("email"),
        data.get("role", "member"),
    )
    db.session.commit()
    return jsonify({"success": True}), 201


@members_bp.route("/<user_id>", methods=["PUT"])
@login_required
def update_role(project_id, user_id):
    data = request.get_json(silent=True) or {}
    member_service.update_member_role(
        project_id, current_user.id, user_id, data.get("role")
    )
    db.session.commit()
    return jsonify({"success": True})


@members_bp.route("/<user_id>", methods=["DELETE"])
@login_required
def remove(project_id, user_id):
    member_service.remove_member(project_id, current_user.id, user_id)
    db.session.commit()
    return jsonify({"success": True})
