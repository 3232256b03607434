"""Member service — membership guards, role changes, user search.

Role rules:
- owner/admin manage members; plain members cannot.
- admins cannot invite, modify, promote to, or remove owners.
- a project always keeps at least one owner.

Functions flush but do NOT commit — the caller commits.
"""

import logging

from flask import current_app

from laneboard.errors import (
    AlreadyMember,
    Forbidden,
    LastOwner,
    MemberNotFound,
    NotAMember,
    ProjectNotFound,
    UserNotFound,
    ValidationError,
)
from laneboard.extensions import db
from laneboard.models.project import Project, ProjectMember
from laneboard.models.user import User
from laneboard.services.sanitize import normalize_email

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


# ─── Guards ──────────────────────────────────────────────────────

def get_membership(project_id, user_id):
    return ProjectMember.query.filter_by(
        project_id=project_id, user_id=user_id
    ).first()


def is_project_member(project_id, user_id):
    return get_membership(project_id, user_id) is not None


def require_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        raise ProjectNotFound()
    return project


def require_membership(project_id, user_id):
    """Return the caller's membership or raise NotAMember."""
    membership = get_membership(project_id, user_id)
    if membership is None:
        raise NotAMember()
    return membership


def require_manager(project_id, user_id, message=None):
    """Return the caller's membership if owner/admin, else raise Forbidden."""
    membership = get_membership(project_id, user_id)
    if membership is None or not membership.can_manage:
        raise Forbidden(message)
    return membership


def count_owners(project_id):
    return ProjectMember.query.filter_by(
        project_id=project_id, role="owner"
    ).count()


def _validate_role(role):
    if role not in ProjectMember.ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(ProjectMember.ROLES)}"
        )


# ─── Mutations ───────────────────────────────────────────────────

def invite_member(project_id, actor_user_id, email, role="member"):
    """Add a registered user to a project by email.

    Returns:
        The created ProjectMember.

    Raises:
        Forbidden: Actor is not owner/admin, or an admin invites an owner.
        UserNotFound: No user has that email.
        AlreadyMember: The user is already on the project.
    """
    _validate_role(role)
    require_project(project_id)
    requester = require_manager(
        project_id, actor_user_id,
        "Only project owners or admins can manage members.",
    )

    if requester.role == "admin" and role == "owner":
        raise Forbidden("Admins cannot invite owners.")

    user = User.query.filter_by(email=normalize_email(email)).first()
    if user is None:
        raise UserNotFound()

    if get_membership(project_id, user.id) is not None:
        raise AlreadyMember()

    membership = ProjectMember(
        project_id=project_id,
        user_id=user.id,
        role=role,
        added_by_user_id=actor_user_id,
    )
    db.session.add(membership)
    db.session.flush()

    logger.info(f"User {user.id} added to project {project_id} as {role} by {actor_user_id}")
    return membership


def update_member_role(project_id, actor_user_id, user_id, role):
    """Change a member's role, enforcing admin limits and last-owner protection."""
    _validate_role(role)
    require_project(project_id)
    requester = require_manager(
        project_id, actor_user_id,
        "Only project owners or admins can update member roles.",
    )

    target = get_membership(project_id, user_id)
    if target is None:
        raise MemberNotFound()

    if requester.role == "admin":
        if target.role == "owner":
            raise Forbidden("Admins cannot modify owners.")
        if role == "owner":
            raise Forbidden("Admins cannot promote members to owner.")

    if target.role == "owner" and role != "owner":
        if count_owners(project_id) <= 1:
            raise LastOwner("The last owner cannot be demoted.")

    old_role = target.role
    target.role = role
    db.session.flush()

    logger.info(
        f"Member {user_id} of project {project_id} changed {old_role} -> {role} "
        f"by {actor_user_id}"
    )
    return target


def remove_member(project_id, actor_user_id, user_id):
    """Remove a member, enforcing admin limits and last-owner protection."""
    require_project(project_id)
    requester = require_manager(
        project_id, actor_user_id,
        "Only project owners or admins can manage members.",
    )

    target = get_membership(project_id, user_id)
    if target is None:
        raise MemberNotFound()

    if requester.role == "admin" and target.role == "owner":
        raise Forbidden("Admins cannot remove owners.")

    if target.role == "owner" and count_owners(project_id) <= 1:
        raise LastOwner("The last owner cannot be removed.")

    db.session.delete(target)
    db.session.flush()

    logger.info(f"Member {user_id} removed from project {project_id} by {actor_user_id}")


# ─── Queries ─────────────────────────────────────────────────────

def list_members(project_id):
    """Members with their profile fields, owners first."""
    rows = (
        db.session.query(ProjectMember, User)
        .join(User, User.id == ProjectMember.user_id)
        .filter(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.created_at.asc())
        .all()
    )
    rank = {role: i for i, role in enumerate(ProjectMember.ROLES)}
    rows.sort(key=lambda row: rank.get(row[0].role, len(rank)))
    return [
        {
            "user_id": user.id,
            "role": member.role,
            "email": user.email,
            "name": user.display_name,
        }
        for member, user in rows
    ]


def search_by_email(project_id, actor_user_id, query):
    """Prefix search over registered users who are not yet members.

    Returns an empty list for queries shorter than two characters.
    """
    require_manager(
        project_id, actor_user_id,
        "Only project owners or admins can invite members.",
    )

    prefix = normalize_email(query)
    if len(prefix) < MIN_SEARCH_LENGTH:
        return []

    member_ids = db.select(ProjectMember.user_id).where(
        ProjectMember.project_id == project_id
    )
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    limit = current_app.config.get("SEARCH_RESULT_LIMIT", 15)

    candidates = (
        User.query
        .filter(User.email.like(f"{escaped}%", escape="\\"))
        .filter(User.id.notin_(member_ids))
        .filter(User.id != actor_user_id)
        .order_by(User.email.asc())
        .limit(limit)
        .all()
    )
    return [
        {"user_id": user.id, "email": user.email, "name": user.display_name}
        for user in candidates
    ]
