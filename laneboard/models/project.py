"""Project models.

- Project: the tenant container for a board. Owns its lane configuration
  as a JSON list of {"id", "name"} dicts (resolved through lane_resolver,
  never read raw).
- ProjectMember: join table linking users to projects with a role.
"""

import uuid

from laneboard.extensions import db


class Project(db.Model):
    __tablename__ = "projects"

    DEFAULT_THEME_COLOR = "#0f766e"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    theme_color = db.Column(db.String(7), nullable=False, default=DEFAULT_THEME_COLOR)
    lanes = db.Column(db.JSON, nullable=True)  # null = default template
    created_by_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    members = db.relationship(
        "ProjectMember",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    tasks = db.relationship(
        "Task",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Project {self.name}>"


class ProjectMember(db.Model):
    __tablename__ = "project_members"

    # -- Valid roles, most privileged first --
    ROLES = ["owner", "admin", "member"]
    MANAGER_ROLES = ("owner", "admin")

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    role = db.Column(db.String(20), nullable=False, default="member")  # owner | admin | member
    added_by_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint(
            "project_id", "user_id", name="uq_project_user"
        ),
        db.Index("ix_project_members_project_role", "project_id", "role"),
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="members")
    user = db.relationship(
        "User", foreign_keys=[user_id], back_populates="project_memberships"
    )

    @property
    def can_manage(self):
        return self.role in self.MANAGER_ROLES

    def __repr__(self):
        return f"<ProjectMember user={self.user_id} project={self.project_id} role={self.role}>"
