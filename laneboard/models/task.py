"""Task model.

A task's ``status`` holds a lane id from its project's lane list (not a
fixed enum). Display order within a lane is ``sort_order`` ascending,
kept strictly increasing per (project_id, status) by the sort-key
allocator.
"""

import uuid

from laneboard.extensions import db


class Task(db.Model):
    __tablename__ = "tasks"

    # -- Valid priorities --
    PRIORITIES = ["low", "medium", "high", "urgent"]
    DEFAULT_PRIORITY = "medium"
    DEFAULT_ESTIMATE_POINTS = 1

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(64), nullable=False)  # lane id
    priority = db.Column(
        db.String(20), nullable=False, default=DEFAULT_PRIORITY
    )  # low | medium | high | urgent
    assignee_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    due_date = db.Column(db.Date, nullable=True)
    tags = db.Column(db.JSON, default=list)
    estimate_points = db.Column(
        db.Integer, nullable=False, default=DEFAULT_ESTIMATE_POINTS
    )
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.Index(
            "ix_tasks_project_status_order", "project_id", "status", "sort_order"
        ),
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="tasks")
    assignee = db.relationship("User", foreign_keys=[assignee_user_id])

    def __repr__(self):
        return f"<Task {self.title[:40]} [{self.status}:{self.sort_order}]>"
