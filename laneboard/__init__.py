import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from laneboard.config import config_by_name
from laneboard.errors import BoardError
from laneboard.extensions import db, migrate, login_manager, csrf, limiter

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from laneboard import models  # noqa: F401

    # --- Register blueprints ---
    from laneboard.blueprints.auth import auth_bp
    from laneboard.blueprints.projects import projects_bp
    from laneboard.blueprints.tasks import tasks_bp
    from laneboard.blueprints.members import members_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(members_bp)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON API: nothing should render or load from responses
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Map service errors and HTTP errors to JSON responses."""

    @app.errorhandler(BoardError)
    def board_error(e):
        # Nothing from a rejected operation may reach the database.
        db.session.rollback()
        logger.info(f"{type(e).__name__}: {e.message}")
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        return jsonify({"error": "Something went wrong."}), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--email", default="demo@example.com", help="Demo user email")
    @click.option("--password", default="demo12345", help="Demo user password")
    def seed_demo(email, password):
        """Create a demo user + project with the default lanes and a few tasks.

        Usage:
            flask seed-demo
            flask seed-demo --email me@example.com --password s3cretpass
        """
        from laneboard.models.user import User
        from laneboard.services import project_service, task_service

        email = email.lower().strip()
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"Demo user already exists: {email}")
        else:
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                full_name="Demo User",
            )
            db.session.add(user)
            db.session.flush()
            click.echo(f"Created demo user: {email}")

        project = project_service.create_project(
            user.id,
            name="Demo Board",
            description="Sample project with the default lanes.",
        )
        samples = [
            ("backlog", "Collect feedback from beta users", "low"),
            ("todo", "Write onboarding copy", "medium"),
            ("todo", "Design empty-state illustrations", "medium"),
            ("in_progress", "Build lane settings page", "high"),
            ("review", "Review drag-and-drop ordering", "high"),
            ("done", "Set up project skeleton", "medium"),
        ]
        for status, title, priority in samples:
            task_service.create_task(
                project.id, user.id, title, status=status, priority=priority
            )

        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Demo data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  User:     {email} / {password}")
        click.echo(f"  Project:  {project.name} (id: {project.id})")
        click.echo(f"  Tasks:    {len(samples)}")
        click.echo("=" * 60)

    @app.cli.command("repack-lanes")
    @click.option("--project-id", default=None, help="Only repack this project.")
    def repack_lanes(project_id):
        """Rewrite every lane's sort keys to contiguous multiples of 1000.

        Maintenance for boards whose keys have drifted (manual edits,
        interleaved concurrent moves). Display order is preserved.

        Usage:
            flask repack-lanes
            flask repack-lanes --project-id <uuid>
        """
        from laneboard.models.project import Project
        from laneboard.services import sort_keys
        from laneboard.services.lane_resolver import resolve_project_lanes

        query = Project.query
        if project_id:
            query = query.filter_by(id=project_id)
        projects = query.all()
        if not projects:
            click.echo("No matching projects.")
            return

        total = 0
        for project in projects:
            for lane in resolve_project_lanes(project.lanes):
                tasks = sort_keys.lane_tasks(project.id, lane["id"])
                total += len(sort_keys.repack_lane(tasks, lane["id"]))
        db.session.commit()

        click.echo(f"Repacked {len(projects)} project(s); {total} task(s) rewritten.")
