"""
Template Version Governance Service
Flask Application Factory.

Usage:
    from template_governance import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from template_governance.config import config
from template_governance.models import db
from template_governance.middleware.logging_config import configure_logging
from template_governance.middleware.timing import init_request_timing
from template_governance.middleware.rate_limiter import init_rate_limits

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from template_governance.models import template as _template_models          # noqa: F401
    from template_governance.models import change_request as _change_request_models  # noqa: F401
    from template_governance.models import audit as _audit_models                # noqa: F401
    from template_governance.models import notification as _notification_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Governance orchestrator (one per app) ────────────────────────────
    from template_governance.services.change_orchestrator import ChangeOrchestrator
    app.extensions["change_orchestrator"] = ChangeOrchestrator()

    # ── Blueprints ───────────────────────────────────────────────────────
    from template_governance.blueprints.health_bp import health_bp
    from template_governance.blueprints.governance_bp import governance_bp
    from template_governance.blueprints.registry_bp import registry_bp
    from template_governance.blueprints.audit_bp import audit_bp
    from template_governance.blueprints.notification_bp import notification_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(governance_bp)
    app.register_blueprint(registry_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(notification_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-template-defaults")
    @click.option("--version", "version_number", default=None,
                  help="Baseline version number (default: DEFAULT_TEMPLATE_VERSION).")
    @click.option("--actor", default="system", help="Identity recorded in the ledger and audit log.")
    def seed_template_defaults_cmd(version_number, actor):
        """Register baseline templates and set them as default for unseeded categories."""
        from template_governance.services.audit_logger import get_audit_logger
        from template_governance.services.version_registry import seed_baseline_defaults

        version_number = version_number or app.config["DEFAULT_TEMPLATE_VERSION"]
        seeded = seed_baseline_defaults(version_number, actor=actor)
        for category in seeded:
            get_audit_logger().log(
                "template_default.seeded",
                entity_type="template_default", entity_id=category,
                actor=actor, category=category,
                diff={"version_id": f"{category}_v{version_number}"},
            )
        db.session.commit()
        logger.info("Seeded %s template default(s): %s", len(seeded), ", ".join(seeded) or "none")

    # ── Health check (short form, detailed version at /health/live) ──────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "Template Version Governance"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
