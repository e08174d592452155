import logging
import sys
import click

# Configure logging to output to STDOUT with a more detailed format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

from flask import Flask, jsonify
from celery import Celery
from celery import Task as CeleryTask

from extensions import db, login_manager, migrate, mail, redis_client
from models import User
from cli import init_db, create_user, connect_platform
from config import Config

# Import blueprints from views package
from views.main import bp as main_bp
from views.api import bp as api_bp
from views.auth import bp as auth_bp
from views.leads import bp as leads_bp


def celery_init_app(app: Flask) -> Celery:
    """Create and configure a new Celery instance, integrated with Flask."""

    class FlaskTask(CeleryTask):
        def __call__(self, *args: object, **kwargs: object) -> object:
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(
        app.name,
        task_cls=FlaskTask,
        include=[
            "tasks.content",
            "tasks.tokens",
        ],
    )
    celery_app.config_from_object(
        app.config["CELERY"]
    )  # Load from CELERY dict in Flask config
    celery_app.set_default()  # Make this the default Celery app for @shared_task
    app.extensions["celery"] = celery_app

    return celery_app


def create_app():
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Load configuration from config.py
    app.config.from_object(Config)

    celery_init_app(app)

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not db_uri:
        app.logger.warning("SQLALCHEMY_DATABASE_URI is not configured.")
    elif "postgres" in db_uri:
        # Avoid logging credentials
        uri_to_log = db_uri.split("@")[-1] if "@" in db_uri else db_uri
        app.logger.info(f"Using PostgreSQL database: {uri_to_log}")
    elif "sqlite" in db_uri:
        app.logger.info(f"Using SQLite database: {db_uri}")
    else:
        uri_scheme = db_uri.split(":")[0] if ":" in db_uri else "Unknown"
        app.logger.info(f"Using {uri_scheme} database.")

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Redis holds pending authorizations, PKCE verifiers and generation locks.
    redis_client.init_app(app)
    app.redis_client = redis_client

    # User loader for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        """Load user by ID."""
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "Authentication required"}), 401

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(leads_bp, url_prefix="/api/leads")

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Unhandled server error: {error}")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    # Register CLI commands
    app.cli.add_command(init_db)
    app.cli.add_command(create_user)
    app.cli.add_command(connect_platform)

    @app.cli.command("worker")
    @click.option(
        "--loglevel", default="info", help="Log level (debug/info/warning/error)"
    )
    def worker(loglevel):
        """Run the Celery worker."""
        from make_celery import celery

        celery.worker_main(["worker", f"--loglevel={loglevel}"])

    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(debug=True, host="0.0.0.0", port=5001)
