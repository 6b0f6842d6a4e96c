import logging

import click
from flask import Flask
from flask_cors import CORS

from .config import Config
from .errors import register_error_handlers
from .extensions import db, jwt, migrate

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)
    CORS(app)

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    register_error_handlers(app)
    register_blueprints(app)
    register_commands(app)

    @app.get("/health")
    def health_check() -> tuple[dict[str, str], int]:
        return {"status": "ok"}, 200

    return app


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    app.logger.setLevel(level)


def register_blueprints(app: Flask) -> None:
    from .api.v1.auth_routes import auth_bp
    from .api.v1.operations_routes import operations_bp
    from .api.v1.procurement_routes import procurement_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(procurement_bp, url_prefix="/api/v1")
    app.register_blueprint(operations_bp, url_prefix="/api/v1")


def register_commands(app: Flask) -> None:
    @app.cli.command("seed-roles")
    def seed_roles() -> None:
        """Create the default roles and permissions if they are missing."""
        from .services.auth_service import seed_roles_permissions

        seed_roles_permissions()
        click.echo("roles and permissions seeded")
