# backend/brewplan/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides land before extensions bind, so engines see the final URI
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register transition handlers
    from .services import batch_service, order_service, purchasing_service  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.batches import batches_bp
    from .routes.orders import orders_bp
    from .routes.purchasing import purchasing_bp
    from .routes.inventory import inventory_bp
    from .routes.planning import planning_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(batches_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(purchasing_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(planning_bp)
    app.register_blueprint(reports_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
