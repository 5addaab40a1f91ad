# flagmirror/app.py

"""flagmirror application entrypoint.

This module creates and configures the Flask application that receives
change notifications and serves the mirrored flag data. When run
directly it applies development-time CORS settings for local frontends
and starts the HTTP server using environment-based configuration.
"""

from __future__ import annotations

from typing import Optional

from flask import Flask
from flask_cors import CORS

from flagmirror.blueprints.data.read import data_bp
from flagmirror.blueprints.sync.webhook import sync_bp
from flagmirror.blueprints.system.health import health_bp
from flagmirror.config import Settings, load_settings
from flagmirror.errors.handlers import register_error_handlers
from flagmirror.logging_config import configure_logging
from flagmirror.repositories.feature_store import FeatureStore
from flagmirror.services.store_service import EXTENSION_KEY, build_feature_store


def create_app(
    store: Optional[FeatureStore] = None,
    settings: Optional[Settings] = None,
) -> Flask:
    """Create and configure the flagmirror Flask application instance.

    This factory loads settings from the environment (unless given),
    configures logging, attaches the feature store, registers blueprints
    and applies global error handlers.

    Args:
        store: Feature store to serve; built from ``settings`` if omitted.
        settings: Service settings; loaded from the environment if omitted.

    Returns:
        Flask: A configured Flask application instance.
    """
    if settings is None:
        settings = load_settings()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["WEBHOOK_SECRET"] = settings.webhook_secret
    app.extensions[EXTENSION_KEY] = (
        store if store is not None else build_feature_store(settings)
    )

    # Register JSON error handlers (400/404/503/500, etc.).
    register_error_handlers(app)

    # System & health
    app.register_blueprint(health_bp)   # /health/

    # Change notifications from the publisher
    app.register_blueprint(sync_bp)     # /sync/

    # Read-only access to mirrored data
    app.register_blueprint(data_bp)     # /data/<namespace>/

    return app


if __name__ == "__main__":
    settings = load_settings()
    app = create_app(settings=settings)

    # Allow local frontends to read mirrored data directly.
    # In production, CORS should be enforced at the reverse proxy layer.
    CORS(
        app,
        resources={
            r"/data/*": {
                "origins": [
                    "http://localhost:3000",
                    "http://localhost:5173",
                ],
            },
        },
        supports_credentials=False,
        allow_headers=["Content-Type"],
        methods=["GET", "OPTIONS"],
    )

    app.run(
        host="0.0.0.0",
        port=settings.port,
        debug=settings.debug,
    )
