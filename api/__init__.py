import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_JWT_SECRET, get_config
from .errors import register_error_handlers
from .limiter import limiter

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Lodge Members API",
        "version": "1.0.0",
        "description": "Authentication and session lifecycle for the lodge membership backend.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\". "
                           "Browsers send the accessToken cookie instead.",
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config_name: str | None = None, overrides: dict | None = None,
               storage=None, mailer=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
      - config chosen by name or APP_ENV, then overrides applied (tests)
      - storage, stores and services built once here and kept in
        app.extensions["services"]; nothing is a module-level singleton
    """
    from services.container import build_services

    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    if app.config.get("IS_PRODUCTION") and app.config.get("JWT_SECRET") in (None, "", DEV_JWT_SECRET):
        raise RuntimeError("JWT_SECRET must be set in production")

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Cookies carry credentials; browsers only send them to explicitly listed origins
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=origins != "*")

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    # Per-address limits on credential endpoints
    limiter.init_app(app)

    services = build_services(app.config, storage=storage, mailer=mailer)
    app.extensions["services"] = services

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .commands import register_commands

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        services.storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Lodge Members API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app
