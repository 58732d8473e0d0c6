import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from .services import AuthService
from models import storage  # DBStorage singleton (scoped_session)
from utils.security import AuthSettings, Clock

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Task Manager API",
        "version": "1.0.0",
        "description": "Multi-user to-do list API with access/refresh token authentication.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the access token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
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


def create_app(config_name: str | None = None, overrides: dict | None = None, clock: Clock | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    `overrides` patches individual config keys and `clock` replaces the UTC
    clock used for token timestamps; both exist for tests.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # The frontend lives on another origin and sends the refresh cookie
    CORS(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}}, supports_credentials=True)

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()

    # Settings are frozen here and handed to the codec and service; nothing reads secrets globally
    settings = AuthSettings.from_config(app.config)
    auth_service = AuthService(settings, storage, clock=clock)
    app.extensions["auth_settings"] = settings
    app.extensions["token_codec"] = auth_service.codec
    app.extensions["auth_service"] = auth_service

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .tasks import bp as tasks_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(tasks_bp)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Task Manager API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app
