from flask import Flask
from .config import config_by_name
from .extensions import db, migrate, jwt
from .api.v1 import v1_bp
from .errors import register_error_handlers
from .utils.cache import StageCache


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Models must be imported for create_all / migrations
    from . import models  # noqa: F401

    # -------------------------------------------------
    # Stage cache (invalidated after publish commits)
    # -------------------------------------------------
    app.extensions["stage_cache"] = StageCache(
        ttl_seconds=app.config["STAGE_CACHE_TTL_SECONDS"]
    )

    # -------------------------------------------------
    # API Blueprints
    # -------------------------------------------------
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)

    return app
