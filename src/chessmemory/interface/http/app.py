from __future__ import annotations

import atexit

from flask import Flask

from src.chessmemory.infrastructure.config import AppConfig, load_config
from src.chessmemory.infrastructure.learning import LearningEngine, build_learning_engine
from src.chessmemory.infrastructure.persistence.base import create_session_factory
from src.chessmemory.interface.http.brain_routes import brain_bp
from src.chessmemory.interface.http.gameplay_routes import gameplay_bp
from src.chessmemory.interface.telemetry.logging import setup_logging, get_logger


def create_app(
    config: AppConfig | None = None,
    *,
    learning_engine: LearningEngine | None = None,
) -> Flask:
    """Instantiate Flask application with shared configuration and the loaded brain."""
    cfg = config or load_config()

    setup_logging(cfg.additional.get("STRUCTLOG_LEVEL", "INFO"))
    logger = get_logger("chessmemory.app")

    app = Flask(__name__)
    app.config.update(
        DATABASE_URL=cfg.database_url,
        BRAIN_STORAGE_DIR=str(cfg.brain_storage_dir),
        BRAIN_STORAGE_BACKEND=cfg.brain_storage_backend,
        ENV=cfg.flask_env,
        APP_CONFIG=cfg,
    )

    session_factory = create_session_factory(cfg)
    app.config["SESSION_FACTORY"] = session_factory

    engine = learning_engine or build_learning_engine(cfg, session_factory=session_factory)
    app.extensions["learning_engine"] = engine
    atexit.register(engine.store.flush)

    app.register_blueprint(gameplay_bp, url_prefix="/api/v1/sessions")
    app.register_blueprint(brain_bp, url_prefix="/api/v1/brain")

    @app.get("/healthz")
    def healthcheck():
        return {"status": "ok"}, 200

    logger.info(
        "flask_app_initialized",
        env=cfg.flask_env,
        brain_backend=cfg.brain_storage_backend,
        brain_positions=len(engine.store),
    )
    return app


__all__ = ["create_app"]
