# backend/stockledger/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .decorators import load_current_actor


def _sqlite_engine_options(app: Flask) -> None:
    """
    File-backed SQLite: wait LOCK_WAIT_SECONDS for the write lock and allow
    the connection pool to hand connections across request threads.
    """
    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if not uri.startswith("sqlite") or ":memory:" in uri or uri.rstrip("/") == "sqlite:":
        return
    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(options.get("connect_args") or {})
    connect_args.setdefault("timeout", app.config["LOCK_WAIT_SECONDS"])
    connect_args.setdefault("check_same_thread", False)
    options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    _sqlite_engine_options(app)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sells import sells_bp
    from .routes.debts import debts_bp
    from .routes.accounts import accounts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sells_bp)
    app.register_blueprint(debts_bp)
    app.register_blueprint(accounts_bp)

    app.before_request(load_current_actor)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = f"{app.config['ACTOR_HEADER']}, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
