# app/__init__.py
import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_jwt_extended import JWTManager

from app.errors import register_error_handlers
from app.realtime import init_socketio
from app.routes import core, donations_bp, projects_bp, webhooks_bp
from app.services.stripe_gateway import StripeGateway
from app.utils.cache import init_cache
from app.utils.db import Database, dsn_from_env

# real env vars win over .env
load_dotenv(dotenv_path=".env", override=False)

log = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _config_from_env() -> dict:
    return {
        "JWT_SECRET_KEY": os.getenv("JWT_SECRET", "dev-secret"),
        "JWT_TOKEN_LOCATION": ["headers"],
        "JWT_HEADER_NAME": "Authorization",
        "JWT_HEADER_TYPE": "Bearer",
        "JWT_ACCESS_TOKEN_EXPIRES": timedelta(minutes=15),
        "DATABASE_DSN": dsn_from_env(),
        "DB_POOL_MIN": int(os.getenv("DB_POOL_MIN", "1")),
        "DB_POOL_MAX": int(os.getenv("DB_POOL_MAX", "10")),
        "STRIPE_SECRET_KEY": os.getenv("STRIPE_SECRET_KEY", "").strip(),
        "STRIPE_WEBHOOK_SECRET": os.getenv("STRIPE_WEBHOOK_SECRET", "").strip(),
        "STRIPE_CURRENCY": os.getenv("STRIPE_CURRENCY", "usd"),
        "STRIPE_MAX_NETWORK_RETRIES": int(os.getenv("STRIPE_MAX_NETWORK_RETRIES", "2")),
        "APP_URL": os.getenv("APP_URL", "http://localhost:3000"),
        "REDIS_URL": os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0"),
        "CACHE_ENABLED": _env_bool("CACHE_ENABLED", True),
        "STATS_CACHE_TTL": int(os.getenv("STATS_CACHE_TTL", "30")),
        "RATE_LIMIT_ENABLED": _env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_CHECKOUT_PER_MINUTE": int(os.getenv("RATE_LIMIT_CHECKOUT_PER_MINUTE", "20")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
    }


def create_app(test_config=None, *, db=None, gateway=None):
    """
    Build the app. db and gateway are created from config unless injected;
    either way they live for the whole process in app.extensions.
    """
    app = Flask(__name__)
    app.url_map.strict_slashes = False
    app.config.update(_config_from_env())
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return jsonify({"error": "unauthorized"}), 401

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return jsonify({"error": "invalid token"}), 401

    @jwt.expired_token_loader
    def _expired_token(header, payload):
        return jsonify({"error": "token expired"}), 401

    if db is None:
        db = Database(
            app.config["DATABASE_DSN"],
            minconn=app.config["DB_POOL_MIN"],
            maxconn=app.config["DB_POOL_MAX"],
        ).open()
    if gateway is None:
        gateway = StripeGateway(
            app.config["STRIPE_SECRET_KEY"],
            app.config["STRIPE_WEBHOOK_SECRET"],
            currency=app.config["STRIPE_CURRENCY"],
            max_network_retries=app.config["STRIPE_MAX_NETWORK_RETRIES"],
        )
    app.extensions["db"] = db
    app.extensions["payment_gateway"] = gateway
    init_cache(app)

    register_error_handlers(app)

    @app.get("/__ping")
    def __ping():
        return {"ok": True}, 200

    app.register_blueprint(core)
    app.register_blueprint(donations_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(webhooks_bp)

    for rule in app.url_map.iter_rules():
        log.debug("route %s -> %s", rule, rule.endpoint)

    init_socketio(app)
    return app
