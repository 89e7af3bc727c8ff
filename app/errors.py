"""
Error taxonomy shared by services and routes.

Every error carries the HTTP status it maps to; the handler registered in
create_app() renders it as {"error": message}.
"""

from __future__ import annotations
import logging

from flask import jsonify
import psycopg2

log = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class AuthenticationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 409


class UpstreamError(AppError):
    status_code = 500


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(psycopg2.Error)
    def handle_db_error(e: psycopg2.Error):
        log.error("database error: %s", e, exc_info=True)
        return jsonify({"error": "database error"}), 500

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(401)
    def handle_unauth(e):
        return jsonify({"error": "unauthorized"}), 401
