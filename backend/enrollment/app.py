from __future__ import annotations

import logging
import uuid

from flask import Flask, jsonify, request
from flask_cors import CORS
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from . import config
from .config import ConfigError
from .errors import problem
from .routes import auth_bp, courses_bp, enrollments_bp
from .seeding import seed_database

# Refuse to start without usable token signing settings.
JWT_SETTINGS = config.get_jwt_settings()

app = Flask(__name__)
app.json.sort_keys = False

CORS(app, origins=config.get_cors_origins(), supports_credentials=True)

app.register_blueprint(auth_bp)
app.register_blueprint(courses_bp)
app.register_blueprint(enrollments_bp)

logger = logging.getLogger(__name__)


@app.errorhandler(ConfigError)
def _handle_config_error(exc: ConfigError):
    logger.exception("Missing configuration")
    return problem(str(exc), 500)


@app.errorhandler(PyMongoError)
def _handle_db_error(exc: PyMongoError):
    logger.exception("%s %s failed due to MongoDB error", request.method, request.path)
    return problem("Database unavailable. Please try again later.", 503)


@app.errorhandler(HTTPException)
def _handle_http_error(exc: HTTPException):
    return problem(exc.name, exc.code or 500, exc.description)


@app.errorhandler(Exception)
def _handle_unexpected_error(exc: Exception):
    trace_id = uuid.uuid4().hex
    logger.exception(
        "Could not process a request. TraceId: %s. Path: %s, Method: %s",
        trace_id,
        request.path,
        request.method,
    )
    return problem(
        "An error occurred while processing your request.", 500, traceId=trace_id
    )


@app.get("/api/health")
def health():
    return jsonify({"ok": True})


def main() -> None:
    logging.basicConfig(
        level=config.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.seed_on_startup():
        seed_database()
    app.run(debug=True)


if __name__ == "__main__":
    main()
