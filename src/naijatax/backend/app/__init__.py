"""Application factory for NaijaTax backend services."""

import os
from warnings import warn

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from naijatax.backend.rules import TaxRuleEngine, build_engine
from naijatax.backend.rules.errors import UnknownFieldError, ValidationError
from naijatax.backend.version import get_project_version

from .http import ENGINE_EXTENSION, problem_from_rule_error, problem_response
from .routes import register_routes


def _parse_allowed_origins(raw: str | None) -> set[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return set()

    return {origin.strip() for origin in raw.split(",") if origin.strip()}


def _configure_cors(app: Flask, allowed_origins: set[str]) -> None:
    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=2,
        )

    CORS(
        app,
        resources={r"/api/*": {"origins": sorted(allowed_origins)}},
        supports_credentials=False,
        methods=["GET", "OPTIONS", "POST"],
        allow_headers=["Content-Type"],
    )


def create_app(engine: TaxRuleEngine | None = None) -> Flask:
    """Create and configure the Flask application instance.

    ``engine`` defaults to one built from ``NAIJATAX_*`` environment settings.
    """

    app = Flask(__name__)
    app.extensions[ENGINE_EXTENSION] = engine or build_engine()

    _configure_cors(app, _parse_allowed_origins(os.getenv("NAIJATAX_ALLOWED_ORIGINS")))
    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        engine = app.extensions[ENGINE_EXTENSION]
        payload = {
            "status": "ok",
            "version": get_project_version(),
            **engine.get_metadata(),
        }
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(ValidationError)
    @app.errorhandler(UnknownFieldError)
    def handle_rule_error(error: ValidationError | UnknownFieldError):
        """Report the failing field for invalid inputs and overrides."""

        return problem_from_rule_error(error).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface domain validation errors to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app
