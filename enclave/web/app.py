"""Flask application factory."""

import logging

from flask import Flask, jsonify, redirect, render_template, request, url_for

from enclave.config import Settings, load_settings
from enclave.database import init_db
from enclave.errors import EnclaveError, Unauthorized
from enclave.llm.client import OpenAIExtractor
from enclave.storage import ObjectStore

from . import helpers
from .extensions import EXTRACTOR_KEY, STORAGE_KEY
from .auth import inject_template_context, load_request_context, store_rotated_tokens, wants_json

logger = logging.getLogger(__name__)


def handle_enclave_error(error: EnclaveError):
    """Answer with the error's status: JSON for API callers, a page otherwise."""
    if error.status_code >= 500:
        logger.error("%s on %s %s: %s", type(error).__name__, request.method, request.path, error.message)
    if wants_json():
        return jsonify({"error": error.message}), error.status_code
    if isinstance(error, Unauthorized) and request.method == "GET":
        return redirect(url_for("auth.login", next=request.full_path.rstrip("?")))
    return render_template("error.html", message=error.message, status=error.status_code), error.status_code


def create_app(settings: Settings = None, extractor=None):
    """Create and configure the Flask application.

    Args:
        settings: Configuration (defaults to the environment)
        extractor: Language-model extractor (defaults to OpenAI)
    """
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["ENCLAVE_SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = settings.storage.max_upload_bytes

    app.extensions[EXTRACTOR_KEY] = extractor or OpenAIExtractor.from_config(settings.llm)
    app.extensions[STORAGE_KEY] = ObjectStore(settings.storage, settings.secret_key)

    # Initialize database
    init_db()

    app.before_request(load_request_context)
    app.after_request(store_rotated_tokens)
    app.context_processor(inject_template_context)
    app.register_error_handler(EnclaveError, handle_enclave_error)
    helpers.register(app)

    # Register blueprints
    from .routes.main import main_bp
    from .routes.auth import auth_bp
    from .routes.profile import profile_bp
    from .routes.characters import characters_bp
    from .routes.classes import classes_bp
    from .routes.missions import missions_bp
    from .routes.lfg import lfg_bp
    from .routes.pages import pages_bp
    from .routes.rules import rules_bp
    from .routes.nav import nav_bp
    from .routes.storage import storage_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(characters_bp, url_prefix="/characters")
    app.register_blueprint(classes_bp, url_prefix="/classes")
    app.register_blueprint(missions_bp, url_prefix="/missions")
    app.register_blueprint(lfg_bp, url_prefix="/lfg")
    app.register_blueprint(pages_bp, url_prefix="/pages")
    app.register_blueprint(rules_bp, url_prefix="/rules")
    app.register_blueprint(nav_bp, url_prefix="/nav")
    app.register_blueprint(storage_bp, url_prefix="/storage")

    logger.info("Enclave app created")
    return app
