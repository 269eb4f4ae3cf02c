"""Signed downloads for stored PDFs."""

from flask import Blueprint, send_file

from enclave.web.extensions import get_store

storage_bp = Blueprint("storage", __name__)


@storage_bp.route("/<token>")
def download(token: str):
    path = get_store().resolve_token(token)
    return send_file(path, mimetype="application/pdf", max_age=0)
