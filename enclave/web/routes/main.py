"""Main routes for the web application."""

from flask import Blueprint, render_template

from enclave.database import get_session
from enclave.resources.lfg import get_open_posts
from enclave.resources.missions import search_public_missions

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index():
    """Home page - recent public missions and open LFG posts."""
    session = get_session()
    try:
        missions = search_public_missions(session, count=6)
        posts = get_open_posts(session)[:6]
        return render_template("index.html", missions=missions, posts=posts)
    finally:
        session.close()
