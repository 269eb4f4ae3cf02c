"""Sign-up, sign-in and sign-out."""

from urllib.parse import urlparse

from flask import Blueprint, g, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import EnclaveError
from enclave.resources import auth as accounts
from enclave.web.auth import clear_token_cookies, set_token_cookies, settings, wants_json

auth_bp = Blueprint("auth", __name__)


def _safe_next(target):
    """Only follow same-site relative redirects."""
    if not target:
        return url_for("profile.view")
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc or not target.startswith("/"):
        return url_for("profile.view")
    return target


@auth_bp.route("/")
def login():
    """Sign-in / sign-up page."""
    if g.ctx.is_authenticated:
        return redirect(_safe_next(request.args.get("next")))
    return render_template("auth.html", next=request.args.get("next", ""), error=None)


@auth_bp.route("/check")
def check():
    return jsonify({"authenticated": g.ctx.is_authenticated, "profile_id": g.ctx.profile_id})


@auth_bp.route("/signin", methods=["POST"])
def signin():
    email = request.form.get("email", "")
    password = request.form.get("password", "")
    session = get_session()
    try:
        try:
            tokens = accounts.sign_in(session, email, password, settings().auth)
        except EnclaveError as e:
            if wants_json():
                raise
            return render_template("auth.html", next=request.form.get("next", ""),
                                   error=e.message, email=email), e.status_code
        if wants_json():
            return jsonify({
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expires_at": tokens.access_expires_at.isoformat(),
            })
        response = redirect(_safe_next(request.form.get("next")))
        return set_token_cookies(response, tokens)
    finally:
        session.close()


@auth_bp.route("/signup", methods=["POST"])
def signup():
    email = request.form.get("email", "")
    password = request.form.get("password", "")
    session = get_session()
    try:
        try:
            accounts.sign_up(session, email, password)
            tokens = accounts.sign_in(session, email, password, settings().auth)
        except EnclaveError as e:
            if wants_json():
                raise
            return render_template("auth.html", next="", error=e.message,
                                   email=email, signup=True), e.status_code
        response = redirect(url_for("profile.view"))
        return set_token_cookies(response, tokens)
    finally:
        session.close()


@auth_bp.route("/signout", methods=["POST"])
def signout():
    access, _ = accounts.tokens_from_request(request)
    session = get_session()
    try:
        accounts.sign_out(session, access)
    finally:
        session.close()
    g.rotated_tokens = None
    return clear_token_cookies(redirect(url_for("main.index")))
