"""Per-request identity, template context and access decorators."""

import logging
from functools import wraps

from flask import current_app, g, redirect, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from enclave.database import get_session
from enclave.errors import EnclaveError, Forbidden, Unauthorized
from enclave.models.context import ANONYMOUS, RequestContext
from enclave.resources.auth import ACCESS_COOKIE, REFRESH_COOKIE, resolve_user, tokens_from_request
from enclave.resources.nav import get_nav_tree
from enclave.resources.profiles import get_or_create_profile

logger = logging.getLogger(__name__)


def settings():
    return current_app.config["ENCLAVE_SETTINGS"]


def set_token_cookies(response, tokens):
    ttl = settings().auth.refresh_token_ttl
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=ttl, httponly=True, samesite="Lax")
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=ttl, httponly=True, samesite="Lax")
    return response


def clear_token_cookies(response):
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return response


def load_request_context():
    """Resolve the caller's tokens into ``g.ctx`` (anonymous when absent)."""
    g.ctx = ANONYMOUS
    g.profile = None
    g.rotated_tokens = None
    if request.endpoint == "static":
        return

    access, refresh = tokens_from_request(request)
    if not access and not refresh:
        return

    session = get_session()
    try:
        resolved = resolve_user(session, access, refresh, settings().auth)
        if resolved is None:
            return
        g.rotated_tokens = resolved.tokens
        user = resolved.user
        profile = get_or_create_profile(session, user, settings().starter)
        if profile is None:
            g.ctx = RequestContext(user_id=user.id)
            return
        g.ctx = RequestContext(
            user_id=user.id,
            profile_id=profile.id,
            role=profile.role,
            profile_name=profile.name,
        )
        g.profile = {
            "id": profile.id,
            "name": profile.name,
            "role": profile.role,
            "image_url": profile.image_url,
            "email": user.email,
        }
    except (SQLAlchemyError, EnclaveError) as e:
        logger.error("Could not resolve request identity: %s", e)
    finally:
        session.close()


def store_rotated_tokens(response):
    tokens = getattr(g, "rotated_tokens", None)
    if tokens is not None:
        set_token_cookies(response, tokens)
    return response


def inject_template_context():
    """Profile, menu and banner for every rendered template."""
    ctx = getattr(g, "ctx", ANONYMOUS)
    session = get_session()
    try:
        nav = get_nav_tree(session, ctx)
    finally:
        session.close()
    return {
        "ctx": ctx,
        "profile": getattr(g, "profile", None),
        "nav_items": nav.items,
        "system_message": settings().system_message,
    }


def wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


def login_required(view):
    """Require a signed-in user with a profile; browsers are sent to sign in."""
    @wraps(view)
    def _wrapped(*args, **kwargs):
        ctx = g.ctx
        if not ctx.is_authenticated:
            if wants_json():
                raise Unauthorized("Sign in required")
            return redirect(url_for("auth.login", next=request.full_path.rstrip("?")))
        if ctx.profile_id is None:
            raise Forbidden("Confirm your email address to continue")
        return view(*args, **kwargs)

    return _wrapped


def admin_required(view):
    @wraps(view)
    @login_required
    def _wrapped(*args, **kwargs):
        if not g.ctx.is_admin:
            raise Forbidden("Admins only")
        return view(*args, **kwargs)

    return _wrapped
