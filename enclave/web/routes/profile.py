"""Profile pages."""

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from enclave.database import get_session, UserRecord
from enclave.errors import NotFound
from enclave.resources import auth as accounts
from enclave.resources import profiles
from enclave.resources.characters import get_own_characters, get_public_characters_by_creator
from enclave.resources.classes import get_unlocked_classes
from enclave.resources.missions import get_own_missions
from enclave.resources.rules import list_active_unlocks_for_user
from enclave.web.auth import login_required

profile_bp = Blueprint("profile", __name__)


@profile_bp.route("/")
@login_required
def view():
    """The signed-in user's own profile."""
    session = get_session()
    try:
        profile = profiles.get_profile_by_id(session, g.ctx.profile_id)
        return render_template(
            "profile.html",
            owner=profile,
            characters=get_own_characters(session, g.ctx),
            missions=get_own_missions(session, g.ctx)[:5],
            unlocked_classes=get_unlocked_classes(session, g.ctx.user_id),
            rules_unlocks=list_active_unlocks_for_user(session, g.ctx.user_id),
            is_own=True,
        )
    finally:
        session.close()


@profile_bp.route("/edit")
@login_required
def edit():
    session = get_session()
    try:
        profile = profiles.get_profile_by_id(session, g.ctx.profile_id)
        return render_template("profile_edit.html", owner=profile)
    finally:
        session.close()


@profile_bp.route("/", methods=["POST"])
@login_required
def update():
    session = get_session()
    try:
        profile = profiles.get_profile_by_id(session, g.ctx.profile_id)
        user = session.get(UserRecord, g.ctx.user_id)
        accounts.change_credentials(
            session, user,
            email=request.form.get("email") or None,
            password=request.form.get("password") or None,
        )
        profiles.update_profile(session, profile, request.form)
        flash("Profile updated")
        return redirect(url_for("profile.view"))
    finally:
        session.close()


@profile_bp.route("/<int:profile_id>")
def public(profile_id: int):
    """Another player's public profile."""
    session = get_session()
    try:
        owner = profiles.get_profile_by_id(session, profile_id)
        if owner is None or (not owner.is_public and owner.id != g.ctx.profile_id):
            raise NotFound("Profile not found")
        return render_template(
            "profile.html",
            owner=owner,
            characters=get_public_characters_by_creator(session, owner.id),
            missions=[],
            unlocked_classes=[],
            rules_unlocks=[],
            is_own=owner.id == g.ctx.profile_id,
        )
    finally:
        session.close()
