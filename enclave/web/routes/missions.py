"""Mission routes."""

from flask import Blueprint, g, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import Forbidden, NotFound, ValidationFailed
from enclave.importers.missions import import_mission
from enclave.models.enums import Outcome
from enclave.resources import missions as store
from enclave.resources.base import int_or_none
from enclave.resources.characters import get_own_characters
from enclave.web.auth import login_required, wants_json
from enclave.web.extensions import get_extractor

missions_bp = Blueprint("missions", __name__)

MIN_QUERY_LENGTH = 2


@missions_bp.route("/")
@login_required
def mission_list():
    session = get_session()
    try:
        return render_template(
            "missions.html",
            missions=store.get_own_missions(session, g.ctx),
            editable_missions=store.get_editable_missions(session, g.ctx),
        )
    finally:
        session.close()


@missions_bp.route("/search")
def search():
    """Public mission search; short queries without filters return nothing."""
    q = request.args.get("q", "").strip()
    has_video = request.args.get("has_video") == "true"
    count = min(request.args.get("count", 12, type=int), 50)
    session = get_session()
    try:
        if len(q) < MIN_QUERY_LENGTH and not has_video:
            missions = store.search_public_missions(session, count=count) if not q else []
        else:
            missions = store.search_public_missions(session, q or None, count, has_video)
        return render_template("mission_search.html", missions=missions, q=q, has_video=has_video)
    finally:
        session.close()


@missions_bp.route("/new")
@login_required
def new_mission():
    return render_template("mission_form.html", mission=None, outcomes=[o.value for o in Outcome])


@missions_bp.route("/", methods=["POST"])
@login_required
def create_mission():
    session = get_session()
    try:
        mission = store.create_mission_from_form(session, g.ctx, request.form)
        return redirect(url_for("missions.view_mission", mission_id=mission.id))
    finally:
        session.close()


@missions_bp.route("/import")
@login_required
def import_form():
    return render_template("import.html", kind="mission", action=url_for("missions.import_submit"))


@missions_bp.route("/import", methods=["POST"])
@login_required
def import_submit():
    """Create a mission from a pasted play log and link its participants."""
    session = get_session()
    try:
        result = import_mission(session, g.ctx, request.form.get("input_text", ""), get_extractor())
        return redirect(url_for("missions.view_mission", mission_id=result.mission.id))
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>")
def view_mission(mission_id: int):
    session = get_session()
    try:
        mission = store.get_mission(session, mission_id)
        can_edit = store.can_edit_mission(session, g.ctx, mission)
        if not (can_edit or store.can_view_mission(g.ctx, mission)):
            raise NotFound("Mission not found")
        is_owner = mission.creator_id == g.ctx.profile_id
        linked = store.mission_characters(mission)
        linked_ids = {c.id for c in linked}
        linkable = []
        if can_edit and g.ctx.profile_id is not None:
            linkable = [c for c in get_own_characters(session, g.ctx) if c.id not in linked_ids]
        return render_template(
            "mission.html",
            mission=mission,
            characters=linked,
            linkable=linkable,
            is_owner=is_owner,
            can_edit=can_edit,
        )
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/edit")
@login_required
def edit_mission(mission_id: int):
    session = get_session()
    try:
        mission = store.get_mission(session, mission_id)
        if not store.can_edit_mission(session, g.ctx, mission):
            raise Forbidden("You do not have permission to edit this mission")
        return render_template(
            "mission_form.html",
            mission=mission,
            outcomes=[o.value for o in Outcome],
            editors=store.get_mission_editors(session, mission_id),
            can_remove_editors=store.is_mission_creator(g.ctx, mission),
        )
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>", methods=["POST"])
@login_required
def update_mission(mission_id: int):
    session = get_session()
    try:
        store.update_mission(session, g.ctx, mission_id, request.form)
        return redirect(url_for("missions.view_mission", mission_id=mission_id))
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/delete", methods=["POST"])
@login_required
def delete_mission(mission_id: int):
    session = get_session()
    try:
        store.delete_mission(session, g.ctx, mission_id)
        return redirect(url_for("missions.mission_list"))
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/characters", methods=["POST"])
@missions_bp.route("/<int:mission_id>/characters/<int:character_id>", methods=["POST"])
@login_required
def add_character(mission_id: int, character_id: int = None):
    if character_id is None:
        character_id = int_or_none(request.form.get("character_id"))
        if character_id is None:
            raise ValidationFailed("Pick a character to add")
    session = get_session()
    try:
        store.link_own_character(session, g.ctx, mission_id, character_id)
        return redirect(url_for("missions.view_mission", mission_id=mission_id))
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/characters/<int:character_id>/delete", methods=["POST"])
@login_required
def remove_character(mission_id: int, character_id: int):
    session = get_session()
    try:
        store.unlink_own_character(session, g.ctx, mission_id, character_id)
        return redirect(url_for("missions.view_mission", mission_id=mission_id))
    finally:
        session.close()


# ============== EDITORS ==============

def _editors_response(session, mission_id: int):
    mission = store.get_mission(session, mission_id)
    editors = store.get_mission_editors(session, mission_id)
    if wants_json():
        return jsonify({
            "mission_id": mission_id,
            "editors": [{"profile_id": e.profile_id, "name": e.profile.name} for e in editors],
        })
    return render_template(
        "mission_editors.html",
        mission=mission,
        editors=editors,
        can_remove_editors=store.is_mission_creator(g.ctx, mission),
    )


@missions_bp.route("/<int:mission_id>/editors")
@login_required
def list_editors(mission_id: int):
    session = get_session()
    try:
        mission = store.get_mission(session, mission_id)
        if not store.can_edit_mission(session, g.ctx, mission):
            raise Forbidden("Unauthorized")
        return _editors_response(session, mission_id)
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/editors", methods=["POST"])
@login_required
def add_editor(mission_id: int):
    session = get_session()
    try:
        store.add_mission_editor(
            session, g.ctx, mission_id,
            request.form.get("profile_id"), request.form.get("profile_name"),
        )
        return _editors_response(session, mission_id)
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/editors/<int:profile_id>/delete", methods=["POST"])
@login_required
def remove_editor(mission_id: int, profile_id: int):
    session = get_session()
    try:
        store.remove_mission_editor(session, g.ctx, mission_id, profile_id)
        return _editors_response(session, mission_id)
    finally:
        session.close()


# ============== DUPLICATES ==============

@missions_bp.route("/similar")
@login_required
def similar():
    """Missions logged around the given date, closest name first."""
    date = request.args.get("date", "").strip()
    if not date:
        raise ValidationFailed("Date is required")
    session = get_session()
    try:
        missions = store.search_similar_missions(
            session,
            g.ctx,
            date,
            request.args.get("name"),
            request.args.get("exclude_id"),
        )
        if wants_json():
            return jsonify({"missions": [
                {"id": m.id, "name": m.name, "date": m.date.isoformat(), "outcome": m.outcome}
                for m in missions
            ]})
        return render_template("mission_similar.html", missions=missions)
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/merge/<int:target_id>/preview")
@login_required
def merge_preview(mission_id: int, target_id: int):
    session = get_session()
    try:
        preview = store.preview_merge_missions(session, g.ctx, mission_id, target_id)
        return render_template("mission_merge.html", preview=preview)
    finally:
        session.close()


@missions_bp.route("/<int:mission_id>/merge/<int:target_id>", methods=["POST"])
@login_required
def merge(mission_id: int, target_id: int):
    session = get_session()
    try:
        merged = store.merge_missions(session, g.ctx, mission_id, target_id)
        return redirect(url_for("missions.view_mission", mission_id=merged.id))
    finally:
        session.close()
