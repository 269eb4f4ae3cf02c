"""Character routes."""

from flask import Blueprint, g, jsonify, redirect, render_template, request, url_for

from enclave.consts import ALL_CLASSES, CLASS_GEAR, PERSONALITY_TRAITS
from enclave.database import get_session
from enclave.errors import NotFound
from enclave.exports import export_character
from enclave.importers.characters import import_character
from enclave.resources import characters as store
from enclave.resources.classes import get_classes
from enclave.web.auth import login_required
from enclave.web.extensions import get_extractor
from enclave.web.helpers import download_response

characters_bp = Blueprint("characters", __name__)


def _form_options(session):
    return {
        "class_names": ALL_CLASSES,
        "classes": get_classes(session, {"is_public": True}),
        "traits": PERSONALITY_TRAITS,
        "class_gear": CLASS_GEAR,
    }


@characters_bp.route("/")
@login_required
def character_list():
    session = get_session()
    try:
        return render_template("characters.html", characters=store.get_own_characters(session, g.ctx))
    finally:
        session.close()


@characters_bp.route("/new")
@login_required
def new_character():
    session = get_session()
    try:
        return render_template("character_form.html", character=None, **_form_options(session))
    finally:
        session.close()


@characters_bp.route("/", methods=["POST"])
@login_required
def create_character():
    session = get_session()
    try:
        record = store.create_character(session, g.ctx, request.form)
        return redirect(url_for("characters.view_character", character_id=record.id))
    finally:
        session.close()


@characters_bp.route("/import")
@login_required
def import_form():
    return render_template("import.html", kind="character", action=url_for("characters.import_submit"))


@characters_bp.route("/import", methods=["POST"])
@login_required
def import_submit():
    """Create a character from a pasted character sheet."""
    session = get_session()
    try:
        record = import_character(session, g.ctx, request.form.get("input_text", ""), get_extractor())
        return redirect(url_for("characters.view_character", character_id=record.id))
    finally:
        session.close()


@characters_bp.route("/class-gear")
def class_gear():
    return jsonify(CLASS_GEAR)


@characters_bp.route("/search")
def search():
    session = get_session()
    try:
        limit = min(request.args.get("limit", 5, type=int), 25)
        return jsonify(store.search_public_characters(session, request.args.get("q", ""), limit))
    finally:
        session.close()


@characters_bp.route("/<int:character_id>")
def view_character(character_id: int):
    session = get_session()
    try:
        character = store.get_character(session, character_id)
        if not store.can_view_character(g.ctx, character):
            raise NotFound("Character not found")
        return render_template(
            "character.html",
            character=character,
            missions=store.get_character_missions(session, character.id, limit=5),
            is_owner=character.creator_id == g.ctx.profile_id,
        )
    finally:
        session.close()


@characters_bp.route("/<int:character_id>/export")
@login_required
def export(character_id: int):
    session = get_session()
    try:
        character = store.get_character(session, character_id)
        if not store.can_view_character(g.ctx, character):
            raise NotFound("Character not found")
        return download_response(export_character(character, request.args.get("format", "markdown")))
    finally:
        session.close()


@characters_bp.route("/<int:character_id>/missions")
def character_missions(character_id: int):
    session = get_session()
    try:
        character = store.get_character(session, character_id)
        if not store.can_view_character(g.ctx, character):
            raise NotFound("Character not found")
        missions = [
            m for m in store.get_character_missions(session, character.id)
            if m.is_public or m.creator_id == g.ctx.profile_id
        ]
        return render_template("missions.html", missions=missions, character=character)
    finally:
        session.close()


@characters_bp.route("/<int:character_id>/edit")
@login_required
def edit_character(character_id: int):
    session = get_session()
    try:
        character = store.get_character(session, character_id)
        if character.creator_id != g.ctx.profile_id:
            raise NotFound("Character not found")
        return render_template("character_form.html", character=character, **_form_options(session))
    finally:
        session.close()


@characters_bp.route("/<int:character_id>", methods=["POST"])
@login_required
def update_character(character_id: int):
    session = get_session()
    try:
        store.update_character(session, g.ctx, character_id, request.form)
        return redirect(url_for("characters.view_character", character_id=character_id))
    finally:
        session.close()


@characters_bp.route("/<int:character_id>/delete", methods=["POST"])
@login_required
def delete_character(character_id: int):
    session = get_session()
    try:
        store.delete_character(session, g.ctx, character_id)
        return redirect(url_for("characters.character_list"))
    finally:
        session.close()
