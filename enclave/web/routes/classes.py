"""Class routes: catalogue, editing, PDFs and unlocks."""

import logging

from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import Forbidden, NotFound
from enclave.exports import export_class
from enclave.importers.classes import import_class
from enclave.importers.normalize import coerce_optional_date
from enclave.models.access import (
    can_manage_class,
    can_self_unlock,
    can_view_class_pdf,
    shows_class_teaser,
)
from enclave.models.enums import ClassStatus, RulesEdition, RulesVersion
from enclave.resources import classes as store
from enclave.resources.base import commit
from enclave.resources.profiles import get_profile_by_id
from enclave.web.auth import admin_required, login_required, wants_json
from enclave.web.extensions import get_extractor, get_store
from enclave.web.helpers import download_response

logger = logging.getLogger(__name__)

classes_bp = Blueprint("classes", __name__)


def _bucket():
    return current_app.config["ENCLAVE_SETTINGS"].storage.class_pdf_bucket


def _form_options():
    return {
        "statuses": [s.value for s in ClassStatus],
        "editions": [e.value for e in RulesEdition],
        "versions": [v.value for v in RulesVersion],
    }


def _attach_pdf(session, record):
    """Store an uploaded PDF for the class, replacing the previous one."""
    upload = request.files.get("pdf")
    if upload is None or not upload.filename:
        return
    record.pdf_storage_path = get_store().store_pdf(
        _bucket(), record.id, upload, previous_path=record.pdf_storage_path
    )
    commit(session, "class")


# =============================================================================
# Catalogue
# =============================================================================

@classes_bp.route("/")
def class_list():
    filters = {
        "rules_edition": request.args.get("rules_edition") or None,
        "rules_version": request.args.get("rules_version") or None,
        "status": request.args.get("status") or None,
    }
    if not g.ctx.is_admin:
        filters["is_public"] = True
    session = get_session()
    try:
        classes = store.get_classes(session, filters)
        return render_template("classes.html", classes=classes, filters=filters, **_form_options())
    finally:
        session.close()


@classes_bp.route("/my")
@login_required
def my_classes():
    session = get_session()
    try:
        return render_template(
            "classes.html",
            classes=store.get_classes(session, {"created_by": g.ctx.profile_id}),
            unlocked=store.get_unlocked_classes(session, g.ctx.user_id),
            filters={},
            **_form_options(),
        )
    finally:
        session.close()


@classes_bp.route("/new")
@login_required
def new_class():
    return render_template("class_form.html", cls=None, **_form_options())


@classes_bp.route("/", methods=["POST"])
@login_required
def create_class():
    session = get_session()
    try:
        record = store.create_class(session, g.ctx, request.form)
        _attach_pdf(session, record)
        return redirect(url_for("classes.view_class", class_id=record.id))
    finally:
        session.close()


@classes_bp.route("/import")
@login_required
def import_form():
    return render_template("import.html", kind="class", action=url_for("classes.import_submit"))


@classes_bp.route("/import", methods=["POST"])
@login_required
def import_submit():
    session = get_session()
    try:
        record = import_class(session, g.ctx, request.form.get("input_text", ""), get_extractor())
        return redirect(url_for("classes.view_class", class_id=record.id))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>")
def view_class(class_id: int):
    """Show a class; released classes the viewer lacks show a teaser only."""
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        if not cls.is_public and not can_manage_class(g.ctx, cls):
            raise NotFound("Class not found")
        unlocked = g.ctx.is_authenticated and store.is_class_unlocked(session, g.ctx.user_id, cls.id)
        owner = get_profile_by_id(session, cls.created_by) if cls.created_by else None
        return render_template(
            "class.html",
            cls=cls,
            owner=owner,
            unlocked=unlocked,
            teaser_only=shows_class_teaser(g.ctx, cls, unlocked),
            can_view_pdf=can_view_class_pdf(g.ctx, cls, unlocked),
            can_self_unlock=g.ctx.is_authenticated and not unlocked and can_self_unlock(cls),
            can_manage=can_manage_class(g.ctx, cls),
        )
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/pdf")
@login_required
def view_pdf(class_id: int):
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        unlocked = store.is_class_unlocked(session, g.ctx.user_id, cls.id)
        if not can_view_class_pdf(g.ctx, cls, unlocked):
            raise Forbidden("Unlock this class to view its PDF")
        token = get_store().signed_token(_bucket(), cls.pdf_storage_path)
        return render_template(
            "pdf_viewer.html",
            title=cls.name,
            pdf_url=url_for("storage.download", token=token),
        )
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/export")
@login_required
def export(class_id: int):
    """Download a class as markdown or JSON. Only its creator or an admin may."""
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        if not can_manage_class(g.ctx, cls):
            raise Forbidden("You can only export your own classes")
        return download_response(export_class(cls, request.args.get("format", "markdown")))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/edit")
@login_required
def edit_class(class_id: int):
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        if not can_manage_class(g.ctx, cls):
            raise Forbidden("You can only change your own classes")
        return render_template("class_form.html", cls=cls, **_form_options())
    finally:
        session.close()


@classes_bp.route("/<int:class_id>", methods=["POST"])
@login_required
def update_class(class_id: int):
    session = get_session()
    try:
        record = store.update_class(session, g.ctx, class_id, request.form)
        _attach_pdf(session, record)
        return redirect(url_for("classes.view_class", class_id=class_id))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/delete", methods=["POST"])
@login_required
def delete_class(class_id: int):
    session = get_session()
    try:
        record = store.delete_class(session, g.ctx, class_id)
        get_store().remove_if_exists(_bucket(), record.pdf_storage_path)
        return redirect(url_for("classes.my_classes"))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/duplicate", methods=["POST"])
@login_required
def duplicate_class(class_id: int):
    session = get_session()
    try:
        copy = store.duplicate_class(session, g.ctx, class_id, request.form.get("new_version"))
        return redirect(url_for("classes.edit_class", class_id=copy.id))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/history")
def history(class_id: int):
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        versions = [
            v for v in store.get_version_history(session, cls.base_class_id or cls.id)
            if v.is_public or can_manage_class(g.ctx, v)
        ]
        return render_template("class_history.html", cls=cls, versions=versions)
    finally:
        session.close()


# =============================================================================
# Unlocks
# =============================================================================

@classes_bp.route("/<int:class_id>/unlock/self", methods=["POST"])
@login_required
def unlock_self(class_id: int):
    session = get_session()
    try:
        store.self_unlock(session, g.ctx, class_id)
        if wants_json():
            return jsonify({"success": True, "class_id": class_id})
        flash("Class unlocked")
        return redirect(url_for("classes.view_class", class_id=class_id))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/codes")
@admin_required
def codes(class_id: int):
    session = get_session()
    try:
        cls = store.get_class(session, class_id)
        return render_template("class_codes.html", cls=cls, codes=store.list_unlock_codes(session, cls.id))
    finally:
        session.close()


@classes_bp.route("/<int:class_id>/codes", methods=["POST"])
@admin_required
def create_codes(class_id: int):
    data = request.get_json(silent=True) or request.form
    session = get_session()
    try:
        created = store.create_unlock_codes(
            session,
            class_id,
            g.ctx.profile_id,
            expires_at=coerce_optional_date(data.get("expires_at")),
            max_uses=data.get("max_uses", 1),
            amount=data.get("amount", 1),
        )
        if wants_json():
            return jsonify({"codes": [c.code for c in created]}), 201
        flash(f"Created {len(created)} code(s)")
        return redirect(url_for("classes.codes", class_id=class_id))
    finally:
        session.close()


@classes_bp.route("/redeem", methods=["POST"])
@login_required
def redeem():
    data = request.get_json(silent=True) or request.form
    session = get_session()
    try:
        class_id = store.redeem_unlock_code(session, data.get("code"), g.ctx.user_id)
        if wants_json():
            return jsonify({"success": True, "class_id": class_id})
        flash("Class unlocked")
        return redirect(url_for("classes.view_class", class_id=class_id))
    finally:
        session.close()


@classes_bp.route("/redeem/bulk")
@login_required
def redeem_bulk_form():
    return render_template("redeem.html", results=None)


@classes_bp.route("/redeem/bulk", methods=["POST"])
@login_required
def redeem_bulk():
    session = get_session()
    try:
        results = store.redeem_many(session, request.form.get("codes", ""), g.ctx.user_id)
        logger.info(
            "Profile %s redeemed %d of %d codes",
            g.ctx.profile_id, sum(1 for r in results if r.success), len(results),
        )
        return render_template("redeem.html", results=results)
    finally:
        session.close()
