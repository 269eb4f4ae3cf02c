"""Rules PDF routes: the library, admin management and unlock grants."""

import logging

from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import Forbidden
from enclave.importers.normalize import coerce_optional_date
from enclave.models.access import can_view_rules_pdf, unlock_is_live
from enclave.resources import rules as store
from enclave.web.auth import admin_required, login_required, wants_json
from enclave.web.extensions import get_store

logger = logging.getLogger(__name__)

rules_bp = Blueprint("rules", __name__)


def _bucket():
    return current_app.config["ENCLAVE_SETTINGS"].storage.rules_pdf_bucket


def _attach_pdf(session, pdf):
    upload = request.files.get("pdf")
    if upload is None or not upload.filename:
        return
    key = get_store().store_pdf(_bucket(), pdf.id, upload, previous_path=pdf.storage_path)
    store.set_storage_path(session, pdf, key)


@rules_bp.route("/")
def rules_list():
    """Active rules PDFs, each marked with whether the viewer may open it."""
    session = get_session()
    try:
        pdfs = store.get_rules_pdfs(session)
        entries = []
        for pdf in pdfs:
            unlock = store.get_unlock(session, g.ctx.user_id, pdf.id)
            entries.append({
                "pdf": pdf,
                "unlock": unlock,
                "can_view": can_view_rules_pdf(g.ctx, pdf, unlock),
                "expired": unlock is not None and not unlock_is_live(unlock.expires_at),
            })
        return render_template("rules.html", entries=entries)
    finally:
        session.close()


@rules_bp.route("/<int:pdf_id>/view")
@login_required
def view_pdf(pdf_id: int):
    session = get_session()
    try:
        pdf = store.get_rules_pdf(session, pdf_id)
        unlock = store.get_unlock(session, g.ctx.user_id, pdf.id)
        if not can_view_rules_pdf(g.ctx, pdf, unlock):
            raise Forbidden("You do not have access to this rules PDF")
        token = get_store().signed_token(_bucket(), pdf.storage_path)
        return render_template(
            "pdf_viewer.html",
            title=pdf.title,
            pdf_url=url_for("storage.download", token=token),
        )
    finally:
        session.close()


# =============================================================================
# Admin
# =============================================================================

@rules_bp.route("/manage")
@admin_required
def manage():
    session = get_session()
    try:
        return render_template("rules_manage.html", pdfs=store.get_rules_pdfs(session, include_inactive=True))
    finally:
        session.close()


@rules_bp.route("/", methods=["POST"])
@admin_required
def create_pdf():
    session = get_session()
    try:
        pdf = store.create_rules_pdf(session, request.form, created_by=g.ctx.profile_id)
        _attach_pdf(session, pdf)
        return redirect(url_for("rules.unlocks", pdf_id=pdf.id))
    finally:
        session.close()


@rules_bp.route("/<int:pdf_id>", methods=["POST"])
@admin_required
def update_pdf(pdf_id: int):
    session = get_session()
    try:
        pdf = store.update_rules_pdf(session, pdf_id, request.form)
        _attach_pdf(session, pdf)
        return redirect(url_for("rules.manage"))
    finally:
        session.close()


@rules_bp.route("/<int:pdf_id>/unlocks")
@admin_required
def unlocks(pdf_id: int):
    session = get_session()
    try:
        pdf = store.get_rules_pdf(session, pdf_id)
        return render_template("rules_unlocks.html", pdf=pdf, unlocks=store.list_unlocks(session, pdf.id))
    finally:
        session.close()


@rules_bp.route("/<int:pdf_id>/unlocks", methods=["POST"])
@admin_required
def grant_unlock(pdf_id: int):
    data = request.get_json(silent=True) or request.form
    session = get_session()
    try:
        pdf = store.get_rules_pdf(session, pdf_id)
        grantee = store.find_grantee(session, data.get("profile_id"), data.get("profile_name"))
        store.upsert_unlock(
            session,
            grantee.user_id,
            grantee.id,
            pdf.id,
            expires_at=coerce_optional_date(data.get("expires_at")),
            granted_by=g.ctx.profile_id,
        )
        logger.info("Profile %s granted rules PDF %s to profile %s", g.ctx.profile_id, pdf.id, grantee.id)
        if wants_json():
            return jsonify({"success": True, "user_id": grantee.user_id})
        flash(f"Granted access to {grantee.name}")
        return redirect(url_for("rules.unlocks", pdf_id=pdf.id))
    finally:
        session.close()


@rules_bp.route("/<int:pdf_id>/unlocks/<int:user_id>/delete", methods=["POST"])
@admin_required
def revoke_unlock(pdf_id: int, user_id: int):
    session = get_session()
    try:
        store.delete_unlock(session, user_id, pdf_id)
        if wants_json():
            return jsonify({"success": True})
        return redirect(url_for("rules.unlocks", pdf_id=pdf_id))
    finally:
        session.close()
