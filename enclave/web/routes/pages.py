"""Static page routes."""

from flask import Blueprint, g, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import NotFound
from enclave.models.access import can_view_page
from enclave.models.enums import AccessLevel
from enclave.resources import pages as store
from enclave.web.auth import admin_required

pages_bp = Blueprint("pages", __name__)


def _levels():
    return [a.value for a in AccessLevel]


@pages_bp.route("/manage")
@admin_required
def manage():
    session = get_session()
    try:
        filters = {
            "access_level": request.args.get("access_level") or None,
            "is_published": {"true": True, "false": False}.get(request.args.get("is_published")),
        }
        return render_template("pages_manage.html", pages=store.get_pages(session, filters), levels=_levels())
    finally:
        session.close()


@pages_bp.route("/new")
@admin_required
def new_page():
    return render_template("page_form.html", page=None, levels=_levels())


@pages_bp.route("/", methods=["POST"])
@admin_required
def create_page():
    session = get_session()
    try:
        page = store.create_page(session, g.ctx, request.form)
        return redirect(url_for("pages.view_page", slug=page.slug))
    finally:
        session.close()


@pages_bp.route("/<int:page_id>/edit")
@admin_required
def edit_page(page_id: int):
    session = get_session()
    try:
        return render_template("page_form.html", page=store.get_page(session, page_id), levels=_levels())
    finally:
        session.close()


@pages_bp.route("/<int:page_id>", methods=["POST"])
@admin_required
def update_page(page_id: int):
    session = get_session()
    try:
        page = store.update_page(session, page_id, request.form)
        return redirect(url_for("pages.view_page", slug=page.slug))
    finally:
        session.close()


@pages_bp.route("/<int:page_id>/delete", methods=["POST"])
@admin_required
def delete_page(page_id: int):
    session = get_session()
    try:
        store.delete_page(session, page_id)
        return redirect(url_for("pages.manage"))
    finally:
        session.close()


@pages_bp.route("/<slug>")
def view_page(slug: str):
    """Hidden pages answer 404 so their existence is not revealed."""
    session = get_session()
    try:
        page = store.get_page_by_slug(session, slug)
        if not can_view_page(g.ctx, page):
            raise NotFound("Page not found")
        return render_template("page.html", page=page)
    finally:
        session.close()
