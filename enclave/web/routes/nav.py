"""Admin management of the navigation menu."""

from flask import Blueprint, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import ValidationFailed
from enclave.models.enums import NavType
from enclave.resources import nav as store
from enclave.resources.pages import get_pages
from enclave.web.auth import admin_required, wants_json

nav_bp = Blueprint("nav", __name__)

FLAGS = ("requires_auth", "requires_admin", "is_active")


def _form_data():
    """Form fields with unchecked checkboxes reported as explicit false."""
    data = request.form.to_dict()
    for flag in FLAGS:
        data[flag] = flag in request.form
    return data


def _form_options(session):
    return {
        "types": [t.value for t in NavType],
        "parents": store.get_dropdown_parents(session),
        "pages": get_pages(session),
    }


@nav_bp.route("/manage")
@admin_required
def manage():
    session = get_session()
    try:
        return render_template("nav_manage.html", tree=store.get_all_nav_items(session))
    finally:
        session.close()


@nav_bp.route("/new")
@admin_required
def new_item():
    session = get_session()
    try:
        return render_template("nav_form.html", item=None, **_form_options(session))
    finally:
        session.close()


@nav_bp.route("/", methods=["POST"])
@admin_required
def create_item():
    session = get_session()
    try:
        if request.is_json:
            item = store.create_nav_item(session, request.get_json())
            return jsonify({"id": item.id, "position": item.position}), 201
        store.create_nav_item(session, _form_data())
        return redirect(url_for("nav.manage"))
    finally:
        session.close()


@nav_bp.route("/<int:item_id>/edit")
@admin_required
def edit_item(item_id: int):
    session = get_session()
    try:
        item = store.get_nav_item(session, item_id)
        return render_template("nav_form.html", item=item, **_form_options(session))
    finally:
        session.close()


@nav_bp.route("/<int:item_id>", methods=["POST"])
@admin_required
def update_item(item_id: int):
    session = get_session()
    try:
        if request.is_json:
            item = store.update_nav_item(session, item_id, request.get_json())
            return jsonify({"id": item.id})
        store.update_nav_item(session, item_id, _form_data())
        return redirect(url_for("nav.manage"))
    finally:
        session.close()


@nav_bp.route("/<int:item_id>/delete", methods=["POST"])
@admin_required
def delete_item(item_id: int):
    session = get_session()
    try:
        deleted = store.delete_nav_item(session, item_id)
        if wants_json():
            return jsonify({"deleted": deleted})
        return redirect(url_for("nav.manage"))
    finally:
        session.close()


@nav_bp.route("/reorder", methods=["POST"])
@admin_required
def reorder():
    payload = request.get_json(silent=True) or {}
    items = payload.get("items")
    if not isinstance(items, list):
        raise ValidationFailed("Expected a list of items")
    session = get_session()
    try:
        store.reorder_nav_items(session, items)
        return jsonify({"success": True})
    finally:
        session.close()
