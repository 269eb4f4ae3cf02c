"""Looking-for-group routes."""

from flask import Blueprint, g, jsonify, redirect, render_template, request, url_for

from enclave.database import get_session
from enclave.errors import NotFound
from enclave.models.enums import JoinStatus, LfgStatus
from enclave.resources import lfg as store
from enclave.resources.characters import get_own_characters
from enclave.web.auth import login_required

lfg_bp = Blueprint("lfg", __name__)

TABS = ("open", "mine", "joined")


@lfg_bp.route("/")
def post_list():
    tab = request.args.get("tab", "open")
    if tab not in TABS:
        tab = "open"
    session = get_session()
    try:
        if tab == "mine" and g.ctx.profile_id is not None:
            posts = store.get_posts_by_creator(session, g.ctx.profile_id)
        elif tab == "joined" and g.ctx.profile_id is not None:
            posts = store.get_joined_posts(session, g.ctx.profile_id)
        else:
            tab = "open"
            posts = store.get_open_posts(session)
        return render_template("lfg.html", posts=posts, tab=tab)
    finally:
        session.close()


@lfg_bp.route("/events/all")
def events():
    session = get_session()
    try:
        return jsonify(store.get_events(session, g.ctx.profile_id))
    finally:
        session.close()


@lfg_bp.route("/new")
@login_required
def new_post():
    return render_template("lfg_form.html", post=None, statuses=[s.value for s in LfgStatus])


@lfg_bp.route("/", methods=["POST"])
@login_required
def create_post():
    session = get_session()
    try:
        post = store.create_post(session, g.ctx, request.form)
        return redirect(url_for("lfg.view_post", post_id=post.id))
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>")
def view_post(post_id: int):
    session = get_session()
    try:
        post = store.get_post(session, post_id)
        is_owner = post.creator_id == g.ctx.profile_id
        if not post.is_public and not is_owner:
            raise NotFound("Post not found")
        party = store.get_party(post)
        own_request = next(
            (r for r in post.join_requests if r.profile_id == g.ctx.profile_id), None
        )
        characters = get_own_characters(session, g.ctx) if g.ctx.profile_id is not None else []
        return render_template(
            "lfg_post.html",
            post=post,
            party=party,
            totals=store.party_stat_totals(party),
            is_owner=is_owner,
            own_request=own_request,
            characters=characters,
            join_statuses=[s.value for s in JoinStatus],
        )
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>/edit")
@login_required
def edit_post(post_id: int):
    session = get_session()
    try:
        post = store.get_post(session, post_id)
        if post.creator_id != g.ctx.profile_id:
            raise NotFound("Post not found")
        return render_template("lfg_form.html", post=post, statuses=[s.value for s in LfgStatus])
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>", methods=["POST"])
@login_required
def update_post(post_id: int):
    session = get_session()
    try:
        store.update_post(session, g.ctx, post_id, request.form)
        return redirect(url_for("lfg.view_post", post_id=post_id))
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>/delete", methods=["POST"])
@login_required
def delete_post(post_id: int):
    session = get_session()
    try:
        store.delete_post(session, g.ctx, post_id)
        return redirect(url_for("lfg.post_list", tab="mine"))
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>/join", methods=["POST"])
@login_required
def join(post_id: int):
    session = get_session()
    try:
        store.join_post(session, g.ctx, post_id, request.form.get("character_id"))
        return redirect(url_for("lfg.view_post", post_id=post_id))
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>/leave", methods=["POST"])
@login_required
def leave(post_id: int):
    session = get_session()
    try:
        store.leave_post(session, g.ctx, post_id)
        return redirect(url_for("lfg.view_post", post_id=post_id))
    finally:
        session.close()


@lfg_bp.route("/<int:post_id>/requests/<int:request_id>", methods=["POST"])
@login_required
def set_request_status(post_id: int, request_id: int):
    session = get_session()
    try:
        store.set_join_request_status(session, g.ctx, post_id, request_id, request.form.get("status", ""))
        return redirect(url_for("lfg.view_post", post_id=post_id))
    finally:
        session.close()
