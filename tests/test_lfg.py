"""
Tests for looking-for-group posts.

These tests verify that:
1. A profile can hold one join request per post
2. Only the post's own characters may be brought along
3. Party totals count approved characters only
4. Calendar events include public open posts and the viewer's own
"""

from datetime import datetime

import pytest

from enclave.errors import Forbidden, ValidationFailed
from enclave.resources import lfg


@pytest.fixture
def open_post(test_session, make_account):
    owner = make_account(email="host@example.com", name="Host")
    post = lfg.create_post(test_session, owner["ctx"], {
        "title": "Friday one-shot",
        "date": "2026-11-06 19:00",
        "is_public": "on",
        "host_id": "on",
    })
    post.owner = owner
    return post


class TestPosts:

    def test_create(self, open_post):
        assert open_post.status == "open"
        assert open_post.host_id == open_post.creator_id
        assert open_post.date == datetime(2026, 11, 6, 19, 0)

    def test_title_required(self, test_session, user_account):
        with pytest.raises(ValidationFailed):
            lfg.create_post(test_session, user_account["ctx"], {"title": " "})

    def test_only_creator_updates(self, test_session, user_account, open_post):
        with pytest.raises(Forbidden):
            lfg.update_post(test_session, user_account["ctx"], open_post.id, {"title": "Mine"})

    def test_listing(self, test_session, user_account, open_post):
        lfg.create_post(test_session, user_account["ctx"], {"title": "Secret session"})
        assert [p.title for p in lfg.get_open_posts(test_session)] == ["Friday one-shot"]
        assert [p.title for p in lfg.get_posts_by_creator(test_session, user_account["profile"].id)] == [
            "Secret session"
        ]
        assert lfg.get_open_posts(test_session)[0].host_name == "Host"


class TestJoining:

    def test_join_once(self, test_session, user_account, open_post):
        lfg.join_post(test_session, user_account["ctx"], open_post.id)
        with pytest.raises(ValidationFailed, match="already"):
            lfg.join_post(test_session, user_account["ctx"], open_post.id)
        assert [p.id for p in lfg.get_joined_posts(test_session, user_account["profile"].id)] == [open_post.id]

    def test_join_with_someone_elses_character(self, test_session, user_account, other_profile,
                                               make_character, open_post):
        theirs = make_character(other_profile, "Borrowed", is_public=True)
        with pytest.raises(Forbidden):
            lfg.join_post(test_session, user_account["ctx"], open_post.id, str(theirs.id))

    def test_closed_post(self, test_session, user_account, open_post):
        lfg.update_post(test_session, open_post.owner["ctx"], open_post.id,
                        {"title": "Friday one-shot", "status": "closed"})
        with pytest.raises(ValidationFailed, match="closed"):
            lfg.join_post(test_session, user_account["ctx"], open_post.id)

    def test_leave(self, test_session, user_account, open_post):
        lfg.join_post(test_session, user_account["ctx"], open_post.id)
        lfg.leave_post(test_session, user_account["ctx"], open_post.id)
        with pytest.raises(ValidationFailed):
            lfg.leave_post(test_session, user_account["ctx"], open_post.id)

    def test_party_counts_approved(self, test_session, user_account, make_account, make_character, open_post):
        mine = make_character(user_account["profile"], "Mara", might=3, luck=1)
        second = make_account(email="second@example.com")
        theirs = make_character(second["profile"], "Dax", might=2)

        approved = lfg.join_post(test_session, user_account["ctx"], open_post.id, mine.id)
        lfg.join_post(test_session, second["ctx"], open_post.id, theirs.id)
        lfg.set_join_request_status(test_session, open_post.owner["ctx"], open_post.id, approved.id, "approved")

        post = lfg.get_post(test_session, open_post.id)
        party = lfg.get_party(post)
        totals = lfg.party_stat_totals(party)

        assert [c.name for c in party] == ["Mara"]
        assert totals["might"] == 3
        assert totals["luck"] == 1
        assert totals["vitality"] == 0

    def test_bad_status(self, test_session, user_account, open_post):
        join = lfg.join_post(test_session, user_account["ctx"], open_post.id)
        with pytest.raises(ValidationFailed):
            lfg.set_join_request_status(test_session, open_post.owner["ctx"], open_post.id, join.id, "maybe")


class TestEvents:

    def test_events(self, test_session, user_account, open_post):
        lfg.create_post(test_session, user_account["ctx"], {"title": "Private", "date": "2026-12-01"})
        lfg.create_post(test_session, user_account["ctx"], {"title": "Undated", "is_public": "on"})

        anonymous = {e["title"] for e in lfg.get_events(test_session)}
        mine = {e["title"] for e in lfg.get_events(test_session, user_account["profile"].id)}

        assert anonymous == {"Friday one-shot"}
        assert mine == {"Friday one-shot", "Private"}

    def test_events_route(self, client, open_post):
        events = client.get("/lfg/events/all").get_json()
        assert events == [{
            "id": open_post.id,
            "title": "Friday one-shot",
            "start": "2026-11-06T19:00:00",
            "url": f"/lfg/{open_post.id}",
        }]

    def test_private_post_hidden(self, client, login, user_account, test_session, other_profile):
        post = lfg.create_post(test_session, user_account["ctx"], {"title": "Private"})
        assert client.get(f"/lfg/{post.id}").status_code == 404
        login(user_account)
        assert client.get(f"/lfg/{post.id}").status_code == 200
