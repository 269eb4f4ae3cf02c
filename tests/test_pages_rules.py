"""
Tests for static pages and rules PDF access.
"""

from datetime import timedelta

import pytest

from enclave.clock import utcnow
from enclave.database.schema import RulesPdfUnlockRecord
from enclave.errors import ValidationFailed
from enclave.resources import pages, rules


class TestPages:

    @pytest.mark.parametrize("title,slug", [
        ("House Rules", "house-rules"),
        ("  What's   New?! ", "whats-new"),
        ("--Odd--", "odd"),
        ("", ""),
    ])
    def test_generate_slug(self, title, slug):
        assert pages.generate_slug(title) == slug

    def test_slug_must_be_unique(self, test_session, admin_account, sample_page):
        sample_page(slug="about")
        with pytest.raises(ValidationFailed, match="slug already exists"):
            pages.create_page(test_session, admin_account["ctx"], {"title": "About"})

    def test_update_keeps_own_slug(self, test_session, sample_page):
        page = sample_page(slug="about")
        updated = pages.update_page(test_session, page.id, {"title": "About", "is_published": "on"})
        assert updated.slug == "about"

    def test_unknown_access_level(self, test_session, admin_account):
        with pytest.raises(ValidationFailed):
            pages.create_page(test_session, admin_account["ctx"], {"title": "X", "access_level": "secret"})


class TestPageRoutes:

    def test_public_page(self, client, sample_page):
        sample_page()
        response = client.get("/pages/about")
        assert response.status_code == 200
        assert b"About content" in response.data

    def test_members_page_hidden_from_anonymous(self, client, login, user_account, sample_page):
        sample_page(slug="members", access_level="authenticated", title="Members")
        assert client.get("/pages/members").status_code == 404
        login(user_account)
        assert client.get("/pages/members").status_code == 200

    def test_unpublished_page_admin_only(self, client, login, user_account, admin_account, sample_page):
        sample_page(slug="draft", is_published=False, title="Draft")
        login(user_account)
        assert client.get("/pages/draft").status_code == 404
        login(admin_account)
        assert client.get("/pages/draft").status_code == 200

    def test_missing_page(self, client):
        assert client.get("/pages/nowhere").status_code == 404

    def test_manage_requires_admin(self, client, login, user_account):
        login(user_account)
        assert client.get("/pages/manage").status_code == 403


class TestRulesUnlocks:

    def test_upsert_keeps_one_row(self, test_session, user_account, admin_account, sample_rules_pdf):
        user_id = user_account["user"].id
        profile_id = user_account["profile"].id
        rules.upsert_unlock(test_session, user_id, profile_id, sample_rules_pdf.id,
                            expires_at=utcnow() + timedelta(days=1))
        rules.upsert_unlock(test_session, user_id, profile_id, sample_rules_pdf.id,
                            granted_by=admin_account["profile"].id)

        rows = test_session.query(RulesPdfUnlockRecord).filter_by(user_id=user_id).all()
        assert len(rows) == 1
        assert rows[0].expires_at is None

        listing = rules.list_unlocks(test_session, sample_rules_pdf.id)
        assert listing[0].granted_by_name == "Overseer"
        assert listing[0].is_expired is False

    def test_active_unlocks_skip_expired(self, test_session, user_account, sample_rules_pdf):
        user_id = user_account["user"].id
        rules.upsert_unlock(test_session, user_id, None, sample_rules_pdf.id,
                            expires_at=utcnow() - timedelta(minutes=1))
        assert rules.list_active_unlocks_for_user(test_session, user_id) == []

    def test_find_grantee(self, test_session, user_account):
        profile = user_account["profile"]
        assert rules.find_grantee(test_session, profile_id=str(profile.id)).id == profile.id
        assert rules.find_grantee(test_session, profile_name=f" {profile.name} ").id == profile.id
        with pytest.raises(ValidationFailed):
            rules.find_grantee(test_session, profile_name="Nobody")

    def test_inactive_pdfs_hidden(self, test_session, sample_rules_pdf):
        rules.update_rules_pdf(test_session, sample_rules_pdf.id, {"title": "Core", "edition": "advent", "is_active": "off"})
        assert rules.get_rules_pdfs(test_session) == []
        assert len(rules.get_rules_pdfs(test_session, include_inactive=True)) == 1


class TestRulesRoutes:

    def test_view_requires_unlock(self, client, login, user_account, sample_rules_pdf):
        login(user_account)
        assert client.get(f"/rules/{sample_rules_pdf.id}/view").status_code == 403

    def test_grant_then_view(self, client, login, admin_account, user_account, sample_rules_pdf):
        login(admin_account)
        response = client.post(
            f"/rules/{sample_rules_pdf.id}/unlocks",
            json={"profile_name": user_account["profile"].name},
            headers={"Accept": "application/json"},
        )
        assert response.get_json() == {"success": True, "user_id": user_account["user"].id}

        login(user_account)
        response = client.get(f"/rules/{sample_rules_pdf.id}/view")
        assert response.status_code == 200
        assert b"/storage/" in response.data

    def test_revoke(self, client, login, admin_account, user_account, sample_rules_pdf, test_session):
        rules.upsert_unlock(test_session, user_account["user"].id, user_account["profile"].id,
                            sample_rules_pdf.id)
        login(admin_account)
        client.post(f"/rules/{sample_rules_pdf.id}/unlocks/{user_account['user'].id}/delete")
        assert test_session.query(RulesPdfUnlockRecord).count() == 0

    def test_library_lists_active(self, client, sample_rules_pdf):
        response = client.get("/rules/")
        assert b"Core Rules" in response.data
