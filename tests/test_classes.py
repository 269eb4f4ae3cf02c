"""
Tests for classes, unlocks and unlock codes.

These tests verify that:
1. Codes are spent once per redemption and respect expiry and max uses
2. Redeeming a class the user already holds does not consume a use
3. Bulk redemption reports each code independently
4. Only public player-created alpha/beta classes can be self-unlocked
5. Released classes show a teaser until unlocked
6. Class import requires abilities and gear, and demotes non-admin releases
"""

import json
from datetime import timedelta

import pytest

from enclave.clock import utcnow
from enclave.database.schema import ClassRecord, ClassUnlockCodeRecord
from enclave.errors import Forbidden, ImportValidationError, ValidationFailed
from enclave.importers.classes import import_class, normalize_entries
from enclave.resources import classes as store


class TestUnlockCodes:

    def test_create_codes(self, test_session, sample_class, admin_account):
        codes = store.create_unlock_codes(test_session, sample_class.id, admin_account["profile"].id, amount=3)
        assert len({c.code for c in codes}) == 3
        assert all(c.uses == 0 and c.max_uses == 1 for c in codes)

    @pytest.mark.parametrize("amount,max_uses", [(0, 1), ("0", 1), (101, 1), (1, 0), (1, "0"), (1, -2)])
    def test_create_codes_bounds(self, test_session, sample_class, amount, max_uses):
        with pytest.raises(ValidationFailed):
            store.create_unlock_codes(test_session, sample_class.id, None, amount=amount, max_uses=max_uses)

    def test_blank_counts_use_defaults(self, test_session, sample_class):
        codes = store.create_unlock_codes(test_session, sample_class.id, None, amount="", max_uses=None)
        assert len(codes) == 1
        assert codes[0].max_uses == 1

    def test_redeem_spends_a_use(self, test_session, sample_class, user_account):
        code = store.create_unlock_codes(test_session, sample_class.id, None)[0]
        user_id = user_account["user"].id

        assert store.redeem_unlock_code(test_session, code.code, user_id) == sample_class.id

        assert store.is_class_unlocked(test_session, user_id, sample_class.id)
        assert test_session.get(ClassUnlockCodeRecord, code.id).uses == 1

    def test_exhausted_code(self, test_session, sample_class, user_account, make_account):
        code = store.create_unlock_codes(test_session, sample_class.id, None)[0]
        store.redeem_unlock_code(test_session, code.code, user_account["user"].id)
        other = make_account(email="second@example.com")
        with pytest.raises(ValidationFailed, match="already been used"):
            store.redeem_unlock_code(test_session, code.code, other["user"].id)

    def test_already_unlocked_keeps_use(self, test_session, sample_class, user_account):
        user_id = user_account["user"].id
        store.unlock_class(test_session, user_id, sample_class.id)
        code = store.create_unlock_codes(test_session, sample_class.id, None)[0]

        store.redeem_unlock_code(test_session, code.code, user_id)

        assert test_session.get(ClassUnlockCodeRecord, code.id).uses == 0

    def test_expired_code(self, test_session, sample_class, user_account):
        code = store.create_unlock_codes(
            test_session, sample_class.id, None, expires_at=utcnow() - timedelta(hours=1)
        )[0]
        with pytest.raises(ValidationFailed, match="expired"):
            store.redeem_unlock_code(test_session, code.code, user_account["user"].id)

    def test_unknown_code(self, test_session, user_account):
        with pytest.raises(ValidationFailed, match="Invalid code"):
            store.redeem_unlock_code(test_session, "nope", user_account["user"].id)

    def test_expired_unlock_is_not_live(self, test_session, sample_class, user_account):
        user_id = user_account["user"].id
        store.unlock_class(test_session, user_id, sample_class.id, expires_at=utcnow() - timedelta(days=1))
        assert not store.is_class_unlocked(test_session, user_id, sample_class.id)
        assert store.get_unlocked_classes(test_session, user_id) == []


class TestBulkRedeem:

    def test_split_codes(self):
        assert store.split_codes("a, b\nc\r\n\n a ,") == ["a", "b", "c"]

    def test_each_code_independent(self, test_session, sample_class, user_account):
        code = store.create_unlock_codes(test_session, sample_class.id, None)[0]

        results = store.redeem_many(test_session, f"bogus\n{code.code}", user_account["user"].id)

        assert [r.success for r in results] == [False, True]
        assert results[0].error == "Invalid code"
        assert results[1].class_name == "Gunslinger"


class TestSelfUnlock:

    def make_player_class(self, session, profile, status="beta", is_public=True):
        cls = ClassRecord(
            name="Tinkerer", status=status, is_public=is_public,
            is_player_created=True, created_by=profile.id,
        )
        session.add(cls)
        session.commit()
        return cls

    def test_public_beta_class(self, test_session, user_account, other_profile):
        cls = self.make_player_class(test_session, other_profile)
        store.self_unlock(test_session, user_account["ctx"], cls.id)
        assert store.is_class_unlocked(test_session, user_account["user"].id, cls.id)

    @pytest.mark.parametrize("status,is_public", [("release", True), ("alpha", False)])
    def test_not_eligible(self, test_session, user_account, other_profile, status, is_public):
        cls = self.make_player_class(test_session, other_profile, status=status, is_public=is_public)
        with pytest.raises(Forbidden):
            store.self_unlock(test_session, user_account["ctx"], cls.id)


class TestClassForm:

    def test_non_admin_create_is_player_created_alpha(self, test_session, user_account):
        record = store.create_class(test_session, user_account["ctx"], {
            "name": "Brawler", "status": "release", "is_player_created": "false",
        })
        assert record.is_player_created is True
        assert record.status == "alpha"

    def test_abilities_pairs(self, test_session, admin_account):
        record = store.create_class(test_session, admin_account["ctx"], {
            "name": "Brawler",
            "ability_name": ["Punch", "  ", "Kick"],
            "ability_description": ["Hit", "", "Also hit"],
        })
        assert json.loads(record.abilities_json) == [
            {"name": "Punch", "description": "Hit"},
            {"name": "Kick", "description": "Also hit"},
        ]

    def test_other_user_cannot_update(self, test_session, sample_class, user_account):
        with pytest.raises(Forbidden):
            store.update_class(test_session, user_account["ctx"], sample_class.id, {"name": "Mine now"})

    def test_duplicate_tracks_base(self, test_session, sample_class, admin_account):
        copy = store.duplicate_class(test_session, admin_account["ctx"], sample_class.id, "v2-draft")
        again = store.duplicate_class(test_session, admin_account["ctx"], copy.id, "v3-draft")

        assert copy.base_class_id == sample_class.id
        assert again.base_class_id == sample_class.id
        assert copy.is_public is False
        history = store.get_version_history(test_session, sample_class.id)
        assert {c.id for c in history} == {sample_class.id, copy.id, again.id}


class TestClassImport:

    payload = {
        "name": "Hexer",
        "description": "Curses things.",
        "abilities": ["Hex", {"name": "Ward", "description": "Block a curse"}, {"name": ""}],
        "gear": [{"name": "Wand"}],
        "status": "release",
        "is_public": True,
    }

    def test_import_non_admin(self, test_session, user_account, extractor):
        extractor.payload = self.payload

        record = import_class(test_session, user_account["ctx"], "A hexer class", extractor)

        assert record.status == "alpha"
        assert record.is_player_created is True
        assert record.rules_edition == "advent"
        assert record.rules_version == "v1"
        assert json.loads(record.abilities_json) == [
            {"name": "Hex"}, {"name": "Ward", "description": "Block a curse"},
        ]

    def test_import_admin_keeps_release(self, test_session, admin_account, extractor):
        extractor.payload = self.payload
        record = import_class(test_session, admin_account["ctx"], "A hexer class", extractor)
        assert record.status == "release"

    @pytest.mark.parametrize("missing", ["abilities", "gear"])
    def test_requires_entries(self, test_session, user_account, extractor, missing):
        extractor.payload = dict(self.payload, **{missing: []})
        with pytest.raises(ImportValidationError):
            import_class(test_session, user_account["ctx"], "A hexer class", extractor)
        assert test_session.query(ClassRecord).count() == 0

    def test_entry_limits(self):
        assert len(normalize_entries([f"Item {i}" for i in range(10)], 6)) == 6


class TestClassRoutes:

    def test_teaser_until_unlocked(self, client, login, user_account, sample_class, test_session):
        login(user_account)
        response = client.get(f"/classes/{sample_class.id}")
        assert b"Fast hands, faster mouth." in response.data
        assert b"Full class text." not in response.data

        store.unlock_class(test_session, user_account["user"].id, sample_class.id)
        response = client.get(f"/classes/{sample_class.id}")
        assert b"Full class text." in response.data

    def test_private_class_hidden(self, client, login, user_account, sample_class, test_session):
        sample_class.is_public = False
        test_session.commit()
        login(user_account)
        assert client.get(f"/classes/{sample_class.id}").status_code == 404

    def test_pdf_requires_unlock(self, client, login, user_account, sample_class):
        login(user_account)
        assert client.get(f"/classes/{sample_class.id}/pdf").status_code == 403

    def test_admin_creates_codes_json(self, client, login, admin_account, sample_class):
        login(admin_account)
        response = client.post(
            f"/classes/{sample_class.id}/codes",
            json={"amount": 2, "max_uses": 3},
            headers={"Accept": "application/json"},
        )
        assert response.status_code == 201
        assert len(response.get_json()["codes"]) == 2

    def test_redeem_json(self, client, login, user_account, sample_class, test_session):
        code = store.create_unlock_codes(test_session, sample_class.id, None)[0]
        login(user_account)
        response = client.post("/classes/redeem", json={"code": code.code},
                               headers={"Accept": "application/json"})
        assert response.get_json() == {"success": True, "class_id": sample_class.id}

    def test_redeem_bad_code_json(self, client, login, user_account):
        login(user_account)
        response = client.post("/classes/redeem", json={"code": "nope"},
                               headers={"Accept": "application/json"})
        assert response.status_code == 400
