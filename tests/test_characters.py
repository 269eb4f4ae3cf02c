"""
Tests for character records and character import.
"""

import json

import pytest

from enclave.consts import STAT_LIST
from enclave.database.schema import CharacterRecord, MissionCharacterRecord
from enclave.errors import Forbidden, ImportValidationError, ValidationFailed
from enclave.importers.characters import import_character
from enclave.resources import characters as store


def sheet(**overrides):
    data = {stat: 1 for stat in STAT_LIST}
    data.update({
        "name": "Mara Quill",
        "class": "Gunslinger",
        "trait0": "Tough",
        "trait1": "grumpy",
        "trait2": "tough",
        "level": 2,
        "completed_missions": 3,
        "commissary_reward": 40,
        "gear": ["Duster", "  ", "Bandolier"],
        "image_url": "not a url",
        "background": "  Raised on a moon.  ",
    })
    data.update(overrides)
    return data


class TestCharacterStore:

    def test_create_resolves_class(self, test_session, user_account, sample_class):
        record = store.create_character(test_session, user_account["ctx"], {
            "name": "Mara", "class_name": "Gunslinger", "might": "3", "traits": ["tough", " "],
        })
        assert record.class_id == sample_class.id
        assert record.might == 3
        assert record.level == 1
        assert record.traits == ["tough"]

    def test_name_required(self, test_session, user_account):
        with pytest.raises(ValidationFailed):
            store.create_character(test_session, user_account["ctx"], {"name": "  "})

    def test_only_creator_changes(self, test_session, user_account, other_profile, make_character):
        theirs = make_character(other_profile, "Theirs", is_public=True)
        with pytest.raises(Forbidden):
            store.update_character(test_session, user_account["ctx"], theirs.id, {"name": "Mine"})
        with pytest.raises(Forbidden):
            store.delete_character(test_session, user_account["ctx"], theirs.id)

    def test_delete_removes_mission_links(self, test_session, user_account, make_character, sample_mission):
        mine = make_character(user_account["profile"], "Mine")
        test_session.add(MissionCharacterRecord(mission_id=sample_mission.id, character_id=mine.id))
        test_session.commit()

        store.delete_character(test_session, user_account["ctx"], mine.id)

        assert test_session.query(MissionCharacterRecord).count() == 0

    def test_search_public_only(self, test_session, user_account, make_character):
        make_character(user_account["profile"], "Rook Public", is_public=True)
        make_character(user_account["profile"], "Rook Private")
        assert [c["name"] for c in store.search_public_characters(test_session, "rook")] == ["Rook Public"]
        assert store.search_public_characters(test_session, "   ") == []


class TestCharacterImport:

    def test_import(self, test_session, user_account, sample_class, extractor):
        extractor.payload = sheet()

        record = import_character(test_session, user_account["ctx"], "Mara's sheet", extractor)

        assert record.is_public is False
        assert record.creator_id == user_account["profile"].id
        assert record.class_id == sample_class.id
        assert record.traits == ["tough"]
        assert record.gear == ["Duster", "Bandolier"]
        assert record.abilities == ["Quickdraw"]
        assert record.image_url is None
        assert record.background == "Raised on a moon."
        assert record.level == 2

    def test_unknown_class_has_no_abilities(self, test_session, user_account, extractor):
        extractor.payload = sheet(**{"class": "Beekeeper"})
        record = import_character(test_session, user_account["ctx"], "sheet", extractor)
        assert record.class_name == "Beekeeper"
        assert record.class_id is None
        assert record.abilities == []

    def test_missing_stat_rejected(self, test_session, user_account, extractor):
        payload = sheet()
        del payload["luck"]
        extractor.payload = payload
        with pytest.raises(ImportValidationError):
            import_character(test_session, user_account["ctx"], "sheet", extractor)
        assert test_session.query(CharacterRecord).count() == 0


class TestCharacterRoutes:

    def test_private_character_hidden(self, client, login, user_account, other_profile, make_character):
        theirs = make_character(other_profile, "Secret")
        login(user_account)
        assert client.get(f"/characters/{theirs.id}").status_code == 404

    def test_public_character_visible_anonymously(self, client, other_profile, make_character):
        theirs = make_character(other_profile, "Known", is_public=True)
        response = client.get(f"/characters/{theirs.id}")
        assert response.status_code == 200
        assert b"Known" in response.data

    def test_search_json(self, client, other_profile, make_character):
        make_character(other_profile, "Known", is_public=True)
        response = client.get("/characters/search?q=kno")
        assert response.get_json()[0]["name"] == "Known"

    def test_update_someone_elses(self, client, login, user_account, other_profile, make_character):
        theirs = make_character(other_profile, "Theirs", is_public=True)
        login(user_account)
        response = client.post(f"/characters/{theirs.id}", data={"name": "Mine"})
        assert response.status_code == 403

    def test_import_route(self, client, login, user_account, extractor, test_session):
        extractor.payload = sheet()
        login(user_account)
        response = client.post("/characters/import", data={"input_text": "sheet"})
        assert response.status_code == 302
        record = test_session.query(CharacterRecord).one()
        assert json.loads(record.traits_json) == ["tough"]
