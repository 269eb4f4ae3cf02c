"""
Tests for settings loading, template helpers and starter unlocks.
"""

from datetime import datetime, timedelta
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from enclave.config import StarterConfig, load_settings
from enclave.database.schema import ClassUnlockRecord, RulesPdfUnlockRecord, UserRecord
from enclave.resources.profiles import get_or_create_profile
from enclave.web.helpers import calendar_link, format_date, stat_total


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings({})
        assert settings.llm.api_key is None
        assert settings.storage.signed_url_ttl == 300
        assert settings.system_message is None

    def test_overrides(self):
        settings = load_settings({
            "ENCLAVE_LOG_LEVEL": "debug",
            "OPENAI_API_KEY": "sk-test",
            "ENCLAVE_STORAGE_DIR": "/tmp/enclave",
            "ENCLAVE_PDF_SIGNED_URL_TTL": "90",
            "ENCLAVE_STARTER_CLASS_IDS": "3, 5,",
            "SYSTEM_MESSAGE_ENABLED": "true",
            "SYSTEM_MESSAGE_TEXT": "Maintenance tonight",
        })
        assert settings.log_level == "DEBUG"
        assert settings.llm.api_key == "sk-test"
        assert settings.storage.root == Path("/tmp/enclave")
        assert settings.storage.signed_url_ttl == 90
        assert settings.starter.class_ids == [3, 5]
        assert settings.system_message.text == "Maintenance tonight"

    def test_bad_ttl_ignored(self):
        assert load_settings({"ENCLAVE_PDF_SIGNED_URL_TTL": "-4"}).storage.signed_url_ttl == 300

    def test_disabled_banner(self):
        settings = load_settings({"SYSTEM_MESSAGE_ENABLED": "false", "SYSTEM_MESSAGE_TEXT": "Hi"})
        assert settings.system_message is None


class TestHelpers:

    def test_format_date_in_zone(self):
        moment = datetime(2026, 3, 1, 2, 30)
        assert format_date(moment, "%Y-%m-%d %H:%M") == "2026-03-01 02:30"
        assert format_date(moment, "%Y-%m-%d %H:%M", tz="America/New_York") == "2026-02-28 21:30"

    def test_format_date_unknown_zone_falls_back(self):
        assert format_date(datetime(2026, 3, 1, 2, 30), "%H:%M", tz="Mars/Olympus") == "02:30"

    def test_format_date_none(self):
        assert format_date(None) == ""

    def test_calendar_link(self):
        link = calendar_link("One-shot", datetime(2026, 11, 6, 19, 0), duration=timedelta(hours=3))
        query = parse_qs(urlparse(link).query)
        assert query["text"] == ["One-shot"]
        assert query["dates"] == ["20261106T190000Z/20261106T220000Z"]
        assert calendar_link("No date", None) == ""

    def test_stat_total(self, test_session, user_account, make_character):
        character = make_character(user_account["profile"], "Mara", might=3, luck=2)
        assert stat_total(character) == 5


class TestStarterUnlocks:

    def test_first_profile_gets_starter_content(self, test_session, sample_class, sample_rules_pdf):
        from enclave.resources import auth as accounts

        user = accounts.sign_up(test_session, "new@example.com", "secret-pass")
        starter = StarterConfig(rules_pdf_id=sample_rules_pdf.id, class_ids=[sample_class.id, 999])

        get_or_create_profile(test_session, user, starter)

        class_unlock = test_session.query(ClassUnlockRecord).filter_by(user_id=user.id).one()
        rules_unlock = test_session.query(RulesPdfUnlockRecord).filter_by(user_id=user.id).one()
        assert class_unlock.expires_at is not None
        assert rules_unlock.expires_at == class_unlock.expires_at

    def test_unconfirmed_user_has_no_profile(self, test_session):
        user = UserRecord(email="pending@example.com", password_hash="x")
        test_session.add(user)
        test_session.commit()
        assert get_or_create_profile(test_session, user, StarterConfig()) is None
