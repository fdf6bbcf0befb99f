import json

import pytest

from app.errors import InvalidSignature, ValidationError
from app.security import DEMO_IDENTITY, LaunchDataVerifier, build_data_check_string, extract_identity
from conftest import BOT_TOKEN, TELEGRAM_USER, make_init_data


class TestLaunchDataVerifier:

    @pytest.fixture
    def verifier(self):
        return LaunchDataVerifier(BOT_TOKEN)

    def test_data_check_string_is_sorted_by_key(self):
        assert build_data_check_string({"user": "u", "auth_date": "1", "query_id": "q"}) == (
            "auth_date=1\nquery_id=q\nuser=u"
        )

    def test_valid_payload_returns_pairs_without_hash(self, verifier):
        data = verifier.verify(make_init_data())

        assert "hash" not in data
        assert data["auth_date"] == "1700000000"
        assert json.loads(data["user"])["id"] == TELEGRAM_USER["id"]

    def test_tampered_payload_is_rejected(self, verifier):
        init_data = make_init_data().replace("1700000000", "1700000001")

        with pytest.raises(InvalidSignature):
            verifier.verify(init_data)

    def test_payload_signed_with_other_token_is_rejected(self, verifier):
        with pytest.raises(InvalidSignature):
            verifier.verify(make_init_data(bot_token="1:other"))

    def test_missing_hash_is_rejected(self, verifier):
        with pytest.raises(InvalidSignature):
            verifier.verify("auth_date=1700000000&user=%7B%7D")

    def test_demo_sentinel_requires_flag(self, verifier):
        with pytest.raises(InvalidSignature):
            verifier.verify("demo")

    @pytest.mark.parametrize("init_data", ["", "demo", None])
    def test_demo_identity_when_enabled(self, init_data):
        verifier = LaunchDataVerifier(BOT_TOKEN, allow_demo_identity=True)

        identity = extract_identity(verifier.verify(init_data))

        assert identity.id == DEMO_IDENTITY["id"]
        assert identity.username == "demo_user"

    def test_bad_hash_never_falls_back_to_demo(self):
        verifier = LaunchDataVerifier(BOT_TOKEN, allow_demo_identity=True)

        with pytest.raises(InvalidSignature):
            verifier.verify(make_init_data(bot_token="1:other"))


class TestExtractIdentity:

    def test_optional_fields(self):
        identity = extract_identity({"user": json.dumps({"id": 7, "first_name": "Anna"})})

        assert identity.id == 7
        assert identity.first_name == "Anna"
        assert identity.username is None
        assert identity.photo_url is None

    @pytest.mark.parametrize("raw", [None, "", "not json", json.dumps({"first_name": "No id"})])
    def test_malformed_identity(self, raw):
        data = {} if raw is None else {"user": raw}

        with pytest.raises(ValidationError):
            extract_identity(data)
