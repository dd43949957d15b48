"""Tests for session credential creation and verification."""
from datetime import datetime, timedelta, timezone

from album_api.config import Settings
from album_api.services.image import parse_tags
from album_api.utils.security import SESSION_TTL, create_access_token, decode_access_token

SETTINGS = Settings(jwt_secret_key="unit-test-secret", log_dir="")


class TestAccessToken:
    def test_round_trip_claims(self):
        token, expires_at = create_access_token(7, "user@gmail.com", SETTINGS)
        payload = decode_access_token(token, SETTINGS)

        assert payload is not None
        assert payload.id == 7
        assert payload.email == "user@gmail.com"
        assert payload.role == "user"
        assert abs((payload.exp - expires_at).total_seconds()) < 1

    def test_validity_is_24_hours(self):
        issued_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        _, expires_at = create_access_token(1, "user@gmail.com", SETTINGS, issued_at=issued_at)
        assert expires_at - issued_at == SESSION_TTL == timedelta(hours=24)

    def test_expired_token_is_rejected(self):
        issued_at = datetime.now(timezone.utc) - timedelta(hours=25)
        token, _ = create_access_token(1, "user@gmail.com", SETTINGS, issued_at=issued_at)
        assert decode_access_token(token, SETTINGS) is None

    def test_wrong_secret_is_rejected(self):
        token, _ = create_access_token(1, "user@gmail.com", SETTINGS)
        other = Settings(jwt_secret_key="another-secret", log_dir="")
        assert decode_access_token(token, other) is None

    def test_tampered_token_is_rejected(self):
        token, _ = create_access_token(1, "user@gmail.com", SETTINGS)
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        assert decode_access_token(tampered, SETTINGS) is None

    def test_garbage_is_rejected(self):
        assert decode_access_token("not-a-jwt", SETTINGS) is None


class TestParseTags:
    def test_split_and_trim(self):
        assert parse_tags(" beach, sunset ,,family ") == ["beach", "sunset", "family"]

    def test_empty(self):
        assert parse_tags(None) == []
        assert parse_tags("") == []
        assert parse_tags(" , ,") == []
