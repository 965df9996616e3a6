"""Unit tests for auth/tokens.py -- Authenticator login, issue and verify.

Covers:
- login round trip: registered credentials -> token -> verify -> identifier
- wrong password and unknown identifier fail identically
- expired, tampered, foreign-key and malformed tokens are rejected
- missing token is Unauthenticated, not Forbidden
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from jose import jwt

from auth.tokens import Authenticator
from core.errors import Forbidden, InvalidCredentials, TokenExpired, Unauthenticated


class TestLogin:
    def test_login_then_verify_round_trip(self, store, authenticator):
        store.register("alice@example.com", "pw123")
        issued = authenticator.login("alice@example.com", "pw123")
        assert issued.identifier == "alice@example.com"
        assert issued.expires_in == 3600
        claims = authenticator.verify(issued.token)
        assert claims.identifier == "alice@example.com"

    def test_wrong_password_and_unknown_identifier_are_indistinguishable(self, store, authenticator):
        store.register("alice@example.com", "pw123")
        with pytest.raises(InvalidCredentials) as wrong_secret:
            authenticator.login("alice@example.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown:
            authenticator.login("ghost@example.com", "pw123")
        assert type(wrong_secret.value) is type(unknown.value)
        assert wrong_secret.value.to_dict() == unknown.value.to_dict()

    def test_unknown_identifier_still_runs_bcrypt(self, authenticator):
        """Timing equalization: bcrypt must run even when the user does not exist."""
        with patch("auth.tokens.verify_password", return_value=False) as mock_verify:
            with pytest.raises(InvalidCredentials):
                authenticator.login("ghost@example.com", "pw")
        mock_verify.assert_called_once()

    def test_login_is_case_sensitive(self, store, authenticator):
        store.register("alice@example.com", "pw123")
        with pytest.raises(InvalidCredentials):
            authenticator.login("Alice@example.com", "pw123")


class TestVerify:
    def test_expiry_is_one_window_after_issue(self, authenticator):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        issued = authenticator.issue("alice@example.com", now=now)
        assert issued.expires_at == now + timedelta(hours=1)

    def test_expired_token_rejected_with_expiry_error(self, authenticator):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        issued = authenticator.issue("alice@example.com", now=past)
        with pytest.raises(TokenExpired) as exc_info:
            authenticator.verify(issued.token)
        assert exc_info.value.code == "token_expired"
        assert exc_info.value.status_code == 403

    def test_token_signed_with_other_key_rejected(self, store, secret_key):
        other = Authenticator(store, "another-secret-key-that-is-32-chars-long", 3600)
        issued = other.issue("alice@example.com")
        with pytest.raises(Forbidden) as exc_info:
            Authenticator(store, secret_key, 3600).verify(issued.token)
        assert not isinstance(exc_info.value, TokenExpired)

    def test_tampered_token_rejected(self, authenticator):
        token = authenticator.issue("alice@example.com").token
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(Forbidden):
            authenticator.verify(tampered)

    def test_malformed_token_rejected(self, authenticator):
        with pytest.raises(Forbidden):
            authenticator.verify("not-a-jwt")

    def test_token_without_subject_rejected(self, authenticator, secret_key):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = jwt.encode({"exp": exp}, secret_key, algorithm="HS256")
        with pytest.raises(Forbidden):
            authenticator.verify(token)

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_is_unauthenticated(self, authenticator, token):
        with pytest.raises(Unauthenticated):
            authenticator.verify(token)

    def test_non_positive_window_rejected(self, store, secret_key):
        with pytest.raises(ValueError):
            Authenticator(store, secret_key, 0)
