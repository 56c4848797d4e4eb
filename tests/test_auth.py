"""Tests for secureserve/auth.py - Basic auth gate."""

import base64
from pathlib import Path

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from secureserve.auth import (
    AuthError,
    challenge_header,
    is_valid_realm,
    parse_basic_auth,
    validate_basic_auth,
)
from secureserve.password import Credential


def _basic(user: str, password: str) -> str:
    """Helper: build a Basic Authorization header value."""
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return f"Basic {token}"


class TestAuthError:
    """Tests for AuthError."""

    def test_auth_error_fields(self):
        """AuthError has correct fields and defaults to 401."""
        error = AuthError(code="E300", message="Auth required")
        assert error.code == "E300"
        assert error.message == "Auth required"
        assert error.http_status == 401
        assert str(error) == "E300: Auth required"


class TestChallengeHeader:
    """Tests for challenge_header."""

    def test_default_realm(self):
        assert challenge_header() == 'Basic realm="Restricted"'

    def test_custom_realm(self):
        assert challenge_header("Files") == 'Basic realm="Files"'


class TestParseBasicAuth:
    """Tests for parse_basic_auth."""

    def test_valid_header(self):
        """Extracts username and password."""
        assert parse_basic_auth(_basic("user", "pw")) == ("user", "pw")

    def test_password_may_contain_colon(self):
        """Only the first colon separates username from password."""
        assert parse_basic_auth(_basic("user", "a:b:c")) == ("user", "a:b:c")

    def test_scheme_is_case_insensitive(self):
        header = _basic("user", "pw").replace("Basic", "basic")
        assert parse_basic_auth(header) == ("user", "pw")

    def test_empty_password(self):
        assert parse_basic_auth(_basic("user", "")) == ("user", "")

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        """Missing header raises E300."""
        with pytest.raises(AuthError) as exc_info:
            parse_basic_auth(header)
        assert exc_info.value.code == "E300"
        assert exc_info.value.message == "Authorization required"

    @pytest.mark.parametrize("header", [
        "Bearer my-secret-token",
        "Basic",
        "Basic !!!not-base64!!!",
        "Basic " + base64.b64encode(b"no-colon-here").decode(),
        "Basic " + base64.b64encode(b"\xff\xfe:\xff").decode(),
    ])
    def test_malformed_header(self, header):
        """Malformed headers raise E300."""
        with pytest.raises(AuthError) as exc_info:
            parse_basic_auth(header)
        assert exc_info.value.code == "E300"
        assert exc_info.value.http_status == 401


class TestValidateBasicAuth:
    """Tests for validate_basic_auth."""

    @pytest.fixture
    def cred(self):
        return Credential(password="applebananacherry")

    def test_valid_credentials(self, cred):
        """Matching username and password pass."""
        assert validate_basic_auth(_basic("user", "applebananacherry"), cred) is None

    def test_no_header(self, cred):
        """No header is rejected with E300."""
        error = validate_basic_auth(None, cred)
        assert error is not None
        assert error.code == "E300"
        assert error.http_status == 401

    def test_wrong_password(self, cred):
        """Correct username, wrong password is rejected with E301."""
        error = validate_basic_auth(_basic("user", "wrong"), cred)
        assert error is not None
        assert error.code == "E301"
        assert error.http_status == 401

    def test_wrong_username(self, cred):
        """Wrong username, correct password is rejected."""
        error = validate_basic_auth(_basic("admin", "applebananacherry"), cred)
        assert error is not None
        assert error.code == "E301"

    def test_empty_password(self, cred):
        """Empty password is rejected."""
        error = validate_basic_auth(_basic("user", ""), cred)
        assert error is not None
        assert error.code == "E301"

    def test_password_prefix(self, cred):
        """A prefix of the password is not enough."""
        error = validate_basic_auth(_basic("user", "applebanana"), cred)
        assert error is not None

    def test_non_ascii_password(self):
        """Non-ASCII credentials compare correctly."""
        cred = Credential(password="héllo")
        assert validate_basic_auth(_basic("user", "héllo"), cred) is None
        assert validate_basic_auth(_basic("user", "hello"), cred) is not None


class TestIsValidRealm:
    """Tests for is_valid_realm."""

    @pytest.mark.parametrize("realm", ["Restricted", "File Server", "", "a-b_c.d"])
    def test_valid(self, realm):
        assert is_valid_realm(realm) is True

    @pytest.mark.parametrize("realm", [
        "文件",
        "café",
        "line\r\nbreak",
        "new\nline",
        'say "hi"',
        "back\\slash",
        "\x7f",
        None,
    ])
    def test_invalid(self, realm):
        assert is_valid_realm(realm) is False
