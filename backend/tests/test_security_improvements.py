"""
Tests for password policy, password hashing and session token helpers
"""

import pytest

from booking_ledger.core.security import (
    PasswordHasher,
    PasswordValidator,
    digest_session_token,
    generate_session_token,
    validate_password_strength,
)


def test_password_validation():
    """Test the signup password policy"""
    print("\n=== Testing Password Validation ===")

    result = validate_password_strength("Aa1!aa")
    print(f"Minimal valid password result: {result}")
    assert result["is_valid"]
    assert result["errors"] == []

    result = validate_password_strength("Aa1!a")
    assert not result["is_valid"]
    assert any("at least 6" in e for e in result["errors"])


@pytest.mark.parametrize("password, broken_rule", [
    ("AAAA1!", "lowercase"),
    ("aaaa1!", "uppercase"),
    ("Aaaaa!", "number"),
    ("Aaaaa1", "special character"),
    ("Aa1!aa#", "may only contain"),
    ("Aa1! aa", "may only contain"),
    ("Aa1!aa\n", "may only contain"),
])
def test_password_rules(password, broken_rule):
    """Each rule is reported on its own"""
    result = PasswordValidator.validate_password(password)
    assert not result["is_valid"]
    assert any(broken_rule in e for e in result["errors"]), result["errors"]


def test_every_special_character_is_accepted():
    for symbol in "@$!%*?&":
        assert validate_password_strength(f"Aa1{symbol}aa")["is_valid"], symbol


def test_empty_password_reports_every_rule():
    result = validate_password_strength("")
    assert not result["is_valid"]
    assert len(result["errors"]) == 5


def test_password_hasher_round_trip():
    """Hashes are one-way and verify only the original secret"""
    hasher = PasswordHasher()
    hashed = hasher.hash("Aa1!aa")

    assert hashed != "Aa1!aa"
    assert hasher.verify("Aa1!aa", hashed)
    assert not hasher.verify("Aa1!ab", hashed)


def test_password_hasher_rejects_unknown_hash_format():
    hasher = PasswordHasher(["pbkdf2_sha256"])
    assert not hasher.verify("Aa1!aa", "Aa1!aa")


def test_session_tokens():
    """Tokens are random and only their digest is stored"""
    print("\n=== Testing Session Tokens ===")

    first = generate_session_token()
    second = generate_session_token()
    assert first != second
    assert len(first) >= 40

    digest = digest_session_token(first)
    assert digest == digest_session_token(first)
    assert digest != first
    assert len(digest) == 64
