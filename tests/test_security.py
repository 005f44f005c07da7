import hashlib

import pytest

from onboarding.errors import CredentialError
from onboarding.security import (
    create_access_token,
    create_activation_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)


def test_bcrypt_hash_round_trip():
    hashed = get_password_hash("Temp1234")
    assert hashed.startswith("$2")
    assert verify_password("Temp1234", hashed)
    assert not verify_password("Temp12345", hashed)


def test_legacy_sha256_digest():
    digest = hashlib.sha256(b"Temp1234").hexdigest()
    assert verify_password("Temp1234", digest)
    assert not verify_password("temp1234", digest)


def test_unrecognized_hash_never_matches():
    assert not verify_password("Temp1234", "Temp1234")
    assert not verify_password("", "not-a-hash")


def test_activation_token_claims():
    payload = decode_token(create_activation_token("class-cs101", "alice@example.com", "CS101"), "activation")
    assert payload["sub"] == "alice@example.com"
    assert payload["cls"] == "class-cs101"
    assert payload["code"] == "CS101"


def test_access_and_refresh_tokens():
    assert decode_token(create_access_token("u1", "Player"), "access")["role"] == "Player"
    assert decode_token(create_refresh_token("u1"), "refresh")["sub"] == "u1"


def test_token_type_is_enforced():
    with pytest.raises(CredentialError):
        decode_token(create_refresh_token("u1"), "access")


def test_garbage_token():
    with pytest.raises(CredentialError):
        decode_token("not.a.token", "access")
