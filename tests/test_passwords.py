from postgate.auth.passwords import hash_password, verify_password

import pytest


def test_hash_is_salted_and_verifies():
    h1 = hash_password("secret1")
    h2 = hash_password("secret1")
    assert h1 != h2
    assert "secret1" not in h1
    assert verify_password(h1, "secret1")
    assert verify_password(h2, "secret1")


def test_wrong_password_does_not_verify():
    h = hash_password("secret1")
    assert not verify_password(h, "secret2")
    assert not verify_password(h, "")


@pytest.mark.parametrize("digest", ["", "not-a-hash", "$argon2id$v=19$garbage"])
def test_malformed_digest_returns_false(digest):
    assert verify_password(digest, "secret1") is False


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")
