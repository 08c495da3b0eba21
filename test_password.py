import re

from flashstudy.password import compare_passwords, hash_password


def test_hash_is_deterministic():
    assert hash_password("secret1") == hash_password("secret1")


def test_compare_accepts_own_digest():
    for password in ["secret1", "demo123", "", "pässwörd", "emoji 🙂 pass", "x" * 200]:
        assert compare_passwords(password, hash_password(password))


def test_compare_rejects_other_password():
    assert not compare_passwords("wrong", hash_password("secret1"))


def test_digest_is_base36():
    for password in ["secret1", "demo123", "a", "another longer password"]:
        assert re.fullmatch(r"-?[0-9a-z]+", hash_password(password))


def test_digest_fits_32_bits():
    for password in ["secret1", "zzzzzzzzzzzzzzzzzzzzzzzzzzzzzz"]:
        value = int(hash_password(password), 36)
        assert -2 ** 31 <= value < 2 ** 31
