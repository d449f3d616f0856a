"""Argon2id hashing: round trip, salting and tolerance of malformed input."""

import pytest

from utils.password_hasher import PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(memory_cost=8192, time_cost=1, parallelism=1)


@pytest.mark.parametrize("password", ["correct-horse", "ünïcødé pässwörd", "a" * 200, " "])
def test_verify_accepts_own_hash(hasher, password):
    assert hasher.verify(password, hasher.hash(password)) is True


def test_verify_rejects_other_password(hasher):
    stored = hasher.hash("first-password")
    assert hasher.verify("second-password", stored) is False


def test_hash_is_salted_and_self_describing(hasher):
    h1 = hasher.hash("same-password")
    h2 = hasher.hash("same-password")
    assert h1 != h2
    assert h1.startswith("$argon2id$")
    assert "m=8192,t=1,p=1" in h1


def test_default_cost_parameters():
    stored = PasswordHasher().hash("pw")
    assert "m=65536,t=3,p=1" in stored


@pytest.mark.parametrize("stored", ["", "not-a-hash", "$argon2id$v=19$garbage", None, 42])
def test_verify_malformed_hash_returns_false(hasher, stored):
    assert hasher.verify("anything", stored) is False


def test_verify_non_string_password_returns_false(hasher):
    assert hasher.verify(None, hasher.hash("pw")) is False
