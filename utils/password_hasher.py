"""
Argon2id password hashing via argon2-cffi.

The encoded hash carries algorithm, parameters and salt, so verify() needs
nothing but the stored string.
"""
from __future__ import annotations

from argon2 import PasswordHasher as Argon2Hasher, Type
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """Memory-hard password hashing with configurable cost.

    Defaults: 64 MiB memory, 3 iterations, parallelism 1.
    """

    def __init__(self, memory_cost: int = 65536, time_cost: int = 3, parallelism: int = 1):
        self._ph = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2id"""
        return self._ph.hash(password)

    def verify(self, password: str, stored_hash: str) -> bool:
        """Verify a plaintext password against a stored hash.

        Never raises: a mismatch, a malformed hash or a non-string input all
        return False.
        """
        if not isinstance(password, str) or not isinstance(stored_hash, str) or not stored_hash:
            return False
        try:
            return self._ph.verify(stored_hash, password)
        except (VerificationError, InvalidHashError):
            return False
