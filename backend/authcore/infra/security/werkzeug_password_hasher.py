from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.services._shared.ports import PasswordHasher


@dataclass(slots=True)
class WerkzeugPasswordHasher(PasswordHasher):
    """
    PBKDF2-SHA256 hashing through ``werkzeug.security``.

    ``cost`` is the PBKDF2 iteration count; it is encoded in every digest,
    so raising it later keeps older hashes verifiable.

    :param default_cost: Iterations used when ``hash`` gets no explicit cost.
    """

    default_cost: int = 600_000

    def hash(self, plaintext: str, cost: int | None = None) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        iterations = int(cost or self.default_cost)
        return generate_password_hash(plaintext, method=f"pbkdf2:sha256:{iterations}")

    def verify(self, plaintext: str, digest: str) -> bool:
        if not digest or not plaintext:
            return False
        # ``check_password_hash`` is not typed and returns ``Any``; coerce to bool for mypy.
        return bool(check_password_hash(digest, plaintext))
