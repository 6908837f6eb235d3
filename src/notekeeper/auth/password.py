"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor is a constructor argument (settings.bcrypt_rounds,
12 by default, ~100ms per hash on modern hardware; tests use 4).
"""

import bcrypt


class PasswordHasher:
    """bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        # Used to equalise timing when there is no account to check against.
        self._dummy_hash = bcrypt.hashpw(
            b"notekeeper-dummy-password", bcrypt.gensalt(rounds=rounds)
        )

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt.

        Learn: bcrypt produces hashes starting with "$2b$" that embed the
        salt and cost. Passwords are truncated to 72 bytes (bcrypt's limit).
        """
        pw_bytes = password.encode("utf-8")[:72]
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Verify a password against its hash. Never raises."""
        if not password_hash:
            return False  # federated-only accounts have no password
        try:
            pw_bytes = password.encode("utf-8")[:72]
            return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def dummy_verify(self, password: str) -> bool:
        """Spend one bcrypt comparison and return False."""
        bcrypt.checkpw(password.encode("utf-8")[:72], self._dummy_hash)
        return False
