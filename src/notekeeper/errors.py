"""Application error taxonomy.

Learn: Services raise these instead of HTTPException so they stay usable
outside a request (CLI, tests, background jobs). main.py registers one
exception handler for the base class that turns any of them into
``{"detail": message}`` with the class's status code.

The message is always safe to show a client. Anything diagnostic goes
to the log, never into the message.
"""


class NotekeeperError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NotekeeperError):
    """Malformed input, reported as a field-level message."""

    status_code = 400
    default_message = "Invalid request"


class Conflict(NotekeeperError):
    """A unique resource already exists (duplicate email)."""

    status_code = 400
    default_message = "User already exists with this email"


class Unauthenticated(NotekeeperError):
    """Missing/invalid credentials or token.

    Callers must not be able to tell "no such account" from "wrong
    password" from "email not verified".
    """

    status_code = 401
    default_message = "Invalid credentials"


class InvalidToken(Exception):
    """Raised by the token service. Never reaches the client directly."""


class InvalidOrExpiredOTP(NotekeeperError):
    status_code = 400
    default_message = "Invalid or expired OTP"


class InvalidAssertion(NotekeeperError):
    status_code = 401
    default_message = "Invalid identity provider token"


class IncompleteProfile(NotekeeperError):
    status_code = 400
    default_message = "Incomplete identity provider profile information"


class NotFound(NotekeeperError):
    status_code = 404
    default_message = "Not found"


class UpstreamFailure(NotekeeperError):
    """Email dispatch or the identity provider could not be reached."""

    status_code = 502
    default_message = "Upstream service unavailable"
