"""Notekeeper — note-taking API.

Email-verified accounts (signup + one-time code), Google sign-in,
stateless JWT sessions, and per-account notes behind an authorization
gate.
"""

__version__ = "0.1.0"
