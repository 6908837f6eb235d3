"""Authentication and authorization.

Learn: Email/password accounts are verified with a one-time code sent by
email before they can log in. Google sign-in accounts are verified by
the provider. Either path ends in a stateless JWT session token, which
the authorization gate (dependencies.get_current_account) checks on
every protected request.
"""
