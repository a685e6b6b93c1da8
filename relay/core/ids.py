"""
Session token generation.
"""

import secrets

TOKEN_BYTES = 16


def new_session_token() -> str:
    """
    Generate an unguessable session token.

    Returns:
        32 lowercase hex characters (128 bits of randomness)
    """
    return secrets.token_hex(TOKEN_BYTES)


def short_token(token: str, length: int = 8) -> str:
    """Token prefix safe to put in logs."""
    return token[:length]
