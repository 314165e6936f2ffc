"""Opaque identifier generation."""

import secrets

from matching.utils.constants import MATCH_ID_BYTES


def generate_match_id() -> str:
    """
    Generate a new match identifier.

    Uniqueness is enforced by the store's unique constraint on
    ``matches.match_id``; a collision surfaces as a duplicate-key failure.

    Returns:
        48-character lowercase hex string
    """
    return secrets.token_hex(MATCH_ID_BYTES)
