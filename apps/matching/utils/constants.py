"""
Constants used across the matching system.
"""

import os

# Match identifiers: random bytes, hex encoded (48 characters)
MATCH_ID_BYTES = 24

# Optimistic capacity reservation: how many times the allocator re-reads and
# re-ranks candidates after losing a compare-and-swap race
MAX_ALLOCATION_ATTEMPTS = int(os.getenv("MAX_ALLOCATION_ATTEMPTS", "3"))

# Upper bound on participants in a single match request
MAX_PLAYERS_PER_MATCH = 200
