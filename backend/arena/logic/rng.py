"""
Deterministic tie-break for equal-speed attackers and tied round caps.

No randomness is involved: the outcome is derived from the match id and
round number via SHA512 with a versioned domain separator, so any replay
of the same match reproduces the same ordering.
"""

import hashlib

TIEBREAK_VERSION = "arena-tiebreak-v1"
_DOMAIN_PREFIX = b"arena-tiebreak-v1:"


def tiebreak_digest(match_id: str, round_number: int) -> bytes:
    return hashlib.sha512(_DOMAIN_PREFIX + f"{match_id}:{round_number}".encode()).digest()


def first_slot(match_id: str, round_number: int) -> int:
    """Return the player slot (0 or 1) that acts first among equal speeds.

    Lowest bit of the first digest byte.
    """
    return tiebreak_digest(match_id, round_number)[0] & 1
