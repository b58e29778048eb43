"""HMAC-SHA256 action signatures binding a player to a wager or reveal action.

The upstream identity service is opaque to the engine; it only needs a
verifier that says yes or no for a (player, action payload, signature)
triple. The default verifier derives a per-player key from a shared
secret and signs the canonical JSON of the action payload.

Signature format: hex(hmac_sha256(key(secret, player), canonical_json(payload)))
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class SignatureVerifier(Protocol):
    def verify(self, player: str, payload: dict[str, Any], signature: str) -> bool: ...


def canonical_payload(payload: dict[str, Any]) -> bytes:
    """Sorted-key compact JSON, so both sides sign byte-identical input."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode()


def _player_key(secret: str, player: str) -> bytes:
    return hmac.new(secret.encode(), player.lower().encode(), hashlib.sha256).digest()


def sign_action(secret: str, player: str, payload: dict[str, Any]) -> str:
    """Sign an action payload for a player, returning a hex signature."""
    return hmac.new(_player_key(secret, player), canonical_payload(payload), hashlib.sha256).hexdigest()


class HmacSignatureVerifier:
    """Verify signatures produced by ``sign_action`` with the same secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Signature secret must not be empty")
        self._secret = secret

    def sign(self, player: str, payload: dict[str, Any]) -> str:
        return sign_action(self._secret, player, payload)

    def verify(self, player: str, payload: dict[str, Any], signature: str) -> bool:
        if not signature:
            return False
        expected = sign_action(self._secret, player, payload)
        if not hmac.compare_digest(expected.encode(), signature.lower().encode()):
            logger.info("signature rejected", player=player, action=payload.get("action"))
            return False
        return True


def action_payload(match_id: str, action: str, **fields: Any) -> dict[str, Any]:
    """Build the payload a player signs for one action."""
    return {"match_id": match_id, "action": action, **fields}
