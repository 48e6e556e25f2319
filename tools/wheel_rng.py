"""
FORTUNEWHEEL — Provably Fair Random Source

Server-seed + client-seed + nonce draws, usable anywhere the wheel takes a
``random_source`` (a zero-argument callable returning floats in [0, 1)).

Architecture:
    Server generates server_seed_hash = SHA-256(server_seed) and shares it.
    Client provides client_seed (or it's auto-generated).
    Each draw:
        combined = HMAC-SHA256(server_seed, client_seed + ":" + nonce)
        value    = int(combined[:8], 16) / 2^32
    After the session, server_seed is revealed so every draw can be re-derived.

Usage:
    from tools.wheel_rng import ProvablyFairRNG, SessionRandom
    rng = ProvablyFairRNG()
    session = rng.new_session()
    engine = SpinEngine(random_source=SessionRandom(session))
    ...
    audit = rng.session_audit_log(session)
"""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import random
import time
from dataclasses import dataclass, field


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SpinSession:
    """A provably fair draw session."""
    session_id: str
    server_seed: str          # Secret until session ends
    server_seed_hash: str     # SHA-256 of server_seed (shared upfront)
    client_seed: str          # Player-provided or auto-generated
    nonce: int = 0            # Increments per draw
    created_at: float = 0
    draws: list = field(default_factory=list)

    def __post_init__(self):
        if not self.created_at:
            self.created_at = time.time()

    def public_view(self) -> dict:
        """What the player may see before the seed is revealed."""
        return {
            "session_id": self.session_id,
            "server_seed_hash": self.server_seed_hash,
            "client_seed": self.client_seed,
            "nonce": self.nonce,
        }


@dataclass
class Draw:
    """One value drawn from a session, with what is needed to verify it."""
    session_id: str
    nonce: int
    combined_hash: str
    value: float
    timestamp: float = 0

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.time()

    def verification_data(self) -> dict:
        return {
            "session_id": self.session_id,
            "nonce": self.nonce,
            "combined_hash": self.combined_hash,
            "value": self.value,
        }


# ═══════════════════════════════════════════════════════════════
# Core RNG
# ═══════════════════════════════════════════════════════════════

class ProvablyFairRNG:
    """HMAC-SHA256 draws that a player can re-derive once the seed is revealed."""

    def new_session(self, client_seed: str = None) -> SpinSession:
        server_seed = os.urandom(32).hex()
        server_seed_hash = hashlib.sha256(server_seed.encode()).hexdigest()
        session_id = hashlib.sha256(
            f"{server_seed}:{time.time()}".encode()
        ).hexdigest()[:16]

        if client_seed is None:
            client_seed = os.urandom(16).hex()

        return SpinSession(
            session_id=session_id,
            server_seed=server_seed,
            server_seed_hash=server_seed_hash,
            client_seed=client_seed,
        )

    @staticmethod
    def derive_hash(server_seed: str, client_seed: str, nonce: int) -> str:
        return hmac.new(
            server_seed.encode(),
            f"{client_seed}:{nonce}".encode(),
            hashlib.sha256,
        ).hexdigest()

    @staticmethod
    def hash_to_float(hex_hash: str, offset: int = 0) -> float:
        """8 hex characters → float in [0, 1)."""
        return int(hex_hash[offset:offset + 8], 16) / 0x100000000  # 2^32

    def next_float(self, session: SpinSession) -> float:
        """Draw the next value and advance the session nonce."""
        nonce = session.nonce
        session.nonce += 1
        combined = self.derive_hash(session.server_seed, session.client_seed, nonce)
        value = self.hash_to_float(combined)
        session.draws.append(Draw(
            session_id=session.session_id,
            nonce=nonce,
            combined_hash=combined,
            value=value,
        ))
        return value

    # ── Verification ──────────────────────────────────────────

    @classmethod
    def verify_draw(cls, server_seed: str, client_seed: str,
                    nonce: int, expected_hash: str) -> bool:
        """Recompute a draw's hash after the server seed is revealed."""
        computed = cls.derive_hash(server_seed, client_seed, nonce)
        return hmac.compare_digest(computed, expected_hash)

    @staticmethod
    def verify_server_seed(server_seed: str, expected_hash: str) -> bool:
        computed = hashlib.sha256(server_seed.encode()).hexdigest()
        return hmac.compare_digest(computed, expected_hash)

    def session_audit_log(self, session: SpinSession, reveal: bool = False) -> dict:
        log = {
            **session.public_view(),
            "total_draws": len(session.draws),
            "created_at": session.created_at,
            "draws": [d.verification_data() for d in session.draws],
            "verification_instructions": {
                "step_1": "Verify: SHA-256(server_seed) == server_seed_hash",
                "step_2": "For each draw: HMAC-SHA256(server_seed, client_seed:nonce) == combined_hash",
                "step_3": "value = int(combined_hash[:8], 16) / 2^32",
            },
        }
        if reveal:
            log["server_seed"] = session.server_seed
        return log

    def to_audit_json(self, session: SpinSession, reveal: bool = False) -> str:
        return json.dumps(self.session_audit_log(session, reveal=reveal), indent=2)


class SessionRandom:
    """Adapts a SpinSession into the wheel's ``random_source`` callable."""

    def __init__(self, session: SpinSession, rng: ProvablyFairRNG = None):
        self.session = session
        self.rng = rng or ProvablyFairRNG()

    def __call__(self) -> float:
        return self.rng.next_float(self.session)


def seeded_source(seed: int):
    """Deterministic uniform [0, 1) source for tests and reproducible runs."""
    return random.Random(seed).random
