"""Random sources used to draw a winning entry index.

The state machine only needs ``randbelow(n)``. Keeping the draw behind this
interface lets deployments swap the default CSPRNG for a reproducible source
(tests, replays) or for a provably fair one whose draws can be audited later.
None of these sources stops an operator from choosing *when* to draw.
"""

from __future__ import annotations

import hashlib
import random
import secrets
from dataclasses import asdict, dataclass
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Anything that can return a uniform integer in ``[0, n)``."""

    def randbelow(self, n: int) -> int: ...


def _check_bound(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError("upper bound must be an integer")
    if n <= 0:
        raise ValueError("upper bound must be positive")


class SystemRandomSource:
    """Operating-system CSPRNG via :mod:`secrets`. This is the default."""

    def randbelow(self, n: int) -> int:
        _check_bound(n)
        return secrets.randbelow(n)


class SeededRandomSource:
    """Reproducible draws from a seeded :class:`random.Random`.

    Not suitable for real raffles: anyone who knows the seed knows every draw.
    """

    def __init__(self, seed: Any = None) -> None:
        self._rng = random.Random(seed)

    def randbelow(self, n: int) -> int:
        _check_bound(n)
        return self._rng.randrange(n)


@dataclass(frozen=True)
class DrawProof:
    """Everything needed to recompute a provably fair draw.

    Attributes
    ----------
    server_seed : str
        Hex seed generated for this draw. Publish it only after the draw.
    client_seed : str
        Caller-supplied seed mixed into every hash.
    nonce : int
        Draw counter of the issuing source.
    rounds : int
        Number of hashes computed; more than one means earlier digests were
        rejected to keep the result unbiased.
    proof_hash : str
        Hex digest of the accepted round.
    upper_bound : int
        ``n`` passed to ``randbelow``.
    result : int
        The value returned to the caller.
    """

    server_seed: str
    client_seed: str
    nonce: int
    rounds: int
    proof_hash: str
    upper_bound: int
    result: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DrawProof":
        return cls(**data)


_DIGEST_SPACE = 1 << 256


def _round_digest(server_seed: str, client_seed: str, nonce: int, round_: int) -> str:
    payload = f"{server_seed}:{client_seed}:{nonce}:{round_}"
    return hashlib.sha256(payload.encode()).hexdigest()


def _accept_limit(n: int) -> int:
    # Largest multiple of n that fits in the digest space.
    return (_DIGEST_SPACE // n) * n


class ProvablyFairRandomSource:
    """SHA-256 commit/reveal draws with rejection sampling.

    Each call generates a fresh server seed and hashes
    ``"{server_seed}:{client_seed}:{nonce}:{round}"``. The digest is read as a
    256-bit integer; digests at or above the largest multiple of ``n`` are
    rejected and the next round is hashed, so every result in ``[0, n)`` is
    equally likely. The proof of the latest draw is kept on
    :attr:`last_proof` and can be checked with :func:`verify_proof`.
    """

    def __init__(self, client_seed: str, *, nonce: int = 0) -> None:
        if not client_seed:
            raise ValueError("client_seed must not be empty")
        self.client_seed = client_seed
        self.nonce = nonce
        self.last_proof: Optional[DrawProof] = None
        self._previous_proof: Optional[DrawProof] = None

    def _server_seed(self) -> str:
        return secrets.token_hex(32)

    def randbelow(self, n: int) -> int:
        _check_bound(n)
        server_seed = self._server_seed()
        nonce = self.nonce
        limit = _accept_limit(n)

        round_ = 0
        while True:
            digest = _round_digest(server_seed, self.client_seed, nonce, round_)
            value = int(digest, 16)
            round_ += 1
            if value < limit:
                break

        result = value % n
        self.nonce += 1
        self._previous_proof = self.last_proof
        self.last_proof = DrawProof(
            server_seed=server_seed,
            client_seed=self.client_seed,
            nonce=nonce,
            rounds=round_,
            proof_hash=digest,
            upper_bound=n,
            result=result,
        )
        return result

    def discard_last(self) -> None:
        """Forget the latest draw after the caller abandoned it.

        The nonce steps back so the next draw reuses it, and
        :attr:`last_proof` returns to the proof before the discarded draw.
        """
        if self.last_proof is None:
            return
        self.nonce = self.last_proof.nonce
        self.last_proof = self._previous_proof
        self._previous_proof = None


def verify_proof(proof: DrawProof) -> bool:
    """Recompute ``proof`` and return whether every field is consistent."""
    if proof.upper_bound <= 0 or proof.rounds <= 0:
        return False
    limit = _accept_limit(proof.upper_bound)
    for round_ in range(proof.rounds):
        digest = _round_digest(
            proof.server_seed, proof.client_seed, proof.nonce, round_
        )
        value = int(digest, 16)
        accepted = value < limit
        last = round_ == proof.rounds - 1
        if accepted != last:
            return False
    return digest == proof.proof_hash and value % proof.upper_bound == proof.result


__all__ = [
    "RandomSource",
    "SystemRandomSource",
    "SeededRandomSource",
    "ProvablyFairRandomSource",
    "DrawProof",
    "verify_proof",
]
