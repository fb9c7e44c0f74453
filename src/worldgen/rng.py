"""Deterministic seed derivation from string seeds."""

import hashlib

import numpy as np

SEED_NAMESPACE = "worldgen-v1"


def derive_seed(seed: str, key: str, namespace: str = SEED_NAMESPACE) -> int:
    """Derive a deterministic 64-bit child seed for one generation stage.

    Each stage draws from its own child seed so that enabling or tuning one
    stage never shifts the random stream of another.

    Args:
        seed: User-facing world seed.
        key: Stage label, e.g. "noise" or "ridges".
        namespace: Version tag mixed into the hash.

    Returns:
        Unsigned 64-bit integer seed.
    """
    if not key:
        raise ValueError("seed key must be non-empty")
    payload = f"{namespace}:{seed}:{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8, person=b"worldgen").digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


def make_rng(seed: str, key: str) -> np.random.Generator:
    """Create a numpy Generator for one generation stage."""
    return np.random.Generator(np.random.PCG64(derive_seed(seed, key)))
