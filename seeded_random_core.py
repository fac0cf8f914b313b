"""
Seeded Random Core - Functional Core

Deterministic pseudo-random decisions for procedural effects.

Every "random" value in the edit comes from float01(seed): a stable hash of an
explicit seed string. There is no generator state, so the same seed returns the
same value regardless of call order, process, or run.

Seed strings are built from (effect name, phase index, artifact index) so that
unrelated decisions inside one phase never share a seed.
"""

import hashlib
from typing import Sequence, TypeVar


T = TypeVar("T")

# 53 bits: every value is an exact double strictly below 1.0
_HASH_BITS = 53
_HASH_SCALE = float(2 ** _HASH_BITS)


# ============================================================================
# Hashing
# ============================================================================

def float01(seed: str) -> float:
    """Map a seed string to a float in [0, 1)

    Args:
        seed: Arbitrary seed string

    Returns:
        Deterministic float in [0, 1)

    Examples:
        >>> float01("glitch-3") == float01("glitch-3")
        True
        >>> 0.0 <= float01("line1") < 1.0
        True
    """
    digest = hashlib.sha1(str(seed).encode("utf-8")).digest()
    return (int.from_bytes(digest[:8], "big") >> (64 - _HASH_BITS)) / _HASH_SCALE


def numpy_seed(seed: str) -> int:
    """Derive a 32-bit integer seed for numpy.random.default_rng"""
    digest = hashlib.sha1(str(seed).encode("utf-8")).digest()
    return int.from_bytes(digest[8:12], "big")


def seed_key(*parts: object) -> str:
    """Build a seed string from its parts

    Examples:
        >>> seed_key("disp-x", 12, 3)
        'disp-x-12-3'
    """
    return "-".join(str(part) for part in parts)


# ============================================================================
# Phase Decisions
# ============================================================================

def phase_index(frame: int, phase_length: int) -> int:
    """Bucket a frame into fixed-size phases

    Args:
        frame: Local frame number
        phase_length: Frames per phase (>= 1)

    Returns:
        Phase number (floor division)
    """
    if phase_length < 1:
        raise ValueError(f"phase_length must be >= 1, got {phase_length}")
    return frame // phase_length


def phase_active(effect: str, phase: int, threshold: float) -> bool:
    """Decide whether an effect fires during a phase

    Returns:
        True if float01("<effect>-<phase>") exceeds the threshold
    """
    return float01(seed_key(effect, phase)) > threshold


def signed_offset(seed: str, max_displacement: float) -> float:
    """Symmetric offset in [-max/2, max/2) derived from a seed"""
    return (float01(seed) - 0.5) * max_displacement


def scaled(seed: str, low: float, high: float) -> float:
    """Seeded value in [low, high)"""
    return low + float01(seed) * (high - low)


def choice(seed: str, options: Sequence[T]) -> T:
    """Seeded pick from a non-empty sequence"""
    if not options:
        raise ValueError("choice() needs at least one option")
    index = min(int(float01(seed) * len(options)), len(options) - 1)
    return options[index]
