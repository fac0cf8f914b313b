"""
Unit tests for seeded_random_core.py - Functional Core
"""

import hashlib

import pytest

from seeded_random_core import (
    choice,
    float01,
    numpy_seed,
    phase_active,
    phase_index,
    scaled,
    seed_key,
    signed_offset,
)


class TestFloat01:
    """Stateless seeded floats"""

    def test_deterministic(self):
        assert float01("glitch-3") == float01("glitch-3")

    def test_in_unit_interval(self):
        for i in range(500):
            value = float01(f"slice-{i}-2")
            assert 0.0 <= value < 1.0

    def test_matches_sha1_prefix(self):
        digest = hashlib.sha1(b"line1").digest()
        expected = (int.from_bytes(digest[:8], "big") >> 11) / 2 ** 53
        assert float01("line1") == expected

    def test_largest_digest_stays_below_one(self, monkeypatch):
        class MaxDigest:
            def digest(self):
                return b"\xff" * 20

        monkeypatch.setattr("seeded_random_core.hashlib.sha1", lambda data: MaxDigest())
        assert float01("any") < 1.0

    def test_order_independent(self):
        seeds = [f"hue-{p}-{i}" for p in range(5) for i in range(8)]
        forward = [float01(s) for s in seeds]
        backward = [float01(s) for s in reversed(seeds)]
        assert forward == list(reversed(backward))

    def test_distinct_seeds_differ(self):
        assert float01("glitch-1") != float01("glitch-2")

    def test_roughly_uniform(self):
        values = [float01(f"u-{i}") for i in range(2000)]
        mean = sum(values) / len(values)
        assert 0.45 < mean < 0.55


class TestSeedHelpers:
    """Key building and phase decisions"""

    def test_seed_key(self):
        assert seed_key("disp-x", 12, 3) == "disp-x-12-3"
        assert seed_key("glitch", "i", 4) == "glitch-i-4"

    def test_phase_index(self):
        assert phase_index(0, 4) == 0
        assert phase_index(7, 4) == 1
        assert phase_index(8, 4) == 2

    def test_phase_index_rejects_zero_length(self):
        with pytest.raises(ValueError):
            phase_index(3, 0)

    def test_phase_active_uses_effect_phase_seed(self):
        assert phase_active("glitch", 5, 0.7) == (float01("glitch-5") > 0.7)

    def test_phase_active_threshold_extremes(self):
        assert phase_active("glitch", 5, -1.0) is True
        assert phase_active("glitch", 5, 1.0) is False

    def test_signed_offset_range(self):
        for i in range(200):
            offset = signed_offset(f"disp-x-0-{i}", 80.0)
            assert -40.0 <= offset < 40.0

    def test_scaled_range(self):
        value = scaled("w", 200.0, 800.0)
        assert 200.0 <= value < 800.0

    def test_choice(self):
        assert choice("c", "01!@#$%") in "01!@#$%"
        with pytest.raises(ValueError):
            choice("c", "")

    def test_numpy_seed_is_uint32(self):
        seed = numpy_seed("grain-intro-3")
        assert 0 <= seed < 2 ** 32
        assert seed == numpy_seed("grain-intro-3")
