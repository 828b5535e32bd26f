# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Tests for the leaky-bucket rate limiter.
"""

import pytest

from meshsim.mesh.ratelimit import LeakyBucket


class TestLeakyBucket:
    """Tests for admission and draining."""

    def test_starts_empty(self):
        assert LeakyBucket(100).level == 0

    def test_admits_within_capacity(self):
        bucket = LeakyBucket(100)

        assert bucket.admit(60) is True
        assert bucket.admit(40) is True
        assert bucket.level == 100

    def test_rejects_over_capacity_and_fills_bucket(self):
        bucket = LeakyBucket(100)
        bucket.admit(30)

        assert bucket.admit(80) is False
        assert bucket.level == 100

    def test_tick_drains_one_period(self):
        bucket = LeakyBucket(100, ticks_per_second=10)
        bucket.admit(50)

        bucket.tick()

        assert bucket.level == pytest.approx(40)

    def test_tick_clamps_at_zero(self):
        bucket = LeakyBucket(100, ticks_per_second=10)
        bucket.admit(5)

        bucket.tick()
        bucket.tick()

        assert bucket.level == 0

    def test_advance_applies_elapsed_ticks(self):
        bucket = LeakyBucket(100, ticks_per_second=10, time_unit=1000)
        bucket.admit(100)

        assert bucket.advance(250.0) == 2
        assert bucket.level == pytest.approx(80)

        # The partial period carries over to the next advance.
        assert bucket.advance(300.0) == 1
        assert bucket.level == pytest.approx(70)

    def test_advance_without_elapsed_period_is_a_no_op(self):
        bucket = LeakyBucket(100, ticks_per_second=10)
        bucket.admit(10)

        assert bucket.advance(50.0) == 0
        assert bucket.level == 10

    def test_rejection_recovers_after_draining(self):
        bucket = LeakyBucket(100, ticks_per_second=10)
        assert bucket.admit(200) is False

        bucket.advance(1000.0)

        assert bucket.level == 0
        assert bucket.admit(50) is True

    @pytest.mark.parametrize("capacity, ticks", [(0, 10), (-5, 10), (100, 0)])
    def test_invalid_arguments(self, capacity, ticks):
        with pytest.raises(ValueError):
            LeakyBucket(capacity, ticks)
