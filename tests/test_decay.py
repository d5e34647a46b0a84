"""Tests for decay arithmetic and backward production scheduling."""
import math
from datetime import datetime, timedelta, timezone

import pytest

from radiopharm.orders import decay

F18_HALF_LIFE = 109.8
DELIVERY = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


class TestDecay:
    """Tests for A(t) = A0 * exp(-lambda * t)."""

    def test_decay_constant(self):
        assert decay.decay_constant(F18_HALF_LIFE) == pytest.approx(0.0063128, rel=1e-4)

    def test_non_positive_half_life_rejected(self):
        with pytest.raises(ValueError):
            decay.decay_constant(0)

    def test_one_half_life_halves(self):
        assert decay.decayed_activity(100, F18_HALF_LIFE, F18_HALF_LIFE) == pytest.approx(50)

    def test_two_hours_of_f18(self):
        assert decay.decayed_activity(100, F18_HALF_LIFE, 120) == pytest.approx(46.88, abs=0.01)

    def test_required_initial_inverts_decay(self):
        assert decay.required_initial_activity(50, F18_HALF_LIFE, F18_HALF_LIFE) == pytest.approx(100)

    def test_zero_elapsed_is_identity(self):
        assert decay.decayed_activity(42, F18_HALF_LIFE, 0) == 42

    def test_activity_at_time_before_calibration_is_higher(self):
        """Going back in time increases activity."""
        earlier = DELIVERY - timedelta(minutes=F18_HALF_LIFE)
        assert decay.activity_at_time(50, DELIVERY, earlier, F18_HALF_LIFE) == pytest.approx(100)

    def test_elapsed_minutes(self):
        assert decay.elapsed_minutes(DELIVERY, DELIVERY + timedelta(hours=2, seconds=30)) == 120.5


class TestShelfLife:
    def test_inside(self):
        assert decay.is_within_shelf_life(DELIVERY - timedelta(minutes=165), DELIVERY, 600)

    def test_boundary_is_inside(self):
        assert decay.is_within_shelf_life(DELIVERY - timedelta(minutes=600), DELIVERY, 600)

    def test_past_shelf_life(self):
        assert not decay.is_within_shelf_life(DELIVERY - timedelta(minutes=601), DELIVERY, 600)

    def test_target_before_production(self):
        assert not decay.is_within_shelf_life(DELIVERY, DELIVERY - timedelta(minutes=1), 600)


class TestBackwardSchedule:
    """Tests for working back from delivery to synthesis start."""

    def test_schedule(self):
        schedule = decay.backward_schedule(DELIVERY, 60, 15, 30, 60)
        assert schedule.dispatch_time == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert schedule.packaging_start_time == datetime(2026, 3, 1, 8, 45, tzinfo=timezone.utc)
        assert schedule.qc_start_time == datetime(2026, 3, 1, 8, 15, tzinfo=timezone.utc)
        assert schedule.synthesis_start_time == datetime(2026, 3, 1, 7, 15, tzinfo=timezone.utc)

    def test_schedule_is_frozen(self):
        schedule = decay.backward_schedule(DELIVERY, 0, 0, 0, 0)
        with pytest.raises(AttributeError):
            schedule.dispatch_time = DELIVERY

    def test_production_activity_with_overage(self):
        """10 mCi at 10:00 from a 07:15 synthesis, plus 10 % overage."""
        production = DELIVERY - timedelta(minutes=165)
        result = decay.production_activity_with_overage(10, F18_HALF_LIFE, DELIVERY, production, 10)
        assert result == pytest.approx(10 * math.pow(2, 165 / F18_HALF_LIFE) * 1.1)

    def test_no_overage(self):
        result = decay.production_activity_with_overage(10, F18_HALF_LIFE, DELIVERY, DELIVERY, 0)
        assert result == pytest.approx(10)
