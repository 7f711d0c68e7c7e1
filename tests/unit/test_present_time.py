"""
Unit tests for the present-time offset model.
"""

from calendar_engine import CYCLE_MINUTES, CivilTime, date_to_minutes
from present_time import PresentTime, TimeDifference, fit_hardware_year
from rtc import RTCReading


class TestTimeDifference:
    """Tests for the signed narrative time difference."""

    def test_set_between_past(self):
        """Test a target in the past gives a subtracting difference."""
        diff = TimeDifference()
        diff.set_between(1000, 400)
        assert (diff.minutes, diff.up) == (600, False)
        assert diff.apply(1000) == 400

    def test_set_between_future(self):
        """Test a target in the future gives an adding difference."""
        diff = TimeDifference()
        diff.set_between(400, 1000)
        assert (diff.minutes, diff.up) == (600, True)
        assert diff.apply(400) == 1000

    def test_zero_is_falsy(self):
        """Test an empty difference is falsy and clear() empties it."""
        diff = TimeDifference(15, True)
        assert diff
        diff.clear()
        assert not diff

    def test_flip_for_rollover(self):
        """Test the rollover flip keeps the displayed time the same modulo the cycle."""
        diff = TimeDifference(100, False)
        before = diff.apply(CYCLE_MINUTES)          # "year 10000", minus 100 minutes
        diff.flip_for_rollover()
        assert (diff.minutes, diff.up) == (CYCLE_MINUTES - 100, True)
        assert diff.apply(0) == before

    def test_flip_keeps_zero(self):
        """Test a zero difference stays zero across a rollover."""
        diff = TimeDifference()
        diff.flip_for_rollover()
        assert diff.minutes == 0


    def test_unapply_undoes_apply(self):
        """Test real time is recovered from a shown time, across the wrap too."""
        for diff in (TimeDifference(90, True), TimeDifference(90, False)):
            assert diff.unapply(diff.apply(1000)) == 1000
            assert diff.unapply(diff.apply(CYCLE_MINUTES - 10)) == CYCLE_MINUTES - 10


class TestHardwareYear:
    """Tests for fitting logical years into the RTC range."""

    def test_in_range_unchanged(self):
        """Test years inside 2000..2050 need no offset."""
        assert fit_hardware_year(2023) == (2023, 0)
        assert fit_hardware_year(2050) == (2050, 0)

    def test_above_range(self):
        """Test later years step down in 28-year blocks."""
        hw, offs = fit_hardware_year(2060)
        assert (hw, offs) == (2032, 28)

    def test_below_range(self):
        """Test earlier years step up in 28-year blocks."""
        hw, offs = fit_hardware_year(1985)
        assert 2000 <= hw <= 2050
        assert hw + offs == 1985
        assert offs % 28 == 0


class TestPresentTime:
    """Tests for the displayed present time."""

    def test_logical_year(self):
        """Test logical year = hardware year + offset."""
        pt = PresentTime(year_offset=-28)
        assert pt.logical_year(RTCReading(2023, 1, 1, 0, 0)) == 1995

    def test_displayed_follows_difference(self):
        """Test the displayed time keeps a constant delta to real time."""
        pt = PresentTime()
        real = date_to_minutes(2023, 1, 1, 0, 0)
        pt.diff.set_between(real, date_to_minutes(1985, 10, 26, 1, 21))
        assert pt.displayed(RTCReading(2023, 1, 1, 0, 0)) == CivilTime(1985, 10, 26, 1, 21)
        assert pt.displayed(RTCReading(2023, 1, 1, 0, 10)) == CivilTime(1985, 10, 26, 1, 31)
