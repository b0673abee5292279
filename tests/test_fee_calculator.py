# tests/test_fee_calculator.py
"""Unit tests for the parking fee rule."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from porteria.services.fee_calculator import billable_minutes, calculate_fee, fee_for_minutes

ENTRY = datetime(2026, 3, 2, 8, 0, 0)


class TestBillableMinutes:
    def test_zero_elapsed_bills_one_minute(self):
        assert billable_minutes(ENTRY, ENTRY) == 1

    def test_clock_skew_still_bills_one_minute(self):
        assert billable_minutes(ENTRY, ENTRY - timedelta(minutes=5)) == 1

    def test_partial_minute_rounds_up(self):
        assert billable_minutes(ENTRY, ENTRY + timedelta(seconds=59)) == 1
        assert billable_minutes(ENTRY, ENTRY + timedelta(seconds=61)) == 2

    def test_exact_minutes(self):
        assert billable_minutes(ENTRY, ENTRY + timedelta(minutes=90)) == 90


class TestFeeForMinutes:
    def test_under_an_hour_uses_minute_rate(self):
        assert fee_for_minutes(59, 100, 5000) == 5900

    def test_exactly_one_hour_uses_hour_rate(self):
        assert fee_for_minutes(60, 100, 5000) == 5000

    def test_hours_plus_leftover_minutes(self):
        assert fee_for_minutes(90, 100, 5000) == 8000
        assert fee_for_minutes(125, 50, 3000) == 6250

    def test_rounds_half_up(self):
        assert fee_for_minutes(1, 0.5, 0) == 1
        assert fee_for_minutes(1, 0.4, 0) == 0
        assert fee_for_minutes(3, 2.5, 0) == 8

    def test_amount_is_never_negative_with_valid_rates(self):
        for minutes in (1, 59, 60, 61, 600):
            assert fee_for_minutes(minutes, 0, 0) == 0


class TestCalculateFee:
    def test_ninety_minutes_liviano(self):
        quote = calculate_fee(ENTRY, ENTRY + timedelta(minutes=90), 100, 5000)
        assert quote.minutes == 90
        assert quote.amount == 8000

    def test_immediate_exit_is_not_free(self):
        quote = calculate_fee(ENTRY, ENTRY, 150, 7000)
        assert quote.minutes == 1
        assert quote.amount == 150
