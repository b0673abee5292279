# porteria/services/fee_calculator.py
"""
Parking fee computation.

Billing rule:
  minutes = ceil(elapsed seconds / 60), never less than 1 (no free parking)
  minutes < 60  → minutes × rate per minute
  minutes ≥ 60  → whole hours × rate per hour + leftover minutes × rate per minute
The amount is rounded half-up to a whole currency unit.

Used both for the quote shown before payment and for the payment-time check,
so both call sites always agree on the algorithm.
"""

import math
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FeeQuote:
    minutes: int
    amount: int


def billable_minutes(entry: datetime, now: datetime) -> int:
    elapsed = (now - entry).total_seconds()
    return max(1, math.ceil(elapsed / 60))


def fee_for_minutes(minutes: int, rate_per_minute: float, rate_per_hour: float) -> int:
    if minutes < 60:
        total = minutes * rate_per_minute
    else:
        hours, leftover = divmod(minutes, 60)
        total = hours * rate_per_hour + leftover * rate_per_minute
    return int(math.floor(total + 0.5))


def calculate_fee(entry: datetime, now: datetime, rate_per_minute: float, rate_per_hour: float) -> FeeQuote:
    minutes = billable_minutes(entry, now)
    return FeeQuote(minutes=minutes, amount=fee_for_minutes(minutes, rate_per_minute, rate_per_hour))
