# porteria/utils/clock.py
"""
Wall clock for the station. Entry/exit times are stored as naive local time,
like the booth's receipts. Tests patch `now` to simulate elapsed time.
"""

from datetime import datetime


def now() -> datetime:
    return datetime.now().replace(microsecond=0)
