# backend/app/services/slots/calculator.py
"""
Candidate enumeration for one day.

A candidate is an appointment start on the step grid. The photographer
arrives at the start, so the grid begins `buffer` minutes after opening and
the travel wings [start − buffer, start] and [end, end + buffer] must also
fit inside the operating window.

Contains:
✓ operating window (open/close)
✓ travel buffer on both sides
✓ grid step

Does NOT contain:
✗ Busy intervals (checked by the allocator)
✗ Gap to neighbouring events (checked by the allocator)
"""

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Candidate:
    start: int  # minutes since local midnight
    end: int
    buffer: int

    @property
    def full_start(self) -> int:
        return self.start - self.buffer

    @property
    def full_end(self) -> int:
        return self.end + self.buffer

    def fits(self, open_minutes: int, close_minutes: int) -> bool:
        """Full span, travel included, lies inside the window."""
        return self.full_start >= open_minutes and self.full_end <= close_minutes


def iter_candidates(
    open_minutes: int,
    close_minutes: int,
    appointment_minutes: int,
    buffer_minutes: int,
    step_minutes: int = 30,
) -> Iterator[Candidate]:
    """
    Yield candidates in ascending start order.

    Starts run from open + buffer while start + appointment ≤ close; the
    caller still has to check `fits` for the travel-inflated span.
    """
    start = open_minutes + buffer_minutes
    while start + appointment_minutes <= close_minutes:
        yield Candidate(start=start, end=start + appointment_minutes, buffer=buffer_minutes)
        start += step_minutes
