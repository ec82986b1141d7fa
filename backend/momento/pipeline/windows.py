"""Clip window calculation.

A clip is the setup before a laugh, the laugh itself and a short buffer
after it. The end of the window is not clamped to the media length; ffmpeg
stops at the end of the input.
"""
from dataclasses import dataclass
from typing import List

from .transcript import LaughterMoment

LEAD_IN_SECONDS = 45.0
TRAIL_BUFFER_SECONDS = 2.0


@dataclass
class ClipWindow:
    """Span of the source media to cut into one clip."""
    start: float
    duration: float
    index: int = 0

    @property
    def end(self) -> float:
        return self.start + self.duration

    @property
    def is_valid(self) -> bool:
        return self.duration > 0

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start": self.start,
            "duration": self.duration,
        }


def compute_window(moment: LaughterMoment, index: int = 0) -> ClipWindow:
    """
    Compute the clip window for a laughter moment.

    The start is pulled back by the lead-in and clamped at zero; the duration
    runs from there to the end of the laugh plus the trail buffer.
    """
    start = max(0.0, moment.start - LEAD_IN_SECONDS)
    duration = (moment.end - start) + TRAIL_BUFFER_SECONDS
    return ClipWindow(start=start, duration=duration, index=index)


def compute_windows(moments: List[LaughterMoment]) -> List[ClipWindow]:
    """Compute windows for moments, numbering them in order."""
    return [compute_window(moment, index=i) for i, moment in enumerate(moments)]
