"""Transcript event normalization.

The speech-to-text response has no fixed shape: non-speech events may be
listed under ``audio_events`` or interleaved with speech tokens under
``words``. This module resolves the shape once and turns it into a uniform,
ordered list of laughter moments.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Literal, Optional

logger = logging.getLogger(__name__)

ShapeKind = Literal["audio_events", "words", "unknown"]

LAUGHTER_KIND = "laughter"
GENERIC_EVENT_KINDS = ("audio_event", "event")
LAUGHTER_MARKER = "laugh"


@dataclass
class TranscriptEvent:
    """A single timed item from a transcript."""
    kind: str
    start: float
    end: float
    text: Optional[str] = None

    @property
    def is_laughter(self) -> bool:
        if self.kind == LAUGHTER_KIND:
            return True
        if self.kind in GENERIC_EVENT_KINDS and self.text:
            return LAUGHTER_MARKER in self.text.casefold()
        return False


@dataclass
class LaughterMoment:
    """A transcript event classified as laughter."""
    start: float
    end: float
    text: Optional[str] = None

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass
class TranscriptShape:
    """Which field of the payload holds the timed items."""
    kind: ShapeKind
    items: List[Any]


def resolve_transcript_shape(payload: Any) -> TranscriptShape:
    """
    Work out where a transcript keeps its timed items.

    ``audio_events`` wins when it is a non-empty list, otherwise ``words``
    is used when it is a list. Anything else is ``unknown`` with no items.
    """
    if not isinstance(payload, dict):
        return TranscriptShape("unknown", [])

    audio_events = payload.get("audio_events")
    if isinstance(audio_events, list) and audio_events:
        return TranscriptShape("audio_events", audio_events)

    words = payload.get("words")
    if isinstance(words, list):
        return TranscriptShape("words", words)

    return TranscriptShape("unknown", [])


def _to_seconds(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(seconds):
        return None
    return seconds


def parse_event(item: Any) -> Optional[TranscriptEvent]:
    """Convert one raw item into a TranscriptEvent, or None if it has no timing."""
    if not isinstance(item, dict):
        return None

    start = _to_seconds(item.get("start"))
    end = _to_seconds(item.get("end"))
    if start is None or end is None:
        return None

    kind = item.get("type", item.get("kind")) or ""
    text = item.get("text")
    return TranscriptEvent(
        kind=str(kind),
        start=start,
        end=end,
        text=str(text) if text is not None else None,
    )


def normalize_transcript(payload: Any) -> List[LaughterMoment]:
    """
    Extract laughter moments from a transcript payload.

    An item counts as laughter when its kind is exactly ``laughter``, or when
    its kind is a generic audio event whose text contains "laugh" in any
    case. Moments keep source order and are neither merged nor deduplicated.
    An empty list means no funny moments were found.

    Args:
        payload: Decoded transcription response

    Returns:
        Laughter moments in order of appearance
    """
    shape = resolve_transcript_shape(payload)

    moments: List[LaughterMoment] = []
    for item in shape.items:
        event = parse_event(item)
        if event is None:
            logger.debug(f"Skipping untimed {shape.kind} item: {item!r}")
            continue
        if event.is_laughter:
            moments.append(LaughterMoment(start=event.start, end=event.end, text=event.text))

    return moments
