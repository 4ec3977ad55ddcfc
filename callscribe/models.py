"""
Transcript data types.

Speech‑to‑Text returns results per channel file; this module holds the
small value types the rest of the package passes around once those results
have been reduced to one entry per recognised span of speech.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional


class Channel(enum.Enum):
    """One side of a stereo recording.

    In a Twilio dual‑channel call the left channel carries the caller and
    the right channel the called party.
    """

    LEFT = "A"
    RIGHT = "B"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class Utterance:
    """A transcribed section of a conversation."""

    channel: Channel
    offset: timedelta
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.label,
            "offset": self.offset.total_seconds(),
            "text": self.text,
        }


def sort_by_time(utterances: Iterable[Utterance]) -> List[Utterance]:
    """Return ``utterances`` in chronological order.

    The sort is stable, so utterances sharing an offset keep their arrival
    order.  For a :class:`Transcript` that means side A before side B.
    """
    return sorted(utterances, key=lambda u: u.offset)


@dataclass
class Transcript:
    """Outcome of a successful transcription request.

    ``utterances`` holds the left channel's utterances followed by the right
    channel's; use :meth:`sorted` for a chronological view.  ``warnings``
    lists cleanup failures that did not prevent the transcript from being
    produced.
    """

    utterances: List[Utterance]
    warnings: List[Exception] = field(default_factory=list)
    original_uri: Optional[str] = None
    intermediate_uris: List[str] = field(default_factory=list)

    def sorted(self) -> List[Utterance]:
        return sort_by_time(self.utterances)
