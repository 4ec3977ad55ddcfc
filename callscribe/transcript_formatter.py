"""
Transcript formatting utilities.

Turns a list of utterances into a human‑readable transcript.  Utterances
are sorted chronologically and consecutive utterances from the same channel
within the same minute are joined on one line.  Each line begins with a
label such as ``A|3`` meaning “side A at minute 3”; the minute is only
shown when it changes.
"""

from typing import Dict, Iterable, List, Optional

from .models import Channel, Utterance, sort_by_time


def format_transcript(
    utterances: Iterable[Utterance],
    labels: Optional[Dict[Channel, str]] = None,
) -> str:
    """Convert utterances into a labelled transcript.

    Args:
        utterances: Utterances in any order.
        labels: Optional display name per channel, e.g.
            ``{Channel.LEFT: "Caller", Channel.RIGHT: "Agent"}``.  Defaults to
            ``A`` and ``B``.

    Returns:
        A single string containing the formatted transcript.
    """
    labels = labels or {}
    lines: List[str] = []
    current_line = ""
    current_channel: Optional[Channel] = None
    current_minute = -1
    for utterance in sort_by_time(utterances):
        text = utterance.text.strip()
        if not text:
            continue
        minute = int(utterance.offset.total_seconds() // 60)
        if utterance.channel != current_channel or minute != current_minute:
            if current_line:
                lines.append(current_line)
            label = labels.get(utterance.channel, utterance.channel.label)
            if minute != current_minute:
                label += f"|{minute}"
                current_minute = minute
            current_line = f"{label} {text}"
            current_channel = utterance.channel
        else:
            current_line += f" {text}"
    if current_line:
        lines.append(current_line)
    return "\n".join(lines)
