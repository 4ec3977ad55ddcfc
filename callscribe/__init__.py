"""
Transcription of dual-channel call recordings.

Google Speech‑to‑Text does not transcribe the two channels of a stereo
recording separately and only reads audio from Cloud Storage.  This package
fills those gaps: it fetches a recording from a URL, splits it into two mono
files with ffmpeg, stages them in a bucket, transcribes both in parallel and
merges the results into one list of channel-labelled utterances.

Usage::

    from callscribe import Client, TranscribeOptions

    client = Client(TranscribeOptions(storage_bucket="my-bucket"))
    transcript = client.transcribe_url("https://example.com/call.wav")
    for utterance in transcript.sorted():
        print(utterance.channel.label, utterance.offset, utterance.text)
"""

from .config import TranscribeOptions
from .context import RequestContext
from .errors import (
    Cancelled,
    CleanupError,
    DeleteError,
    FetchError,
    MakePublicError,
    RecognitionError,
    SaveError,
    SplitError,
    StagingError,
    TranscriptionError,
)
from .models import Channel, Transcript, Utterance, sort_by_time
from .tasks import Client

__all__ = [
    "Cancelled",
    "Channel",
    "CleanupError",
    "Client",
    "DeleteError",
    "FetchError",
    "MakePublicError",
    "RecognitionError",
    "RequestContext",
    "SaveError",
    "SplitError",
    "StagingError",
    "Transcript",
    "TranscribeOptions",
    "TranscriptionError",
    "Utterance",
    "sort_by_time",
]
