"""
Error types raised by the transcription pipeline.

Every error names the pipeline stage it came from and, where it applies,
the channel.  Fatal errors are raised; cleanup errors are collected and
handed back alongside the transcript (see :class:`callscribe.models.Transcript`)
or attached to the fatal error as ``warnings``.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import Channel


class TranscriptionError(Exception):
    """Base class for all pipeline failures."""

    stage = "transcribing"

    def __init__(
        self,
        message: str,
        *,
        channel: Optional[Channel] = None,
        cause: Optional[BaseException] = None,
    ):
        self.channel = channel
        self.cause = cause
        self.warnings: List[Exception] = []
        prefix = self.stage
        if channel is not None:
            prefix += f" ({channel.name.lower()} channel)"
        text = f"{prefix}: {message}"
        if cause is not None:
            text += f": {cause}"
        super().__init__(text)


class FetchError(TranscriptionError):
    """The source recording could not be retrieved."""

    stage = "fetching"


class SplitError(TranscriptionError):
    """The stereo recording could not be split into mono channels."""

    stage = "splitting"


class StagingError(TranscriptionError):
    """A channel file could not be written to Cloud Storage."""

    stage = "staging"


class RecognitionError(TranscriptionError):
    """Speech recognition failed on one or both channels.

    ``errors`` holds one error per failed channel, left first.
    """

    stage = "recognizing"

    def __init__(
        self,
        message: str,
        *,
        channel: Optional[Channel] = None,
        cause: Optional[BaseException] = None,
        errors: Sequence["RecognitionError"] = (),
    ):
        super().__init__(message, channel=channel, cause=cause)
        self.errors = list(errors)


class Cancelled(TranscriptionError):
    """The request was cancelled or ran past its deadline.

    Raised bare by :class:`~callscribe.context.RequestContext`; each stage
    re-raises it through :meth:`at` so it names where the request stopped.
    """

    stage = "cancelled"

    def __init__(self, reason: str, *, stage: Optional[str] = None, channel: Optional[Channel] = None):
        self.reason = reason
        if stage is not None:
            self.stage = stage
        super().__init__(reason, channel=channel)

    def at(self, stage: str, channel: Optional[Channel] = None) -> "Cancelled":
        """Return this cancellation annotated with ``stage`` and ``channel``.

        An already annotated cancellation is returned unchanged.
        """
        if self.stage != Cancelled.stage:
            return self
        return Cancelled(self.reason, stage=stage, channel=channel)


class CleanupError(TranscriptionError):
    """A best-effort teardown step failed.

    Callers may choose to log and ignore these.
    """

    stage = "cleanup"


class SaveError(CleanupError):
    stage = "saving"


class DeleteError(CleanupError):
    stage = "deleting"


class MakePublicError(CleanupError):
    stage = "making public"
