"""
Google Speech‑to‑Text service wrapper.

This module encapsulates interaction with the Google Cloud Speech API for a
single mono channel file already staged in Cloud Storage.  Recognition is a
long-running operation, so it is split in two steps:

* :meth:`Recognizer.submit` starts the job and returns a
  :class:`RecognitionJob` handle;
* :meth:`Recognizer.wait` polls the job until it finishes and reduces the
  response to :class:`~callscribe.models.Utterance` records.

Usage::

    recognizer = Recognizer(sample_rate_hertz=8000)
    job = recognizer.submit("gs://my-bucket/call.left.wav", Channel.LEFT)
    utterances = recognizer.wait(job)
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, List, Optional, Sequence

from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech_v1p1beta1 as speech

from .context import RequestContext
from .errors import Cancelled, RecognitionError
from .models import Channel, Utterance

logger = logging.getLogger(__name__)


@dataclass
class RecognitionJob:
    """Handle on a submitted recognition job.  Can be waited on once."""

    operation: Any
    channel: Channel
    uri: str
    consumed: bool = False


def _as_timedelta(value) -> timedelta:
    # proto-plus hands Durations back as timedelta; raw protobuf does not.
    if isinstance(value, timedelta):
        return value
    return value.ToTimedelta()


def extract_utterances(response, channel: Channel) -> List[Utterance]:
    """Reduce a recognition response to one utterance per result.

    Only the first alternative is used, with the start time of its first
    word as the offset.  Results without alternatives or words are skipped.
    """
    utterances: List[Utterance] = []
    skipped = 0
    for result in response.results:
        if not result.alternatives or not result.alternatives[0].words:
            skipped += 1
            continue
        alternative = result.alternatives[0]
        utterances.append(
            Utterance(
                channel=channel,
                offset=_as_timedelta(alternative.words[0].start_time),
                text=alternative.transcript,
            )
        )
    if skipped:
        logger.debug("Skipped %d results without words on %s channel", skipped, channel.name.lower())
    return utterances


class Recognizer:
    """Runs long-running recognition jobs for mono LINEAR16 WAV files.

    Args:
        client: A ``SpeechClient``.  Created on first use when omitted.
        language_code: BCP‑47 language tag (default: ``en-US``).
        sample_rate_hertz: Sample rate of the staged files.
        poll_interval: Seconds between checks on a running job.
    """

    def __init__(
        self,
        client: Optional[speech.SpeechClient] = None,
        *,
        language_code: str = "en-US",
        sample_rate_hertz: int = 8000,
        poll_interval: float = 5.0,
    ):
        self._client = client
        self.language_code = language_code
        self.sample_rate_hertz = sample_rate_hertz
        self.poll_interval = poll_interval

    @property
    def client(self) -> speech.SpeechClient:
        if self._client is None:
            self._client = speech.SpeechClient()
        return self._client

    def build_config(
        self, phrases: Sequence[str] = (), profanity_filter: bool = False
    ) -> speech.RecognitionConfig:
        # Word offsets are required: utterances are ordered by them.
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate_hertz,
            language_code=self.language_code,
            enable_word_time_offsets=True,
            profanity_filter=profanity_filter,
        )
        if phrases:
            config.speech_contexts = [speech.SpeechContext(phrases=list(phrases))]
        return config

    def submit(
        self,
        uri: str,
        channel: Channel,
        *,
        phrases: Sequence[str] = (),
        profanity_filter: bool = False,
        ctx: Optional[RequestContext] = None,
    ) -> RecognitionJob:
        """Start recognition of the file at ``uri``.

        Raises:
            RecognitionError: If the job cannot be started.
        """
        ctx = ctx or RequestContext()
        try:
            ctx.check()
        except Cancelled as exc:
            raise exc.at(RecognitionError.stage, channel)
        config = self.build_config(phrases, profanity_filter)
        audio = speech.RecognitionAudio(uri=uri)
        timeout = ctx.timeout()
        kwargs = {} if timeout is None else {"timeout": timeout}
        logger.info("Starting STT job for %s", uri)
        try:
            operation = self.client.long_running_recognize(config=config, audio=audio, **kwargs)
        except GoogleAPIError as exc:
            raise RecognitionError("starting long running recognize", channel=channel, cause=exc) from exc
        return RecognitionJob(operation=operation, channel=channel, uri=uri)

    def wait(self, job: RecognitionJob, ctx: Optional[RequestContext] = None) -> List[Utterance]:
        """Block until ``job`` finishes and return its utterances.

        Raises:
            RecognitionError: If the job fails.
            Cancelled: If ``ctx`` is cancelled or its deadline passes.
            ValueError: If ``job`` was already waited on.
        """
        if job.consumed:
            raise ValueError(f"Recognition job for {job.uri} was already waited on")
        job.consumed = True
        ctx = ctx or RequestContext()
        try:
            while not job.operation.done():
                ctx.sleep(self.poll_interval)
            response = job.operation.result()
        except Cancelled as exc:
            raise exc.at(RecognitionError.stage, job.channel)
        except GoogleAPIError as exc:
            raise RecognitionError(
                "waiting on long running recognize", channel=job.channel, cause=exc
            ) from exc
        utterances = extract_utterances(response, job.channel)
        logger.info("STT job complete for %s: %d utterances", job.uri, len(utterances))
        return utterances
