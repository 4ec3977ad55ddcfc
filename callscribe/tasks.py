"""
Orchestration layer for the transcription pipeline.

:class:`Client` turns the URL of a dual-channel call recording into a list
of utterances.  For each request it:

1. streams the recording from its URL;
2. splits it into left and right mono WAV files with ffmpeg, writing both
   straight into Cloud Storage (and, optionally, a copy of the original);
3. runs one long-running Speech‑to‑Text job per channel, in parallel;
4. concatenates the left and right utterances;
5. deletes the staged channel files and, optionally, makes the stored
   original public.

Step 5 always runs.  Its failures do not fail the request: they are
returned as ``Transcript.warnings`` or, when an earlier step already
failed, attached to the raised error as ``warnings``.

The utterances are not sorted.  Use :meth:`Transcript.sorted` or
:func:`callscribe.models.sort_by_time` for a chronological transcript.
"""

from __future__ import annotations

import logging
import posixpath
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, List, Optional
from urllib.parse import urlparse

from google.cloud import speech_v1p1beta1 as speech
from google.cloud import storage

from .audio_splitter import split_channels
from .cleanup import CleanupStack
from .config import TranscribeOptions
from .context import RequestContext
from .errors import (
    Cancelled,
    DeleteError,
    MakePublicError,
    RecognitionError,
    SaveError,
    SplitError,
    StagingError,
    TranscriptionError,
)
from .fetcher import fetch_recording
from .models import Channel, Transcript, Utterance
from .storage import StagingStore
from .stt_service import Recognizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedNames:
    """Object names used by one request."""

    original: str
    left: str
    right: str


def derive_base_name(url: str, name: Optional[str] = None) -> str:
    """Derive the base object name from ``name`` or the URL's last path segment.

    The extension is stripped.  Falls back to ``recording`` when nothing
    usable is left.
    """
    if not name:
        name = posixpath.basename(urlparse(url).path)
    return posixpath.splitext(name)[0] or "recording"


def staged_names(url: str, name: Optional[str] = None, token: Optional[str] = None) -> StagedNames:
    """Build the object names for a request.

    Every name carries a request-scoped ``token`` so concurrent requests
    for the same recording do not overwrite each other.  The stored
    original is reported back as ``Transcript.original_uri``.
    """
    base = derive_base_name(url, name)
    token = token or uuid.uuid4().hex[:12]
    return StagedNames(
        original=f"{base}.{token}.wav",
        left=f"{base}.{token}.left.wav",
        right=f"{base}.{token}.right.wav",
    )


def _close_if_open(sink) -> None:
    if not sink.closed:
        sink.close()


class Client:
    """Transcribes dual-channel recordings with Cloud Storage and Speech‑to‑Text.

    Args:
        options: Default options for every request.
        storage_client: A ``google.cloud.storage.Client``.  Created on first
            use when omitted.
        speech_client: A ``SpeechClient``.  Created on first use when omitted.
        splitter: Channel splitter; :func:`split_channels` by default.
        poll_interval: Seconds between checks on a running recognition job.
    """

    def __init__(
        self,
        options: TranscribeOptions,
        *,
        storage_client: Optional[storage.Client] = None,
        speech_client: Optional[speech.SpeechClient] = None,
        splitter: Callable[..., None] = split_channels,
        poll_interval: float = 5.0,
    ):
        self.options = options
        self._storage_client = storage_client
        self._speech_client = speech_client
        self._splitter = splitter
        self.poll_interval = poll_interval

    @property
    def storage_client(self) -> storage.Client:
        if self._storage_client is None:
            self._storage_client = storage.Client()
        return self._storage_client

    @property
    def speech_client(self) -> speech.SpeechClient:
        if self._speech_client is None:
            self._speech_client = speech.SpeechClient()
        return self._speech_client

    def transcribe_url(
        self,
        url: str,
        name: Optional[str] = None,
        *,
        ctx: Optional[RequestContext] = None,
        options: Optional[TranscribeOptions] = None,
    ) -> Transcript:
        """Transcribe the stereo WAV recording at ``url``.

        Args:
            url: HTTP(S) URL of the recording.
            name: Base name for the staged objects.  Defaults to the URL's
                last path segment without its extension.
            ctx: Request context carrying a deadline and cancellation.
                Defaults to a context with the options' ``timeout``.
            options: Options for this request instead of the client's.

        Returns:
            The transcript, with the left channel's utterances followed by
            the right channel's, and any cleanup warnings.

        Raises:
            TranscriptionError: If fetching, splitting, staging or
                recognition fails.  Cleanup problems are in its ``warnings``.
        """
        options = options or self.options
        ctx = ctx or RequestContext(options.timeout)
        names = staged_names(url, name)
        with fetch_recording(url, ctx) as response:
            return self.transcribe_stream(response.raw, names, ctx=ctx, options=options)

    def transcribe_stream(
        self,
        source: BinaryIO,
        names: StagedNames,
        *,
        ctx: Optional[RequestContext] = None,
        options: Optional[TranscribeOptions] = None,
    ) -> Transcript:
        """Transcribe a stereo WAV stream already opened by the caller."""
        options = options or self.options
        ctx = ctx or RequestContext(options.timeout)
        store = StagingStore(self.storage_client, options.storage_bucket)
        cleanup = CleanupStack()
        try:
            utterances = self._run(source, names, store, options, cleanup, ctx)
        except BaseException as exc:
            warnings = cleanup.run()
            if isinstance(exc, TranscriptionError):
                exc.warnings.extend(warnings)
            logger.error("Transcription of %s failed: %s", names.original, exc)
            raise
        transcript = Transcript(utterances=utterances, warnings=list(cleanup.run()))
        if options.store_original:
            transcript.original_uri = store.uri(names.original)
        if options.keep_intermediate_files:
            transcript.intermediate_uris = [store.uri(names.left), store.uri(names.right)]
        logger.info(
            "Transcribed %s: %d utterances, %d warnings",
            names.original,
            len(transcript.utterances),
            len(transcript.warnings),
        )
        return transcript

    def _run(
        self,
        source: BinaryIO,
        names: StagedNames,
        store: StagingStore,
        options: TranscribeOptions,
        cleanup: CleanupStack,
        ctx: RequestContext,
    ) -> List[Utterance]:
        try:
            ctx.check()
        except Cancelled as exc:
            raise exc.at(StagingError.stage)
        cleanup_timeout = options.cleanup_timeout

        original = None
        if options.store_original:
            original = self._open_writer(store, names.original, None, ctx)
            # Cleanup runs LIFO: the original is saved before it is made public.
            if options.make_original_public:
                cleanup.push(
                    lambda: store.make_public(names.original, timeout=cleanup_timeout),
                    MakePublicError,
                    f"original file {store.uri(names.original)}",
                )
            cleanup.push(original.close, SaveError, f"original file {store.uri(names.original)}")

        if not options.keep_intermediate_files:
            for channel, object_name in ((Channel.RIGHT, names.right), (Channel.LEFT, names.left)):
                cleanup.push(
                    lambda object_name=object_name: store.delete(object_name, timeout=cleanup_timeout),
                    DeleteError,
                    f"{channel.name.lower()} channel file {store.uri(object_name)}",
                )

        left = self._open_writer(store, names.left, Channel.LEFT, ctx)
        cleanup.push(lambda: _close_if_open(left), SaveError, f"left channel file {store.uri(names.left)}")
        right = self._open_writer(store, names.right, Channel.RIGHT, ctx)
        cleanup.push(lambda: _close_if_open(right), SaveError, f"right channel file {store.uri(names.right)}")

        logger.info("Splitting %s into %s and %s", names.original, names.left, names.right)
        try:
            self._splitter(
                source,
                left,
                right,
                original,
                ctx=ctx,
                sample_rate_hertz=options.sample_rate_hertz,
            )
        except Cancelled as exc:
            raise exc.at(SplitError.stage)

        # Recognition can only read the objects once their writers are closed.
        for channel, sink in ((Channel.LEFT, left), (Channel.RIGHT, right)):
            try:
                ctx.check()
            except Cancelled as exc:
                raise exc.at(StagingError.stage, channel)
            try:
                sink.close()
            except Exception as exc:
                raise StagingError("closing storage writer", channel=channel, cause=exc) from exc

        recognizer = Recognizer(
            self.speech_client,
            language_code=options.language_code,
            sample_rate_hertz=options.sample_rate_hertz,
            poll_interval=self.poll_interval,
        )
        results = self._recognize_both(
            recognizer,
            {Channel.LEFT: store.uri(names.left), Channel.RIGHT: store.uri(names.right)},
            options,
            ctx,
        )
        return results[Channel.LEFT] + results[Channel.RIGHT]

    @staticmethod
    def _open_writer(store: StagingStore, object_name: str, channel: Optional[Channel], ctx: RequestContext):
        try:
            return store.open_writer(object_name, timeout=ctx.timeout())
        except Exception as exc:
            raise StagingError(f"opening storage writer for {object_name}", channel=channel, cause=exc) from exc

    def _recognize_both(
        self,
        recognizer: Recognizer,
        uris: Dict[Channel, str],
        options: TranscribeOptions,
        ctx: RequestContext,
    ) -> Dict[Channel, List[Utterance]]:
        """Recognize both channels concurrently and wait for both.

        One channel failing does not stop the other.  Each channel's result
        lives in its own future.
        """

        def recognize(channel: Channel) -> List[Utterance]:
            job = recognizer.submit(
                uris[channel],
                channel,
                phrases=options.phrases,
                profanity_filter=options.profanity_filter,
                ctx=ctx,
            )
            return recognizer.wait(job, ctx)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="recognize") as pool:
            futures = {channel: pool.submit(recognize, channel) for channel in (Channel.LEFT, Channel.RIGHT)}
            wait(futures.values())

        results: Dict[Channel, List[Utterance]] = {}
        errors: List[TranscriptionError] = []
        for channel, future in futures.items():
            exc = future.exception()
            if exc is None:
                results[channel] = future.result()
            elif isinstance(exc, TranscriptionError):
                errors.append(exc)
            else:
                errors.append(RecognitionError("transcribing", channel=channel, cause=exc))

        if errors:
            cancelled = next((e for e in errors if isinstance(e, Cancelled)), None)
            if cancelled is not None:
                raise cancelled
            raise RecognitionError(
                f"{len(errors)} of 2 channels failed",
                cause=errors[0],
                errors=errors,
            ) from errors[0]
        return results
