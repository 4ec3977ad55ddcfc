"""
Stereo channel splitting.

Speech‑to‑Text transcribes one mono file at a time, so a dual‑channel call
recording is split into a left and a right WAV file first.  The split is
done by ``ffmpeg`` (found through pydub's executable lookup) running as a
subprocess:

* the recording is streamed into ffmpeg's stdin in fixed-size chunks, and
  optionally tee'd into a third sink holding the unmodified original;
* the left channel comes back on stdout, the right channel on an extra
  inherited pipe, and stderr is kept for error messages;
* all three output pipes are drained by reader threads while the input is
  still being written.  Reading them one after another would deadlock as
  soon as ffmpeg fills a pipe buffer that nobody is reading.

Output files are 16‑bit PCM mono WAV at the requested sample rate, which is
the LINEAR16 encoding the recogniser is configured for.
"""

import contextlib
import io
import logging
import os
import subprocess
import threading
from typing import BinaryIO, List, Optional

from pydub.utils import which

from .context import RequestContext
from .errors import Cancelled, SplitError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
# How often a running ffmpeg is checked against the request context.
WAIT_INTERVAL = 0.5


def find_ffmpeg() -> str:
    """Return the path of the ``ffmpeg`` executable.

    Raises:
        SplitError: If ffmpeg is not on the ``PATH``.
    """
    executable = which("ffmpeg")
    if executable is None:
        raise SplitError("ffmpeg not found on PATH")
    return executable


def build_command(executable: str, right_fd: int, sample_rate_hertz: int) -> List[str]:
    """Build the ffmpeg invocation writing left to stdout and right to ``right_fd``."""
    output = [
        "-ac", "1",
        "-ar", str(sample_rate_hertz),
        "-c:a", "pcm_s16le",
        "-map_metadata", "-1",
        "-fflags", "+bitexact",
        "-flags:a", "+bitexact",
        "-f", "wav",
    ]
    return [
        executable,
        "-y",
        "-loglevel", "error",
        "-i", "pipe:0",
        "-filter_complex", "[0:a]channelsplit=channel_layout=stereo[left][right]",
        "-map", "[left]", *output, "pipe:1",
        "-map", "[right]", *output, f"pipe:{right_fd}",
    ]


class _Drain(threading.Thread):
    """Copies a pipe into a sink until EOF.

    A failing sink does not stop the reading, otherwise ffmpeg would block
    on a full pipe.
    """

    def __init__(self, name: str, pipe: BinaryIO, sink):
        super().__init__(name=f"split-{name}", daemon=True)
        self.channel = name
        self._pipe = pipe
        self._sink = sink
        self.error: Optional[Exception] = None

    def run(self) -> None:
        with self._pipe:
            try:
                for chunk in iter(lambda: self._pipe.read(CHUNK_SIZE), b""):
                    if self.error is None:
                        try:
                            self._sink.write(chunk)
                        except Exception as exc:
                            self.error = exc
            except OSError as exc:
                self.error = exc


def _feed(source: BinaryIO, stdin: BinaryIO, original, ctx: RequestContext) -> None:
    for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
        ctx.check()
        stdin.write(chunk)
        if original is not None:
            original.write(chunk)


def _wait(process: subprocess.Popen, ctx: RequestContext) -> int:
    while True:
        try:
            return process.wait(timeout=WAIT_INTERVAL)
        except subprocess.TimeoutExpired:
            ctx.check()


def split_channels(
    source: BinaryIO,
    left,
    right,
    original=None,
    *,
    ctx: Optional[RequestContext] = None,
    sample_rate_hertz: int = 8000,
) -> None:
    """Split a stereo WAV stream into two mono WAV streams.

    Args:
        source: Readable binary stream with the stereo recording.
        left: Writable sink receiving the left channel.
        right: Writable sink receiving the right channel.
        original: Optional writable sink receiving an unmodified copy of
            ``source``.
        ctx: Request context; cancelling it kills ffmpeg.
        sample_rate_hertz: Sample rate of both outputs.

    Raises:
        SplitError: If ffmpeg cannot be started, exits with an error, or the
            data cannot be copied.  Whatever was already written to the sinks
            is incomplete and should be discarded.
        Cancelled: If ``ctx`` is cancelled or its deadline passes.
    """
    ctx = ctx or RequestContext()
    ctx.check()
    executable = find_ffmpeg()

    read_fd, write_fd = os.pipe()
    command = build_command(executable, write_fd, sample_rate_hertz)
    logger.debug("Running %s", " ".join(command))
    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            pass_fds=(write_fd,),
        )
    except OSError as exc:
        os.close(read_fd)
        raise SplitError("starting ffmpeg", cause=exc) from exc
    finally:
        # The child holds its own copy; ours must go so the right pipe sees EOF.
        os.close(write_fd)

    stderr = io.BytesIO()
    drains = [
        _Drain("left", process.stdout, left),
        _Drain("right", os.fdopen(read_fd, "rb"), right),
        _Drain("stderr", process.stderr, stderr),
    ]
    for drain in drains:
        drain.start()

    broken_pipe: Optional[BrokenPipeError] = None
    try:
        try:
            _feed(source, process.stdin, original, ctx)
        except BrokenPipeError as exc:
            # ffmpeg stopped reading; its exit status says why.
            broken_pipe = exc
        except Cancelled:
            raise
        except Exception as exc:
            raise SplitError("copying input", cause=exc) from exc
        try:
            process.stdin.close()
        except BrokenPipeError as exc:
            broken_pipe = broken_pipe or exc
        returncode = _wait(process, ctx)
    except BaseException:
        process.kill()
        process.wait()
        with contextlib.suppress(OSError):
            process.stdin.close()
        raise
    finally:
        for drain in drains:
            drain.join()

    if returncode != 0:
        message = stderr.getvalue().decode("utf-8", "replace").strip()
        raise SplitError(f"ffmpeg exited with status {returncode}: {message or 'no output'}")
    if broken_pipe is not None:
        raise SplitError("copying input", cause=broken_pipe)
    for drain in drains[:2]:
        if drain.error is not None:
            raise SplitError(f"writing {drain.channel} channel", cause=drain.error)
    logger.info("Split recording into mono channels at %d Hz", sample_rate_hertz)
