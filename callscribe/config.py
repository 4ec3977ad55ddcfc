"""
Transcription options.

Options can be built directly or read from the environment with
:meth:`TranscribeOptions.from_env`.  Recognised variables:

* ``STORAGE_BUCKET`` – Cloud Storage bucket used to stage channel files
  (required).
* ``STORE_ORIGINAL`` – Set to ``true`` to keep the original recording in the
  bucket.
* ``MAKE_ORIGINAL_PUBLIC`` – Set to ``true`` to make the stored original
  publicly readable.  Only meaningful with ``STORE_ORIGINAL``.
* ``KEEP_INTERMEDIATE_FILES`` – Set to ``true`` to keep the split channel
  files after recognition.
* ``SPEECH_PHRASES`` – Comma separated phrases to seed recognition with.
* ``PROFANITY_FILTER`` – Set to ``true`` to mask profanity.
* ``LANGUAGE_CODE`` – BCP‑47 language tag (default: ``en-US``).
* ``SAMPLE_RATE_HERTZ`` – Sample rate of the split channel files (default:
  ``8000``, the rate of Twilio call recordings).
* ``REQUEST_TIMEOUT`` – Deadline in seconds for a whole request (default:
  none).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


@dataclass(frozen=True)
class TranscribeOptions:
    storage_bucket: str
    store_original: bool = False
    make_original_public: bool = False
    keep_intermediate_files: bool = False
    phrases: List[str] = field(default_factory=list)
    profanity_filter: bool = False
    language_code: str = "en-US"
    sample_rate_hertz: int = 8000
    timeout: Optional[float] = None
    # Per cleanup call.  Cleanup runs even after cancellation.
    cleanup_timeout: float = 60.0

    def __post_init__(self):
        if not self.storage_bucket:
            raise ValueError("storage_bucket is required")
        if self.sample_rate_hertz <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate_hertz}")

    @classmethod
    def from_env(cls) -> "TranscribeOptions":
        phrases = [p.strip() for p in os.environ.get("SPEECH_PHRASES", "").split(",")]
        timeout = os.environ.get("REQUEST_TIMEOUT")
        return cls(
            storage_bucket=os.environ.get("STORAGE_BUCKET", ""),
            store_original=_env_flag("STORE_ORIGINAL"),
            make_original_public=_env_flag("MAKE_ORIGINAL_PUBLIC"),
            keep_intermediate_files=_env_flag("KEEP_INTERMEDIATE_FILES"),
            phrases=[p for p in phrases if p],
            profanity_filter=_env_flag("PROFANITY_FILTER"),
            language_code=os.environ.get("LANGUAGE_CODE", "en-US"),
            sample_rate_hertz=int(os.environ.get("SAMPLE_RATE_HERTZ", "8000")),
            timeout=float(timeout) if timeout else None,
        )
