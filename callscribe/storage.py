"""
Cloud Storage staging.

Speech‑to‑Text only reads audio from ``gs://`` URIs, so the split channel
files are staged in a bucket for the lifetime of one request.  Writes are
streamed through :meth:`google.cloud.storage.Blob.open`; an object only
becomes visible to readers once its writer is closed.
"""

import logging
from typing import Any, Dict, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

logger = logging.getLogger(__name__)


def _timeout_kwargs(timeout: Optional[float]) -> Dict[str, Any]:
    # Leave the library default in place when there is no deadline.
    return {} if timeout is None else {"timeout": timeout}


class StagingStore:
    """Named objects in a single Cloud Storage bucket."""

    def __init__(self, client: storage.Client, bucket_name: str):
        self.bucket_name = bucket_name
        self._bucket = client.bucket(bucket_name)

    def uri(self, name: str) -> str:
        return f"gs://{self.bucket_name}/{name}"

    def open_writer(self, name: str, *, content_type: str = "audio/wav", timeout: Optional[float] = None):
        """Return a writable binary sink for object ``name``.

        The object is created when the sink is closed.
        """
        blob = self._bucket.blob(name)
        return blob.open("wb", content_type=content_type, **_timeout_kwargs(timeout))

    def delete(self, name: str, *, timeout: Optional[float] = None) -> bool:
        """Delete object ``name``.

        Returns:
            ``False`` if the object did not exist, which is not an error.
        """
        try:
            self._bucket.blob(name).delete(**_timeout_kwargs(timeout))
        except NotFound:
            logger.debug("Object %s already absent", self.uri(name))
            return False
        logger.info("Deleted %s", self.uri(name))
        return True

    def make_public(self, name: str, *, timeout: Optional[float] = None) -> None:
        """Grant ``allUsers`` read access to object ``name``."""
        self._bucket.blob(name).make_public(**_timeout_kwargs(timeout))
        logger.info("Made %s publicly readable", self.uri(name))
