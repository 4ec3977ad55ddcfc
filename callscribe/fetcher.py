"""
Retrieval of the source recording.

The recording is streamed, not downloaded: the returned response body is
fed straight into the channel splitter.
"""

import logging

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .context import RequestContext
from .errors import Cancelled, FetchError

logger = logging.getLogger(__name__)

# Seconds to wait for the server between bytes when the request has no deadline.
READ_TIMEOUT = 60.0
RETRY_WAIT = wait_exponential(multiplier=1, max=10)


def _get(url: str, ctx: RequestContext) -> requests.Response:
    ctx.check()
    response = requests.get(url, stream=True, timeout=ctx.timeout(READ_TIMEOUT))
    try:
        response.raise_for_status()
    except requests.HTTPError:
        response.close()
        raise
    return response


def fetch_recording(url: str, ctx: RequestContext) -> requests.Response:
    """GET ``url`` and return the streaming response.

    Connection failures and timeouts are retried.  HTTP error statuses are
    not.  Waits between attempts end early when ``ctx`` is cancelled.  The
    caller owns the response and must close it.

    Raises:
        FetchError: If the recording cannot be retrieved.
        Cancelled: If ``ctx`` is cancelled or its deadline passes.
    """
    retrying = Retrying(
        wait=RETRY_WAIT,
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        sleep=ctx.sleep,
        reraise=True,
    )
    logger.info("Fetching recording %s", url)
    try:
        response = retrying(_get, url, ctx)
    except Cancelled as exc:
        raise exc.at(FetchError.stage)
    except requests.RequestException as exc:
        raise FetchError(f"unable to GET {url}", cause=exc) from exc
    # Undo any Content-Encoding so the splitter sees raw audio bytes.
    response.raw.decode_content = True
    return response
