"""Best-effort teardown for one transcription request."""

import logging
from typing import Callable, List, Tuple, Type

from .errors import CleanupError

logger = logging.getLogger(__name__)


class CleanupStack:
    """Teardown steps run last-registered first, like nested ``finally`` blocks.

    Every step runs regardless of earlier failures.  A failing step is
    recorded as an instance of the error class it was registered with.
    """

    def __init__(self):
        self._steps: List[Tuple[Callable[[], object], Type[CleanupError], str]] = []

    def push(self, step: Callable[[], object], error: Type[CleanupError], description: str) -> None:
        self._steps.append((step, error, description))

    def run(self) -> List[CleanupError]:
        errors: List[CleanupError] = []
        while self._steps:
            step, error, description = self._steps.pop()
            try:
                step()
            except Exception as exc:
                logger.warning("Cleanup step failed: %s: %s", description, exc)
                errors.append(error(description, cause=exc))
        return errors
