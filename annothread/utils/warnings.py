"""Deduplicated warnings."""

import logging

logger = logging.getLogger(__name__)


class WarningCache:
    """Logs each distinct warning once.

    Owned by whichever component emits the warnings, so separate components
    (and separate tests) do not suppress each other's messages.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._shown: set[str] = set()

    def warn(self, message: str, *args: object) -> bool:
        """Log `message % args` unless already logged. Returns True if logged."""
        key = ",".join([message, *(str(a) for a in args)])
        if key in self._shown:
            return False
        self._shown.add(key)
        self._log.warning(message, *args)
        return True

    def reset(self) -> None:
        self._shown.clear()
