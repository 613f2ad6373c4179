"""StreamerService: turns push-channel messages into store transitions.

The transport itself (connection, reconnects, auth) lives outside this
package; it hands each decoded message to `handle_message`. Depending on
`update_immediately`, received changes are applied at once or left in the
store's pending queue until `apply_pending_updates` is called.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError

from annothread.models import AnnotationRecord, RealTimeMessage
from annothread.store.store import SidebarStore
from annothread.utils.json import parse_json_object
from annothread.utils.warnings import WarningCache

logger = logging.getLogger(__name__)

UPDATE_TYPES = ("create", "update", "past")
DELETE_TYPES = ("delete",)


class StreamerService:
    def __init__(
        self,
        store: SidebarStore,
        *,
        update_immediately: bool = False,
        on_added: Callable[[list[AnnotationRecord]], None] | None = None,
        warnings: WarningCache | None = None,
    ) -> None:
        self._store = store
        self.update_immediately = update_immediately
        self._on_added = on_added
        self._warnings = warnings or WarningCache(logger)

    def apply_pending_updates(self) -> list[AnnotationRecord]:
        """Apply received-but-unapplied updates. Returns newly added records."""
        added = self._store.apply_pending_updates()
        if added and self._on_added is not None:
            self._on_added(added)
        return added

    def handle_message(self, message: RealTimeMessage) -> None:
        """Merge one notification batch into the store.

        Raises:
            UnknownMessageTypeError: If `message.type` is not a create,
                update, past or delete notification.
        """
        if message.type in UPDATE_TYPES:
            self._store.receive_real_time_updates(updated=message.records)
        elif message.type in DELETE_TYPES:
            self._store.receive_real_time_updates(deleted=message.records)
        else:
            self._warnings.warn("Received unsupported notification %s", message.type)
            raise UnknownMessageTypeError(message.type)

        if self.update_immediately:
            self.apply_pending_updates()

    def handle_frame(self, frame: str | bytes) -> bool:
        """Decode a raw JSON frame from the transport and handle it.

        Malformed frames and unsupported message types are logged once and
        ignored. Returns True if the frame was handled.
        """
        data = parse_json_object(frame)
        if data is None:
            self._warnings.warn("Ignoring malformed real-time frame")
            return False
        try:
            message = RealTimeMessage.model_validate(data)
        except ValidationError as e:
            self._warnings.warn("Ignoring invalid real-time message: %s", e.error_count())
            return False
        try:
            self.handle_message(message)
        except UnknownMessageTypeError:
            return False
        return True


class UnknownMessageTypeError(ValueError):
    def __init__(self, message_type: str) -> None:
        self.message_type = message_type
        super().__init__(f"Unsupported real-time message type: {message_type}")
