"""
Message Store

In-memory message storage for discussions.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Union

from .schema import ActionResultMessage, NormalMessage

StoredMessage = Union[NormalMessage, ActionResultMessage]


class MessageNotFoundError(KeyError):
    """Raised when a message id is unknown"""

    def __init__(self, message_id: str):
        super().__init__(message_id)
        self.message_id = message_id

    def __str__(self) -> str:
        return f"Message not found: {self.message_id}"


class MessageStore:
    """
    Keeps messages per discussion in creation order.

    Returned messages are copies; use update_message to change a stored one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._messages: Dict[str, StoredMessage] = {}
        self._by_discussion: Dict[str, List[str]] = {}

    def create_message(self, message: StoredMessage) -> StoredMessage:
        with self._lock:
            stored = message.model_copy(deep=True)
            self._messages[stored.id] = stored
            self._by_discussion.setdefault(stored.discussion_id, []).append(stored.id)
            return stored.model_copy(deep=True)

    def update_message(self, message_id: str, **patch: Any) -> StoredMessage:
        with self._lock:
            current = self._messages.get(message_id)
            if current is None:
                raise MessageNotFoundError(message_id)
            if isinstance(current, NormalMessage) and "last_update_time" not in patch:
                patch["last_update_time"] = datetime.now(timezone.utc)
            updated = current.model_copy(update=patch, deep=True)
            self._messages[message_id] = updated
            return updated.model_copy(deep=True)

    def get_message(self, message_id: str) -> StoredMessage:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None:
                raise MessageNotFoundError(message_id)
            return message.model_copy(deep=True)

    def list_messages(self, discussion_id: str) -> List[StoredMessage]:
        """Messages of a discussion, oldest first"""
        with self._lock:
            ids = self._by_discussion.get(discussion_id, [])
            return [self._messages[i].model_copy(deep=True) for i in ids]

    def clear(self, discussion_id: str) -> int:
        with self._lock:
            ids = self._by_discussion.pop(discussion_id, [])
            for message_id in ids:
                self._messages.pop(message_id, None)
            return len(ids)
