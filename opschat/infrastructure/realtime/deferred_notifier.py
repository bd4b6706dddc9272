# opschat/infrastructure/realtime/deferred_notifier.py
from __future__ import annotations

import logging
from typing import Any, Callable

from opschat.core.interfaces.conversation_notifier import (
    ConversationCreatedEvent,
    ConversationNotifier,
)
from opschat.core.interfaces.message_notifier import (
    MessageCreatedEvent,
    MessageNotifier,
    MessageReadEvent,
)

logger = logging.getLogger(__name__)


class DeferredNotifier(MessageNotifier, ConversationNotifier):
    """Collects events during a unit of work and hands them to the real
    notifiers only when `flush()` is called, after the session committed.

    Delivery is best effort: a failing transport is logged and skipped, it
    never reaches the caller.
    """

    def __init__(
        self,
        *,
        message_notifier: MessageNotifier,
        conversation_notifier: ConversationNotifier,
    ) -> None:
        self._message_notifier = message_notifier
        self._conversation_notifier = conversation_notifier
        self._pending: list[tuple[Callable[[Any], None], Any]] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def notify_message_created(self, event: MessageCreatedEvent) -> None:
        self._pending.append((self._message_notifier.notify_message_created, event))

    def notify_message_read(self, event: MessageReadEvent) -> None:
        self._pending.append((self._message_notifier.notify_message_read, event))

    def notify_conversation_created(self, event: ConversationCreatedEvent) -> None:
        self._pending.append((self._conversation_notifier.notify_conversation_created, event))

    def flush(self) -> int:
        pending, self._pending = self._pending, []
        delivered = 0
        for send, event in pending:
            try:
                send(event)
                delivered += 1
            except Exception:
                logger.exception("notification %s dropped", type(event).__name__)
        return delivered
