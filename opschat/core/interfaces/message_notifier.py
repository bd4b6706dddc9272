# opschat/core/interfaces/message_notifier.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class MessageCreatedEvent:
    conversation_id: int
    message_id: int
    sender_id: int
    content: str | None
    created_at_iso: str

    message_type: str | None = None
    message: dict[str, Any] | None = None          # full packed message
    sender: dict[str, Any] | None = None           # mini
    forwarded: dict[str, Any] | None = None        # provenance, only for relayed copies


@dataclass(frozen=True)
class MessageReadEvent:
    conversation_id: int
    user_id: int
    last_read_at_iso: str


class MessageNotifier(Protocol):
    def notify_message_created(self, event: MessageCreatedEvent) -> None:
        ...

    def notify_message_read(self, event: MessageReadEvent) -> None:
        ...
