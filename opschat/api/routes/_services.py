# opschat/api/routes/_services.py
"""Per-request wiring of repositories and services.

Every route opens one `db_session()`, builds the graph below on it, and
flushes the deferred notifier once the session has committed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from opschat.infrastructure.realtime.deferred_notifier import DeferredNotifier
from opschat.infrastructure.realtime.socketio_conversation_notifier import SocketIOConversationNotifier
from opschat.infrastructure.realtime.socketio_message_notifier import SocketIOMessageNotifier
from opschat.repositories.client_repository import ClientRepository
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository
from opschat.repositories.message_repository import MessageRepository
from opschat.repositories.team_repository import TeamRepository
from opschat.repositories.user_repository import UserRepository
from opschat.services.access_policy_service import AccessPolicyService
from opschat.services.conversation_service import ConversationService
from opschat.services.forwarding_service import ForwardingService
from opschat.services.message_service import MessageService
from opschat.services.read_service import ReadService
from opschat.services.roster_service import RosterService
from opschat.services.team_conversation_service import TeamConversationService


@dataclass
class ChatServices:
    conversations: ConversationService
    messages: MessageService
    reads: ReadService
    roster: RosterService
    teams: TeamConversationService
    forwarding: ForwardingService


def build_notifier() -> DeferredNotifier:
    # tests plug a recording notifier in through the app config
    override = current_app.config.get("CHAT_NOTIFIER")
    if override is not None:
        return DeferredNotifier(message_notifier=override, conversation_notifier=override)
    return DeferredNotifier(
        message_notifier=SocketIOMessageNotifier(),
        conversation_notifier=SocketIOConversationNotifier(),
    )


def build_services(session, notifier, *, online_window: timedelta | None = None) -> ChatServices:
    user_repo = UserRepository(session)
    client_repo = ClientRepository(session)
    conv_repo = ConversationRepository(session)
    part_repo = ConversationParticipantRepository(session)
    msg_repo = MessageRepository(session)

    policy = AccessPolicyService(
        user_repo=user_repo,
        client_repo=client_repo,
        conv_repo=conv_repo,
        part_repo=part_repo,
    )
    conversations = ConversationService(
        conv_repo=conv_repo,
        part_repo=part_repo,
        msg_repo=msg_repo,
        user_repo=user_repo,
        policy=policy,
        notifier=notifier,
    )
    messages = MessageService(
        conv_repo=conv_repo,
        part_repo=part_repo,
        msg_repo=msg_repo,
        user_repo=user_repo,
        policy=policy,
        notifier=notifier,
    )
    window = online_window or timedelta(seconds=int(current_app.config.get("PRESENCE_WINDOW_SECONDS", 120)))

    return ChatServices(
        conversations=conversations,
        messages=messages,
        reads=ReadService(part_repo=part_repo, notifier=notifier),
        roster=RosterService(user_repo=user_repo, client_repo=client_repo, online_window=window),
        teams=TeamConversationService(
            team_repo=TeamRepository(session),
            conv_repo=conv_repo,
            part_repo=part_repo,
            conversations=conversations,
        ),
        forwarding=ForwardingService(
            msg_repo=msg_repo,
            part_repo=part_repo,
            policy=policy,
            conversations=conversations,
            messages=messages,
        ),
    )
