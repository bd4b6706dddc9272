# opschat/repositories/conversation_participant_repository.py
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opschat.core.base_repository import BaseRepository
from opschat.core.clock import utcnow
from opschat.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)
from opschat.infrastructure.database.models.message_model import MessageModel
from opschat.infrastructure.database.models.user_model import UserModel


class ConversationParticipantRepository(BaseRepository[ConversationParticipantModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, *, conversation_id: int, user_id: int) -> ConversationParticipantModel | None:
        stmt = select(ConversationParticipantModel).where(
            ConversationParticipantModel.conversation_id == conversation_id,
            ConversationParticipantModel.user_id == user_id,
        )
        return self._session.execute(stmt).scalars().first()

    def is_participant(self, *, conversation_id: int, user_id: int) -> bool:
        return self.get(conversation_id=conversation_id, user_id=user_id) is not None

    def list_user_ids(self, conversation_id: int) -> list[int]:
        stmt = (
            select(ConversationParticipantModel.user_id)
            .where(ConversationParticipantModel.conversation_id == conversation_id)
            .order_by(ConversationParticipantModel.id.asc())
        )
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def list_rows(self, conversation_ids: Iterable[int]):
        ids = list(conversation_ids)
        if not ids:
            return []
        stmt = (
            select(ConversationParticipantModel, UserModel)
            .join(UserModel, UserModel.id == ConversationParticipantModel.user_id)
            .where(ConversationParticipantModel.conversation_id.in_(ids))
            .order_by(ConversationParticipantModel.id.asc())
        )
        return list(self._session.execute(stmt).all())  # [(participant, user)]

    def user_ids_by_conversation(self, conversation_ids: Iterable[int]) -> dict[int, list[int]]:
        ids = list(conversation_ids)
        out: dict[int, list[int]] = {cid: [] for cid in ids}
        if not ids:
            return out
        stmt = (
            select(ConversationParticipantModel.conversation_id, ConversationParticipantModel.user_id)
            .where(ConversationParticipantModel.conversation_id.in_(ids))
            .order_by(ConversationParticipantModel.id.asc())
        )
        for conversation_id, user_id in self._session.execute(stmt).all():
            out[int(conversation_id)].append(int(user_id))
        return out

    def add_missing(self, *, conversation_id: int, user_ids: Iterable[int], role: str = "member") -> list[int]:
        """Insert participants not already present; returns the ids added."""
        wanted = list(dict.fromkeys(int(u) for u in user_ids if u is not None))
        if not wanted:
            return []

        existing = set(self.list_user_ids(conversation_id))
        to_add = [u for u in wanted if u not in existing]

        added: list[int] = []
        for user_id in to_add:
            if self._insert_one(conversation_id=conversation_id, user_id=user_id, role=role):
                added.append(user_id)
        return added

    def ensure(self, *, conversation_id: int, user_id: int, role: str = "member") -> ConversationParticipantModel:
        existing = self.get(conversation_id=conversation_id, user_id=user_id)
        if existing:
            return existing

        self._insert_one(conversation_id=conversation_id, user_id=user_id, role=role)
        return self.get(conversation_id=conversation_id, user_id=user_id)

    def _insert_one(self, *, conversation_id: int, user_id: int, role: str) -> bool:
        # a concurrent insert of the same pair loses quietly on the unique key
        try:
            with self._session.begin_nested():
                self._session.add(
                    ConversationParticipantModel(
                        conversation_id=conversation_id,
                        user_id=user_id,
                        role=role,
                        joined_at=utcnow(),
                    )
                )
                self._session.flush()
        except IntegrityError:
            return False
        return True

    def delete(self, *, conversation_id: int, user_id: int) -> bool:
        stmt = delete(ConversationParticipantModel).where(
            ConversationParticipantModel.conversation_id == conversation_id,
            ConversationParticipantModel.user_id == user_id,
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def advance_last_read(self, *, conversation_id: int, user_id: int, at: datetime | None = None) -> bool:
        """Move the read watermark forward to `at`. Never moves it back."""
        at = at or utcnow()
        stmt = (
            update(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
                or_(
                    ConversationParticipantModel.last_read_at.is_(None),
                    ConversationParticipantModel.last_read_at < at,
                ),
            )
            .values(last_read_at=at)
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def _unread_stmt(self, *, user_id: int):
        return (
            select(
                MessageModel.conversation_id,
                func.count(MessageModel.id).label("unread_count"),
            )
            .join(
                ConversationParticipantModel,
                ConversationParticipantModel.conversation_id == MessageModel.conversation_id,
            )
            .where(
                ConversationParticipantModel.user_id == user_id,

                # after the watermark (NULL: nothing read yet)
                or_(
                    ConversationParticipantModel.last_read_at.is_(None),
                    MessageModel.created_at > ConversationParticipantModel.last_read_at,
                ),

                # own messages never count
                MessageModel.sender_id != user_id,

                MessageModel.deleted_at.is_(None),
            )
            .group_by(MessageModel.conversation_id)
        )

    def unread_count(self, *, conversation_id: int, user_id: int) -> int:
        stmt = self._unread_stmt(user_id=user_id).where(MessageModel.conversation_id == conversation_id)
        row = self._session.execute(stmt).first()
        return int(row.unread_count) if row else 0

    def unread_count_by_conversation(self, *, user_id: int, conversation_ids: Iterable[int]) -> dict[int, int]:
        """
        Returns a dict:
        {
            conversation_id: unread_count
        }
        Conversations without unread messages are absent.
        """
        ids = list(conversation_ids)
        if not ids:
            return {}
        stmt = self._unread_stmt(user_id=user_id).where(MessageModel.conversation_id.in_(ids))
        rows = self._session.execute(stmt).all()
        return {int(row.conversation_id): int(row.unread_count) for row in rows}
