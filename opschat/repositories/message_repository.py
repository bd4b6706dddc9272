# opschat/repositories/message_repository.py

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, aliased

from opschat.core.base_repository import BaseRepository
from opschat.core.clock import utcnow
from opschat.infrastructure.database.models.message_model import MessageModel
from opschat.infrastructure.database.models.user_model import UserModel


class MessageRepository(BaseRepository[MessageModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def soft_delete(self, *, message_id: int) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.deleted_at.is_(None))
            .values(deleted_at=utcnow())
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def get_row(self, *, message_id: int):
        sender = aliased(UserModel)
        stmt = (
            select(MessageModel, sender)
            .join(sender, sender.id == MessageModel.sender_id)
            .where(MessageModel.id == message_id, MessageModel.deleted_at.is_(None))
        )
        return self._session.execute(stmt).first()  # (msg, sender) | None

    def list_rows_page(self, *, conversation_id: int, cursor: int | None, take: int):
        """Newest first, `take` rows older than the `cursor` message id."""
        sender = aliased(UserModel)
        stmt = (
            select(MessageModel, sender)
            .join(sender, sender.id == MessageModel.sender_id)
            .where(MessageModel.conversation_id == conversation_id, MessageModel.deleted_at.is_(None))
        )
        if cursor is not None:
            stmt = stmt.where(MessageModel.id < cursor)
        stmt = stmt.order_by(MessageModel.id.desc()).limit(take)
        return list(self._session.execute(stmt).all())

    def latest_by_conversation(self, conversation_ids: list[int]) -> dict[int, MessageModel]:
        if not conversation_ids:
            return {}
        latest_ids = (
            select(func.max(MessageModel.id))
            .where(
                MessageModel.conversation_id.in_(conversation_ids),
                MessageModel.deleted_at.is_(None),
            )
            .group_by(MessageModel.conversation_id)
        )
        stmt = select(MessageModel).where(MessageModel.id.in_(latest_ids))
        return {int(m.conversation_id): m for m in self._session.execute(stmt).scalars().all()}
