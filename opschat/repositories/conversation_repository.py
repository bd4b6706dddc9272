# opschat/repositories/conversation_repository.py
from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from opschat.core.base_repository import BaseRepository
from opschat.core.clock import utcnow
from opschat.infrastructure.database.models.conversation_model import ConversationModel
from opschat.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)


def dm_key(user_a: int, user_b: int) -> str:
    low, high = sorted((int(user_a), int(user_b)))
    return f"dm:{low}:{high}"


def team_key(team_id: int) -> str:
    return f"team:{int(team_id)}"


class ConversationRepository(BaseRepository[ConversationModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def _last_activity(self):
        return func.coalesce(ConversationModel.updated_at, ConversationModel.created_at)

    def get_by_id(self, conversation_id: int) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.id == conversation_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def list_by_ids(self, conversation_ids: list[int]) -> list[ConversationModel]:
        if not conversation_ids:
            return []
        stmt = select(ConversationModel).where(ConversationModel.id.in_(conversation_ids))
        return list(self._session.execute(stmt).scalars().all())

    def get_by_dedupe_key(self, key: str) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.dedupe_key == key)
        return self._session.execute(stmt).scalar_one_or_none()

    def find_dm_between(self, user_a: int, user_b: int) -> ConversationModel | None:
        """Oldest dm whose participant set is exactly {a, b}.

        Rows created before dedupe keys existed are matched by membership.
        """
        keyed = self.get_by_dedupe_key(dm_key(user_a, user_b))
        if keyed is not None:
            return keyed

        pa = aliased(ConversationParticipantModel)
        pb = aliased(ConversationParticipantModel)
        size = (
            select(func.count(ConversationParticipantModel.id))
            .where(ConversationParticipantModel.conversation_id == ConversationModel.id)
            .scalar_subquery()
        )
        stmt = (
            select(ConversationModel)
            .join(pa, and_(pa.conversation_id == ConversationModel.id, pa.user_id == user_a))
            .join(pb, and_(pb.conversation_id == ConversationModel.id, pb.user_id == user_b))
            .where(ConversationModel.type == "dm", size == 2)
            .order_by(ConversationModel.id.asc())
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def find_team_conversation(self, team_id: int) -> ConversationModel | None:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.type == "team", ConversationModel.team_id == team_id)
            .order_by(ConversationModel.id.asc())
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def add_with_participants(
        self,
        model: ConversationModel,
        members: dict[int, str],
    ) -> ConversationModel | None:
        """Insert the conversation and its participants in one SAVEPOINT.

        `members` maps user id -> participant role. Returns None when the
        dedupe key is already taken (a concurrent creator won); the outer
        transaction stays usable.
        """
        try:
            with self._session.begin_nested():
                self._session.add(model)
                self._session.flush()
                joined_at = model.created_at or utcnow()
                for user_id, role in members.items():
                    self._session.add(
                        ConversationParticipantModel(
                            conversation_id=model.id,
                            user_id=user_id,
                            role=role,
                            joined_at=joined_at,
                        )
                    )
                self._session.flush()
        except IntegrityError:
            if model.dedupe_key is None:
                raise
            return None
        return model

    def list_page_for_user(self, *, user_id: int, cursor: int | None, take: int) -> list[ConversationModel]:
        activity = self._last_activity()
        stmt = (
            select(ConversationModel)
            .join(
                ConversationParticipantModel,
                ConversationParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(ConversationParticipantModel.user_id == user_id)
        )

        if cursor is not None:
            anchor = self._session.execute(
                select(activity).where(ConversationModel.id == cursor)
            ).scalar_one_or_none()
            if anchor is not None:
                stmt = stmt.where(
                    or_(
                        activity < anchor,
                        and_(activity == anchor, ConversationModel.id < cursor),
                    )
                )

        stmt = stmt.order_by(activity.desc(), ConversationModel.id.desc()).limit(take)
        return list(self._session.execute(stmt).scalars().all())

    def touch(self, conversation_id: int, *, at: datetime | None = None) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=at or utcnow())
        )
        self._session.execute(stmt)
