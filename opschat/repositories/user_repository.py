# opschat/repositories/user_repository.py

from datetime import datetime
from typing import Iterable

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from opschat.core.base_repository import BaseRepository
from opschat.core.clock import utcnow
from opschat.entities.user import UserRef
from opschat.infrastructure.database.models.role_model import RoleModel
from opschat.infrastructure.database.models.user_model import UserModel


class UserRepository(BaseRepository[UserModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def _rows_stmt(self):
        return (
            select(UserModel, RoleModel.name)
            .join(RoleModel, RoleModel.id == UserModel.role_id)
            .where(UserModel.is_deleted.is_(False))
        )

    def get_by_id(self, user_id: int) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.id == user_id, UserModel.is_deleted.is_(False))
        return self._session.execute(stmt).scalar_one_or_none()

    def get_ref(self, user_id: int) -> UserRef | None:
        # inactive accounts can neither act nor be targeted
        stmt = self._rows_stmt().where(UserModel.id == user_id, UserModel.status == "active")
        row = self._session.execute(stmt).first()
        if row is None:
            return None
        user, role_name = row
        return UserRef(id=int(user.id), role=role_name, client_id=user.client_id)

    def get_refs(self, user_ids: Iterable[int]) -> dict[int, UserRef]:
        ids = list({int(x) for x in user_ids})
        if not ids:
            return {}
        stmt = self._rows_stmt().where(UserModel.id.in_(ids), UserModel.status == "active")
        return {
            int(u.id): UserRef(id=int(u.id), role=role_name, client_id=u.client_id)
            for u, role_name in self._session.execute(stmt).all()
        }

    def list_by_ids(self, user_ids: Iterable[int]) -> list[UserModel]:
        ids = list({int(x) for x in user_ids})
        if not ids:
            return []
        stmt = select(UserModel).where(UserModel.id.in_(ids))
        return list(self._session.execute(stmt).scalars().all())

    def list_active_rows(
        self,
        *,
        exclude_user_id: int | None = None,
        user_ids: Iterable[int] | None = None,
        role_names_in: Iterable[str] | None = None,
        role_names_not_in: Iterable[str] | None = None,
        client_ids_in: Iterable[int] | None = None,
        search: str | None = None,
    ):
        """Active users joined with their role name, ordered by name.

        Empty `user_ids` / `client_ids_in` collections match nobody.
        """
        stmt = self._rows_stmt().where(UserModel.status == "active")

        if exclude_user_id is not None:
            stmt = stmt.where(UserModel.id != exclude_user_id)

        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            stmt = stmt.where(UserModel.id.in_(ids))

        if role_names_in is not None:
            stmt = stmt.where(func.lower(RoleModel.name).in_([r.lower() for r in role_names_in]))

        if role_names_not_in is not None:
            stmt = stmt.where(func.lower(RoleModel.name).not_in([r.lower() for r in role_names_not_in]))

        if client_ids_in is not None:
            cids = list(client_ids_in)
            if not cids:
                return []
            stmt = stmt.where(UserModel.client_id.in_(cids))

        q = (search or "").strip()
        if q:
            pattern = f"%{q.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(UserModel.full_name).like(pattern),
                    func.lower(UserModel.email).like(pattern),
                )
            )

        stmt = stmt.order_by(UserModel.full_name.asc(), UserModel.id.asc())
        return list(self._session.execute(stmt).all())

    def touch_last_seen(self, user_id: int, *, at: datetime | None = None) -> bool:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.is_deleted.is_(False))
            .values(last_seen_at=at or utcnow())
        )
        result = self._session.execute(stmt)
        return (result.rowcount or 0) > 0
