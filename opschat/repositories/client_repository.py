# opschat/repositories/client_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from opschat.core.base_repository import BaseRepository
from opschat.infrastructure.database.models.client_model import ClientModel


class ClientRepository(BaseRepository[ClientModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_am_id(self, client_id: int | None) -> int | None:
        if client_id is None:
            return None
        stmt = select(ClientModel.am_id).where(ClientModel.id == client_id)
        am_id = self._session.execute(stmt).scalar_one_or_none()
        return int(am_id) if am_id is not None else None

    def list_ids_managed_by(self, am_id: int) -> list[int]:
        stmt = select(ClientModel.id).where(ClientModel.am_id == am_id)
        return [int(x) for x in self._session.execute(stmt).scalars().all()]
