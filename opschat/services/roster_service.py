# opschat/services/roster_service.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from opschat.core.clock import iso, utcnow
from opschat.core.presence import is_online
from opschat.core.roles import ADMIN_ROLE_NAMES, AM_ROLE_NAMES, Role
from opschat.entities.user import Actor
from opschat.repositories.client_repository import ClientRepository
from opschat.repositories.user_repository import UserRepository


class RosterService:
    def __init__(
        self,
        *,
        user_repo: UserRepository,
        client_repo: ClientRepository,
        online_window: timedelta = timedelta(minutes=2),
    ) -> None:
        self._users = user_repo
        self._clients = client_repo
        self._window = online_window

    def _visible_rows(self, actor: Actor, q: str):
        if actor.role == Role.CLIENT.value:
            am_id = self._clients.get_am_id(actor.client_id)
            if am_id is None:
                return []
            return self._users.list_active_rows(user_ids=[am_id], exclude_user_id=actor.id, search=q)

        if actor.role == Role.AGENT.value:
            return self._users.list_active_rows(
                exclude_user_id=actor.id,
                role_names_not_in=(Role.CLIENT.value, *AM_ROLE_NAMES),
                search=q,
            )

        if actor.role == Role.AM.value:
            staff = self._users.list_active_rows(
                exclude_user_id=actor.id,
                role_names_in=ADMIN_ROLE_NAMES,
                search=q,
            )
            clients = self._users.list_active_rows(
                exclude_user_id=actor.id,
                client_ids_in=self._clients.list_ids_managed_by(actor.id),
                search=q,
            )
            merged = {int(u.id): (u, role) for u, role in staff}
            for u, role in clients:
                merged.setdefault(int(u.id), (u, role))
            return sorted(merged.values(), key=lambda row: ((row[0].full_name or "").lower(), row[0].id))

        return self._users.list_active_rows(exclude_user_id=actor.id, search=q)

    def get_roster(self, actor: Actor, q: str | None = None, *, now: datetime | None = None) -> dict[str, Any]:
        q = (q or "").strip()
        now = now or utcnow()

        online: list[dict[str, Any]] = []
        offline: list[dict[str, Any]] = []
        for user, role_name in self._visible_rows(actor, q):
            row = {
                "id": int(user.id),
                "full_name": user.full_name,
                "email": user.email,
                "role": role_name,
                "last_seen_at": iso(user.last_seen_at),
                "is_online": is_online(user.last_seen_at, now, self._window),
            }
            (online if row["is_online"] else offline).append(row)

        return {
            "online": online,
            "offline": offline,
            "counts": {"online": len(online), "offline": len(offline)},
            "q": q,
        }

    def heartbeat(self, user_id: int) -> dict[str, Any]:
        now = utcnow()
        self._users.touch_last_seen(user_id, at=now)
        return {"user_id": user_id, "last_seen_at": iso(now)}
