import os
from datetime import timedelta

import pytest

# settings and the Socket.IO server are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SOCKETIO_ASYNC_MODE"] = "threading"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DEBUG"] = "false"

from sqlalchemy import event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from opschat.api.routes._services import build_services  # noqa: E402
from opschat.app_factory import create_app  # noqa: E402
from opschat.config.settings import settings  # noqa: E402
from opschat.entities.user import Actor  # noqa: E402
from opschat.infrastructure.database.base_model import BaseModel  # noqa: E402
from opschat.infrastructure.database.models import (  # noqa: E402
    ClientModel,
    ClientTeamMemberModel,
    RoleModel,
    TeamModel,
    TemplateTeamMemberModel,
    UserModel,
)
from opschat.infrastructure.database.session import init_engine  # noqa: E402
from opschat.infrastructure.security.jwt_provider import JwtProvider  # noqa: E402
from opschat.repositories.client_repository import ClientRepository  # noqa: E402
from opschat.repositories.team_repository import TeamRepository  # noqa: E402
from opschat.repositories.user_repository import UserRepository  # noqa: E402


class RecordingNotifier:
    """Stands in for the Socket.IO notifiers and keeps every event."""

    def __init__(self):
        self.messages = []
        self.reads = []
        self.conversations = []

    def notify_message_created(self, event):
        self.messages.append(event)

    def notify_message_read(self, event):
        self.reads.append(event)

    def notify_conversation_created(self, event):
        self.conversations.append(event)


class Factory:
    def __init__(self, session: Session):
        self.session = session
        self._roles: dict[str, RoleModel] = {}

    def role(self, name: str) -> RoleModel:
        if name not in self._roles:
            role = RoleModel(id=len(self._roles) + 1, name=name)
            self.session.add(role)
            self.session.commit()
            self._roles[name] = role
        return self._roles[name]

    def user(self, full_name: str, role: str, *, client=None, last_seen_at=None, status="active") -> UserModel:
        user = UserModel(
            full_name=full_name,
            email=f"{full_name.lower().replace(' ', '.')}@example.com",
            role_id=self.role(role).id,
            client_id=client.id if client is not None else None,
            status=status,
            last_seen_at=last_seen_at,
        )
        UserRepository(self.session).add(user)
        self.session.commit()
        return user

    def client(self, name: str, *, am=None) -> ClientModel:
        client = ClientRepository(self.session).add(
            ClientModel(name=name, am_id=am.id if am is not None else None)
        )
        self.session.commit()
        return client

    def team(self, name: str) -> TeamModel:
        team = TeamRepository(self.session).add(TeamModel(name=name))
        self.session.commit()
        return team

    def client_team_member(self, team, agent, client=None) -> None:
        self.session.add(
            ClientTeamMemberModel(
                team_id=team.id, agent_id=agent.id, client_id=client.id if client is not None else None
            )
        )
        self.session.commit()

    def template_team_member(self, team, agent) -> None:
        self.session.add(TemplateTeamMemberModel(team_id=team.id, agent_id=agent.id))
        self.session.commit()

    def actor(self, user: UserModel) -> Actor:
        ref = UserRepository(self.session).get_ref(user.id)
        return Actor(id=ref.id, role=ref.role, client_id=ref.client_id)


@pytest.fixture()
def engine():
    engine = init_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        pool_pre_ping=False,
    )

    # let SQLAlchemy drive BEGIN so SAVEPOINTs behave under pysqlite
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    BaseModel.metadata.create_all(engine)
    yield engine
    BaseModel.metadata.drop_all(engine)


@pytest.fixture()
def db(engine):
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def factory(db):
    return Factory(db)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def chat(db, notifier, app):
    with app.app_context():
        yield build_services(db, notifier, online_window=timedelta(minutes=2))


@pytest.fixture()
def app(engine, notifier):
    return create_app({"TESTING": True, "CHAT_NOTIFIER": notifier})


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def api():
    return settings.api_prefix


@pytest.fixture()
def auth_headers():
    def _headers(user) -> dict:
        token = JwtProvider().issue_access_token(subject=str(user.id))
        return {"Authorization": f"Bearer {token}"}

    return _headers
