import pytest

from opschat.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from opschat.infrastructure.database.models import ConversationModel, ConversationParticipantModel
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository, dm_key


@pytest.fixture()
def people(factory):
    am = factory.user("Alice Am", "am")
    company = factory.client("Acme", am=am)
    return {
        "admin": factory.user("Ada Admin", "admin"),
        "am": am,
        "client": factory.user("Carl Client", "client", client=company),
        "agent": factory.user("Gus Agent", "agent"),
        "agent2": factory.user("Hal Agent", "agent"),
    }


def _roles(db, conversation_id):
    rows = ConversationParticipantRepository(db).list_rows([conversation_id])
    return {p.user_id: p.role for p, _ in rows}


class TestDirectMessages:
    def test_open_twice_returns_the_same_conversation(self, chat, factory, people):
        agent = factory.actor(people["agent"])

        first, created = chat.conversations.open_or_create_dm(agent, people["agent2"].id)
        second, created_again = chat.conversations.open_or_create_dm(agent, people["agent2"].id)

        assert created is True
        assert created_again is False
        assert first["id"] == second["id"]

    def test_either_side_finds_the_same_dm(self, chat, factory, people):
        conv, _ = chat.conversations.open_or_create_dm(factory.actor(people["agent"]), people["agent2"].id)
        other, created = chat.conversations.open_or_create_dm(factory.actor(people["agent2"]), people["agent"].id)

        assert created is False
        assert other["id"] == conv["id"]

    def test_dm_has_two_participants_and_an_owner(self, chat, db, factory, people):
        conv, _ = chat.conversations.open_or_create_dm(factory.actor(people["agent"]), people["agent2"].id)

        assert _roles(db, conv["id"]) == {people["agent"].id: "owner", people["agent2"].id: "member"}
        assert conv["type"] == "dm"

    def test_dm_with_self_is_rejected(self, chat, factory, people):
        with pytest.raises(InvalidInputError):
            chat.conversations.find_or_create_dm(people["agent"].id, people["agent"].id)

    def test_policy_denial_is_generic(self, chat, factory, people):
        with pytest.raises(ForbiddenError) as exc:
            chat.conversations.open_or_create_dm(factory.actor(people["client"]), people["agent"].id)
        assert str(exc.value) == "Forbidden"

    def test_legacy_dm_without_key_is_reused(self, chat, db, people):
        a, b = people["agent"].id, people["agent2"].id
        legacy = ConversationModel(type="dm", created_by=a)
        db.add(legacy)
        db.flush()
        db.add_all([
            ConversationParticipantModel(conversation_id=legacy.id, user_id=a, role="owner"),
            ConversationParticipantModel(conversation_id=legacy.id, user_id=b, role="member"),
        ])
        db.flush()

        conv, created = chat.conversations.find_or_create_dm(b, a)

        assert created is False
        assert conv.id == legacy.id

    def test_taken_dedupe_key_returns_none_and_keeps_session_usable(self, chat, db, people):
        a, b = people["agent"].id, people["agent2"].id
        winner, _ = chat.conversations.find_or_create_dm(a, b)

        loser = chat.conversations.create_conversation(
            type="dm", created_by=b, member_ids=[a], dedupe_key=dm_key(a, b)
        )

        assert loser is None
        assert ConversationRepository(db).get_by_dedupe_key(dm_key(b, a)).id == winner.id

    def test_losing_the_race_returns_the_winner(self, chat, people, monkeypatch):
        a, b = people["agent"].id, people["agent2"].id
        winner, _ = chat.conversations.find_or_create_dm(a, b)

        # the loser did not see the winner's row when it checked
        monkeypatch.setattr(chat.conversations._repo, "find_dm_between", lambda x, y: None)

        conv, created = chat.conversations.find_or_create_dm(b, a)

        assert created is False
        assert conv.id == winner.id

    def test_inactive_user_is_not_a_target(self, chat, factory, people):
        gone = factory.user("Gina Gone", "agent", status="inactive")

        with pytest.raises(InvalidInputError):
            chat.conversations.open_or_create_dm(factory.actor(people["agent"]), gone.id)

    def test_creation_is_announced(self, chat, notifier, factory, people):
        conv, _ = chat.conversations.open_or_create_dm(factory.actor(people["agent"]), people["agent2"].id)
        chat.conversations.open_or_create_dm(factory.actor(people["agent"]), people["agent2"].id)

        assert len(notifier.conversations) == 1
        event = notifier.conversations[0]
        assert event.conversation_id == conv["id"]
        assert set(event.participant_ids) == {people["agent"].id, people["agent2"].id}


class TestParticipants:
    def _group(self, chat, factory, people):
        return chat.conversations.create_for_actor(
            factory.actor(people["admin"]),
            type="group",
            title="  Ops  ",
            member_ids=[people["agent"].id],
        )

    def test_creator_is_owner(self, chat, db, factory, people):
        conv = self._group(chat, factory, people)

        assert conv["title"] == "Ops"
        assert _roles(db, conv["id"])[people["admin"].id] == "owner"

    def test_removing_the_creator_conflicts(self, chat, factory, people):
        conv = self._group(chat, factory, people)

        with pytest.raises(ConflictError):
            chat.conversations.remove_participant(conv["id"], people["admin"].id)

    def test_removing_a_member(self, chat, db, factory, people):
        conv = self._group(chat, factory, people)

        chat.conversations.remove_participant_for_actor(
            conv["id"], factory.actor(people["admin"]), people["agent"].id
        )

        assert people["agent"].id not in _roles(db, conv["id"])

    def test_removing_a_stranger(self, chat, factory, people):
        conv = self._group(chat, factory, people)

        with pytest.raises(NotFoundError):
            chat.conversations.remove_participant(conv["id"], people["agent2"].id)

    def test_adding_is_idempotent(self, chat, db, factory, people):
        conv = self._group(chat, factory, people)
        admin = factory.actor(people["admin"])

        added = chat.conversations.add_participants_for_actor(
            conv["id"], admin, [people["agent"].id, people["agent2"].id]
        )
        again = chat.conversations.add_participants_for_actor(conv["id"], admin, [people["agent2"].id])

        assert added == [people["agent2"].id]
        assert again == []
        assert _roles(db, conv["id"])[people["agent2"].id] == "member"

    def test_unknown_member(self, chat, factory, people):
        conv = self._group(chat, factory, people)

        with pytest.raises(InvalidInputError):
            chat.conversations.add_participants_for_actor(conv["id"], factory.actor(people["admin"]), [4242])

    def test_only_creator_or_staff_modify(self, chat, factory, people):
        conv = self._group(chat, factory, people)

        with pytest.raises(ForbiddenError):
            chat.conversations.add_participants_for_actor(
                conv["id"], factory.actor(people["agent"]), [people["agent2"].id]
            )

    def test_dm_membership_is_fixed(self, chat, factory, people):
        conv, _ = chat.conversations.find_or_create_dm(people["agent"].id, people["agent2"].id)

        with pytest.raises(ConflictError):
            chat.conversations.add_participants(conv.id, [people["admin"].id])
        with pytest.raises(ConflictError):
            chat.conversations.remove_participant(conv.id, people["agent2"].id)


class TestCreateForActor:
    def test_client_cannot_open_groups(self, chat, factory, people):
        with pytest.raises(ForbiddenError):
            chat.conversations.create_for_actor(
                factory.actor(people["client"]), type="group", member_ids=[people["am"].id]
            )

    def test_dm_create_reuses_existing(self, chat, factory, people):
        client = factory.actor(people["client"])

        first = chat.conversations.create_for_actor(client, type="dm", member_ids=[people["am"].id])
        second = chat.conversations.create_for_actor(client, type="dm", member_ids=[people["am"].id])

        assert first["id"] == second["id"]

    def test_unknown_member(self, chat, factory, people):
        with pytest.raises(InvalidInputError):
            chat.conversations.create_for_actor(factory.actor(people["admin"]), type="group", member_ids=[777])


class TestListing:
    def test_most_recent_activity_first(self, chat, factory, people):
        agent = factory.actor(people["agent"])
        older, _ = chat.conversations.open_or_create_dm(agent, people["agent2"].id)
        newer, _ = chat.conversations.open_or_create_dm(agent, people["admin"].id)

        chat.messages.send_message(conversation_id=older["id"], actor=agent, content="bump")

        page = chat.conversations.list_for_user(agent.id)

        assert [c["id"] for c in page["items"]] == [older["id"], newer["id"]]
        assert page["items"][0]["last_message"]["content"] == "bump"
        assert page["items"][1]["last_message"] is None
        assert page["next_cursor"] is None

    def test_cursor_pages(self, chat, factory, people):
        admin = factory.actor(people["admin"])
        for key in ("agent", "agent2", "am"):
            chat.conversations.open_or_create_dm(admin, people[key].id)

        first = chat.conversations.list_for_user(admin.id, take=2)
        rest = chat.conversations.list_for_user(admin.id, cursor=first["next_cursor"], take=2)

        seen = [c["id"] for c in first["items"]] + [c["id"] for c in rest["items"]]
        assert len(first["items"]) == 2
        assert len(rest["items"]) == 1
        assert len(set(seen)) == 3

    def test_get_requires_membership(self, chat, factory, people):
        conv, _ = chat.conversations.open_or_create_dm(factory.actor(people["agent"]), people["agent2"].id)

        with pytest.raises(ForbiddenError):
            chat.conversations.get_conversation(conv["id"], factory.actor(people["admin"]))
        with pytest.raises(NotFoundError):
            chat.conversations.get_conversation(999, factory.actor(people["admin"]))
