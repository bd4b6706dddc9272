from datetime import timedelta

import pytest

from opschat.config.settings import settings
from opschat.core.clock import utcnow
from opschat.infrastructure.security.jwt_provider import JwtProvider


@pytest.fixture()
def people(factory, db):
    am = factory.user("Alice Am", "am", last_seen_at=utcnow() - timedelta(seconds=10))
    acme = factory.client("Acme", am=am)
    people = {
        "admin": factory.user("Ada Admin", "admin"),
        "am": am,
        "client": factory.user("Carl Client", "client", client=acme),
        "agent": factory.user("Gus Agent", "agent"),
        "agent2": factory.user("Hal Agent", "agent"),
    }
    db.commit()
    return people


def test_health(client):
    body = client.get(f"{settings.app_prefix}/health").get_json()
    assert body["status"] == "ok"
    assert body["service"] == "ops-chat-api"
    assert client.get(f"{settings.app_prefix}/health/db").get_json() == {"db": "ok"}


def test_missing_and_bad_tokens(client, api, people):
    assert client.get(f"{api}/chat/roster").status_code == 401

    res = client.get(f"{api}/chat/roster", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    assert res.get_json() == {"error": "Invalid token."}


def test_token_for_unknown_user(client, api, people):
    token = JwtProvider().issue_access_token(subject="4242")

    res = client.get(f"{api}/chat/roster", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 401


def test_dm_open_then_reuse(client, api, auth_headers, notifier, people):
    headers = auth_headers(people["agent"])

    first = client.post(f"{api}/chat/dm", json={"userId": people["agent2"].id}, headers=headers)
    second = client.post(f"{api}/chat/dm", json={"user_id": people["agent2"].id}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.get_json()["id"] == second.get_json()["id"]
    assert len(notifier.conversations) == 1


def test_dm_denied_and_invalid(client, api, auth_headers, notifier, people):
    headers = auth_headers(people["client"])

    denied = client.post(f"{api}/chat/dm", json={"userId": people["agent"].id}, headers=headers)
    self_dm = client.post(f"{api}/chat/dm", json={"userId": people["client"].id}, headers=headers)
    missing = client.post(f"{api}/chat/dm", json={}, headers=headers)

    assert denied.status_code == 403
    assert denied.get_json() == {"error": "Forbidden"}
    assert self_dm.status_code == 400
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Invalid input"
    assert notifier.conversations == []


def test_message_flow(client, api, auth_headers, notifier, people):
    am, cl = auth_headers(people["am"]), auth_headers(people["client"])
    conv_id = client.post(f"{api}/chat/dm", json={"userId": people["am"].id}, headers=cl).get_json()["id"]

    sent = client.post(
        f"{api}/chat/conversations/{conv_id}/messages", json={"content": "hello"}, headers=cl
    )
    assert sent.status_code == 201
    assert sent.get_json()["message"]["content"] == "hello"
    assert [e.content for e in notifier.messages] == ["hello"]

    listing = client.get(f"{api}/chat/conversations", headers=am).get_json()
    assert listing["items"][0]["id"] == conv_id
    assert listing["items"][0]["unread_count"] == 1
    assert listing["items"][0]["last_message"]["content"] == "hello"

    read = client.post(f"{api}/chat/conversations/{conv_id}/read", headers=am)
    assert read.get_json() == {"conversation_id": conv_id, "updated": True, "unread_count": 0}
    assert len(notifier.reads) == 1

    page = client.get(f"{api}/chat/conversations/{conv_id}/messages", headers=am).get_json()
    assert [m["content"] for m in page["messages"]] == ["hello"]

    detail = client.get(f"{api}/chat/conversations/{conv_id}", headers=am).get_json()
    assert detail["unread_count"] == 0
    assert {p["user_id"] for p in detail["participants"]} == {people["am"].id, people["client"].id}

    message_id = sent.get_json()["message"]["id"]
    deleted = client.delete(f"{api}/chat/conversations/{conv_id}/messages/{message_id}", headers=cl)
    assert deleted.status_code == 204


def test_group_participants(client, api, auth_headers, people):
    admin = auth_headers(people["admin"])
    created = client.post(
        f"{api}/chat/conversations",
        json={"type": "group", "title": "Ops", "memberIds": [people["agent"].id]},
        headers=admin,
    )
    assert created.status_code == 201
    conv_id = created.get_json()["id"]

    added = client.post(
        f"{api}/chat/conversations/{conv_id}/participants",
        json={"userIds": [people["agent2"].id]},
        headers=admin,
    )
    assert added.get_json() == {"ok": True, "added": 1, "user_ids": [people["agent2"].id]}

    owner = client.delete(
        f"{api}/chat/conversations/{conv_id}/participants/{people['admin'].id}", headers=admin
    )
    assert owner.status_code == 409

    removed = client.delete(
        f"{api}/chat/conversations/{conv_id}/participants/{people['agent2'].id}", headers=admin
    )
    assert removed.status_code == 200

    members = client.get(f"{api}/chat/conversations/{conv_id}/participants", headers=admin).get_json()
    assert sorted(m["user_id"] for m in members) == sorted([people["admin"].id, people["agent"].id])

    empty = client.post(f"{api}/chat/conversations/{conv_id}/participants", json={}, headers=admin)
    assert empty.status_code == 400


def test_forward(client, api, auth_headers, people):
    cl = auth_headers(people["client"])
    conv_id = client.post(f"{api}/chat/dm", json={"userId": people["am"].id}, headers=cl).get_json()["id"]
    msg_id = client.post(
        f"{api}/chat/conversations/{conv_id}/messages", json={"content": "fyi"}, headers=cl
    ).get_json()["message"]["id"]

    res = client.post(
        f"{api}/chat/messages/{msg_id}/forward",
        json={"targetUserIds": [people["am"].id, people["agent"].id], "targetConversationIds": [conv_id]},
        headers=cl,
    )

    body = res.get_json()
    assert res.status_code == 200
    assert len(body["forwarded"]) == 2
    assert [r["ok"] for r in body["results"] if r["target_type"] == "user" and r["target_id"] == people["agent"].id] == [False]

    nothing = client.post(
        f"{api}/chat/messages/{msg_id}/forward", json={"targetUserIds": [people["agent"].id]}, headers=cl
    )
    assert nothing.status_code == 403


def test_roster_and_heartbeat(client, api, auth_headers, people):
    roster = client.get(f"{api}/chat/roster", headers=auth_headers(people["client"])).get_json()
    assert [u["id"] for u in roster["online"]] == [people["am"].id]
    assert roster["counts"] == {"online": 1, "offline": 0}

    beat = client.post(f"{api}/presence/heartbeat", headers=auth_headers(people["agent"]))
    assert beat.status_code == 200
    assert beat.get_json()["user_id"] == people["agent"].id

    staff = client.get(f"{api}/chat/roster?q=gus", headers=auth_headers(people["admin"])).get_json()
    assert [u["id"] for u in staff["online"]] == [people["agent"].id]


def test_team_route(client, api, auth_headers, factory, people):
    team = factory.team("Night Shift")
    factory.template_team_member(team, people["agent"])

    res = client.post(f"{api}/chat/team", json={"teamId": team.id}, headers=auth_headers(people["agent"]))
    again = client.post(f"{api}/chat/team", json={"teamId": team.id}, headers=auth_headers(people["admin"]))

    assert res.status_code == 201
    assert again.status_code == 200
    assert res.get_json()["id"] == again.get_json()["id"]
    assert res.get_json()["title"] == "Team: Night Shift"


def test_unknown_route(client, api):
    res = client.get(f"{api}/nope")
    assert res.status_code == 404
    assert "error" in res.get_json()


def test_inactive_account_cannot_act_or_be_reached(client, api, auth_headers, factory, people):
    gone = factory.user("Gina Gone", "agent", status="inactive")

    acting = client.get(f"{api}/chat/roster", headers=auth_headers(gone))
    target = client.post(f"{api}/chat/dm", json={"userId": gone.id}, headers=auth_headers(people["agent"]))

    assert acting.status_code == 401
    assert target.status_code == 400


def test_team_room_through_generic_create(client, api, auth_headers, factory, people):
    team = factory.team("Day Shift")
    factory.template_team_member(team, people["agent"])
    admin = auth_headers(people["admin"])

    opened = client.post(f"{api}/chat/team", json={"teamId": team.id}, headers=auth_headers(people["agent"]))
    duplicate = client.post(
        f"{api}/chat/conversations", json={"type": "team", "teamId": team.id}, headers=admin
    )
    no_team = client.post(f"{api}/chat/conversations", json={"type": "team"}, headers=admin)

    assert opened.status_code == 201
    assert duplicate.status_code == 409
    assert no_team.status_code == 400
