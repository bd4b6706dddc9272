from datetime import timedelta

import pytest

from opschat.core.clock import utcnow
from opschat.core.presence import is_online


@pytest.fixture()
def org(factory):
    now = utcnow()
    am = factory.user("Alice Am", "Account Manager", last_seen_at=now - timedelta(seconds=30))
    other_am = factory.user("Otto Am", "am")
    acme = factory.client("Acme", am=am)
    globex = factory.client("Globex", am=other_am)
    return {
        "now": now,
        "am": am,
        "other_am": other_am,
        "client": factory.user("Carl Client", "client", client=acme),
        "colleague": factory.user("Cora Client", "client", client=acme),
        "foreign": factory.user("Fred Foreign", "client", client=globex),
        "admin": factory.user("Ada Admin", "admin", last_seen_at=now - timedelta(minutes=10)),
        "manager": factory.user("Max Manager", "manager"),
        "agent": factory.user("Gus Agent", "agent", last_seen_at=now),
        "qc": factory.user("Quinn Qc", "qc"),
        "gone": factory.user("Gina Gone", "agent", status="inactive"),
    }


def _ids(roster):
    return sorted(u["id"] for u in roster["online"] + roster["offline"])


def test_client_sees_only_their_account_manager(chat, factory, org):
    roster = chat.roster.get_roster(factory.actor(org["client"]), now=org["now"])

    assert _ids(roster) == [org["am"].id]
    assert roster["counts"] == {"online": 1, "offline": 0}
    assert roster["online"][0]["is_online"] is True


def test_client_am_goes_offline_after_two_minutes(chat, factory, org):
    later = org["now"] + timedelta(minutes=3)
    roster = chat.roster.get_roster(factory.actor(org["client"]), now=later)

    assert roster["online"] == []
    assert [u["id"] for u in roster["offline"]] == [org["am"].id]


def test_client_without_account_manager(chat, factory):
    orphan = factory.user("Olive Orphan", "client", client=factory.client("Nobody Inc"))

    roster = chat.roster.get_roster(factory.actor(orphan))

    assert roster["online"] == [] and roster["offline"] == []


def test_agent_never_sees_clients_or_account_managers(chat, factory, org):
    roster = chat.roster.get_roster(factory.actor(org["agent"]), now=org["now"])

    assert _ids(roster) == sorted([org["admin"].id, org["manager"].id, org["qc"].id])


def test_am_sees_staff_and_managed_clients(chat, factory, org):
    roster = chat.roster.get_roster(factory.actor(org["am"]), now=org["now"])

    assert _ids(roster) == sorted(
        [org["admin"].id, org["manager"].id, org["client"].id, org["colleague"].id]
    )


def test_admin_sees_every_active_user(chat, factory, org):
    roster = chat.roster.get_roster(factory.actor(org["admin"]), now=org["now"])

    assert org["admin"].id not in _ids(roster)
    assert org["gone"].id not in _ids(roster)
    assert len(_ids(roster)) == 8


def test_search_matches_name_or_email(chat, factory, org):
    admin = factory.actor(org["admin"])

    by_name = chat.roster.get_roster(admin, "  cora ", now=org["now"])
    by_email = chat.roster.get_roster(admin, "gus.agent@", now=org["now"])

    assert _ids(by_name) == [org["colleague"].id]
    assert by_name["q"] == "cora"
    assert _ids(by_email) == [org["agent"].id]


def test_heartbeat_brings_a_user_online(chat, factory, org):
    chat.roster.heartbeat(org["manager"].id)

    roster = chat.roster.get_roster(factory.actor(org["admin"]))

    assert org["manager"].id in [u["id"] for u in roster["online"]]


def test_presence_window_edges():
    now = utcnow()
    assert is_online(now - timedelta(minutes=2), now) is True
    assert is_online(now - timedelta(minutes=2, seconds=1), now) is False
    assert is_online(None, now) is False
    assert is_online(now.replace(tzinfo=None), now) is True
