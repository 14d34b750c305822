"""Support ticket behaviour of the record store."""
import pytest

from karriery.exceptions import InvalidValue
from karriery.store import RecordStore


def _ticket(store: RecordStore, **extra) -> dict:
    data = {"userId": "u1", "subject": "S", "message": "M", **extra}
    return store.create_ticket(data)


def test_create_ticket_defaults(store: RecordStore) -> None:
    before = store.get_statistics()["totalTickets"]

    ticket = _ticket(store)

    assert ticket["id"].startswith("ticket_")
    assert ticket["status"] == "open"
    assert ticket["category"] == "general"
    assert ticket["priority"] == "medium"
    assert ticket["replies"] == []
    assert ticket["adminReplies"] == []
    assert ticket["createdAt"] == ticket["updatedAt"]
    assert store.get_statistics()["totalTickets"] == before + 1
    assert store.get_statistics()["openTickets"] == 1


def test_attachments_keep_metadata_only(store: RecordStore) -> None:
    ticket = _ticket(
        store,
        attachments=[{"name": "cv.pdf", "size": 2048, "type": "application/pdf", "file": b"raw"}],
    )
    assert ticket["attachments"] == [{"name": "cv.pdf", "size": 2048, "type": "application/pdf"}]


def test_create_ticket_rejects_unknown_category(store: RecordStore) -> None:
    with pytest.raises(InvalidValue):
        _ticket(store, category="gossip")
    with pytest.raises(InvalidValue):
        _ticket(store, priority="whenever")
    assert store.get_all_tickets() == []


def test_admin_reply_goes_to_admin_replies(store: RecordStore) -> None:
    ticket = _ticket(store)

    reply = store.add_reply_to_ticket(
        ticket["id"], {"userId": "admin_001", "userName": "Administrator", "userRole": "admin", "message": "On it"}
    )

    stored = store.get_ticket(ticket["id"])
    assert reply["id"].startswith("reply_")
    assert [r["id"] for r in stored["adminReplies"]] == [reply["id"]]
    assert stored["replies"] == []
    assert stored["updatedAt"] >= ticket["updatedAt"]


def test_user_reply_goes_to_replies(store: RecordStore) -> None:
    ticket = _ticket(store)

    reply = store.add_reply_to_ticket(ticket["id"], {"userId": "u1", "userRole": "user", "message": "Thanks"})

    stored = store.get_ticket(ticket["id"])
    assert [r["id"] for r in stored["replies"]] == [reply["id"]]
    assert stored["adminReplies"] == []


def test_reply_to_unknown_ticket(store: RecordStore) -> None:
    assert store.add_reply_to_ticket("missing", {"userRole": "user", "message": "?"}) is None


def test_replies_do_not_change_status(store: RecordStore) -> None:
    ticket = _ticket(store)
    store.add_reply_to_ticket(ticket["id"], {"userRole": "admin", "message": "a"})
    assert store.get_ticket(ticket["id"])["status"] == "open"


def test_thread_merges_replies_by_time(store: RecordStore) -> None:
    ticket = _ticket(store)
    first = store.add_reply_to_ticket(ticket["id"], {"userRole": "user", "message": "1"})
    second = store.add_reply_to_ticket(ticket["id"], {"userRole": "admin", "message": "2"})
    third = store.add_reply_to_ticket(ticket["id"], {"userRole": "user", "message": "3"})

    thread = store.get_ticket_thread(ticket["id"])
    assert [r["id"] for r in thread] == [first["id"], second["id"], third["id"]]
    assert [r["userRole"] for r in thread] == ["user", "admin", "user"]
    assert store.get_ticket_thread("missing") is None


def test_status_transitions_and_statistics(store: RecordStore) -> None:
    ticket = _ticket(store)

    assert store.update_ticket(ticket["id"], {"status": "in_progress"}) is True
    assert store.get_statistics()["openTickets"] == 0
    assert store.update_ticket(ticket["id"], {"status": "closed"}) is True

    stored = store.get_ticket(ticket["id"])
    assert stored["status"] == "closed"
    assert stored["updatedAt"] >= ticket["updatedAt"]
    assert store.get_statistics()["closedTickets"] == 1


def test_update_ticket_enforces_status_enum(store: RecordStore) -> None:
    ticket = _ticket(store)

    with pytest.raises(InvalidValue):
        store.update_ticket(ticket["id"], {"status": "resolved"})
    assert store.get_ticket(ticket["id"])["status"] == "open"
    assert store.update_ticket("missing", {"status": "closed"}) is False


def test_update_ticket_cannot_rewrite_identity(store: RecordStore) -> None:
    ticket = _ticket(store)

    store.update_ticket(ticket["id"], {"id": "hijack", "replies": [{"x": 1}], "subject": "New"})

    stored = store.get_ticket(ticket["id"])
    assert stored["subject"] == "New"
    assert stored["replies"] == []


def test_search_tickets(store: RecordStore) -> None:
    billing = _ticket(store, subject="Invoice missing", userName="Ada", userEmail="ada@example.com")
    _ticket(store, subject="Login broken", userName="Bob", userEmail="bob@example.com")
    no_name = store.create_ticket({"userId": "u3", "subject": "Other", "message": "m"})

    assert [t["id"] for t in store.search_tickets("INVOICE")] == [billing["id"]]
    assert [t["id"] for t in store.search_tickets("ada@")] == [billing["id"]]
    assert no_name["id"] not in [t["id"] for t in store.search_tickets("bob")]


def test_user_tickets(store: RecordStore) -> None:
    mine = _ticket(store, userId="me")
    _ticket(store, userId="someone-else")

    assert [t["id"] for t in store.get_user_tickets("me")] == [mine["id"]]
