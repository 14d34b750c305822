"""Notification list handling."""
from karriery.store import NOTIFICATION_LIMIT, RecordStore


def test_notifications_are_newest_first_and_capped(store: RecordStore) -> None:
    user = store.create_user({"name": "Ada", "email": "ada@example.com", "password": "pw"})

    created = [
        store.add_notification(user["id"], {"type": "info", "title": f"n{i}", "message": "m"})
        for i in range(NOTIFICATION_LIMIT + 1)
    ]

    notifications = store.get_user(user["id"])["notifications"]
    assert len(notifications) == NOTIFICATION_LIMIT == 50
    assert notifications[0]["id"] == created[-1]["id"]
    assert created[0]["id"] not in {n["id"] for n in notifications}
    assert notifications[-1]["id"] == created[1]["id"]


def test_notification_defaults(store: RecordStore) -> None:
    entry = store.add_notification("admin_001", {"type": "ticket_reply", "title": "t", "message": "m"})

    assert entry["id"].startswith("notif_")
    assert entry["read"] is False
    assert entry["data"] == {}


def test_notification_for_unknown_user(store: RecordStore) -> None:
    assert store.add_notification("missing", {"type": "x"}) is None


def test_mark_notification_as_read(store: RecordStore) -> None:
    entry = store.add_notification("admin_001", {"type": "x", "title": "t", "message": "m"})

    assert store.mark_notification_as_read("admin_001", entry["id"]) is True
    assert store.get_user("admin_001")["notifications"][0]["read"] is True
    assert store.mark_notification_as_read("admin_001", "missing") is False
    assert store.mark_notification_as_read("missing", entry["id"]) is False
