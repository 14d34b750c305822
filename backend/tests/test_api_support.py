"""Integration tests for tickets, contact requests and admin endpoints."""
import pytest
from httpx import AsyncClient

from karriery.store import RecordStore


@pytest.mark.asyncio
async def test_ticket_conversation(client: AsyncClient, register, admin_headers: dict, store: RecordStore) -> None:
    """A user opens a ticket, staff replies, the user is notified."""

    user, headers = await register()

    created = await client.post(
        "/tickets/",
        json={"subject": "  Cannot upload CV ", "message": "It fails", "priority": "high"},
        headers=headers,
    )
    assert created.status_code == 201
    ticket = created.json()
    assert ticket["subject"] == "Cannot upload CV"
    assert ticket["userEmail"] == "ada@example.com"
    assert (ticket["status"], ticket["category"], ticket["priority"]) == ("open", "general", "high")

    reply = await client.post(
        f"/tickets/{ticket['id']}/replies", json={"message": "Looking into it"}, headers=admin_headers
    )
    assert reply.status_code == 201
    follow_up = await client.post(
        f"/tickets/{ticket['id']}/replies", json={"message": "Thanks!"}, headers=headers
    )
    assert follow_up.status_code == 201

    detail = await client.get(f"/tickets/{ticket['id']}", headers=headers)
    assert detail.status_code == 200
    body = detail.json()
    assert len(body["ticket"]["adminReplies"]) == 1
    assert len(body["ticket"]["replies"]) == 1
    assert [r["message"] for r in body["thread"]] == ["Looking into it", "Thanks!"]

    notifications = store.get_user(user["id"])["notifications"]
    assert notifications[0]["type"] == "ticket_reply"
    assert notifications[0]["data"] == {"ticketId": ticket["id"]}


@pytest.mark.asyncio
async def test_ticket_visibility(client: AsyncClient, register, admin_headers: dict) -> None:
    _, ada = await register()
    _, bob = await register(email="bob@example.com", name="Bob")
    ticket = (await client.post("/tickets/", json={"subject": "S", "message": "M"}, headers=ada)).json()

    assert (await client.get(f"/tickets/{ticket['id']}", headers=bob)).status_code == 403
    assert (await client.get("/tickets/missing", headers=bob)).status_code == 404
    assert (await client.get("/tickets/", headers=bob)).json() == []
    assert len((await client.get("/tickets/", headers=admin_headers)).json()) == 1


@pytest.mark.asyncio
async def test_ticket_status_is_admin_only(client: AsyncClient, register, admin_headers: dict) -> None:
    _, headers = await register()
    ticket = (await client.post("/tickets/", json={"subject": "S", "message": "M"}, headers=headers)).json()
    url = f"/tickets/{ticket['id']}/status"

    assert (await client.put(url, json={"status": "closed"}, headers=headers)).status_code == 403
    assert (await client.put(url, json={"status": "done"}, headers=admin_headers)).status_code == 422
    assert (await client.put(url, json={"status": "in_progress"}, headers=admin_headers)).status_code == 200
    missing = await client.put("/tickets/nope/status", json={"status": "closed"}, headers=admin_headers)
    assert missing.status_code == 404

    stats = (await client.get("/admin/statistics", headers=admin_headers)).json()
    assert stats["statistics"]["totalTickets"] == 1
    assert stats["statistics"]["openTickets"] == 0
    assert stats["users"]["totalUsers"] == 2


@pytest.mark.asyncio
async def test_contact_requests(client: AsyncClient, register, admin_headers: dict) -> None:
    user, headers = await register()

    anonymous = await client.post(
        "/contact", json={"name": "Visitor", "email": "v@example.com", "message": "Pricing?"}
    )
    assert anonymous.status_code == 201
    signed_in = await client.post(
        "/contact", json={"name": "Ada", "email": "ada@example.com", "message": "Hello"}, headers=headers
    )
    assert signed_in.status_code == 201

    assert (await client.get("/admin/contacts", headers=headers)).status_code == 403
    requests = (await client.get("/admin/contacts", headers=admin_headers)).json()["requests"]
    assert [r["userId"] for r in requests] == [user["id"], None]

    update = await client.put(
        f"/admin/contacts/{requests[0]['id']}", json={"status": "read"}, headers=admin_headers
    )
    assert update.status_code == 200


@pytest.mark.asyncio
async def test_admin_user_management(client: AsyncClient, register, admin_headers: dict) -> None:
    user, headers = await register()

    assert (await client.get("/admin/users", headers=headers)).status_code == 403
    users = (await client.get("/admin/users", headers=admin_headers)).json()
    assert {u["email"] for u in users} == {"admin", "ada@example.com"}
    found = (await client.get("/admin/users", params={"q": "ADA@"}, headers=admin_headers)).json()
    assert [u["id"] for u in found] == [user["id"]]

    role = await client.put(f"/admin/users/{user['id']}/role", json={"role": "admin"}, headers=admin_headers)
    assert role.status_code == 200
    status_change = await client.put(
        f"/admin/users/{user['id']}/status", json={"status": "inactive"}, headers=admin_headers
    )
    assert status_change.status_code == 200

    created = await client.post(
        "/admin/users", json={"name": "Ops", "email": "ops", "password": "opspass"}, headers=admin_headers
    )
    assert created.status_code == 201
    assert created.json()["role"] == "admin"

    deleted = await client.delete(f"/admin/users/{user['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.delete(f"/admin/users/{user['id']}", headers=admin_headers)).status_code == 404
    assert (await client.delete("/admin/users/admin_001", headers=admin_headers)).status_code == 400


@pytest.mark.asyncio
async def test_export_import_and_backups(client: AsyncClient, register, admin_headers: dict) -> None:
    await register()
    exported = (await client.get("/admin/export", headers=admin_headers)).json()
    assert len(exported["users"]) == 2

    bad = await client.post("/admin/import", json={"users": "nope", "tickets": []}, headers=admin_headers)
    assert bad.status_code == 400
    good = await client.post("/admin/import", json=exported, headers=admin_headers)
    assert good.status_code == 200

    backup = await client.post("/admin/backups", headers=admin_headers)
    assert backup.status_code == 201
    listed = (await client.get("/admin/backups", headers=admin_headers)).json()
    assert [b["id"] for b in listed] == [backup.json()["id"]]

    restored = await client.post(f"/admin/backups/{backup.json()['id']}/restore", headers=admin_headers)
    assert restored.status_code == 200
    unknown = await client.post("/admin/backups/19990101-000000-000000/restore", headers=admin_headers)
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_maintenance_toggle(client: AsyncClient, register, admin_headers: dict) -> None:
    _, headers = await register()

    status_response = await client.get("/system/status")
    assert status_response.json() == {"site_name": "Karriery", "version": "1.0.0", "maintenance": False}

    assert (await client.put("/system/maintenance", json={"maintenance": True}, headers=headers)).status_code == 403
    toggled = await client.put("/system/maintenance", json={"maintenance": True}, headers=admin_headers)
    assert toggled.status_code == 200
    assert toggled.json()["maintenance"] is True

    assert (await client.get("/health")).json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_bootstrap_admin_is_protected(client: AsyncClient, admin_headers: dict, store: RecordStore) -> None:
    """Another admin can neither demote nor delete the bootstrap account."""

    created = await client.post(
        "/admin/users", json={"name": "Ops", "email": "ops", "password": "opspass"}, headers=admin_headers
    )
    assert created.status_code == 201
    login = await client.post("/auth/login", json={"email": "ops", "password": "opspass"})
    ops_headers = {"Authorization": f"Bearer {login.json()['token']['access_token']}"}

    demote = await client.put("/admin/users/admin_001/role", json={"role": "user"}, headers=ops_headers)
    assert demote.status_code == 400
    deleted = await client.delete("/admin/users/admin_001", headers=ops_headers)
    assert deleted.status_code == 400

    admins = [u for u in store.get_all_users() if u["email"] == "admin" and u["role"] == "admin"]
    assert len(admins) == 1


@pytest.mark.asyncio
async def test_admin_user_listing_has_one_shape(client: AsyncClient, register, admin_headers: dict) -> None:
    await register()

    everyone = (await client.get("/admin/users", headers=admin_headers)).json()
    found = (await client.get("/admin/users", params={"q": "ada"}, headers=admin_headers)).json()

    assert len(found) == 1
    assert set(found[0]) == set(everyone[0])
    assert "profile" not in found[0]


@pytest.mark.asyncio
async def test_contact_from_deactivated_account_is_anonymous(
    client: AsyncClient, register, admin_headers: dict, store: RecordStore
) -> None:
    user, headers = await register()
    store.change_user_status(user["id"], "inactive")

    response = await client.post(
        "/contact", json={"name": "Ada", "email": "ada@example.com", "message": "Hello"}, headers=headers
    )
    assert response.status_code == 201
    assert store.get_contact_requests()[0]["userId"] is None
