"""
Tests for the HTTP API.

Tests:
- Ticket endpoints (create, status, messages, reassignment)
- Routing administration (teams, members, rules, classify)
- SLA policies, ticket SLA status, breaches, sweep, notifications
- Error mapping (401, 404, 422)
"""
import pytest

from tests.conftest import seed_overdue_ticket


ADMIN = {"X-User-ID": "admin-1"}
CUSTOMER = {"X-User-ID": "customer-1"}
AGENT = {"X-User-ID": "agent-a"}
MISSING_ID = "00000000-0000-0000-0000-000000000000"


async def create_team(client, name, members=()):
    response = await client.post("/routing/teams", json={"name": name}, headers=ADMIN)
    assert response.status_code == 201
    team = response.json()
    for user_id, role in members:
        added = await client.post(
            f"/routing/teams/{team['id']}/members", json={"user_id": user_id, "role": role}, headers=ADMIN
        )
        assert added.status_code == 201
    return team


async def create_policy(client, priority="high", response=60, resolution=480):
    result = await client.post("/sla/policies", json={
        "name": f"{priority} SLA",
        "priority": priority,
        "response_time_minutes": response,
        "resolution_time_minutes": resolution,
    }, headers=ADMIN)
    assert result.status_code == 201
    return result.json()


async def create_ticket(client, **fields):
    payload = {"subject": "Where is my order?", "description": "No tracking yet", "priority": "high"}
    payload.update(fields)
    return await client.post("/tickets", json=payload, headers=CUSTOMER)


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestTicketEndpoints:
    """Ticket lifecycle over HTTP."""

    @pytest.mark.asyncio
    async def test_create_routes_and_attaches_policy(self, client):
        team = await create_team(client, "Orders", [("agent-a", "member"), ("agent-b", "member")])
        rule = await client.post(
            f"/routing/teams/{team['id']}/rules",
            json={"name": "orders", "priority": 10, "conditions": {"category": ["Order"]}},
            headers=ADMIN,
        )
        assert rule.status_code == 201
        policy = await create_policy(client)

        response = await create_ticket(client)

        assert response.status_code == 201
        body = response.json()
        assert body["customer_id"] == "customer-1"
        assert body["status"] == "new"
        assert body["category"] == "Order"
        assert body["team_id"] == team["id"]
        assert body["assigned_to"] == "agent-a"
        assert body["sla_policy_id"] == policy["id"]
        assert body["sla_response_due_at"] is not None

        history = await client.get(f"/routing/tickets/{body['id']}/assignments")
        assert {a["reason"] for a in history.json()} == {"rule:orders", "round-robin"}

        queue = await client.get(f"/routing/teams/{team['id']}/queue")
        assert [t["id"] for t in queue.json()] == [body["id"]]

    @pytest.mark.asyncio
    async def test_create_requires_user(self, client):
        response = await client.post("/tickets", json={"subject": "Hi", "description": "Hello"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_validates_payload(self, client):
        response = await create_ticket(client, priority="critical")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_with_unknown_policy(self, client):
        response = await create_ticket(client, sla_policy_id=MISSING_ID)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_missing_ticket(self, client):
        assert (await client.get(f"/tickets/{MISSING_ID}")).status_code == 404
        assert (await client.get("/tickets/not-a-uuid")).status_code == 404

    @pytest.mark.asyncio
    async def test_status_change_records_first_response(self, client):
        ticket = (await create_ticket(client)).json()

        response = await client.patch(f"/tickets/{ticket['id']}/status", json={"status": "open"}, headers=AGENT)

        assert response.status_code == 200
        assert response.json()["status"] == "open"
        assert response.json()["first_response_at"] is not None

    @pytest.mark.asyncio
    async def test_status_change_requires_user(self, client):
        ticket = (await create_ticket(client)).json()

        response = await client.patch(f"/tickets/{ticket['id']}/status", json={"status": "open"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_messages(self, client):
        ticket = (await create_ticket(client)).json()

        note = await client.post(
            f"/tickets/{ticket['id']}/messages", json={"content": "internal", "message_type": "note"}, headers=AGENT
        )
        assert note.status_code == 201
        assert (await client.get(f"/tickets/{ticket['id']}")).json()["first_response_at"] is None

        reply = await client.post(f"/tickets/{ticket['id']}/messages", json={"content": "On it"}, headers=AGENT)
        assert reply.status_code == 201
        assert reply.json()["message_type"] == "reply"
        assert (await client.get(f"/tickets/{ticket['id']}")).json()["first_response_at"] is not None

        messages = (await client.get(f"/tickets/{ticket['id']}/messages")).json()
        assert [m["content"] for m in messages] == ["internal", "On it"]

    @pytest.mark.asyncio
    async def test_reassign(self, client):
        team = await create_team(client, "Tech", [("agent-x", "member")])
        ticket = (await create_ticket(client)).json()

        response = await client.patch(
            f"/tickets/{ticket['id']}/assignment",
            json={"team_id": team["id"], "assigned_to": "agent-x", "reason": "escalation"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["new_team_id"] == team["id"]
        assert response.json()["assigned_by"] == "admin-1"

        updated = (await client.get(f"/tickets/{ticket['id']}")).json()
        assert (updated["team_id"], updated["assigned_to"]) == (team["id"], "agent-x")

    @pytest.mark.asyncio
    async def test_reassign_requires_target(self, client):
        ticket = (await create_ticket(client)).json()

        response = await client.patch(f"/tickets/{ticket['id']}/assignment", json={}, headers=ADMIN)

        assert response.status_code == 422


class TestRoutingEndpoints:
    """Teams, members and rules."""

    @pytest.mark.asyncio
    async def test_duplicate_team_name(self, client):
        await create_team(client, "Orders")

        response = await client.post("/routing/teams", json={"name": "Orders"}, headers=ADMIN)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_teams(self, client):
        await create_team(client, "Tech")
        await create_team(client, "Billing")

        names = [t["name"] for t in (await client.get("/routing/teams")).json()]

        assert names == ["Billing", "Tech"]

    @pytest.mark.asyncio
    async def test_member_lifecycle(self, client):
        team = await create_team(client, "Orders", [("agent-a", "member")])
        base = f"/routing/teams/{team['id']}/members"

        duplicate = await client.post(base, json={"user_id": "agent-a"}, headers=ADMIN)
        assert duplicate.status_code == 422

        updated = await client.patch(f"{base}/agent-a", json={"role": "lead", "is_active": False}, headers=ADMIN)
        assert updated.status_code == 200
        assert (updated.json()["role"], updated.json()["is_active"]) == ("lead", False)

        members = (await client.get(base)).json()
        assert [m["user_id"] for m in members] == ["agent-a"]

        assert (await client.delete(f"{base}/agent-a", headers=ADMIN)).status_code == 204
        assert (await client.delete(f"{base}/agent-a", headers=ADMIN)).status_code == 404

    @pytest.mark.asyncio
    async def test_member_on_missing_team(self, client):
        response = await client.post(
            f"/routing/teams/{MISSING_ID}/members", json={"user_id": "agent-a"}, headers=ADMIN
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_rule_lifecycle(self, client):
        team = await create_team(client, "Orders")

        created = await client.post(
            f"/routing/teams/{team['id']}/rules",
            json={"name": "orders", "priority": 5, "conditions": [{"kind": "category", "values": ["Order"]}]},
            headers=ADMIN,
        )
        assert created.status_code == 201
        rule = created.json()
        assert rule["conditions"] == [{"kind": "category", "values": ["Order"]}]

        updated = await client.patch(
            f"/routing/rules/{rule['id']}",
            json={"priority": 20, "conditions": {"priority": ["urgent"]}},
            headers=ADMIN,
        )
        assert updated.status_code == 200
        assert updated.json()["priority"] == 20
        assert updated.json()["conditions"] == [{"kind": "priority", "values": ["urgent"]}]

        rules = (await client.get(f"/routing/teams/{team['id']}/rules")).json()
        assert [r["id"] for r in rules] == [rule["id"]]

        assert (await client.delete(f"/routing/rules/{rule['id']}", headers=ADMIN)).status_code == 204
        assert (await client.get(f"/routing/teams/{team['id']}/rules")).json() == []

    @pytest.mark.asyncio
    async def test_rule_with_unknown_condition_kind(self, client):
        team = await create_team(client, "Orders")

        response = await client.post(
            f"/routing/teams/{team['id']}/rules",
            json={"name": "bad", "conditions": {"region": ["eu"]}},
            headers=ADMIN,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rule_on_missing_team(self, client):
        response = await client.post(f"/routing/teams/{MISSING_ID}/rules", json={"name": "x"}, headers=ADMIN)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_classify(self, client):
        response = await client.post("/routing/classify", json={"subject": "App crash", "description": ""})

        assert response.status_code == 200
        assert response.json() == {"category": "TechSupport"}


class TestSLAEndpoints:
    """Policies, status, breaches, sweep and notifications."""

    @pytest.mark.asyncio
    async def test_policy_crud(self, client):
        policy = await create_policy(client)
        assert policy["created_by"] == "admin-1"

        updated = await client.patch(f"/sla/policies/{policy['id']}", json={"response_time_minutes": 30})
        assert updated.status_code == 200
        assert updated.json()["response_time_minutes"] == 30
        assert updated.json()["resolution_time_minutes"] == 480

        toggled = await client.post(f"/sla/policies/{policy['id']}/toggle")
        assert toggled.json()["is_active"] is False
        assert (await client.get("/sla/policies", params={"active_only": True})).json() == []
        assert len((await client.get("/sla/policies")).json()) == 1

        assert (await client.delete(f"/sla/policies/{policy['id']}")).status_code == 204
        assert (await client.get(f"/sla/policies/{policy['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_policy_validation(self, client):
        response = await client.post("/sla/policies", json={
            "name": "broken", "priority": "high", "response_time_minutes": 0, "resolution_time_minutes": 60,
        })
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_resolution_shorter_than_response_accepted(self, client):
        policy = await create_policy(client, response=120, resolution=60)
        assert policy["resolution_time_minutes"] == 60

    @pytest.mark.asyncio
    async def test_attach_policy_and_status(self, client):
        ticket = (await create_ticket(client)).json()
        assert ticket["sla_policy_id"] is None
        assert (await client.get(f"/sla/tickets/{ticket['id']}/status")).json()["overall_state"] is None

        policy = await create_policy(client, priority="low", response=60, resolution=480)
        attached = await client.post(f"/sla/tickets/{ticket['id']}/policy", json={"policy_id": policy["id"]})
        assert attached.status_code == 200
        assert attached.json()["sla_policy_id"] == policy["id"]

        status = (await client.get(f"/sla/tickets/{ticket['id']}/status")).json()
        assert status["ticket_id"] == ticket["id"]
        assert status["response"]["state"] == "on_track"
        assert status["resolution"]["state"] == "on_track"
        assert status["overall_state"] == "on_track"
        assert status["next_deadline"] is not None

    @pytest.mark.asyncio
    async def test_attach_missing_policy(self, client):
        ticket = (await create_ticket(client)).json()

        response = await client.post(f"/sla/tickets/{ticket['id']}/policy", json={"policy_id": MISSING_ID})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_status_of_missing_ticket(self, client):
        assert (await client.get(f"/sla/tickets/{MISSING_ID}/status")).status_code == 404

    @pytest.mark.asyncio
    async def test_sweep_and_notifications(self, client, session):
        team = await create_team(client, "Orders", [("agent-a", "member")])
        ticket = await seed_overdue_ticket(session, team_id=team["id"])

        response = await client.post("/sla/sweep")

        assert response.status_code == 200
        summary = response.json()
        assert summary["tickets_checked"] == 1
        assert summary["breaches_logged"] == 2
        assert summary["failures"] == 0

        breaches = (await client.get(f"/sla/tickets/{ticket.id}/breaches")).json()
        assert {b["breach_type"] for b in breaches} == {"response_time", "resolution_time"}

        again = (await client.post("/sla/sweep")).json()
        assert again["breaches_logged"] == 0

        notifications = (await client.get("/sla/notifications", headers=AGENT)).json()
        assert len(notifications) == 2
        assert {n["content"]["ticket_id"] for n in notifications} == {ticket.id}
        assert all(n["user_id"] == "agent-a" and n["type"] == "sla_breach" for n in notifications)
        assert all(n["read"] is False for n in notifications)

    @pytest.mark.asyncio
    async def test_notifications_require_user(self, client):
        assert (await client.get("/sla/notifications")).status_code == 401
