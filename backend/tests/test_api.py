from printdesk.core.config import settings
from printdesk.core.exceptions import RepositoryError

from fakes import seed_agent, seed_order, seed_rule

API = settings.API_V1_PREFIX


def test_assign_agent_endpoint(client, store):
    seed_order(store, "MP123")
    seed_agent(store, "A1")
    resp = client.post(f"{API}/orders/assign-agent", json={"orderId": "MP123", "agentId": "A1", "assignedBy": "admin1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["order"]["status"] == "Processing"
    assert body["order"]["assignedAgentId"] == "A1"
    assert body["agent"] == {"id": "A1", "name": "Ravi Kumar", "phone": "9876543210"}
    assert resp.headers["X-Trace-ID"]


def test_missing_fields_are_400(client):
    resp = client.post(f"{API}/orders/assign-agent", json={"orderId": "MP123"})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "ValidationError"
    assert resp.json()["errors"]


def test_domain_errors_render_kind_and_status(client, store):
    seed_order(store, "S1", delivery={"type": "shiprocket"})
    resp = client.post(f"{API}/orders/assign-agent", json={"orderId": "nope", "agentId": "A1"})
    assert (resp.status_code, resp.json()["kind"]) == (404, "NotFound")

    resp = client.post(f"{API}/orders/assign-agent", json={"orderId": "S1", "agentId": "A1"})
    assert (resp.status_code, resp.json()["kind"]) == (400, "IneligibleState")

    resp = client.post(f"{API}/orders/unassign-agent", json={"orderId": "S1"})
    assert (resp.status_code, resp.json()["kind"]) == (400, "ConflictError")


def test_bulk_assign_rejection_lists_errors(client, store):
    seed_agent(store, "A1")
    seed_order(store, "O1")
    resp = client.put(f"{API}/orders/assign-agent", json={"orderIds": ["O1", "O2"], "agentId": "A1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Some orders cannot be assigned"
    assert resp.json()["errors"] == ["Order O2 not found"]


def test_bulk_unassign_endpoint(client, store):
    seed_agent(store, "A1", work_capacity="busy", status="busy", current_order_id="O1", assigned_orders=["O1"])
    seed_order(store, "O1", status="Processing", assignedAgentId="A1")
    resp = client.put(f"{API}/orders/unassign-agent", json={"orderIds": ["O1", "O2"], "reason": "Rain"})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["unassignedOrdersCount"], body["unassignedOrders"]) == (1, ["O1"])
    assert body["affectedAgents"][0]["freed"] is True
    assert body["errors"] == ["Order O2 not found"]


def test_wrong_agent_completion_is_403(client, store):
    seed_agent(store, "A1")
    seed_agent(store, "A2")
    seed_order(store, "O1", assignedAgentId="A1")
    resp = client.post(f"{API}/agents/earnings", json={"orderId": "O1", "agentId": "A2", "deliveryFee": 100})
    assert (resp.status_code, resp.json()["kind"]) == (403, "Forbidden")


def test_completion_and_report(client, store):
    seed_agent(store, "A1", current_order_id="O1", assigned_orders=["O1"])
    seed_order(store, "O1", assignedAgentId="A1", status="Out for Delivery")
    resp = client.post(f"{API}/agents/earnings", json={"orderId": "O1", "agentId": "A1", "distance": 3, "deliveryFee": 60})
    assert resp.status_code == 200
    assert (resp.json()["agentCommission"], resp.json()["companyRevenue"]) == (42, 18)

    resp = client.get(f"{API}/agents/earnings", params={"agentId": "A1", "period": "daily"})
    assert resp.status_code == 200
    assert (resp.json()["totalDeliveries"], resp.json()["totalEarnings"]) == (1, 42)


def test_pricing_resolution_and_crud(client, store):
    seed_rule(store, "r5", 5, 50)
    resp = client.get(f"{API}/delivery-pricing", params={"distance": 4, "calculate": "true"})
    assert resp.status_code == 200
    assert (resp.json()["basePrice"], resp.json()["agentCommission"], resp.json()["companyRevenue"]) == (50, 35, 15)

    resp = client.get(f"{API}/delivery-pricing", params={"distance": 11, "calculate": "true"})
    assert (resp.status_code, resp.json()["kind"]) == (404, "NotFound")

    resp = client.get(f"{API}/delivery-pricing", params={"distance": "far", "calculate": "true"})
    assert resp.status_code == 400

    resp = client.post(f"{API}/delivery-pricing", json={"maxDistanceKm": 5, "price": 70})
    assert (resp.status_code, resp.json()["kind"]) == (400, "ConflictError")

    resp = client.post(f"{API}/delivery-pricing", json={"maxDistanceKm": 10, "price": 80})
    assert resp.status_code == 201
    rule_id = resp.json()["_id"]

    resp = client.get(f"{API}/delivery-pricing")
    assert [r["maxDistanceKm"] for r in resp.json()] == [5, 10]

    resp = client.delete(f"{API}/delivery-pricing", params={"id": rule_id})
    assert resp.status_code == 200
    resp = client.delete(f"{API}/delivery-pricing", params={"id": rule_id})
    assert resp.status_code == 404


def test_order_crud_and_status(client, store):
    resp = client.post(f"{API}/orders", json={
        "customer": {"name": "Asha"}, "items": [{"name": "Poster"}], "totals": {"total": 120},
    })
    assert resp.status_code == 201
    key = resp.json()["_id"]

    resp = client.patch(f"{API}/orders/{key}/status", json={"status": "Shipped", "note": "Handed to courier"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "Shipped"
    assert resp.json()["timeline"][-1]["note"] == "Handed to courier"

    resp = client.get(f"{API}/orders", params={"status": "Shipped"})
    assert resp.json()["pagination"]["total"] == 1

    assert client.delete(f"{API}/orders/{key}").status_code == 200
    assert client.get(f"{API}/orders/{key}").status_code == 404


def test_agent_routes(client):
    resp = client.post(f"{API}/agents", json={"agentId": "A7", "first_name": "Meera", "phone": "9123456780"})
    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"
    resp = client.post(f"{API}/agents/A7/approve")
    assert resp.json()["status"] == "available"
    resp = client.post(f"{API}/agents/A7/suspend", json={"reason": "Documents expired"})
    assert resp.json()["status"] == "suspended"
    assert client.get(f"{API}/agents/A7").json()["suspension_reason"] == "Documents expired"


def test_store_failure_is_503(client, store):
    seed_order(store, "MP123")
    seed_agent(store, "A1")
    store.fail_next_commit(RepositoryError("Error committing batch"))
    resp = client.post(f"{API}/orders/assign-agent", json={"orderId": "MP123", "agentId": "A1"})
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Database operation failed.", "kind": "InfrastructureError"}


def test_health_and_status(client, store):
    assert client.get(f"{API}/health").json() == {"status": "ok"}
    assert client.get(f"{API}/status").json()["database_status"] == "connected"
    store.healthy = False
    assert client.get(f"{API}/status").json()["database_status"] == "error"
