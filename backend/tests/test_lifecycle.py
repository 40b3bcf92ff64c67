import pytest

from printdesk.core.exceptions import ConflictError, IneligibleStateError, InputValidationError, RepositoryError
from printdesk.db.document_store import AGENTS_COLLECTION, ORDERS_COLLECTION
from printdesk.db.schemas.order_schemas import BulkActionRequest, BulkPolicy, OrderStatus
from printdesk.modules.agents.exceptions import AgentNotFoundError
from printdesk.modules.orders.exceptions import (
    AgentUnavailableError, AlreadyAssignedError, BulkValidationError, ConcurrentModificationError,
    IneligibleDeliveryTypeError, NotAssignedError, OrderNotFoundError,
)
from printdesk.modules.orders.lifecycle import OrderLifecycleService

from fakes import seed_agent, seed_order


@pytest.fixture
def mp123(store):
    seed_order(store, "MP123")
    seed_agent(store, "A1")


# --- assignAgent ---

async def test_assign_pending_order_scenario(store, lifecycle, mp123):
    result = await lifecycle.assign_agent("MP123", "A1", "admin1")

    order = store.raw(ORDERS_COLLECTION, "MP123")
    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert order["status"] == "Processing"
    assert order["assignedAgentId"] == "A1"
    assert len(order["timeline"]) == 2
    assert order["timeline"][-1]["action"] == "agent_assigned"
    assert order["timeline"][-1]["actor"] == "admin1"
    assert "Ravi Kumar" in order["timeline"][-1]["note"]
    assert agent["status"] == "busy"
    assert agent["work_capacity"] == "busy"
    assert agent["current_order_id"] == "MP123"
    assert agent["assigned_orders"] == ["MP123"]
    assert agent["performance"]["orders_assigned"] == 1
    assert type(agent["performance"]["orders_assigned"]) is int
    assert result.agent.name == "Ravi Kumar"
    assert result.order.status == OrderStatus.PROCESSING
    assert store.commit_count == 1


async def test_assign_keeps_non_pending_status(store, lifecycle):
    seed_order(store, "O1", status="Shipped")
    seed_agent(store, "A1")
    result = await lifecycle.assign_agent("O1", "A1")
    assert result.order.status == OrderStatus.SHIPPED


async def test_second_assignment_conflicts_until_unassigned(store, lifecycle, mp123):
    seed_agent(store, "A2", first_name="Meera")
    await lifecycle.assign_agent("MP123", "A1")
    with pytest.raises(AlreadyAssignedError) as exc_info:
        await lifecycle.assign_agent("MP123", "A2")
    assert isinstance(exc_info.value, ConflictError)

    await lifecycle.unassign_agent("MP123", "reroute")
    result = await lifecycle.assign_agent("MP123", "A2")
    assert result.order.assigned_agent_id == "A2"


async def test_shiprocket_orders_never_take_agents(store, lifecycle):
    seed_order(store, "S1", delivery={"type": "shiprocket"})
    # Delivery type is checked before the agent is even looked up
    with pytest.raises(IneligibleDeliveryTypeError) as exc_info:
        await lifecycle.assign_agent("S1", "ghost")
    assert isinstance(exc_info.value, IneligibleStateError)
    assert store.commit_count == 0


async def test_order_without_delivery_type_is_not_own_delivery(store, lifecycle):
    seed_agent(store, "A1")
    seed_order(store, "L1", delivery={})
    with pytest.raises(IneligibleDeliveryTypeError):
        await lifecycle.assign_agent("L1", "A1")
    with pytest.raises(BulkValidationError) as exc_info:
        await lifecycle.bulk_assign_agent(["L1"], "A1")
    assert exc_info.value.errors == ["Order L1 is not for own delivery"]
    assert store.raw(ORDERS_COLLECTION, "L1")["assignedAgentId"] is None
    assert store.commit_count == 0

async def test_missing_order_and_agent(store, lifecycle):
    seed_order(store, "O1")
    with pytest.raises(OrderNotFoundError):
        await lifecycle.assign_agent("nope", "A1")
    with pytest.raises(AgentNotFoundError):
        await lifecycle.assign_agent("O1", "nope")


@pytest.mark.parametrize("overrides", [
    {"approved": False},
    {"account_standing": "inactive", "status": "inactive"},
])
async def test_unavailable_agents_rejected(store, lifecycle, overrides):
    seed_order(store, "O1")
    seed_agent(store, "A1", **overrides)
    with pytest.raises(AgentUnavailableError):
        await lifecycle.assign_agent("O1", "A1")
    assert store.raw(ORDERS_COLLECTION, "O1")["assignedAgentId"] is None


async def test_suspended_but_approved_agent_is_assignable(store, lifecycle):
    seed_order(store, "O1")
    seed_agent(store, "A1", account_standing="suspended", status="suspended")
    await lifecycle.assign_agent("O1", "A1")
    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert agent["work_capacity"] == "busy"
    assert agent["status"] == "suspended"


async def test_concurrent_assignment_loses_cleanly(store, lifecycle, mp123):
    seed_agent(store, "A2")

    def rival_assigns(s):
        s.collections[ORDERS_COLLECTION]["MP123"]["assignedAgentId"] = "A2"

    store.before_commit.append(rival_assigns)
    with pytest.raises(AlreadyAssignedError):
        await lifecycle.assign_agent("MP123", "A1")

    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert agent["current_order_id"] is None
    assert agent["performance"]["orders_assigned"] == 0
    assert store.raw(ORDERS_COLLECTION, "MP123")["assignedAgentId"] == "A2"


async def test_failed_commit_leaves_both_documents_untouched(store, lifecycle, mp123):
    order_before = store.raw(ORDERS_COLLECTION, "MP123")
    agent_before = store.raw(AGENTS_COLLECTION, "A1")
    store.fail_next_commit(RepositoryError("Error committing batch"))

    with pytest.raises(RepositoryError):
        await lifecycle.assign_agent("MP123", "A1")
    assert store.raw(ORDERS_COLLECTION, "MP123") == order_before
    assert store.raw(AGENTS_COLLECTION, "A1") == agent_before


# --- unassignAgent ---

async def test_unassign_reverts_processing_and_frees_agent(store, lifecycle, mp123):
    await lifecycle.assign_agent("MP123", "A1")
    result = await lifecycle.unassign_agent("MP123", "Customer asked for pickup", "admin2")

    order = store.raw(ORDERS_COLLECTION, "MP123")
    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert order["status"] == "Pending"
    assert order["assignedAgentId"] is None
    assert order["unassignedReason"] == "Customer asked for pickup"
    assert "Customer asked for pickup" in order["timeline"][-1]["note"]
    assert agent["status"] == "available"
    assert agent["current_order_id"] is None
    assert agent["assigned_orders"] == []
    assert result.previous_agent.id == "A1"


async def test_second_unassign_is_rejected(store, lifecycle, mp123):
    await lifecycle.assign_agent("MP123", "A1")
    await lifecycle.unassign_agent("MP123")
    with pytest.raises(NotAssignedError) as exc_info:
        await lifecycle.unassign_agent("MP123")
    assert isinstance(exc_info.value, ConflictError)


async def test_unassign_other_order_keeps_agent_busy(store, lifecycle):
    seed_order(store, "O1", status="Processing", assignedAgentId="A1")
    seed_agent(store, "A1", work_capacity="busy", status="busy", current_order_id="O2", assigned_orders=["O1", "O2"])

    await lifecycle.unassign_agent("O1", "wrong route")
    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert agent["status"] == "busy"
    assert agent["current_order_id"] == "O2"
    assert agent["assigned_orders"] == ["O2"]


async def test_unassign_with_deleted_agent(store, lifecycle):
    seed_order(store, "O1", status="Processing", assignedAgentId="gone")
    result = await lifecycle.unassign_agent("O1")
    assert result.previous_agent.name == "Unknown Agent"
    assert result.reason == "No reason provided"
    assert store.raw(ORDERS_COLLECTION, "O1")["assignedAgentId"] is None


# --- bulkAssignAgent ---

async def test_bulk_assign_all_valid(store, lifecycle):
    seed_agent(store, "A1")
    for key in ("O1", "O2", "O3"):
        seed_order(store, key)

    result = await lifecycle.bulk_assign_agent(["O1", "O2", "O3", "O2"], "A1")
    assert result.policy == BulkPolicy.ATOMIC_ALL
    assert result.assigned_orders == ["O1", "O2", "O3"]
    for key in ("O1", "O2", "O3"):
        order = store.raw(ORDERS_COLLECTION, key)
        assert order["status"] == "Processing"
        assert order["assignedAgentId"] == "A1"
    agent = store.raw(AGENTS_COLLECTION, "A1")
    assert agent["performance"]["orders_assigned"] == 3
    assert type(agent["performance"]["orders_assigned"]) is int
    assert agent["assigned_orders"] == ["O1", "O2", "O3"]
    assert agent["status"] == "busy"
    assert store.commit_count == 1


async def test_bulk_assign_one_bad_order_aborts_everything(store, lifecycle):
    seed_agent(store, "A1")
    seed_order(store, "O1")
    seed_order(store, "O2", assignedAgentId="A9")
    seed_order(store, "O3", delivery={"type": "shiprocket"})

    with pytest.raises(BulkValidationError) as exc_info:
        await lifecycle.bulk_assign_agent(["O1", "O2", "O3", "O4"], "A1")
    assert exc_info.value.errors == [
        "Order O2 is already assigned",
        "Order O3 is not for own delivery",
        "Order O4 not found",
    ]
    assert store.raw(ORDERS_COLLECTION, "O1")["assignedAgentId"] is None
    assert store.raw(AGENTS_COLLECTION, "A1")["performance"]["orders_assigned"] == 0
    assert store.commit_count == 0


async def test_bulk_assign_validates_agent_first(store, lifecycle):
    seed_order(store, "O1")
    seed_agent(store, "A1", approved=False)
    with pytest.raises(AgentUnavailableError):
        await lifecycle.bulk_assign_agent(["O1"], "A1")


async def test_bulk_size_is_capped(store):
    lifecycle = OrderLifecycleService(store, max_bulk_orders=2)
    with pytest.raises(InputValidationError):
        await lifecycle.bulk_assign_agent(["O1", "O2", "O3"], "A1")


# --- bulkUnassignAgent ---

async def test_bulk_unassign_is_best_effort(store, lifecycle):
    seed_agent(store, "A1", work_capacity="busy", status="busy", current_order_id="O1", assigned_orders=["O1"])
    seed_agent(store, "A2", work_capacity="busy", status="busy", current_order_id="O9", assigned_orders=["O2", "O9"])
    seed_order(store, "O1", status="Processing", assignedAgentId="A1")
    seed_order(store, "O2", status="Shipped", assignedAgentId="A2")
    seed_order(store, "O3")

    result = await lifecycle.bulk_unassign_agent(["O1", "O2", "O3", "O4"], "Driver shortage")

    assert result.policy == BulkPolicy.BEST_EFFORT
    assert result.unassigned_orders == ["O1", "O2"]
    assert result.errors == ["Order O3 is not assigned to any agent", "Order O4 not found"]
    freed = {a.id: a.freed for a in result.affected_agents}
    assert freed == {"A1": True, "A2": False}

    assert store.raw(ORDERS_COLLECTION, "O1")["status"] == "Pending"
    assert store.raw(ORDERS_COLLECTION, "O2")["status"] == "Shipped"
    a1 = store.raw(AGENTS_COLLECTION, "A1")
    a2 = store.raw(AGENTS_COLLECTION, "A2")
    assert (a1["status"], a1["current_order_id"]) == ("available", None)
    assert (a2["status"], a2["current_order_id"], a2["assigned_orders"]) == ("busy", "O9", ["O9"])
    assert store.commit_count == 1


async def test_bulk_unassign_with_nothing_valid(store, lifecycle):
    seed_order(store, "O1")
    with pytest.raises(BulkValidationError) as exc_info:
        await lifecycle.bulk_unassign_agent(["O1", "O2"])
    assert len(exc_info.value.errors) == 2


async def test_bulk_unassign_raced_order_writes_nothing(store, lifecycle):
    seed_agent(store, "A1", work_capacity="busy", status="busy", current_order_id="O1", assigned_orders=["O1", "O2"])
    seed_order(store, "O1", status="Processing", assignedAgentId="A1")
    seed_order(store, "O2", status="Processing", assignedAgentId="A1")

    def rival_unassigns(s):
        s.collections[ORDERS_COLLECTION]["O2"]["assignedAgentId"] = None

    store.before_commit.append(rival_unassigns)
    with pytest.raises(ConcurrentModificationError) as exc_info:
        await lifecycle.bulk_unassign_agent(["O1", "O2"])
    assert exc_info.value.key == "O2"
    assert store.raw(ORDERS_COLLECTION, "O1")["assignedAgentId"] == "A1"
    assert store.raw(AGENTS_COLLECTION, "A1")["current_order_id"] == "O1"

    result = await lifecycle.bulk_unassign_agent(["O1", "O2"])
    assert result.unassigned_orders == ["O1"]
    assert result.errors == ["Order O2 is not assigned to any agent"]


# --- updateStatus ---

async def test_update_status_allows_any_transition(store, lifecycle):
    seed_order(store, "O1", status="Delivered")
    order = await lifecycle.update_status("O1", OrderStatus.PENDING, updated_by="ops")
    assert order.status == OrderStatus.PENDING
    entry = store.raw(ORDERS_COLLECTION, "O1")["timeline"][-1]
    assert entry["action"] == "status_updated"
    assert entry["note"] == "Status updated from Delivered to Pending"
    assert entry["status"] == "Pending"


async def test_update_status_missing_order(lifecycle):
    with pytest.raises(OrderNotFoundError):
        await lifecycle.update_status("nope", OrderStatus.SHIPPED)


# --- bulkOrderAction ---

async def test_bulk_mark_urgent(store, lifecycle):
    seed_order(store, "O1")
    seed_order(store, "O2")
    result = await lifecycle.bulk_order_action(BulkActionRequest(action="mark_urgent", orderIds=["O1", "O2", "O3"]))
    assert (result.processed, result.successful, result.failed) == (3, 2, 1)
    assert store.raw(ORDERS_COLLECTION, "O1")["urgent"] is True
    assert len(store.raw(ORDERS_COLLECTION, "O2")["timeline"]) == 2


async def test_bulk_status_requires_status(lifecycle):
    with pytest.raises(InputValidationError):
        await lifecycle.bulk_order_action(BulkActionRequest(action="update_status", orderIds=["O1"]))


async def test_bulk_delivery_type_skips_assigned_orders(store, lifecycle):
    seed_order(store, "O1", assignedAgentId="A1", status="Processing")
    seed_order(store, "O2")
    result = await lifecycle.bulk_order_action(BulkActionRequest(
        action="update_delivery_type", orderIds=["O1", "O2"], data={"deliveryType": "shiprocket"},
    ))
    outcome = {r.order_id: r.success for r in result.results}
    assert outcome == {"O1": False, "O2": True}
    assert store.raw(ORDERS_COLLECTION, "O1")["delivery"]["type"] == "own"
    assert store.raw(ORDERS_COLLECTION, "O2")["delivery"]["type"] == "shiprocket"
