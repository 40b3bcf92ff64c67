# printdesk/modules/orders/lifecycle.py
# Order status transitions and delivery-agent assignment. Every Order + Agent
# mutation pair goes out as one WriteBatch, guarded by compare-and-swap
# preconditions on the state that was validated.

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from printdesk.core.config import settings
from printdesk.core.exceptions import InputValidationError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import (
    AGENTS_COLLECTION, ORDERS_COLLECTION, DocumentStore, DocumentUpdate, PreconditionFailedError, WriteBatch,
)
from printdesk.db.schemas.agent_schemas import AgentDoc, WorkCapacity, legacy_status
from printdesk.db.schemas.common_schemas import utcnow
from printdesk.db.schemas.order_schemas import (
    AffectedAgent, AgentSummary, AssignmentResult, BulkActionRequest, BulkActionResult, BulkActionType,
    BulkAssignmentResult, BulkItemResult, BulkUnassignmentResult, DeliveryType, OrderDoc,
    OrderStatus, TimelineAction, UnassignmentResult,
)
from printdesk.modules.agents.exceptions import AgentNotFoundError
from printdesk.modules.agents.repository import AgentRepository
from printdesk.modules.orders.exceptions import (
    AgentUnavailableError, AlreadyAssignedError, BulkValidationError, ConcurrentModificationError,
    IneligibleDeliveryTypeError, NotAssignedError, OrderNotFoundError,
)
from printdesk.modules.orders.repository import OrderRepository
from printdesk.services.audit_service import AuditService


def timeline_entry(
    action: TimelineAction, actor: str, note: Optional[str], ts: datetime, status: Optional[OrderStatus] = None
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"ts": ts, "actor": actor, "action": action.value, "note": note}
    if status is not None:
        entry["status"] = status.value
    return entry


def agent_summary(agent_id: str, agent: Optional[AgentDoc]) -> AgentSummary:
    if agent is None:
        return AgentSummary(id=agent_id, name="Unknown Agent")
    return AgentSummary(id=agent_id, name=agent.full_name, phone=agent.phone)


def free_agent_fields(agent: AgentDoc, now: datetime) -> Dict[str, Any]:
    return {
        "work_capacity": WorkCapacity.AVAILABLE.value,
        "status": legacy_status(agent.account_standing, WorkCapacity.AVAILABLE),
        "current_order_id": None,
        "updatedAt": now,
    }


class OrderLifecycleService:
    """Moves orders through their status timeline and (un)assigns delivery agents."""

    def __init__(self, store: DocumentStore, audit: Optional[AuditService] = None, max_bulk_orders: Optional[int] = None):
        self._store = store
        self.order_repo = OrderRepository(store)
        self.agent_repo = AgentRepository(store)
        self.audit = audit or AuditService(store)
        self.max_bulk_orders = max_bulk_orders or settings.MAX_BULK_ORDERS

    # --- helpers ---

    async def _require_order(self, order_key: str) -> OrderDoc:
        order = await self.order_repo.get_order(order_key)
        if order is None:
            raise OrderNotFoundError(order_key)
        return order

    async def _require_assignable_agent(self, agent_id: str) -> AgentDoc:
        agent = await self.agent_repo.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        if not agent.is_assignable:
            raise AgentUnavailableError(agent_id)
        return agent

    def _normalise_bulk_ids(self, order_keys: List[str]) -> List[str]:
        # Collapse duplicates, first occurrence wins
        keys = list(dict.fromkeys(key for key in order_keys if key))
        if not keys:
            raise InputValidationError("orderIds must contain at least one order id.")
        if len(keys) > self.max_bulk_orders:
            raise InputValidationError(
                f"Bulk operations accept at most {self.max_bulk_orders} orders, got {len(keys)}."
            )
        return keys

    async def _commit(self, batch: WriteBatch, on_conflict: Callable[[PreconditionFailedError], Exception]):
        try:
            await self._store.commit(batch)
        except PreconditionFailedError as e:
            raise on_conflict(e) from e

    def _assignment_update(self, order: OrderDoc, agent_id: str, assigned_by: str, note: str, now: datetime) -> DocumentUpdate:
        fields: Dict[str, Any] = {"assignedAgentId": agent_id, "updatedAt": now, "assignedAt": now}
        if order.status == OrderStatus.PENDING:
            fields["status"] = OrderStatus.PROCESSING.value
        return DocumentUpdate(
            set_fields=fields,
            push_fields={"timeline": timeline_entry(TimelineAction.AGENT_ASSIGNED, assigned_by, note, now)},
            expect={"assignedAgentId": None},
        )

    def _unassignment_update(self, order: OrderDoc, unassigned_by: str, note: str, reason: str, now: datetime) -> DocumentUpdate:
        fields: Dict[str, Any] = {
            "assignedAgentId": None,
            "updatedAt": now,
            "unassignedAt": now,
            "unassignedReason": reason,
        }
        if order.status == OrderStatus.PROCESSING:
            fields["status"] = OrderStatus.PENDING.value
        return DocumentUpdate(
            set_fields=fields,
            push_fields={"timeline": timeline_entry(TimelineAction.AGENT_UNASSIGNED, unassigned_by, note, now)},
            expect={"assignedAgentId": order.assigned_agent_id},
        )

    # --- single order ---

    async def assign_agent(self, order_key: str, agent_id: str, assigned_by: str = "admin") -> AssignmentResult:
        """Assigns an own-delivery order to an approved agent; order and agent commit together."""
        log = logger.bind(order_key=order_key, agent_id=agent_id, actor=assigned_by)
        log.info("Assigning agent to order.")

        order = await self._require_order(order_key)
        if order.assigned_agent_id:
            raise AlreadyAssignedError(order_key)
        if order.delivery.type != DeliveryType.OWN:
            raise IneligibleDeliveryTypeError(order_key, order.delivery.type.value if order.delivery.type else "unset")
        agent = await self._require_assignable_agent(agent_id)

        now = utcnow()
        batch = self._store.batch()
        batch.update(ORDERS_COLLECTION, order_key, self._assignment_update(
            order, agent_id, assigned_by, f"Order assigned to agent {agent.full_name}", now,
        ))
        batch.update(AGENTS_COLLECTION, agent_id, DocumentUpdate(
            set_fields={
                "work_capacity": WorkCapacity.BUSY.value,
                "status": legacy_status(agent.account_standing, WorkCapacity.BUSY),
                "current_order_id": order_key,
                "assignedAt": now,
                "updatedAt": now,
            },
            inc_fields={"performance.orders_assigned": 1},
            add_to_set_fields={"assigned_orders": [order_key]},
            expect={"approved": True},
        ))
        await self._commit(batch, lambda e: AlreadyAssignedError(order_key)
                           if e.collection == ORDERS_COLLECTION else AgentUnavailableError(agent_id))

        updated = await self._require_order(order_key)
        log.success(f"Order {order.order_id} assigned to agent {agent_id}.")
        await self.audit.log_event(
            actor_id=assigned_by, action="assign_agent", entity_type="order", entity_id=order_key,
            details={"agent_id": agent_id, "previous_status": order.status.value, "status": updated.status.value},
        )
        return AssignmentResult(order=updated, agent=agent_summary(agent_id, agent))

    async def unassign_agent(self, order_key: str, reason: Optional[str] = None, unassigned_by: str = "admin") -> UnassignmentResult:
        log = logger.bind(order_key=order_key, actor=unassigned_by)
        log.info("Unassigning agent from order.")

        order = await self._require_order(order_key)
        if not order.assigned_agent_id:
            raise NotAssignedError(order_key)
        agent_id = order.assigned_agent_id
        agent = await self.agent_repo.get_agent(agent_id)

        now = utcnow()
        name = agent.full_name if agent else "Unknown Agent"
        note = f"Agent {name} unassigned" + (f" - Reason: {reason}" if reason else "")
        batch = self._store.batch()
        batch.update(ORDERS_COLLECTION, order_key, self._unassignment_update(
            order, unassigned_by, note, reason or "No reason provided", now,
        ))
        if agent is not None:
            agent_update = DocumentUpdate(set_fields={"updatedAt": now}, pull_fields={"assigned_orders": [order_key]})
            # Only the order the agent is currently working frees them
            if agent.current_order_id == order_key:
                agent_update.set_fields.update(free_agent_fields(agent, now))
                agent_update.expect["current_order_id"] = order_key
            batch.update(AGENTS_COLLECTION, agent_id, agent_update)
        else:
            log.warning(f"Assigned agent {agent_id} no longer exists; clearing order side only.")

        await self._commit(batch, lambda e: NotAssignedError(order_key)
                           if e.collection == ORDERS_COLLECTION else ConcurrentModificationError(e.collection, e.key))

        updated = await self._require_order(order_key)
        log.success(f"Agent {agent_id} unassigned from order {order.order_id}.")
        await self.audit.log_event(
            actor_id=unassigned_by, action="unassign_agent", entity_type="order", entity_id=order_key,
            details={"agent_id": agent_id, "reason": reason},
        )
        return UnassignmentResult(
            order=updated, previous_agent=agent_summary(agent_id, agent), reason=reason or "No reason provided",
        )

    async def update_status(
        self, order_key: str, new_status: OrderStatus, note: Optional[str] = None, updated_by: str = "admin"
    ) -> OrderDoc:
        """Sets any status (no transition table) and appends one timeline entry."""
        order = await self._require_order(order_key)
        now = utcnow()
        note = note or f"Status updated from {order.status.value} to {new_status.value}"
        updated = await self.order_repo.update_order(order_key, DocumentUpdate(
            set_fields={"status": new_status.value, "updatedAt": now},
            push_fields={"timeline": timeline_entry(TimelineAction.STATUS_UPDATED, updated_by, note, now, new_status)},
        ))
        if updated is None:
            raise OrderNotFoundError(order_key)
        logger.bind(order_key=order_key, old_status=order.status.value, new_status=new_status.value).info("Order status updated.")
        await self.audit.log_event(
            actor_id=updated_by, action="update_order_status", entity_type="order", entity_id=order_key,
            details={"from": order.status.value, "to": new_status.value, "note": note},
        )
        return updated

    # --- bulk ---

    async def bulk_assign_agent(self, order_keys: List[str], agent_id: str, assigned_by: str = "admin") -> BulkAssignmentResult:
        """All-or-nothing: any invalid order rejects the whole call before anything is written."""
        keys = self._normalise_bulk_ids(order_keys)
        log = logger.bind(agent_id=agent_id, actor=assigned_by, order_count=len(keys))
        log.info("Bulk assigning agent.")

        agent = await self._require_assignable_agent(agent_id)
        orders = await self.order_repo.get_orders(keys)
        errors: List[str] = []
        for key in keys:
            order = orders[key]
            if order is None:
                errors.append(f"Order {key} not found")
            elif order.assigned_agent_id:
                errors.append(f"Order {key} is already assigned")
            elif order.delivery.type != DeliveryType.OWN:
                errors.append(f"Order {key} is not for own delivery")
        if errors:
            log.warning(f"Bulk assignment rejected: {len(errors)} invalid orders.")
            raise BulkValidationError("Some orders cannot be assigned", errors)

        now = utcnow()
        note = f"Order bulk assigned to agent {agent.full_name}"
        batch = self._store.batch()
        for key in keys:
            batch.update(ORDERS_COLLECTION, key, self._assignment_update(orders[key], agent_id, assigned_by, note, now))
        batch.update(AGENTS_COLLECTION, agent_id, DocumentUpdate(
            set_fields={
                "work_capacity": WorkCapacity.BUSY.value,
                "status": legacy_status(agent.account_standing, WorkCapacity.BUSY),
                "assignedAt": now,
                "updatedAt": now,
            },
            inc_fields={"performance.orders_assigned": len(keys)},
            add_to_set_fields={"assigned_orders": keys},
            expect={"approved": True},
        ))
        await self._commit(batch, lambda e: AlreadyAssignedError(e.key)
                           if e.collection == ORDERS_COLLECTION else AgentUnavailableError(agent_id))

        log.success(f"{len(keys)} orders assigned to agent {agent_id}.")
        await self.audit.log_event(
            actor_id=assigned_by, action="bulk_assign_agent", entity_type="agent", entity_id=agent_id,
            details={"orders": keys},
        )
        return BulkAssignmentResult(
            assigned_orders_count=len(keys), assigned_orders=keys, agent=agent_summary(agent_id, agent),
        )

    async def bulk_unassign_agent(
        self, order_keys: List[str], reason: Optional[str] = None, unassigned_by: str = "admin"
    ) -> BulkUnassignmentResult:
        """Best effort: unassigned/missing orders are reported, the rest commit in one batch.

        Skipping happens at validation time only. If another caller changes one of
        the valid orders before the commit, the batch raises ConcurrentModificationError
        and nothing is written; the caller resubmits the ids that are still assigned.
        """
        keys = self._normalise_bulk_ids(order_keys)
        log = logger.bind(actor=unassigned_by, order_count=len(keys))
        log.info("Bulk unassigning agents.")

        orders = await self.order_repo.get_orders(keys)
        errors: List[str] = []
        valid: List[OrderDoc] = []
        by_agent: Dict[str, List[str]] = {}
        for key in keys:
            order = orders[key]
            if order is None:
                errors.append(f"Order {key} not found")
            elif not order.assigned_agent_id:
                errors.append(f"Order {key} is not assigned to any agent")
            else:
                valid.append(order)
                by_agent.setdefault(order.assigned_agent_id, []).append(key)
        if not valid:
            raise BulkValidationError("No valid orders to unassign", errors)

        agents = {agent_id: await self.agent_repo.get_agent(agent_id) for agent_id in by_agent}
        reason_text = reason or "Bulk unassignment"
        now = utcnow()
        batch = self._store.batch()
        for order in valid:
            agent = agents[order.assigned_agent_id]
            name = agent.full_name if agent else "Unknown Agent"
            note = f"Agent {name} bulk unassigned" + (f" - Reason: {reason}" if reason else "")
            batch.update(ORDERS_COLLECTION, order.id, self._unassignment_update(order, unassigned_by, note, reason_text, now))

        affected: List[AffectedAgent] = []
        for agent_id, agent_keys in by_agent.items():
            agent = agents[agent_id]
            freed = False
            if agent is not None:
                agent_update = DocumentUpdate(set_fields={"updatedAt": now}, pull_fields={"assigned_orders": agent_keys})
                if agent.current_order_id in agent_keys:
                    agent_update.set_fields.update(free_agent_fields(agent, now))
                    agent_update.expect["current_order_id"] = agent.current_order_id
                    freed = True
                batch.update(AGENTS_COLLECTION, agent_id, agent_update)
            affected.append(AffectedAgent(
                id=agent_id, name=agent.full_name if agent else "Unknown Agent", order_count=len(agent_keys), freed=freed,
            ))

        await self._commit(batch, lambda e: ConcurrentModificationError(e.collection, e.key))

        unassigned = [order.id for order in valid]
        log.success(f"{len(unassigned)} orders unassigned; {len(errors)} skipped.")
        await self.audit.log_event(
            actor_id=unassigned_by, action="bulk_unassign_agent", entity_type="order", entity_id=None,
            details={"orders": unassigned, "skipped": errors, "reason": reason},
        )
        return BulkUnassignmentResult(
            unassigned_orders_count=len(unassigned), unassigned_orders=unassigned,
            affected_agents=affected, reason=reason_text, errors=errors,
        )

    async def bulk_order_action(self, request: BulkActionRequest) -> BulkActionResult:
        """Best effort status / urgency / delivery-type changes across many orders."""
        data = request.data
        if request.action == BulkActionType.UPDATE_STATUS and data.status is None:
            raise InputValidationError("Status is required for update_status action")
        if request.action == BulkActionType.UPDATE_DELIVERY_TYPE and data.delivery_type is None:
            raise InputValidationError("Delivery type is required for update_delivery_type action")

        keys = self._normalise_bulk_ids(request.order_ids)
        orders = await self.order_repo.get_orders(keys)
        now = utcnow()
        batch = self._store.batch()
        results: List[BulkItemResult] = []

        for key in keys:
            order = orders[key]
            if order is None:
                results.append(BulkItemResult(order_id=key, success=False, error="Order not found"))
                continue

            if request.action == BulkActionType.UPDATE_STATUS:
                note = data.status_note or f"Bulk status update to {data.status.value}"
                update = DocumentUpdate(
                    set_fields={"status": data.status.value, "updatedAt": now},
                    push_fields={"timeline": timeline_entry(TimelineAction.STATUS_UPDATED, data.updated_by, note, now, data.status)},
                )
            elif request.action == BulkActionType.MARK_URGENT:
                note = "Marked urgent" if data.urgent else "Urgent flag cleared"
                update = DocumentUpdate(
                    set_fields={"urgent": data.urgent, "updatedAt": now},
                    push_fields={"timeline": timeline_entry(TimelineAction.ORDER_UPDATED, data.updated_by, note, now)},
                )
            else:
                new_type = data.delivery_type
                if order.assigned_agent_id and new_type != DeliveryType.OWN:
                    error = IneligibleDeliveryTypeError(key, new_type.value)
                    results.append(BulkItemResult(
                        order_id=key, success=False,
                        error=f"{error.message} Unassign agent {order.assigned_agent_id} first.",
                    ))
                    continue
                update = DocumentUpdate(
                    set_fields={"delivery.type": new_type.value, "updatedAt": now},
                    push_fields={"timeline": timeline_entry(
                        TimelineAction.ORDER_UPDATED, data.updated_by, f"Delivery type set to {new_type.value}", now,
                    )},
                )
                if new_type != DeliveryType.OWN:
                    update.expect["assignedAgentId"] = None

            batch.update(ORDERS_COLLECTION, key, update)
            results.append(BulkItemResult(order_id=key, success=True))

        await self._commit(batch, lambda e: ConcurrentModificationError(e.collection, e.key))

        successful = sum(1 for r in results if r.success)
        logger.bind(action=request.action.value, processed=len(results), successful=successful).info("Bulk order action applied.")
        await self.audit.log_event(
            actor_id=data.updated_by, action=f"bulk_{request.action.value}", entity_type="order", entity_id=None,
            details={"orders": [r.order_id for r in results if r.success]},
        )
        return BulkActionResult(
            action=request.action, processed=len(results), successful=successful,
            failed=len(results) - successful, results=results,
        )
