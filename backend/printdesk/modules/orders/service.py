# printdesk/modules/orders/service.py
# Service layer for order intake and plain CRUD. Assignment and status
# transitions live in lifecycle.py.

import math
import random
import string
import time
from typing import Any, Dict, Optional

from printdesk.core.config import settings
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import DocumentStore, DocumentUpdate, PreconditionFailedError
from printdesk.db.schemas.common_schemas import new_document_key, utcnow
from printdesk.db.schemas.order_schemas import (
    DeliveryType, OrderCreate, OrderDetailsUpdate, OrderDoc, OrderPage, OrderStatus, Pagination, TimelineAction,
)
from printdesk.modules.orders.exceptions import OrderAssignedConflictError, OrderNotFoundError
from printdesk.modules.orders.lifecycle import timeline_entry
from printdesk.modules.orders.repository import OrderRepository
from printdesk.services.audit_service import AuditService

ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_id(prefix: Optional[str] = None) -> str:
    """Human-facing order number: prefix + epoch millis + 4 random chars."""
    suffix = "".join(random.choices(ORDER_ID_ALPHABET, k=4))
    return f"{prefix or settings.ORDER_ID_PREFIX}{int(time.time() * 1000)}{suffix}"


class OrderService:
    """Order intake, lookup, listing, detail edits and deletion."""

    def __init__(self, store: DocumentStore, audit: Optional[AuditService] = None):
        self._store = store
        self.order_repo = OrderRepository(store)
        self.audit = audit or AuditService(store)

    async def create_order(self, order_in: OrderCreate, created_by: str = "system") -> OrderDoc:
        now = utcnow()
        order_key = new_document_key()
        delivery = order_in.delivery.model_dump(mode="json", by_alias=True, exclude_none=True)
        delivery.setdefault("type", DeliveryType.OWN.value)
        order_data: Dict[str, Any] = {
            "orderId": generate_order_id(),
            "status": OrderStatus.PENDING.value,
            "customer": order_in.customer,
            "items": order_in.items,
            "totals": order_in.totals.model_dump(),
            "payment": order_in.payment,
            "delivery": delivery,
            "urgent": order_in.urgent,
            "assignedAgentId": None,
            "timeline": [timeline_entry(TimelineAction.ORDER_CREATED, "system", "Order created", now, OrderStatus.PENDING)],
            "createdAt": now,
            "updatedAt": now,
        }
        log = logger.bind(order_key=order_key, order_id=order_data["orderId"])
        order = await self.order_repo.create_order(order_key, order_data)
        log.success(f"Order created: {order.order_id}")
        await self.audit.log_event(
            actor_id=created_by, action="create_order", entity_type="order", entity_id=order.id,
            details={"orderId": order.order_id, "total": order_in.totals.total},
        )
        return order

    async def get_order(self, order_key: str) -> OrderDoc:
        order = await self.order_repo.get_order(order_key)
        if order is None:
            raise OrderNotFoundError(order_key)
        return order

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        delivery_type: Optional[DeliveryType] = None,
        urgent: Optional[bool] = None,
        agent_id: Optional[str] = None,
        payment_method: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> OrderPage:
        page = max(page, 1)
        limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)
        filters: Dict[str, Any] = {}
        if status is not None:
            filters["status"] = status.value
        if delivery_type is not None:
            filters["delivery.type"] = delivery_type.value
        if urgent is not None:
            filters["urgent"] = urgent
        if agent_id:
            filters["assignedAgentId"] = agent_id
        if payment_method:
            filters["payment.method"] = payment_method

        orders, total = await self.order_repo.list_orders(filters, page=page, limit=limit)
        total_pages = math.ceil(total / limit) if total else 0
        return OrderPage(
            orders=orders,
            pagination=Pagination(
                page=page, page_size=limit, total=total, total_pages=total_pages, has_next=page < total_pages,
            ),
        )

    async def update_order_details(self, order_key: str, update_in: OrderDetailsUpdate) -> OrderDoc:
        await self.get_order(order_key)
        changes = update_in.model_dump(exclude_unset=True, exclude={"updated_by"})
        changes = {field: value for field, value in changes.items() if value is not None}
        now = utcnow()
        note = f"Order details updated: {', '.join(sorted(changes))}" if changes else "Order touched"
        updated = await self.order_repo.update_order(order_key, DocumentUpdate(
            set_fields={**changes, "updatedAt": now},
            push_fields={"timeline": timeline_entry(TimelineAction.ORDER_UPDATED, update_in.updated_by, note, now)},
        ))
        if updated is None:
            raise OrderNotFoundError(order_key)
        logger.bind(order_key=order_key, fields=list(changes)).info("Order details updated.")
        return updated

    async def delete_order(self, order_key: str, deleted_by: str = "admin") -> None:
        order = await self.get_order(order_key)
        if order.assigned_agent_id:
            raise OrderAssignedConflictError(order_key, "delete")
        batch = self._store.batch()
        # Re-checked at commit so a concurrent assignment cannot be orphaned
        batch.delete(self.order_repo.collection, order_key, expect={"assignedAgentId": None})
        try:
            await self._store.commit(batch)
        except PreconditionFailedError as e:
            raise OrderAssignedConflictError(order_key, "delete") from e
        logger.bind(order_key=order_key).info(f"Order {order.order_id} deleted.")
        await self.audit.log_event(
            actor_id=deleted_by, action="delete_order", entity_type="order", entity_id=order_key,
            details={"orderId": order.order_id},
        )
