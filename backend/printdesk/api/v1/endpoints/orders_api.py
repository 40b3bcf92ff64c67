# printdesk/api/v1/endpoints/orders_api.py
# REST endpoints for orders: intake/CRUD, status changes and agent assignment

from fastapi import APIRouter, Query, status, Path as FastApiPath
from typing import Annotated, Optional

from printdesk.api.deps import LifecycleServiceDep, OrderServiceDep
from printdesk.core.logging_setup import logger
from printdesk.db.schemas.common_schemas import MsgDetail
from printdesk.db.schemas.order_schemas import (
    AssignAgentRequest, AssignmentResult, BulkActionRequest, BulkActionResult, BulkAssignAgentRequest,
    BulkAssignmentResult, BulkUnassignAgentRequest, BulkUnassignmentResult, DeliveryType, OrderCreate,
    OrderDetailsUpdate, OrderDoc, OrderPage, OrderStatus, StatusUpdateRequest, UnassignAgentRequest,
    UnassignmentResult,
)

router = APIRouter()

OrderKey = Annotated[str, FastApiPath(description="Document key of the order")]


# --- Agent assignment (static paths before /{order_key}) ---

@router.post("/assign-agent", response_model=AssignmentResult, summary="Assign Agent To Order")
async def assign_agent(body: AssignAgentRequest, lifecycle: LifecycleServiceDep):
    return await lifecycle.assign_agent(body.order_id, body.agent_id, body.assigned_by)


@router.put("/assign-agent", response_model=BulkAssignmentResult, summary="Bulk Assign Agent (all or nothing)")
async def bulk_assign_agent(body: BulkAssignAgentRequest, lifecycle: LifecycleServiceDep):
    return await lifecycle.bulk_assign_agent(body.order_ids, body.agent_id, body.assigned_by)


@router.post("/unassign-agent", response_model=UnassignmentResult, summary="Unassign Agent From Order")
async def unassign_agent(body: UnassignAgentRequest, lifecycle: LifecycleServiceDep):
    return await lifecycle.unassign_agent(body.order_id, body.reason, body.unassigned_by)


@router.put("/unassign-agent", response_model=BulkUnassignmentResult, summary="Bulk Unassign Agents (best effort)")
async def bulk_unassign_agent(body: BulkUnassignAgentRequest, lifecycle: LifecycleServiceDep):
    return await lifecycle.bulk_unassign_agent(body.order_ids, body.reason, body.unassigned_by)


@router.post("/bulk-actions", response_model=BulkActionResult, summary="Bulk Order Action (best effort)")
async def bulk_order_action(body: BulkActionRequest, lifecycle: LifecycleServiceDep):
    logger.bind(action=body.action.value, count=len(body.order_ids)).info("Bulk order action requested.")
    return await lifecycle.bulk_order_action(body)


# --- CRUD ---

@router.get("", response_model=OrderPage, summary="List Orders")
async def list_orders(
    order_service: OrderServiceDep,
    status_filter: Annotated[Optional[OrderStatus], Query(alias="status")] = None,
    delivery_type: Annotated[Optional[DeliveryType], Query(alias="deliveryType")] = None,
    urgent: Optional[bool] = None,
    agent_id: Annotated[Optional[str], Query(alias="agentId")] = None,
    payment_method: Annotated[Optional[str], Query(alias="paymentMethod")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
):
    return await order_service.list_orders(
        status=status_filter, delivery_type=delivery_type, urgent=urgent, agent_id=agent_id,
        payment_method=payment_method, page=page, limit=limit,
    )


@router.post("", response_model=OrderDoc, status_code=status.HTTP_201_CREATED, summary="Create Order")
async def create_order(body: OrderCreate, order_service: OrderServiceDep):
    return await order_service.create_order(body)


@router.get("/{order_key}", response_model=OrderDoc, summary="Get Order")
async def get_order(order_key: OrderKey, order_service: OrderServiceDep):
    return await order_service.get_order(order_key)


@router.put("/{order_key}", response_model=OrderDoc, summary="Update Order Details")
async def update_order(order_key: OrderKey, body: OrderDetailsUpdate, order_service: OrderServiceDep):
    return await order_service.update_order_details(order_key, body)


@router.delete("/{order_key}", response_model=MsgDetail, summary="Delete Order")
async def delete_order(order_key: OrderKey, order_service: OrderServiceDep):
    await order_service.delete_order(order_key)
    return MsgDetail(msg=f"Order {order_key} deleted.")


@router.patch("/{order_key}/status", response_model=OrderDoc, summary="Update Order Status")
async def update_order_status(order_key: OrderKey, body: StatusUpdateRequest, lifecycle: LifecycleServiceDep):
    return await lifecycle.update_status(order_key, body.status, body.note, body.updated_by)
