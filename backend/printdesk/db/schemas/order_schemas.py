# printdesk/db/schemas/order_schemas.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from .common_schemas import utcnow


# --- Enums ---
class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"
    NOT_DELIVERED = "Not Delivered"


class DeliveryType(str, Enum):
    OWN = "own"
    SHIPROCKET = "shiprocket"


class TimelineAction(str, Enum):
    ORDER_CREATED = "order_created"
    ORDER_UPDATED = "order_updated"
    STATUS_UPDATED = "status_updated"
    AGENT_ASSIGNED = "agent_assigned"
    AGENT_UNASSIGNED = "agent_unassigned"
    DELIVERY_COMPLETED = "delivery_completed"


class BulkPolicy(str, Enum):
    ATOMIC_ALL = "atomic_all"     # any invalid item aborts the whole call
    BEST_EFFORT = "best_effort"   # invalid items are skipped and reported


# --- Subdocument Models ---
class TimelineEntry(BaseModel):
    """Append-only audit entry embedded in the order."""
    ts: datetime = Field(default_factory=utcnow)
    actor: str = "system"
    action: str
    note: Optional[str] = None
    status: Optional[OrderStatus] = None


class DeliveryInfo(BaseModel):
    # Unset on legacy documents; such orders are not own-delivery orders
    type: Optional[DeliveryType] = None
    fee: Optional[float] = None
    distance: Optional[float] = None
    agent_commission: Optional[float] = Field(None, alias="agentCommission")
    company_revenue: Optional[float] = Field(None, alias="companyRevenue")
    agent_commission_percentage: Optional[int] = Field(None, alias="agentCommissionPercentage")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")

    # Courier details (tracking_url, shiprocket_shipment_id, ...) pass through
    model_config = {"populate_by_name": True, "extra": "allow"}


class OrderTotals(BaseModel):
    subtotal: float = 0
    shipping: float = 0
    tax: float = 0
    discount: float = 0
    total: float = Field(..., ge=0)


# --- Main Document Model ---
class OrderDoc(BaseModel):
    """Order document in the `orders` collection."""
    id: str = Field(..., alias="_id")
    order_id: str = Field(..., alias="orderId")
    status: OrderStatus = OrderStatus.PENDING
    customer: Dict[str, Any] = Field(default_factory=dict)
    items: List[Dict[str, Any]] = Field(default_factory=list)
    totals: Optional[OrderTotals] = None
    payment: Dict[str, Any] = Field(default_factory=dict)
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)
    urgent: bool = False
    assigned_agent_id: Optional[str] = Field(None, alias="assignedAgentId")
    assigned_at: Optional[datetime] = Field(None, alias="assignedAt")
    unassigned_at: Optional[datetime] = Field(None, alias="unassignedAt")
    unassigned_reason: Optional[str] = Field(None, alias="unassignedReason")
    timeline: List[TimelineEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    model_config = {"populate_by_name": True, "extra": "allow"}

# --- Request Models ---
class OrderCreate(BaseModel):
    customer: Dict[str, Any]
    items: List[Dict[str, Any]] = Field(..., min_length=1)
    totals: OrderTotals
    payment: Dict[str, Any] = Field(default_factory=lambda: {"method": "cod", "status": "pending"})
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)
    urgent: bool = False


class OrderDetailsUpdate(BaseModel):
    customer: Optional[Dict[str, Any]] = None
    items: Optional[List[Dict[str, Any]]] = None
    totals: Optional[OrderTotals] = None
    payment: Optional[Dict[str, Any]] = None
    urgent: Optional[bool] = None
    updated_by: str = Field("admin", alias="updatedBy")

    model_config = {"populate_by_name": True}


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    note: Optional[str] = None
    updated_by: str = Field("admin", alias="updatedBy")

    model_config = {"populate_by_name": True}


class AssignAgentRequest(BaseModel):
    order_id: str = Field(..., alias="orderId", min_length=1)
    agent_id: str = Field(..., alias="agentId", min_length=1)
    assigned_by: str = Field("admin", alias="assignedBy")

    model_config = {"populate_by_name": True}


class BulkAssignAgentRequest(BaseModel):
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1)
    agent_id: str = Field(..., alias="agentId", min_length=1)
    assigned_by: str = Field("admin", alias="assignedBy")

    model_config = {"populate_by_name": True}


class UnassignAgentRequest(BaseModel):
    order_id: str = Field(..., alias="orderId", min_length=1)
    reason: Optional[str] = None
    unassigned_by: str = Field("admin", alias="unassignedBy")

    model_config = {"populate_by_name": True}


class BulkUnassignAgentRequest(BaseModel):
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1)
    reason: Optional[str] = None
    unassigned_by: str = Field("admin", alias="unassignedBy")

    model_config = {"populate_by_name": True}


class BulkActionType(str, Enum):
    UPDATE_STATUS = "update_status"
    MARK_URGENT = "mark_urgent"
    UPDATE_DELIVERY_TYPE = "update_delivery_type"


class BulkActionData(BaseModel):
    status: Optional[OrderStatus] = None
    status_note: Optional[str] = Field(None, alias="statusNote")
    delivery_type: Optional[DeliveryType] = Field(None, alias="deliveryType")
    urgent: bool = True
    updated_by: str = Field("admin", alias="updatedBy")

    model_config = {"populate_by_name": True}


class BulkActionRequest(BaseModel):
    action: BulkActionType
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1)
    data: BulkActionData = Field(default_factory=BulkActionData)

    model_config = {"populate_by_name": True}


# --- Result Models ---
class AgentSummary(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None


class AssignmentResult(BaseModel):
    order: OrderDoc
    agent: AgentSummary


class BulkAssignmentResult(BaseModel):
    policy: BulkPolicy = BulkPolicy.ATOMIC_ALL
    assigned_orders_count: int = Field(..., alias="assignedOrdersCount")
    assigned_orders: List[str] = Field(..., alias="assignedOrders")
    agent: AgentSummary

    model_config = {"populate_by_name": True}


class UnassignmentResult(BaseModel):
    order: OrderDoc
    previous_agent: AgentSummary = Field(..., alias="previousAgent")
    reason: str

    model_config = {"populate_by_name": True}


class AffectedAgent(BaseModel):
    id: str
    name: str
    order_count: int = Field(..., alias="orderCount")
    freed: bool = False

    model_config = {"populate_by_name": True}


class BulkUnassignmentResult(BaseModel):
    policy: BulkPolicy = BulkPolicy.BEST_EFFORT
    unassigned_orders_count: int = Field(..., alias="unassignedOrdersCount")
    unassigned_orders: List[str] = Field(..., alias="unassignedOrders")
    affected_agents: List[AffectedAgent] = Field(..., alias="affectedAgents")
    reason: str
    errors: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class BulkItemResult(BaseModel):
    order_id: str = Field(..., alias="orderId")
    success: bool
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


class BulkActionResult(BaseModel):
    policy: BulkPolicy = BulkPolicy.BEST_EFFORT
    action: BulkActionType
    processed: int
    successful: int
    failed: int
    results: List[BulkItemResult]


class Pagination(BaseModel):
    page: int
    page_size: int = Field(..., alias="pageSize")
    total: int
    total_pages: int = Field(..., alias="totalPages")
    has_next: bool = Field(..., alias="hasNext")

    model_config = {"populate_by_name": True}


class OrderPage(BaseModel):
    orders: List[OrderDoc]
    pagination: Pagination
