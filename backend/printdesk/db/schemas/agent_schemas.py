# printdesk/db/schemas/agent_schemas.py
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from .common_schemas import utcnow


# --- Enums ---
class AccountStanding(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class WorkCapacity(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"


def legacy_status(standing: AccountStanding, capacity: WorkCapacity) -> str:
    """Combined single-field status older clients read and filter on."""
    if standing == AccountStanding.ACTIVE:
        return capacity.value
    return standing.value


def split_legacy_status(status: Optional[str]) -> tuple[AccountStanding, WorkCapacity]:
    if status in (WorkCapacity.AVAILABLE.value, WorkCapacity.BUSY.value):
        return AccountStanding.ACTIVE, WorkCapacity(status)
    if status in {s.value for s in AccountStanding}:
        return AccountStanding(status), WorkCapacity.AVAILABLE
    return AccountStanding.PENDING, WorkCapacity.AVAILABLE


# --- Subdocument Models ---
class AgentPerformance(BaseModel):
    """Cumulative counters. Only lifecycle and earnings code increments them."""
    orders_assigned: int = 0
    deliveries_completed: int = 0
    average_rating: float = 0
    total_earnings: float = 0


class Vehicle(BaseModel):
    type: str
    number: str
    model: Optional[str] = None
    color: Optional[str] = None


# --- Main Document Model ---
class AgentDoc(BaseModel):
    """Delivery agent document in the `agents` collection (key = agentId)."""
    id: str = Field(..., alias="_id")
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    vehicle: Optional[Vehicle] = None
    approved: bool = False
    account_standing: AccountStanding = AccountStanding.PENDING
    work_capacity: WorkCapacity = WorkCapacity.AVAILABLE
    status: str = AccountStanding.PENDING.value
    current_order_id: Optional[str] = None
    assigned_orders: List[str] = Field(default_factory=list)
    performance: AgentPerformance = Field(default_factory=AgentPerformance)
    suspension_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    assigned_at: Optional[datetime] = Field(None, alias="assignedAt")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @model_validator(mode="before")
    @classmethod
    def derive_axes_from_legacy_status(cls, data: Any) -> Any:
        if isinstance(data, dict) and ("account_standing" not in data or "work_capacity" not in data):
            standing, capacity = split_legacy_status(data.get("status"))
            data = {**data}
            data.setdefault("account_standing", standing.value)
            data.setdefault("work_capacity", capacity.value)
        if isinstance(data, dict) and data.get("phone") is None and data.get("phone_number"):
            data = {**data, "phone": data["phone_number"]}
        return data

    @model_validator(mode="after")
    def sync_legacy_status(self) -> "AgentDoc":
        self.status = legacy_status(self.account_standing, self.work_capacity)
        return self

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.id

    @property
    def is_assignable(self) -> bool:
        return self.approved and self.account_standing != AccountStanding.INACTIVE


# --- Request Models ---
class AgentCreate(BaseModel):
    agent_id: Optional[str] = Field(None, alias="agentId")
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    phone: str = Field(..., min_length=5)
    email: Optional[str] = None
    city: Optional[str] = None
    vehicle: Optional[Vehicle] = None

    model_config = {"populate_by_name": True}


class StandingChangeRequest(BaseModel):
    reason: Optional[str] = None
    changed_by: str = Field("admin", alias="changedBy")

    model_config = {"populate_by_name": True}


class AgentFilters(BaseModel):
    approved: Optional[bool] = None
    account_standing: Optional[AccountStanding] = None
    work_capacity: Optional[WorkCapacity] = None
    city: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if self.approved is not None:
            query["approved"] = self.approved
        if self.account_standing is not None:
            query["account_standing"] = self.account_standing.value
        if self.work_capacity is not None:
            query["work_capacity"] = self.work_capacity.value
        if self.city:
            query["city"] = self.city
        return query
