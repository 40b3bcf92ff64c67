# printdesk/db/schemas/earnings_schemas.py
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum


class EarningsPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DeliveryCompletionRequest(BaseModel):
    order_id: str = Field(..., alias="orderId", min_length=1)
    agent_id: str = Field(..., alias="agentId", min_length=1)
    distance: Optional[float] = Field(None, ge=0)
    delivery_fee: Optional[float] = Field(None, ge=0, alias="deliveryFee")
    agent_commission_percentage: Optional[int] = Field(None, ge=0, le=100, alias="agentCommissionPercentage")
    completed_by: Optional[str] = Field(None, alias="completedBy")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def fee_or_distance(self) -> "DeliveryCompletionRequest":
        if self.delivery_fee is None and self.distance is None:
            raise ValueError("Either deliveryFee or distance is required.")
        return self


class DeliveryCompletionResult(BaseModel):
    order_id: str = Field(..., alias="orderId")
    agent_id: str = Field(..., alias="agentId")
    delivery_fee: float = Field(..., alias="deliveryFee")
    agent_commission: float = Field(..., alias="agentCommission")
    company_revenue: float = Field(..., alias="companyRevenue")
    agent_commission_percentage: int = Field(..., alias="agentCommissionPercentage")
    distance: float
    completed_at: datetime = Field(..., alias="completedAt")

    model_config = {"populate_by_name": True}


class DeliveryEarning(BaseModel):
    order_id: str = Field(..., alias="orderId")
    distance: float
    delivery_fee: float = Field(..., alias="deliveryFee")
    agent_commission: float = Field(..., alias="agentCommission")
    completed_at: datetime = Field(..., alias="completedAt")

    model_config = {"populate_by_name": True}


class EarningsReport(BaseModel):
    agent_id: str = Field(..., alias="agentId")
    agent_name: str = Field(..., alias="agentName")
    total_deliveries: int = Field(..., alias="totalDeliveries")
    total_earnings: float = Field(..., alias="totalEarnings")
    average_earnings_per_delivery: float = Field(..., alias="averageEarningsPerDelivery")
    period: str
    window_start: datetime = Field(..., alias="windowStart")
    window_end: datetime = Field(..., alias="windowEnd")
    deliveries: List[DeliveryEarning]

    model_config = {"populate_by_name": True}
