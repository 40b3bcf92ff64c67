# printdesk/db/schemas/pricing_schemas.py
from pydantic import BaseModel, Field, model_validator
from typing import Any, Optional
from datetime import datetime

from .common_schemas import utcnow

DEFAULT_COMMISSION_PERCENTAGE = 70


class DeliveryPricingRuleDoc(BaseModel):
    """Distance tier in the `delivery_pricing` collection."""
    id: str = Field(..., alias="_id")
    max_distance_km: float = Field(..., alias="maxDistanceKm")
    price: float
    agent_commission_percentage: int = Field(DEFAULT_COMMISSION_PERCENTAGE, ge=0, le=100, alias="agentCommissionPercentage")
    is_active: bool = Field(True, alias="isActive")
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def fill_legacy_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {**data}
            if data.get("agentCommissionPercentage") is None:
                data["agentCommissionPercentage"] = DEFAULT_COMMISSION_PERCENTAGE
            if data.get("isActive") is None:
                data["isActive"] = True
            if not data.get("description") and data.get("maxDistanceKm") is not None:
                data["description"] = f"Up to {data['maxDistanceKm']:g} km"
        return data


class PricingRuleCreate(BaseModel):
    max_distance_km: float = Field(..., gt=0, alias="maxDistanceKm")
    price: float = Field(..., gt=0)
    agent_commission_percentage: int = Field(DEFAULT_COMMISSION_PERCENTAGE, ge=0, le=100, alias="agentCommissionPercentage")
    is_active: bool = Field(True, alias="isActive")
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class PricingRuleUpdate(BaseModel):
    id: str = Field(..., min_length=1)
    max_distance_km: Optional[float] = Field(None, gt=0, alias="maxDistanceKm")
    price: Optional[float] = Field(None, gt=0)
    agent_commission_percentage: Optional[int] = Field(None, ge=0, le=100, alias="agentCommissionPercentage")
    is_active: Optional[bool] = Field(None, alias="isActive")
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class CommissionSplit(BaseModel):
    delivery_fee: float = Field(..., alias="deliveryFee")
    agent_commission: float = Field(..., alias="agentCommission")
    company_revenue: float = Field(..., alias="companyRevenue")
    agent_commission_percentage: int = Field(..., alias="agentCommissionPercentage")

    model_config = {"populate_by_name": True}


class PriceCalculation(BaseModel):
    distance: float
    base_price: float = Field(..., alias="basePrice")
    agent_commission: float = Field(..., alias="agentCommission")
    company_revenue: float = Field(..., alias="companyRevenue")
    applicable_rule: DeliveryPricingRuleDoc = Field(..., alias="applicableRule")

    model_config = {"populate_by_name": True}
