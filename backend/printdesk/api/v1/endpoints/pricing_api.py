# printdesk/api/v1/endpoints/pricing_api.py
# Distance-tier delivery pricing: rule CRUD and price resolution

from fastapi import APIRouter, Query, status
from typing import Annotated, List, Optional, Union

from printdesk.api.deps import PricingServiceDep
from printdesk.db.schemas.common_schemas import MsgDetail
from printdesk.db.schemas.pricing_schemas import (
    DeliveryPricingRuleDoc, PriceCalculation, PricingRuleCreate, PricingRuleUpdate,
)

router = APIRouter()


@router.get(
    "",
    response_model=Union[PriceCalculation, List[DeliveryPricingRuleDoc]],
    summary="List Pricing Rules or Resolve a Price",
)
async def get_pricing(
    pricing_service: PricingServiceDep,
    distance: Optional[float] = None,
    calculate: bool = False,
    active_only: Annotated[bool, Query(alias="activeOnly")] = False,
):
    """With `distance` and `calculate=true` returns the price for that distance, otherwise the rule list."""
    if distance is not None and calculate:
        return await pricing_service.resolve_price(distance)
    return await pricing_service.list_rules(active_only=active_only)


@router.post("", response_model=DeliveryPricingRuleDoc, status_code=status.HTTP_201_CREATED, summary="Create Pricing Rule")
async def create_rule(body: PricingRuleCreate, pricing_service: PricingServiceDep):
    return await pricing_service.create_rule(body)


@router.put("", response_model=DeliveryPricingRuleDoc, summary="Update Pricing Rule")
async def update_rule(body: PricingRuleUpdate, pricing_service: PricingServiceDep):
    return await pricing_service.update_rule(body)


@router.delete("", response_model=MsgDetail, summary="Delete Pricing Rule")
async def delete_rule(pricing_service: PricingServiceDep, rule_id: Annotated[str, Query(alias="id", min_length=1)]):
    await pricing_service.delete_rule(rule_id)
    return MsgDetail(msg="Pricing rule deleted successfully")
