# printdesk/modules/pricing/service.py
import math
from typing import List, Optional

from printdesk.core.exceptions import InputValidationError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import DocumentStore, DocumentUpdate
from printdesk.db.schemas.common_schemas import new_document_key, utcnow
from printdesk.db.schemas.pricing_schemas import (
    DeliveryPricingRuleDoc, PriceCalculation, PricingRuleCreate, PricingRuleUpdate,
)
from printdesk.modules.pricing.commission import split_commission
from printdesk.modules.pricing.exceptions import DuplicateTierError, NoMatchingRuleError, PricingRuleNotFoundError
from printdesk.modules.pricing.repository import PricingRuleRepository
from printdesk.services.audit_service import AuditService


class DeliveryPricingService:
    """Distance-tier pricing: rule management and price resolution."""

    def __init__(self, store: DocumentStore, audit: Optional[AuditService] = None):
        self.rule_repo = PricingRuleRepository(store)
        self.audit = audit or AuditService(store)

    async def list_rules(self, active_only: bool = False) -> List[DeliveryPricingRuleDoc]:
        return await self.rule_repo.list_rules(active_only=active_only)

    async def resolve_price(self, distance_km: float) -> PriceCalculation:
        """Prices a delivery with the narrowest active tier covering the distance."""
        if distance_km is None or not math.isfinite(distance_km) or distance_km < 0:
            raise InputValidationError(f"Invalid distance provided: {distance_km}")

        # Ascending by maxDistanceKm: the first covering rule is the narrowest tier
        rules = await self.rule_repo.list_rules(active_only=True)
        applicable = next((rule for rule in rules if distance_km <= rule.max_distance_km), None)
        if applicable is None:
            logger.bind(distance_km=distance_km, active_rules=len(rules)).warning("No pricing rule matches distance.")
            raise NoMatchingRuleError(distance_km)

        split = split_commission(applicable.price, applicable.agent_commission_percentage)
        return PriceCalculation(
            distance=distance_km,
            base_price=applicable.price,
            agent_commission=split.agent_commission,
            company_revenue=split.company_revenue,
            applicable_rule=applicable,
        )

    async def create_rule(self, rule_in: PricingRuleCreate, created_by: str = "admin") -> DeliveryPricingRuleDoc:
        log = logger.bind(max_distance_km=rule_in.max_distance_km)
        # Any existing tier, active or not, blocks the same maxDistanceKm
        if await self.rule_repo.find_by_max_distance(rule_in.max_distance_km):
            log.warning("Duplicate pricing tier rejected.")
            raise DuplicateTierError(rule_in.max_distance_km)

        now = utcnow()
        rule_data = {
            "maxDistanceKm": rule_in.max_distance_km,
            "price": rule_in.price,
            "agentCommissionPercentage": rule_in.agent_commission_percentage,
            "isActive": rule_in.is_active,
            "description": rule_in.description or f"Up to {rule_in.max_distance_km:g} km",
            "createdAt": now,
            "updatedAt": now,
        }
        rule = await self.rule_repo.create_rule(new_document_key(), rule_data)
        log.success(f"Pricing rule created: {rule.id}")
        await self.audit.log_event(
            actor_id=created_by, action="create_pricing_rule", entity_type="delivery_pricing",
            entity_id=rule.id, details={"maxDistanceKm": rule.max_distance_km, "price": rule.price},
        )
        return rule

    async def update_rule(self, rule_in: PricingRuleUpdate, updated_by: str = "admin") -> DeliveryPricingRuleDoc:
        existing = await self.rule_repo.get_rule(rule_in.id)
        if existing is None:
            raise PricingRuleNotFoundError(rule_in.id)

        changes = rule_in.model_dump(by_alias=True, exclude_unset=True, exclude={"id"})
        changes = {field: value for field, value in changes.items() if value is not None}
        new_distance = changes.get("maxDistanceKm")
        if new_distance is not None and new_distance != existing.max_distance_km:
            clashes = [r for r in await self.rule_repo.find_by_max_distance(new_distance) if r.id != existing.id]
            if clashes:
                raise DuplicateTierError(new_distance)

        changes["updatedAt"] = utcnow()
        updated = await self.rule_repo.update_rule(rule_in.id, DocumentUpdate(set_fields=changes))
        if updated is None:
            raise PricingRuleNotFoundError(rule_in.id)
        logger.bind(rule_id=rule_in.id, fields=list(changes)).info("Pricing rule updated.")
        await self.audit.log_event(
            actor_id=updated_by, action="update_pricing_rule", entity_type="delivery_pricing",
            entity_id=rule_in.id, details={k: v for k, v in changes.items() if k != "updatedAt"},
        )
        return updated

    async def delete_rule(self, rule_id: str, deleted_by: str = "admin") -> None:
        if not await self.rule_repo.delete_rule(rule_id):
            raise PricingRuleNotFoundError(rule_id)
        logger.bind(rule_id=rule_id).info("Pricing rule deleted.")
        await self.audit.log_event(
            actor_id=deleted_by, action="delete_pricing_rule", entity_type="delivery_pricing", entity_id=rule_id,
        )
