# printdesk/modules/pricing/repository.py
# Repository for delivery pricing tiers

from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from printdesk.core.exceptions import RepositoryError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import PRICING_COLLECTION, DocumentStore, DocumentUpdate
from printdesk.db.schemas.pricing_schemas import DeliveryPricingRuleDoc


class PricingRuleRepository:
    def __init__(self, store: DocumentStore):
        self._store = store
        self.collection = PRICING_COLLECTION

    def _map_doc(self, doc: Optional[Dict[str, Any]]) -> Optional[DeliveryPricingRuleDoc]:
        if doc is None:
            return None
        try:
            return DeliveryPricingRuleDoc.model_validate(doc)
        except ValidationError as e:
            logger.bind(rule_id=doc.get("_id")).error(f"Failed to map document to DeliveryPricingRuleDoc: {e}")
            raise RepositoryError(f"Stored pricing rule '{doc.get('_id')}' is malformed.") from e

    async def list_rules(self, active_only: bool = False) -> List[DeliveryPricingRuleDoc]:
        """Rules sorted ascending by maxDistanceKm."""
        query = {"isActive": True} if active_only else {}
        docs = await self._store.find(self.collection, query, sort=[("maxDistanceKm", 1)])
        return [self._map_doc(doc) for doc in docs]

    async def get_rule(self, rule_id: str) -> Optional[DeliveryPricingRuleDoc]:
        return self._map_doc(await self._store.get(self.collection, rule_id))

    async def find_by_max_distance(self, max_distance_km: float) -> List[DeliveryPricingRuleDoc]:
        docs = await self._store.find(self.collection, {"maxDistanceKm": max_distance_km})
        return [self._map_doc(doc) for doc in docs]

    async def create_rule(self, rule_id: str, rule_data: Dict[str, Any]) -> DeliveryPricingRuleDoc:
        created = await self._store.create(self.collection, rule_id, rule_data)
        logger.bind(collection=self.collection, rule_id=rule_id).info("Pricing rule created.")
        return self._map_doc(created)

    async def update_rule(self, rule_id: str, update: DocumentUpdate) -> Optional[DeliveryPricingRuleDoc]:
        return self._map_doc(await self._store.update(self.collection, rule_id, update))

    async def delete_rule(self, rule_id: str) -> bool:
        return await self._store.delete(self.collection, rule_id)
