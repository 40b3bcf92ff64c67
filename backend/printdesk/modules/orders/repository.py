# printdesk/modules/orders/repository.py
# Repository for Order data operations

from typing import Any, Dict, List, Optional, Tuple
from pydantic import ValidationError

from printdesk.core.exceptions import RepositoryError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import ORDERS_COLLECTION, DocumentStore, DocumentUpdate
from printdesk.db.schemas.order_schemas import OrderDoc, OrderStatus


class OrderRepository:
    """Thin CRUD + query wrapper over the `orders` collection."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self.collection = ORDERS_COLLECTION

    def _map_doc(self, doc: Optional[Dict[str, Any]]) -> Optional[OrderDoc]:
        if doc is None:
            return None
        try:
            return OrderDoc.model_validate(doc)
        except ValidationError as e:
            logger.bind(order_key=doc.get("_id")).error(f"Failed to map document to OrderDoc: {e}")
            raise RepositoryError(f"Stored order '{doc.get('_id')}' is malformed.") from e

    async def get_order(self, order_key: str) -> Optional[OrderDoc]:
        return self._map_doc(await self._store.get(self.collection, order_key))

    async def get_orders(self, order_keys: List[str]) -> Dict[str, Optional[OrderDoc]]:
        """Reads each order in input order; missing keys map to None."""
        found: Dict[str, Optional[OrderDoc]] = {}
        for key in order_keys:
            found[key] = await self.get_order(key)
        return found

    async def create_order(self, order_key: str, order_data: Dict[str, Any]) -> OrderDoc:
        log = logger.bind(collection=self.collection, action="create", order_key=order_key)
        created = await self._store.create(self.collection, order_key, order_data)
        log.info(f"Order document created: {order_data.get('orderId')}")
        return self._map_doc(created)

    async def update_order(self, order_key: str, update: DocumentUpdate) -> Optional[OrderDoc]:
        return self._map_doc(await self._store.update(self.collection, order_key, update))

    async def list_orders(
        self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 50
    ) -> Tuple[List[OrderDoc], int]:
        """Newest-first page of orders matching equality filters, plus the total match count."""
        query = filters or {}
        docs = await self._store.find(
            self.collection, query, sort=[("createdAt", -1)], limit=limit, skip=(page - 1) * limit
        )
        total = await self._store.count(self.collection, query)
        return [self._map_doc(doc) for doc in docs], total

    async def find_delivered_by_agent(self, agent_id: str) -> List[OrderDoc]:
        docs = await self._store.find(
            self.collection,
            {"assignedAgentId": agent_id, "status": OrderStatus.DELIVERED.value},
            sort=[("delivery.completedAt", -1)],
        )
        return [self._map_doc(doc) for doc in docs]
