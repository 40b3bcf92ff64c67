# printdesk/modules/agents/repository.py
# Repository for delivery Agent data operations

from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from printdesk.core.exceptions import RepositoryError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import AGENTS_COLLECTION, DocumentStore, DocumentUpdate
from printdesk.db.schemas.agent_schemas import AgentDoc


class AgentRepository:
    """Thin CRUD + query wrapper over the `agents` collection."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self.collection = AGENTS_COLLECTION

    def _map_doc(self, doc: Optional[Dict[str, Any]]) -> Optional[AgentDoc]:
        if doc is None:
            return None
        try:
            return AgentDoc.model_validate(doc)
        except ValidationError as e:
            logger.bind(agent_id=doc.get("_id")).error(f"Failed to map document to AgentDoc: {e}")
            raise RepositoryError(f"Stored agent '{doc.get('_id')}' is malformed.") from e

    async def get_agent(self, agent_id: str) -> Optional[AgentDoc]:
        return self._map_doc(await self._store.get(self.collection, agent_id))

    async def create_agent(self, agent_id: str, agent_data: Dict[str, Any]) -> AgentDoc:
        created = await self._store.create(self.collection, agent_id, agent_data)
        logger.bind(collection=self.collection, agent_id=agent_id).info("Agent document created.")
        return self._map_doc(created)

    async def update_agent(self, agent_id: str, update: DocumentUpdate) -> Optional[AgentDoc]:
        return self._map_doc(await self._store.update(self.collection, agent_id, update))

    async def list_agents(self, filters: Optional[Dict[str, Any]] = None) -> List[AgentDoc]:
        docs = await self._store.find(self.collection, filters or {}, sort=[("createdAt", -1)])
        return [self._map_doc(doc) for doc in docs]
