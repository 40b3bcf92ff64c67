# printdesk/services/audit_service.py
# Writes audit trail entries for lifecycle mutations

from typing import Any, Dict, Optional

from printdesk.core.config import settings
from printdesk.core.exceptions import RepositoryError
from printdesk.core.logging_setup import logger, trace_id_var
from printdesk.db.document_store import DocumentExistsError, DocumentStore
from printdesk.db.schemas.common_schemas import new_document_key, utcnow


class AuditService:
    """Logs important actions to a dedicated collection. Never fails the caller."""

    def __init__(self, store: DocumentStore, enabled: Optional[bool] = None, collection_name: Optional[str] = None):
        self._store = store
        self.enabled = settings.AUDIT_LOG_ENABLED if enabled is None else enabled
        self.collection_name = collection_name or settings.AUDIT_LOG_MONGO_COLLECTION

    async def log_event(
        self,
        actor_id: str,
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        success: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        if not self.enabled:
            return
        log_entry = {
            "timestamp": utcnow(),
            "actor_id": actor_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "success": success,
            "details": details or {},
            "trace_id": trace_id_var.get() or "N/A",
        }
        log = logger.bind(audit_action=action, audit_actor=actor_id, audit_success=success)
        try:
            await self._store.create(self.collection_name, new_document_key(), log_entry)
            log.debug("Audit event logged successfully.")
        except (RepositoryError, DocumentExistsError):
            # Audit failures never fail the business operation
            log.exception("Failed to write audit log.")
