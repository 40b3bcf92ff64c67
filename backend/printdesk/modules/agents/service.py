# printdesk/modules/agents/service.py
# Service layer for delivery agent onboarding and account standing

from typing import Dict, List, Optional, Set

from printdesk.core.logging_setup import logger
from printdesk.db.document_store import DocumentExistsError, DocumentStore, DocumentUpdate
from printdesk.db.schemas.agent_schemas import (
    AccountStanding, AgentCreate, AgentDoc, AgentFilters, AgentPerformance, WorkCapacity, legacy_status,
)
from printdesk.db.schemas.common_schemas import new_document_key, utcnow
from printdesk.services.audit_service import AuditService
from .exceptions import AgentNotFoundError, DuplicateAgentError, InvalidStandingChangeError
from .repository import AgentRepository

# action -> (standings it may start from, standing it moves to)
STANDING_CHANGES: Dict[str, tuple[Set[AccountStanding], AccountStanding]] = {
    "suspend": ({AccountStanding.PENDING, AccountStanding.ACTIVE}, AccountStanding.SUSPENDED),
    "reactivate": ({AccountStanding.SUSPENDED, AccountStanding.INACTIVE}, AccountStanding.ACTIVE),
    "deactivate": ({AccountStanding.PENDING, AccountStanding.ACTIVE, AccountStanding.SUSPENDED}, AccountStanding.INACTIVE),
}


class AgentService:
    """Service layer for managing delivery agents."""

    def __init__(self, store: DocumentStore, audit: Optional[AuditService] = None):
        self.agent_repo = AgentRepository(store)
        self.audit = audit or AuditService(store)

    async def create_agent(self, agent_in: AgentCreate, created_by: str = "admin") -> AgentDoc:
        agent_id = agent_in.agent_id or new_document_key()
        log = logger.bind(agent_id=agent_id, phone=agent_in.phone)
        log.info("Creating new delivery agent.")

        now = utcnow()
        agent_data = {
            **agent_in.model_dump(exclude={"agent_id"}, exclude_none=True),
            "approved": False,
            "account_standing": AccountStanding.PENDING.value,
            "work_capacity": WorkCapacity.AVAILABLE.value,
            "status": legacy_status(AccountStanding.PENDING, WorkCapacity.AVAILABLE),
            "current_order_id": None,
            "assigned_orders": [],
            "performance": AgentPerformance().model_dump(),
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            agent = await self.agent_repo.create_agent(agent_id, agent_data)
        except DocumentExistsError:
            log.warning("Duplicate agent id.")
            raise DuplicateAgentError(agent_id)
        log.success(f"Agent created: {agent.full_name}")
        await self.audit.log_event(
            actor_id=created_by, action="create_agent", entity_type="agent", entity_id=agent_id,
        )
        return agent

    async def get_agent(self, agent_id: str) -> AgentDoc:
        agent = await self.agent_repo.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def list_agents(self, filters: Optional[AgentFilters] = None) -> List[AgentDoc]:
        return await self.agent_repo.list_agents((filters or AgentFilters()).to_query())

    async def approve_agent(self, agent_id: str, approved_by: str = "admin") -> AgentDoc:
        agent = await self.get_agent(agent_id)
        if agent.account_standing == AccountStanding.INACTIVE:
            raise InvalidStandingChangeError(agent_id, agent.account_standing.value, "approve")
        # Approval keeps a busy agent busy
        return await self._apply_standing(
            agent, AccountStanding.ACTIVE, "approve", approved_by, extra={"approved": True, "suspension_reason": None},
        )

    async def suspend_agent(self, agent_id: str, reason: Optional[str] = None, changed_by: str = "admin") -> AgentDoc:
        return await self._change_standing(agent_id, "suspend", changed_by, reason, {"suspension_reason": reason})

    async def reactivate_agent(self, agent_id: str, changed_by: str = "admin") -> AgentDoc:
        return await self._change_standing(agent_id, "reactivate", changed_by, extra={"suspension_reason": None})

    async def deactivate_agent(self, agent_id: str, reason: Optional[str] = None, changed_by: str = "admin") -> AgentDoc:
        return await self._change_standing(agent_id, "deactivate", changed_by, reason)

    async def _change_standing(
        self, agent_id: str, action: str, changed_by: str, reason: Optional[str] = None, extra: Optional[dict] = None
    ) -> AgentDoc:
        agent = await self.get_agent(agent_id)
        allowed_from, target = STANDING_CHANGES[action]
        if agent.account_standing not in allowed_from:
            raise InvalidStandingChangeError(agent_id, agent.account_standing.value, action)
        return await self._apply_standing(agent, target, action, changed_by, reason=reason, extra=extra)

    async def _apply_standing(
        self,
        agent: AgentDoc,
        target: AccountStanding,
        action: str,
        changed_by: str,
        reason: Optional[str] = None,
        extra: Optional[dict] = None,
    ) -> AgentDoc:
        fields = {
            "account_standing": target.value,
            "status": legacy_status(target, agent.work_capacity),
            "updatedAt": utcnow(),
            **(extra or {}),
        }
        updated = await self.agent_repo.update_agent(agent.id, DocumentUpdate(set_fields=fields))
        if updated is None:
            raise AgentNotFoundError(agent.id)

        logger.bind(agent_id=agent.id, old=agent.account_standing.value, new=target.value).info(f"Agent {action} applied.")
        await self.audit.log_event(
            actor_id=changed_by, action=f"{action}_agent", entity_type="agent", entity_id=agent.id,
            details={"from": agent.account_standing.value, "to": target.value, "reason": reason},
        )
        return updated
