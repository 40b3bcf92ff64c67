# printdesk/api/deps.py
# FastAPI dependency providers. Tests override get_document_store.

from typing import Annotated
from fastapi import Depends

from printdesk.db.document_store import DocumentStore
from printdesk.db.mongo_client import get_database
from printdesk.db.mongo_store import MongoDocumentStore
from printdesk.modules.agents.service import AgentService
from printdesk.modules.earnings.service import EarningsService
from printdesk.modules.orders.lifecycle import OrderLifecycleService
from printdesk.modules.orders.service import OrderService
from printdesk.modules.pricing.service import DeliveryPricingService
from printdesk.services.audit_service import AuditService


def get_document_store() -> DocumentStore:
    return MongoDocumentStore(get_database())


StoreDep = Annotated[DocumentStore, Depends(get_document_store)]


def get_audit_service(store: StoreDep) -> AuditService:
    return AuditService(store)


AuditDep = Annotated[AuditService, Depends(get_audit_service)]


def get_order_service(store: StoreDep, audit: AuditDep) -> OrderService:
    return OrderService(store, audit=audit)


def get_lifecycle_service(store: StoreDep, audit: AuditDep) -> OrderLifecycleService:
    return OrderLifecycleService(store, audit=audit)


def get_agent_service(store: StoreDep, audit: AuditDep) -> AgentService:
    return AgentService(store, audit=audit)


def get_pricing_service(store: StoreDep, audit: AuditDep) -> DeliveryPricingService:
    return DeliveryPricingService(store, audit=audit)


def get_earnings_service(store: StoreDep, audit: AuditDep) -> EarningsService:
    return EarningsService(store, pricing=DeliveryPricingService(store, audit=audit), audit=audit)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
LifecycleServiceDep = Annotated[OrderLifecycleService, Depends(get_lifecycle_service)]
AgentServiceDep = Annotated[AgentService, Depends(get_agent_service)]
PricingServiceDep = Annotated[DeliveryPricingService, Depends(get_pricing_service)]
EarningsServiceDep = Annotated[EarningsService, Depends(get_earnings_service)]
