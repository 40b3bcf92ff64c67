# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from printdesk.api.deps import get_document_store
from printdesk.main import create_app
from printdesk.modules.agents.service import AgentService
from printdesk.modules.earnings.service import EarningsService
from printdesk.modules.orders.lifecycle import OrderLifecycleService
from printdesk.modules.orders.service import OrderService
from printdesk.modules.pricing.service import DeliveryPricingService
from printdesk.services.audit_service import AuditService

from fakes import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def audit(store):
    return AuditService(store, enabled=True, collection_name="audit_logs")


@pytest.fixture
def lifecycle(store, audit):
    return OrderLifecycleService(store, audit=audit)


@pytest.fixture
def order_service(store, audit):
    return OrderService(store, audit=audit)


@pytest.fixture
def agent_service(store, audit):
    return AgentService(store, audit=audit)


@pytest.fixture
def pricing_service(store, audit):
    return DeliveryPricingService(store, audit=audit)


@pytest.fixture
def earnings_service(store, audit, pricing_service):
    return EarningsService(store, pricing=pricing_service, audit=audit)


@pytest.fixture
def client(store):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_document_store] = lambda: store
    app.state.limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
