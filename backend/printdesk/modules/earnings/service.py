# printdesk/modules/earnings/service.py
# Delivery completion (order marked Delivered + agent credited in one commit)
# and per-agent earnings reports.

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from printdesk.core.config import settings
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import AGENTS_COLLECTION, ORDERS_COLLECTION, DocumentStore, DocumentUpdate, PreconditionFailedError
from printdesk.db.schemas.common_schemas import utcnow
from printdesk.db.schemas.earnings_schemas import (
    DeliveryCompletionRequest, DeliveryCompletionResult, DeliveryEarning, EarningsPeriod, EarningsReport,
)
from printdesk.db.schemas.order_schemas import OrderStatus, TimelineAction
from printdesk.modules.agents.exceptions import AgentNotFoundError
from printdesk.modules.agents.repository import AgentRepository
from printdesk.modules.orders.exceptions import (
    AgentNotAssignedError, ConcurrentModificationError, DeliveryAlreadyCompletedError, OrderNotFoundError,
)
from printdesk.modules.orders.lifecycle import free_agent_fields, timeline_entry
from printdesk.modules.orders.repository import OrderRepository
from printdesk.modules.pricing.commission import split_commission
from printdesk.modules.pricing.service import DeliveryPricingService
from printdesk.services.audit_service import AuditService


def resolve_window(
    period: Optional[str], start: Optional[datetime] = None, end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """UTC [start, end] for a report. Explicit bounds win; unknown periods mean monthly."""
    now = now or utcnow()
    if start is not None or end is not None:
        return _as_utc(start) if start else datetime(1970, 1, 1, tzinfo=timezone.utc), _as_utc(end) if end else now

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        resolved = EarningsPeriod(period) if period else EarningsPeriod.MONTHLY
    except ValueError:
        resolved = EarningsPeriod.MONTHLY
    if resolved == EarningsPeriod.DAILY:
        return midnight, now
    if resolved == EarningsPeriod.WEEKLY:
        return now - timedelta(days=7), now
    if resolved == EarningsPeriod.YEARLY:
        return midnight.replace(month=1, day=1), now
    return midnight.replace(day=1), now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EarningsService:
    """Credits agents for completed deliveries and reports what they earned."""

    def __init__(
        self,
        store: DocumentStore,
        pricing: Optional[DeliveryPricingService] = None,
        audit: Optional[AuditService] = None,
    ):
        self._store = store
        self.order_repo = OrderRepository(store)
        self.agent_repo = AgentRepository(store)
        self.audit = audit or AuditService(store)
        self.pricing = pricing or DeliveryPricingService(store, audit=self.audit)

    async def record_delivery_completion(self, request: DeliveryCompletionRequest) -> DeliveryCompletionResult:
        order_key, agent_id = request.order_id, request.agent_id
        log = logger.bind(order_key=order_key, agent_id=agent_id)
        log.info("Recording delivery completion.")

        order = await self.order_repo.get_order(order_key)
        if order is None:
            raise OrderNotFoundError(order_key)
        if order.assigned_agent_id != agent_id:
            raise AgentNotAssignedError(agent_id, order_key)
        if order.delivery.completed_at is not None:
            raise DeliveryAlreadyCompletedError(order_key)
        agent = await self.agent_repo.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)

        percentage = request.agent_commission_percentage
        fee = request.delivery_fee
        if fee is None:
            # No fee given: price the distance with the active tiers
            price = await self.pricing.resolve_price(request.distance)
            fee = price.base_price
            if percentage is None:
                percentage = price.applicable_rule.agent_commission_percentage
        if percentage is None:
            percentage = settings.DEFAULT_AGENT_COMMISSION_PERCENTAGE
        split = split_commission(fee, percentage)
        distance = request.distance if request.distance is not None else 0

        now = utcnow()
        actor = request.completed_by or agent_id
        order_fields = {
            "status": OrderStatus.DELIVERED.value,
            "delivery.completedAt": now,
            "delivery.distance": distance,
            "delivery.fee": split.delivery_fee,
            "delivery.agentCommission": split.agent_commission,
            "delivery.companyRevenue": split.company_revenue,
            "delivery.agentCommissionPercentage": percentage,
            "updatedAt": now,
        }
        agent_update = DocumentUpdate(
            set_fields={"updatedAt": now},
            inc_fields={
                "performance.deliveries_completed": 1,
                "performance.total_earnings": split.agent_commission,
            },
            pull_fields={"assigned_orders": [order_key]},
        )
        if agent.current_order_id == order_key:
            agent_update.set_fields.update(free_agent_fields(agent, now))
            agent_update.expect["current_order_id"] = order_key

        batch = self._store.batch()
        batch.update(ORDERS_COLLECTION, order_key, DocumentUpdate(
            set_fields=order_fields,
            push_fields={"timeline": timeline_entry(
                TimelineAction.DELIVERY_COMPLETED, actor,
                f"Delivered. Fee {split.delivery_fee:g}, agent commission {split.agent_commission:g}",
                now, OrderStatus.DELIVERED,
            )},
            expect={"assignedAgentId": agent_id, "delivery.completedAt": None},
        ))
        batch.update(AGENTS_COLLECTION, agent_id, agent_update)
        try:
            await self._store.commit(batch)
        except PreconditionFailedError as e:
            if e.collection == ORDERS_COLLECTION:
                raise DeliveryAlreadyCompletedError(order_key) from e
            raise ConcurrentModificationError(e.collection, e.key) from e

        log.success(f"Delivery completed; agent credited {split.agent_commission:g}.")
        await self.audit.log_event(
            actor_id=actor, action="complete_delivery", entity_type="order", entity_id=order_key,
            details={"agent_id": agent_id, "fee": split.delivery_fee, "agentCommission": split.agent_commission},
        )
        return DeliveryCompletionResult(
            order_id=order_key,
            agent_id=agent_id,
            delivery_fee=split.delivery_fee,
            agent_commission=split.agent_commission,
            company_revenue=split.company_revenue,
            agent_commission_percentage=percentage,
            distance=distance,
            completed_at=now,
        )

    async def compute_earnings_report(
        self,
        agent_id: str,
        period: Optional[str] = EarningsPeriod.MONTHLY.value,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> EarningsReport:
        agent = await self.agent_repo.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        window_start, window_end = resolve_window(period, start, end)

        deliveries = []
        for order in await self.order_repo.find_delivered_by_agent(agent_id):
            delivery = order.delivery
            if delivery.fee is None or delivery.agent_commission is None or delivery.completed_at is None:
                continue
            completed_at = _as_utc(delivery.completed_at)
            if not window_start <= completed_at <= window_end:
                continue
            deliveries.append(DeliveryEarning(
                order_id=order.order_id,
                distance=delivery.distance or 0,
                delivery_fee=delivery.fee,
                agent_commission=delivery.agent_commission,
                completed_at=completed_at,
            ))
        deliveries.sort(key=lambda d: d.completed_at, reverse=True)

        total = sum(d.agent_commission for d in deliveries)
        average = round(total / len(deliveries), 2) if deliveries else 0
        logger.bind(agent_id=agent_id, deliveries=len(deliveries)).debug("Earnings report computed.")
        return EarningsReport(
            agent_id=agent_id,
            agent_name=agent.full_name,
            total_deliveries=len(deliveries),
            total_earnings=total,
            average_earnings_per_delivery=average,
            period=f"{window_start:%Y-%m-%d} to {window_end:%Y-%m-%d}",
            window_start=window_start,
            window_end=window_end,
            deliveries=deliveries,
        )
